from unittest.mock import patch

import pytest

from modules.core.models import EventStatus, OutboxEvent

pytestmark = pytest.mark.integration


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        data = client.get("/health").json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_reports_cache_status(self, client):
        data = client.get("/health").json()
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_health_check_is_public(self, client):
        assert client.get("/health").status_code == 200

    def test_cache_outage_returns_503(self, client):
        with patch("modules.core.views.cache.set", side_effect=ConnectionError("redis down")):
            response = client.get("/health")
        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["cache"] == {"status": "down"}
        assert data["services"]["database"]["status"] == "up"

    def test_outbox_backlog_is_informational(self, client):
        OutboxEvent.objects.create(
            event_type="OrderStatusChanged", payload={}, aggregate_id="a", topic="orders"
        )
        OutboxEvent.objects.create(
            event_type="OrderCancelled",
            payload={},
            aggregate_id="b",
            topic="orders",
            status=EventStatus.FAILED,
        )
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["outbox"] == {"pending": 1, "failed": 1}
