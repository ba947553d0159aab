"""Integration tests for the Celery configuration."""

import pytest

pytestmark = pytest.mark.integration


class TestCeleryConfig:
    """Celery loads through Django and knows every side-effect task."""

    def test_celery_app_exported_from_init(self):
        from config import celery_app
        from config.celery import app

        assert celery_app is app
        assert app.main == "marketplace"

    def test_tests_run_tasks_eagerly(self, settings):
        assert settings.CELERY_TASK_ALWAYS_EAGER is True
        assert settings.CELERY_BROKER_URL == "memory://"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    @pytest.mark.parametrize(
        "task_name",
        [
            "orders.refund_wallet_coins",
            "orders.restore_order_stock",
            "orders.deliver_order_notification",
            "orders.notify_status_rollup",
            "core.relay_outbox_events",
        ],
    )
    def test_tasks_are_registered(self, task_name):
        from config.celery import app

        import modules.core.tasks  # noqa: F401
        import modules.orders.tasks  # noqa: F401

        assert task_name in app.tasks

    def test_notification_tasks_use_their_own_queue(self, settings):
        routes = settings.CELERY_TASK_ROUTES
        assert routes["orders.deliver_order_notification"] == {"queue": "notifications"}
        assert routes["orders.notify_status_rollup"] == {"queue": "notifications"}

    def test_outbox_relay_is_scheduled(self, settings):
        entry = settings.CELERY_BEAT_SCHEDULE["relay-outbox-events"]
        assert entry["task"] == "core.relay_outbox_events"


class TestEagerExecution:
    def test_relay_task_runs_through_apply_async(self):
        from modules.core.tasks import relay_outbox_events

        result = relay_outbox_events.apply_async()

        assert result.successful()
        assert result.result == {"published": 0, "failed": 0}
