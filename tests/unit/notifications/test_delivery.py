"""Unit tests for notification delivery channels."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from django.core import mail
from redis.exceptions import ConnectionError as RedisConnectionError

from modules.notifications.delivery import (
    EmailSender,
    InMemoryRealtimePublisher,
    RedisRealtimePublisher,
    channel_for,
    get_realtime_publisher,
)
from modules.notifications.exceptions import NotificationDeliveryError

pytestmark = pytest.mark.unit


class TestRealtimePublishers:
    def test_channel_name(self, settings):
        settings.REALTIME_CHANNEL_PREFIX = "notif"
        assert channel_for(42) == "notif:42"

    def test_configured_publisher_is_in_memory(self):
        assert isinstance(get_realtime_publisher(), InMemoryRealtimePublisher)

    def test_explicit_path(self):
        publisher = get_realtime_publisher(
            "modules.notifications.delivery.RedisRealtimePublisher"
        )
        assert isinstance(publisher, RedisRealtimePublisher)

    def test_in_memory_records_messages(self, realtime_messages):
        InMemoryRealtimePublisher().publish(5, {"title": "Hi"})
        assert realtime_messages == [("notifications:5", {"title": "Hi"})]

    def test_redis_publish_serialises_message(self):
        connection = MagicMock()
        connection.publish.return_value = 2
        with patch(
            "modules.notifications.delivery.get_redis_connection",
            return_value=connection,
        ) as get_connection:
            receivers = RedisRealtimePublisher().publish(
                7, {"title": "Shipped", "created_at": None}
            )

        get_connection.assert_called_once_with("default")
        channel, body = connection.publish.call_args.args
        assert channel == "notifications:7"
        assert json.loads(body) == {"title": "Shipped", "created_at": None}
        assert receivers == 2

    def test_redis_error_becomes_delivery_error(self):
        connection = MagicMock()
        connection.publish.side_effect = RedisConnectionError("refused")
        with patch(
            "modules.notifications.delivery.get_redis_connection",
            return_value=connection,
        ):
            with pytest.raises(NotificationDeliveryError, match="notifications:7"):
                RedisRealtimePublisher().publish(7, {"title": "Shipped"})


class TestEmailSender:
    def test_renders_seller_template(self):
        sent = EmailSender(from_email="shop@example.com").send(
            "seller@example.com",
            "Order #ORD-1 Status Update",
            "order_status_updated",
            {
                "seller_name": "acme",
                "order_number": "ORD-1",
                "seller_order_id": "so-1",
                "status_label": "Shipped",
            },
        )

        assert sent == 1
        (email,) = mail.outbox
        assert email.from_email == "shop@example.com"
        assert email.to == ["seller@example.com"]
        assert "Hello acme" in email.body
        assert "ORD-1" in email.body
        assert "Shipped" in email.body

    def test_default_from_address(self, settings):
        settings.DEFAULT_FROM_EMAIL = "orders@marketplace.test"
        EmailSender().send(
            "buyer@example.com",
            "Your Order #ORD-1 Status Update",
            "order_status_updated_buyer",
            {"buyer_name": "sam", "order_number": "ORD-1", "status_label": "Delivered"},
        )
        assert mail.outbox[0].from_email == "orders@marketplace.test"

    def test_transport_error_becomes_delivery_error(self):
        with patch(
            "modules.notifications.delivery.send_mail",
            side_effect=ConnectionRefusedError("smtp down"),
        ):
            with pytest.raises(NotificationDeliveryError):
                EmailSender().send("buyer@example.com", "s", "order_status_updated_buyer", {})
