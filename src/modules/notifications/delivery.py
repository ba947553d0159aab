"""Delivery channels for notifications: real-time pub/sub and email.

The real-time publisher class is picked by the ``REALTIME_PUBLISHER``
setting (dotted path).  Production publishes to Redis pub/sub on the
``<REALTIME_CHANNEL_PREFIX>:<user_id>`` channel, where the websocket
gateway subscribes; the test settings use the in-memory publisher.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar, Dict, List, Optional, Tuple

import structlog
from django.conf import settings
from django.core.mail import send_mail
from django.core.serializers.json import DjangoJSONEncoder
from django.template.loader import render_to_string
from django.utils.module_loading import import_string
from django_redis import get_redis_connection
from redis.exceptions import RedisError

from modules.notifications.exceptions import NotificationDeliveryError

logger = structlog.get_logger(__name__)


def channel_for(user_id: Any) -> str:
    return f"{settings.REALTIME_CHANNEL_PREFIX}:{user_id}"


class RedisRealtimePublisher:
    """Publishes JSON messages on a per-user Redis channel."""

    def __init__(self, alias: str = "default") -> None:
        self._alias = alias

    def publish(self, user_id: Any, message: Dict[str, Any]) -> int:
        """Return the number of subscribers that received the message."""
        channel = channel_for(user_id)
        try:
            connection = get_redis_connection(self._alias)
            receivers = connection.publish(
                channel, json.dumps(message, cls=DjangoJSONEncoder)
            )
        except RedisError as exc:
            raise NotificationDeliveryError(
                f"Real-time publish to {channel} failed: {exc}"
            ) from exc
        logger.debug("notification.realtime_published", channel=channel, receivers=receivers)
        return receivers


class InMemoryRealtimePublisher:
    """Records published messages on the class; used by the test settings."""

    sent: ClassVar[List[Tuple[str, Dict[str, Any]]]] = []

    def publish(self, user_id: Any, message: Dict[str, Any]) -> int:
        self.sent.append((channel_for(user_id), message))
        return 1

    @classmethod
    def reset(cls) -> None:
        cls.sent.clear()


def get_realtime_publisher(path: Optional[str] = None):
    """Instantiate the configured real-time publisher."""
    return import_string(path or settings.REALTIME_PUBLISHER)()


class EmailSender:
    """Renders a plain-text template and sends it with Django's mail API."""

    template_dir = "notifications/email"

    def __init__(self, from_email: Optional[str] = None) -> None:
        self._from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def send(
        self,
        to: str,
        subject: str,
        template: str,
        context: Dict[str, Any],
    ) -> int:
        body = render_to_string(f"{self.template_dir}/{template}.txt", context)
        try:
            return send_mail(
                subject,
                body,
                self._from_email,
                [to],
                fail_silently=False,
            )
        except OSError as exc:
            raise NotificationDeliveryError(f"Email to {to} failed: {exc}") from exc
