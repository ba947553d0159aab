"""Django ORM implementation of the Notification repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from modules.notifications.models import Notification
from modules.notifications.repositories.interfaces import INotificationRepository

logger = structlog.get_logger(__name__)


class NotificationDjangoRepository(INotificationRepository):
    """Concrete Notification repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Notification]:
        try:
            return Notification.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save(self, entity: Notification) -> Notification:
        entity.save()
        return entity

    def create(
        self,
        recipient_id: str,
        notification_type: str,
        title: str,
        message: str,
        link: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification.objects.create(
            recipient_id=recipient_id,
            notification_type=notification_type,
            title=title,
            message=message,
            link=link,
            metadata=metadata or {},
        )
        logger.info(
            "notification.created",
            notification_id=str(notification.id),
            recipient_id=str(recipient_id),
            notification_type=notification_type,
        )
        return notification

    def get_for_recipient(
        self, notification_id: str, recipient_id: str
    ) -> Optional[Notification]:
        try:
            return Notification.objects.filter(
                id=notification_id, recipient_id=recipient_id
            ).first()
        except (ValueError, ValidationError):
            return None

    def list_for_recipient(self, recipient_id: str) -> QuerySet:
        return Notification.objects.filter(recipient_id=recipient_id).order_by(
            "-created_at", "-id"
        )

    def mark_all_as_read(self, recipient_id: str) -> int:
        now = timezone.now()
        return Notification.objects.filter(
            recipient_id=recipient_id, is_read=False
        ).update(is_read=True, read_at=now, updated_at=now)

    def get_recipient(self, user_id: str):
        User = get_user_model()
        return User.objects.filter(pk=user_id, is_active=True).first()

    def get_staff_recipient_ids(self) -> List[str]:
        User = get_user_model()
        return [
            str(pk)
            for pk in User.objects.filter(is_staff=True, is_active=True)
            .order_by("pk")
            .values_list("pk", flat=True)
        ]
