"""Notification repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser
    from django.db.models import QuerySet

    from modules.notifications.models import Notification


class INotificationRepository(IRepository["Notification"]):
    """Persistence contract for notifications and their recipients."""

    @abstractmethod
    def create(
        self,
        recipient_id: str,
        notification_type: str,
        title: str,
        message: str,
        link: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """Persist a new unread notification."""

    @abstractmethod
    def get_for_recipient(
        self, notification_id: str, recipient_id: str
    ) -> Optional[Notification]:
        """Return the notification only if it belongs to *recipient_id*."""

    @abstractmethod
    def list_for_recipient(self, recipient_id: str) -> QuerySet:
        """Newest-first queryset of a user's notifications."""

    @abstractmethod
    def mark_all_as_read(self, recipient_id: str) -> int:
        """Flag every unread notification of a user; return the count."""

    @abstractmethod
    def get_recipient(self, user_id: str) -> Optional[AbstractBaseUser]:
        """Look up an active user by id."""

    @abstractmethod
    def get_staff_recipient_ids(self) -> List[str]:
        """Ids of the active staff users that receive order notifications."""
