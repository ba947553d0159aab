"""In-app notification model."""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel


class NotificationType(models.TextChoices):
    ORDER_STATUS = "order_status", "Order status"
    WALLET = "wallet", "Wallet"
    STOCK_AVAILABLE = "stock_available", "Stock available"
    SYSTEM = "system", "System"


class Notification(BaseModel):
    """A message addressed to one user.

    ``metadata`` carries the structured context (order id, status, ...)
    that clients use to render deep links; ``link`` is the relative URL
    the notification opens.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    notification_type = models.CharField(
        max_length=30,
        choices=NotificationType.choices,
        default=NotificationType.SYSTEM,
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "is_read"],
                name="notif_recipient_read_idx",
            ),
        ]

    def mark_as_read(self) -> None:
        if self.is_read:
            return
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=["is_read", "read_at", "updated_at"])

    def to_message(self) -> dict:
        """Payload pushed to the recipient's real-time channel."""
        return {
            "id": str(self.id),
            "type": self.notification_type,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "metadata": self.metadata,
            "read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __str__(self) -> str:
        return f"{self.notification_type}: {self.title} -> {self.recipient_id}"
