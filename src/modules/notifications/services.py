"""Notification service layer.

``notify`` drives the three delivery steps (persisted in-app row,
real-time push, email).  Each step is attempted independently: a failure
is logged and recorded in the returned ``NotificationOutcome`` but never
prevents the following steps nor propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from modules.notifications.exceptions import NotificationNotFound

if TYPE_CHECKING:
    from modules.notifications.delivery import EmailSender
    from modules.notifications.models import Notification
    from modules.notifications.repositories.interfaces import INotificationRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EmailContent:
    subject: str
    template: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NotificationOutcome:
    notification: Optional[Notification] = None
    pushed: bool = False
    emailed: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class NotificationService:
    """Receives its repository and delivery channels via constructor injection."""

    def __init__(
        self,
        repository: INotificationRepository,
        publisher: Any,
        mailer: Optional[EmailSender] = None,
    ) -> None:
        self._repo = repository
        self._publisher = publisher
        self._mailer = mailer

    # ------------------------------------------------------------------
    # Delivery steps
    # ------------------------------------------------------------------

    def create_notification(
        self,
        recipient_id: str,
        notification_type: str,
        title: str,
        message: str,
        link: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        return self._repo.create(
            recipient_id=recipient_id,
            notification_type=notification_type,
            title=title,
            message=message,
            link=link,
            metadata=metadata,
        )

    def push_realtime(self, recipient_id: str, message: Dict[str, Any]) -> int:
        return self._publisher.publish(recipient_id, message)

    def send_email(self, to: str, email: EmailContent) -> int:
        if self._mailer is None:
            return 0
        return self._mailer.send(to, email.subject, email.template, email.context)

    def notify(
        self,
        recipient_id: str,
        notification_type: str,
        title: str,
        message: str,
        link: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        email: Optional[EmailContent] = None,
    ) -> NotificationOutcome:
        """Deliver one notification over every channel, isolating failures.

        Email is only attempted when *email* is given and the recipient
        has an address on file.
        """
        log = logger.bind(
            recipient_id=str(recipient_id),
            notification_type=notification_type,
        )
        outcome = NotificationOutcome()

        try:
            outcome.notification = self.create_notification(
                recipient_id, notification_type, title, message, link, metadata
            )
        except Exception:
            outcome.errors.append("persist")
            log.exception("notification.persist_failed")

        if outcome.notification is not None:
            payload = outcome.notification.to_message()
        else:
            payload = {
                "id": None,
                "type": notification_type,
                "title": title,
                "message": message,
                "link": link,
                "metadata": metadata or {},
                "read": False,
            }

        try:
            self.push_realtime(recipient_id, payload)
            outcome.pushed = True
        except Exception:
            outcome.errors.append("realtime")
            log.exception("notification.realtime_failed")

        if email is not None:
            try:
                recipient = self._repo.get_recipient(recipient_id)
                address = getattr(recipient, "email", "") if recipient else ""
                if address:
                    outcome.emailed = self.send_email(address, email) > 0
                else:
                    log.info("notification.email_skipped", reason="no_address")
            except Exception:
                outcome.errors.append("email")
                log.exception("notification.email_failed")

        log.info(
            "notification.delivered",
            persisted=outcome.notification is not None,
            pushed=outcome.pushed,
            emailed=outcome.emailed,
        )
        return outcome

    # ------------------------------------------------------------------
    # Read state
    # ------------------------------------------------------------------

    def mark_as_read(self, notification_id: str, recipient_id: str) -> Notification:
        """Raises ``NotificationNotFound`` for unknown or foreign notifications."""
        notification = self._repo.get_for_recipient(notification_id, recipient_id)
        if notification is None:
            raise NotificationNotFound(f"Notification {notification_id} not found.")
        notification.mark_as_read()
        return notification

    def mark_all_as_read(self, recipient_id: str) -> int:
        count = self._repo.mark_all_as_read(recipient_id)
        logger.info("notification.all_marked_read", recipient_id=str(recipient_id), count=count)
        return count
