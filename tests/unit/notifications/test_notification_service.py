"""Unit tests for NotificationService.

Covers:
- notify() persists, pushes and (optionally) emails.
- Each delivery step fails independently of the others.
- Email is skipped for recipients without an address.
- mark_as_read / mark_all_as_read.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from modules.notifications.exceptions import (
    NotificationDeliveryError,
    NotificationNotFound,
)
from modules.notifications.models import Notification, NotificationType
from modules.notifications.repositories.django_repository import (
    NotificationDjangoRepository,
)
from modules.notifications.services import EmailContent, NotificationService

pytestmark = pytest.mark.unit

EMAIL = EmailContent(
    subject="Your Order #ORD-1 Status Update",
    template="order_status_updated_buyer",
    context={"order_number": "ORD-1", "status_label": "Shipped", "buyer_name": "buyer"},
)


@pytest.fixture()
def repo():
    repo = MagicMock()
    repo.create.return_value = SimpleNamespace(
        to_message=lambda: {"id": "n-1", "title": "Order shipped"}
    )
    repo.get_recipient.return_value = SimpleNamespace(email="buyer@example.com")
    return repo


@pytest.fixture()
def publisher():
    return MagicMock()


@pytest.fixture()
def mailer():
    mailer = MagicMock()
    mailer.send.return_value = 1
    return mailer


@pytest.fixture()
def service(repo, publisher, mailer):
    return NotificationService(repo, publisher, mailer)


def _notify(service, **kwargs):
    return service.notify(
        "7",
        NotificationType.ORDER_STATUS,
        "Order shipped",
        "Your order is on its way.",
        link="/orders/1",
        metadata={"order_id": "1"},
        **kwargs,
    )


# ===========================================================================
# notify
# ===========================================================================


class TestNotify:
    def test_all_channels_succeed(self, service, repo, publisher, mailer):
        outcome = _notify(service, email=EMAIL)

        assert outcome.ok
        assert outcome.pushed is True
        assert outcome.emailed is True
        publisher.publish.assert_called_once_with("7", {"id": "n-1", "title": "Order shipped"})
        mailer.send.assert_called_once_with(
            "buyer@example.com", EMAIL.subject, EMAIL.template, EMAIL.context
        )

    def test_email_not_attempted_without_content(self, service, mailer):
        outcome = _notify(service)

        assert outcome.ok
        assert outcome.emailed is False
        mailer.send.assert_not_called()

    def test_persist_failure_still_pushes_fallback_payload(self, service, repo, publisher):
        repo.create.side_effect = RuntimeError("db down")

        outcome = _notify(service, email=EMAIL)

        assert outcome.errors == ["persist"]
        assert outcome.notification is None
        payload = publisher.publish.call_args.args[1]
        assert payload["id"] is None
        assert payload["title"] == "Order shipped"
        assert payload["metadata"] == {"order_id": "1"}
        assert outcome.emailed is True

    def test_realtime_failure_does_not_block_email(self, service, publisher):
        publisher.publish.side_effect = NotificationDeliveryError("redis down")

        outcome = _notify(service, email=EMAIL)

        assert outcome.errors == ["realtime"]
        assert outcome.pushed is False
        assert outcome.emailed is True
        assert outcome.notification is not None

    def test_email_failure_is_recorded(self, service, mailer):
        mailer.send.side_effect = NotificationDeliveryError("smtp down")

        outcome = _notify(service, email=EMAIL)

        assert outcome.errors == ["email"]
        assert outcome.pushed is True

    def test_recipient_without_address_is_skipped(self, service, repo, mailer):
        repo.get_recipient.return_value = SimpleNamespace(email="")

        outcome = _notify(service, email=EMAIL)

        assert outcome.ok
        assert outcome.emailed is False
        mailer.send.assert_not_called()

    def test_no_mailer_configured(self, repo, publisher):
        service = NotificationService(repo, publisher)

        outcome = _notify(service, email=EMAIL)

        assert outcome.ok
        assert outcome.emailed is False


# ===========================================================================
# Read state (database-backed)
# ===========================================================================


@pytest.fixture()
def db_service(publisher):
    return NotificationService(NotificationDjangoRepository(), publisher)


def _create(recipient, **overrides):
    data = {"recipient": recipient, "title": "Hello", "message": "World"}
    data.update(overrides)
    return Notification.objects.create(**data)


class TestReadState:
    def test_mark_as_read(self, db_service, buyer):
        notification = _create(buyer)

        result = db_service.mark_as_read(str(notification.id), buyer.pk)

        assert result.is_read is True
        notification.refresh_from_db()
        assert notification.read_at is not None

    def test_mark_as_read_is_idempotent(self, db_service, buyer):
        notification = _create(buyer)
        first = db_service.mark_as_read(str(notification.id), buyer.pk).read_at

        second = db_service.mark_as_read(str(notification.id), buyer.pk).read_at

        assert first == second

    def test_foreign_notification_is_not_found(self, db_service, buyer, seller):
        notification = _create(seller)
        with pytest.raises(NotificationNotFound):
            db_service.mark_as_read(str(notification.id), buyer.pk)

    def test_malformed_id_is_not_found(self, db_service, buyer):
        with pytest.raises(NotificationNotFound):
            db_service.mark_as_read("not-a-uuid", buyer.pk)

    def test_mark_all_as_read(self, db_service, buyer, seller):
        _create(buyer)
        _create(buyer)
        _create(buyer, is_read=True)
        _create(seller)

        assert db_service.mark_all_as_read(buyer.pk) == 2
        assert not Notification.objects.filter(recipient=buyer, is_read=False).exists()
        assert Notification.objects.filter(recipient=seller, is_read=False).count() == 1

    def test_create_notification_persists(self, db_service, buyer):
        notification = db_service.create_notification(
            buyer.pk,
            NotificationType.WALLET,
            "Coins refunded",
            "150 coins are back in your wallet.",
            metadata={"amount": 150},
        )
        assert notification.recipient_id == buyer.pk
        assert notification.to_message()["type"] == "wallet"


class TestRecipients:
    def test_inactive_recipient_is_ignored(self, buyer):
        buyer.is_active = False
        buyer.save(update_fields=["is_active"])
        assert NotificationDjangoRepository().get_recipient(buyer.pk) is None

    def test_staff_recipient_ids(self, staff_user, buyer):
        inactive = type(staff_user).objects.create_user(
            username="former_admin", password="testpass123", is_staff=True, is_active=False
        )
        ids = NotificationDjangoRepository().get_staff_recipient_ids()
        assert ids == [str(staff_user.pk)]
        assert str(inactive.pk) not in ids
