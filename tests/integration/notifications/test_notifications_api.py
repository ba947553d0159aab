"""Integration tests for the notifications API.

Covers:
- GET /api/v1/notifications/ lists only the caller's notifications,
  newest first, paginated and filterable.
- POST /api/v1/notifications/{id}/read/ and /read-all/.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.notifications.models import Notification, NotificationType

pytestmark = pytest.mark.integration

LIST_URL = "/api/v1/notifications/"


def _create(recipient, **overrides) -> Notification:
    data = {
        "recipient": recipient,
        "notification_type": NotificationType.ORDER_STATUS,
        "title": "Order update",
        "message": "Your order moved.",
    }
    data.update(overrides)
    return Notification.objects.create(**data)


class TestListNotifications:
    def test_lists_only_own_notifications(self, api_client, buyer, seller):
        mine = _create(buyer)
        _create(seller)
        api_client.force_authenticate(user=buyer)

        response = api_client.get(LIST_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["results"][0]["id"] == str(mine.id)
        assert data["results"][0]["is_read"] is False

    def test_newest_first(self, api_client, buyer):
        older = _create(buyer, title="First")
        newer = _create(buyer, title="Second")
        api_client.force_authenticate(user=buyer)

        results = api_client.get(LIST_URL).json()["results"]

        assert [r["id"] for r in results] == [str(newer.id), str(older.id)]

    def test_filter_unread(self, api_client, buyer):
        _create(buyer, is_read=True)
        unread = _create(buyer)
        api_client.force_authenticate(user=buyer)

        results = api_client.get(LIST_URL, {"is_read": "false"}).json()["results"]

        assert [r["id"] for r in results] == [str(unread.id)]

    def test_filter_by_type(self, api_client, buyer):
        _create(buyer)
        wallet = _create(buyer, notification_type=NotificationType.WALLET)
        api_client.force_authenticate(user=buyer)

        results = api_client.get(LIST_URL, {"notification_type": "wallet"}).json()["results"]

        assert [r["id"] for r in results] == [str(wallet.id)]

    def test_paginated(self, api_client, buyer):
        for i in range(25):
            _create(buyer, title=f"Update {i}")
        api_client.force_authenticate(user=buyer)

        data = api_client.get(LIST_URL).json()

        assert data["count"] == 25
        assert len(data["results"]) == 20
        assert data["next"] is not None

    def test_requires_authentication(self, api_client):
        assert api_client.get(LIST_URL).status_code == 401


class TestMarkAsRead:
    def test_marks_one(self, api_client, buyer):
        notification = _create(buyer)
        api_client.force_authenticate(user=buyer)

        response = api_client.post(f"{LIST_URL}{notification.id}/read/")

        assert response.status_code == 200
        assert response.json()["is_read"] is True
        assert response.json()["read_at"] is not None
        notification.refresh_from_db()
        assert notification.is_read is True

    def test_foreign_notification_returns_404(self, api_client, buyer, seller):
        notification = _create(seller)
        api_client.force_authenticate(user=buyer)

        response = api_client.post(f"{LIST_URL}{notification.id}/read/")

        assert response.status_code == 404
        notification.refresh_from_db()
        assert notification.is_read is False

    def test_unknown_notification_returns_404(self, api_client, buyer):
        api_client.force_authenticate(user=buyer)

        assert api_client.post(f"{LIST_URL}{uuid4()}/read/").status_code == 404

    def test_read_all(self, api_client, buyer, seller):
        _create(buyer)
        _create(buyer)
        _create(seller)
        api_client.force_authenticate(user=buyer)

        response = api_client.post(f"{LIST_URL}read-all/")

        assert response.status_code == 200
        assert response.json() == {"updated": 2}
        assert Notification.objects.filter(recipient=seller, is_read=False).count() == 1


class TestOrderNotificationsEndToEnd:
    def test_status_change_lands_in_buyer_inbox(
        self, api_client, staff_user, buyer, order, django_capture_on_commit_callbacks
    ):
        api_client.force_authenticate(user=staff_user)
        with django_capture_on_commit_callbacks(execute=True):
            api_client.patch(
                f"/api/v1/orders/{order.id}/status/", {"status": "confirmed"}, format="json"
            )

        api_client.force_authenticate(user=buyer)
        results = api_client.get(LIST_URL).json()["results"]

        assert len(results) == 1
        assert results[0]["notification_type"] == "order_status"
        assert results[0]["metadata"]["order_number"] == order.order_number
        assert results[0]["link"] == f"/orders/{order.id}"
