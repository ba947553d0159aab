"""Integration tests for order status changes through the real stack.

Covers:
- History, outbox events and notifications written for a transition.
- Same-status requests write nothing and schedule nothing.
- Cancellation refunds wallet coins and restores stock after commit.
- A failing side effect leaves the committed status untouched.
- Rolled-back transactions never enqueue side effects.
- Database errors surface as PersistenceFailure with nothing written.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from django.db import DatabaseError, transaction

from modules.core.models import OutboxEvent
from modules.notifications.models import Notification
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import (
    BusinessRuleViolation,
    InvalidTransition,
    OrderNotFound,
    PersistenceFailure,
)
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.wallets.models import TransactionReason, Wallet

pytestmark = pytest.mark.integration


class TestConfirmOrder:
    def test_writes_history_and_outbox(
        self, lifecycle_service, order, staff_user, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            lifecycle_service.change_order_status(
                order.id, OrderStatus.CONFIRMED, notes="Payment received", changed_by=staff_user
            )

        order.refresh_from_db()
        assert order.status == OrderStatus.CONFIRMED

        history = OrderStatusHistory.objects.get(order=order)
        assert history.old_status == OrderStatus.PENDING
        assert history.new_status == OrderStatus.CONFIRMED
        assert history.changed_by == staff_user
        assert history.notes == "Payment received"

        outbox = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert outbox.event_type == "OrderStatusChanged"
        assert outbox.topic == "orders"
        assert outbox.payload["new_status"] == "confirmed"

    def test_notifies_staff_and_buyer(
        self,
        lifecycle_service,
        order,
        buyer,
        staff_user,
        realtime_messages,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            lifecycle_service.change_order_status(order.id, OrderStatus.CONFIRMED)

        assert len(callbacks) == 2
        assert Notification.objects.filter(recipient=staff_user).count() == 1
        assert Notification.objects.filter(recipient=buyer).count() == 1
        channels = sorted(channel for channel, _ in realtime_messages)
        assert channels == sorted(
            [f"notifications:{staff_user.pk}", f"notifications:{buyer.pk}"]
        )

    def test_same_status_is_a_no_op(
        self, lifecycle_service, order, staff_user, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            result = lifecycle_service.change_order_status(order.id, OrderStatus.PENDING)

        assert result.status == OrderStatus.PENDING
        assert callbacks == []
        assert not OrderStatusHistory.objects.filter(order=order).exists()
        assert not OutboxEvent.objects.exists()
        assert not Notification.objects.exists()

    def test_unknown_order(self, lifecycle_service):
        with pytest.raises(OrderNotFound):
            lifecycle_service.change_order_status(uuid4(), OrderStatus.CONFIRMED)

    def test_full_happy_path(self, lifecycle_service, order, django_capture_on_commit_callbacks):
        path = [
            OrderStatus.CONFIRMED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ]
        with django_capture_on_commit_callbacks(execute=True):
            for status in path:
                lifecycle_service.change_order_status(order.id, status)

        history = list(
            OrderStatusHistory.objects.filter(order=order)
            .order_by("created_at", "id")
            .values_list("old_status", "new_status")
        )
        assert history == [
            ("pending", "confirmed"),
            ("confirmed", "processing"),
            ("processing", "shipped"),
            ("shipped", "delivered"),
        ]


class TestRejectedTransitions:
    def test_invalid_transition_writes_nothing(
        self, lifecycle_service, make_order, product, django_capture_on_commit_callbacks
    ):
        order = make_order([(product, 1)], status=OrderStatus.SHIPPED)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(InvalidTransition):
                lifecycle_service.change_order_status(order.id, OrderStatus.PROCESSING)

        order.refresh_from_db()
        assert order.status == OrderStatus.SHIPPED
        assert callbacks == []
        assert not OrderStatusHistory.objects.exists()

    def test_delivered_order_cannot_be_cancelled(
        self, lifecycle_service, make_order, product
    ):
        order = make_order([(product, 1)], status=OrderStatus.DELIVERED)

        with pytest.raises(BusinessRuleViolation):
            lifecycle_service.change_order_status(order.id, OrderStatus.CANCELLED)

        order.refresh_from_db()
        assert order.cancelled_at is None

    def test_database_error_rolls_back_everything(
        self, lifecycle_service, order, monkeypatch, django_capture_on_commit_callbacks
    ):
        def broken_history(self, *args, **kwargs):
            raise DatabaseError("disk full")

        monkeypatch.setattr(OrderDjangoRepository, "add_history", broken_history)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(PersistenceFailure):
                lifecycle_service.change_order_status(order.id, OrderStatus.CONFIRMED)

        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert callbacks == []
        assert not OutboxEvent.objects.exists()


class TestCancellation:
    def test_refunds_coins_and_restores_stock(
        self, lifecycle_service, make_order, product, variant, buyer,
        django_capture_on_commit_callbacks,
    ):
        order = make_order(
            [(product, 2), (product, 1, variant)],
            status=OrderStatus.CONFIRMED,
            wallet_coins_used=150,
        )

        with django_capture_on_commit_callbacks(execute=True):
            lifecycle_service.change_order_status(
                order.id, OrderStatus.CANCELLED, notes="Customer request"
            )

        order.refresh_from_db()
        assert order.status == OrderStatus.CANCELLED
        assert order.cancellation_reason == "Customer request"
        assert order.cancelled_at is not None

        wallet = Wallet.objects.get(user=buyer)
        assert wallet.balance == 150
        refund = wallet.transactions.get()
        assert refund.reason == TransactionReason.REFUND
        assert order.order_number in refund.note

        product.refresh_from_db()
        variant.refresh_from_db()
        assert product.stock == 12
        assert variant.stock == 4

        assert sorted(
            OutboxEvent.objects.filter(aggregate_id=str(order.id)).values_list(
                "event_type", flat=True
            )
        ) == ["OrderCancelled", "OrderStatusChanged"]

    def test_no_refund_without_coins(
        self, lifecycle_service, order, buyer, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            lifecycle_service.change_order_status(order.id, OrderStatus.CANCELLED)

        assert not Wallet.objects.filter(user=buyer).exists()

    def test_stock_failure_keeps_cancellation_and_other_effects(
        self, lifecycle_service, make_order, product, buyer, monkeypatch,
        django_capture_on_commit_callbacks,
    ):
        order = make_order([(product, 2)], wallet_coins_used=40)

        def broken_increment(self, id, quantity):
            raise DatabaseError("stock table locked")

        monkeypatch.setattr(ProductDjangoRepository, "increment_product_stock", broken_increment)

        with django_capture_on_commit_callbacks(execute=True):
            result = lifecycle_service.change_order_status(order.id, OrderStatus.CANCELLED)

        assert result.status == OrderStatus.CANCELLED
        assert Order.objects.get(pk=order.pk).status == OrderStatus.CANCELLED
        assert Wallet.objects.get(user=buyer).balance == 40
        assert Notification.objects.filter(recipient=buyer).exists()
        product.refresh_from_db()
        assert product.stock == 10

    def test_cancelled_is_terminal(self, lifecycle_service, order):
        lifecycle_service.change_order_status(order.id, OrderStatus.CANCELLED)

        with pytest.raises(InvalidTransition) as exc_info:
            lifecycle_service.change_order_status(order.id, OrderStatus.CONFIRMED)

        assert exc_info.value.allowed == []


class TestCommitBoundary:
    def test_rolled_back_change_enqueues_nothing(
        self, lifecycle_service, order, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError):
                with transaction.atomic():
                    lifecycle_service.change_order_status(order.id, OrderStatus.CANCELLED)
                    raise RuntimeError("outer transaction aborted")

        assert callbacks == []
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert not Notification.objects.exists()

    def test_side_effects_wait_for_commit(
        self, lifecycle_service, order, buyer, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            lifecycle_service.change_order_status(order.id, OrderStatus.CONFIRMED)

        assert len(callbacks) == 1
        assert not Notification.objects.exists()

        callbacks[0]()
        assert Notification.objects.filter(recipient=buyer).count() == 1
