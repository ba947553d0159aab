"""Django ORM implementation of the Order repositories.

Satisfies ``IOrderRepository`` and ``ISellerOrderRepository`` using
Django's QuerySet API.  Callers own the transaction: the lifecycle
service wraps every status change in ``transaction.atomic()`` and locks
the order row with ``get_for_update`` first.

Two status writers exist.  ``update_status_fast`` issues one
``UPDATE orders SET status, updated_at`` and skips model ``save()``
entirely; ``update_status`` goes through ``save(update_fields=...)`` and
is the only writer that stamps cancellation metadata.
"""

from __future__ import annotations

from typing import List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory, SellerOrder
from modules.orders.repositories.interfaces import (
    IOrderRepository,
    ISellerOrderRepository,
)

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the buyer FK and ``prefetch_related``
        for items (with product and variant), seller sub-orders and status
        history.  Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("user")
                .prefetch_related(
                    "items__product",
                    "items__variant",
                    "seller_orders",
                    "status_history",
                )
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        No joins are added so the lock covers the order row only.  Returns
        ``None`` for non-existent or invalid IDs.
        """
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_items(self, order_id: str) -> List[OrderItem]:
        return list(
            OrderItem.objects.select_related("product", "variant")
            .filter(order_id=order_id)
            .order_by("created_at", "id")
        )

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order and flush its domain events."""
        entity.save()
        event_count = self.record_events(entity)
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    # ------------------------------------------------------------------
    # Status writers
    # ------------------------------------------------------------------

    def update_status_fast(self, order: Order, new_status: str) -> Order:
        now = timezone.now()
        updated = Order.objects.filter(pk=order.pk).update(
            status=new_status, updated_at=now
        )
        if updated != 1:
            raise Order.DoesNotExist(f"Order {order.pk} not found.")
        order.status = new_status
        order.updated_at = now
        logger.debug("order.status_written", order_id=str(order.pk), path="fast")
        return order

    def update_status(self, order: Order, new_status: str, reason: str = "") -> Order:
        order.status = new_status
        update_fields = ["status"]
        if new_status == OrderStatus.CANCELLED:
            order.cancelled_at = timezone.now()
            order.cancellation_reason = reason
            update_fields += ["cancelled_at", "cancellation_reason"]
        order.save(update_fields=update_fields)
        logger.debug("order.status_written", order_id=str(order.pk), path="general")
        return order

    # ------------------------------------------------------------------
    # Outbox / history
    # ------------------------------------------------------------------

    def record_events(self, order: Order) -> int:
        events = order.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )
        order.clear_domain_events()
        return len(events)

    def add_history(
        self,
        order_id: str,
        new_status: str,
        old_status: Optional[str] = None,
        notes: str = "",
        changed_by_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            notes=notes,
            changed_by_id=changed_by_id,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
        )
        return history

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def update_item_status(self, item: OrderItem, new_status: str) -> OrderItem:
        item.status = new_status
        item.save(update_fields=["status"])
        return item


class SellerOrderDjangoRepository(ISellerOrderRepository):
    """Concrete SellerOrder repository backed by Django ORM."""

    def get_by_order(self, order_id: str) -> List[SellerOrder]:
        return list(
            SellerOrder.objects.select_related("seller")
            .filter(order_id=order_id)
            .order_by("created_at", "id")
        )

    def update_status(self, seller_order: SellerOrder, new_status: str) -> SellerOrder:
        seller_order.status = new_status
        seller_order.save(update_fields=["status"])
        logger.info(
            "seller_order.status_updated",
            seller_order_id=str(seller_order.id),
            order_id=str(seller_order.order_id),
            new_status=new_status,
        )
        return seller_order
