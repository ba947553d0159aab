"""Order lifecycle service layer (Use Cases).

Orchestrates order status changes and item-level status propagation.
All write operations are atomic: the service defines the unit-of-work
boundary and locks the order row (``SELECT FOR UPDATE``) before reading
its status.

Flow of ``change_order_status``:
1. Lock and load the order.
2. Same-status request: return the order untouched.
3. Validate the transition (named prohibitions, then the transition table).
4. Write the status (single UPDATE for hot-path statuses, ``save()``
   otherwise), record history and outbox events.
5. Hand the post-commit side effects to the dispatcher.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import structlog
from django.db import DatabaseError, transaction

from modules.orders.constants import HOT_PATH_STATUSES, OrderStatus
from modules.orders.events import OrderCancelled, OrderStatusChanged
from modules.orders.exceptions import (
    BusinessRuleViolation,
    InvalidTransition,
    OrderItemNotFound,
    OrderNotFound,
    PersistenceFailure,
    SellerOrderNotFound,
)
from modules.orders.state_machine import OrderStatusValidator

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import (
        IOrderRepository,
        ISellerOrderRepository,
    )
    from modules.orders.side_effects import OrderSideEffectDispatcher

logger = structlog.get_logger(__name__)


class OrderLifecycleService:
    """Application service for order status use-cases.

    Receives repositories and the side-effect dispatcher via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        seller_order_repository: ISellerOrderRepository,
        dispatcher: OrderSideEffectDispatcher,
        validator: Optional[OrderStatusValidator] = None,
    ) -> None:
        self._order_repo = order_repository
        self._seller_order_repo = seller_order_repository
        self._dispatcher = dispatcher
        self._validator = validator or OrderStatusValidator()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def change_order_status(
        self,
        order_id: Any,
        new_status: str,
        notes: str = "",
        changed_by: Any = None,
    ) -> Order:
        """Transition an order to *new_status*.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransition: unknown status or no edge in the table.
            BusinessRuleViolation: a transition business rule fails.
            PersistenceFailure: the database rejected the write.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=new_status,
        )

        if order.status == new_status:
            log.info("order.status_unchanged")
            return order

        try:
            self._validator.validate(order.status, new_status)
        except (InvalidTransition, BusinessRuleViolation) as exc:
            log.warning("order.invalid_transition", error=type(exc).__name__)
            raise

        old_status = order.status
        self._persist_status(
            order,
            new_status,
            notes=notes,
            changed_by_id=getattr(changed_by, "pk", changed_by),
        )
        self._dispatcher.dispatch_status_change(order, old_status, new_status)

        log.info("order.status_updated", old_status=old_status)
        return order

    @transaction.atomic
    def change_order_item_status(
        self,
        order_id: Any,
        order_item_id: Any,
        new_status: str,
    ) -> None:
        """Move one item to *new_status* and roll the change up.

        The item's seller sub-order follows once all of its items share the
        status, and the order follows once all seller sub-orders do.

        Raises:
            OrderNotFound / OrderItemNotFound / SellerOrderNotFound: lookup
                failed (nothing has been written).
            BusinessRuleViolation: the order is terminal, or a rule fails.
            InvalidTransition: the item transition is not allowed.
            PersistenceFailure: the database rejected an item, seller order
                or order write.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        items = self._order_repo.get_items(str(order.id))
        item = next((i for i in items if str(i.id) == str(order_item_id)), None)
        if item is None:
            raise OrderItemNotFound(
                f"Item {order_item_id} not found on order {order_id}."
            )

        seller_orders = self._seller_order_repo.get_by_order(str(order.id))
        seller_order = next(
            (so for so in seller_orders if so.id == item.seller_order_id), None
        )
        if seller_order is None:
            raise SellerOrderNotFound(
                f"Seller order {item.seller_order_id} not found on order {order_id}."
            )

        log = logger.bind(
            order_id=str(order.id),
            order_item_id=str(item.id),
            seller_order_id=str(seller_order.id),
            current_status=item.status,
            new_status=new_status,
        )

        if order.is_terminal:
            log.warning("order_item.order_terminal", order_status=order.status)
            raise BusinessRuleViolation(
                order.status,
                new_status,
                f"Items of a {order.status} order cannot change status.",
            )

        if item.status == new_status:
            log.info("order_item.status_unchanged")
            return

        try:
            self._validator.validate(item.status, new_status)
        except (InvalidTransition, BusinessRuleViolation) as exc:
            log.warning("order_item.invalid_transition", error=type(exc).__name__)
            raise

        old_item_status = item.status
        old_seller_status = seller_order.status
        seller_items = [i for i in items if i.seller_order_id == seller_order.id]
        try:
            self._order_repo.update_item_status(item, new_status)
            seller_rolls_up = seller_order.status != new_status and all(
                i.status == new_status for i in seller_items
            )
            if seller_rolls_up:
                self._seller_order_repo.update_status(seller_order, new_status)
        except DatabaseError as exc:
            item.status = old_item_status
            seller_order.status = old_seller_status
            log.error("order_item.status_write_failed", error=str(exc))
            raise PersistenceFailure(str(order.id), exc) from exc
        log.info("order_item.status_updated")

        if seller_rolls_up:
            self._dispatcher.dispatch_seller_rollup(order, seller_order, new_status)
            log.info("seller_order.rolled_up")

        if order.status != new_status and all(
            so.status == new_status for so in seller_orders
        ):
            old_status = order.status
            self._persist_status(
                order,
                new_status,
                notes=f"All seller orders reached {new_status}.",
            )
            self._dispatcher.dispatch_buyer_rollup(order, new_status)
            log.info("order.rolled_up", old_status=old_status)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist_status(
        self,
        order: Order,
        new_status: str,
        notes: str = "",
        changed_by_id: Optional[int] = None,
    ) -> None:
        """Status write + history + outbox; DB errors become PersistenceFailure."""
        old_status = order.status
        try:
            if new_status in HOT_PATH_STATUSES:
                self._order_repo.update_status_fast(order, new_status)
            else:
                self._order_repo.update_status(order, new_status, reason=notes)

            self._order_repo.add_history(
                order_id=str(order.id),
                new_status=new_status,
                old_status=old_status,
                notes=notes,
                changed_by_id=changed_by_id,
            )

            order.add_domain_event(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    old_status=old_status,
                    new_status=new_status,
                    order_number=order.order_number,
                    changed_by_id=changed_by_id,
                )
            )
            if new_status == OrderStatus.CANCELLED:
                order.add_domain_event(
                    OrderCancelled(
                        aggregate_id=order.id,
                        reason=notes,
                        order_number=order.order_number,
                        wallet_coins_used=order.wallet_coins_used,
                    )
                )
            self._order_repo.record_events(order)
        except DatabaseError as exc:
            order.status = old_status
            order.clear_domain_events()
            logger.error(
                "order.status_write_failed",
                order_id=str(order.id),
                new_status=new_status,
                error=str(exc),
            )
            raise PersistenceFailure(str(order.id), exc) from exc
