"""Order repository interfaces.

The lifecycle service depends exclusively on these contracts (DIP):
``IOrderRepository`` for the Order aggregate (order, items, history,
outbox events) and ``ISellerOrderRepository`` for seller sub-orders.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem, OrderStatusHistory, SellerOrder


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items, seller orders and history."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def update_status(self, order: Order, new_status: str, reason: str = "") -> Order:
        """General status write through ``Model.save(update_fields=...)``.

        Stamps cancellation metadata when *new_status* is ``cancelled``.
        """

    @abstractmethod
    def update_status_fast(self, order: Order, new_status: str) -> Order:
        """Single ``UPDATE`` statement for hot-path statuses."""

    @abstractmethod
    def record_events(self, order: Order) -> int:
        """Move the order's pending domain events into the outbox."""

    @abstractmethod
    def add_history(
        self,
        order_id: str,
        new_status: str,
        old_status: Optional[str] = None,
        notes: str = "",
        changed_by_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def get_items(self, order_id: str) -> List[OrderItem]:
        """All items of an order, with product and variant loaded."""

    @abstractmethod
    def update_item_status(self, item: OrderItem, new_status: str) -> OrderItem:
        """Persist a new status on a single order item."""


class ISellerOrderRepository(ABC):
    """Repository contract for seller sub-orders."""

    @abstractmethod
    def get_by_order(self, order_id: str) -> List[SellerOrder]:
        """All seller sub-orders of an order."""

    @abstractmethod
    def update_status(self, seller_order: SellerOrder, new_status: str) -> SellerOrder:
        """Persist a new status on a seller sub-order."""
