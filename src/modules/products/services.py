"""Stock service: restores inventory for cancelled orders.

Each order item goes back to its variant when the item names a variant
that tracks its own stock, otherwise to the parent product.  Order-level
restoration is continue-on-error: a failing item is logged and the
remaining items are still restored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional

import structlog

from modules.products.exceptions import ProductNotFound, ProductVariantNotFound

if TYPE_CHECKING:
    from modules.orders.models import OrderItem
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockRestoration:
    """Outcome of restoring a single item."""

    item_id: str
    target: str
    target_id: str
    quantity: int
    new_stock: int


@dataclass
class StockRestorationReport:
    restored: List[StockRestoration] = field(default_factory=list)
    failed_item_ids: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_item_ids


class StockService:
    """Receives an ``IProductRepository`` via constructor injection (DIP)."""

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    def restore_item_stock(self, item: OrderItem) -> StockRestoration:
        """Give *item.quantity* units back to its variant or product.

        Raises:
            ProductVariantNotFound: the item's variant no longer exists.
            ProductNotFound: the item's product no longer exists.
        """
        log = logger.bind(item_id=str(item.id), quantity=item.quantity)

        variant_id: Optional[str] = str(item.variant_id) if item.variant_id else None
        if variant_id:
            variant = self._repo.get_variant(variant_id)
            if variant is None:
                raise ProductVariantNotFound(f"Variant {variant_id} not found.")
            if variant.tracks_stock:
                new_stock = self._repo.increment_variant_stock(
                    variant_id, item.quantity
                )
                log.info(
                    "stock.variant_restored",
                    variant_id=variant_id,
                    new_stock=new_stock,
                )
                return StockRestoration(
                    item_id=str(item.id),
                    target="variant",
                    target_id=variant_id,
                    quantity=item.quantity,
                    new_stock=new_stock,
                )

        product_id = str(item.product_id)
        if self._repo.get_by_id(product_id) is None:
            raise ProductNotFound(f"Product {product_id} not found.")
        new_stock = self._repo.increment_product_stock(product_id, item.quantity)
        log.info("stock.product_restored", product_id=product_id, new_stock=new_stock)
        return StockRestoration(
            item_id=str(item.id),
            target="product",
            target_id=product_id,
            quantity=item.quantity,
            new_stock=new_stock,
        )

    def restore_order_stock(
        self, order_id: str, items: Iterable[OrderItem]
    ) -> StockRestorationReport:
        """Restore stock for every item, continuing past individual failures."""
        log = logger.bind(order_id=order_id)
        report = StockRestorationReport()

        for item in items:
            try:
                report.restored.append(self.restore_item_stock(item))
            except Exception:
                report.failed_item_ids.append(str(item.id))
                log.exception("stock.item_restore_failed", item_id=str(item.id))

        log.info(
            "stock.order_restore_completed",
            restored=len(report.restored),
            failed=len(report.failed_item_ids),
        )
        return report
