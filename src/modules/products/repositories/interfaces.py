"""Product repository interface.

Extends ``IRepository[Product]`` with the variant look-ups and atomic
stock increments needed to restore stock for cancelled orders.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product, ProductVariant


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate (product + variants)."""

    @abstractmethod
    def get_variant(self, id: str) -> Optional[ProductVariant]:
        """Retrieve a product variant by primary key."""

    @abstractmethod
    def increment_product_stock(self, id: str, quantity: int) -> int:
        """Atomically add *quantity* to a product's stock.

        Returns the new stock level.  Raises ``ProductNotFound`` if the
        product does not exist.
        """

    @abstractmethod
    def increment_variant_stock(self, id: str, quantity: int) -> int:
        """Atomically add *quantity* to a variant's stock.

        Returns the new stock level.  Raises ``ProductVariantNotFound`` if
        the variant does not exist.
        """
