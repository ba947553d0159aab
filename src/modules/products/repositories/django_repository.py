"""Django ORM implementation of the Product repository.

Look-ups follow the Null Object pattern (return ``None`` for missing or
malformed IDs).  Stock increments use ``F()`` expressions so concurrent
restorations never lose an update.
"""

from __future__ import annotations

from typing import Optional

import structlog

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from modules.products.exceptions import ProductNotFound, ProductVariantNotFound
from modules.products.models import Product, ProductVariant
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), sku=entity.sku)
        return entity

    def get_variant(self, id: str) -> Optional[ProductVariant]:
        try:
            return ProductVariant.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def increment_product_stock(self, id: str, quantity: int) -> int:
        updated = Product.objects.filter(id=id).update(
            stock=F("stock") + quantity
        )
        if not updated:
            raise ProductNotFound(f"Product {id} not found.")
        return Product.objects.filter(id=id).values_list("stock", flat=True).get()

    @transaction.atomic
    def increment_variant_stock(self, id: str, quantity: int) -> int:
        updated = ProductVariant.objects.filter(id=id, stock__isnull=False).update(
            stock=F("stock") + quantity
        )
        if not updated:
            raise ProductVariantNotFound(
                f"Variant {id} not found or does not track stock."
            )
        return (
            ProductVariant.objects.filter(id=id).values_list("stock", flat=True).get()
        )
