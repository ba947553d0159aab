"""Product and ProductVariant models with stock control.

Business rules implemented:
- SKU is unique and normalised to uppercase.
- Price must be greater than zero.
- Stock can never be negative (``PositiveIntegerField``).
- A variant with ``stock = NULL`` does not track its own stock; the parent
  product's stock is used instead.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Product(BaseModel):
    """Catalog product owned by a single seller."""

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="products",
    )
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    stock = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class ProductVariant(BaseModel):
    """Size/colour variant of a product, optionally with its own stock."""

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="variants",
    )
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    stock = models.PositiveIntegerField(null=True, blank=True, default=None)

    class Meta:
        db_table = "product_variants"
        ordering = ["sku"]

    @property
    def tracks_stock(self) -> bool:
        return self.stock is not None

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} ({self.product_id})"
