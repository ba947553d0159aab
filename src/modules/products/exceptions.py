"""Product domain exceptions.

Raised by the stock service when a referenced catalog entry is missing.
The order side-effect tasks catch these per item and keep going.
"""

from __future__ import annotations


class ProductNotFound(Exception):
    """The requested product does not exist."""


class ProductVariantNotFound(Exception):
    """The requested product variant does not exist."""
