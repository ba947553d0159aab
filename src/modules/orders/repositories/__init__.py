"""Order repositories package."""

from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    SellerOrderDjangoRepository,
)
from modules.orders.repositories.interfaces import (
    IOrderRepository,
    ISellerOrderRepository,
)

__all__ = [
    "IOrderRepository",
    "ISellerOrderRepository",
    "OrderDjangoRepository",
    "SellerOrderDjangoRepository",
]
