from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.notifications.delivery import InMemoryRealtimePublisher
from modules.notifications.repositories.django_repository import (
    NotificationDjangoRepository,
)
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, SellerOrder
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    SellerOrderDjangoRepository,
)
from modules.orders.services import OrderLifecycleService
from modules.orders.side_effects import OrderSideEffectDispatcher
from modules.products.models import Product, ProductVariant

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()


@pytest.fixture(autouse=True)
def _reset_realtime_publisher():
    InMemoryRealtimePublisher.reset()
    yield
    InMemoryRealtimePublisher.reset()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def buyer():
    return User.objects.create_user(
        username="buyer", email="buyer@example.com", password="testpass123"
    )


@pytest.fixture()
def seller():
    return User.objects.create_user(
        username="seller", email="seller@example.com", password="testpass123"
    )


@pytest.fixture()
def other_seller():
    return User.objects.create_user(
        username="other_seller",
        email="other.seller@example.com",
        password="testpass123",
    )


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="admin",
        email="admin@example.com",
        password="testpass123",
        is_staff=True,
    )


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@pytest.fixture()
def product(seller):
    return Product.objects.create(
        seller=seller, sku="TSHIRT-01", name="Cotton T-Shirt", price=Decimal("499.00"), stock=10
    )


@pytest.fixture()
def other_product(other_seller):
    return Product.objects.create(
        seller=other_seller, sku="MUG-01", name="Ceramic Mug", price=Decimal("199.00"), stock=5
    )


@pytest.fixture()
def variant(product):
    return ProductVariant.objects.create(
        product=product, sku="TSHIRT-01-M", name="Medium", stock=3
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_order(buyer):
    """Build an order with one seller sub-order per seller in *lines*.

    Each line is ``(product, quantity)`` or ``(product, quantity, variant)``.
    All rows start at *status*.
    """

    def _make(
        lines: Iterable[tuple],
        status: str = OrderStatus.PENDING,
        wallet_coins_used: int = 0,
        user=None,
    ) -> Order:
        order = Order.objects.create(
            user=user or buyer,
            status=status,
            wallet_coins_used=wallet_coins_used,
            shipping_address={"city": "Pune", "pincode": "411001"},
        )
        seller_orders: dict = {}
        total = Decimal("0.00")
        for line in lines:
            line_product, quantity = line[0], line[1]
            line_variant: Optional[ProductVariant] = line[2] if len(line) > 2 else None
            seller_order = seller_orders.get(line_product.seller_id)
            if seller_order is None:
                seller_order = SellerOrder.objects.create(
                    order=order, seller_id=line_product.seller_id, status=status
                )
                seller_orders[line_product.seller_id] = seller_order
            item = OrderItem.objects.create(
                order=order,
                seller_order=seller_order,
                product=line_product,
                variant=line_variant,
                quantity=quantity,
                unit_price=line_product.price,
                status=status,
            )
            seller_order.subtotal += item.subtotal
            total += item.subtotal
        for seller_order in seller_orders.values():
            seller_order.save(update_fields=["subtotal"])
        order.total_amount = total
        order.save(update_fields=["total_amount"])
        return order

    return _make


@pytest.fixture()
def order(make_order, product):
    return make_order([(product, 2)])


@pytest.fixture()
def lifecycle_service():
    return OrderLifecycleService(
        order_repository=OrderDjangoRepository(),
        seller_order_repository=SellerOrderDjangoRepository(),
        dispatcher=OrderSideEffectDispatcher(
            recipient_repository=NotificationDjangoRepository()
        ),
    )


@pytest.fixture()
def realtime_messages():
    return InMemoryRealtimePublisher.sent
