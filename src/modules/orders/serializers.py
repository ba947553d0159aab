"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.dtos import StatusHistoryDTO
from modules.orders.models import Order, OrderItem, SellerOrder

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class ChangeStatusSerializer(serializers.Serializer):
    """Validates an order status change payload."""

    status = serializers.CharField(max_length=20)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class ChangeItemStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "seller_order_id",
            "product_id",
            "variant_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "subtotal",
            "status",
        ]
        read_only_fields = fields


class SellerOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = SellerOrder
        fields = ["id", "seller_id", "status", "subtotal"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with items, seller orders and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    seller_orders = SellerOrderSerializer(many=True, read_only=True)
    status_history = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "status",
            "total_amount",
            "payment_method",
            "wallet_coins_used",
            "shipping_address",
            "cancellation_reason",
            "cancelled_at",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "seller_orders",
            "status_history",
        ]
        read_only_fields = fields

    def get_status_history(self, order: Order) -> list[dict]:
        return [
            StatusHistoryDTO.from_entity(history).model_dump(mode="json")
            for history in order.status_history.all()
        ]
