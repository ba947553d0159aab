"""Order API views.

Exposes the ``OrderLifecycleService`` via HTTP using a DRF ViewSet.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.

Authorisation: staff may read and change any order.  A seller may read
an order that contains one of their seller sub-orders and change the
status of the items of their own sub-order.  The buyer may read their
order.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.notifications.repositories.django_repository import (
    NotificationDjangoRepository,
)
from modules.orders.dtos import ChangeItemStatusDTO, ChangeStatusDTO
from modules.orders.exceptions import (
    BusinessRuleViolation,
    InvalidTransition,
    NotFound,
    OrderNotFound,
    PersistenceFailure,
)
from modules.orders.models import Order
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    SellerOrderDjangoRepository,
)
from modules.orders.serializers import (
    ChangeItemStatusSerializer,
    ChangeStatusSerializer,
    OrderSerializer,
)
from modules.orders.services import OrderLifecycleService
from modules.orders.side_effects import OrderSideEffectDispatcher


def _not_found(detail: str = "Order not found.") -> Response:
    return Response({"detail": detail}, status=status.HTTP_404_NOT_FOUND)


def _forbidden() -> Response:
    return Response(
        {"detail": "You do not have permission to change this order."},
        status=status.HTTP_403_FORBIDDEN,
    )


def _error_response(exc: Exception) -> Response:
    """Translate a lifecycle exception into its HTTP response."""
    if isinstance(exc, NotFound):
        return _not_found(str(exc))
    if isinstance(exc, InvalidTransition):
        return Response(
            {
                "detail": str(exc),
                "current_status": exc.current_status,
                "target_status": exc.target_status,
                "allowed_statuses": exc.allowed,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, BusinessRuleViolation):
        return Response(
            {
                "detail": str(exc),
                "current_status": exc.current_status,
                "target_status": exc.target_status,
            },
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, PersistenceFailure):
        return Response(
            {"detail": "The order could not be updated. Please retry."},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    raise exc


class OrderViewSet(GenericViewSet):
    """ViewSet for order lifecycle operations.

    Uses ``OrderLifecycleService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderLifecycleService(
            order_repository=OrderDjangoRepository(),
            seller_order_repository=SellerOrderDjangoRepository(),
            dispatcher=OrderSideEffectDispatcher(
                recipient_repository=NotificationDjangoRepository()
            ),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scope per action."""
        throttle_scope: str | None
        if self.action in {"change_status", "change_item_status"}:
            throttle_scope = "order_status"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Authorisation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _seller_order_for(user: Any, order: Order):
        return next(
            (so for so in order.seller_orders.all() if so.seller_id == user.pk),
            None,
        )

    def _can_view(self, user: Any, order: Order) -> bool:
        return (
            user.is_staff
            or order.user_id == user.pk
            or self._seller_order_for(user, order) is not None
        )

    @staticmethod
    def _can_change(user: Any, order: Order) -> bool:
        # Order-level status spans every seller; sellers move their own items.
        return user.is_staff

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()
        if not self._can_view(request.user, order):
            return _not_found()
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/status/"""
        serializer = ChangeStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = ChangeStatusDTO(**serializer.validated_data)
        except PydanticValidationError as exc:
            return Response(
                {"detail": exc.errors()[0]["msg"]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()
        if not self._can_change(request.user, order):
            return _forbidden()

        try:
            self._service.change_order_status(
                order_id=order.id,
                new_status=dto.status,
                notes=dto.notes,
                changed_by=request.user,
            )
        except (NotFound, InvalidTransition, BusinessRuleViolation, PersistenceFailure) as exc:
            return _error_response(exc)

        return Response(OrderSerializer(self._service.get_order(order.id)).data)

    @action(
        detail=True,
        methods=["patch"],
        url_path=r"items/(?P<item_id>[^/.]+)/status",
    )
    def change_item_status(
        self, request: Request, pk: str | None = None, item_id: str | None = None
    ) -> Response:
        """PATCH /api/v1/orders/{pk}/items/{item_id}/status/"""
        serializer = ChangeItemStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = ChangeItemStatusDTO(item_id=item_id, **serializer.validated_data)
        except PydanticValidationError:
            return _not_found("Order item not found.")

        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()

        item = next((i for i in order.items.all() if i.id == dto.item_id), None)
        if item is None:
            return _not_found("Order item not found.")
        if not request.user.is_staff:
            seller_order = self._seller_order_for(request.user, order)
            if seller_order is None or item.seller_order_id != seller_order.id:
                return _forbidden()

        try:
            self._service.change_order_item_status(
                order_id=order.id,
                order_item_id=dto.item_id,
                new_status=dto.status,
            )
        except (NotFound, InvalidTransition, BusinessRuleViolation, PersistenceFailure) as exc:
            return _error_response(exc)

        return Response(OrderSerializer(self._service.get_order(order.id)).data)
