"""Notification API views.

Every endpoint is scoped to the authenticated user: a notification that
belongs to someone else answers 404, exactly like a missing one.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.notifications.delivery import get_realtime_publisher
from modules.notifications.exceptions import NotificationNotFound
from modules.notifications.filters import NotificationFilter
from modules.notifications.models import Notification
from modules.notifications.repositories.django_repository import (
    NotificationDjangoRepository,
)
from modules.notifications.serializers import NotificationSerializer
from modules.notifications.services import NotificationService


class NotificationViewSet(GenericViewSet):
    queryset = Notification.objects.none()
    serializer_class = NotificationSerializer
    filterset_class = NotificationFilter
    filter_backends = [DjangoFilterBackend]
    throttle_scope = "notifications"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._repo = NotificationDjangoRepository()
        self._service = NotificationService(
            repository=self._repo,
            publisher=get_realtime_publisher(),
        )

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Notification.objects.none()
        return self._repo.list_for_recipient(self.request.user.pk)

    def list(self, request: Request) -> Response:
        """GET /api/v1/notifications/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=["post"])
    def read(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/notifications/{pk}/read/"""
        try:
            notification = self._service.mark_as_read(pk, request.user.pk)
        except NotificationNotFound:
            return Response(
                {"detail": "Notification not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request: Request) -> Response:
        """POST /api/v1/notifications/read-all/"""
        updated = self._service.mark_all_as_read(request.user.pk)
        return Response({"updated": updated})
