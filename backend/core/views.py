"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Extracting parameters from the request.
2. Calling the service with the authenticated user and parameters.
3. Serialising the result and returning an HTTP ``Response``.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from drf_spectacular.utils import OpenApiResponse, extend_schema

from .serializers import (
    BulkResultSerializer,
    NotificationSerializer,
    UnreadCountSerializer,
)
from .services import NotificationInboxService


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — the authenticated user's inbox.

    Endpoints
    ---------
    GET    /api/core/notifications/               → list notifications (newest first)
    GET    /api/core/notifications/unread-count/  → number of unread notifications
    POST   /api/core/notifications/{id}/read/     → mark a notification as read
    POST   /api/core/notifications/read-all/      → mark all as read
    DELETE /api/core/notifications/{id}/          → delete one notification
    DELETE /api/core/notifications/clear-all/     → delete all notifications

    **Authentication**: Required (``IsAuthenticated``).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List notifications",
        description="Return the most recent notifications for the authenticated user.",
        responses={200: OpenApiResponse(response=NotificationSerializer(many=True), description="Notification list.")},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        service = NotificationInboxService(user=request.user)
        serializer = NotificationSerializer(service.list_notifications(), many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete notification",
        request=None,
        responses={204: OpenApiResponse(description="Deleted."), 404: OpenApiResponse(description="Not found.")},
        tags=["Notifications"],
    )
    def destroy(self, request: Request, pk: int = None) -> Response:
        NotificationInboxService(user=request.user).delete(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="unread-count")
    @extend_schema(
        summary="Unread notification count",
        responses={200: UnreadCountSerializer},
        tags=["Notifications"],
    )
    def unread_count(self, request: Request) -> Response:
        count = NotificationInboxService(user=request.user).unread_count()
        return Response({"count": count}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="read")
    @extend_schema(
        summary="Mark notification as read",
        description="Mark a single notification as read by ID.",
        request=None,
        responses={200: OpenApiResponse(response=NotificationSerializer, description="Updated notification.")},
        tags=["Notifications"],
    )
    def mark_as_read(self, request: Request, pk: int = None) -> Response:
        """
        Mark a single notification as read.

        **POST /api/core/notifications/{id}/read/**

        Returns 404 when the notification does not exist or belongs to
        another user.
        """
        service = NotificationInboxService(user=request.user)
        notification = service.mark_as_read(notification_id=pk)
        serializer = NotificationSerializer(notification)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="read-all")
    @extend_schema(
        summary="Mark all notifications as read",
        request=None,
        responses={200: BulkResultSerializer},
        tags=["Notifications"],
    )
    def mark_all_as_read(self, request: Request) -> Response:
        count = NotificationInboxService(user=request.user).mark_all_as_read()
        return Response({"count": count}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["delete"], url_path="clear-all")
    @extend_schema(
        summary="Delete all notifications",
        request=None,
        responses={200: BulkResultSerializer},
        tags=["Notifications"],
    )
    def clear_all(self, request: Request) -> Response:
        count = NotificationInboxService(user=request.user).clear_all()
        return Response({"count": count}, status=status.HTTP_200_OK)
