"""
Audit app views — read-only access to the audit trail.

The role check (administrators only) lives in
``AuditQueryService.query``; the view only validates parameters.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import AuditLogFilterSerializer, AuditLogSerializer
from .services import AuditQueryService


class AuditLogListView(APIView):
    """
    **GET /api/audit-logs/**

    Query parameters: ``user``, ``action``, ``resource_type``,
    ``resource_id``, ``start``, ``end``, ``limit``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Query the audit trail",
        description="Newest first, bounded by AUDIT_LOG_MAX_RESULTS. Administrators only.",
        parameters=[AuditLogFilterSerializer],
        responses={
            200: AuditLogSerializer(many=True),
            403: OpenApiResponse(description="Caller is not an administrator."),
        },
        tags=["Audit"],
    )
    def get(self, request: Request) -> Response:
        filters = AuditLogFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        data = filters.validated_data

        entries = AuditQueryService.query(
            request.user,
            user_id=data.get("user"),
            action=data.get("action"),
            resource_type=data.get("resource_type"),
            resource_id=data.get("resource_id"),
            start=data.get("start"),
            end=data.get("end"),
            limit=data.get("limit"),
        )
        return Response(AuditLogSerializer(entries, many=True).data, status=status.HTTP_200_OK)
