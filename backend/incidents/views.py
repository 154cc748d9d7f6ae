"""
Incidents app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the lifecycle or query service.
    3. Serialize the result and return a DRF ``Response``.

The transition endpoints (assign / report / review) skip step 1 and hand
the raw body to the service, which checks role and ownership before it
looks at the payload.

ViewSets
--------
- ``IncidentViewSet`` — CRUD plus lifecycle ``@action`` endpoints.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from audit.services import client_info

from .serializers import (
    AssignInvestigatorSerializer,
    EvidenceCreateSerializer,
    IncidentDetailSerializer,
    IncidentEvidenceSerializer,
    IncidentFilterSerializer,
    IncidentListSerializer,
    IncidentNoteSerializer,
    IncidentPageSerializer,
    IncidentWriteSerializer,
    NoteCreateSerializer,
    ReviewReportSerializer,
    SubmitReportSerializer,
    TimelineEntrySerializer,
)
from .services import IncidentLifecycleService, IncidentQueryService

_CONFLICT = OpenApiResponse(description="Illegal transition or concurrent modification.")
_FORBIDDEN = OpenApiResponse(description="Role or ownership check failed.")
_NOT_FOUND = OpenApiResponse(description="Incident (or a referenced object) not found.")


class IncidentViewSet(viewsets.ViewSet):
    """
    **Incident API**

    Endpoints
    ---------
    GET/POST          /api/incidents/                      → list / create
    GET/PATCH/DELETE  /api/incidents/{id}/                 → read / update / delete
    POST              /api/incidents/{id}/assign/          → assign investigator (admin)
    POST              /api/incidents/{id}/report/          → submit report (assigned investigator)
    POST              /api/incidents/{id}/review/          → review report (officer)
    GET/POST          /api/incidents/{id}/notes/           → list / add notes
    POST              /api/incidents/{id}/evidence/        → add evidence
    GET               /api/incidents/{id}/timeline/        → timeline
    GET               /api/incidents/vehicle/{vehicle_id}/ → incidents involving a vehicle
    GET               /api/incidents/user/{user_id}/       → incidents reported by a user
    """

    permission_classes = [IsAuthenticated]

    def _lifecycle(self) -> IncidentLifecycleService:
        return IncidentLifecycleService(client=client_info(self.request))

    def _detail(self, request: Request, incident) -> dict:
        return IncidentDetailSerializer(incident, context={"request": request}).data

    # ── CRUD ─────────────────────────────────────────────────────────

    @extend_schema(
        summary="List incidents",
        description=(
            "Newest first. Staff see every incident; other users only the "
            "incidents they reported."
        ),
        parameters=[IncidentFilterSerializer],
        responses={200: IncidentPageSerializer},
        tags=["Incidents"],
    )
    def list(self, request: Request) -> Response:
        filters = IncidentFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        params = dict(filters.validated_data)
        page = params.pop("page")
        limit = params.pop("limit")
        items, total = IncidentQueryService().list_incidents(
            request.user, filters=params, page=page, limit=limit,
        )
        return Response(
            {
                "count": total,
                "page": page,
                "limit": limit,
                "results": IncidentListSerializer(items, many=True).data,
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        summary="Report an incident",
        request=IncidentWriteSerializer,
        responses={
            201: IncidentDetailSerializer,
            400: OpenApiResponse(description="Invalid payload."),
            404: _NOT_FOUND,
            503: OpenApiResponse(description="Incident number could not be allocated."),
        },
        tags=["Incidents"],
    )
    def create(self, request: Request) -> Response:
        serializer = IncidentWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        incident = self._lifecycle().create_incident(request.user, serializer.validated_data)
        return Response(self._detail(request, incident), status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve an incident",
        responses={200: IncidentDetailSerializer, 403: _FORBIDDEN, 404: _NOT_FOUND},
        tags=["Incidents"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        incident = self._lifecycle().get_incident(pk, request.user)
        return Response(self._detail(request, incident), status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update incident details",
        description="Partial update of descriptive fields. Status cannot be changed here.",
        request=IncidentWriteSerializer,
        responses={200: IncidentDetailSerializer, 400: OpenApiResponse(description="Invalid payload."),
                   403: _FORBIDDEN, 404: _NOT_FOUND},
        tags=["Incidents"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        serializer = IncidentWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        incident = self._lifecycle().update_incident(pk, request.user, serializer.validated_data)
        return Response(self._detail(request, incident), status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete an incident",
        responses={204: OpenApiResponse(description="Deleted."), 403: _FORBIDDEN, 404: _NOT_FOUND},
        tags=["Incidents"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        self._lifecycle().delete_incident(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ── Lifecycle @actions ───────────────────────────────────────────

    @action(detail=True, methods=["post"], url_path="assign")
    @extend_schema(
        summary="Assign an investigator",
        request=AssignInvestigatorSerializer,
        responses={200: IncidentDetailSerializer, 400: OpenApiResponse(description="Invalid payload."),
                   403: _FORBIDDEN, 404: _NOT_FOUND, 409: _CONFLICT},
        tags=["Incidents – Lifecycle"],
    )
    def assign(self, request: Request, pk: str = None) -> Response:
        incident = self._lifecycle().assign_investigator(pk, request.user, request.data)
        return Response(self._detail(request, incident), status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="report")
    @extend_schema(
        summary="Submit investigation report",
        description="Only the investigator assigned to the case may submit.",
        request=SubmitReportSerializer,
        responses={200: IncidentDetailSerializer, 400: OpenApiResponse(description="Invalid payload."),
                   403: _FORBIDDEN, 404: _NOT_FOUND, 409: _CONFLICT},
        tags=["Incidents – Lifecycle"],
    )
    def report(self, request: Request, pk: str = None) -> Response:
        incident = self._lifecycle().submit_report(pk, request.user, request.data)
        return Response(self._detail(request, incident), status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="review")
    @extend_schema(
        summary="Review investigation report",
        request=ReviewReportSerializer,
        responses={200: IncidentDetailSerializer, 400: OpenApiResponse(description="Invalid payload."),
                   403: _FORBIDDEN, 404: _NOT_FOUND, 409: _CONFLICT},
        tags=["Incidents – Lifecycle"],
    )
    def review(self, request: Request, pk: str = None) -> Response:
        incident = self._lifecycle().review_report(pk, request.user, request.data)
        return Response(self._detail(request, incident), status=status.HTTP_200_OK)

    # ── Sub-resources ────────────────────────────────────────────────

    @extend_schema(
        methods=["GET"],
        summary="List notes",
        description="Private notes are only listed for their author and admins.",
        responses={200: IncidentNoteSerializer(many=True)},
        tags=["Incidents – Notes"],
    )
    @extend_schema(
        methods=["POST"],
        summary="Add a note",
        request=NoteCreateSerializer,
        responses={201: IncidentNoteSerializer, 403: _FORBIDDEN, 404: _NOT_FOUND},
        tags=["Incidents – Notes"],
    )
    @action(detail=True, methods=["get", "post"], url_path="notes")
    def notes(self, request: Request, pk: str = None) -> Response:
        lifecycle = self._lifecycle()
        if request.method == "GET":
            incident = lifecycle.get_incident(pk, request.user)
            notes = IncidentQueryService.visible_notes(incident, request.user)
            return Response(IncidentNoteSerializer(notes, many=True).data, status=status.HTTP_200_OK)

        serializer = NoteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        note = lifecycle.add_note(
            pk,
            request.user,
            content=serializer.validated_data["content"],
            is_private=serializer.validated_data["is_private"],
        )
        return Response(IncidentNoteSerializer(note).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="evidence")
    @extend_schema(
        summary="Add evidence",
        request=EvidenceCreateSerializer,
        responses={201: IncidentEvidenceSerializer, 403: _FORBIDDEN, 404: _NOT_FOUND},
        tags=["Incidents – Evidence"],
    )
    def evidence(self, request: Request, pk: str = None) -> Response:
        serializer = EvidenceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        evidence = self._lifecycle().add_evidence(pk, request.user, serializer.validated_data)
        return Response(IncidentEvidenceSerializer(evidence).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="timeline")
    @extend_schema(
        summary="Incident timeline",
        responses={200: TimelineEntrySerializer(many=True), 403: _FORBIDDEN, 404: _NOT_FOUND},
        tags=["Incidents"],
    )
    def timeline(self, request: Request, pk: str = None) -> Response:
        incident = self._lifecycle().get_incident(pk, request.user)
        entries = IncidentQueryService.timeline(incident)
        return Response(TimelineEntrySerializer(entries, many=True).data, status=status.HTTP_200_OK)

    # ── Lookups ──────────────────────────────────────────────────────

    @action(detail=False, methods=["get"], url_path=r"vehicle/(?P<vehicle_id>\d+)")
    @extend_schema(
        summary="Incidents involving a vehicle",
        parameters=[OpenApiParameter("vehicle_id", int, OpenApiParameter.PATH)],
        responses={200: IncidentListSerializer(many=True)},
        tags=["Incidents"],
    )
    def by_vehicle(self, request: Request, vehicle_id: str = None) -> Response:
        incidents = IncidentQueryService().incidents_by_vehicle(vehicle_id, request.user)
        return Response(IncidentListSerializer(incidents, many=True).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path=r"user/(?P<user_id>\d+)")
    @extend_schema(
        summary="Incidents reported by a user",
        description="Admins may list anyone's incidents; other users only their own.",
        parameters=[OpenApiParameter("user_id", int, OpenApiParameter.PATH)],
        responses={200: IncidentListSerializer(many=True), 403: _FORBIDDEN},
        tags=["Incidents"],
    )
    def by_reporter(self, request: Request, user_id: str = None) -> Response:
        incidents = IncidentQueryService().incidents_by_reporter(user_id, request.user)
        return Response(IncidentListSerializer(incidents, many=True).data, status=status.HTTP_200_OK)
