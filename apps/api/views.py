"""REST API views."""

import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.razpored.exceptions import (
    ConflictError,
    DuplicateError,
    NotFoundError,
    RazporedError,
    StoreUnavailableError,
    ValidationError,
)
from apps.razpored.grid import Period
from apps.razpored.models import Department, Workstation
from apps.razpored.scope import parse_scope
from apps.razpored.session import GridSession
from apps.razpored.sync import current_revision

from .serializers import (
    AssignmentInputSerializer,
    CellSerializer,
    GridQuerySerializer,
    StaffRefSerializer,
    WorkstationOrderSerializer,
    WorkstationQuerySerializer,
    WorkstationRowSerializer,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    DuplicateError: status.HTTP_409_CONFLICT,
    StoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(exc: RazporedError) -> Response:
    """JSON error body with the status code matching the error class."""
    code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if code >= 500:
        logger.warning("API request failed: %s %s", exc.message, exc.details)
    return Response(exc.to_dict(), status=code)


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request: Request) -> Response:
    """Health check endpoint."""
    return Response({"status": "healthy", "service": "razpored"})


class GridView(APIView):
    """GET /api/v1/grid/ - Axes and non-empty cells of one month."""
    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        query = GridQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        try:
            period = Period(params["year"], params["month"], params["view"])
            revision = current_revision()
            with GridSession.open(period, params.get("department")) as session:
                axes = session.axes
                cells = [
                    {"key": key, "record": record}
                    for key, record in sorted(
                        session.cache, key=lambda item: (item[0].day, item[0].workstation_id)
                    )
                ]
                data = {
                    "year": period.year,
                    "month": period.month,
                    "view": period.view.value,
                    "department": axes.scope.department_id,
                    "weeks": [[day.isoformat() for day in week] for week in axes.weeks],
                    "workstations": WorkstationRowSerializer(axes.workstations, many=True).data,
                    "cells": CellSerializer(cells, many=True).data,
                    "revision": revision,
                }
        except RazporedError as exc:
            return error_response(exc)
        return Response(data)


class WorkstationListView(APIView):
    """GET /api/v1/workstations/ - Workstations in display order."""
    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        query = WorkstationQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        try:
            scope = parse_scope(query.validated_data.get("department"))
            rows = GridSession().grid_builder.workstations(scope)
        except RazporedError as exc:
            return error_response(exc)
        data = WorkstationRowSerializer(rows, many=True).data
        return Response({"count": len(data), "results": data})


class AssignmentView(APIView):
    """
    POST /api/v1/assignments/ - Assign a staff member to a cell.
    DELETE /api/v1/assignments/ - Remove a staff member from a cell.

    Both return the cell as it is after the change.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request: Request) -> Response:
        return self._mutate(request, add=True)

    def delete(self, request: Request) -> Response:
        return self._mutate(request, add=False)

    def _mutate(self, request: Request, add: bool) -> Response:
        payload = AssignmentInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        params = payload.validated_data
        day = params["date"]
        workstation = get_object_or_404(Workstation, pk=params["workstation"])

        try:
            with GridSession.open(Period(day.year, day.month), params.get("department")) as session:
                if add:
                    record = session.add_assignment(day, workstation.pk, params["staff_member"])
                else:
                    record = session.remove_assignment(day, workstation.pk, params["staff_member"])
        except RazporedError as exc:
            return error_response(exc)

        return Response(
            {
                "date": day.isoformat(),
                "workstation": workstation.pk,
                "entry": record.entry_id,
                "staff": StaffRefSerializer(record.staff, many=True).data,
            },
            status=status.HTTP_201_CREATED if add else status.HTTP_200_OK,
        )


class DepartmentOrderView(APIView):
    """PUT /api/v1/departments/<pk>/order/ - Store the workstation order."""
    permission_classes = [IsAuthenticated]

    def put(self, request: Request, pk: int) -> Response:
        department = get_object_or_404(Department, pk=pk)
        payload = WorkstationOrderSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        try:
            order = GridSession().reorder(department.pk, payload.validated_data["workstations"])
        except RazporedError as exc:
            return error_response(exc)
        return Response({"department": department.pk, "workstations": order})
