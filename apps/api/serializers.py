"""
Serializers for the REST API.

Input serializers validate query and body parameters; output serializers
render the grid engine's value objects (plain dataclasses, not models).
"""

from rest_framework import serializers

from apps.razpored.grid import View


# =============================================================================
# INPUT
# =============================================================================


class GridQuerySerializer(serializers.Serializer):
    """Query parameters of GET /api/v1/grid/."""

    year = serializers.IntegerField(min_value=1, max_value=9999)
    month = serializers.IntegerField(min_value=1, max_value=12)
    view = serializers.ChoiceField(choices=[v.value for v in View], default=View.MONTH.value)
    department = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class WorkstationQuerySerializer(serializers.Serializer):
    department = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class AssignmentInputSerializer(serializers.Serializer):
    """Body of POST/DELETE /api/v1/assignments/."""

    date = serializers.DateField()
    workstation = serializers.IntegerField(min_value=1)
    staff_member = serializers.IntegerField(min_value=1)
    department = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class WorkstationOrderSerializer(serializers.Serializer):
    """Body of PUT /api/v1/departments/<pk>/order/."""

    workstations = serializers.ListField(child=serializers.IntegerField(min_value=1))


# =============================================================================
# OUTPUT
# =============================================================================


class StaffRefSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    short_code = serializers.CharField()


class WorkstationRowSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    order_index = serializers.IntegerField(allow_null=True)


class CellSerializer(serializers.Serializer):
    """One non-empty cell of the grid."""

    date = serializers.DateField(source="key.day")
    workstation = serializers.IntegerField(source="key.workstation_id")
    entry = serializers.IntegerField(source="record.entry_id", allow_null=True)
    staff = StaffRefSerializer(source="record.staff", many=True)
