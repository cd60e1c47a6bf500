"""
Tests for the REST API.

Uses the shared fixtures from the root conftest.py.
"""

from unittest.mock import patch

import pytest
from django.urls import reverse
from rest_framework import status

from apps.razpored.exceptions import StoreUnavailableError
from apps.razpored.models import Assignment, ScheduleEntry
from apps.razpored.store import DomainStore
from apps.razpored.sync import current_revision

pytestmark = pytest.mark.django_db


def assignment_payload(workstation, staff_member, day="2024-03-05", department=None):
    payload = {"date": day, "workstation": workstation.pk, "staff_member": staff_member.pk}
    if department is not None:
        payload["department"] = department.pk
    return payload


# =============================================================================
# HEALTH & AUTHENTICATION
# =============================================================================


def test_health_check_is_public(api_client):
    response = api_client.get(reverse("api:health"))

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "healthy", "service": "razpored"}


def test_grid_requires_authentication(api_client):
    response = api_client.get(reverse("api:grid"), {"year": 2024, "month": 3})

    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_session_login_is_accepted(client, user, department):
    client.login(username="testuser", password="testpass123")

    response = client.get(reverse("api:workstations"))

    assert response.status_code == status.HTTP_200_OK


# =============================================================================
# GRID
# =============================================================================


def test_grid_month(authenticated_api_client, department, workstations, staff_member):
    authenticated_api_client.post(
        reverse("api:assignments"),
        assignment_payload(workstations[0], staff_member, department=department),
        format="json",
    )

    response = authenticated_api_client.get(
        reverse("api:grid"),
        {"year": 2024, "month": 3, "department": department.pk},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["view"] == "month"
    assert data["department"] == department.pk
    assert len(data["weeks"]) == 1
    assert len(data["weeks"][0]) == 31
    assert [ws["name"] for ws in data["workstations"]] == ["OR-1", "OR-2", "Ward"]
    assert data["cells"] == [
        {
            "date": "2024-03-05",
            "workstation": workstations[0].pk,
            "entry": ScheduleEntry.objects.get().pk,
            "staff": [{"id": staff_member.pk, "short_code": "JK"}],
        }
    ]
    assert data["revision"] >= 1


def test_grid_revision_is_read_before_the_load(
    authenticated_api_client, department, workstations, staff_member, another_staff_member
):
    url = reverse("api:assignments")
    authenticated_api_client.post(
        url, assignment_payload(workstations[0], staff_member, department=department), format="json"
    )
    entry = ScheduleEntry.objects.get()
    load_entries = DomainStore.list_schedule_entries

    def load_then_write(store, *args, **kwargs):
        rows = load_entries(store, *args, **kwargs)
        Assignment.objects.create(entry=entry, staff_member=another_staff_member)
        return rows

    with patch.object(DomainStore, "list_schedule_entries", autospec=True, side_effect=load_then_write):
        response = authenticated_api_client.get(
            reverse("api:grid"), {"year": 2024, "month": 3, "department": department.pk}
        )

    data = response.json()
    assert [m["short_code"] for m in data["cells"][0]["staff"]] == ["JK"]
    assert data["revision"] < current_revision()


def test_grid_week(authenticated_api_client, department, workstations):
    response = authenticated_api_client.get(
        reverse("api:grid"),
        {"year": 2024, "month": 3, "view": "week"},
    )

    assert response.status_code == status.HTTP_200_OK
    weeks = response.json()["weeks"]
    assert len(weeks) == 5
    assert weeks[0][0] == "2024-02-26"
    assert weeks[-1][-1] == "2024-03-31"


def test_grid_leap_february(authenticated_api_client):
    response = authenticated_api_client.get(reverse("api:grid"), {"year": 2024, "month": 2})

    assert response.json()["weeks"][0][-1] == "2024-02-29"


def test_grid_rejects_invalid_month(authenticated_api_client):
    response = authenticated_api_client.get(reverse("api:grid"), {"year": 2024, "month": 13})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


# =============================================================================
# WORKSTATIONS
# =============================================================================


def test_workstations_in_department_order(authenticated_api_client, department, workstations, clinic_workstation):
    response = authenticated_api_client.get(reverse("api:workstations"), {"department": department.pk})

    data = response.json()
    assert data["count"] == 3
    assert [ws["order_index"] for ws in data["results"]] == [0, 1, 2]


def test_workstations_unscoped(authenticated_api_client, workstations, clinic_workstation):
    response = authenticated_api_client.get(reverse("api:workstations"))

    names = [ws["name"] for ws in response.json()["results"]]
    assert names == ["OR-1", "OR-2", "Ward", "Ambulanta"]


# =============================================================================
# ASSIGNMENTS
# =============================================================================


def test_add_assignment(authenticated_api_client, department, workstations, staff_member):
    response = authenticated_api_client.post(
        reverse("api:assignments"),
        assignment_payload(workstations[0], staff_member, department=department),
        format="json",
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["staff"] == [{"id": staff_member.pk, "short_code": "JK"}]
    assert ScheduleEntry.objects.get().department == department


def test_add_assignment_twice(authenticated_api_client, workstations, staff_member):
    url = reverse("api:assignments")
    payload = assignment_payload(workstations[0], staff_member)

    authenticated_api_client.post(url, payload, format="json")
    response = authenticated_api_client.post(url, payload, format="json")

    assert response.status_code == status.HTTP_201_CREATED
    assert len(response.json()["staff"]) == 1
    assert Assignment.objects.count() == 1


def test_two_staff_members_share_one_entry(
    authenticated_api_client, workstations, staff_member, another_staff_member
):
    url = reverse("api:assignments")

    authenticated_api_client.post(url, assignment_payload(workstations[0], staff_member), format="json")
    response = authenticated_api_client.post(
        url, assignment_payload(workstations[0], another_staff_member), format="json"
    )

    assert [m["short_code"] for m in response.json()["staff"]] == ["JK", "MN"]
    assert ScheduleEntry.objects.count() == 1


def test_remove_assignment(authenticated_api_client, workstations, staff_member):
    url = reverse("api:assignments")
    payload = assignment_payload(workstations[0], staff_member)
    authenticated_api_client.post(url, payload, format="json")

    response = authenticated_api_client.delete(url, payload, format="json")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["staff"] == []
    assert not Assignment.objects.exists()


def test_remove_from_empty_cell(authenticated_api_client, workstations, staff_member):
    response = authenticated_api_client.delete(
        reverse("api:assignments"),
        assignment_payload(workstations[0], staff_member),
        format="json",
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "NotFoundError"


def test_add_unknown_staff_member(authenticated_api_client, workstations):
    response = authenticated_api_client.post(
        reverse("api:assignments"),
        {"date": "2024-03-05", "workstation": workstations[0].pk, "staff_member": 9999},
        format="json",
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert not ScheduleEntry.objects.exists()


def test_add_unknown_workstation(authenticated_api_client, staff_member):
    response = authenticated_api_client.post(
        reverse("api:assignments"),
        {"date": "2024-03-05", "workstation": 9999, "staff_member": staff_member.pk},
        format="json",
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_add_missing_fields(authenticated_api_client):
    response = authenticated_api_client.post(reverse("api:assignments"), {}, format="json")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert set(response.json()) == {"date", "workstation", "staff_member"}


def test_store_unavailable(authenticated_api_client, workstations, staff_member):
    with patch.object(
        DomainStore,
        "insert_assignment",
        side_effect=StoreUnavailableError("Podatkovna baza trenutno ni dosegljiva"),
    ):
        response = authenticated_api_client.post(
            reverse("api:assignments"),
            assignment_payload(workstations[0], staff_member),
            format="json",
        )

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["message"] == "Podatkovna baza trenutno ni dosegljiva"
    assert not Assignment.objects.exists()


# =============================================================================
# WORKSTATION ORDER
# =============================================================================


def test_reorder(authenticated_api_client, department, workstations):
    w1, w2, w3 = workstations

    response = authenticated_api_client.put(
        reverse("api:department_order", args=[department.pk]),
        {"workstations": [w3.pk, w1.pk, w2.pk]},
        format="json",
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["workstations"] == [w3.pk, w1.pk, w2.pk]
    listed = authenticated_api_client.get(reverse("api:workstations"), {"department": department.pk})
    assert [ws["id"] for ws in listed.json()["results"]] == [w3.pk, w1.pk, w2.pk]


def test_reorder_foreign_workstation(authenticated_api_client, department, workstations, clinic_workstation):
    response = authenticated_api_client.put(
        reverse("api:department_order", args=[department.pk]),
        {"workstations": [clinic_workstation.pk]},
        format="json",
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_reorder_duplicate_ids(authenticated_api_client, department, workstations):
    response = authenticated_api_client.put(
        reverse("api:department_order", args=[department.pk]),
        {"workstations": [workstations[0].pk, workstations[0].pk]},
        format="json",
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "ValidationError"


def test_reorder_unknown_department(authenticated_api_client):
    response = authenticated_api_client.put(
        reverse("api:department_order", args=[9999]),
        {"workstations": []},
        format="json",
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
