"""
Pytest configuration and shared fixtures for the Razpored project.

This module provides reusable fixtures for testing Django models, views, and API endpoints.
Fixtures are designed to work with pytest-django.
"""

import pytest

from django.contrib.auth import get_user_model
from django.test import Client

from rest_framework.test import APIClient


User = get_user_model()


# =============================================================================
# USER FIXTURES
# =============================================================================


@pytest.fixture
def user(db):
    """Create and return a standard test user."""
    return User.objects.create_user(
        username="testuser",
        password="testpass123",
        email="test@example.com",
    )


@pytest.fixture
def admin_user(db):
    """Create and return an admin/superuser."""
    return User.objects.create_superuser(
        username="admin",
        password="adminpass123",
        email="admin@example.com",
    )


# =============================================================================
# CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def client():
    """Provide a Django test client."""
    return Client()


@pytest.fixture
def authenticated_client(client, user):
    """Provide a Django test client logged in as the test user."""
    client.login(username="testuser", password="testpass123")
    return client


@pytest.fixture
def api_client():
    """Provide a DRF API test client."""
    return APIClient()


@pytest.fixture
def authenticated_api_client(api_client, user):
    """Provide an API client authenticated as the test user."""
    api_client.force_authenticate(user=user)
    return api_client


# =============================================================================
# MODEL FIXTURES
# =============================================================================


@pytest.fixture
def department(db):
    """Create and return the Surgery department."""
    from apps.razpored.models import Department

    return Department.objects.create(name="Kirurgija")


@pytest.fixture
def other_department(db):
    """Create and return a second department."""
    from apps.razpored.models import Department

    return Department.objects.create(name="Interna")


@pytest.fixture
def workstations(db, department):
    """Create OR-1, OR-2 and Ward linked to the department, in that order."""
    from apps.razpored.models import DepartmentWorkstation, Workstation

    result = []
    for index, name in enumerate(["OR-1", "OR-2", "Ward"]):
        workstation = Workstation.objects.create(name=name)
        DepartmentWorkstation.objects.create(
            department=department,
            workstation=workstation,
            sort_index=index,
        )
        result.append(workstation)
    return result


@pytest.fixture
def clinic_workstation(db):
    """Create and return a workstation that belongs to no department."""
    from apps.razpored.models import Workstation

    return Workstation.objects.create(name="Ambulanta")


@pytest.fixture
def staff_member(db, department):
    """Create and return staff member JK of the department."""
    from apps.razpored.models import StaffMember

    return StaffMember.objects.create(
        first_name="Janez",
        last_name="Kranjec",
        short_code="JK",
        department=department,
    )


@pytest.fixture
def another_staff_member(db, department):
    """Create and return staff member MN of the department."""
    from apps.razpored.models import StaffMember

    return StaffMember.objects.create(
        first_name="Maja",
        last_name="Novak",
        short_code="MN",
        department=department,
    )
