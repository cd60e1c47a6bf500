"""URL configuration for the REST API."""

from django.urls import path

from . import views

app_name = "api"

urlpatterns = [
    path("health/", views.health_check, name="health"),
    path("v1/grid/", views.GridView.as_view(), name="grid"),
    path("v1/workstations/", views.WorkstationListView.as_view(), name="workstations"),
    path("v1/assignments/", views.AssignmentView.as_view(), name="assignments"),
    path("v1/departments/<int:pk>/order/", views.DepartmentOrderView.as_view(), name="department_order"),
]
