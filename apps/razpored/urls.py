"""URL configuration for the roster grid and its CRUD screens."""

from datetime import date

from django.urls import path, register_converter

from . import views


class IsoDateConverter:
    regex = r"\d{4}-\d{2}-\d{2}"

    def to_python(self, value: str) -> date:
        # ValueError makes the URL resolver treat the path as not matching
        return date.fromisoformat(value)

    def to_url(self, value) -> str:
        return value.isoformat() if isinstance(value, date) else value


register_converter(IsoDateConverter, "isodate")

app_name = "razpored"

urlpatterns = [
    path("", views.monthly_view, name="home"),
    path("mesecni/", views.monthly_view, name="monthly"),
    path("tedenski/", views.weekly_view, name="weekly"),
    path("razpored/vrstice/", views.grid_rows, name="grid_rows"),
    # Cell editing
    path("celica/<isodate:day>/<int:workstation_id>/", views.cell_editor, name="cell_editor"),
    path("celica/<isodate:day>/<int:workstation_id>/dodaj/", views.assignment_add, name="assignment_add"),
    path("celica/<isodate:day>/<int:workstation_id>/odstrani/", views.assignment_remove, name="assignment_remove"),
    # Workstation order
    path("oddelki/<int:pk>/vrstni-red/", views.workstation_reorder, name="workstation_reorder"),
    # Department CRUD
    path("oddelki/", views.department_list, name="departments"),
    path("oddelki/dodaj/", views.department_add, name="department_add"),
    path("oddelki/<int:pk>/uredi/", views.department_edit, name="department_edit"),
    path("oddelki/<int:pk>/izbrisi/", views.department_delete, name="department_delete"),
    # Workstation CRUD
    path("delovisca/", views.workstation_list, name="workstations"),
    path("delovisca/dodaj/", views.workstation_add, name="workstation_add"),
    path("delovisca/<int:pk>/uredi/", views.workstation_edit, name="workstation_edit"),
    path("delovisca/<int:pk>/izbrisi/", views.workstation_delete, name="workstation_delete"),
    # Staff CRUD
    path("zdravniki/", views.staff_list, name="staff"),
    path("zdravniki/dodaj/", views.staff_add, name="staff_add"),
    path("zdravniki/<int:pk>/uredi/", views.staff_edit, name="staff_edit"),
    path("zdravniki/<int:pk>/izbrisi/", views.staff_delete, name="staff_delete"),
]
