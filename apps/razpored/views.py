"""
Views for the roster - monthly and weekly assignment grids plus the
department, workstation and staff screens around them.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.db.models import Max, Q
from django.http import HttpRequest, HttpResponse, HttpResponseBadRequest
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST, require_http_methods
from django_htmx.http import trigger_client_event

from .cache import CellRecord
from .exceptions import RazporedError, ValidationError
from .grid import Period, View
from .models import Department, DepartmentWorkstation, StaffMember, Workstation
from .scope import DepartmentScope, Scope, parse_scope
from .session import GridSession
from .sync import current_revision


MONTHS = [
    (1, "januar"),
    (2, "februar"),
    (3, "marec"),
    (4, "april"),
    (5, "maj"),
    (6, "junij"),
    (7, "julij"),
    (8, "avgust"),
    (9, "september"),
    (10, "oktober"),
    (11, "november"),
    (12, "december"),
]

WEEKDAYS = ["ponedeljek", "torek", "sreda", "četrtek", "petek", "sobota", "nedelja"]

# Filter value for workstations that belong to no department
CLINIC_FILTER = "klinika"


@dataclass(frozen=True)
class GridCell:
    """One rendered cell: a day at a workstation and what the cache holds for it."""

    day: date
    workstation_id: int
    record: CellRecord
    in_month: bool = True

    @property
    def dom_id(self) -> str:
        return f"cell-{self.day.isoformat()}-{self.workstation_id}"

    @property
    def is_weekend(self) -> bool:
        return self.day.weekday() >= 5

    @property
    def weekday_name(self) -> str:
        return WEEKDAYS[self.day.weekday()]


def _int_param(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _toast(response: HttpResponse, message: str, level: str = "error") -> HttpResponse:
    """Attach a transient notification for the client (HX-Trigger: toast)."""
    return trigger_client_event(response, "toast", {"level": level, "message": message})


def _selection(request: HttpRequest, view: View):
    """Period and scope from ?leto=&mesec=&oddelek=, defaulting to the current month."""
    today = timezone.localdate()
    year = _int_param(request.GET.get("leto"), today.year)
    month = _int_param(request.GET.get("mesec"), today.month)
    scope = parse_scope(request.GET.get("oddelek"))
    return Period(year, month, view), scope


def _cells(session: GridSession, days: List[date], workstation_id: int, month: int) -> List[GridCell]:
    return [
        GridCell(day, workstation_id, session.resolve(day, workstation_id), day.month == month)
        for day in days
    ]


def _grid_context(session: GridSession, revision: int) -> dict:
    """
    Template context for the active selection of ``session``.

    ``revision`` must be read before the selection was loaded.
    """
    axes = session.axes
    period = axes.period
    scope = axes.scope

    context = {
        "period": period,
        "scope": scope,
        "department_param": scope.as_param(),
        "workstations": axes.workstations,
        "can_reorder": isinstance(scope, DepartmentScope),
        "revision": revision,
        "poll_seconds": settings.RAZPORED_POLL_SECONDS,
    }

    if period.view is View.WEEK:
        context["weeks"] = [
            {
                "number": index,
                "days": [GridCell(day, 0, CellRecord(), day.month == period.month) for day in week],
                "rows": [
                    (workstation, _cells(session, week, workstation.id, period.month))
                    for workstation in axes.workstations
                ],
            }
            for index, week in enumerate(axes.weeks, start=1)
        ]
    else:
        context["day_rows"] = [
            (
                GridCell(day, 0, CellRecord()),
                [GridCell(day, ws.id, session.resolve(day, ws.id)) for ws in axes.workstations],
            )
            for day in axes.days
        ]
    return context


def _page_context(session: GridSession, revision: int) -> dict:
    today = timezone.localdate()
    span = settings.RAZPORED_YEAR_SPAN
    context = _grid_context(session, revision)
    context.update({
        "departments": Department.objects.all(),
        "months": MONTHS,
        "years": list(range(today.year - span, today.year + span + 1)),
    })
    return context


def _grid_template(view: View) -> str:
    if view is View.WEEK:
        return "razpored/partials/_weekly_grid.html"
    return "razpored/partials/_monthly_grid.html"


# =============================================================================
# Grid pages
# =============================================================================

def _grid_page(request: HttpRequest, view: View, template: str) -> HttpResponse:
    try:
        period, scope = _selection(request, view)
    except ValidationError as exc:
        return HttpResponseBadRequest(exc.message)

    with GridSession() as session:
        try:
            revision = current_revision()
            session.select(period, scope)
        except RazporedError as exc:
            return _toast(HttpResponse(exc.message, status=503), exc.message)
        context = _page_context(session, revision)
    return render(request, template, context)


@login_required
@require_GET
def monthly_view(request: HttpRequest) -> HttpResponse:
    """Monthly grid: one row per day, one column per workstation."""
    return _grid_page(request, View.MONTH, "razpored/monthly.html")


@login_required
@require_GET
def weekly_view(request: HttpRequest) -> HttpResponse:
    """Weekly grid: a tab per week, one row per workstation (drag to reorder)."""
    return _grid_page(request, View.WEEK, "razpored/weekly.html")


@login_required
@require_GET
def grid_rows(request: HttpRequest) -> HttpResponse:
    """
    Partial view returning the grid for HTMX polling.

    The client sends the revision it rendered; 204 means nothing changed and
    the grid stays as is. Otherwise the grid is reloaded wholesale.
    """
    view = View.WEEK if request.GET.get("pogled") == View.WEEK.value else View.MONTH
    seen = request.GET.get("revision")
    try:
        revision = current_revision()
    except RazporedError:
        return HttpResponse(status=204)
    if seen is not None and seen == str(revision):
        return HttpResponse(status=204)

    try:
        period, scope = _selection(request, view)
    except ValidationError as exc:
        return HttpResponseBadRequest(exc.message)

    with GridSession() as session:
        try:
            session.select(period, scope)
        except RazporedError:
            # Keep the grid the client already shows; the next poll retries
            return HttpResponse(status=204)
        context = _grid_context(session, revision)
    return render(request, _grid_template(view), context)


# =============================================================================
# Cell editing
# =============================================================================

def _cell_response(request: HttpRequest, cell: GridCell, scope: Scope) -> HttpResponse:
    return render(request, "razpored/partials/_cell.html", {
        "cell": cell,
        "department_param": scope.as_param(),
    })


def _staff_member_id(request: HttpRequest) -> int:
    staff_member_id = _int_param(request.POST.get("staff_member"), 0)
    if staff_member_id <= 0:
        raise ValidationError("Zdravnik je obvezen")
    return staff_member_id


@login_required
@require_GET
def cell_editor(request: HttpRequest, day: date, workstation_id: int) -> HttpResponse:
    """Dialog partial listing the cell's staff and the staff that can be added."""
    workstation = get_object_or_404(Workstation, pk=workstation_id)
    try:
        scope = parse_scope(request.GET.get("oddelek"))
    except ValidationError as exc:
        return HttpResponseBadRequest(exc.message)

    search = request.GET.get("q", "")
    with GridSession.open(Period(day.year, day.month), scope) as session:
        record = session.resolve(day, workstation.id)
        candidates = [
            member for member in session.store.list_staff(scope, search)
            if not record.has_staff(member.id)
        ]

    return render(request, "razpored/partials/_cell_editor.html", {
        "cell": GridCell(day, workstation.id, record),
        "workstation": workstation,
        "candidates": candidates,
        "search": search,
        "department_param": scope.as_param(),
    })


def _mutate_cell(request: HttpRequest, day: date, workstation_id: int, add: bool) -> HttpResponse:
    workstation = get_object_or_404(Workstation, pk=workstation_id)
    try:
        scope = parse_scope(request.POST.get("oddelek"))
    except ValidationError as exc:
        return HttpResponseBadRequest(exc.message)

    session = GridSession()
    try:
        session.select(Period(day.year, day.month), scope)
        staff_member_id = _staff_member_id(request)
        if add:
            record = session.add_assignment(day, workstation.id, staff_member_id)
        else:
            record = session.remove_assignment(day, workstation.id, staff_member_id)
    except RazporedError as exc:
        # The cell keeps its last-known-good content
        cell = GridCell(day, workstation.id, session.resolve(day, workstation.id))
        return _toast(_cell_response(request, cell, scope), exc.message)
    finally:
        session.close()

    return _cell_response(request, GridCell(day, workstation.id, record), scope)


@login_required
@require_POST
def assignment_add(request: HttpRequest, day: date, workstation_id: int) -> HttpResponse:
    """HTMX endpoint assigning a staff member to a cell; returns the cell."""
    return _mutate_cell(request, day, workstation_id, add=True)


@login_required
@require_POST
def assignment_remove(request: HttpRequest, day: date, workstation_id: int) -> HttpResponse:
    """HTMX endpoint removing a staff member from a cell; returns the cell."""
    return _mutate_cell(request, day, workstation_id, add=False)


@login_required
@require_POST
def workstation_reorder(request: HttpRequest, pk: int) -> HttpResponse:
    """Persist a finished drag-reorder of a department's workstations."""
    department = get_object_or_404(Department, pk=pk)
    ordered = [_int_param(value, 0) for value in request.POST.getlist("workstation")]

    response = HttpResponse(status=204)
    try:
        GridSession().reorder(department.pk, ordered)
    except RazporedError as exc:
        return _toast(response, exc.message)
    return _toast(response, "Zaporedje shranjeno", level="success")


# =============================================================================
# Department CRUD
# =============================================================================

def _department_errors(name: str, pk: Optional[int] = None) -> List[str]:
    errors = []
    if not name:
        errors.append("Naziv je obvezen")
    elif Department.objects.filter(name__iexact=name).exclude(pk=pk).exists():
        errors.append(f"Oddelek '{name}' že obstaja")
    return errors


@login_required
@require_GET
def department_list(request: HttpRequest) -> HttpResponse:
    """List all departments."""
    departments = Department.objects.all().order_by("name")
    return render(request, "razpored/departments/list.html", {"departments": departments})


@login_required
@require_http_methods(["GET", "POST"])
def department_add(request: HttpRequest) -> HttpResponse:
    """Add a new department."""
    if request.method == "POST":
        name = request.POST.get("name", "").strip()
        errors = _department_errors(name)
        if not errors:
            Department.objects.create(name=name)
            return redirect("razpored:departments")

        return render(request, "razpored/departments/form.html", {"errors": errors, "name": name})

    return render(request, "razpored/departments/form.html", {})


@login_required
@require_http_methods(["GET", "POST"])
def department_edit(request: HttpRequest, pk: int) -> HttpResponse:
    """Rename a department."""
    department = get_object_or_404(Department, pk=pk)

    if request.method == "POST":
        name = request.POST.get("name", "").strip()
        errors = _department_errors(name, pk=pk)
        if not errors:
            department.name = name
            department.save()
            return redirect("razpored:departments")

        return render(request, "razpored/departments/form.html", {
            "department": department,
            "errors": errors,
            "name": name,
        })

    return render(request, "razpored/departments/form.html", {
        "department": department,
        "name": department.name,
    })


@login_required
@require_POST
def department_delete(request: HttpRequest, pk: int) -> HttpResponse:
    """Delete a department. Its workstations stay, without the link."""
    department = get_object_or_404(Department, pk=pk)
    department.delete()
    return redirect("razpored:departments")


# =============================================================================
# Workstation CRUD
# =============================================================================

def _selected_department_ids(request: HttpRequest) -> List[int]:
    ids = {_int_param(value, 0) for value in request.POST.getlist("departments")}
    return sorted(Department.objects.filter(pk__in=ids).values_list("pk", flat=True))


@transaction.atomic
def _link_departments(workstation: Workstation, department_ids: List[int]) -> None:
    """
    Make ``department_ids`` the workstation's departments.

    Existing links keep their order index; new links go to the end of the
    department's order.
    """
    DepartmentWorkstation.objects.filter(workstation=workstation).exclude(
        department_id__in=department_ids
    ).delete()
    linked = set(
        DepartmentWorkstation.objects.filter(workstation=workstation).values_list("department_id", flat=True)
    )
    for department_id in department_ids:
        if department_id in linked:
            continue
        last = DepartmentWorkstation.objects.filter(department_id=department_id).aggregate(
            last=Max("sort_index")
        )["last"]
        DepartmentWorkstation.objects.create(
            department_id=department_id,
            workstation=workstation,
            sort_index=0 if last is None else last + 1,
        )


@login_required
@require_GET
def workstation_list(request: HttpRequest) -> HttpResponse:
    """List workstations, filterable by department (or clinic-wide) and name."""
    search = request.GET.get("q", "").strip()
    department_filter = request.GET.get("oddelek", "")

    workstations = Workstation.objects.prefetch_related("departments").order_by("name")
    if search:
        workstations = workstations.filter(name__icontains=search)
    if department_filter == CLINIC_FILTER:
        workstations = workstations.filter(departments__isnull=True)
    elif department_filter:
        workstations = workstations.filter(departments__pk=_int_param(department_filter, 0))

    return render(request, "razpored/workstations/list.html", {
        "workstations": workstations.distinct(),
        "departments": Department.objects.all(),
        "search": search,
        "department_filter": department_filter,
        "clinic_filter": CLINIC_FILTER,
    })


@login_required
@require_http_methods(["GET", "POST"])
def workstation_add(request: HttpRequest) -> HttpResponse:
    """Add a workstation and link it to departments."""
    departments = Department.objects.all()

    if request.method == "POST":
        name = request.POST.get("name", "").strip()
        department_ids = _selected_department_ids(request)

        if name:
            workstation = Workstation.objects.create(name=name)
            _link_departments(workstation, department_ids)
            return redirect("razpored:workstations")

        return render(request, "razpored/workstations/form.html", {
            "errors": ["Naziv je obvezen"],
            "name": name,
            "departments": departments,
            "selected_departments": department_ids,
        })

    return render(request, "razpored/workstations/form.html", {"departments": departments})


@login_required
@require_http_methods(["GET", "POST"])
def workstation_edit(request: HttpRequest, pk: int) -> HttpResponse:
    """Rename a workstation or change its departments."""
    workstation = get_object_or_404(Workstation, pk=pk)
    departments = Department.objects.all()

    if request.method == "POST":
        name = request.POST.get("name", "").strip()
        department_ids = _selected_department_ids(request)

        if name:
            workstation.name = name
            workstation.save()
            _link_departments(workstation, department_ids)
            return redirect("razpored:workstations")

        return render(request, "razpored/workstations/form.html", {
            "workstation": workstation,
            "errors": ["Naziv je obvezen"],
            "name": name,
            "departments": departments,
            "selected_departments": department_ids,
        })

    return render(request, "razpored/workstations/form.html", {
        "workstation": workstation,
        "name": workstation.name,
        "departments": departments,
        "selected_departments": list(workstation.departments.values_list("pk", flat=True)),
    })


@login_required
@require_POST
def workstation_delete(request: HttpRequest, pk: int) -> HttpResponse:
    """Delete a workstation together with its roster entries."""
    workstation = get_object_or_404(Workstation, pk=pk)
    workstation.delete()
    return redirect("razpored:workstations")


# =============================================================================
# Staff CRUD
# =============================================================================

STAFF_FIELDS = ["first_name", "last_name", "email", "short_code", "department"]


def _staff_form_data(request: HttpRequest) -> dict:
    data = {name: request.POST.get(name, "").strip() for name in STAFF_FIELDS}
    data["is_active"] = request.POST.get("is_active") == "on"
    return data


def _staff_errors(data: dict, pk: Optional[int] = None) -> List[str]:
    errors = []
    if not data["first_name"]:
        errors.append("Ime je obvezno")
    if not data["last_name"]:
        errors.append("Priimek je obvezen")
    if not data["short_code"]:
        errors.append("Skrajšava je obvezna")
    elif StaffMember.objects.filter(short_code__iexact=data["short_code"]).exclude(pk=pk).exists():
        errors.append(f"Skrajšava '{data['short_code']}' že obstaja")
    if data["department"] and not Department.objects.filter(pk=_int_param(data["department"], 0)).exists():
        errors.append("Izbrani oddelek ne obstaja")
    return errors


def _apply_staff_data(staff_member: StaffMember, data: dict) -> StaffMember:
    staff_member.first_name = data["first_name"]
    staff_member.last_name = data["last_name"]
    staff_member.email = data["email"]
    staff_member.short_code = data["short_code"]
    staff_member.department_id = _int_param(data["department"], 0) or None
    staff_member.is_active = data["is_active"]
    staff_member.save()
    return staff_member


@login_required
@require_GET
def staff_list(request: HttpRequest) -> HttpResponse:
    """List staff members, searchable by name or short code."""
    search = request.GET.get("q", "").strip()
    staff = StaffMember.objects.select_related("department").order_by("last_name", "first_name")
    if search:
        staff = staff.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(short_code__icontains=search)
            | Q(email__icontains=search)
        )
    return render(request, "razpored/staff/list.html", {"staff": staff, "search": search})


@login_required
@require_http_methods(["GET", "POST"])
def staff_add(request: HttpRequest) -> HttpResponse:
    """Add a staff member."""
    departments = Department.objects.all()

    if request.method == "POST":
        data = _staff_form_data(request)
        errors = _staff_errors(data)
        if not errors:
            _apply_staff_data(StaffMember(), data)
            return redirect("razpored:staff")

        return render(request, "razpored/staff/form.html", {
            "errors": errors,
            "data": data,
            "departments": departments,
        })

    return render(request, "razpored/staff/form.html", {
        "data": {"is_active": True},
        "departments": departments,
    })


@login_required
@require_http_methods(["GET", "POST"])
def staff_edit(request: HttpRequest, pk: int) -> HttpResponse:
    """Edit a staff member."""
    staff_member = get_object_or_404(StaffMember, pk=pk)
    departments = Department.objects.all()

    if request.method == "POST":
        data = _staff_form_data(request)
        errors = _staff_errors(data, pk=pk)
        if not errors:
            _apply_staff_data(staff_member, data)
            return redirect("razpored:staff")

        return render(request, "razpored/staff/form.html", {
            "staff_member": staff_member,
            "errors": errors,
            "data": data,
            "departments": departments,
        })

    return render(request, "razpored/staff/form.html", {
        "staff_member": staff_member,
        "data": {
            "first_name": staff_member.first_name,
            "last_name": staff_member.last_name,
            "email": staff_member.email,
            "short_code": staff_member.short_code,
            "department": str(staff_member.department_id or ""),
            "is_active": staff_member.is_active,
        },
        "departments": departments,
    })


@login_required
@require_POST
def staff_delete(request: HttpRequest, pk: int) -> HttpResponse:
    """Delete a staff member and their assignments."""
    staff_member = get_object_or_404(StaffMember, pk=pk)
    staff_member.delete()
    return redirect("razpored:staff")
