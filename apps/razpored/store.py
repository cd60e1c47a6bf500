"""
Domain store - the persistence contract the grid engine consumes.

Every call goes straight to the database through the ORM. Writes run in
their own savepoint so a constraint violation never poisons an enclosing
transaction. Database failures are translated into the roster error
taxonomy here and nowhere else.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterator, List, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Prefetch

from .exceptions import ConflictError, DuplicateError, NotFoundError, StoreUnavailableError
from .models import Assignment, DepartmentWorkstation, ScheduleEntry, StaffMember, Workstation
from .scope import DepartmentScope, Scope
from .sync import ChangeChannel, SignalChangeChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaffRef:
    """A staff member as shown inside a grid cell."""

    id: int
    short_code: str


@dataclass(frozen=True)
class EntryRow:
    entry_id: int
    day: date
    workstation_id: int
    assignments: List[StaffRef] = field(default_factory=list)


@dataclass(frozen=True)
class WorkstationRow:
    id: int
    name: str
    order_index: Optional[int] = None


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Turn unexpected database failures into StoreUnavailableError."""
    try:
        yield
    except DatabaseError as exc:
        logger.warning("Store operation %s failed: %s", operation, exc)
        raise StoreUnavailableError(
            "Podatkovna baza trenutno ni dosegljiva",
            {"operation": operation},
        ) from exc


class DomainStore:
    """
    ORM-backed store for schedule entries, assignments and workstation order.

    Change notifications are delivered through a ChangeChannel; by default
    the in-process Django signal channel.
    """

    def __init__(self, channel: Optional[ChangeChannel] = None):
        self.channel = channel or SignalChangeChannel()

    # -------------------------------------------------------------------------
    # Schedule entries & assignments
    # -------------------------------------------------------------------------

    def list_schedule_entries(self, start: date, end: date, scope: Scope) -> List[EntryRow]:
        """
        Every entry between ``start`` and ``end`` (inclusive) matching the scope.

        A department sees the entries of every workstation linked to it, no
        matter which scope created the entry.
        """
        entries = ScheduleEntry.objects.filter(date__range=(start, end))
        if isinstance(scope, DepartmentScope):
            entries = entries.filter(workstation__department_links__department_id=scope.department_id)
        entries = entries.prefetch_related(
            Prefetch(
                "assignments",
                queryset=Assignment.objects.select_related("staff_member").order_by("id"),
            )
        )

        with _store_errors("list_schedule_entries"):
            return [
                EntryRow(
                    entry_id=entry.id,
                    day=entry.date,
                    workstation_id=entry.workstation_id,
                    assignments=[
                        StaffRef(a.staff_member_id, a.staff_member.short_code)
                        for a in entry.assignments.all()
                    ],
                )
                for entry in entries
            ]

    def get_schedule_entry(self, day: date, workstation_id: int) -> Optional[int]:
        """Id of the entry for the cell regardless of department, or None."""
        with _store_errors("get_schedule_entry"):
            return (
                ScheduleEntry.objects.filter(date=day, workstation_id=workstation_id)
                .values_list("id", flat=True)
                .first()
            )

    def create_schedule_entry(self, day: date, workstation_id: int, scope: Scope) -> int:
        """Create the entry for a cell. Raises ConflictError if it already exists."""
        try:
            with transaction.atomic():
                entry = ScheduleEntry.objects.create(
                    date=day,
                    workstation_id=workstation_id,
                    department_id=scope.department_id,
                )
        except IntegrityError as exc:
            raise ConflictError(
                "Vnos za ta dan in delovišče že obstaja",
                {"date": day.isoformat(), "workstation": workstation_id},
            ) from exc
        except DatabaseError as exc:
            logger.warning("Creating schedule entry %s/%s failed: %s", day, workstation_id, exc)
            raise StoreUnavailableError(
                "Podatkovna baza trenutno ni dosegljiva",
                {"operation": "create_schedule_entry"},
            ) from exc
        return entry.id

    def insert_assignment(self, entry_id: int, staff_member_id: int) -> None:
        """Assign a staff member. Raises DuplicateError if already assigned."""
        try:
            with transaction.atomic():
                Assignment.objects.create(entry_id=entry_id, staff_member_id=staff_member_id)
        except IntegrityError as exc:
            self._raise_for_rejected_assignment(entry_id, staff_member_id, exc)
        except DatabaseError as exc:
            logger.warning("Inserting assignment %s/%s failed: %s", entry_id, staff_member_id, exc)
            raise StoreUnavailableError(
                "Podatkovna baza trenutno ni dosegljiva",
                {"operation": "insert_assignment"},
            ) from exc

    def _raise_for_rejected_assignment(self, entry_id: int, staff_member_id: int, exc: IntegrityError) -> None:
        """Tell a duplicate apart from a foreign key that went stale."""
        with _store_errors("insert_assignment"):
            duplicate = Assignment.objects.filter(entry_id=entry_id, staff_member_id=staff_member_id).exists()
            entry_exists = ScheduleEntry.objects.filter(pk=entry_id).exists()
            staff_exists = StaffMember.objects.filter(pk=staff_member_id).exists()
        if duplicate:
            raise DuplicateError(
                "Zdravnik je že razporejen",
                {"entry": entry_id, "staff_member": staff_member_id},
            ) from exc
        if not staff_exists:
            raise NotFoundError("Zdravnik ne obstaja", {"staff_member": staff_member_id}) from exc
        if not entry_exists:
            raise NotFoundError("Vnos ne obstaja", {"entry": entry_id}) from exc
        logger.warning("Assignment %s/%s rejected by the database: %s", entry_id, staff_member_id, exc)
        raise StoreUnavailableError(
            "Podatkovna baza je zavrnila razporeditev",
            {"operation": "insert_assignment"},
        ) from exc

    def list_entry_staff(self, entry_id: int) -> List[StaffRef]:
        """Staff currently assigned to one entry, in assignment order."""
        with _store_errors("list_entry_staff"):
            return [
                StaffRef(staff_member_id, short_code)
                for staff_member_id, short_code in Assignment.objects.filter(entry_id=entry_id)
                .order_by("id")
                .values_list("staff_member_id", "staff_member__short_code")
            ]

    def delete_assignment(self, entry_id: int, staff_member_id: int) -> None:
        with _store_errors("delete_assignment"), transaction.atomic():
            Assignment.objects.filter(entry_id=entry_id, staff_member_id=staff_member_id).delete()

    # -------------------------------------------------------------------------
    # Workstations & staff
    # -------------------------------------------------------------------------

    def list_workstations(self, scope: Scope, ordered_by_index: bool = True) -> List[WorkstationRow]:
        """
        Workstations in scope.

        For a department the rows carry the department's order index and are
        sorted by it (ties by link id). The unscoped list is in creation order.
        """
        with _store_errors("list_workstations"):
            if isinstance(scope, DepartmentScope):
                links = DepartmentWorkstation.objects.filter(
                    department_id=scope.department_id
                ).select_related("workstation")
                links = links.order_by("sort_index", "id") if ordered_by_index else links.order_by("workstation_id")
                return [
                    WorkstationRow(link.workstation_id, link.workstation.name, link.sort_index)
                    for link in links
                ]
            return [
                WorkstationRow(ws.id, ws.name)
                for ws in Workstation.objects.order_by("id")
            ]

    def update_workstation_order_index(self, department_id: int, workstation_id: int, index: int) -> None:
        with _store_errors("update_workstation_order_index"):
            updated = DepartmentWorkstation.objects.filter(
                department_id=department_id,
                workstation_id=workstation_id,
            ).update(sort_index=index)
        if not updated:
            raise NotFoundError(
                "Delovišče ne pripada oddelku",
                {"department": department_id, "workstation": workstation_id},
            )

    def get_staff(self, staff_member_id: int) -> StaffRef:
        with _store_errors("get_staff"):
            short_code = (
                StaffMember.objects.filter(pk=staff_member_id)
                .values_list("short_code", flat=True)
                .first()
            )
        if short_code is None:
            raise NotFoundError("Zdravnik ne obstaja", {"staff_member": staff_member_id})
        return StaffRef(staff_member_id, short_code)

    def list_staff(self, scope: Scope, search: str = "") -> List[StaffRef]:
        """Active staff offered in the cell editor, optionally filtered by short code."""
        staff = StaffMember.objects.filter(is_active=True)
        if isinstance(scope, DepartmentScope):
            staff = staff.filter(department_id=scope.department_id)
        search = search.strip()
        if search:
            staff = staff.filter(short_code__icontains=search)

        with _store_errors("list_staff"):
            return [StaffRef(s.id, s.short_code) for s in staff.order_by("short_code")]

    # -------------------------------------------------------------------------
    # Change notifications
    # -------------------------------------------------------------------------

    def subscribe_assignment_changes(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call ``callback`` on any assignment change; returns an unsubscribe function."""
        return self.channel.subscribe(callback)
