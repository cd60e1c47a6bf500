"""
Assignment cache - what every grid cell currently shows.

Keyed by ``CellKey(day, workstation_id)``; each record holds the id of the
cell's schedule entry (None until one exists) and the assigned staff in
assignment order. One cache belongs to one grid session and one selection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Iterator, Optional, Tuple

from .grid import Period
from .scope import Scope
from .store import DomainStore, StaffRef


@dataclass(frozen=True)
class CellKey:
    day: date
    workstation_id: int


@dataclass(frozen=True)
class CellRecord:
    entry_id: Optional[int] = None
    staff: Tuple[StaffRef, ...] = field(default_factory=tuple)

    @property
    def short_codes(self):
        return [member.short_code for member in self.staff]

    def has_staff(self, staff_member_id: int) -> bool:
        return any(member.id == staff_member_id for member in self.staff)


EMPTY_CELL = CellRecord()


class AssignmentCache:
    def __init__(self) -> None:
        self._cells: Dict[CellKey, CellRecord] = {}
        self.period: Optional[Period] = None
        self.scope: Optional[Scope] = None

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Tuple[CellKey, CellRecord]]:
        return iter(self._cells.items())

    def load(self, store: DomainStore, period: Period, scope: Scope) -> None:
        """Replace the whole cache with one bulk query for the selection."""
        start, end = period.bounds
        rows = store.list_schedule_entries(start, end, scope)
        self._cells = {
            CellKey(row.day, row.workstation_id): CellRecord(row.entry_id, tuple(row.assignments))
            for row in rows
        }
        self.period = period
        self.scope = scope

    def clear(self) -> None:
        self._cells = {}
        self.period = None
        self.scope = None

    def resolve(self, day: date, workstation_id: int) -> CellRecord:
        return self._cells.get(CellKey(day, workstation_id), EMPTY_CELL)

    # Mutations below are applied only after the store confirmed the write.

    def remember_entry(
        self, day: date, workstation_id: int, entry_id: int, staff: Optional[Iterable[StaffRef]] = None
    ) -> CellRecord:
        """Attach an entry id to a cell. ``staff``, when given, replaces the listed staff."""
        key = CellKey(day, workstation_id)
        current = self._cells.get(key, EMPTY_CELL)
        record = CellRecord(entry_id, current.staff if staff is None else tuple(staff))
        self._cells[key] = record
        return record

    def append_staff(self, day: date, workstation_id: int, member: StaffRef) -> CellRecord:
        key = CellKey(day, workstation_id)
        current = self._cells.get(key, EMPTY_CELL)
        if current.has_staff(member.id):
            return current
        record = CellRecord(current.entry_id, current.staff + (member,))
        self._cells[key] = record
        return record

    def discard_staff(self, day: date, workstation_id: int, staff_member_id: int) -> CellRecord:
        key = CellKey(day, workstation_id)
        current = self._cells.get(key, EMPTY_CELL)
        record = CellRecord(
            current.entry_id,
            tuple(member for member in current.staff if member.id != staff_member_id),
        )
        self._cells[key] = record
        return record
