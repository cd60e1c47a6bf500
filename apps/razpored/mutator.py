"""
Per-cell assignment changes.

Each add/remove is its own unit of work: at most one entry creation and one
assignment write, then one cache update. The cache is only touched after
the store confirmed a write, so a failed mutation leaves the cell as it was.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Union

from .cache import AssignmentCache, CellRecord
from .exceptions import ConflictError, DuplicateError, NotFoundError, ValidationError
from .scope import ALL, Scope
from .store import DomainStore, StaffRef

logger = logging.getLogger(__name__)

StaffArg = Union[StaffRef, int]


class AssignmentMutator:
    def __init__(self, store: DomainStore, cache: AssignmentCache):
        self.store = store
        self.cache = cache

    @property
    def scope(self) -> Scope:
        return self.cache.scope or ALL

    def add_assignment(self, day: date, workstation_id: int, staff_member: StaffArg) -> CellRecord:
        """
        Assign a staff member to a cell, creating the cell's entry if needed.

        Adding someone already listed in the cell is a no-op. If another
        writer created the entry first, that entry is reused (once) and the
        cell picks up the staff already assigned to it.
        """
        self._check_day(day)
        member = self._staff_ref(staff_member)
        current = self.cache.resolve(day, workstation_id)
        if current.entry_id is not None and current.has_staff(member.id):
            return current

        entry_id = current.entry_id
        if entry_id is None:
            entry_id = self._create_entry(day, workstation_id)

        try:
            self.store.insert_assignment(entry_id, member.id)
        except DuplicateError:
            logger.debug("%s already assigned to entry %s", member.short_code, entry_id)

        return self.cache.append_staff(day, workstation_id, member)

    def remove_assignment(self, day: date, workstation_id: int, staff_member: StaffArg) -> CellRecord:
        """Remove a staff member from a cell. The cell must have a known entry."""
        staff_member_id = staff_member.id if isinstance(staff_member, StaffRef) else staff_member
        current = self.cache.resolve(day, workstation_id)
        if current.entry_id is None:
            raise NotFoundError(
                "Za to celico ni razporeda",
                {"date": day.isoformat(), "workstation": workstation_id},
            )

        self.store.delete_assignment(current.entry_id, staff_member_id)
        return self.cache.discard_staff(day, workstation_id, staff_member_id)

    def _create_entry(self, day: date, workstation_id: int) -> int:
        try:
            entry_id = self.store.create_schedule_entry(day, workstation_id, self.scope)
        except ConflictError:
            existing = self.store.get_schedule_entry(day, workstation_id)
            if existing is None:
                raise
            logger.info(
                "Entry for %s / workstation %s was created concurrently, reusing %s",
                day, workstation_id, existing,
            )
            # The cell now lists what the store holds for the reused entry.
            self.cache.remember_entry(day, workstation_id, existing, self.store.list_entry_staff(existing))
            return existing
        self.cache.remember_entry(day, workstation_id, entry_id)
        return entry_id

    def _check_day(self, day: date) -> None:
        period = self.cache.period
        if period is not None and not period.contains(day):
            raise ValidationError(
                "Dan ni v izbranem obdobju",
                {"date": day.isoformat()},
            )

    def _staff_ref(self, staff_member: StaffArg) -> StaffRef:
        if isinstance(staff_member, StaffRef):
            return staff_member
        return self.store.get_staff(staff_member)
