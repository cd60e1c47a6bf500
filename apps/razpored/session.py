"""
Grid session - one per open grid.

Owns the assignment cache for the current (period, scope) selection and
wires the grid builder, mutator, ordering manager and sync listener around
it. Nothing here is module-level: build a session for a view, close it when
the view goes away.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from .cache import AssignmentCache, CellRecord
from .grid import GridAxes, GridBuilder, Period
from .mutator import AssignmentMutator, StaffArg
from .ordering import OrderingManager
from .scope import Scope, parse_scope
from .store import DomainStore
from .sync import ChangeChannel, SyncListener

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    period: Period
    scope: Scope


class GridSession:
    def __init__(self, store: Optional[DomainStore] = None):
        self.store = store or DomainStore()
        self.cache = AssignmentCache()
        self.grid_builder = GridBuilder(self.store)
        self.mutator = AssignmentMutator(self.store, self.cache)
        self.ordering = OrderingManager(self.store, self.grid_builder)
        self.selection: Optional[Selection] = None
        self.axes: Optional[GridAxes] = None
        self._listener: Optional[SyncListener] = None

    @classmethod
    def open(cls, period: Period, scope=None, store: Optional[DomainStore] = None) -> "GridSession":
        session = cls(store)
        session.select(period, parse_scope(scope))
        return session

    def select(self, period: Period, scope: Scope) -> GridAxes:
        """Switch to a new selection; the cache is rebuilt from scratch."""
        axes = self.grid_builder.build(period, scope)
        self.cache.load(self.store, period, scope)
        self.selection = Selection(period, scope)
        self.axes = axes
        return axes

    def reload(self) -> None:
        """Reload the active selection wholesale."""
        if self.selection is None:
            return
        self.cache.load(self.store, self.selection.period, self.selection.scope)

    def resolve(self, day: date, workstation_id: int) -> CellRecord:
        return self.cache.resolve(day, workstation_id)

    def rows(self):
        """(workstation, [(day, cell), ...]) per workstation for the active axes."""
        if self.axes is None:
            return []
        return [
            (workstation, [(day, self.resolve(day, workstation.id)) for day in self.axes.days])
            for workstation in self.axes.workstations
        ]

    def add_assignment(self, day: date, workstation_id: int, staff_member: StaffArg) -> CellRecord:
        return self.mutator.add_assignment(day, workstation_id, staff_member)

    def remove_assignment(self, day: date, workstation_id: int, staff_member: StaffArg) -> CellRecord:
        return self.mutator.remove_assignment(day, workstation_id, staff_member)

    def reorder(self, department_id: int, ordered_workstation_ids: Sequence[int]):
        order = self.ordering.reorder(department_id, ordered_workstation_ids)
        self._refresh_axes()
        return order

    def move_workstation(self, department_id: int, from_index: int, to_index: int):
        order = self.ordering.move(department_id, from_index, to_index)
        self._refresh_axes()
        return order

    def listen(self, channel: Optional[ChangeChannel] = None) -> SyncListener:
        """Start reloading on assignment changes delivered by ``channel``."""
        if self._listener is not None:
            self._listener.stop()
        self._listener = SyncListener(self, channel or self.store.channel)
        self._listener.start()
        return self._listener

    def close(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
        self.cache.clear()
        self.selection = None
        self.axes = None

    def __enter__(self) -> "GridSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _refresh_axes(self) -> None:
        if self.selection is not None:
            self.axes = self.grid_builder.build(self.selection.period, self.selection.scope)
