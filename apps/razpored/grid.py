"""
Grid axes: calendar days and workstations.

Day lists come from the ``calendar`` module so month lengths and leap years
are never hard-coded. Workstation order is read from the store and cached
per scope until invalidated (a reorder does that).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from django.conf import settings

from .exceptions import ValidationError
from .scope import Scope
from .store import DomainStore, WorkstationRow


class View(str, Enum):
    MONTH = "month"
    WEEK = "week"


def default_week_start() -> int:
    return getattr(settings, "RAZPORED_WEEK_START", calendar.MONDAY)


def _check_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError("Mesec mora biti med 1 in 12", {"month": month})
    if not 1 <= year <= 9999:
        raise ValidationError("Neveljavno leto", {"year": year})


def month_days(year: int, month: int) -> List[date]:
    """Every day of the month, in order."""
    _check_month(year, month)
    _, last_day = calendar.monthrange(year, month)
    return [date(year, month, day) for day in range(1, last_day + 1)]


def month_weeks(year: int, month: int, week_start: Optional[int] = None) -> List[List[date]]:
    """
    Full 7-day weeks covering the month.

    The first week starts on ``week_start`` (0 = Monday ... 6 = Sunday) on or
    before the 1st; the last one ends on or after the last day. Days of the
    neighbouring months are kept so every week is complete.
    """
    _check_month(year, month)
    if week_start is None:
        week_start = default_week_start()
    cal = calendar.Calendar(firstweekday=week_start)
    return cal.monthdatescalendar(year, month)


@dataclass(frozen=True)
class Period:
    """A month shown either as one list of days or as weeks."""

    year: int
    month: int
    view: View = View.MONTH
    week_start: Optional[int] = None

    def __post_init__(self) -> None:
        _check_month(self.year, self.month)
        object.__setattr__(self, "view", View(self.view))
        if self.week_start is None:
            object.__setattr__(self, "week_start", default_week_start())

    @property
    def weeks(self) -> List[List[date]]:
        if self.view is View.WEEK:
            return month_weeks(self.year, self.month, self.week_start)
        return [month_days(self.year, self.month)]

    @property
    def days(self) -> List[date]:
        return [day for week in self.weeks for day in week]

    @property
    def bounds(self) -> Tuple[date, date]:
        days = self.days
        return days[0], days[-1]

    def contains(self, day: date) -> bool:
        start, end = self.bounds
        return start <= day <= end

    def shifted(self, months: int) -> "Period":
        """Same view, ``months`` months later (or earlier when negative)."""
        index = self.year * 12 + (self.month - 1) + months
        return Period(index // 12, index % 12 + 1, self.view, self.week_start)


@dataclass(frozen=True)
class GridAxes:
    period: Period
    scope: Scope
    weeks: List[List[date]]
    workstations: List[WorkstationRow]

    @property
    def days(self) -> List[date]:
        return [day for week in self.weeks for day in week]


class GridBuilder:
    """Produces grid axes; caches the workstation order per scope."""

    def __init__(self, store: DomainStore):
        self.store = store
        self._workstations: Dict[Scope, List[WorkstationRow]] = {}

    def workstations(self, scope: Scope) -> List[WorkstationRow]:
        if scope not in self._workstations:
            self._workstations[scope] = self.store.list_workstations(scope, ordered_by_index=True)
        return list(self._workstations[scope])

    def invalidate(self, scope: Optional[Scope] = None) -> None:
        """Forget cached workstation order for one scope, or for all of them."""
        if scope is None:
            self._workstations.clear()
        else:
            self._workstations.pop(scope, None)

    def build(self, period: Period, scope: Scope) -> GridAxes:
        return GridAxes(
            period=period,
            scope=scope,
            weeks=period.weeks,
            workstations=self.workstations(scope),
        )
