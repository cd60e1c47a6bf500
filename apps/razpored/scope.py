"""
Department scope of a grid selection.

A grid either shows every workstation (``AllScope``) or the workstations of
one department (``DepartmentScope``). Code that branches on scope matches on
the class instead of checking a nullable department id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .exceptions import ValidationError


@dataclass(frozen=True)
class AllScope:
    """Unscoped view: every workstation, every schedule entry."""

    @property
    def department_id(self) -> Optional[int]:
        return None

    def as_param(self) -> str:
        return ""


@dataclass(frozen=True)
class DepartmentScope:
    """View limited to one department."""

    department_id: int

    def as_param(self) -> str:
        return str(self.department_id)


Scope = Union[AllScope, DepartmentScope]

ALL = AllScope()


def parse_scope(value) -> Scope:
    """
    Build a scope from a query-string style value.

    Empty / missing values mean "all workstations"; anything else must be a
    department id.
    """
    if value in (None, ""):
        return ALL
    if isinstance(value, (AllScope, DepartmentScope)):
        return value
    try:
        department_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Neveljaven oddelek", {"department": value})
    if department_id <= 0:
        raise ValidationError("Neveljaven oddelek", {"department": value})
    return DepartmentScope(department_id)
