"""
Per-department workstation display order.

A completed drag gesture results in one ``reorder`` call that rewrites the
order index of every workstation of the department. The rewrite runs in a
single transaction: either the whole new order is stored or none of it.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from django.db import DatabaseError, transaction

from .exceptions import StoreUnavailableError, ValidationError
from .grid import GridBuilder
from .scope import DepartmentScope
from .store import DomainStore

logger = logging.getLogger(__name__)


class OrderingManager:
    def __init__(self, store: DomainStore, grid_builder: GridBuilder):
        self.store = store
        self.grid_builder = grid_builder

    def current_order(self, department_id: int) -> List[int]:
        scope = DepartmentScope(department_id)
        return [row.id for row in self.store.list_workstations(scope, ordered_by_index=True)]

    def reorder(self, department_id: int, ordered_workstation_ids: Sequence[int]) -> List[int]:
        """
        Store ``ordered_workstation_ids`` as the department's order (0-based).

        Workstations of the department missing from the sequence keep their
        relative order after the supplied ones. Returns the stored order.
        """
        ordered = [int(ws_id) for ws_id in ordered_workstation_ids]
        if len(set(ordered)) != len(ordered):
            raise ValidationError("Delovišče je v zaporedju navedeno večkrat", {"workstations": ordered})

        existing = self.current_order(department_id)
        final_order = ordered + [ws_id for ws_id in existing if ws_id not in set(ordered)]

        try:
            with transaction.atomic():
                for index, workstation_id in enumerate(final_order):
                    self.store.update_workstation_order_index(department_id, workstation_id, index)
        except (StoreUnavailableError, DatabaseError) as exc:
            # DatabaseError only escapes from the commit itself.
            logger.warning("Saving workstation order for department %s failed: %s", department_id, exc)
            raise StoreUnavailableError(
                "Zaporedja ni bilo mogoče shraniti",
                {"department": department_id},
            ) from exc
        finally:
            self.grid_builder.invalidate(DepartmentScope(department_id))

        logger.info("Workstation order for department %s saved: %s", department_id, final_order)
        return final_order

    def move(self, department_id: int, from_index: int, to_index: int) -> List[int]:
        """Apply one finished drag (row at ``from_index`` dropped at ``to_index``)."""
        order = self.current_order(department_id)
        if not (0 <= from_index < len(order) and 0 <= to_index < len(order)):
            raise ValidationError(
                "Neveljaven položaj",
                {"from": from_index, "to": to_index},
            )
        dragged = order.pop(from_index)
        order.insert(to_index, dragged)
        return self.reorder(department_id, order)
