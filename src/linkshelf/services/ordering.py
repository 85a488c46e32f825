"""
Sort-Order Manager - sibling positions.

Positions are 1-based integers, unique within a sibling group. Appending
takes max+1; placing at a position renumbers the group contiguously around
the reserved slot and only rewrites rows whose value actually changes.
"""

from dataclasses import dataclass, field
from datetime import datetime

from linkshelf.core.config import get_logger
from linkshelf.storage.items import ItemRepository

logger = get_logger("services.ordering")


@dataclass
class Renumbering:
    """Outcome of placing an item among its siblings."""

    position: int
    """Sort order reserved for the placed item."""

    changes: dict[int, int] = field(default_factory=dict)
    """New sort orders for siblings whose value changes."""


class SortOrderManager:
    """Computes and applies sibling sort orders."""

    def __init__(self, items: ItemRepository):
        self.items = items

    def next_sort_order(self, parent_id: int | None, excluding_id: int | None = None) -> int:
        """Sort order that appends after every sibling (1 for an empty group)."""
        if excluding_id is None:
            return self.items.max_sort_order(parent_id) + 1

        orders = [
            order for item_id, order in self.items.sibling_orders(parent_id)
            if item_id != excluding_id
        ]
        return (max(orders) if orders else 0) + 1

    def renumber_for_insert_at(
        self,
        parent_id: int | None,
        target_position: int,
        excluding_id: int | None = None,
    ) -> Renumbering:
        """
        Reserve `target_position` in a sibling group.

        Args:
            parent_id: Sibling group (None = root level)
            target_position: Desired 1-based slot, clamped to [1, n+1]
            excluding_id: Item being placed (skipped when listing siblings)

        Returns:
            The reserved position and the sibling changes needed so the
            group stays strictly increasing with relative order intact.
        """
        siblings = [
            (item_id, order) for item_id, order in self.items.sibling_orders(parent_id)
            if item_id != excluding_id
        ]
        position = max(1, min(target_position, len(siblings) + 1))

        changes: dict[int, int] = {}
        for index, (item_id, order) in enumerate(siblings, start=1):
            new_order = index if index < position else index + 1
            if order != new_order:
                changes[item_id] = new_order

        return Renumbering(position=position, changes=changes)

    def compact(self, parent_id: int | None, when: datetime | None = None) -> dict[int, int]:
        """Renumber a sibling group to 1..n. Returns the applied changes."""
        changes = {
            item_id: index
            for index, (item_id, order) in enumerate(self.items.sibling_orders(parent_id), start=1)
            if order != index
        }
        self.apply(changes, when)
        return changes

    def apply(self, changes: dict[int, int], when: datetime | None = None) -> None:
        if not changes:
            return
        self.items.set_sort_orders(changes, when or datetime.now())
        logger.debug(f"Renumbered {len(changes)} sibling(s)")
