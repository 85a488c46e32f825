"""Tests for sibling sort orders."""

import pytest

from linkshelf.core.types import Item, ItemType
from linkshelf.services.ordering import SortOrderManager
from linkshelf.storage.database import Database
from linkshelf.storage.items import ItemRepository


@pytest.fixture
def items(db: Database) -> ItemRepository:
    return ItemRepository(db)


@pytest.fixture
def ordering(items: ItemRepository) -> SortOrderManager:
    return SortOrderManager(items)


def _add(items: ItemRepository, name: str, sort_order: int, parent_id: int | None = None) -> int:
    return items.insert(Item(
        name=name,
        item_type=ItemType.NOTES,
        parent_id=parent_id,
        sort_order=sort_order,
    )).id


class TestNextSortOrder:
    """Tests for appending."""

    def test_empty_group(self, ordering: SortOrderManager):
        """Test that the first child gets position 1."""
        assert ordering.next_sort_order(None) == 1

    def test_after_max(self, items: ItemRepository, ordering: SortOrderManager):
        """Test that appending goes past the highest position, gaps included."""
        _add(items, "a", 1)
        _add(items, "b", 7)
        assert ordering.next_sort_order(None) == 8

    def test_excluding_self(self, items: ItemRepository, ordering: SortOrderManager):
        """Test that the moved item doesn't count against itself."""
        _add(items, "a", 1)
        last = _add(items, "b", 2)
        assert ordering.next_sort_order(None, excluding_id=last) == 2


class TestRenumberForInsertAt:
    """Tests for placing at a position."""

    def test_insert_in_middle(self, items: ItemRepository, ordering: SortOrderManager):
        """Test that later siblings shift down by one."""
        a = _add(items, "a", 1)
        b = _add(items, "b", 2)
        c = _add(items, "c", 3)

        result = ordering.renumber_for_insert_at(None, 2)

        assert result.position == 2
        assert result.changes == {b: 3, c: 4}
        assert a not in result.changes

    def test_clamps_position(self, items: ItemRepository, ordering: SortOrderManager):
        """Test that out-of-range targets clamp to the ends."""
        _add(items, "a", 1)
        _add(items, "b", 2)

        assert ordering.renumber_for_insert_at(None, 99).position == 3
        assert ordering.renumber_for_insert_at(None, 99).changes == {}
        assert ordering.renumber_for_insert_at(None, -4).position == 1

    def test_closes_gaps(self, items: ItemRepository, ordering: SortOrderManager):
        """Test that renumbering produces a contiguous group."""
        a = _add(items, "a", 5)
        b = _add(items, "b", 9)

        result = ordering.renumber_for_insert_at(None, 1)

        assert result.position == 1
        assert result.changes == {a: 2, b: 3}

    def test_reposition_within_group(self, items: ItemRepository, ordering: SortOrderManager):
        """Test moving an existing sibling to the front."""
        a = _add(items, "a", 1)
        b = _add(items, "b", 2)
        c = _add(items, "c", 3)

        result = ordering.renumber_for_insert_at(None, 1, excluding_id=c)

        assert result.position == 1
        assert result.changes == {a: 2, b: 3}


class TestCompact:
    """Tests for compaction after deletes."""

    def test_compact(self, items: ItemRepository, ordering: SortOrderManager):
        """Test that a gapped group is renumbered 1..n."""
        a = _add(items, "a", 2)
        b = _add(items, "b", 5)

        changes = ordering.compact(None)

        assert changes == {a: 1, b: 2}
        assert items.sibling_orders(None) == [(a, 1), (b, 2)]

    def test_compact_noop(self, items: ItemRepository, ordering: SortOrderManager):
        """Test that a contiguous group is left alone."""
        _add(items, "a", 1)
        _add(items, "b", 2)

        assert ordering.compact(None) == {}
