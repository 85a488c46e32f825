"""
Tree Engine - placement, moves and deletes in the item hierarchy.

Every mutation runs inside one store transaction. Cycle checks walk
ancestor chains with a step bound equal to the item count, so corrupted
data can never hang a move.
"""

from collections import Counter
from datetime import datetime

from linkshelf.core.config import get_logger
from linkshelf.core.errors import CircularReferenceError, FolderNotEmptyError, NotFoundError
from linkshelf.core.types import Item, ItemSummary
from linkshelf.services.ordering import SortOrderManager
from linkshelf.storage.database import Database
from linkshelf.storage.items import ItemRepository
from linkshelf.storage.tags import TagRepository

logger = get_logger("services.tree")


class TreeEngine:
    """Structural operations on the item hierarchy."""

    def __init__(
        self,
        db: Database,
        items: ItemRepository,
        tags: TagRepository,
        ordering: SortOrderManager,
    ):
        self.db = db
        self.items = items
        self.tags = tags
        self.ordering = ordering

    # ============================================
    # Navigation
    # ============================================

    def _require(self, item_id: int) -> Item:
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    def ancestors(self, item_id: int) -> list[int]:
        """Ancestor ids from the direct parent up to the root."""
        found, parent_id = self.items.get_parent_id(item_id)
        if not found:
            raise NotFoundError("item", item_id)

        chain: list[int] = []
        limit = self.items.count()
        while parent_id is not None and len(chain) <= limit:
            if parent_id in chain:
                break
            chain.append(parent_id)
            found, parent_id = self.items.get_parent_id(parent_id)
            if not found:
                break
        return chain

    def path(self, item_id: int) -> list[Item]:
        """Items from the root down to (and including) `item_id`."""
        item = self._require(item_id)
        lineage = [self._require(ancestor_id) for ancestor_id in self.ancestors(item_id)]
        lineage.reverse()
        lineage.append(item)
        return lineage

    def descendants(self, item_id: int, include_self: bool = False) -> list[Item]:
        """Subtree of an item in pre-order (parents before children)."""
        root = self._require(item_id)

        result: list[Item] = []
        seen: set[int] = set()
        stack = [root]
        while stack:
            node = stack.pop()
            if node.id in seen:
                continue
            seen.add(node.id)
            result.append(node)
            stack.extend(reversed(self.items.children(node.id)))

        return result if include_self else result[1:]

    def would_create_cycle(self, item_id: int, new_parent_id: int | None) -> bool:
        if new_parent_id is None:
            return False
        if new_parent_id == item_id:
            return True

        limit = self.items.count()
        current: int | None = new_parent_id
        steps = 0
        while current is not None:
            if current == item_id:
                return True
            steps += 1
            if steps > limit:
                logger.error(f"Ancestor chain of item {new_parent_id} does not terminate")
                return True
            _, current = self.items.get_parent_id(current)
        return False

    # ============================================
    # Placement
    # ============================================

    def insert(self, item: Item) -> Item:
        """
        Place a new item in the tree.

        A positive `sort_order` is treated as a 1-based target position and
        the siblings are renumbered around it; otherwise the item is
        appended after its siblings.
        """
        with self.db.transaction():
            if item.parent_id is not None and not self.items.exists(item.parent_id):
                raise NotFoundError("item", item.parent_id)

            now = datetime.now()
            if item.sort_order > 0:
                renumbering = self.ordering.renumber_for_insert_at(item.parent_id, item.sort_order)
                self.ordering.apply(renumbering.changes, now)
                position = renumbering.position
            else:
                position = self.ordering.next_sort_order(item.parent_id)

            created = self.items.insert(item.model_copy(update={
                "id": None,
                "sort_order": position,
                "updated_at": now,
            }))

        logger.debug(f"Placed item {created.id} under {created.parent_id} at {position}")
        return created

    def move(
        self,
        item_id: int,
        new_parent_id: int | None,
        new_sort_order: int | None = None,
    ) -> Item:
        """
        Move an item under a new parent.

        Args:
            item_id: Item to move
            new_parent_id: New parent (None = root level)
            new_sort_order: 1-based target position; None appends

        Raises:
            NotFoundError: item or new parent doesn't exist
            CircularReferenceError: new parent is the item or one of its descendants
        """
        with self.db.transaction():
            item = self._require(item_id)
            if new_parent_id is not None:
                if not self.items.exists(new_parent_id):
                    raise NotFoundError("item", new_parent_id)
                if self.would_create_cycle(item_id, new_parent_id):
                    raise CircularReferenceError(item_id, new_parent_id)

            now = datetime.now()
            if new_sort_order is None or new_sort_order <= 0:
                if item.parent_id == new_parent_id and self._is_last(item):
                    position = item.sort_order
                else:
                    position = self.ordering.next_sort_order(new_parent_id, excluding_id=item_id)
            else:
                renumbering = self.ordering.renumber_for_insert_at(
                    new_parent_id, new_sort_order, excluding_id=item_id
                )
                self.ordering.apply(renumbering.changes, now)
                position = renumbering.position

            self.items.set_position(item_id, new_parent_id, position, now)
            if item.parent_id != new_parent_id:
                self.ordering.compact(item.parent_id, now)
            moved = self._require(item_id)

        logger.info(f"Moved item {item_id} to parent {new_parent_id} at position {position}")
        return moved

    def _is_last(self, item: Item) -> bool:
        siblings = self.items.sibling_orders(item.parent_id)
        return bool(siblings) and siblings[-1][0] == item.id

    # ============================================
    # Deletes
    # ============================================

    def delete_simple(self, item_id: int) -> bool:
        """
        Delete one item that has no children.

        Returns:
            False if the item doesn't exist, True once deleted

        Raises:
            FolderNotEmptyError: the item still has children
        """
        with self.db.transaction():
            item = self.items.get(item_id)
            if item is None:
                return False

            children = self.items.children(item_id)
            if children:
                raise FolderNotEmptyError(item_id, [child.summary() for child in children])

            self.tags.remove_item_associations([item_id])
            self.items.remove(item_id)
            self.ordering.compact(item.parent_id)

        logger.info(f"Deleted item {item_id}: {item.name}")
        return True

    def delete_recursive(self, item_id: int) -> list[ItemSummary]:
        """
        Delete an item and its whole subtree.

        Rows are removed children-first. Returns the deleted items in
        pre-order (the item itself first).
        """
        with self.db.transaction():
            root = self._require(item_id)
            subtree = self.descendants(item_id, include_self=True)
            ids = [node.id for node in subtree]

            self.tags.remove_item_associations(ids)
            self.items.remove_many(reversed(ids))
            self.ordering.compact(root.parent_id)

        logger.info(f"Deleted item {item_id} with {len(ids) - 1} descendant(s)")
        return [node.summary() for node in subtree]

    # ============================================
    # Diagnostics
    # ============================================

    def check_invariants(self) -> list[str]:
        """
        Scan the whole store for structural problems.

        Returns a list of human-readable problems: dangling parents,
        cycles and duplicate sort orders. Empty when the store is healthy.
        """
        items = self.items.list_all()
        parents = {item.id: item.parent_id for item in items}
        problems: list[str] = []

        for item in items:
            if item.parent_id is not None and item.parent_id not in parents:
                problems.append(f"Item {item.id} references missing parent {item.parent_id}")

        reported: set[int] = set()
        for item in items:
            seen = {item.id}
            current = parents.get(item.id)
            while current is not None and current in parents:
                if current in seen:
                    if item.id not in reported:
                        problems.append(f"Item {item.id} is part of a parent cycle")
                        reported.update(seen)
                    break
                seen.add(current)
                current = parents[current]

        groups = Counter((item.parent_id, item.sort_order) for item in items)
        for (parent_id, sort_order), count in sorted(
            groups.items(), key=lambda entry: (entry[0][0] or 0, entry[0][1])
        ):
            if count > 1:
                where = "root" if parent_id is None else f"item {parent_id}"
                problems.append(f"{count} siblings under {where} share sort order {sort_order}")

        return problems
