"""
Item Repository - keyed storage for Item records.

Plain reads and writes against the items table. No business rules live
here: tree invariants, validation and ordering are enforced by the
services that call into this repository.
"""

import sqlite3
from datetime import datetime
from typing import Iterable

from linkshelf.core.config import get_logger
from linkshelf.core.types import Item, ItemType
from linkshelf.storage.database import Database

logger = get_logger("storage.items")

_COLUMNS = (
    "name",
    "item_type",
    "url",
    "command",
    "terminal_type",
    "description",
    "notes",
    "icon_path",
    "parent_id",
    "sort_order",
    "created_at",
    "updated_at",
    "last_accessed_at",
    "access_count",
)


def _row_to_item(row: sqlite3.Row) -> Item:
    return Item.model_validate(dict(row))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ItemRepository:
    """SQLite-backed storage for items."""

    def __init__(self, db: Database):
        self.db = db

    def _values(self, item: Item) -> tuple:
        return (
            item.name,
            item.item_type.value,
            item.url,
            item.command,
            item.terminal_type,
            item.description,
            item.notes,
            item.icon_path,
            item.parent_id,
            item.sort_order,
            _iso(item.created_at),
            _iso(item.updated_at),
            _iso(item.last_accessed_at),
            item.access_count,
        )

    # ============================================
    # Reads
    # ============================================

    def get(self, item_id: int) -> Item | None:
        """Get an item by ID."""
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM items WHERE id = ?", (item_id,)
            ).fetchone()

            if row:
                return _row_to_item(row)
            return None

    def exists(self, item_id: int) -> bool:
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM items WHERE id = ?", (item_id,)
            ).fetchone()
            return row is not None

    def get_parent_id(self, item_id: int) -> tuple[bool, int | None]:
        """Return (found, parent_id) without loading the whole row."""
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT parent_id FROM items WHERE id = ?", (item_id,)
            ).fetchone()
            if row is None:
                return False, None
            return True, row["parent_id"]

    def count(self) -> int:
        with self.db.connection() as conn:
            row = conn.execute("SELECT COUNT(*) AS cnt FROM items").fetchone()
            return row["cnt"]

    def list_all(self) -> list[Item]:
        """List every item grouped by parent, ordered by position."""
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM items ORDER BY parent_id, sort_order, id"
            ).fetchall()
            return [_row_to_item(row) for row in rows]

    def children(self, parent_id: int | None) -> list[Item]:
        """List direct children of a parent (None = root level) by sort order."""
        with self.db.connection() as conn:
            if parent_id is None:
                rows = conn.execute("""
                    SELECT * FROM items
                    WHERE parent_id IS NULL
                    ORDER BY sort_order ASC, id ASC
                """).fetchall()
            else:
                rows = conn.execute("""
                    SELECT * FROM items
                    WHERE parent_id = ?
                    ORDER BY sort_order ASC, id ASC
                """, (parent_id,)).fetchall()

            return [_row_to_item(row) for row in rows]

    def roots(self) -> list[Item]:
        """List root-level items by sort order."""
        return self.children(None)

    def sibling_orders(self, parent_id: int | None) -> list[tuple[int, int]]:
        """(id, sort_order) pairs of a sibling group, ordered by position."""
        with self.db.connection() as conn:
            if parent_id is None:
                rows = conn.execute("""
                    SELECT id, sort_order FROM items
                    WHERE parent_id IS NULL
                    ORDER BY sort_order ASC, id ASC
                """).fetchall()
            else:
                rows = conn.execute("""
                    SELECT id, sort_order FROM items
                    WHERE parent_id = ?
                    ORDER BY sort_order ASC, id ASC
                """, (parent_id,)).fetchall()
            return [(row["id"], row["sort_order"]) for row in rows]

    def child_ids(self, parent_id: int) -> list[int]:
        return [item_id for item_id, _ in self.sibling_orders(parent_id)]

    def max_sort_order(self, parent_id: int | None) -> int:
        """Highest sort order among a parent's children, 0 if none."""
        with self.db.connection() as conn:
            if parent_id is None:
                row = conn.execute(
                    "SELECT MAX(sort_order) AS max_order FROM items WHERE parent_id IS NULL"
                ).fetchone()
            else:
                row = conn.execute(
                    "SELECT MAX(sort_order) AS max_order FROM items WHERE parent_id = ?",
                    (parent_id,),
                ).fetchone()
            return row["max_order"] or 0

    def search(self, term: str) -> list[Item]:
        """
        Case-insensitive substring search.

        Matches name, description, url, notes and associated tag names.
        Most used items first.
        """
        pattern = f"%{_escape_like(term.lower())}%"

        with self.db.connection() as conn:
            rows = conn.execute("""
                SELECT * FROM items i
                WHERE LOWER(i.name) LIKE ? ESCAPE '\\'
                   OR LOWER(COALESCE(i.description, '')) LIKE ? ESCAPE '\\'
                   OR LOWER(COALESCE(i.url, '')) LIKE ? ESCAPE '\\'
                   OR LOWER(COALESCE(i.notes, '')) LIKE ? ESCAPE '\\'
                   OR EXISTS (
                        SELECT 1 FROM item_tags it
                        JOIN tags t ON t.id = it.tag_id
                        WHERE it.item_id = i.id AND LOWER(t.name) LIKE ? ESCAPE '\\'
                   )
                ORDER BY i.access_count DESC, i.last_accessed_at DESC, i.id ASC
            """, (pattern, pattern, pattern, pattern, pattern)).fetchall()

            return [_row_to_item(row) for row in rows]

    def by_tag(self, tag_id: int) -> list[Item]:
        """List items carrying a tag, most used first."""
        with self.db.connection() as conn:
            rows = conn.execute("""
                SELECT i.* FROM items i
                JOIN item_tags it ON it.item_id = i.id
                WHERE it.tag_id = ?
                ORDER BY i.access_count DESC, i.id ASC
            """, (tag_id,)).fetchall()
            return [_row_to_item(row) for row in rows]

    def most_accessed(self, limit: int) -> list[Item]:
        """Openable items ordered by access count."""
        with self.db.connection() as conn:
            rows = conn.execute("""
                SELECT * FROM items
                WHERE item_type != ?
                ORDER BY access_count DESC, last_accessed_at DESC, id ASC
                LIMIT ?
            """, (ItemType.FOLDER.value, limit)).fetchall()
            return [_row_to_item(row) for row in rows]

    def recently_accessed(self, limit: int) -> list[Item]:
        """Openable items that were opened at least once, newest first."""
        with self.db.connection() as conn:
            rows = conn.execute("""
                SELECT * FROM items
                WHERE item_type != ? AND last_accessed_at IS NOT NULL
                ORDER BY last_accessed_at DESC, id ASC
                LIMIT ?
            """, (ItemType.FOLDER.value, limit)).fetchall()
            return [_row_to_item(row) for row in rows]

    def names_by_type(self, item_type: ItemType) -> list[str]:
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT name FROM items WHERE item_type = ?", (item_type.value,)
            ).fetchall()
            return [row["name"] for row in rows]

    def find_by_name(self, name: str, item_type: ItemType) -> Item | None:
        """First item of a type whose name matches case-insensitively."""
        wanted = name.casefold()
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM items WHERE item_type = ? ORDER BY id", (item_type.value,)
            ).fetchall()
            for row in rows:
                if row["name"].casefold() == wanted:
                    return _row_to_item(row)
            return None

    # ============================================
    # Writes
    # ============================================

    def insert(self, item: Item) -> Item:
        """Insert an item and return it with its new ID."""
        placeholders = ", ".join("?" for _ in _COLUMNS)

        with self.db.connection() as conn:
            cursor = conn.execute(
                f"INSERT INTO items ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                self._values(item),
            )
            created = item.model_copy(update={"id": cursor.lastrowid})

        logger.debug(f"Inserted item {created.id}: {created.name}")
        return created

    def update(self, item: Item) -> Item:
        """Write every column of an existing item."""
        assignments = ", ".join(f"{col} = ?" for col in _COLUMNS)

        with self.db.connection() as conn:
            conn.execute(
                f"UPDATE items SET {assignments} WHERE id = ?",
                (*self._values(item), item.id),
            )

        logger.debug(f"Updated item {item.id}")
        return item

    def set_position(
        self,
        item_id: int,
        parent_id: int | None,
        sort_order: int,
        updated_at: datetime,
    ) -> bool:
        """Update parent and sort order of one item."""
        with self.db.connection() as conn:
            cursor = conn.execute("""
                UPDATE items
                SET parent_id = ?, sort_order = ?, updated_at = ?
                WHERE id = ?
            """, (parent_id, sort_order, updated_at.isoformat(), item_id))
            return cursor.rowcount > 0

    def set_sort_orders(self, assignment: dict[int, int], updated_at: datetime) -> None:
        """Apply a batch of {item_id: sort_order} changes."""
        if not assignment:
            return
        stamp = updated_at.isoformat()
        with self.db.connection() as conn:
            conn.executemany(
                "UPDATE items SET sort_order = ?, updated_at = ? WHERE id = ?",
                [(order, stamp, item_id) for item_id, order in assignment.items()],
            )

    def touch(self, item_id: int, when: datetime) -> bool:
        with self.db.connection() as conn:
            cursor = conn.execute(
                "UPDATE items SET updated_at = ? WHERE id = ?",
                (when.isoformat(), item_id),
            )
            return cursor.rowcount > 0

    def record_access(self, item_id: int, when: datetime) -> bool:
        """Bump the access counter and timestamps."""
        stamp = when.isoformat()
        with self.db.connection() as conn:
            cursor = conn.execute("""
                UPDATE items
                SET access_count = access_count + 1,
                    last_accessed_at = ?,
                    updated_at = ?
                WHERE id = ?
            """, (stamp, stamp, item_id))
            return cursor.rowcount > 0

    def remove(self, item_id: int) -> bool:
        """Delete an item row (associations cascade)."""
        with self.db.connection() as conn:
            cursor = conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.debug(f"Deleted item {item_id}")
        return deleted

    def remove_many(self, item_ids: Iterable[int]) -> int:
        """Delete rows in the given order (children must precede parents)."""
        ids = list(item_ids)
        with self.db.connection() as conn:
            for item_id in ids:
                conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
        logger.debug(f"Deleted {len(ids)} items")
        return len(ids)
