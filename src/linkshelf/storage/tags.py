"""
Tag Repository - keyed storage for tags and item/tag associations.

Tag names are unique ignoring case: each row stores the case-folded name
in `name_key`, which carries the UNIQUE constraint, while `name` keeps
the spelling it was created with.
"""

import sqlite3
from datetime import datetime
from typing import Iterable

from linkshelf.core.config import get_logger
from linkshelf.core.types import Tag
from linkshelf.storage.database import Database

logger = get_logger("storage.tags")


def name_key(name: str) -> str:
    """Lookup key for case-insensitive tag names."""
    return name.strip().casefold()


def _row_to_tag(row: sqlite3.Row) -> Tag:
    data = dict(row)
    data.pop("name_key", None)
    return Tag.model_validate(data)


class TagRepository:
    """SQLite-backed storage for tags and associations."""

    def __init__(self, db: Database):
        self.db = db

    # ============================================
    # Tags
    # ============================================

    def get(self, tag_id: int) -> Tag | None:
        """Get a tag by ID."""
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM tags WHERE id = ?", (tag_id,)
            ).fetchone()

            if row:
                return _row_to_tag(row)
            return None

    def get_by_name(self, name: str) -> Tag | None:
        """Get a tag by name, ignoring case."""
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM tags WHERE name_key = ?", (name_key(name),)
            ).fetchone()

            if row:
                return _row_to_tag(row)
            return None

    def list_all(self) -> list[Tag]:
        """Get all tags ordered by name."""
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tags ORDER BY name_key ASC"
            ).fetchall()
            return [_row_to_tag(row) for row in rows]

    def search(self, term: str) -> list[Tag]:
        """Search tags by name or description substring."""
        needle = term.strip().casefold()
        return [
            tag for tag in self.list_all()
            if needle in tag.name.casefold()
            or (tag.description and needle in tag.description.casefold())
        ]

    def insert(self, tag: Tag) -> Tag:
        """Insert a tag and return it with its new ID."""
        with self.db.connection() as conn:
            cursor = conn.execute("""
                INSERT INTO tags (name, name_key, color, description, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                tag.name,
                name_key(tag.name),
                tag.color,
                tag.description,
                tag.created_at.isoformat(),
                tag.updated_at.isoformat(),
            ))
            created = tag.model_copy(update={"id": cursor.lastrowid})

        logger.debug(f"Created tag {created.id}: {created.name}")
        return created

    def update(self, tag: Tag) -> Tag:
        """Overwrite name, color and description of an existing tag."""
        with self.db.connection() as conn:
            conn.execute("""
                UPDATE tags
                SET name = ?, name_key = ?, color = ?, description = ?, updated_at = ?
                WHERE id = ?
            """, (
                tag.name,
                name_key(tag.name),
                tag.color,
                tag.description,
                tag.updated_at.isoformat(),
                tag.id,
            ))
        return tag

    def remove(self, tag_id: int) -> bool:
        """Delete a tag (associations cascade)."""
        with self.db.connection() as conn:
            cursor = conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.debug(f"Deleted tag {tag_id}")
        return deleted

    # ============================================
    # Associations
    # ============================================

    def tags_for_item(self, item_id: int) -> list[Tag]:
        """Tags attached to an item, ordered by name."""
        with self.db.connection() as conn:
            rows = conn.execute("""
                SELECT t.* FROM tags t
                JOIN item_tags it ON it.tag_id = t.id
                WHERE it.item_id = ?
                ORDER BY t.name_key ASC
            """, (item_id,)).fetchall()
            return [_row_to_tag(row) for row in rows]

    def tag_ids_for_item(self, item_id: int) -> set[int]:
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT tag_id FROM item_tags WHERE item_id = ?", (item_id,)
            ).fetchall()
            return {row["tag_id"] for row in rows}

    def associations(self) -> dict[int, list[int]]:
        """Map of item_id -> tag ids for every tagged item."""
        result: dict[int, list[int]] = {}
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT item_id, tag_id FROM item_tags ORDER BY item_id, tag_id"
            ).fetchall()
            for row in rows:
                result.setdefault(row["item_id"], []).append(row["tag_id"])
        return result

    def associate(self, item_id: int, tag_id: int) -> bool:
        """Attach a tag to an item. False if already attached."""
        with self.db.connection() as conn:
            cursor = conn.execute("""
                INSERT OR IGNORE INTO item_tags (item_id, tag_id, created_at)
                VALUES (?, ?, ?)
            """, (item_id, tag_id, datetime.now().isoformat()))
            return cursor.rowcount > 0

    def dissociate(self, item_id: int, tag_id: int) -> bool:
        """Detach a tag from an item. False if it wasn't attached."""
        with self.db.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM item_tags WHERE item_id = ? AND tag_id = ?",
                (item_id, tag_id),
            )
            return cursor.rowcount > 0

    def usage_count(self, tag_id: int) -> int:
        """Number of items carrying a tag."""
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS cnt FROM item_tags WHERE tag_id = ?", (tag_id,)
            ).fetchone()
            return row["cnt"]

    def remove_item_associations(self, item_ids: Iterable[int]) -> int:
        """Drop every association of the given items."""
        ids = list(item_ids)
        if not ids:
            return 0
        with self.db.connection() as conn:
            cursor = conn.executemany(
                "DELETE FROM item_tags WHERE item_id = ?", [(i,) for i in ids]
            )
            return cursor.rowcount
