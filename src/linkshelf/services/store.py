"""
LinkStore - the public entry point to the item store.

Wires repositories and engines together over one database and exposes the
operations the CLI (or any other front end) calls. Validation happens
here before anything reaches the engines.
"""

from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from linkshelf.core.config import Settings, get_logger, settings
from linkshelf.core.errors import NotFoundError, ValidationError
from linkshelf.core.types import Item, ItemSummary, Tag
from linkshelf.services.exporter import Exporter
from linkshelf.services.importer import ImportEngine, ImportOptions, ImportSummary
from linkshelf.services.ordering import SortOrderManager
from linkshelf.services.tagging import TagManager, TagSyncResult
from linkshelf.services.tree import TreeEngine
from linkshelf.services.validation import prepare_item
from linkshelf.storage.database import Database
from linkshelf.storage.items import ItemRepository
from linkshelf.storage.tags import TagRepository

logger = get_logger("services.store")


class LinkStore:
    """
    Hierarchical store of links, folders, notes and terminal shortcuts.

    All structural mutations run in a single database transaction and
    either fully apply or leave the store untouched.
    """

    def __init__(self, db_path: Path | None = None, config: Settings | None = None):
        self.config = config or settings
        self.db = Database(db_path or self.config.db_path)
        self.items = ItemRepository(self.db)
        self.tags = TagRepository(self.db)

        self.ordering = SortOrderManager(self.items)
        self.tree = TreeEngine(self.db, self.items, self.tags, self.ordering)
        self.tagging = TagManager(
            self.db,
            self.items,
            self.tags,
            palette=self.config.tag_palette,
            default_color=self.config.default_tag_color,
        )
        self.importer = ImportEngine(
            self.db,
            self.items,
            self.tags,
            self.tree,
            self.tagging,
            default_terminal=self.config.default_terminal,
            container_prefix=self.config.import_container_prefix,
            tag_color=self.config.import_tag_color,
        )
        self.exporter = Exporter(
            self.db,
            self.items,
            self.tags,
            version=self.config.export_version,
        )

    # ============================================
    # Items
    # ============================================

    def create_item(self, item: Item, tags: str | Iterable[str] | None = None) -> Item:
        """
        Validate and store a new item.

        Args:
            item: Item to create (id is ignored)
            tags: Optional labels to attach

        Returns:
            The stored item with its id and final sort order
        """
        now = datetime.now()
        prepared = prepare_item(item, self.config.default_terminal).model_copy(update={
            "created_at": now,
            "updated_at": now,
            "last_accessed_at": None,
            "access_count": 0,
        })

        with self.db.transaction():
            created = self.tree.insert(prepared)
            if tags is not None:
                self.tagging.set_tags(created.id, tags)

        logger.info(f"Created {created.item_type.value} item {created.id}: {created.name}")
        return created

    def update_item(self, item: Item, tags: str | Iterable[str] | None = None) -> Item:
        """
        Overwrite an item's fields.

        A changed parent or a positive, changed sort order is applied as a
        move, so it gets the same cycle check and sibling renumbering. A
        sort order of 0 leaves the position alone. Access counters are not
        writable here; use record_access.
        """
        if item.id is None:
            raise NotFoundError("item", None)
        prepared = prepare_item(item, self.config.default_terminal)

        with self.db.transaction():
            existing = self.items.get(item.id)
            if existing is None:
                raise NotFoundError("item", item.id)

            parent_changed = prepared.parent_id != existing.parent_id
            order_changed = prepared.sort_order > 0 and prepared.sort_order != existing.sort_order
            if parent_changed or order_changed:
                target = prepared.sort_order if order_changed else None
                existing = self.tree.move(item.id, prepared.parent_id, target)

            updated = self.items.update(prepared.model_copy(update={
                "parent_id": existing.parent_id,
                "sort_order": existing.sort_order,
                "created_at": existing.created_at,
                "last_accessed_at": existing.last_accessed_at,
                "access_count": existing.access_count,
                "updated_at": datetime.now(),
            }))
            if tags is not None:
                self.tagging.set_tags(item.id, tags)

        logger.info(f"Updated item {updated.id}: {updated.name}")
        return updated

    def delete_item(self, item_id: int) -> bool:
        """Delete a childless item. False if it doesn't exist."""
        return self.tree.delete_simple(item_id)

    def delete_item_recursive(self, item_id: int) -> list[ItemSummary]:
        """Delete an item and everything below it."""
        return self.tree.delete_recursive(item_id)

    def move_item(
        self,
        item_id: int,
        new_parent_id: int | None,
        new_sort_order: int | None = None,
    ) -> Item:
        return self.tree.move(item_id, new_parent_id, new_sort_order)

    def get_item(self, item_id: int) -> Item | None:
        return self.items.get(item_id)

    def get_all_items(self) -> list[Item]:
        return self.items.list_all()

    def get_root_items(self) -> list[Item]:
        return self.items.roots()

    def get_children(self, parent_id: int | None) -> list[Item]:
        return self.items.children(parent_id)

    def get_path(self, item_id: int) -> list[Item]:
        return self.tree.path(item_id)

    def search_items(self, term: str) -> list[Item]:
        """Substring search over names, descriptions, urls, notes and tags."""
        if not term or not term.strip():
            return []
        return self.items.search(term.strip())

    def get_items_by_tag(self, tag_id: int) -> list[Item]:
        return self.items.by_tag(tag_id)

    def _limit(self, limit: int | None) -> int:
        return self.config.recent_limit if limit is None else max(limit, 0)

    def get_most_accessed(self, limit: int | None = None) -> list[Item]:
        return self.items.most_accessed(self._limit(limit))

    def get_recently_accessed(self, limit: int | None = None) -> list[Item]:
        return self.items.recently_accessed(self._limit(limit))

    def record_access(self, item_id: int) -> Item:
        """
        Count one open of an item.

        Raises:
            NotFoundError: unknown item
            ValidationError: the item is a folder
        """
        with self.db.transaction():
            item = self.items.get(item_id)
            if item is None:
                raise NotFoundError("item", item_id)
            if not item.item_type.is_openable:
                raise ValidationError(
                    f"Cannot open {item.item_type.value} item {item_id}", field="item_type"
                )
            self.items.record_access(item_id, datetime.now())
            item = self.items.get(item_id)

        logger.debug(f"Recorded access to item {item_id} ({item.access_count} total)")
        return item

    # ============================================
    # Tags
    # ============================================

    def set_tags_for_item(self, item_id: int, labels: str | Iterable[str] | None) -> TagSyncResult:
        return self.tagging.set_tags(item_id, labels)

    def set_tag_ids_for_item(self, item_id: int, tag_ids: Iterable[int]) -> TagSyncResult:
        return self.tagging.set_tag_ids(item_id, tag_ids)

    def add_tag_to_item(self, item_id: int, tag_id: int) -> bool:
        return self.tagging.add_tag(item_id, tag_id)

    def remove_tag_from_item(self, item_id: int, tag_id: int) -> bool:
        return self.tagging.remove_tag(item_id, tag_id)

    def get_tags_for_item(self, item_id: int) -> list[Tag]:
        return self.tagging.tags_for_item(item_id)

    def get_tag(self, tag_id: int) -> Tag | None:
        return self.tagging.get_tag(tag_id)

    def get_tag_by_name(self, name: str) -> Tag | None:
        return self.tagging.get_tag_by_name(name)

    def get_all_tags(self) -> list[Tag]:
        return self.tagging.all_tags()

    def search_tags(self, term: str) -> list[Tag]:
        return self.tagging.search_tags(term)

    def create_tag(self, name: str, color: str | None = None, description: str | None = None) -> Tag:
        return self.tagging.create_tag(name, color, description)

    def update_tag(self, tag: Tag) -> Tag:
        return self.tagging.update_tag(tag)

    def delete_tag(self, tag_id: int) -> bool:
        return self.tagging.delete_tag(tag_id)

    def get_tag_usage(self, tag_id: int) -> int:
        return self.tags.usage_count(tag_id)

    # ============================================
    # Import / Export
    # ============================================

    def import_document(
        self,
        data: bytes | str | Mapping[str, Any],
        options: ImportOptions | None = None,
    ) -> ImportSummary:
        return self.importer.import_document(data, options)

    def export_document(self) -> bytes:
        return self.exporter.export_document()

    # ============================================
    # Diagnostics
    # ============================================

    def check_invariants(self) -> list[str]:
        return self.tree.check_invariants()

    def stats(self) -> dict[str, int]:
        """Item counts per type plus tag count."""
        counts: dict[str, int] = {}
        for item in self.items.list_all():
            counts[item.item_type.value] = counts.get(item.item_type.value, 0) + 1
        counts["tags"] = len(self.tags.list_all())
        return counts


# Global store instance
_store: LinkStore | None = None


def get_store() -> LinkStore:
    """Get or create the store for the configured data directory."""
    global _store
    if _store is None:
        _store = LinkStore()
    return _store


def reset_store() -> None:
    """Forget the global store (next get_store() reopens it)."""
    global _store
    _store = None
