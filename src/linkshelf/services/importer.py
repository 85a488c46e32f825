"""
Import Merge Engine - merge an exported document into the live store.

The import runs as a single transaction in four passes:
1. Tags: resolve document tags by name, create the missing ones
2. Container: optionally create a root folder that receives the import
3. Materialise: create every item in input order, recording
   original id -> new id
4. Rewire: move each created item under its mapped parent, in the
   document's sort order

Items may therefore reference parents that appear later in the document.
Any failure rolls back everything.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from linkshelf.core.config import get_logger
from linkshelf.core.document import DocumentItem, DocumentTag, ImportDocument, original_key
from linkshelf.core.errors import ImportFormatError, ValidationError
from linkshelf.core.types import LEGACY_LINK_TYPES, DuplicatePolicy, Item, ItemType, Tag
from linkshelf.services.tagging import TagManager, normalize_color
from linkshelf.services.tree import TreeEngine
from linkshelf.services.validation import prepare_item
from linkshelf.storage.database import Database
from linkshelf.storage.items import ItemRepository
from linkshelf.storage.tags import TagRepository, name_key

logger = get_logger("services.importer")


@dataclass
class ImportOptions:
    """How an import merges into existing data."""

    create_container: bool = True
    """Put the imported roots inside a new folder."""

    duplicate_policy: DuplicatePolicy = DuplicatePolicy.SKIP

    match_item_names: bool = False
    """Apply duplicate_policy to items whose name and type already exist."""

    source_name: str = "document"
    """Shown in the container folder name."""


@dataclass
class ImportSummary:
    """Result of an import."""

    items_created: int = 0
    items_skipped: int = 0
    items_updated: int = 0
    items_renamed: int = 0
    tags_created: int = 0
    tags_updated: int = 0
    container_id: int | None = None
    id_map: dict[str, int] = field(default_factory=dict)
    """Original id -> id in this store."""

    orphaned: list[str] = field(default_factory=list)
    """Original ids whose declared parent was not in the document."""

    @property
    def items_processed(self) -> int:
        return self.items_created + self.items_skipped + self.items_updated


def unique_name(base: str, taken: list[str]) -> str:
    """Return `base`, or `base (n)` with the first free n, ignoring case."""
    used = {name.casefold() for name in taken}
    if base.casefold() not in used:
        return base
    counter = 1
    while f"{base} ({counter})".casefold() in used:
        counter += 1
    return f"{base} ({counter})"


def resolve_item_type(record: DocumentItem) -> ItemType:
    """Item type of a record from `type`, legacy `linkType`, or its url."""
    if record.type:
        try:
            return ItemType.parse(record.type)
        except ValueError:
            logger.warning(f"Unknown item type {record.type!r}, inferring from url")
    elif record.link_type:
        return LEGACY_LINK_TYPES.get(record.link_type.strip().casefold(), ItemType.WEB_URL)
    return ItemType.WEB_URL if record.url else ItemType.FOLDER


class ImportEngine:
    """Merges import documents into the store."""

    def __init__(
        self,
        db: Database,
        items: ItemRepository,
        tags: TagRepository,
        tree: TreeEngine,
        tagging: TagManager,
        default_terminal: str = "PowerShell",
        container_prefix: str = "Import",
        tag_color: str = "#007ACC",
    ):
        self.db = db
        self.items = items
        self.tags = tags
        self.tree = tree
        self.tagging = tagging
        self.default_terminal = default_terminal
        self.container_prefix = container_prefix
        self.tag_color = tag_color

    # ============================================
    # Parsing
    # ============================================

    def parse(self, data: bytes | str | Mapping[str, Any]) -> ImportDocument:
        """
        Parse a document from JSON bytes/text or an already-decoded mapping.

        Raises:
            ImportFormatError: not JSON, not an object, missing the items
                array, or two records sharing an original id
        """
        if isinstance(data, (bytes, bytearray)):
            try:
                data = data.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise ImportFormatError(f"Document is not UTF-8: {e}") from e

        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ImportFormatError(f"Document is not valid JSON: {e}") from e

        if not isinstance(data, Mapping):
            raise ImportFormatError("Document must be a JSON object with an 'items' array")

        try:
            document = ImportDocument.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ImportFormatError(f"Invalid import document: {e}") from e

        self._check_original_ids(document)
        return document

    def _check_original_ids(self, document: ImportDocument) -> None:
        seen: set[str] = set()
        for record in document.items:
            key = original_key(record.id)
            if key is None:
                continue
            if key in seen:
                raise ImportFormatError(f"Duplicate item id in document: {key}")
            seen.add(key)

    # ============================================
    # Import
    # ============================================

    def import_document(
        self,
        data: bytes | str | Mapping[str, Any],
        options: ImportOptions | None = None,
    ) -> ImportSummary:
        """
        Merge a document into the store.

        Args:
            data: JSON bytes/text or a decoded mapping
            options: Container, duplicate policy and name matching

        Returns:
            ImportSummary with counts and the original -> new id map

        Raises:
            ImportFormatError: unreadable document
            ValidationError: a record fails item validation
            CircularReferenceError: the document's parent links form a cycle
        """
        options = options or ImportOptions()
        document = self.parse(data)
        summary = ImportSummary()

        logger.info(
            f"Importing {len(document.items)} item(s) and {len(document.tags)} tag(s)"
            f" from {options.source_name}"
        )

        with self.db.transaction():
            doc_tag_names = self._import_tags(document.tags, options, summary)

            container_id = None
            if options.create_container:
                container_id = self._create_container(options)
                summary.container_id = container_id

            pending: list[tuple[int, int, int, str]] = []
            for index, record in enumerate(document.items):
                created = self._materialise(
                    index, record, options, container_id, doc_tag_names, summary
                )
                parent_key = original_key(record.parent_id)
                if created is not None and parent_key is not None:
                    order = record.sort_order if record.sort_order is not None else 0
                    pending.append((order, index, created, parent_key))

            self._rewire(pending, document.items, container_id, summary)

        logger.info(
            f"Import complete: {summary.items_created} created, {summary.items_skipped} skipped,"
            f" {summary.items_updated} updated, {len(summary.orphaned)} orphaned"
        )
        return summary

    def _import_tags(
        self,
        records: list[DocumentTag],
        options: ImportOptions,
        summary: ImportSummary,
    ) -> dict[str, str]:
        """Create or reuse document tags. Returns document tag id -> tag name."""
        names: dict[str, str] = {}

        for record in records:
            name = (record.name or "").strip()
            if not name:
                continue

            existing = self.tags.get_by_name(name)
            if existing is None:
                color = normalize_color(record.color or self.tag_color, self.tag_color)
                tag = self.tagging.create_tag(name, color)
                summary.tags_created += 1
            elif options.duplicate_policy is DuplicatePolicy.UPDATE_EXISTING and record.color:
                tag = self.tags.update(existing.model_copy(update={
                    "color": normalize_color(record.color, existing.color),
                    "updated_at": datetime.now(),
                }))
                summary.tags_updated += 1
            else:
                tag = existing

            key = original_key(record.id)
            if key is not None:
                names[key] = tag.name

        return names

    def _create_container(self, options: ImportOptions) -> int:
        now = datetime.now()
        folder = prepare_item(Item(
            name=f"{self.container_prefix}: {options.source_name} ({now:%Y-%m-%d %H:%M})",
            item_type=ItemType.FOLDER,
            description=f"Imported from {options.source_name} on {now:%Y-%m-%d %H:%M}",
            created_at=now,
            updated_at=now,
        ))
        container = self.tree.insert(folder)
        logger.debug(f"Created import container {container.id}: {container.name}")
        return container.id

    def _record_labels(self, record: DocumentItem, doc_tag_names: dict[str, str]) -> list[str]:
        labels = list(record.tags)
        for tag_id in record.tag_ids:
            name = doc_tag_names.get(original_key(tag_id) or "")
            if name is not None:
                labels.append(name)
        return labels

    def _build_item(self, index: int, record: DocumentItem, parent_id: int | None) -> Item:
        name = (record.name or "").strip()
        if not name:
            raise ValidationError(f"Item record {index} has no name", field="name")

        now = datetime.now()
        item = Item(
            name=name,
            item_type=resolve_item_type(record),
            url=record.url,
            command=record.command,
            terminal_type=record.terminal_type,
            description=record.description,
            notes=record.notes,
            icon_path=record.icon_path,
            parent_id=parent_id,
            created_at=record.created_at or now,
            updated_at=now,
            last_accessed_at=record.last_accessed_at,
            access_count=max(record.access_count, 0),
        )
        try:
            return prepare_item(item, self.default_terminal)
        except ValidationError as e:
            raise ValidationError(f"Item record {index} ({name}): {e}", field=e.field) from e

    def _materialise(
        self,
        index: int,
        record: DocumentItem,
        options: ImportOptions,
        container_id: int | None,
        doc_tag_names: dict[str, str],
        summary: ImportSummary,
    ) -> int | None:
        """Create (or map) one record. Returns the new id when an item was created."""
        key = original_key(record.id)
        has_parent = original_key(record.parent_id) is not None
        item = self._build_item(index, record, None if has_parent else container_id)
        labels = self._record_labels(record, doc_tag_names)

        if options.match_item_names:
            existing = self.items.find_by_name(item.name, item.item_type)
            if existing is not None:
                match options.duplicate_policy:
                    case DuplicatePolicy.SKIP:
                        summary.items_skipped += 1
                        if key is not None:
                            summary.id_map[key] = existing.id
                        logger.debug(f"Skipped {item.name!r}: matches item {existing.id}")
                        return None
                    case DuplicatePolicy.UPDATE_EXISTING:
                        self._update_existing(existing, item, labels)
                        summary.items_updated += 1
                        if key is not None:
                            summary.id_map[key] = existing.id
                        return None
                    case DuplicatePolicy.RENAME:
                        renamed = unique_name(item.name, self.items.names_by_type(item.item_type))
                        item = item.model_copy(update={"name": renamed})
                        summary.items_renamed += 1

        created = self.tree.insert(item)
        if labels:
            self.tagging.set_tags(created.id, labels)

        summary.items_created += 1
        if key is not None:
            summary.id_map[key] = created.id
        return created.id

    def _update_existing(self, existing: Item, incoming: Item, labels: list[str]) -> None:
        updated = prepare_item(existing.model_copy(update={
            "url": incoming.url or existing.url,
            "description": incoming.description or existing.description,
            "notes": incoming.notes or existing.notes,
            "command": incoming.command or existing.command,
            "terminal_type": incoming.terminal_type or existing.terminal_type,
            "updated_at": datetime.now(),
        }), self.default_terminal)
        self.items.update(updated)
        if labels:
            self.tagging.set_tags(existing.id, labels)
        logger.debug(f"Updated existing item {existing.id}: {existing.name}")

    def _rewire(
        self,
        pending: list[tuple[int, int, int, str]],
        records: list[DocumentItem],
        container_id: int | None,
        summary: ImportSummary,
    ) -> None:
        """Move created items under their mapped parents, in document order."""
        for _, index, new_id, parent_key in sorted(pending, key=lambda p: (p[0], p[1])):
            parent_id = summary.id_map.get(parent_key)
            if parent_id is None:
                summary.orphaned.append(original_key(records[index].id) or str(index))
                logger.warning(
                    f"Item {records[index].name!r} references missing parent {parent_key}"
                )
                if container_id is not None:
                    self.tree.move(new_id, container_id)
                continue

            self.tree.move(new_id, parent_id)
