"""
Tag Association Manager - label parsing, tag CRUD and reconciliation.

An item's tags are set from a free-text label list. Labels resolve to
tags case-insensitively; missing tags are created on the fly with a colour
picked from the configured palette. Reconciliation only touches the
associations that differ, so repeating a call is a no-op.
"""

import re
import zlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from linkshelf.core.config import get_logger
from linkshelf.core.errors import NotFoundError, TagInUseError, ValidationError
from linkshelf.core.types import MAX_TAG_NAME_LENGTH, Tag
from linkshelf.storage.database import Database
from linkshelf.storage.items import ItemRepository
from linkshelf.storage.tags import TagRepository, name_key

logger = get_logger("services.tagging")

_HEX_COLOR = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


def is_valid_color(color: str | None) -> bool:
    return bool(color) and _HEX_COLOR.match(color) is not None


def normalize_color(color: str | None, default: str = "#808080") -> str:
    """
    Normalize a hex colour to #RRGGBB.

    "ff5733" -> "#FF5733", "#abc" -> "#AABBCC". Anything unparseable
    falls back to `default`.
    """
    if not color or not color.strip():
        return default

    color = color.strip()
    if not color.startswith("#"):
        color = "#" + color

    if not is_valid_color(color):
        return default

    if len(color) == 4:
        color = "#" + "".join(ch * 2 for ch in color[1:])

    return color.upper()


def parse_labels(labels: str | Iterable[str] | None) -> list[str]:
    """
    Turn a label list into distinct tag names.

    A string is split on commas. Entries are trimmed, empties dropped and
    duplicates removed ignoring case; the first spelling wins.
    """
    if labels is None:
        return []
    parts = labels.split(",") if isinstance(labels, str) else list(labels)

    names: list[str] = []
    seen: set[str] = set()
    for raw in parts:
        if raw is None:
            continue
        if not isinstance(raw, str):
            raise ValidationError(f"Tag label must be text, got {type(raw).__name__}", field="tags")
        label = raw.strip()
        if not label:
            continue
        if len(label) > MAX_TAG_NAME_LENGTH:
            raise ValidationError(
                f"Tag name exceeds {MAX_TAG_NAME_LENGTH} characters: {label[:20]}...",
                field="tags",
            )
        key = name_key(label)
        if key in seen:
            continue
        seen.add(key)
        names.append(label)
    return names


@dataclass
class TagSyncResult:
    """What a tag reconciliation changed on one item."""

    item_id: int
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class TagManager:
    """Owns tags and their association with items."""

    def __init__(
        self,
        db: Database,
        items: ItemRepository,
        tags: TagRepository,
        palette: list[str],
        default_color: str = "#808080",
    ):
        self.db = db
        self.items = items
        self.tags = tags
        self.palette = [normalize_color(color, default_color) for color in palette]
        self.default_color = default_color

    def pick_color(self, name: str) -> str:
        """Stable palette colour for a tag name."""
        if not self.palette:
            return self.default_color
        digest = zlib.crc32(name_key(name).encode("utf-8"))
        return self.palette[digest % len(self.palette)]

    # ============================================
    # Associations
    # ============================================

    def set_tags(self, item_id: int, labels: str | Iterable[str] | None) -> TagSyncResult:
        """
        Make an item's tags exactly match a label list.

        Args:
            item_id: Item to tag
            labels: Sequence of labels or a comma-separated string

        Returns:
            TagSyncResult with added/removed/created tag names
        """
        names = parse_labels(labels)

        with self.db.transaction():
            if not self.items.exists(item_id):
                raise NotFoundError("item", item_id)

            created: list[str] = []
            desired: list[int] = []
            for label in names:
                tag = self.tags.get_by_name(label)
                if tag is None:
                    tag = self.tags.insert(Tag(name=label, color=self.pick_color(label)))
                    created.append(tag.name)
                desired.append(tag.id)

            result = self._reconcile(item_id, desired)
            result.created = created

        if result.changed:
            logger.info(
                f"Tags on item {item_id}: +{len(result.added)} -{len(result.removed)}"
                f" ({len(created)} new)"
            )
        return result

    def set_tag_ids(self, item_id: int, tag_ids: Iterable[int]) -> TagSyncResult:
        """Same as set_tags, for already-resolved tag ids."""
        desired = list(dict.fromkeys(tag_ids))

        with self.db.transaction():
            if not self.items.exists(item_id):
                raise NotFoundError("item", item_id)
            for tag_id in desired:
                if self.tags.get(tag_id) is None:
                    raise NotFoundError("tag", tag_id)
            return self._reconcile(item_id, desired)

    def _require_pair(self, item_id: int, tag_id: int) -> Tag:
        if not self.items.exists(item_id):
            raise NotFoundError("item", item_id)
        tag = self.tags.get(tag_id)
        if tag is None:
            raise NotFoundError("tag", tag_id)
        return tag

    def add_tag(self, item_id: int, tag_id: int) -> bool:
        """
        Attach one tag to an item, leaving its other tags alone.

        Returns False if the item already carries the tag.
        """
        with self.db.transaction():
            tag = self._require_pair(item_id, tag_id)
            added = self.tags.associate(item_id, tag_id)
            if added:
                self.items.touch(item_id, datetime.now())

        if added:
            logger.info(f"Tagged item {item_id} with {tag.name}")
        return added

    def remove_tag(self, item_id: int, tag_id: int) -> bool:
        """Detach one tag from an item. False if it wasn't attached."""
        with self.db.transaction():
            tag = self._require_pair(item_id, tag_id)
            removed = self.tags.dissociate(item_id, tag_id)
            if removed:
                self.items.touch(item_id, datetime.now())

        if removed:
            logger.info(f"Removed tag {tag.name} from item {item_id}")
        return removed

    def _reconcile(self, item_id: int, desired: list[int]) -> TagSyncResult:
        current = self.tags.tag_ids_for_item(item_id)
        wanted = set(desired)
        result = TagSyncResult(item_id=item_id)

        for tag_id in sorted(current - wanted):
            self.tags.dissociate(item_id, tag_id)
            result.removed.append(self.tags.get(tag_id).name)

        for tag_id in desired:
            if tag_id in current:
                continue
            if self.tags.associate(item_id, tag_id):
                result.added.append(self.tags.get(tag_id).name)

        if result.changed:
            self.items.touch(item_id, datetime.now())
        return result

    def tags_for_item(self, item_id: int) -> list[Tag]:
        return self.tags.tags_for_item(item_id)

    # ============================================
    # Tag CRUD
    # ============================================

    def get_tag(self, tag_id: int) -> Tag | None:
        return self.tags.get(tag_id)

    def get_tag_by_name(self, name: str) -> Tag | None:
        return self.tags.get_by_name(name)

    def all_tags(self) -> list[Tag]:
        return self.tags.list_all()

    def search_tags(self, term: str) -> list[Tag]:
        return self.tags.search(term)

    def _validate_name(self, name: str | None) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tag name is required", field="name")
        if len(name) > MAX_TAG_NAME_LENGTH:
            raise ValidationError(
                f"Tag name exceeds {MAX_TAG_NAME_LENGTH} characters", field="name"
            )
        return name

    def create_tag(
        self,
        name: str,
        color: str | None = None,
        description: str | None = None,
    ) -> Tag:
        """
        Create a tag explicitly.

        Raises:
            ValidationError: empty or too long name, or the name is taken
        """
        name = self._validate_name(name)
        color = normalize_color(color, self.default_color) if color else self.pick_color(name)

        with self.db.transaction():
            if self.tags.get_by_name(name) is not None:
                raise ValidationError(f"A tag named '{name}' already exists", field="name")
            tag = self.tags.insert(Tag(
                name=name,
                color=color,
                description=(description or "").strip() or None,
            ))

        logger.info(f"Created tag {tag.id}: {tag.name} ({tag.color})")
        return tag

    def update_tag(self, tag: Tag) -> Tag:
        """Rename, recolour or redescribe an existing tag."""
        if tag.id is None:
            raise ValidationError("Tag id is required for update", field="id")
        name = self._validate_name(tag.name)

        with self.db.transaction():
            existing = self.tags.get(tag.id)
            if existing is None:
                raise NotFoundError("tag", tag.id)

            clash = self.tags.get_by_name(name)
            if clash is not None and clash.id != tag.id:
                raise ValidationError(f"A tag named '{name}' already exists", field="name")

            updated = self.tags.update(existing.model_copy(update={
                "name": name,
                "color": normalize_color(tag.color, self.default_color),
                "description": (tag.description or "").strip() or None,
                "updated_at": datetime.now(),
            }))

        logger.info(f"Updated tag {updated.id}: {updated.name}")
        return updated

    def delete_tag(self, tag_id: int) -> bool:
        """
        Delete an unused tag.

        Returns False for an unknown id.

        Raises:
            TagInUseError: items still carry the tag
        """
        with self.db.transaction():
            if self.tags.get(tag_id) is None:
                return False
            usage = self.tags.usage_count(tag_id)
            if usage > 0:
                raise TagInUseError(tag_id, usage)
            self.tags.remove(tag_id)

        logger.info(f"Deleted tag {tag_id}")
        return True
