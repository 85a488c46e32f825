"""
Export Serializer - snapshot the store as a versioned JSON document.
"""

import json
from datetime import datetime

from linkshelf.core.config import get_logger
from linkshelf.core.document import DocumentItem, DocumentTag, ExportDocument
from linkshelf.core.types import Item
from linkshelf.storage.database import Database
from linkshelf.storage.items import ItemRepository
from linkshelf.storage.tags import TagRepository

logger = get_logger("services.exporter")

# Import-only fields that never appear in an export
_IMPORT_ONLY = {"link_type", "tags"}


def preorder(items: list[Item]) -> list[Item]:
    """Order items so every parent precedes its children, siblings by position."""
    children: dict[int | None, list[Item]] = {}
    for item in items:
        children.setdefault(item.parent_id, []).append(item)
    for group in children.values():
        group.sort(key=lambda i: (i.sort_order, i.id))

    ordered: list[Item] = []
    seen: set[int] = set()
    stack = list(reversed(children.get(None, [])))
    while stack:
        node = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        ordered.append(node)
        stack.extend(reversed(children.get(node.id, [])))

    # Rows unreachable from a root (dangling parent) still get exported
    ordered.extend(item for item in items if item.id not in seen)
    return ordered


class Exporter:
    """Builds export documents from a consistent snapshot of the store."""

    def __init__(
        self,
        db: Database,
        items: ItemRepository,
        tags: TagRepository,
        version: str = "1.0",
        application: str = "LinkShelf",
    ):
        self.db = db
        self.items = items
        self.tags = tags
        self.version = version
        self.application = application

    def build(self) -> ExportDocument:
        with self.db.transaction():
            items = self.items.list_all()
            tags = self.tags.list_all()
            associations = self.tags.associations()

        records = [
            DocumentItem(
                id=item.id,
                name=item.name,
                url=item.url,
                type=item.item_type.value,
                parent_id=item.parent_id,
                description=item.description,
                notes=item.notes,
                command=item.command,
                terminal_type=item.terminal_type,
                icon_path=item.icon_path,
                sort_order=item.sort_order,
                created_at=item.created_at,
                updated_at=item.updated_at,
                last_accessed_at=item.last_accessed_at,
                access_count=item.access_count,
                tag_ids=associations.get(item.id, []),
            )
            for item in preorder(items)
        ]

        return ExportDocument(
            version=self.version,
            exported_at=datetime.now(),
            application=self.application,
            tags=[DocumentTag(id=tag.id, name=tag.name, color=tag.color) for tag in tags],
            items=records,
            statistics={"totalItems": len(records), "totalTags": len(tags)},
        )

    def export_document(self) -> bytes:
        """Serialize the whole store to UTF-8 JSON."""
        document = self.build()
        payload = document.model_dump(
            mode="json",
            by_alias=True,
            exclude={"items": {"__all__": _IMPORT_ONLY}},
        )
        logger.info(
            f"Exported {len(document.items)} item(s) and {len(document.tags)} tag(s)"
        )
        return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
