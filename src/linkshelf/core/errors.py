"""
Error taxonomy for the item store.

Every failure surfaced by the store derives from LinkShelfError so callers
(CLI, UI, service layers) can catch one type and still inspect the
structured fields of the specific error.
"""

from typing import Any


class LinkShelfError(Exception):
    """Base class for all store errors."""


class ValidationError(LinkShelfError):
    """Input failed validation (missing required field, bad label, ...)."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(LinkShelfError):
    """An operation referenced an id that does not exist."""

    def __init__(self, kind: str, ident: Any):
        super().__init__(f"{kind.capitalize()} {ident} not found")
        self.kind = kind
        self.id = ident


class FolderNotEmptyError(LinkShelfError):
    """Simple delete attempted on an item that still has children."""

    def __init__(self, item_id: int, children: list[Any]):
        super().__init__(
            f"Item {item_id} has {len(children)} child item(s). "
            "Move or delete them first, or delete recursively."
        )
        self.item_id = item_id
        self.children = children


class CircularReferenceError(LinkShelfError):
    """A move would make an item its own ancestor."""

    def __init__(self, item_id: int, ancestor_id: int):
        if item_id == ancestor_id:
            message = f"Item {item_id} cannot be its own parent"
        else:
            message = f"Cannot move item {item_id} under its descendant {ancestor_id}"
        super().__init__(message)
        self.item_id = item_id
        self.ancestor_id = ancestor_id


class ImportFormatError(LinkShelfError):
    """Import document is unreadable or missing required fields."""


class TagInUseError(LinkShelfError):
    """Tag deletion refused because items still carry the tag."""

    def __init__(self, tag_id: int, usage: int):
        super().__init__(
            f"Tag {tag_id} is assigned to {usage} item(s). Remove it from those items first."
        )
        self.tag_id = tag_id
        self.usage = usage


__all__ = [
    "LinkShelfError",
    "ValidationError",
    "NotFoundError",
    "FolderNotEmptyError",
    "CircularReferenceError",
    "ImportFormatError",
    "TagInUseError",
]
