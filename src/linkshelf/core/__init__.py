"""
Core module - Configuration, types, errors and document wire models.
"""

from linkshelf.core.config import settings, get_logger, setup_logging
from linkshelf.core.errors import (
    CircularReferenceError,
    FolderNotEmptyError,
    ImportFormatError,
    LinkShelfError,
    NotFoundError,
    TagInUseError,
    ValidationError,
)
from linkshelf.core.types import (
    DuplicatePolicy,
    Item,
    ItemSummary,
    ItemType,
    Tag,
)

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "LinkShelfError",
    "ValidationError",
    "NotFoundError",
    "FolderNotEmptyError",
    "CircularReferenceError",
    "ImportFormatError",
    "TagInUseError",
    "DuplicatePolicy",
    "Item",
    "ItemSummary",
    "ItemType",
    "Tag",
]
