"""
LinkShelf

A local hierarchical store of links, folders, notes and terminal shortcuts,
with shared tags and lossless JSON import/export.
"""

__version__ = "0.1.0"

from linkshelf.core.config import settings
from linkshelf.core.types import (
    DuplicatePolicy,
    Item,
    ItemSummary,
    ItemType,
    Tag,
)
from linkshelf.services.importer import ImportOptions, ImportSummary
from linkshelf.services.store import LinkStore, get_store

__all__ = [
    "settings",
    "DuplicatePolicy",
    "Item",
    "ItemSummary",
    "ItemType",
    "Tag",
    "ImportOptions",
    "ImportSummary",
    "LinkStore",
    "get_store",
]
