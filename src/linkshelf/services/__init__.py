"""
Services module - Tree, ordering, tagging, import/export and the store facade.
"""

from linkshelf.services.exporter import Exporter
from linkshelf.services.importer import ImportEngine, ImportOptions, ImportSummary
from linkshelf.services.ordering import Renumbering, SortOrderManager
from linkshelf.services.store import LinkStore, get_store
from linkshelf.services.tagging import TagManager, TagSyncResult, normalize_color, parse_labels
from linkshelf.services.tree import TreeEngine
from linkshelf.services.validation import prepare_item

__all__ = [
    "Exporter",
    "ImportEngine",
    "ImportOptions",
    "ImportSummary",
    "Renumbering",
    "SortOrderManager",
    "LinkStore",
    "get_store",
    "TagManager",
    "TagSyncResult",
    "normalize_color",
    "parse_labels",
    "TreeEngine",
    "prepare_item",
]
