"""
Storage Layer - SQLite database and repositories.

The storage hierarchy:
1. Database → schema, connections, atomic transactions, write lock
2. ItemRepository → keyed item rows (the flat arena of the hierarchy)
3. TagRepository → tag rows and item/tag associations

Repositories carry no business rules; services enforce the invariants.
"""

from linkshelf.storage.database import Database
from linkshelf.storage.items import ItemRepository
from linkshelf.storage.tags import TagRepository

__all__ = [
    "Database",
    "ItemRepository",
    "TagRepository",
]
