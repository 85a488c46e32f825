"""
SQLite Database - schema, connections and transactions.

The database holds three tables:
- items: the hierarchy (flat rows, parent_id is a plain column)
- tags: shared label pool, unique on the case-folded name
- item_tags: many-to-many associations

Repositories obtain connections through `connection()`. Inside a
`transaction()` every nested `connection()` on the same thread reuses the
transaction's connection, so a multi-step mutation commits or rolls back
as one unit.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from linkshelf.core.config import settings, get_logger

logger = get_logger("storage.database")


class Database:
    """
    SQLite database shared by the item and tag repositories.

    Writers are serialized by a per-store re-entrant lock; the database runs
    in WAL mode so readers on other connections keep working while a
    transaction is open.
    """

    def __init__(self, db_path: Path | None = None):
        """Initialize the database, creating the schema when missing."""
        self.db_path = db_path or settings.db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._write_lock = threading.RLock()
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    item_type TEXT NOT NULL,
                    url TEXT,
                    command TEXT,
                    terminal_type TEXT,
                    description TEXT,
                    notes TEXT,
                    icon_path TEXT,
                    parent_id INTEGER,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    last_accessed_at TEXT,
                    access_count INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY (parent_id) REFERENCES items(id) ON DELETE RESTRICT
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_items_parent ON items(parent_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_items_sort ON items(sort_order)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_items_parent_sort ON items(parent_id, sort_order)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_items_type ON items(item_type)")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS tags (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    name_key TEXT NOT NULL UNIQUE,
                    color TEXT NOT NULL,
                    description TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS item_tags (
                    item_id INTEGER NOT NULL,
                    tag_id INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (item_id, tag_id),
                    FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE,
                    FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_item_tags_tag ON item_tags(tag_id)")

        logger.debug(f"Database ready at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with row factory.

        Reuses the thread's open connection when called inside another
        `connection()` or `transaction()` block; the outermost block commits
        on success and rolls back on any exception.
        """
        current = getattr(self._local, "conn", None)
        if current is not None:
            yield current
            return

        conn = self._connect()
        self._local.conn = conn
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Run a block as one atomic write.

        Holds the store's write lock for the duration. Nested transactions
        join the outer one.
        """
        with self._write_lock:
            with self.connection() as conn:
                if not conn.in_transaction:
                    conn.execute("BEGIN IMMEDIATE")
                yield conn

    @property
    def in_transaction(self) -> bool:
        conn = getattr(self._local, "conn", None)
        return conn is not None and conn.in_transaction
