"""
Pytest configuration and fixtures for LinkShelf tests.
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# Set test environment before importing app modules
os.environ["LINKSHELF_DATA_DIR"] = tempfile.mkdtemp()
os.environ["LINKSHELF_LOG_LEVEL"] = "DEBUG"

from linkshelf.core.types import Item, ItemType  # noqa: E402
from linkshelf.services.store import LinkStore  # noqa: E402
from linkshelf.storage.database import Database  # noqa: E402


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary data directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db(temp_data_dir: Path) -> Database:
    """A fresh database in the temporary directory."""
    return Database(temp_data_dir / "test.sqlite")


@pytest.fixture
def store(temp_data_dir: Path) -> LinkStore:
    """A fresh LinkStore in the temporary directory."""
    return LinkStore(db_path=temp_data_dir / "store.sqlite")


@pytest.fixture
def make_item():
    """Factory for unsaved items."""
    def _make(
        name: str,
        item_type: ItemType = ItemType.WEB_URL,
        parent_id: int | None = None,
        **fields,
    ) -> Item:
        if item_type.requires_url and "url" not in fields:
            fields["url"] = f"https://example.com/{name.lower().replace(' ', '-')}"
        if item_type is ItemType.TERMINAL and "command" not in fields:
            fields["command"] = "echo hello"
        return Item(name=name, item_type=item_type, parent_id=parent_id, **fields)
    return _make


@pytest.fixture
def sample_tree(store: LinkStore, make_item) -> dict[str, Item]:
    """
    A small hierarchy:

        F1 (Folder)
          L1 (WebUrl)
          C1 (Folder)
            G1 (WebUrl)
        F2 (Folder)
        R1 (WebUrl)
    """
    f1 = store.create_item(make_item("F1", ItemType.FOLDER))
    l1 = store.create_item(make_item("L1", parent_id=f1.id))
    c1 = store.create_item(make_item("C1", ItemType.FOLDER, parent_id=f1.id))
    g1 = store.create_item(make_item("G1", parent_id=c1.id))
    f2 = store.create_item(make_item("F2", ItemType.FOLDER))
    r1 = store.create_item(make_item("R1"))
    return {"F1": f1, "L1": l1, "C1": c1, "G1": g1, "F2": f2, "R1": r1}
