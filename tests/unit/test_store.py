"""Tests for the LinkStore facade."""

import pytest

from linkshelf.core.errors import CircularReferenceError, NotFoundError, ValidationError
from linkshelf.core.types import Item, ItemType
from linkshelf.services.store import LinkStore


class TestCreateItem:
    """Tests for item creation."""

    def test_create_with_tags(self, store: LinkStore, make_item):
        """Test creating an item and its tags together."""
        item = store.create_item(make_item("docs"), tags=["python"])

        assert item.id is not None
        assert item.sort_order == 1
        assert [t.name for t in store.get_tags_for_item(item.id)] == ["python"]

    def test_counters_reset(self, store: LinkStore, make_item):
        """Test that new items start unopened."""
        item = store.create_item(make_item("docs", access_count=7))

        assert item.access_count == 0
        assert item.last_accessed_at is None

    def test_invalid_item(self, store: LinkStore, make_item):
        """Test that validation failures store nothing."""
        with pytest.raises(ValidationError):
            store.create_item(make_item("docs", url=""))
        assert store.get_all_items() == []

    def test_bad_tag_rolls_back(self, store: LinkStore, make_item):
        """Test that an invalid tag label undoes the create."""
        with pytest.raises(ValidationError):
            store.create_item(make_item("docs"), tags=["x" * 101])
        assert store.get_all_items() == []


class TestUpdateItem:
    """Tests for item updates."""

    def test_update_fields(self, store: LinkStore, make_item):
        """Test overwriting plain fields."""
        item = store.create_item(make_item("docs"))

        updated = store.update_item(item.model_copy(update={
            "name": "Python docs",
            "description": "Reference",
        }))

        assert updated.name == "Python docs"
        assert store.get_item(item.id).description == "Reference"
        assert store.get_item(item.id).created_at == item.created_at

    def test_change_type_to_folder_drops_url(self, store: LinkStore, make_item):
        """Test that per-type rules apply on update."""
        item = store.create_item(make_item("docs"))

        store.update_item(item.model_copy(update={"item_type": ItemType.FOLDER}))

        assert store.get_item(item.id).url is None

    def test_parent_change_is_a_move(self, store: LinkStore, sample_tree):
        """Test that re-parenting through update gets the cycle check."""
        f1, c1 = sample_tree["F1"], sample_tree["C1"]

        with pytest.raises(CircularReferenceError):
            store.update_item(f1.model_copy(update={"parent_id": c1.id}))

        r1 = sample_tree["R1"]
        moved = store.update_item(r1.model_copy(update={"parent_id": f1.id}))
        assert moved.parent_id == f1.id
        assert moved.sort_order == 3

    def test_field_edit_keeps_position(self, store: LinkStore, make_item):
        """Test that an update with the default sort order does not reposition."""
        a = store.create_item(make_item("A"))
        store.create_item(make_item("B"))
        store.create_item(make_item("C"))

        updated = store.update_item(Item(id=a.id, name="A2", url=a.url))

        assert updated.sort_order == 1
        assert [i.name for i in store.get_root_items()] == ["A2", "B", "C"]

    def test_explicit_position_reorders(self, store: LinkStore, make_item):
        """Test that a positive sort order moves the item within its group."""
        store.create_item(make_item("A"))
        store.create_item(make_item("B"))
        c = store.create_item(make_item("C"))

        store.update_item(c.model_copy(update={"sort_order": 1}))

        assert [i.name for i in store.get_root_items()] == ["C", "A", "B"]
        assert [i.sort_order for i in store.get_root_items()] == [1, 2, 3]

    def test_counters_not_writable(self, store: LinkStore, make_item):
        """Test that update keeps the stored access counters."""
        item = store.create_item(make_item("docs"))
        store.record_access(item.id)

        store.update_item(item.model_copy(update={"access_count": 100}))

        assert store.get_item(item.id).access_count == 1

    def test_unknown(self, store: LinkStore, make_item):
        """Test updating a missing item."""
        with pytest.raises(NotFoundError):
            store.update_item(make_item("ghost", id=999))


class TestAccess:
    """Tests for access tracking."""

    def test_record_access(self, store: LinkStore, make_item):
        """Test counting opens."""
        item = store.create_item(make_item("docs"))

        store.record_access(item.id)
        opened = store.record_access(item.id)

        assert opened.access_count == 2
        assert opened.last_accessed_at is not None
        assert [i.id for i in store.get_recently_accessed()] == [item.id]
        assert [i.id for i in store.get_most_accessed(5)] == [item.id]

    def test_record_access_unknown(self, store: LinkStore):
        """Test opening a missing item."""
        with pytest.raises(NotFoundError):
            store.record_access(999)

    def test_search_blank(self, store: LinkStore, sample_tree):
        """Test that a blank search finds nothing."""
        assert store.search_items("   ") == []

    def test_stats(self, store: LinkStore, sample_tree):
        """Test per-type counts."""
        store.set_tags_for_item(sample_tree["R1"].id, "x")

        assert store.stats() == {"Folder": 3, "WebUrl": 3, "tags": 1}

    def test_folder_cannot_be_opened(self, store: LinkStore, make_item):
        """Test that opening a folder fails and leaves its counter alone."""
        folder = store.create_item(make_item("Work", ItemType.FOLDER))

        with pytest.raises(ValidationError):
            store.record_access(folder.id)

        stored = store.get_item(folder.id)
        assert stored.access_count == 0
        assert stored.last_accessed_at is None
        assert store.get_recently_accessed() == []

    def test_access_limits(self, store: LinkStore, sample_tree):
        """Test that zero and negative limits return nothing."""
        for name in ["L1", "G1", "R1"]:
            store.record_access(sample_tree[name].id)

        assert store.get_most_accessed(0) == []
        assert store.get_recently_accessed(0) == []
        assert store.get_most_accessed(-1) == []
        assert len(store.get_most_accessed(2)) == 2
        assert len(store.get_most_accessed()) == 3
