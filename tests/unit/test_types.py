"""Tests for core types, validation and document models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from linkshelf.core.document import DocumentItem, ImportDocument, original_key
from linkshelf.core.errors import CircularReferenceError, NotFoundError, ValidationError
from linkshelf.core.types import DuplicatePolicy, Item, ItemType
from linkshelf.services.validation import prepare_item


class TestItemType:
    """Tests for ItemType."""

    def test_parse_is_case_insensitive(self):
        """Test that wire names and member names parse in any case."""
        assert ItemType.parse("WebUrl") is ItemType.WEB_URL
        assert ItemType.parse("weburl") is ItemType.WEB_URL
        assert ItemType.parse("web_url") is ItemType.WEB_URL
        assert ItemType.parse(" folder ") is ItemType.FOLDER

    def test_parse_unknown(self):
        """Test that unknown names are rejected."""
        with pytest.raises(ValueError):
            ItemType.parse("Spreadsheet")

    def test_url_requirements(self):
        """Test per-type url rules."""
        assert ItemType.WEB_URL.requires_url
        assert ItemType.SYSTEM_LOCATION.requires_url
        assert not ItemType.FOLDER.requires_url
        assert not ItemType.NOTES.requires_url
        assert not ItemType.TERMINAL.requires_url
        assert not ItemType.FOLDER.keeps_url
        assert ItemType.NOTES.keeps_url

    def test_openable(self):
        """Test that only folders are not openable."""
        assert not ItemType.FOLDER.is_openable
        assert all(t.is_openable for t in ItemType if t is not ItemType.FOLDER)


class TestDuplicatePolicy:
    """Tests for DuplicatePolicy parsing."""

    def test_parse_spellings(self):
        """Test that common spellings resolve."""
        assert DuplicatePolicy.parse("skip") is DuplicatePolicy.SKIP
        assert DuplicatePolicy.parse("Rename") is DuplicatePolicy.RENAME
        assert DuplicatePolicy.parse("UpdateExisting") is DuplicatePolicy.UPDATE_EXISTING
        assert DuplicatePolicy.parse("update-existing") is DuplicatePolicy.UPDATE_EXISTING

    def test_parse_unknown(self):
        """Test that unknown policies are rejected."""
        with pytest.raises(ValueError):
            DuplicatePolicy.parse("merge")


class TestPrepareItem:
    """Tests for item validation."""

    def test_name_required(self):
        """Test that a blank name is rejected."""
        with pytest.raises(ValidationError) as exc:
            prepare_item(Item(name="   ", item_type=ItemType.FOLDER))
        assert exc.value.field == "name"

    def test_url_required_for_links(self):
        """Test that link types need a url."""
        with pytest.raises(ValidationError) as exc:
            prepare_item(Item(name="Docs", item_type=ItemType.WEB_URL))
        assert exc.value.field == "url"

    def test_command_required_for_terminal(self):
        """Test that terminal items need a command."""
        with pytest.raises(ValidationError) as exc:
            prepare_item(Item(name="Shell", item_type=ItemType.TERMINAL))
        assert exc.value.field == "command"

    def test_terminal_default_type(self):
        """Test that terminals get the default terminal type."""
        item = prepare_item(
            Item(name="Build", item_type=ItemType.TERMINAL, command="make"),
            default_terminal="bash",
        )
        assert item.terminal_type == "bash"
        assert item.url is None

    def test_folder_drops_url_and_command(self):
        """Test that folders never keep a url or command."""
        item = prepare_item(Item(
            name="Stuff",
            item_type=ItemType.FOLDER,
            url="https://example.com",
            command="ls",
        ))
        assert item.url is None
        assert item.command is None

    def test_notes_without_url(self):
        """Test that notes are valid without a url."""
        item = prepare_item(Item(name="Memo", item_type=ItemType.NOTES, notes="text"))
        assert item.notes == "text"

    def test_trims_fields(self):
        """Test that text fields are trimmed and blanks become None."""
        item = prepare_item(Item(
            name="  Docs  ",
            url=" https://docs.python.org ",
            description="   ",
        ))
        assert item.name == "Docs"
        assert item.url == "https://docs.python.org"
        assert item.description is None

    def test_name_too_long(self):
        """Test the name length limit."""
        with pytest.raises(ValidationError):
            prepare_item(Item(name="x" * 256, item_type=ItemType.FOLDER))


class TestDocumentModels:
    """Tests for import document parsing."""

    def test_original_key(self):
        """Test foreign id normalization."""
        assert original_key(5) == "5"
        assert original_key("abc") == "abc"
        assert original_key(0) is None
        assert original_key("") is None
        assert original_key(None) is None

    def test_legacy_shape(self):
        """Test that the loose shape with links/title/linkType parses."""
        document = ImportDocument.model_validate({
            "links": [
                {"title": "Home", "url": "https://example.com", "linkType": "website",
                 "tags": ["a", {"name": "b"}]},
            ],
        })
        record = document.items[0]
        assert record.name == "Home"
        assert record.link_type == "website"
        assert record.tags == ["a", "b"]
        assert document.tags == []

    def test_camel_case_fields(self):
        """Test that exported camelCase keys populate the fields."""
        record = DocumentItem.model_validate({
            "id": 3,
            "name": "Child",
            "parentId": 1,
            "sortOrder": 2,
            "terminalType": "bash",
            "tagIds": [1, 2],
            "accessCount": None,
        })
        assert record.parent_id == 1
        assert record.sort_order == 2
        assert record.terminal_type == "bash"
        assert record.tag_ids == [1, 2]
        assert record.access_count == 0

    def test_items_required(self):
        """Test that a document without items is rejected."""
        with pytest.raises(PydanticValidationError):
            ImportDocument.model_validate({"tags": []})


class TestErrors:
    """Tests for error messages and fields."""

    def test_not_found_fields(self):
        """Test NotFoundError carries kind and id."""
        error = NotFoundError("item", 42)
        assert error.kind == "item"
        assert error.id == 42
        assert "42" in str(error)

    def test_circular_reference_self(self):
        """Test the self-parent message."""
        error = CircularReferenceError(3, 3)
        assert "own parent" in str(error)
        assert error.item_id == 3
        assert error.ancestor_id == 3
