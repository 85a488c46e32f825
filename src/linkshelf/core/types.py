"""
Core type definitions for LinkShelf.

These types represent the stored ontology:
- Item (a node in the hierarchy: folder, link, note, terminal shortcut)
- Tag (a colored label shared between items)
- ItemSummary (lightweight record for reporting affected items)
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ============================================
# Enums
# ============================================

class ItemType(str, Enum):
    """Kinds of items in the hierarchy. Values are the wire names."""
    FOLDER = "Folder"
    WEB_URL = "WebUrl"
    FILE_PATH = "FilePath"
    FOLDER_PATH = "FolderPath"
    APPLICATION = "Application"
    WINDOWS_STORE_APP = "WindowsStoreApp"
    SYSTEM_LOCATION = "SystemLocation"
    NOTES = "Notes"
    TERMINAL = "Terminal"

    @classmethod
    def parse(cls, value: "str | ItemType") -> "ItemType":
        """Resolve a type name case-insensitively ("webUrl", "WEBURL", ...)."""
        if isinstance(value, ItemType):
            return value
        wanted = value.strip().casefold()
        for member in cls:
            if member.value.casefold() == wanted or member.name.casefold() == wanted:
                return member
        raise ValueError(f"Unknown item type: {value!r}")

    @property
    def requires_url(self) -> bool:
        """Whether items of this type must carry a non-empty url."""
        match self:
            case ItemType.FOLDER | ItemType.NOTES | ItemType.TERMINAL:
                return False
            case (
                ItemType.WEB_URL
                | ItemType.FILE_PATH
                | ItemType.FOLDER_PATH
                | ItemType.APPLICATION
                | ItemType.WINDOWS_STORE_APP
                | ItemType.SYSTEM_LOCATION
            ):
                return True

    @property
    def keeps_url(self) -> bool:
        """Whether a url is stored at all (folders never keep one)."""
        match self:
            case ItemType.FOLDER:
                return False
            case _:
                return True

    @property
    def is_openable(self) -> bool:
        """Folders are containers; everything else can be opened."""
        return self is not ItemType.FOLDER


# Vocabulary used by the loose import shape ("linkType")
LEGACY_LINK_TYPES: dict[str, ItemType] = {
    "website": ItemType.WEB_URL,
    "folder": ItemType.FOLDER,
    "application": ItemType.APPLICATION,
    "document": ItemType.FILE_PATH,
    "file": ItemType.FILE_PATH,
}


class DuplicatePolicy(str, Enum):
    """How import handles name collisions with existing records."""
    SKIP = "skip"                        # Keep existing, don't create
    RENAME = "rename"                    # Create with a numeric suffix
    UPDATE_EXISTING = "update_existing"  # Overwrite existing fields

    @classmethod
    def parse(cls, value: "str | DuplicatePolicy") -> "DuplicatePolicy":
        if isinstance(value, DuplicatePolicy):
            return value
        wanted = value.strip().replace("-", "_").casefold()
        for member in cls:
            if wanted in (member.value, member.value.replace("_", "")):
                return member
        raise ValueError(f"Unknown duplicate policy: {value!r}")


# ============================================
# Field limits
# ============================================

MAX_NAME_LENGTH = 255
MAX_URL_LENGTH = 2048
MAX_COMMAND_LENGTH = 2000
MAX_TERMINAL_TYPE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000
MAX_NOTES_LENGTH = 10000
MAX_ICON_PATH_LENGTH = 500
MAX_TAG_NAME_LENGTH = 100


# ============================================
# Models
# ============================================

class Item(BaseModel):
    """A node in the hierarchy."""

    model_config = ConfigDict(validate_assignment=True)

    id: int | None = None
    """Store-assigned identifier (None until inserted)."""

    name: str
    """Display name."""

    item_type: ItemType = ItemType.WEB_URL

    url: str | None = None
    """URL, file path, application path or shell location."""

    command: str | None = None
    """Command line (Terminal items only)."""

    terminal_type: str | None = None
    """Terminal flavour (Terminal items only)."""

    description: str | None = None
    notes: str | None = None
    icon_path: str | None = None

    parent_id: int | None = None
    """Parent item (None for root items)."""

    sort_order: int = 0
    """Position among siblings; 0 means "append" on create."""

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    last_accessed_at: datetime | None = None
    access_count: int = 0

    def summary(self) -> "ItemSummary":
        return ItemSummary(id=self.id, name=self.name, item_type=self.item_type)


class ItemSummary(BaseModel):
    """Identity of an item affected by an operation."""

    id: int
    name: str
    item_type: ItemType


class Tag(BaseModel):
    """A label that can be applied to items."""

    model_config = ConfigDict(validate_assignment=True)

    id: int | None = None
    name: str
    color: str = "#808080"
    """Hex color, e.g. #FF5733."""

    description: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


__all__ = [
    "ItemType",
    "LEGACY_LINK_TYPES",
    "DuplicatePolicy",
    "Item",
    "ItemSummary",
    "Tag",
    "MAX_NAME_LENGTH",
    "MAX_URL_LENGTH",
    "MAX_COMMAND_LENGTH",
    "MAX_TERMINAL_TYPE_LENGTH",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_NOTES_LENGTH",
    "MAX_ICON_PATH_LENGTH",
    "MAX_TAG_NAME_LENGTH",
]
