"""
Wire models for the import/export document.

The exported shape is versioned and camelCase:

    {
      "version": "1.0",
      "exportedAt": "...",
      "tags":  [{"id", "name", "color"}],
      "items": [{"id", "name", "url", "type", "parentId", ..., "tagIds"}]
    }

Import additionally tolerates the looser shape produced by other tools:
"title" instead of "name", "links" instead of "items", "tags" as a list of
names instead of "tagIds", and "linkType" with its own vocabulary.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def original_key(value: Any) -> str | None:
    """Normalize a foreign id (int or string) to a mapping key."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    key = str(value).strip()
    if not key or key == "0":
        # 0 never identifies a record (matches exporters that use 0 for "none")
        return None
    return key


class _DocumentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DocumentTag(_DocumentModel):
    """A tag record in an import/export document."""

    id: int | str | None = None
    name: str | None = None
    color: str | None = None


class DocumentItem(_DocumentModel):
    """An item record in an import/export document."""

    id: int | str | None = None
    name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("name", "title", "Name", "Title"),
    )
    url: str | None = None
    type: str | None = None
    link_type: str | None = None
    parent_id: int | str | None = None
    description: str | None = None
    notes: str | None = None
    command: str | None = None
    terminal_type: str | None = None
    icon_path: str | None = None
    sort_order: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_accessed_at: datetime | None = None
    access_count: int = 0
    tag_ids: list[int | str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _tag_names(cls, value: Any) -> Any:
        # Some producers emit tag objects rather than bare names
        if isinstance(value, list):
            return [v.get("name", "") if isinstance(v, dict) else v for v in value]
        if isinstance(value, str):
            return value.split(",")
        if value is None:
            return []
        return value

    @field_validator("tag_ids", mode="before")
    @classmethod
    def _tag_ids(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("access_count", mode="before")
    @classmethod
    def _access_count(cls, value: Any) -> Any:
        return 0 if value is None else value


class ImportDocument(_DocumentModel):
    """Top-level import document (strict enough to reject non-exports)."""

    version: str | None = None
    exported_at: datetime | None = None
    items: list[DocumentItem] = Field(
        validation_alias=AliasChoices("items", "links", "Items", "Links"),
    )
    tags: list[DocumentTag] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def _version_text(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_list(cls, value: Any) -> Any:
        return [] if value is None else value


class ExportDocument(_DocumentModel):
    """Top-level export document."""

    version: str
    exported_at: datetime
    application: str = "LinkShelf"
    tags: list[DocumentTag]
    items: list[DocumentItem]
    statistics: dict[str, int] = Field(default_factory=dict)


__all__ = [
    "original_key",
    "DocumentTag",
    "DocumentItem",
    "ImportDocument",
    "ExportDocument",
]
