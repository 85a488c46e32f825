"""
Item validation - required fields and limits per item type.
"""

from linkshelf.core.errors import ValidationError
from linkshelf.core.types import (
    MAX_COMMAND_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_ICON_PATH_LENGTH,
    MAX_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_TERMINAL_TYPE_LENGTH,
    MAX_URL_LENGTH,
    Item,
    ItemType,
)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_length(field: str, value: str | None, limit: int) -> None:
    if value is not None and len(value) > limit:
        raise ValidationError(f"{field} exceeds {limit} characters", field=field)


def prepare_item(item: Item, default_terminal: str = "PowerShell") -> Item:
    """
    Validate an item and normalize its type-dependent fields.

    Folders drop url/command, non-terminal items drop command and
    terminal_type, terminals get a default terminal type.

    Raises:
        ValidationError: missing name, url or command, or a field too long
    """
    name = (item.name or "").strip()
    if not name:
        raise ValidationError("Item name is required", field="name")

    url = _clean(item.url)
    command = _clean(item.command)
    terminal_type = _clean(item.terminal_type)

    match item.item_type:
        case ItemType.FOLDER | ItemType.NOTES:
            command = None
            terminal_type = None
        case ItemType.TERMINAL:
            if not command:
                raise ValidationError("Command is required for Terminal items", field="command")
            terminal_type = terminal_type or default_terminal
        case (
            ItemType.WEB_URL
            | ItemType.FILE_PATH
            | ItemType.FOLDER_PATH
            | ItemType.APPLICATION
            | ItemType.WINDOWS_STORE_APP
            | ItemType.SYSTEM_LOCATION
        ):
            if not url:
                raise ValidationError(
                    f"URL is required for {item.item_type.value} items", field="url"
                )
            command = None
            terminal_type = None

    if not item.item_type.keeps_url:
        url = None

    description = _clean(item.description)
    notes = item.notes if item.notes and item.notes.strip() else None
    icon_path = _clean(item.icon_path)

    _check_length("name", name, MAX_NAME_LENGTH)
    _check_length("url", url, MAX_URL_LENGTH)
    _check_length("command", command, MAX_COMMAND_LENGTH)
    _check_length("terminal_type", terminal_type, MAX_TERMINAL_TYPE_LENGTH)
    _check_length("description", description, MAX_DESCRIPTION_LENGTH)
    _check_length("notes", notes, MAX_NOTES_LENGTH)
    _check_length("icon_path", icon_path, MAX_ICON_PATH_LENGTH)

    return item.model_copy(update={
        "name": name,
        "url": url,
        "command": command,
        "terminal_type": terminal_type,
        "description": description,
        "notes": notes,
        "icon_path": icon_path,
    })
