"""Command table logic — wire-shape normalization, merge, and removal.

The remote command table is one flat namespace shared by every plugin.
Names are unique case-insensitively across the whole table, so all
comparisons here lower-case both sides.

INVARIANT: merge and remove never drop or rewrite entries they were not
asked about. Unknown fields on existing remote entries survive verbatim.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_DESCRIPTION = "No description provided"

# Registry enum values
CHAT_INPUT_COMMAND = 1
STRING_OPTION = 3


class CommandOption(BaseModel):
    """A (possibly nested) command parameter in wire shape."""

    model_config = {"frozen": True}

    name: str
    description: str = DEFAULT_DESCRIPTION
    type: int = STRING_OPTION
    required: bool = False
    choices: list[dict[str, Any]] | None = None
    options: list[CommandOption] | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: Any) -> Any:
        return value or DEFAULT_DESCRIPTION

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> int:
        return int(value or STRING_OPTION)

    @field_validator("required", mode="before")
    @classmethod
    def _default_required(cls, value: Any) -> Any:
        return False if value is None else value


class CommandEntry(BaseModel):
    """One entry of the remote command table, as this host writes it."""

    model_config = {"frozen": True}

    name: str
    description: str = DEFAULT_DESCRIPTION
    type: int = CHAT_INPUT_COMMAND
    options: list[CommandOption] = Field(default_factory=list)
    default_member_permissions: str | None = None
    dm_permission: bool = False

    def to_wire(self) -> dict[str, Any]:
        """Dump to the JSON payload shape, omitting unset optional keys."""
        return self.model_dump(exclude_none=True)


def command_data(definition: Any) -> dict[str, Any]:
    """Extract the raw mapping from a plugin's command definition.

    Accepts a plain mapping, a mapping wrapping a ``data`` payload, or an
    object exposing ``to_dict()`` (command builder objects).
    """
    if hasattr(definition, "to_dict"):
        return dict(definition.to_dict())
    if isinstance(definition, Mapping):
        inner = definition.get("data")
        if inner is not None:
            return command_data(inner)
        return dict(definition)
    msg = f"Unsupported command definition: {definition!r}"
    raise TypeError(msg)


def command_name(definition: Any) -> str:
    """Lower-cased name of a command definition."""
    name = command_data(definition).get("name")
    if not name:
        msg = f"Command definition is missing a name: {definition!r}"
        raise ValueError(msg)
    return str(name).lower()


def normalize_options(options: Iterable[Mapping[str, Any]] | None) -> list[CommandOption]:
    """Normalize a list of raw options, recursing into nested options."""
    normalized: list[CommandOption] = []
    for option in options or []:
        nested = option.get("options")
        normalized.append(
            CommandOption(
                name=option.get("name"),
                description=option.get("description"),
                type=option.get("type"),
                required=option.get("required"),
                choices=option.get("choices"),
                options=normalize_options(nested) if nested else None,
            )
        )
    return normalized


def normalize_command(definition: Any) -> CommandEntry:
    """Convert a plugin-declared command into the registry's wire shape.

    Examples:
        >>> normalize_command({"name": "Play"}).to_wire()
        {'name': 'play', 'description': 'No description provided', 'type': 1, 'options': [], 'dm_permission': False}
    """
    data = command_data(definition)
    permissions = data.get("default_member_permissions")
    dm_permission = data.get("dm_permission")
    return CommandEntry(
        name=command_name(data),
        description=data.get("description") or DEFAULT_DESCRIPTION,
        options=normalize_options(data.get("options")),
        default_member_permissions=str(permissions) if permissions is not None else None,
        dm_permission=bool(dm_permission) if dm_permission is not None else False,
    )


def _entry_key(entry: Mapping[str, Any]) -> str:
    return str(entry.get("name", "")).lower()


def merge_commands(
    existing: Sequence[Mapping[str, Any]],
    incoming: Sequence[Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """Merge *incoming* entries into the *existing* table by name.

    Same-named entries are replaced in place, new names are appended.
    Neither input is mutated.
    """
    merged = [dict(entry) for entry in existing]
    positions: dict[str, int] = {}
    for i, entry in enumerate(merged):
        positions.setdefault(_entry_key(entry), i)

    for entry in incoming:
        key = _entry_key(entry)
        if key in positions:
            merged[positions[key]] = dict(entry)
        else:
            positions[key] = len(merged)
            merged.append(dict(entry))
    return merged


def remove_commands(
    existing: Sequence[Mapping[str, Any]],
    names: Iterable[str],
) -> list[dict[str, Any]]:
    """Return *existing* without the entries named in *names*."""
    owned = {name.lower() for name in names}
    return [dict(entry) for entry in existing if _entry_key(entry) not in owned]
