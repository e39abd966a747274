"""Structured (slash) command schema: models, canonical form and diffing.

Local declarations are described with pydantic models and rendered to the
REST payload shape.  Before comparing with what the remote API returns,
both sides are reduced to a canonical form so that a command is only
rewritten when its client-suppliable definition actually changed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from ..commands.base import Command

logger = logging.getLogger(__name__)


class OptionType(IntEnum):
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11


class ChannelType(IntEnum):
    GUILD_TEXT = 0
    DM = 1
    GUILD_VOICE = 2
    GROUP_DM = 3
    GUILD_CATEGORY = 4
    GUILD_ANNOUNCEMENT = 5
    ANNOUNCEMENT_THREAD = 10
    PUBLIC_THREAD = 11
    PRIVATE_THREAD = 12
    GUILD_STAGE_VOICE = 13
    GUILD_DIRECTORY = 14
    GUILD_FORUM = 15


class CommandType(IntEnum):
    CHAT_INPUT = 1
    USER = 2
    MESSAGE = 3


CHAT_INPUT = int(CommandType.CHAT_INPUT)


class SlashChoice(BaseModel):
    name: str
    value: str | int | float


class SlashOption(BaseModel):
    type: OptionType
    name: str
    description: str
    required: bool | None = None
    choices: list[SlashChoice] | None = None
    options: list[SlashOption] | None = None
    channel_types: list[ChannelType] | None = None
    min_value: int | float | None = None
    max_value: int | float | None = None
    min_length: int | None = None
    max_length: int | None = None
    autocomplete: bool | None = None


SlashOption.model_rebuild()


class SlashCommandInfo(BaseModel):
    options: list[SlashOption] = Field(default_factory=list)
    name_localizations: dict[str, str] | None = None
    description_localizations: dict[str, str] | None = None
    ephemeral: bool = Field(default=False, description="Defer interaction replies as ephemeral")


def build_slash_payload(command: Command, info: SlashCommandInfo) -> dict[str, Any]:
    """Render the REST body that registers *command* as a chat-input command."""
    payload: dict[str, Any] = {
        "type": CHAT_INPUT,
        "name": command.name,
        "description": command.description,
        "name_localizations": info.name_localizations,
        "description_localizations": info.description_localizations,
        "options": [o.model_dump(mode="json", exclude_none=True) for o in info.options],
        "dm_permission": not command.guild_only,
        "nsfw": command.nsfw,
    }
    if command.dm_only:
        payload["default_member_permissions"] = "0"
    return payload


# -- canonical form ----------------------------------------------------------

# Assigned by the server; a client can never supply them.
_SERVER_FIELDS = frozenset({
    "id",
    "application_id",
    "guild_id",
    "version",
    "default_permission",
    "name_localized",
    "description_localized",
    "contexts",
    "integration_types",
})

# Values the server reports when the client left the field unset.
_IMPLICIT_DEFAULTS: dict[str, Any] = {
    "nsfw": False,
    "required": False,
    "autocomplete": False,
    "dm_permission": True,
}


def _enum_value(enum: type[IntEnum], value: Any) -> int:
    if isinstance(value, str) and not value.isdigit():
        return int(enum[value.upper()])
    return int(value)


def _coerce(key: str, value: Any, types: type[IntEnum]) -> Any:
    if key == "type":
        return _enum_value(types, value)
    if key == "channel_types":
        return sorted(_enum_value(ChannelType, v) for v in value)
    if key in ("min_value", "max_value") and isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def normalize(data: Any, types: type[IntEnum] = CommandType) -> Any:
    """Reduce a command (or option) definition to its canonical form.

    *types* is the enum a string ``type`` at this level is looked up in;
    everything below the top level is an option.
    """
    if isinstance(data, SlashOption):
        types = OptionType
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", exclude_none=True)
    if isinstance(data, dict):
        out: dict[str, Any] = {}
        for key in sorted(data):
            value = data[key]
            if key in _SERVER_FIELDS or value is None:
                continue
            if key in _IMPLICIT_DEFAULTS and value == _IMPLICIT_DEFAULTS[key]:
                continue
            value = normalize(_coerce(key, value, types), OptionType)
            if value in ({}, []):
                continue
            out[key] = value
        return out
    if isinstance(data, (list, tuple)):
        return [normalize(v, types) for v in data]
    if isinstance(data, IntEnum):
        return int(data)
    return data


def canonical(data: Any) -> str:
    """Byte-stable serialization of :func:`normalize` output."""
    normalized = normalize(data)
    if isinstance(normalized, dict):
        normalized.setdefault("type", CHAT_INPUT)
    return json.dumps(normalized, sort_keys=True, separators=(",", ":"))


# -- diff --------------------------------------------------------------------

@dataclass
class SlashUpdate:
    data: dict[str, Any]
    remote_id: str | None = None

    @property
    def is_create(self) -> bool:
        return self.remote_id is None


@dataclass
class SlashDiff:
    updated: list[SlashUpdate] = field(default_factory=list)
    removed: list[dict[str, Any]] = field(default_factory=list)

    @property
    def created(self) -> list[dict[str, Any]]:
        return [u.data for u in self.updated if u.is_create]

    @property
    def edited(self) -> list[SlashUpdate]:
        return [u for u in self.updated if not u.is_create]

    def __bool__(self) -> bool:
        return bool(self.updated or self.removed)


def diff_slash_commands(
    current: list[dict[str, Any]],
    target: list[dict[str, Any]],
) -> SlashDiff:
    """Compute the writes needed to turn *current* into *target*.

    ``updated`` holds every target entry without a canonical twin in
    *current*, annotated with the id of the same-named remote command (or
    ``None`` when it has to be created).  ``removed`` holds every current
    entry whose name no target entry uses.
    """
    current_forms = {canonical(c) for c in current}
    by_name = {c.get("name"): c for c in current}

    diff = SlashDiff()
    for command in target:
        if canonical(command) in current_forms:
            continue
        match = by_name.get(command.get("name"))
        remote_id = str(match["id"]) if match is not None and match.get("id") is not None else None
        diff.updated.append(SlashUpdate(data=command, remote_id=remote_id))

    target_names = {t.get("name") for t in target}
    diff.removed = [c for c in current if c.get("name") not in target_names]
    logger.debug(
        "[slash.diff] current=%d target=%d updated=%d removed=%d",
        len(current), len(target), len(diff.updated), len(diff.removed),
    )
    return diff
