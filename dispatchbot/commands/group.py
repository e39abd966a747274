from __future__ import annotations

from typing import TYPE_CHECKING

from ..events import Event

if TYPE_CHECKING:
    from ..client import CommandClient
    from ..messaging.transport import Guild
    from .base import Command


class CommandGroup:
    """A named bucket of commands that can be switched off as a whole."""

    def __init__(self, client: CommandClient, group_id: str, name: str | None = None, guarded: bool = False) -> None:
        if not isinstance(group_id, str):
            raise TypeError("Group ID must be a string.")
        if group_id != group_id.lower():
            raise ValueError("Group ID must be lowercase.")
        self.client = client
        self.id = group_id
        self.name = name or group_id
        self.guarded = bool(guarded)
        self.commands: dict[str, Command] = {}
        self._global_enabled = True

    def __repr__(self) -> str:
        return f"<CommandGroup {self.id}>"

    def set_enabled_in(self, guild: Guild | None, enabled: bool) -> None:
        if self.guarded:
            raise ValueError("The group is guarded.")
        enabled = bool(enabled)
        if guild is None:
            self._global_enabled = enabled
        else:
            self.client.guild_settings.set_enabled(guild.id, "groups", self.id, enabled)
        self.client.events.emit(Event.GROUP_STATUS_CHANGE, guild, self, enabled)

    def is_enabled_in(self, guild: Guild | None) -> bool:
        if self.guarded:
            return True
        if guild is None:
            return self._global_enabled
        stored = self.client.guild_settings.get_enabled(guild.id, "groups", self.id)
        return self._global_enabled if stored is None else stored

    def reload(self) -> None:
        for command in list(self.commands.values()):
            command.reload()
