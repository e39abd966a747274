"""Catalog of commands, groups and argument types.

Also reconciles the locally declared structured (slash) commands with the
ones registered on the remote API, writing only what changed.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import TYPE_CHECKING, Any

from .commands.base import Command
from .commands.group import CommandGroup
from .errors import RegistrationError, ResolutionError
from .events import Event
from .messaging.slash import SlashDiff, diff_slash_commands
from .types import DEFAULT_TYPES
from .types.base import ArgumentType

if TYPE_CHECKING:
    from .client import CommandClient
    from .messaging.transport import RemoteCommandManager

logger = logging.getLogger(__name__)

GroupSpec = CommandGroup | dict[str, Any] | tuple[str, ...]


class Registry:
    """Owns every registered command, group and argument type."""

    def __init__(self, client: CommandClient) -> None:
        self.client = client
        self.commands: dict[str, Command] = {}
        self.groups: dict[str, CommandGroup] = {}
        self.types: dict[str, ArgumentType] = {}
        self.unknown_command: Command | None = None

    # -- groups ------------------------------------------------------------

    def register_group(self, group: GroupSpec | type[CommandGroup]) -> Registry:
        group = self._build_group(group)
        existing = self.groups.get(group.id)
        if existing is not None:
            existing.name = group.name
            logger.debug('[registry] group %s is already registered, renamed it to "%s"', group.id, group.name)
        else:
            self.groups[group.id] = group
            self.client.events.emit(Event.GROUP_REGISTER, group, self)
            logger.debug("[registry] registered group %s", group.id)
        return self

    def register_groups(self, groups: list[GroupSpec]) -> Registry:
        if not isinstance(groups, (list, tuple)):
            raise TypeError("Groups must be a list.")
        for group in groups:
            self.register_group(group)
        return self

    def _build_group(self, group: Any) -> CommandGroup:
        if isinstance(group, CommandGroup):
            return group
        if inspect.isclass(group) and issubclass(group, CommandGroup):
            return group(self.client)
        if isinstance(group, dict):
            return CommandGroup(self.client, group["id"], group.get("name"), group.get("guarded", False))
        if isinstance(group, (list, tuple)):
            return CommandGroup(self.client, *group)
        raise TypeError(f"Invalid group object to register: {group!r}")

    # -- commands ----------------------------------------------------------

    def register_command(self, command: Command | type[Command]) -> Registry:
        command = self._build_command(command)
        name = command.name

        for candidate in (name, *command.aliases):
            if any(c.name == candidate or candidate in c.aliases for c in self.commands.values()):
                raise RegistrationError(f'A command with the name/alias "{candidate}" is already registered.')
        group = self.groups.get(command.group_id)
        if group is None:
            raise RegistrationError(f'Group "{command.group_id}" is not registered.')
        if any(c.member_name == command.member_name for c in group.commands.values()):
            raise RegistrationError(
                f'A command with the member name "{command.member_name}" is already registered in {group.id}.'
            )
        if command.unknown and self.unknown_command is not None:
            raise RegistrationError("An unknown command is already registered.")

        command.group = group
        group.commands[name] = command
        self.commands[name] = command
        if command.unknown:
            self.unknown_command = command

        self.client.events.emit(Event.COMMAND_REGISTER, command, self)
        logger.debug("[registry] registered command %s", command)
        return self

    def register_commands(self, commands: list[Any], ignore_invalid: bool = False) -> Registry:
        if not isinstance(commands, (list, tuple)):
            raise TypeError("Commands must be a list.")
        for command in commands:
            valid = isinstance(command, Command) or (inspect.isclass(command) and issubclass(command, Command))
            if ignore_invalid and not valid:
                logger.warning("[registry] skipping invalid command object %r", command)
                continue
            self.register_command(command)
        return self

    def register_commands_in(self, package: str | ModuleType) -> Registry:
        """Import *package* (recursively) and register every Command subclass it defines."""
        if isinstance(package, str):
            package = importlib.import_module(package)
        modules = [package]
        if hasattr(package, "__path__"):
            for info in pkgutil.walk_packages(package.__path__, package.__name__ + "."):
                modules.append(importlib.import_module(info.name))

        found: list[type[Command]] = []
        for module in modules:
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if issubclass(obj, Command) and obj is not Command and obj.__module__ == module.__name__:
                    found.append(obj)
        return self.register_commands(found, ignore_invalid=True)

    def _build_command(self, command: Any) -> Command:
        if inspect.isclass(command) and issubclass(command, Command):
            command = command(self.client)
        if not isinstance(command, Command):
            raise TypeError(f"Invalid command object to register: {command!r}")
        return command

    def reregister_command(self, command: Command | type[Command], old_command: Command) -> None:
        command = self._build_command(command)
        if command.name != old_command.name:
            raise RegistrationError("Command name cannot change.")
        if command.group_id != old_command.group_id:
            raise RegistrationError("Command group cannot change.")
        if command.member_name != old_command.member_name:
            raise RegistrationError("Command member_name cannot change.")
        if command.unknown and self.unknown_command is not None and self.unknown_command is not old_command:
            raise RegistrationError("An unknown command is already registered.")

        command.group = self.resolve_group(command.group_id)
        command.group.commands[command.name] = command
        self.commands[command.name] = command
        if self.unknown_command is old_command:
            self.unknown_command = None
        if command.unknown:
            self.unknown_command = command

        self.client.events.emit(Event.COMMAND_REREGISTER, command, old_command)
        logger.debug("[registry] reregistered command %s", command)

    def unregister_command(self, command: Command) -> None:
        self.commands.pop(command.name, None)
        if command.group is not None:
            command.group.commands.pop(command.name, None)
        if self.unknown_command is command:
            self.unknown_command = None
        self.client.events.emit(Event.COMMAND_UNREGISTER, command)
        logger.debug("[registry] unregistered command %s", command)

    # -- types -------------------------------------------------------------

    def register_type(self, arg_type: ArgumentType | type[ArgumentType]) -> Registry:
        if inspect.isclass(arg_type) and issubclass(arg_type, ArgumentType):
            arg_type = arg_type(self.client)
        if not isinstance(arg_type, ArgumentType):
            raise TypeError(f"Invalid type object to register: {arg_type!r}")
        if arg_type.id in self.types:
            raise RegistrationError(f'An argument type with the ID "{arg_type.id}" is already registered.')
        self.types[arg_type.id] = arg_type
        self.client.events.emit(Event.TYPE_REGISTER, arg_type, self)
        logger.debug("[registry] registered argument type %s", arg_type.id)
        return self

    def register_types(self, types: list[Any], ignore_invalid: bool = False) -> Registry:
        if not isinstance(types, (list, tuple)):
            raise TypeError("Types must be a list.")
        for arg_type in types:
            valid = isinstance(arg_type, ArgumentType) or (
                inspect.isclass(arg_type) and issubclass(arg_type, ArgumentType)
            )
            if ignore_invalid and not valid:
                logger.warning("[registry] skipping invalid argument type object %r", arg_type)
                continue
            self.register_type(arg_type)
        return self

    def register_default_types(self, **flags: bool) -> Registry:
        """Register the built-in types; pass ``name=False`` to leave one out."""
        unknown = set(flags) - set(DEFAULT_TYPES)
        if unknown:
            raise ValueError(f"Unknown default types: {', '.join(sorted(unknown))}")
        for type_id, cls in DEFAULT_TYPES.items():
            if flags.get(type_id, True):
                self.register_type(cls)
        return self

    # -- lookup ------------------------------------------------------------

    def find_groups(self, search: str | None = None, exact: bool = False) -> list[CommandGroup]:
        groups = list(self.groups.values())
        if not search:
            return groups

        s = search.lower()
        if exact:
            return [g for g in groups if g.id == s or g.name.lower() == s]
        matched = [g for g in groups if s in g.id or s in g.name.lower()]
        for group in matched:
            if group.id == s or group.name.lower() == s:
                return [group]
        return matched

    def resolve_group(self, group: CommandGroup | str) -> CommandGroup:
        if isinstance(group, CommandGroup):
            return group
        if isinstance(group, str):
            groups = self.find_groups(group, exact=True)
            if len(groups) == 1:
                return groups[0]
        raise ResolutionError(f"Unable to resolve group {group!r}.")

    def find_commands(self, search: str | None = None, exact: bool = False, ctx: Any = None) -> list[Command]:
        commands = list(self.commands.values())
        if not search:
            if ctx is not None:
                return [c for c in commands if c.is_usable(ctx)]
            return commands

        s = search.lower()
        if exact:
            return [
                c for c in commands
                if c.name == s or s in c.aliases or f"{c.group_id}:{c.member_name}" == s
            ]
        matched = [
            c for c in commands
            if s in c.name or f"{c.group_id}:{c.member_name}" == s or any(s in a for a in c.aliases)
        ]
        for command in matched:
            if command.name == s or s in command.aliases:
                return [command]
        return matched

    def resolve_command(self, command: Any) -> Command:
        """Accept a Command, an invocation carrying one, or an exact name."""
        if isinstance(command, Command):
            return command
        resolved = getattr(command, "command", None)
        if isinstance(resolved, Command):
            return resolved
        if isinstance(command, str):
            commands = self.find_commands(command, exact=True)
            if len(commands) == 1:
                return commands[0]
        raise ResolutionError(f"Unable to resolve command {command!r}.")

    # -- slash commands ----------------------------------------------------

    async def sync_slash_commands(
        self,
        global_manager: RemoteCommandManager,
        guild_manager: RemoteCommandManager | None = None,
    ) -> dict[str, SlashDiff]:
        """Bring both remote scopes in line with the local slash declarations.

        Commands flagged ``test_env`` go to the test guild, every other
        slash-enabled command goes to the global scope.  Remote commands
        with no local counterpart are removed, even when a scope ends up
        empty.  The guild scope is only touched when a test guild and a
        manager for it are configured.
        """
        test_commands = [c.slash_info for c in self.commands.values() if c.test_env and c.slash_info]
        global_commands = [c.slash_info for c in self.commands.values() if not c.test_env and c.slash_info]
        has_guild = bool(self.client.settings.test_guild_id) and guild_manager is not None
        if test_commands and not has_guild:
            raise ValueError("A test guild must be configured to register test_env slash commands.")

        results: dict[str, SlashDiff] = {}
        if has_guild:
            results["guild"] = await self._sync_scope("guild", guild_manager, test_commands)
        results["global"] = await self._sync_scope("global", global_manager, global_commands)
        return results

    async def _sync_scope(
        self,
        scope: str,
        manager: RemoteCommandManager,
        target: list[dict[str, Any]],
    ) -> SlashDiff:
        current = await manager.fetch()
        diff = diff_slash_commands(current, target)

        calls = []
        for update in diff.updated:
            if update.is_create:
                calls.append(manager.create(update.data))
            else:
                calls.append(manager.edit(update.remote_id, update.data))
        for removed in diff.removed:
            calls.append(manager.delete(str(removed["id"])))
        await asyncio.gather(*calls)

        logger.info(
            "[registry.slash] %s: %d commands, %d created, %d edited, %d removed",
            scope, len(target), len(diff.created), len(diff.edited), len(diff.removed),
        )
        return diff
