"""Command descriptor, per-user throttling and the block/error hooks."""

from __future__ import annotations

import asyncio
import importlib
import logging
import math
import re
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..events import Event
from ..messaging.slash import SlashCommandInfo, build_slash_payload
from .collector import ArgumentCollector

if TYPE_CHECKING:
    from ..client import CommandClient
    from ..messaging.transport import Guild, SentMessage, User
    from .argument import ArgumentInfo
    from .collector import CollectorResult
    from .group import CommandGroup
    from .invocation import CommandInvocation, InteractionInvocation

    Context = CommandInvocation | InteractionInvocation

logger = logging.getLogger(__name__)

# A user holding any one of these counts as a moderator.
MOD_PERMISSIONS = ("ban_members", "kick_members", "manage_messages", "manage_roles", "moderate_members")

BLOCK_REASONS = frozenset({
    "dmOnly",
    "guildOnly",
    "guildOwnerOnly",
    "nsfw",
    "userPermissions",
    "clientPermissions",
    "throttling",
    "ownerOnly",
    "modPermissions",
})


@dataclass
class ThrottlingOptions:
    usages: int
    duration: float


@dataclass
class Throttle:
    """Usage counter for one user of one command, dropped by its own timer."""

    start: float
    usages: int = 0
    timer: asyncio.TimerHandle | None = None

    def remaining(self, duration: float, now: float) -> float:
        return self.start + duration - now


@dataclass
class CommandInfo:
    name: str
    group: str
    description: str
    aliases: list[str] = field(default_factory=list)
    auto_aliases: bool = False
    member_name: str | None = None
    format: str | None = None
    details: str | None = None
    examples: list[str] | None = None
    nsfw: bool = False
    dm_only: bool = False
    guild_only: bool = False
    guild_owner_only: bool = False
    owner_only: bool = False
    client_permissions: list[str] | None = None
    user_permissions: list[str] | None = None
    mod_permissions: bool = False
    default_handling: bool = True
    throttling: ThrottlingOptions | dict[str, float] | None = None
    args: list[ArgumentInfo | dict[str, Any]] | None = None
    args_prompt_limit: float = math.inf
    args_type: str = "single"
    args_count: int = 0
    args_single_quotes: bool = True
    patterns: list[re.Pattern[str] | str] | None = None
    guarded: bool = False
    hidden: bool = False
    unknown: bool = False
    deprecated: bool = False
    deprecated_replacement: str | None = None
    test_env: bool = False


class Command:
    """Base class for every command.

    Subclasses pass a :class:`CommandInfo` (or an equivalent dict) to
    ``__init__`` and implement :meth:`run`.  ``run`` returns a sent
    message, a list of them (or of awaitables resolving to them), or
    ``None``.
    """

    def __init__(
        self,
        client: CommandClient,
        info: CommandInfo | dict[str, Any],
        slash: SlashCommandInfo | dict[str, Any] | None = None,
    ) -> None:
        if isinstance(info, dict):
            info = CommandInfo(**info)
        self.validate_info(info)
        self.client = client

        self.name = info.name
        self.aliases = list(info.aliases)
        if info.auto_aliases:
            if "-" in self.name:
                self.aliases.append(self.name.replace("-", ""))
            for alias in list(self.aliases):
                if "-" in alias:
                    self.aliases.append(alias.replace("-", ""))

        self.group_id = info.group
        self.group: CommandGroup | None = None
        self.member_name = info.member_name or self.name
        self.description = info.description
        self.format = info.format
        self.details = info.details
        self.examples = info.examples
        self.nsfw = info.nsfw
        self.dm_only = info.dm_only
        self.guild_only = info.guild_only
        self.guild_owner_only = info.guild_owner_only
        self.owner_only = info.owner_only
        self.client_permissions = info.client_permissions
        self.user_permissions = info.user_permissions
        self.mod_permissions = info.mod_permissions
        self.default_handling = info.default_handling
        throttling = info.throttling
        self.throttling = ThrottlingOptions(**throttling) if isinstance(throttling, dict) else throttling

        self.args_collector = (
            ArgumentCollector(client, info.args, info.args_prompt_limit) if info.args else None
        )
        if self.args_collector and not info.format:
            parts = []
            for arg in self.args_collector.args:
                left, right = ("<", ">") if arg.required else ("[", "]")
                parts.append(f"{left}{arg.label}{'...' if arg.infinite else ''}{right}")
            self.format = " ".join(parts)

        self.args_type = info.args_type
        self.args_count = info.args_count
        self.args_single_quotes = info.args_single_quotes
        self.patterns = (
            [re.compile(p) if isinstance(p, str) else p for p in info.patterns]
            if info.patterns else None
        )
        self.guarded = info.guarded
        self.hidden = info.hidden
        self.unknown = info.unknown
        self.deprecated = info.deprecated
        self.deprecated_replacement = info.deprecated_replacement
        self.test_env = info.test_env

        if isinstance(slash, dict):
            slash = SlashCommandInfo(**slash)
        self.slash: SlashCommandInfo | None = slash
        self.slash_info: dict[str, Any] | None = build_slash_payload(self, slash) if slash else None

        self._global_enabled = True
        self._throttles: dict[str, Throttle] = {}

    def __repr__(self) -> str:
        return f"<Command {self.group_id}:{self.member_name}>"

    def __str__(self) -> str:
        return f"{self.group_id}:{self.member_name}"

    # -- hooks -------------------------------------------------------------

    async def run(
        self,
        ctx: Context,
        args: Any,
        from_pattern: bool = False,
        result: CollectorResult | None = None,
    ) -> SentMessage | list[Any] | None:
        raise NotImplementedError(f"{type(self).__name__} doesn't have a run() method.")

    def has_permission(self, ctx: Context, owner_override: bool = True) -> bool | str | list[str]:
        """Return ``True``, a block reason, or the user permissions that are missing."""
        if not (self.guild_owner_only or self.owner_only or self.user_permissions or self.mod_permissions):
            return True
        author = ctx.author
        if owner_override and self.client.is_owner(author):
            return True
        if self.owner_only and not self.client.is_owner(author):
            return "ownerOnly"
        if self.guild_owner_only and (ctx.guild is None or ctx.guild.owner_id != author.id):
            return "guildOwnerOnly"

        channel = ctx.channel
        if not channel.is_dm:
            if self.mod_permissions:
                missing = channel.missing_permissions(author.id, list(MOD_PERMISSIONS))
                if len(missing) == len(MOD_PERMISSIONS):
                    return "modPermissions"
            if self.user_permissions:
                missing = channel.missing_permissions(author.id, list(self.user_permissions))
                if missing:
                    return missing
        return True

    async def on_block(
        self,
        ctx: Context,
        reason: str,
        data: dict[str, Any] | None = None,
    ) -> SentMessage | None:
        data = data or {}

        def only(location: str) -> str:
            return f"The `{self.name}` command can only be used {location}."

        if reason == "dmOnly":
            return await ctx.reply(only("in direct messages"))
        if reason == "guildOnly":
            return await ctx.reply(only("in a server channel"))
        if reason == "guildOwnerOnly":
            return await ctx.reply(only("by the server's owner"))
        if reason == "nsfw":
            return await ctx.reply(only("in a NSFW channel"))
        if reason == "ownerOnly":
            return await ctx.reply(only("by the bot's owner"))
        if reason == "modPermissions":
            return await ctx.reply(only('by "moderators"'))
        if reason in ("userPermissions", "clientPermissions"):
            missing = data.get("missing")
            if not missing:
                raise ValueError(f'Missing permissions must be specified for "{reason}" blocks.')
            who = "You are" if reason == "userPermissions" else "The bot is"
            listed = ", ".join(f"`{p}`" for p in missing)
            return await ctx.reply(f"{who} missing the following permissions: {listed}")
        if reason == "throttling":
            remaining = data.get("remaining")
            if remaining is None:
                raise ValueError('Remaining time must be specified for "throttling" blocks.')
            return await ctx.reply(
                f"Please wait **{remaining:.1f} seconds** before using the `{self.name}` command again."
            )
        return None

    async def on_error(
        self,
        err: BaseException,
        ctx: Context,
        args: Any,
        from_pattern: bool = False,
        result: CollectorResult | None = None,
    ) -> SentMessage | list[Any] | None:
        owners = ", ".join(f"<@{o}>" for o in sorted(self.client.owners))
        contact = f" Please contact {owners}." if owners else ""
        return await ctx.reply(
            f"An error occurred while running the command: `{type(err).__name__}: {err}`\n"
            f"You shouldn't ever receive an error like this.{contact}"
        )

    # -- throttling --------------------------------------------------------

    def throttle(self, user_id: str) -> Throttle | None:
        """Return the user's throttle, creating it on first use; owners are exempt."""
        if not self.throttling or self.client.is_owner(user_id):
            return None
        throttle = self._throttles.get(user_id)
        if throttle is None:
            loop = asyncio.get_running_loop()
            throttle = Throttle(start=loop.time())
            throttle.timer = loop.call_later(self.throttling.duration, self._throttles.pop, user_id, None)
            self._throttles[user_id] = throttle
        return throttle

    def clear_throttles(self) -> None:
        for throttle in self._throttles.values():
            if throttle.timer is not None:
                throttle.timer.cancel()
        self._throttles.clear()

    # -- enabled state -----------------------------------------------------

    def set_enabled_in(self, guild: Guild | None, enabled: bool) -> None:
        if self.guarded:
            raise ValueError("The command is guarded.")
        enabled = bool(enabled)
        if guild is None:
            self._global_enabled = enabled
        else:
            self.client.guild_settings.set_enabled(guild.id, "commands", self.name, enabled)
        self.client.events.emit(Event.COMMAND_STATUS_CHANGE, guild, self, enabled)

    def is_enabled_in(self, guild: Guild | None, bypass_group: bool = False) -> bool:
        if self.guarded:
            return True
        if guild is None:
            return self.group.is_enabled_in(None) and self._global_enabled
        if not bypass_group and not self.group.is_enabled_in(guild):
            return False
        stored = self.client.guild_settings.get_enabled(guild.id, "commands", self.name)
        return self.is_enabled_in(None) if stored is None else stored

    def is_usable(self, ctx: Context | None = None) -> bool:
        if ctx is None:
            return self._global_enabled
        if self.guild_only and ctx.guild is None:
            return False
        return self.is_enabled_in(ctx.guild) and self.has_permission(ctx) is True

    # -- usage -------------------------------------------------------------

    def usage(self, arg_string: str | None = None, prefix: str | None = None, user: User | None = None) -> str:
        return self.format_usage(f"{self.name}{' ' + arg_string if arg_string else ''}", prefix, user)

    @staticmethod
    def format_usage(command: str, prefix: str | None = None, user: User | None = None) -> str:
        """Render ``command`` as a prefixed and/or mention usage string."""
        nbcmd = command.replace(" ", "\xa0")
        if not prefix and user is None:
            return f"`{nbcmd}`"

        prefix_part = ""
        if prefix:
            if len(prefix) > 1 and not prefix.endswith(" "):
                prefix += " "
            prefix_part = f"`{prefix.replace(' ', chr(0xa0))}{nbcmd}`"

        mention_part = ""
        if user is not None:
            mention_part = f"`@{user.name.replace(' ', chr(0xa0))}\xa0{nbcmd}`"

        joiner = " or " if prefix_part and mention_part else ""
        return f"{prefix_part}{joiner}{mention_part}"

    # -- lifecycle ---------------------------------------------------------

    def reload(self) -> None:
        """Re-import this command's module and swap in a fresh instance."""
        cls = type(self)
        module = sys.modules.get(cls.__module__)
        if module is None:
            raise RuntimeError(f"Module {cls.__module__} is not loaded.")
        module = importlib.reload(module)
        new_cls = getattr(module, cls.__name__)
        new_command = new_cls(self.client)
        self.clear_throttles()
        self.client.registry.reregister_command(new_command, self)

    def unload(self) -> None:
        self.clear_throttles()
        self.client.registry.unregister_command(self)

    # -- declaration checks ------------------------------------------------

    @staticmethod
    def validate_info(info: CommandInfo) -> None:
        if not isinstance(info.name, str) or not info.name:
            raise TypeError("Command name must be a non-empty string.")
        if info.name != info.name.lower():
            raise ValueError("Command name must be lowercase.")
        if re.search(r"\s", info.name):
            raise ValueError("Command name must not include spaces.")
        if not isinstance(info.aliases, list) or any(not isinstance(a, str) for a in info.aliases):
            raise TypeError("Command aliases must be a list of strings.")
        if any(a != a.lower() for a in info.aliases):
            raise ValueError("Command aliases must be lowercase.")
        if not isinstance(info.group, str):
            raise TypeError("Command group must be a string.")
        if info.group != info.group.lower():
            raise ValueError("Command group must be lowercase.")
        if info.member_name is not None and info.member_name != info.member_name.lower():
            raise ValueError("Command member_name must be lowercase.")
        if not isinstance(info.description, str):
            raise TypeError("Command description must be a string.")
        if info.examples is not None and any(not isinstance(e, str) for e in info.examples):
            raise TypeError("Command examples must be a list of strings.")
        if info.throttling is not None:
            throttling = info.throttling
            usages = throttling["usages"] if isinstance(throttling, dict) else throttling.usages
            duration = throttling["duration"] if isinstance(throttling, dict) else throttling.duration
            if usages < 1:
                raise ValueError("Command throttling usages must be at least 1.")
            if duration < 1:
                raise ValueError("Command throttling duration must be at least 1.")
        if info.args is not None and not isinstance(info.args, list):
            raise TypeError("Command args must be a list.")
        if info.args_prompt_limit < 0:
            raise ValueError("Command args_prompt_limit must be at least 0.")
        if info.args_type not in ("single", "multiple"):
            raise ValueError('Command args_type must be one of "single" or "multiple".')
        if info.args_type == "multiple" and info.args_count and info.args_count < 2:
            raise ValueError("Command args_count must be at least 2.")
        if info.patterns is not None and any(not isinstance(p, (str, re.Pattern)) for p in info.patterns):
            raise TypeError("Command patterns must be a list of regular expressions.")
        if info.deprecated:
            if not isinstance(info.deprecated_replacement, str):
                raise TypeError("Command deprecated_replacement must be a string.")
            if info.deprecated_replacement != info.deprecated_replacement.lower():
                raise ValueError("Command deprecated_replacement must be lowercase.")
