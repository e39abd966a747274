"""Top-level object wiring the registry, dispatcher, settings and events together."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .config import settings as _settings_module
from .dispatcher import Dispatcher
from .events import Event, EventBus
from .registry import Registry
from .state.guild_settings import GuildSettingsStore

if TYPE_CHECKING:
    from .config.settings import Settings
    from .messaging.transport import ChatMessage, Guild, Interaction, RemoteCommandManager, User
    from .messaging.slash import SlashDiff

logger = logging.getLogger(__name__)


class CommandClient:
    """Entry point for a transport adapter.

    The adapter feeds inbound events into :meth:`handle_message`,
    :meth:`handle_message_update` and :meth:`handle_interaction`; everything
    else (parsing, prompting, throttling, edit replay) happens in here.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        bot_user_id: str,
        user: User | None = None,
        owners: Iterable[str] | None = None,
        guild_settings: GuildSettingsStore | None = None,
    ) -> None:
        self.settings = settings or _settings_module.cfg
        self.bot_user_id = str(bot_user_id)
        self.user = user
        self.owners: frozenset[str] = frozenset(owners) if owners is not None else self.settings.owners
        self.events = EventBus()
        self.guild_settings = guild_settings or GuildSettingsStore(self.settings.guild_settings_path)
        self.registry = Registry(self)
        self.dispatcher = Dispatcher(self, self.registry)
        self._prefix: str | None = None

    # -- prefix ------------------------------------------------------------

    @property
    def prefix(self) -> str:
        return self.settings.command_prefix if self._prefix is None else self._prefix

    @prefix.setter
    def prefix(self, prefix: str | None) -> None:
        self._prefix = prefix
        self.events.emit(Event.COMMAND_PREFIX_CHANGE, None, prefix)
        logger.info("[client] global prefix set to %r", prefix)

    def prefix_for(self, guild: Guild | None) -> str:
        """The prefix in effect for *guild*; an empty string means mentions only."""
        if guild is None:
            return self.prefix
        stored = self.guild_settings.get_prefix(guild.id)
        return self.prefix if stored is None else stored

    def set_guild_prefix(self, guild: Guild, prefix: str | None) -> None:
        """Override (or, with ``None``, reset) the prefix for one guild."""
        self.guild_settings.set_prefix(guild.id, prefix)
        self.events.emit(Event.COMMAND_PREFIX_CHANGE, guild, prefix)

    # -- owners ------------------------------------------------------------

    def is_owner(self, user: User | str) -> bool:
        user_id = user if isinstance(user, str) else getattr(user, "id", None)
        if user_id is None:
            raise ValueError(f"Unable to resolve user {user!r}.")
        return str(user_id) in self.owners

    # -- setup -------------------------------------------------------------

    def register_defaults(self, **types: bool) -> CommandClient:
        """Register the built-in argument types, groups and commands."""
        from .commands import builtins

        self.registry.register_default_types(**types)
        self.registry.register_groups([
            {"id": "util", "name": "Utility"},
            {"id": "commands", "name": "Commands", "guarded": True},
        ])
        self.registry.register_commands(builtins.DEFAULT_COMMANDS)
        return self

    async def sync_slash_commands(
        self,
        global_manager: RemoteCommandManager,
        guild_manager: RemoteCommandManager | None = None,
    ) -> dict[str, SlashDiff]:
        return await self.registry.sync_slash_commands(global_manager, guild_manager)

    # -- inbound events ----------------------------------------------------

    async def handle_message(self, message: ChatMessage) -> None:
        try:
            await self.dispatcher.handle_message(message)
        except Exception:
            logger.exception("[client] failed to handle message %s", getattr(message, "id", "?"))

    async def handle_message_update(self, old_message: ChatMessage, message: ChatMessage) -> None:
        if message.partial:
            return
        try:
            await self.dispatcher.handle_message(message, old_message)
        except Exception:
            logger.exception("[client] failed to handle edit of message %s", getattr(message, "id", "?"))

    async def handle_interaction(self, interaction: Interaction) -> None:
        try:
            await self.dispatcher.handle_interaction(interaction)
        except Exception:
            logger.exception("[client] failed to handle interaction %s", getattr(interaction, "id", "?"))

    def __repr__(self) -> str:
        return f"<CommandClient bot={self.bot_user_id} commands={len(self.registry.commands)}>"

