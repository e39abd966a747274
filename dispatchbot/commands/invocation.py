"""Wrappers pairing an inbound message or interaction with its resolved command.

The transport objects are held by reference and never mutated; everything
the engine tracks per invocation (resolved command, argument string,
response history) lives on the wrapper.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Any

from ..errors import CommandFormatError, FriendlyError
from ..events import Event
from ..messaging.slash import OptionType
from ..messaging.transport import DM_CHANNEL_KEY, SentMessage, channel_key
from ..util.text import parse_arg_string, strip_wrapping_quotes

if TYPE_CHECKING:
    import re

    from ..client import CommandClient
    from ..messaging.transport import Channel, ChatMessage, Guild, Interaction, User
    from .base import Command, Throttle
    from .collector import CollectorResult

logger = logging.getLogger(__name__)

RESPONSE_TYPES = ("plain", "reply", "direct", "code")

Response = SentMessage | list[SentMessage]


def _escape_code_block(text: str) -> str:
    return text.replace("```", "`\u200b``")


class _Checks:
    """Pre-run checks shared by both invocation kinds."""

    client: CommandClient
    command: Command | None

    def _emit_block(self, reason: str, data: dict[str, Any] | None = None) -> None:
        self.client.events.emit(Event.COMMAND_BLOCK, self, reason, data)

    async def _block(self, reason: str, data: dict[str, Any] | None = None) -> Any:
        self._emit_block(reason, data)
        return await self.command.on_block(self, reason, data)

    def _check_block(self) -> tuple[str, dict[str, Any] | None] | None:
        """Return the first ``(reason, data)`` that stops the command, if any."""
        command = self.command
        channel = self.channel
        guild = self.guild

        if guild is not None and not channel.is_dm and command.dm_only:
            return "dmOnly", None
        if (command.guild_only or command.guild_owner_only) and guild is None:
            return "guildOnly", None
        if command.nsfw and not channel.is_dm and not channel.nsfw:
            return "nsfw", None

        # has_permission itself skips channel permissions in direct messages.
        permission = command.has_permission(self)
        if isinstance(permission, str):
            return permission, None
        if permission is not True:
            return "userPermissions", {"missing": permission}

        if not channel.is_dm and command.client_permissions:
            missing = channel.missing_permissions(self.client.bot_user_id, list(command.client_permissions))
            if missing:
                return "clientPermissions", {"missing": missing}
        return None

    def _location(self) -> str:
        if self.guild is not None:
            return f"{self.guild.id}:{self.channel.id}"
        return f"DM:{self.author.id}"

    def _deprecation_notice(self) -> str:
        command = self.command
        return (
            f"The `{command.name}` command has been marked as deprecated. "
            f"Please start using the `{command.deprecated_replacement}` command from now on."
        )


class CommandInvocation(_Checks):
    """A chat message that was parsed as a command."""

    def __init__(self, message: ChatMessage, client: CommandClient) -> None:
        self.message = message
        self.client = client
        self.is_command = False
        self.command: Command | None = None
        self.arg_string: str | None = None
        self.pattern_matches: re.Match[str] | None = None
        self.responses: dict[str, list[Response]] = {}
        self.response_positions: dict[str, int] = {}

    def __repr__(self) -> str:
        return f"<CommandInvocation message={self.message.id} command={self.command}>"

    # -- accessors ---------------------------------------------------------

    @property
    def id(self) -> str:
        return self.message.id

    @property
    def content(self) -> str:
        return self.message.content

    @property
    def author(self) -> User:
        return self.message.author

    @property
    def channel(self) -> Channel:
        return self.message.channel

    @property
    def guild(self) -> Guild | None:
        return self.message.guild

    def init_command(
        self,
        command: Command | None,
        arg_string: str | None,
        pattern_matches: re.Match[str] | None,
    ) -> CommandInvocation:
        self.is_command = True
        self.command = command
        self.arg_string = arg_string
        self.pattern_matches = pattern_matches
        return self

    # -- usage -------------------------------------------------------------

    def usage(self, arg_string: str | None = None, *, in_guild: bool = True) -> str:
        if self.command is None:
            raise TypeError("Command cannot be None.")
        if not in_guild:
            return self.command.usage(arg_string)
        return self.command.usage(arg_string, self.client.prefix_for(self.guild), self.client.user)

    def any_usage(self, command: str, *, in_guild: bool = True) -> str:
        from .base import Command

        if not in_guild:
            return Command.format_usage(command)
        return Command.format_usage(command, self.client.prefix_for(self.guild), self.client.user)

    # -- arguments ---------------------------------------------------------

    def parse_args(self) -> str | list[str]:
        command = self.command
        if command is None:
            raise TypeError("Command cannot be None.")
        arg_string = self.arg_string or ""
        if command.args_type == "single":
            return strip_wrapping_quotes(arg_string.strip(), command.args_single_quotes)
        if command.args_type == "multiple":
            return self.split_args(arg_string, command.args_count, command.args_single_quotes)
        raise ValueError(f'Unknown args_type "{command.args_type}".')

    @staticmethod
    def split_args(arg_string: str, count: float = 0, allow_single_quote: bool = True) -> list[str]:
        return parse_arg_string(arg_string, count, allow_single_quote)

    # -- running -----------------------------------------------------------

    async def run(self) -> Response | None:
        command = self.command
        if command is None:
            return None
        client = self.client

        blocked = self._check_block()
        if blocked is not None:
            return await self._block(*blocked)

        throttle: Throttle | None = command.throttle(self.author.id)
        if throttle is not None and throttle.usages + 1 > command.throttling.usages:
            remaining = throttle.remaining(command.throttling.duration, asyncio.get_running_loop().time())
            return await self._block("throttling", {"throttle": throttle, "remaining": remaining})

        if command.deprecated:
            await self.reply(self._deprecation_notice())

        args: Any = self.pattern_matches
        coll_result: CollectorResult | None = None
        if args is None and command.args_collector is not None:
            coll_args = command.args_collector.args
            count = math.inf if coll_args[-1].infinite else len(coll_args)
            provided = self.split_args((self.arg_string or "").strip(), count, command.args_single_quotes)

            coll_result = await command.args_collector.obtain(self, provided)
            if coll_result.cancelled:
                if not coll_result.prompts or coll_result.cancelled == "promptLimit":
                    return await self.reply(str(CommandFormatError(self)))
                client.events.emit(Event.COMMAND_CANCEL, command, coll_result.cancelled, self, coll_result)
                return await self.reply("Cancelled command.")
            args = coll_result.values
        if args is None:
            args = self.parse_args()
        from_pattern = self.pattern_matches is not None

        if throttle is not None:
            throttle.usages += 1
        try:
            logger.info("[invocation] running %s at %s", command, self._location())
            try:
                await self.channel.send_typing()
            except Exception:
                logger.debug("[invocation] typing indicator failed", exc_info=True)

            result = await command.run(self, args, from_pattern, coll_result)
            client.events.emit(Event.COMMAND_RUN, command, result, self, args, from_pattern, coll_result)
            if not (result is None or isinstance(result, (list, SentMessage))):
                raise TypeError(
                    f"Command {command.name}'s run() returned an unknown type ({type(result).__name__}). "
                    "Command run methods must return a sent message, a list of them, or None."
                )
            return result
        except Exception as err:
            client.events.emit(Event.COMMAND_ERROR, command, err, self, args, from_pattern, coll_result)
            if isinstance(err, FriendlyError):
                return await self.reply(str(err))
            logger.exception("[invocation] %s failed at %s", command, self._location())
            return await command.on_error(err, self, args, from_pattern, coll_result)

    # -- responding --------------------------------------------------------

    async def say(self, content: str) -> SentMessage:
        return await self.respond(content, "plain")

    async def reply(self, content: str) -> SentMessage:
        return await self.respond(content, "reply")

    async def direct(self, content: str) -> SentMessage:
        return await self.respond(content, "direct")

    async def code(self, lang: str, content: str) -> SentMessage:
        return await self.respond(content, "code", lang=lang)

    async def respond(self, content: str, response_type: str = "reply", lang: str = "") -> SentMessage:
        """Send (or, when replaying an edit, edit in place) one response."""
        if response_type not in RESPONSE_TYPES:
            raise ValueError(f'Unknown response type "{response_type}".')
        channel = self.channel
        if response_type == "reply" and channel.is_dm:
            response_type = "plain"
        if (
            response_type != "direct"
            and self.guild is not None
            and not channel.is_dm
            and channel.missing_permissions(self.client.bot_user_id, ["send_messages"])
        ):
            response_type = "direct"
        if response_type == "code":
            content = f"```{lang}\n{_escape_code_block(content)}\n```"

        key = DM_CHANNEL_KEY if response_type == "direct" else channel_key(channel)
        return await self.edit_current_response(key, response_type, content)

    async def edit_current_response(self, key: str, response_type: str, content: str) -> SentMessage:
        tracked = self.responses.setdefault(key, [])
        pos = self.response_positions.get(key, -1) + 1
        self.response_positions[key] = pos

        existing = tracked[pos] if pos < len(tracked) else None
        if existing is None:
            return await self._send(response_type, content)
        if isinstance(existing, list):
            for extra in existing[1:]:
                await _delete_quietly(extra)
            return await existing[0].edit(content)
        return await existing.edit(content)

    async def _send(self, response_type: str, content: str) -> SentMessage:
        if response_type == "reply":
            return await self.message.reply(content)
        if response_type == "direct":
            return await self.author.send(content)
        return await self.channel.send(content)

    async def finalize(self, responses: Response | list[Response] | None) -> None:
        """Record *responses* as this invocation's output and drop stale ones.

        Anything tracked past the current cursor was not refreshed by this
        run and is deleted, so ``finalize(None)`` clears all prior output.
        """
        await self.delete_remaining_responses()
        self.responses = {}
        self.response_positions = {}
        if not responses:
            return

        items = responses if isinstance(responses, list) else [responses]
        for response in items:
            first = response[0] if isinstance(response, list) and response else response
            if not first or isinstance(first, list):
                continue
            key = channel_key(first.channel)
            self.responses.setdefault(key, []).append(response)
            self.response_positions.setdefault(key, -1)

    async def delete_remaining_responses(self) -> None:
        stale: list[SentMessage] = []
        for key, tracked in self.responses.items():
            pos = self.response_positions.get(key, -1)
            for response in tracked[pos + 1:]:
                stale.extend(response if isinstance(response, list) else [response])
        if stale:
            await asyncio.gather(*(_delete_quietly(m) for m in stale))


async def _delete_quietly(message: SentMessage) -> None:
    try:
        await message.delete()
    except Exception as exc:
        logger.warning("[invocation] failed to delete response %s: %s", getattr(message, "id", "?"), exc)


class InteractionInvocation(_Checks):
    """A structured chat-input interaction bound to its command."""

    def __init__(self, interaction: Interaction, client: CommandClient) -> None:
        self.interaction = interaction
        self.client = client
        self.command: Command = client.registry.resolve_command(interaction.command_name)

    def __repr__(self) -> str:
        return f"<InteractionInvocation interaction={self.interaction.id} command={self.command}>"

    @property
    def id(self) -> str:
        return self.interaction.id

    @property
    def author(self) -> User:
        return self.interaction.user

    @property
    def channel(self) -> Channel:
        return self.interaction.channel

    @property
    def guild(self) -> Guild | None:
        return self.interaction.guild

    @property
    def is_editable(self) -> bool:
        return self.interaction.deferred or self.interaction.replied

    def usage(self, arg_string: str | None = None, *, in_guild: bool = True) -> str:
        return self.command.usage(arg_string, "/" if in_guild else None)

    def any_usage(self, command: str, *, in_guild: bool = True) -> str:
        from .base import Command

        return Command.format_usage(command, "/" if in_guild else None)

    def parse_args(self, options: list[dict[str, Any]] | None = None) -> dict[str, Any]:
        """Flatten the interaction's option tree into a keyword dict.

        Dashes in option names become underscores; the chosen subcommand and
        subcommand group are exposed as ``sub_command`` / ``sub_command_group``.
        """
        if options is None:
            options = self.interaction.options
            args: dict[str, Any] = {}
            if self.command.slash is not None:
                for declared in self.command.slash.options:
                    if declared.type not in (OptionType.SUB_COMMAND, OptionType.SUB_COMMAND_GROUP):
                        args[declared.name.replace("-", "_")] = None
        else:
            args = {}

        for option in options or []:
            kind = int(option.get("type", OptionType.STRING))
            if kind == OptionType.SUB_COMMAND_GROUP:
                args["sub_command_group"] = option["name"]
            elif kind == OptionType.SUB_COMMAND:
                args["sub_command"] = option["name"]
            else:
                args[option["name"].replace("-", "_")] = option.get("value")
            if option.get("options"):
                args.update(self.parse_args(option["options"]))
        return args

    async def reply(self, content: str, *, ephemeral: bool = False) -> SentMessage | None:
        if self.is_editable:
            return await self.interaction.edit_reply(content)
        return await self.interaction.reply(content, ephemeral=ephemeral)

    async def edit_reply(self, content: str) -> SentMessage | None:
        return await self.interaction.edit_reply(content)

    async def defer(self, *, ephemeral: bool = False) -> None:
        await self.interaction.defer(ephemeral=ephemeral)

    async def run(self) -> None:
        command = self.command
        client = self.client

        blocked = self._check_block()
        if blocked is not None:
            await self._block(*blocked)
            return

        if command.deprecated:
            await self.channel.send(self._deprecation_notice())

        args = self.parse_args()
        try:
            logger.info("[invocation] running slash %s at %s", command, self._location())
            ephemeral = command.slash.ephemeral if command.slash is not None else False
            try:
                await self.defer(ephemeral=ephemeral)
            except Exception:
                logger.debug("[invocation] defer failed", exc_info=True)
            result = await command.run(self, args)
            client.events.emit(Event.COMMAND_RUN, command, result, self, args, False, None)
        except Exception as err:
            client.events.emit(Event.COMMAND_ERROR, command, err, self, args, False, None)
            if isinstance(err, FriendlyError):
                await self.reply(str(err))
                return
            logger.exception("[invocation] slash %s failed at %s", command, self._location())
            await command.on_error(err, self, args)
