"""Routes inbound messages and interactions to commands.

Besides parsing and running, the dispatcher keeps three pieces of state:
compiled prefix patterns, recently finished invocations (so an edited
message can replay its command and edit the old output in place), and the
``(user, channel)`` pairs an argument prompt is currently waiting on.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .commands.invocation import CommandInvocation, InteractionInvocation
from .errors import ResolutionError
from .events import Event
from .util.text import escape_regex

if TYPE_CHECKING:
    from .client import CommandClient
    from .messaging.transport import ChatMessage, Interaction
    from .registry import Registry

logger = logging.getLogger(__name__)

_PREFIXLESS_PATTERN = re.compile(r"^(\S+)", re.IGNORECASE)


@dataclass
class Inhibition:
    reason: str
    response: Awaitable[Any] | None = None


Inhibitor = Callable[[CommandInvocation], "Inhibition | str | bool | None"]


async def _settle(item: Any) -> Any:
    if inspect.isawaitable(item):
        return await item
    return item


class Dispatcher:

    def __init__(self, client: CommandClient, registry: Registry) -> None:
        self.client = client
        self.registry = registry
        self.inhibitors: dict[Inhibitor, None] = {}
        self._command_patterns: dict[str, re.Pattern[str]] = {}
        self._results: dict[str, CommandInvocation] = {}
        self._eviction_handles: dict[str, asyncio.TimerHandle] = {}
        self._awaiting: set[tuple[str, str]] = set()
        self._pending_replies: dict[tuple[str, str], asyncio.Future[ChatMessage]] = {}
        self._message_locks: dict[str, asyncio.Lock] = {}
        self._message_lock_users: dict[str, int] = {}

    # -- inhibitors --------------------------------------------------------

    def add_inhibitor(self, inhibitor: Inhibitor) -> bool:
        if not callable(inhibitor):
            raise TypeError("The inhibitor must be callable.")
        if inhibitor in self.inhibitors:
            return False
        self.inhibitors[inhibitor] = None
        return True

    def remove_inhibitor(self, inhibitor: Inhibitor) -> bool:
        if not callable(inhibitor):
            raise TypeError("The inhibitor must be callable.")
        if inhibitor not in self.inhibitors:
            return False
        del self.inhibitors[inhibitor]
        return True

    def inhibit(self, invocation: CommandInvocation) -> Inhibition | None:
        """Return the first inhibitor verdict that blocks *invocation*."""
        for inhibitor in self.inhibitors:
            result = inhibitor(invocation)
            if not result:
                continue
            if isinstance(result, str):
                result = Inhibition(result)
            if not isinstance(result, Inhibition) or not isinstance(result.reason, str) or not (
                result.response is None or inspect.isawaitable(result.response)
            ):
                name = getattr(inhibitor, "__name__", repr(inhibitor))
                raise TypeError(
                    f'Inhibitor "{name}" returned an invalid result; it must be a string or an Inhibition.'
                )
            self.client.events.emit(Event.COMMAND_BLOCK, invocation, result.reason, {"inhibition": result})
            logger.debug("[dispatcher] %s inhibited: %s", invocation, result.reason)
            return result
        return None

    # -- prompt replies ----------------------------------------------------

    def mark_awaiting(self, user_id: str, channel_id: str) -> None:
        self._awaiting.add((user_id, channel_id))

    def unmark_awaiting(self, user_id: str, channel_id: str) -> None:
        self._awaiting.discard((user_id, channel_id))

    def is_awaiting(self, user_id: str, channel_id: str) -> bool:
        return (user_id, channel_id) in self._awaiting

    async def wait_for_reply(
        self,
        user_id: str,
        channel_id: str,
        timeout: float | None = None,
    ) -> ChatMessage | None:
        """Wait for the next message *user_id* sends in *channel_id*.

        Returns ``None`` when *timeout* seconds pass first.
        """
        key = (user_id, channel_id)
        loop = asyncio.get_running_loop()
        future: asyncio.Future[ChatMessage] = loop.create_future()
        self._pending_replies[key] = future
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug("[dispatcher] no reply from %s in %s within %ss", user_id, channel_id, timeout)
            return None
        finally:
            if self._pending_replies.get(key) is future:
                del self._pending_replies[key]

    def _deliver_reply(self, message: ChatMessage) -> bool:
        future = self._pending_replies.get((message.author.id, message.channel.id))
        if future is None or future.done():
            return False
        future.set_result(message)
        return True

    # -- messages ----------------------------------------------------------

    def should_handle_message(self, message: ChatMessage, old_message: ChatMessage | None = None) -> bool:
        if message.partial:
            return False
        author = message.author
        if author.bot or author.id == self.client.bot_user_id:
            return False
        if (author.id, message.channel.id) in self._awaiting:
            return False
        if old_message is not None and message.content == old_message.content:
            return False
        return True

    async def handle_message(self, message: ChatMessage, old_message: ChatMessage | None = None) -> None:
        if (
            old_message is None
            and not message.partial
            and not message.author.bot
            and self._deliver_reply(message)
        ):
            return
        if not self.should_handle_message(message, old_message):
            return

        # One source message (and its edits) is handled in delivery order.
        key = message.id
        lock = self._message_locks.setdefault(key, asyncio.Lock())
        self._message_lock_users[key] = self._message_lock_users.get(key, 0) + 1
        try:
            async with lock:
                await self._handle_message(message, old_message)
        finally:
            self._message_lock_users[key] -= 1
            if not self._message_lock_users[key]:
                del self._message_lock_users[key]
                del self._message_locks[key]

    async def _handle_message(self, message: ChatMessage, old_message: ChatMessage | None) -> None:
        settings = self.client.settings
        old_invocation: CommandInvocation | None = None
        if old_message is not None:
            old_invocation = self._results.get(old_message.id)
            if old_invocation is None and not settings.non_command_editable:
                return
            invocation = self.parse_message(message)
            if invocation is not None and old_invocation is not None:
                invocation.responses = old_invocation.responses
                invocation.response_positions = old_invocation.response_positions
        else:
            invocation = self.parse_message(message)

        responses: Any = None
        if invocation is not None:
            responses = await self._respond(invocation, message, old_message, old_invocation)
            await invocation.finalize(responses)
        elif old_invocation is not None:
            await old_invocation.finalize(None)
            if not settings.non_command_editable:
                self._results.pop(message.id, None)

        if invocation is not None and old_message is not None:
            self.client.events.emit(Event.MESSAGE_UPDATE, old_message, invocation)

        self.cache_invocation(message, old_message, invocation, responses)

    async def _respond(
        self,
        invocation: CommandInvocation,
        message: ChatMessage,
        old_message: ChatMessage | None,
        old_invocation: CommandInvocation | None,
    ) -> Any:
        inhibited = self.inhibit(invocation)
        if inhibited is not None:
            return await inhibited.response if inhibited.response is not None else None

        command = invocation.command
        if command is None or command.unknown:
            self.client.events.emit(Event.UNKNOWN_COMMAND, invocation)
            if command is None:
                return None

        if not command.is_enabled_in(message.guild):
            if command.unknown:
                return None
            return await invocation.reply(f"The `{command.name}` command is disabled.")

        if old_message is not None and old_invocation is None:
            return None
        responses = await invocation.run()
        if isinstance(responses, list):
            responses = list(await asyncio.gather(*(_settle(r) for r in responses)))
        return responses

    def cache_invocation(
        self,
        message: ChatMessage,
        old_message: ChatMessage | None,
        invocation: CommandInvocation | None,
        responses: Any,
    ) -> None:
        settings = self.client.settings
        duration = settings.command_editable_duration
        if not duration or duration <= 0:
            return
        if invocation is None and not settings.non_command_editable:
            return
        if responses is not None and invocation is not None:
            self._results[message.id] = invocation
            if old_message is None:
                loop = asyncio.get_running_loop()
                self._eviction_handles[message.id] = loop.call_later(duration, self._evict, message.id)
            return
        self._results.pop(message.id, None)

    def _evict(self, message_id: str) -> None:
        self._results.pop(message_id, None)
        self._eviction_handles.pop(message_id, None)

    def clear_results(self) -> None:
        for handle in self._eviction_handles.values():
            handle.cancel()
        self._eviction_handles.clear()
        self._results.clear()

    # -- parsing -----------------------------------------------------------

    def parse_message(self, message: ChatMessage) -> CommandInvocation | None:
        content = message.content
        for command in self.registry.commands.values():
            for pattern in command.patterns or ():
                matches = pattern.search(content)
                if matches:
                    return CommandInvocation(message, self.client).init_command(command, None, matches)

        prefix = self.client.prefix_for(message.guild) or ""
        pattern = self._command_patterns.get(prefix) or self.build_command_pattern(prefix)
        invocation = self.match_default(message, pattern, 2)
        if invocation is None and message.guild is None:
            invocation = self.match_default(message, _PREFIXLESS_PATTERN, 1, prefixless=True)
        return invocation

    def match_default(
        self,
        message: ChatMessage,
        pattern: re.Pattern[str],
        name_index: int = 1,
        prefixless: bool = False,
    ) -> CommandInvocation | None:
        content = message.content
        matches = pattern.search(content)
        if matches is None:
            return None

        invocation = CommandInvocation(message, self.client)
        commands = self.registry.find_commands(matches.group(name_index), exact=True)
        if len(commands) != 1 or not commands[0].default_handling:
            arg_string = content if prefixless else matches.group(1)
            return invocation.init_command(self.registry.unknown_command, arg_string, None)

        consumed = len(matches.group(1)) + (len(matches.group(2) or "") if name_index == 2 else 0)
        return invocation.init_command(commands[0], content[consumed:], None)

    def build_command_pattern(self, prefix: str | None) -> re.Pattern[str]:
        bot_id = re.escape(str(self.client.bot_user_id))
        if prefix:
            escaped = escape_regex(prefix)
            pattern = re.compile(rf"^(<@!?{bot_id}>\s+(?:{escaped}\s*)?|{escaped}\s*)(\S+)", re.IGNORECASE)
        else:
            pattern = re.compile(rf"(^<@!?{bot_id}>\s+)(\S+)", re.IGNORECASE)
        self._command_patterns[prefix or ""] = pattern
        logger.debug('[dispatcher.parse] built command pattern for prefix "%s": %s', prefix, pattern.pattern)
        return pattern

    def clear_patterns(self) -> None:
        self._command_patterns.clear()

    # -- interactions ------------------------------------------------------

    def should_handle_interaction(self, interaction: Interaction) -> bool:
        if interaction.user.bot or interaction.user.id == self.client.bot_user_id:
            return False
        return bool(interaction.is_chat_input)

    async def handle_interaction(self, interaction: Interaction) -> None:
        if not self.should_handle_interaction(interaction):
            return
        try:
            invocation = InteractionInvocation(interaction, self.client)
        except ResolutionError:
            logger.warning("[dispatcher] no command registered for interaction %r", interaction.command_name)
            return

        command = invocation.command
        if not command.is_enabled_in(interaction.guild):
            await interaction.reply(f"The `{command.name}` command is disabled.", ephemeral=True)
            return
        await invocation.run()
