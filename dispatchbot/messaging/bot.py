"""Bot Framework adapter -- feeds channel activities into the command client.

Outbound traffic goes through ``continue_conversation`` so that sends,
edits and deletes keep working after the originating turn has finished
(argument prompts and edit replay both outlive a single webhook call).
Inbound handling runs in background tasks so the webhook returns within
the Bot Framework timeout even while a prompt is waiting for a reply.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import TYPE_CHECKING, Any

from botbuilder.core import (
    ActivityHandler,
    BotFrameworkAdapter,
    BotFrameworkAdapterSettings,
    InvokeResponse,
    TurnContext,
)
from botbuilder.schema import Activity, ActivityTypes, ConversationReference

from ..config.settings import Settings
from .slash import OptionType

if TYPE_CHECKING:
    from ..client import CommandClient

logger = logging.getLogger(__name__)

SUBMIT_ACTION = "composeExtension/submitAction"
_CONTENT_CACHE_SIZE = 500


def create_adapter(settings: Settings) -> BotFrameworkAdapter:
    """Create a BotFrameworkAdapter with the configured credentials."""
    adapter = BotFrameworkAdapter(BotFrameworkAdapterSettings(
        app_id=settings.bot_app_id or None,
        app_password=settings.bot_app_password or None,
    ))

    async def on_error(context: TurnContext, error: Exception) -> None:
        logger.error("[bot] turn error: %s", error, exc_info=True)

    adapter.on_turn_error = on_error
    return adapter


class _Outbox:
    """Sends, edits and deletes activities in one conversation."""

    def __init__(self, adapter: BotFrameworkAdapter, ref: ConversationReference, app_id: str) -> None:
        self._adapter = adapter
        self._ref = ref
        self._app_id = app_id

    async def _run(self, callback: Any) -> Any:
        box: dict[str, Any] = {}

        async def _callback(turn_context: TurnContext) -> None:
            box["result"] = await callback(turn_context)

        await self._adapter.continue_conversation(self._ref, _callback, bot_id=self._app_id)
        return box.get("result")

    async def send(self, text: str, reply_to: str | None = None) -> str:
        activity = Activity(type=ActivityTypes.message, text=text, reply_to_id=reply_to)

        async def _send(turn_context: TurnContext) -> str:
            response = await turn_context.send_activity(activity)
            return response.id if response is not None else ""

        return await self._run(_send)

    async def update(self, activity_id: str, text: str) -> None:
        async def _update(turn_context: TurnContext) -> None:
            await turn_context.update_activity(Activity(type=ActivityTypes.message, id=activity_id, text=text))

        await self._run(_update)

    async def delete(self, activity_id: str) -> None:
        async def _delete(turn_context: TurnContext) -> None:
            await turn_context.delete_activity(activity_id)

        await self._run(_delete)

    async def typing(self) -> None:
        async def _typing(turn_context: TurnContext) -> None:
            await turn_context.send_activity(Activity(type=ActivityTypes.typing))

        await self._run(_typing)


class BotSentMessage:

    def __init__(self, message_id: str, content: str, channel: BotChannel) -> None:
        self.id = message_id
        self.content = content
        self.channel = channel

    async def edit(self, content: str) -> BotSentMessage:
        await self.channel.outbox.update(self.id, content)
        self.content = content
        return self

    async def delete(self) -> None:
        await self.channel.outbox.delete(self.id)


class BotChannel:
    """A Bot Framework conversation.  Bot Framework has no permission model."""

    nsfw = False

    def __init__(self, channel_id: str, is_dm: bool, outbox: _Outbox) -> None:
        self.id = channel_id
        self.is_dm = is_dm
        self.outbox = outbox

    async def send(self, content: str) -> BotSentMessage:
        return BotSentMessage(await self.outbox.send(content), content, self)

    async def send_typing(self) -> None:
        await self.outbox.typing()

    def missing_permissions(self, user_id: str, permissions: list[str]) -> list[str]:
        return []


class BotUser:

    def __init__(self, user_id: str, name: str, *, bot: bool = False, dm_channel: BotChannel | None = None) -> None:
        self.id = user_id
        self.name = name
        self.bot = bot
        self._dm_channel = dm_channel

    async def send(self, content: str) -> BotSentMessage:
        if self._dm_channel is None:
            raise RuntimeError(f"No personal conversation with user {self.id} is known.")
        return await self._dm_channel.send(content)


class BotGuild:

    def __init__(self, guild_id: str, name: str, owner_id: str = "") -> None:
        self.id = guild_id
        self.name = name
        self.owner_id = owner_id


class BotMessage:

    def __init__(
        self,
        message_id: str,
        content: str,
        author: BotUser,
        channel: BotChannel,
        guild: BotGuild | None,
        partial: bool = False,
    ) -> None:
        self.id = message_id
        self.content = content
        self.author = author
        self.channel = channel
        self.guild = guild
        self.partial = partial

    async def reply(self, content: str) -> BotSentMessage:
        return BotSentMessage(await self.channel.outbox.send(content, reply_to=self.id), content, self.channel)

    def with_content(self, content: str) -> BotMessage:
        return BotMessage(self.id, content, self.author, self.channel, self.guild, self.partial)


class BotInteraction:
    """A messaging-extension submit action, presented as a chat-input interaction."""

    is_chat_input = True

    def __init__(
        self,
        interaction_id: str,
        user: BotUser,
        channel: BotChannel,
        guild: BotGuild | None,
        command_name: str,
        options: list[dict[str, Any]],
    ) -> None:
        self.id = interaction_id
        self.user = user
        self.channel = channel
        self.guild = guild
        self.command_name = command_name
        self.options = options
        self.deferred = False
        self.replied = False
        self._reply: BotSentMessage | None = None

    async def reply(self, content: str, *, ephemeral: bool = False) -> BotSentMessage:
        self._reply = await self.channel.send(content)
        self.replied = True
        return self._reply

    async def edit_reply(self, content: str) -> BotSentMessage:
        if self._reply is None:
            return await self.reply(content)
        return await self._reply.edit(content)

    async def defer(self, *, ephemeral: bool = False) -> None:
        self.deferred = True
        await self.channel.send_typing()


class CommandBot(ActivityHandler):
    def __init__(self, client: CommandClient, adapter: BotFrameworkAdapter, app_id: str | None = None) -> None:
        self._client = client
        self.adapter = adapter
        self._app_id = app_id or client.settings.bot_app_id
        self._contents: OrderedDict[str, str] = OrderedDict()
        self._dm_channels: dict[str, BotChannel] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    # -- activity -> transport objects -------------------------------------

    def _channel(self, activity: Activity) -> BotChannel:
        ref = TurnContext.get_conversation_reference(activity)
        conversation = activity.conversation
        is_dm = (getattr(conversation, "conversation_type", None) or "personal") == "personal"
        channel = BotChannel(conversation.id, is_dm, _Outbox(self.adapter, ref, self._app_id))
        if is_dm and activity.from_property is not None:
            self._dm_channels[activity.from_property.id] = channel
        return channel

    def _guild(self, activity: Activity, channel: BotChannel) -> BotGuild | None:
        if channel.is_dm:
            return None
        conversation = activity.conversation
        guild_id = getattr(conversation, "tenant_id", None) or conversation.id
        return BotGuild(guild_id, getattr(conversation, "name", None) or guild_id)

    def _user(self, activity: Activity) -> BotUser:
        sender = activity.from_property
        user_id = sender.id if sender else ""
        role = getattr(sender, "role", None) if sender else None
        return BotUser(
            user_id,
            (sender.name if sender else None) or user_id,
            bot=role == "bot" or user_id == self._client.bot_user_id,
            dm_channel=self._dm_channels.get(user_id),
        )

    def _message(self, activity: Activity) -> BotMessage:
        channel = self._channel(activity)
        return BotMessage(
            activity.id or "",
            (activity.text or "").strip(),
            self._user(activity),
            channel,
            self._guild(activity, channel),
        )

    def _remember(self, message: BotMessage) -> None:
        self._contents[message.id] = message.content
        self._contents.move_to_end(message.id)
        while len(self._contents) > _CONTENT_CACHE_SIZE:
            self._contents.popitem(last=False)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -- handlers ----------------------------------------------------------

    async def on_message_activity(self, turn_context: TurnContext) -> None:
        message = self._message(turn_context.activity)
        self._remember(message)
        logger.debug("[bot] message %s in %s", message.id, message.channel.id)
        self._spawn(self._client.handle_message(message))

    async def on_message_update_activity(self, turn_context: TurnContext) -> None:
        message = self._message(turn_context.activity)
        old_content = self._contents.get(message.id)
        self._remember(message)
        if old_content is None:
            logger.debug("[bot] edit of unseen message %s ignored", message.id)
            return
        self._spawn(self._client.handle_message_update(message.with_content(old_content), message))

    async def on_invoke_activity(self, turn_context: TurnContext) -> InvokeResponse:
        activity = turn_context.activity
        if activity.name != SUBMIT_ACTION:
            return await super().on_invoke_activity(turn_context)

        value = activity.value or {}
        data = value.get("data") or {}
        channel = self._channel(activity)
        interaction = BotInteraction(
            activity.id or "",
            self._user(activity),
            channel,
            self._guild(activity, channel),
            value.get("commandId", ""),
            [{"name": k, "type": int(OptionType.STRING), "value": v} for k, v in data.items()],
        )
        self._spawn(self._client.handle_interaction(interaction))
        return InvokeResponse(status=200, body={})
