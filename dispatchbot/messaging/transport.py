"""Contract between the command engine and the chat transport.

The engine only talks to these protocols.  ``messaging.bot`` implements
them over Bot Framework activities; tests implement them with fakes.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

DM_CHANNEL_KEY = "DM"


@runtime_checkable
class SentMessage(Protocol):
    """A persisted outbound message that can be edited or deleted later."""

    id: str
    content: str
    channel: Channel

    async def edit(self, content: str) -> SentMessage: ...

    async def delete(self) -> None: ...


class User(Protocol):
    id: str
    name: str
    bot: bool

    async def send(self, content: str) -> SentMessage: ...


class Guild(Protocol):
    id: str
    name: str
    owner_id: str


class Channel(Protocol):
    id: str
    is_dm: bool
    nsfw: bool

    async def send(self, content: str) -> SentMessage: ...

    async def send_typing(self) -> None: ...

    def missing_permissions(self, user_id: str, permissions: list[str]) -> list[str]:
        """Return the subset of *permissions* that *user_id* lacks here."""
        ...


class ChatMessage(Protocol):
    id: str
    content: str
    author: User
    channel: Channel
    guild: Guild | None
    partial: bool

    async def reply(self, content: str) -> SentMessage: ...


class Interaction(Protocol):
    """A structured (slash-style) command interaction."""

    id: str
    user: User
    channel: Channel
    guild: Guild | None
    command_name: str
    options: list[dict[str, Any]]
    is_chat_input: bool
    deferred: bool
    replied: bool

    async def reply(self, content: str, *, ephemeral: bool = False) -> SentMessage | None: ...

    async def edit_reply(self, content: str) -> SentMessage | None: ...

    async def defer(self, *, ephemeral: bool = False) -> None: ...


class RemoteCommandManager(Protocol):
    """CRUD surface for one scope (global or a single guild) of remote commands."""

    async def fetch(self) -> list[dict[str, Any]]: ...

    async def create(self, data: dict[str, Any]) -> dict[str, Any]: ...

    async def edit(self, command_id: str, data: dict[str, Any]) -> dict[str, Any]: ...

    async def delete(self, command_id: str) -> None: ...


def channel_key(channel: Channel) -> str:
    return DM_CHANNEL_KEY if channel.is_dm else channel.id
