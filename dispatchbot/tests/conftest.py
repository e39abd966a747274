"""Shared pytest fixtures and in-memory transport fakes for dispatchbot tests."""

from __future__ import annotations

import asyncio
import itertools
from pathlib import Path
from typing import Any

import pytest

_ids = itertools.count(1000)


def next_id() -> str:
    return str(next(_ids))


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the loop until *predicate* holds; fail the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class FakeSent:
    def __init__(self, content: str, channel: FakeChannel, reply_to: str | None = None) -> None:
        self.id = next_id()
        self.content = content
        self.channel = channel
        self.reply_to = reply_to
        self.edits: list[str] = []
        self.deleted = False

    async def edit(self, content: str) -> FakeSent:
        self.content = content
        self.edits.append(content)
        return self

    async def delete(self) -> None:
        self.deleted = True


class FakeChannel:
    def __init__(
        self,
        channel_id: str = "chan-1",
        *,
        is_dm: bool = False,
        nsfw: bool = False,
        denied: dict[str, set[str]] | None = None,
    ) -> None:
        self.id = channel_id
        self.is_dm = is_dm
        self.nsfw = nsfw
        self.denied = denied or {}
        self.sent: list[FakeSent] = []
        self.typing = 0

    async def send(self, content: str, reply_to: str | None = None) -> FakeSent:
        message = FakeSent(content, self, reply_to)
        self.sent.append(message)
        return message

    async def send_typing(self) -> None:
        self.typing += 1

    def missing_permissions(self, user_id: str, permissions: list[str]) -> list[str]:
        denied = self.denied.get(user_id, set())
        return [p for p in permissions if p in denied]

    @property
    def texts(self) -> list[str]:
        return [m.content for m in self.sent]


class FakeUser:
    def __init__(self, user_id: str = "user-1", name: str = "alice", *, bot: bool = False) -> None:
        self.id = user_id
        self.name = name
        self.bot = bot
        self.dm = FakeChannel(f"dm-{user_id}", is_dm=True)

    async def send(self, content: str) -> FakeSent:
        return await self.dm.send(content)


class FakeGuild:
    def __init__(self, guild_id: str = "guild-1", name: str = "Test Server", owner_id: str = "owner-1") -> None:
        self.id = guild_id
        self.name = name
        self.owner_id = owner_id


class FakeMessage:
    def __init__(
        self,
        content: str,
        *,
        author: FakeUser,
        channel: FakeChannel,
        guild: FakeGuild | None = None,
        message_id: str | None = None,
        partial: bool = False,
    ) -> None:
        self.id = message_id or next_id()
        self.content = content
        self.author = author
        self.channel = channel
        self.guild = guild
        self.partial = partial

    async def reply(self, content: str) -> FakeSent:
        return await self.channel.send(content, reply_to=self.id)

    def edited(self, content: str) -> FakeMessage:
        return FakeMessage(
            content, author=self.author, channel=self.channel, guild=self.guild, message_id=self.id,
        )


class FakeInteraction:
    def __init__(
        self,
        command_name: str,
        *,
        user: FakeUser,
        channel: FakeChannel,
        guild: FakeGuild | None = None,
        options: list[dict[str, Any]] | None = None,
        is_chat_input: bool = True,
    ) -> None:
        self.id = next_id()
        self.command_name = command_name
        self.user = user
        self.channel = channel
        self.guild = guild
        self.options = options or []
        self.is_chat_input = is_chat_input
        self.deferred = False
        self.replied = False
        self.deferred_ephemeral: bool | None = None
        self.replies: list[tuple[str, bool]] = []
        self.edits: list[str] = []

    async def reply(self, content: str, *, ephemeral: bool = False) -> FakeSent:
        self.replied = True
        self.replies.append((content, ephemeral))
        return await self.channel.send(content)

    async def edit_reply(self, content: str) -> FakeSent:
        self.edits.append(content)
        return await self.channel.send(content)

    async def defer(self, *, ephemeral: bool = False) -> None:
        self.deferred = True
        self.deferred_ephemeral = ephemeral


# -- fixtures ----------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("DISPATCHBOT_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    for key in ("COMMAND_PREFIX", "COMMAND_EDITABLE_DURATION", "NON_COMMAND_EDITABLE", "BOT_OWNERS", "TEST_GUILD_ID"):
        monkeypatch.delenv(key, raising=False)
    return data_dir


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_data_dir: Path):
    from dispatchbot.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir


@pytest.fixture()
def settings():
    from dispatchbot.config.settings import Settings

    return Settings()


@pytest.fixture()
def bot_user() -> FakeUser:
    return FakeUser("bot-1", "Dispatch", bot=True)


@pytest.fixture()
def client(settings, bot_user):
    """A client with the default types and groups but no commands."""
    from dispatchbot.client import CommandClient

    client = CommandClient(settings, bot_user_id=bot_user.id, user=bot_user, owners={"owner-1"})
    client.registry.register_default_types()
    client.registry.register_groups([
        {"id": "util", "name": "Utility"},
        {"id": "commands", "name": "Commands", "guarded": True},
    ])
    yield client
    client.dispatcher.clear_results()


@pytest.fixture()
def user() -> FakeUser:
    return FakeUser()


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def guild() -> FakeGuild:
    return FakeGuild()


@pytest.fixture()
def make_message(user, channel, guild):
    def _make(content: str, **kwargs: Any) -> FakeMessage:
        kwargs.setdefault("author", user)
        kwargs.setdefault("channel", channel)
        kwargs.setdefault("guild", guild)
        return FakeMessage(content, **kwargs)

    return _make
