"""Tests for the application-commands REST client against an in-process API."""

from __future__ import annotations

import itertools

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from dispatchbot.commands.base import Command
from dispatchbot.messaging.remote_commands import HttpCommandManager, RemoteCommandsError


class FakeCommandsApi:
    """Minimal stand-in for ``/applications/{app}/[guilds/{guild}/]commands``."""

    def __init__(self, token: str = "tok") -> None:
        self.token = token
        self.scopes: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self._ids = itertools.count(100)

    def app(self) -> web.Application:
        app = web.Application(middlewares=[self._auth])
        for base in ("/applications/{app}/commands", "/applications/{app}/guilds/{guild}/commands"):
            app.router.add_get(base, self._list)
            app.router.add_post(base, self._create)
            app.router.add_patch(base + "/{id}", self._edit)
            app.router.add_delete(base + "/{id}", self._delete)
        return app

    @web.middleware
    async def _auth(self, request: web.Request, handler):
        if request.headers.get("Authorization") != f"Bot {self.token}":
            return web.json_response({"message": "401: Unauthorized"}, status=401)
        self.calls.append((request.method, request.path))
        return await handler(request)

    def _scope(self, request: web.Request) -> list[dict]:
        return self.scopes.setdefault(request.match_info.get("guild", "global"), [])

    async def _list(self, request: web.Request) -> web.Response:
        return web.json_response(self._scope(request))

    async def _create(self, request: web.Request) -> web.Response:
        data = await request.json()
        data.update(id=str(next(self._ids)), application_id=request.match_info["app"], version="1")
        self._scope(request).append(data)
        return web.json_response(data, status=201)

    async def _edit(self, request: web.Request) -> web.Response:
        data = await request.json()
        for command in self._scope(request):
            if command["id"] == request.match_info["id"]:
                command.update(data)
                return web.json_response(command)
        return web.json_response({"message": "Unknown application command"}, status=404)

    async def _delete(self, request: web.Request) -> web.Response:
        scope = self._scope(request)
        scope[:] = [c for c in scope if c["id"] != request.match_info["id"]]
        return web.Response(status=204)


@pytest.fixture()
async def api():
    fake = FakeCommandsApi()
    async with TestServer(fake.app()) as server:
        fake.base_url = str(server.make_url(""))
        yield fake


class EchoCommand(Command):
    def __init__(self, client, description: str = "Echoes text.") -> None:
        super().__init__(
            client,
            {"name": "echo", "group": "util", "description": description},
            slash={"options": [{"type": 3, "name": "text", "description": "Text", "required": True}]},
        )


class TestHttpCommandManager:
    async def test_crud_round(self, api) -> None:
        manager = HttpCommandManager("app-1", token="tok", base_url=api.base_url)
        created = await manager.create({"name": "a", "description": "d", "type": 1})
        assert created["id"] == "100"
        await manager.edit("100", {"name": "a", "description": "d2", "type": 1})
        assert [c["description"] for c in await manager.fetch()] == ["d2"]
        await manager.delete("100")
        assert await manager.fetch() == []

    async def test_guild_scope_url(self, api) -> None:
        manager = HttpCommandManager("app-1", token="tok", base_url=api.base_url, guild_id="g1")
        assert manager.url.endswith("/applications/app-1/guilds/g1/commands")
        await manager.create({"name": "a", "description": "d"})
        assert list(api.scopes) == ["g1"]

    async def test_error_status_raises(self, api) -> None:
        manager = HttpCommandManager("app-1", token="wrong", base_url=api.base_url)
        with pytest.raises(RemoteCommandsError) as info:
            await manager.fetch()
        assert info.value.status == 401

    def test_requires_application_id(self) -> None:
        with pytest.raises(ValueError):
            HttpCommandManager("", token="tok", base_url="http://localhost")

    def test_from_settings(self, settings) -> None:
        settings.bot_app_id = "app-9"
        settings.test_guild_id = "g9"
        settings.commands_api_url = "http://api.local/v10/"
        manager = HttpCommandManager.from_settings(settings, guild=True)
        assert manager.url == "http://api.local/v10/applications/app-9/guilds/g9/commands"
        assert HttpCommandManager.from_settings(settings).guild_id is None


class TestSyncAgainstApi:
    async def test_second_sync_writes_nothing(self, client, api) -> None:
        client.registry.register_command(EchoCommand)
        manager = HttpCommandManager("app-1", token="tok", base_url=api.base_url)

        await client.sync_slash_commands(manager)
        assert [m for m, _ in api.calls] == ["GET", "POST"]

        api.calls.clear()
        results = await client.sync_slash_commands(manager)
        assert [m for m, _ in api.calls] == ["GET"]
        assert not results["global"]

    async def test_changed_description_is_patched(self, client, api) -> None:
        client.registry.register_command(EchoCommand)
        manager = HttpCommandManager("app-1", token="tok", base_url=api.base_url)
        await client.sync_slash_commands(manager)

        old = client.registry.commands["echo"]
        client.registry.reregister_command(EchoCommand(client, "Echoes text back."), old)
        api.calls.clear()
        await client.sync_slash_commands(manager)

        assert [m for m, _ in api.calls] == ["GET", "PATCH"]
        assert api.scopes["global"][0]["description"] == "Echoes text back."
