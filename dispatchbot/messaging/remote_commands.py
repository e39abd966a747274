"""REST client for the remote application-commands API (global or one guild)."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ..config.settings import Settings

logger = logging.getLogger(__name__)


class RemoteCommandsError(RuntimeError):
    """The application-commands API answered with an error status."""

    def __init__(self, method: str, url: str, status: int, body: str) -> None:
        super().__init__(f"{method} {url} failed with HTTP {status}: {body[:200]}")
        self.status = status


def _headers(token: str) -> dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "User-Agent": "dispatchbot (https://github.com, 1.0)",
    }
    if token:
        headers["Authorization"] = f"Bot {token}"
    return headers


class HttpCommandManager:
    """:class:`RemoteCommandManager` over ``/applications/{app}/commands``.

    With ``guild_id`` set, every call targets that guild's commands instead
    of the global ones.  A fresh session is opened per call unless one is
    passed in.
    """

    def __init__(
        self,
        application_id: str,
        *,
        token: str,
        base_url: str,
        guild_id: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not application_id:
            raise ValueError("An application id is required to manage remote commands.")
        self.application_id = application_id
        self.guild_id = guild_id
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._session = session

    @classmethod
    def from_settings(cls, settings: Settings, *, guild: bool = False) -> HttpCommandManager:
        return cls(
            settings.bot_app_id,
            token=settings.commands_api_token,
            base_url=settings.commands_api_url,
            guild_id=settings.test_guild_id if guild else None,
        )

    @property
    def url(self) -> str:
        root = f"{self._base_url}/applications/{self.application_id}"
        if self.guild_id:
            return f"{root}/guilds/{self.guild_id}/commands"
        return f"{root}/commands"

    async def _request(self, method: str, url: str, payload: dict[str, Any] | None = None) -> Any:
        if self._session is not None:
            return await self._send(self._session, method, url, payload)
        async with aiohttp.ClientSession(headers=_headers(self._token)) as session:
            return await self._send(session, method, url, payload)

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        payload: dict[str, Any] | None,
    ) -> Any:
        headers = _headers(self._token) if self._session is not None else None
        async with session.request(method, url, json=payload, headers=headers) as resp:
            if resp.status == 204:
                return None
            if resp.status >= 400:
                raise RemoteCommandsError(method, url, resp.status, await resp.text())
            return await resp.json()

    async def fetch(self) -> list[dict[str, Any]]:
        commands = await self._request("GET", self.url)
        logger.debug("[remote_commands] fetched %d commands from %s", len(commands or []), self.url)
        return list(commands or [])

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        logger.info("[remote_commands] creating %s", data.get("name"))
        return await self._request("POST", self.url, data)

    async def edit(self, command_id: str, data: dict[str, Any]) -> dict[str, Any]:
        logger.info("[remote_commands] editing %s (%s)", data.get("name"), command_id)
        return await self._request("PATCH", f"{self.url}/{command_id}", data)

    async def delete(self, command_id: str) -> None:
        logger.info("[remote_commands] deleting %s", command_id)
        await self._request("DELETE", f"{self.url}/{command_id}")
