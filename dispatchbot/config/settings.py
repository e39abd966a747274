"""Application settings -- reads from environment and ``.env`` file."""

from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from ..util.env_file import EnvFile, parse_bool, parse_csv
from ..util.singletons import register_singleton

DEFAULT_PREFIX = "!"
DEFAULT_EDITABLE_DURATION = 30.0


class Settings:

    _DATA_DIR_ENV: ClassVar[str] = "DISPATCHBOT_DATA_DIR"

    def __init__(self) -> None:
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            dotenv = str(Path(data_dir) / ".env") if data_dir else ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        e = self._read

        raw_prefix = e("COMMAND_PREFIX")
        # An explicitly empty prefix means "mentions only"; unset means default.
        self.command_prefix: str = (
            raw_prefix if raw_prefix or self._is_set("COMMAND_PREFIX") else DEFAULT_PREFIX
        )
        self.command_editable_duration: float = float(
            e("COMMAND_EDITABLE_DURATION") or DEFAULT_EDITABLE_DURATION
        )
        self.non_command_editable: bool = parse_bool(e("NON_COMMAND_EDITABLE"), True)
        self.owners: frozenset[str] = parse_csv(e("BOT_OWNERS"))
        self.test_guild_id: str = e("TEST_GUILD_ID")

        self.bot_app_id: str = e("BOT_APP_ID")
        self.bot_app_password: str = e("BOT_APP_PASSWORD")

        self.commands_api_url: str = e("COMMANDS_API_URL") or "https://discord.com/api/v10"
        self.commands_api_token: str = e("COMMANDS_API_TOKEN")

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.home() / ".dispatchbot")))

    @property
    def guild_settings_path(self) -> Path:
        return self.data_dir / "guild_settings.json"

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")

    def _is_set(self, key: str) -> bool:
        return key in self.env.read_all() or key in os.environ

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def write_env(self, **kwargs: str) -> None:
        self.env.write(**kwargs)
        self.reload()


cfg = Settings()


def _reset_cfg() -> None:
    global cfg
    cfg = Settings()


register_singleton(_reset_cfg)
