"""Per-guild prefix overrides and command/group enabled state.

Persisted as ``guild_settings.json`` in the data directory::

    {
      "<guild id>": {
        "prefix": "?",
        "commands": {"ping": false},
        "groups": {"util": true}
      }
    }

A missing ``prefix`` key means "use the global prefix"; a stored empty
string means "mentions only".  Missing enabled entries fall back to the
global state of the command or group.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_UNSET = object()
_KINDS = ("commands", "groups")


class GuildSettingsStore:

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, Any]] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("[guild_settings] ignoring unreadable %s: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("[guild_settings] ignoring %s: top level is not an object", self._path)
            return {}
        return {str(guild_id): entry for guild_id, entry in raw.items() if isinstance(entry, dict)}

    def _persist(self) -> None:
        # write-then-rename
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True) + "\n")
        os.replace(tmp, self._path)

    def _entry(self, guild_id: str) -> dict[str, Any]:
        return self._data.setdefault(str(guild_id), {})

    # -- prefix ------------------------------------------------------------

    def get_prefix(self, guild_id: str, default: Any = _UNSET) -> Any:
        entry = self._data.get(str(guild_id), {})
        if "prefix" in entry:
            return entry["prefix"]
        return None if default is _UNSET else default

    def set_prefix(self, guild_id: str, prefix: str | None) -> None:
        with self._lock:
            entry = self._entry(guild_id)
            if prefix is None:
                entry.pop("prefix", None)
            else:
                entry["prefix"] = prefix
            self._persist()
        logger.info("[guild_settings] prefix for guild=%s set to %r", guild_id, prefix)

    # -- enabled state -----------------------------------------------------

    def get_enabled(self, guild_id: str, kind: str, name: str) -> bool | None:
        """Return the stored override, or ``None`` when the guild never set one."""
        entry = self._data.get(str(guild_id), {})
        value = entry.get(kind, {}).get(name)
        return None if value is None else bool(value)

    def set_enabled(self, guild_id: str, kind: str, name: str, enabled: bool) -> None:
        if kind not in _KINDS:
            raise ValueError(f"Unknown settings kind {kind!r}.")
        with self._lock:
            self._entry(guild_id).setdefault(kind, {})[name] = bool(enabled)
            self._persist()
        logger.debug("[guild_settings] %s %s in guild=%s -> %s", kind, name, guild_id, enabled)

    def clear(self, guild_id: str) -> None:
        with self._lock:
            self._data.pop(str(guild_id), None)
            self._persist()
