"""``.env`` file access for :class:`~dispatchbot.config.settings.Settings`."""

from __future__ import annotations

import re
import threading
from pathlib import Path

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_LINE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*$")


def _unquote(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "\"'":
        return raw[1:-1]
    # Unquoted values may carry a trailing " # comment".
    return raw.split(" #", 1)[0].rstrip()


class EnvFile:
    """KEY=VALUE file shared by every Settings instance pointing at it.

    Writes rewrite only the lines of the keys being changed, so comments
    and unrelated entries survive ``write_env`` calls.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self, key: str) -> str:
        return self.read_all().get(key, "")

    def read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        result: dict[str, str] = {}
        for line in self.path.read_text().splitlines():
            match = _LINE.match(line)
            if match and not line.lstrip().startswith("#"):
                result[match.group(1)] = _unquote(match.group(2))
        return result

    def write(self, **kwargs: str) -> None:
        """Set each key in *kwargs*; a value of ``""`` removes the key."""
        with self._lock:
            pending = dict(kwargs)
            lines: list[str] = []
            if self.path.exists():
                for line in self.path.read_text().splitlines():
                    match = _LINE.match(line)
                    key = match.group(1) if match and not line.lstrip().startswith("#") else None
                    if key is None or key not in pending:
                        lines.append(line)
                        continue
                    value = pending.pop(key)
                    if value:
                        lines.append(f'{key}="{value}"')
            lines.extend(f'{k}="{v}"' for k, v in pending.items() if v)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("\n".join(lines) + "\n")


def parse_bool(raw: str, default: bool) -> bool:
    if not raw:
        return default
    return raw.strip().lower() in _TRUTHY


def parse_csv(raw: str) -> frozenset[str]:
    return frozenset(part.strip() for part in raw.split(",") if part.strip())
