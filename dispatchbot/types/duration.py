"""Human-readable durations such as ``90s``, ``1h30m`` or ``2 days``."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import TYPE_CHECKING

from .base import ArgumentType

if TYPE_CHECKING:
    from ..client import CommandClient

_UNITS: dict[str, float] = {
    "ms": 0.001,
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "week": 604800, "weeks": 604800,
    "y": 31557600, "yr": 31557600, "year": 31557600, "years": 31557600,
}
_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)", re.IGNORECASE)
_WHOLE = re.compile(r"^(?:\s*\d+(?:\.\d+)?\s*[a-z]+\s*)+$", re.IGNORECASE)

MAX_DURATION = timedelta(seconds=_UNITS["y"])


def parse_duration(text: str) -> timedelta | None:
    """Return the total duration of *text*, or ``None`` if it isn't one."""
    if not _WHOLE.match(text):
        return None
    total = 0.0
    for amount, unit in _PART.findall(text):
        factor = _UNITS.get(unit.lower())
        if factor is None:
            return None
        total += float(amount) * factor
    return timedelta(seconds=total)


def format_duration(delta: timedelta) -> str:
    seconds = int(delta.total_seconds())
    parts = []
    for label, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        count, seconds = divmod(seconds, size)
        if count:
            parts.append(f"{count}{label}")
    return "".join(parts) or "0s"


class DurationArgumentType(ArgumentType):
    """Parses to a :class:`datetime.timedelta`; ``min``/``max`` are seconds.

    With ``skip_validation`` any well-formed duration is accepted, ignoring
    the one-year cap and the bounds.
    """

    def __init__(self, client: CommandClient) -> None:
        super().__init__(client, "duration")

    def validate(self, value, ctx, arg):
        delta = parse_duration(value)
        if delta is None or delta < timedelta(seconds=1):
            return "Please enter a valid duration format. Use the `help` command for more information."
        if arg.skip_validation:
            return True
        if delta > MAX_DURATION:
            return "The max. usable duration is `1 year`. Please try again."
        if arg.min is not None and delta.total_seconds() < arg.min:
            return f"Please enter a duration above or exactly {format_duration(timedelta(seconds=arg.min))}."
        if arg.max is not None and delta.total_seconds() > arg.max:
            return f"Please enter a duration below or exactly {format_duration(timedelta(seconds=arg.max))}."
        return True

    def parse(self, value, ctx, arg):
        return parse_duration(value)
