from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ArgumentType

if TYPE_CHECKING:
    from ..client import CommandClient

TRUTHY = frozenset({"true", "t", "yes", "y", "on", "enable", "enabled", "1", "+"})
FALSY = frozenset({"false", "f", "no", "n", "off", "disable", "disabled", "0", "-"})


class BooleanArgumentType(ArgumentType):

    def __init__(self, client: CommandClient) -> None:
        super().__init__(client, "boolean")

    def validate(self, value, ctx, arg):
        lowered = value.lower()
        return lowered in TRUTHY or lowered in FALSY

    def parse(self, value, ctx, arg):
        lowered = value.lower()
        if lowered in TRUTHY:
            return True
        if lowered in FALSY:
            return False
        raise ValueError(f"Unknown boolean value {value!r}.")
