from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ArgumentType

if TYPE_CHECKING:
    from ..client import CommandClient

_DISAMBIGUATION_LIMIT = 15


def disambiguation(names: list[str], label: str) -> str:
    listed = ", ".join(f'"{name}"' for name in names)
    return f"Multiple {label} found, please be more specific: {listed}"


class CommandArgumentType(ArgumentType):

    def __init__(self, client: CommandClient) -> None:
        super().__init__(client, "command")

    def validate(self, value, ctx, arg):
        commands = self.client.registry.find_commands(value)
        if len(commands) == 1:
            return True
        if not commands:
            return False
        if len(commands) <= _DISAMBIGUATION_LIMIT:
            return disambiguation([c.name for c in commands], "commands")
        return "Multiple commands found. Please be more specific."

    def parse(self, value, ctx, arg):
        return self.client.registry.find_commands(value)[0]
