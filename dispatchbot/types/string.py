from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ArgumentType, one_of_message

if TYPE_CHECKING:
    from ..client import CommandClient


class StringArgumentType(ArgumentType):

    def __init__(self, client: CommandClient) -> None:
        super().__init__(client, "string")

    def validate(self, value, ctx, arg):
        if arg.one_of and value.lower() not in arg.one_of:
            return one_of_message(arg.one_of)
        if arg.min is not None and len(value) < arg.min:
            return f"Please keep the {arg.label} above or exactly {arg.min} characters."
        if arg.max is not None and len(value) > arg.max:
            return f"Please keep the {arg.label} below or exactly {arg.max} characters."
        return True

    def parse(self, value, ctx, arg):
        return value
