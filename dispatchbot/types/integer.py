from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .base import ArgumentType, one_of_message

if TYPE_CHECKING:
    from ..client import CommandClient

_INTEGER = re.compile(r"^[+-]?\d+$")


class IntegerArgumentType(ArgumentType):

    def __init__(self, client: CommandClient) -> None:
        super().__init__(client, "integer")

    def validate(self, value, ctx, arg):
        if not _INTEGER.match(value.strip()):
            return False
        number = int(value)
        if arg.one_of and number not in arg.one_of:
            return one_of_message(arg.one_of)
        if arg.min is not None and number < arg.min:
            return f"Please enter a number above or exactly {arg.min}."
        if arg.max is not None and number > arg.max:
            return f"Please enter a number below or exactly {arg.max}."
        return True

    def parse(self, value, ctx, arg):
        return int(value)
