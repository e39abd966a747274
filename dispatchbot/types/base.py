"""Argument type capability: validate / parse / is_empty for one value kind."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..client import CommandClient
    from ..commands.argument import Argument
    from ..commands.invocation import CommandInvocation

# validate() may return (or resolve to) one of these.
Validity = bool | str


class ArgumentType:
    """Base class for argument types.

    ``validate`` returns ``True`` when the raw value is acceptable, ``False``
    when it is not, or a string explaining why it is not.  Either method may
    be a coroutine function.
    """

    def __init__(self, client: CommandClient, type_id: str) -> None:
        if not isinstance(type_id, str):
            raise TypeError("Argument type ID must be a string.")
        if type_id != type_id.lower():
            raise ValueError("Argument type ID must be lowercase.")
        self.client = client
        self.id = type_id

    def validate(self, value: str, ctx: CommandInvocation, arg: Argument) -> Any:
        raise NotImplementedError(f"{type(self).__name__} doesn't have a validate() method.")

    def parse(self, value: str, ctx: CommandInvocation, arg: Argument) -> Any:
        raise NotImplementedError(f"{type(self).__name__} doesn't have a parse() method.")

    def is_empty(self, value: Any, ctx: CommandInvocation, arg: Argument) -> bool:
        if isinstance(value, (list, tuple)):
            return len(value) == 0
        return not value

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


def one_of_message(options: list[Any]) -> str:
    return "Please enter one of the following options: " + ", ".join(f"`{o}`" for o in options)
