"""Ordered union of registered argument types (``"integer|string"``)."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

from ..errors import RegistrationError
from .base import ArgumentType

if TYPE_CHECKING:
    from ..client import CommandClient


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class UnionArgumentType(ArgumentType):
    """Tries each member type in declared order.

    The first member that considers the value non-empty and validates it
    with ``True`` wins; later members are not consulted.
    """

    def __init__(self, client: CommandClient, type_id: str) -> None:
        super().__init__(client, type_id)
        self.types: list[ArgumentType] = []
        for member_id in type_id.split("|"):
            member = client.registry.types.get(member_id)
            if member is None:
                raise RegistrationError(f'Argument type "{member_id}" is not registered.')
            self.types.append(member)

    async def _first_valid(self, value, ctx, arg) -> tuple[ArgumentType | None, list[str]]:
        errors: list[str] = []
        for member in self.types:
            if member.is_empty(value, ctx, arg):
                continue
            valid = await _resolve(member.validate(value, ctx, arg))
            if valid is True:
                return member, errors
            if isinstance(valid, str):
                errors.append(valid)
        return None, errors

    async def validate(self, value, ctx, arg):
        member, errors = await self._first_valid(value, ctx, arg)
        if member is not None:
            return True
        if errors:
            return "\n".join(errors)
        return False

    async def parse(self, value, ctx, arg):
        member, _ = await self._first_valid(value, ctx, arg)
        if member is None:
            raise ValueError(f"Couldn't parse value {value!r} with union type {self.id}.")
        return await _resolve(member.parse(value, ctx, arg))

    def is_empty(self, value, ctx, arg):
        return all(member.is_empty(value, ctx, arg) for member in self.types)
