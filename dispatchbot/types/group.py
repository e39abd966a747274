from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ArgumentType
from .command import _DISAMBIGUATION_LIMIT, disambiguation

if TYPE_CHECKING:
    from ..client import CommandClient


class GroupArgumentType(ArgumentType):

    def __init__(self, client: CommandClient) -> None:
        super().__init__(client, "group")

    def validate(self, value, ctx, arg):
        groups = self.client.registry.find_groups(value)
        if len(groups) == 1:
            return True
        if not groups:
            return False
        if len(groups) <= _DISAMBIGUATION_LIMIT:
            return disambiguation([g.name for g in groups], "groups")
        return "Multiple groups found. Please be more specific."

    def parse(self, value, ctx, arg):
        return self.client.registry.find_groups(value)[0]
