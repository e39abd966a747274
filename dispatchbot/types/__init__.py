"""Built-in argument types."""

from .base import ArgumentType
from .boolean import BooleanArgumentType
from .command import CommandArgumentType
from .duration import DurationArgumentType, parse_duration
from .float import FloatArgumentType
from .group import GroupArgumentType
from .integer import IntegerArgumentType
from .string import StringArgumentType
from .union import UnionArgumentType

DEFAULT_TYPES: dict[str, type[ArgumentType]] = {
    "string": StringArgumentType,
    "integer": IntegerArgumentType,
    "float": FloatArgumentType,
    "boolean": BooleanArgumentType,
    "duration": DurationArgumentType,
    "command": CommandArgumentType,
    "group": GroupArgumentType,
}

__all__ = [
    "DEFAULT_TYPES",
    "ArgumentType",
    "BooleanArgumentType",
    "CommandArgumentType",
    "DurationArgumentType",
    "FloatArgumentType",
    "GroupArgumentType",
    "IntegerArgumentType",
    "StringArgumentType",
    "UnionArgumentType",
    "parse_duration",
]
