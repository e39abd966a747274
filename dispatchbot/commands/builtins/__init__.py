"""Commands registered by :meth:`CommandClient.register_defaults`."""

from .admin import DisableCommand, EnableCommand, GroupsCommand
from .util import HelpCommand, PingCommand, PrefixCommand, UnknownCommand

DEFAULT_COMMANDS = [
    UnknownCommand,
    HelpCommand,
    PingCommand,
    PrefixCommand,
    EnableCommand,
    DisableCommand,
    GroupsCommand,
]

__all__ = [
    "DEFAULT_COMMANDS",
    "DisableCommand",
    "EnableCommand",
    "GroupsCommand",
    "HelpCommand",
    "PingCommand",
    "PrefixCommand",
    "UnknownCommand",
]
