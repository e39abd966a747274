"""Exception types raised by the command engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .commands.invocation import CommandInvocation


class FriendlyError(Exception):
    """An error whose message is safe to echo back to the invoking user."""


class CommandFormatError(FriendlyError):
    """Raised (or replied with) when a command's arguments could not be collected."""

    def __init__(self, invocation: CommandInvocation) -> None:
        command = invocation.command
        in_guild = invocation.guild is not None
        usage = invocation.usage(command.format or "", in_guild=in_guild)
        help_usage = invocation.any_usage(f"help {command.name}", in_guild=in_guild)
        super().__init__(
            f"Invalid command usage. The `{command.name}` command's accepted format is: "
            f"{usage}. Use {help_usage} for more information."
        )


class RegistrationError(ValueError):
    """A command, group or type could not be registered."""


class ResolutionError(LookupError):
    """A command or group name did not resolve to exactly one entry."""
