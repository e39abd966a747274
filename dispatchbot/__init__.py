"""dispatchbot -- a chat command engine: registry, dispatcher and argument collector."""

from .client import CommandClient
from .commands import (
    Argument,
    ArgumentCollector,
    CancelReason,
    Command,
    CommandGroup,
    CommandInvocation,
    InteractionInvocation,
)
from .dispatcher import Dispatcher, Inhibition
from .errors import CommandFormatError, FriendlyError, RegistrationError, ResolutionError
from .events import Event, EventBus
from .registry import Registry

__all__ = [
    "Argument",
    "ArgumentCollector",
    "CancelReason",
    "Command",
    "CommandClient",
    "CommandFormatError",
    "CommandGroup",
    "CommandInvocation",
    "Dispatcher",
    "Event",
    "EventBus",
    "FriendlyError",
    "Inhibition",
    "InteractionInvocation",
    "RegistrationError",
    "Registry",
    "ResolutionError",
]
