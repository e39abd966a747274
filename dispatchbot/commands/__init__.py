"""Command descriptors, argument collection and invocation wrappers."""

from .argument import Argument, ArgumentInfo, ArgumentResult, CancelReason
from .base import Command, CommandInfo, Throttle, ThrottlingOptions
from .collector import ArgumentCollector, CollectorResult
from .group import CommandGroup
from .invocation import CommandInvocation, InteractionInvocation

__all__ = [
    "Argument",
    "ArgumentCollector",
    "ArgumentInfo",
    "ArgumentResult",
    "CancelReason",
    "CollectorResult",
    "Command",
    "CommandGroup",
    "CommandInfo",
    "CommandInvocation",
    "InteractionInvocation",
    "Throttle",
    "ThrottlingOptions",
]
