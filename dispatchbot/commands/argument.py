"""A single command argument and its interactive prompting logic."""

from __future__ import annotations

import inspect
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import RegistrationError

if TYPE_CHECKING:
    from ..client import CommandClient
    from ..messaging.transport import ChatMessage, SentMessage
    from ..types.base import ArgumentType
    from .invocation import CommandInvocation

logger = logging.getLogger(__name__)

CANCEL_KEYWORD = "cancel"
FINISH_KEYWORD = "finish"
DEFAULT_WAIT = 30.0


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class CancelReason(str, Enum):
    USER = "user"
    TIME = "time"
    PROMPT_LIMIT = "promptLimit"


@dataclass
class ArgumentInfo:
    key: str
    prompt: str
    type: str | list[str] | None = None
    label: str | None = None
    error: str | None = None
    min: float | None = None
    max: float | None = None
    default: Any = MISSING
    one_of: list[Any] | None = None
    required: bool | None = None
    skip_validation: bool = False
    infinite: bool = False
    validate: Callable[..., Any] | None = None
    parse: Callable[..., Any] | None = None
    is_empty: Callable[..., Any] | None = None
    wait: float = DEFAULT_WAIT


@dataclass
class ArgumentResult:
    value: Any
    cancelled: CancelReason | None = None
    prompts: list[SentMessage] = field(default_factory=list)
    answers: list[ChatMessage] = field(default_factory=list)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Argument:
    """One declared parameter of a command.

    Values come either pre-supplied from the argument string or from the
    invoking user's replies to prompts.  A custom ``validate``/``parse``/
    ``is_empty`` callable takes precedence over the argument's type.
    """

    def __init__(self, client: CommandClient, info: ArgumentInfo | dict[str, Any]) -> None:
        if isinstance(info, dict):
            info = ArgumentInfo(**info)
        self.validate_info(client, info)

        self.client = client
        self.key = info.key
        self.label = info.label or info.key
        self.prompt = info.prompt
        self.error = info.error
        self.type: ArgumentType | None = self.determine_type(client, info.type)
        self.min = info.min
        self.max = info.max
        self.default = info.default
        self.required = bool(info.required) if info.required is not None else info.default is MISSING
        self.skip_validation = info.skip_validation
        self.one_of = (
            [o.lower() if isinstance(o, str) else o for o in info.one_of]
            if info.one_of is not None else None
        )
        self.infinite = info.infinite
        self.validator = info.validate
        self.parser = info.parse
        self.empty_checker = info.is_empty
        self.wait = info.wait

    def __repr__(self) -> str:
        return f"<Argument {self.key} type={self.type.id if self.type else None}>"

    # -- obtaining values --------------------------------------------------

    async def obtain(
        self,
        ctx: CommandInvocation,
        value: Any,
        prompt_limit: float = math.inf,
    ) -> ArgumentResult:
        """Resolve this argument's value, prompting the invoking user if needed."""
        empty = self.is_empty(value, ctx)
        if empty and not self.required:
            return ArgumentResult(value=await self.resolve_default(ctx))
        if self.infinite:
            values = value if isinstance(value, list) else [value]
            return await self.obtain_infinite(ctx, [v for v in values if v], prompt_limit)

        wait = self._wait_seconds()
        prompts: list[SentMessage] = []
        answers: list[ChatMessage] = []
        valid: Any = await self.validate(value, ctx) if not empty else False

        while not valid or isinstance(valid, str):
            if len(prompts) >= prompt_limit:
                return ArgumentResult(None, CancelReason.PROMPT_LIMIT, prompts, answers)

            lines = []
            if not empty:
                lines.append(f"**{valid}**" if valid else f"You provided an invalid {self.label}. Please try again.")
            lines += [
                self.prompt,
                "**Don't type the whole command again!** Only what I ask for.",
                f"Respond with `{CANCEL_KEYWORD}` to cancel the command.",
            ]
            if wait:
                lines.append(f"The command will automatically be cancelled in {self.wait:g} seconds.")
            prompts.append(await ctx.reply("\n".join(lines)))

            answer = await ctx.client.dispatcher.wait_for_reply(ctx.author.id, ctx.channel.id, wait)
            if answer is None:
                return ArgumentResult(None, CancelReason.TIME, prompts, answers)
            answers.append(answer)
            value = answer.content

            if value.strip().lower() == CANCEL_KEYWORD:
                return ArgumentResult(None, CancelReason.USER, prompts, answers)

            empty = self.is_empty(value, ctx, answer)
            valid = await self.validate(value, ctx, answer)

        parsed = await self.parse(value, ctx, answers[-1] if answers else None)
        return ArgumentResult(parsed, None, prompts, answers)

    async def obtain_infinite(
        self,
        ctx: CommandInvocation,
        values: list[str],
        prompt_limit: float = math.inf,
    ) -> ArgumentResult:
        """Collect values until the supplied ones run out or the user finishes.

        With no supplied values the user is prompted once and every further
        reply is appended until they answer ``finish`` or an empty message.
        """
        wait = self._wait_seconds()
        results: list[Any] = []
        prompts: list[SentMessage] = []
        answers: list[ChatMessage] = []
        index = 0

        while True:
            value: str | None = values[index] if index < len(values) else None
            valid: Any = await self.validate(value, ctx) if value else False
            attempts = 0

            while not valid or isinstance(valid, str):
                attempts += 1
                if attempts > prompt_limit:
                    return ArgumentResult(None, CancelReason.PROMPT_LIMIT, prompts, answers)

                if value:
                    shown = value if len(value) < 1850 else "[too long to show]"
                    lines = [
                        valid or f'You provided an invalid {self.label}, "{shown}". Please try again.',
                        self.prompt,
                        "**Don't type the whole command again!** Only what I ask for.",
                        f"Respond with `{CANCEL_KEYWORD}` to cancel the command, "
                        f"or `{FINISH_KEYWORD}` to finish entry up to this point.",
                    ]
                    prompts.append(await ctx.reply("\n".join(lines)))
                elif not results:
                    lines = [
                        self.prompt,
                        "**Don't type the whole command again!** Only what I ask for.",
                        f"Respond with `{CANCEL_KEYWORD}` to cancel the command, "
                        f"or `{FINISH_KEYWORD}` to finish entry.",
                    ]
                    if wait:
                        lines.append(
                            f"The command will automatically be cancelled in {self.wait:g} seconds, "
                            "unless you respond."
                        )
                    prompts.append(await ctx.reply("\n".join(lines)))

                answer = await ctx.client.dispatcher.wait_for_reply(ctx.author.id, ctx.channel.id, wait)
                if answer is None:
                    return ArgumentResult(None, CancelReason.TIME, prompts, answers)
                answers.append(answer)
                value = answer.content

                lowered = value.strip().lower()
                if lowered in (FINISH_KEYWORD, ""):
                    cancelled = None if results or self.default is not MISSING else CancelReason.USER
                    return ArgumentResult(results or None, cancelled, prompts, answers)
                if lowered == CANCEL_KEYWORD:
                    return ArgumentResult(None, CancelReason.USER, prompts, answers)

                valid = await self.validate(value, ctx, answer)

            results.append(await self.parse(value, ctx, answers[-1] if answers else None))
            if values:
                index += 1
                if index == len(values):
                    return ArgumentResult(results, None, prompts, answers)

    async def resolve_default(self, ctx: CommandInvocation) -> Any:
        if self.default is MISSING:
            return None
        if callable(self.default):
            return await _maybe_await(self.default(ctx, self))
        return self.default

    def _wait_seconds(self) -> float | None:
        return self.wait if 0 < self.wait < math.inf else None

    # -- capability delegation ---------------------------------------------

    async def validate(self, value: Any, ctx: CommandInvocation, answer: ChatMessage | None = None) -> Any:
        if self.validator is not None:
            valid = await _maybe_await(self.validator(value, ctx, self, answer))
        else:
            valid = await _maybe_await(self.type.validate(value, ctx, self))
        if not valid or isinstance(valid, str):
            return self.error or valid
        return valid

    async def parse(self, value: Any, ctx: CommandInvocation, answer: ChatMessage | None = None) -> Any:
        if self.parser is not None:
            return await _maybe_await(self.parser(value, ctx, self, answer))
        return await _maybe_await(self.type.parse(value, ctx, self))

    def is_empty(self, value: Any, ctx: CommandInvocation, answer: ChatMessage | None = None) -> bool:
        if self.empty_checker is not None:
            return bool(self.empty_checker(value, ctx, self, answer))
        if self.type is not None:
            return self.type.is_empty(value, ctx, self)
        if isinstance(value, list):
            return len(value) == 0
        return not value

    # -- declaration checks ------------------------------------------------

    @staticmethod
    def validate_info(client: CommandClient, info: ArgumentInfo) -> None:
        if not isinstance(info.key, str) or not info.key:
            raise TypeError("Argument key must be a non-empty string.")
        if info.label is not None and not isinstance(info.label, str):
            raise TypeError("Argument label must be a string.")
        if not isinstance(info.prompt, str):
            raise TypeError("Argument prompt must be a string.")
        if info.error is not None and not isinstance(info.error, str):
            raise TypeError("Argument error must be a string.")
        if isinstance(info.type, list):
            info.type = "|".join(info.type)
        if info.type is not None and not isinstance(info.type, str):
            raise TypeError("Argument type must be a string or a list of strings.")
        if info.type and "|" not in info.type and info.type not in client.registry.types:
            raise ValueError(f'Argument type "{info.type}" isn\'t registered.')
        if not info.type and not info.validate:
            raise ValueError('Argument must have either "type" or "validate" specified.')
        if info.validate is not None and not callable(info.validate):
            raise TypeError("Argument validate must be callable.")
        if info.parse is not None and not callable(info.parse):
            raise TypeError("Argument parse must be callable.")
        if not info.type and (not info.validate or not info.parse):
            raise ValueError("Argument must have both validate and parse since it doesn't have a type.")
        if not isinstance(info.wait, (int, float)) or math.isnan(info.wait):
            raise TypeError("Argument wait must be a number.")

    @staticmethod
    def determine_type(client: CommandClient, type_id: str | list[str] | None) -> ArgumentType | None:
        """Look up *type_id*, creating and registering a union type on first use."""
        if not type_id:
            return None
        if isinstance(type_id, list):
            type_id = "|".join(type_id)
        registry = client.registry
        existing = registry.types.get(type_id)
        if existing is not None:
            return existing
        if "|" not in type_id:
            raise RegistrationError(f'Argument type "{type_id}" isn\'t registered.')

        from ..types.union import UnionArgumentType

        union = UnionArgumentType(client, type_id)
        registry.register_type(union)
        logger.debug("[argument] created union type %s", type_id)
        return union
