"""Obtains values for an ordered list of arguments, prompting when needed."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .argument import Argument, ArgumentInfo, ArgumentResult, CancelReason

if TYPE_CHECKING:
    from ..client import CommandClient
    from ..messaging.transport import ChatMessage, SentMessage
    from .invocation import CommandInvocation


@dataclass
class CollectorResult:
    values: dict[str, Any] | None
    cancelled: CancelReason | None = None
    prompts: list[SentMessage] = field(default_factory=list)
    answers: list[ChatMessage] = field(default_factory=list)


class ArgumentCollector:

    def __init__(
        self,
        client: CommandClient,
        args: list[ArgumentInfo | dict[str, Any] | Argument],
        prompt_limit: float | None = math.inf,
    ) -> None:
        if not isinstance(args, (list, tuple)):
            raise TypeError("Collector args must be a list.")
        self.client = client
        self.prompt_limit = math.inf if prompt_limit is None else prompt_limit
        self.args: list[Argument] = []

        has_infinite = False
        has_optional = False
        seen: set[str] = set()
        for info in args:
            if has_infinite:
                raise ValueError("No other argument may come after an infinite argument.")
            arg = info if isinstance(info, Argument) else Argument(client, info)
            if arg.key in seen:
                raise ValueError(f'Argument key "{arg.key}" is used more than once.')
            seen.add(arg.key)
            if not arg.required:
                has_optional = True
            elif has_optional:
                raise ValueError("Required arguments may not come after optional arguments.")
            if arg.infinite:
                has_infinite = True
            self.args.append(arg)

    async def obtain(
        self,
        ctx: CommandInvocation,
        provided: list[str] | None = None,
        prompt_limit: float | None = None,
    ) -> CollectorResult:
        """Obtain every argument in order; the first cancellation aborts the rest."""
        provided = provided or []
        limit = self.prompt_limit if prompt_limit is None else prompt_limit
        dispatcher = self.client.dispatcher
        key = (ctx.author.id, ctx.channel.id)

        values: dict[str, Any] = {}
        results: list[ArgumentResult] = []
        dispatcher.mark_awaiting(*key)
        try:
            for i, arg in enumerate(self.args):
                raw: Any = provided[i:] if arg.infinite else (provided[i] if i < len(provided) else "")
                result = await arg.obtain(ctx, raw, limit)
                results.append(result)
                if result.cancelled:
                    return CollectorResult(
                        values=None,
                        cancelled=result.cancelled,
                        prompts=[p for r in results for p in r.prompts],
                        answers=[a for r in results for a in r.answers],
                    )
                values[arg.key] = result.value
        finally:
            dispatcher.unmark_awaiting(*key)

        return CollectorResult(
            values=values,
            prompts=[p for r in results for p in r.prompts],
            answers=[a for r in results for a in r.answers],
        )
