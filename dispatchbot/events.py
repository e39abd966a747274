"""Typed publish/subscribe bus for engine lifecycle events."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Event(str, Enum):
    COMMAND_REGISTER = "command_register"
    COMMAND_REREGISTER = "command_reregister"
    COMMAND_UNREGISTER = "command_unregister"
    GROUP_REGISTER = "group_register"
    TYPE_REGISTER = "type_register"
    COMMAND_STATUS_CHANGE = "command_status_change"
    GROUP_STATUS_CHANGE = "group_status_change"
    COMMAND_PREFIX_CHANGE = "command_prefix_change"
    COMMAND_BLOCK = "command_block"
    COMMAND_CANCEL = "command_cancel"
    COMMAND_ERROR = "command_error"
    COMMAND_RUN = "command_run"
    UNKNOWN_COMMAND = "unknown_command"
    MESSAGE_UPDATE = "command_message_update"


class EventBus:
    """Ordered subscriber lists per :class:`Event`.

    Handlers run in subscription order.  Coroutine handlers are scheduled on
    the running loop.  A failing handler is logged and never affects the
    emitter or the remaining handlers.
    """

    def __init__(self) -> None:
        self._handlers: dict[Event, list[Handler]] = {}
        self._once: set[tuple[Event, Handler]] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._lock = threading.Lock()

    def on(self, event: Event | str, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(Event(event), []).append(handler)

    def once(self, event: Event | str, handler: Handler) -> None:
        event = Event(event)
        with self._lock:
            self._handlers.setdefault(event, []).append(handler)
            self._once.add((event, handler))

    def off(self, event: Event | str, handler: Handler) -> bool:
        event = Event(event)
        with self._lock:
            handlers = self._handlers.get(event, [])
            if handler not in handlers:
                return False
            handlers.remove(handler)
            self._once.discard((event, handler))
            return True

    def listener_count(self, event: Event | str) -> int:
        return len(self._handlers.get(Event(event), []))

    def emit(self, event: Event | str, *args: Any) -> None:
        event = Event(event)
        with self._lock:
            handlers = list(self._handlers.get(event, []))
            for handler in handlers:
                if (event, handler) in self._once:
                    self._once.discard((event, handler))
                    self._handlers[event].remove(handler)

        for handler in handlers:
            try:
                result = handler(*args)
            except Exception:
                logger.exception("[events] handler for %s failed", event.value)
                continue
            if inspect.isawaitable(result):
                self._schedule(event, result)

    def _schedule(self, event: Event, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("[events] no running loop for async %s handler", event.value)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            self._tasks.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error(
                    "[events] async handler for %s failed", event.value,
                    exc_info=t.exception(),
                )

        task.add_done_callback(_done)
