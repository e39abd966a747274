"""Registry of module-level singletons that tests need to reset."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_resetters: list[Callable[[], None]] = []


def register_singleton(reset: Callable[[], None]) -> Callable[[], None]:
    with _lock:
        if reset not in _resetters:
            _resetters.append(reset)
    return reset


def reset_all_singletons() -> None:
    with _lock:
        resetters = list(_resetters)
    for reset in resetters:
        try:
            reset()
        except Exception:
            logger.warning("Singleton reset %r failed", reset, exc_info=True)
