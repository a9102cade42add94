from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)

DEFAULT_SLOW_OPERATION_MS = 5000

_slow_operation_ms = DEFAULT_SLOW_OPERATION_MS


def set_slow_operation_threshold(milliseconds: int) -> None:
    """Change the duration above which `timed_operation` logs a warning."""

    global _slow_operation_ms
    _slow_operation_ms = milliseconds


def get_slow_operation_threshold() -> int:
    return _slow_operation_ms


def timed_operation(func: F) -> F:
    """Log a warning when an application operation runs longer than the threshold."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            if elapsed_ms > _slow_operation_ms:
                logger.warning(
                    "Slow operation: %s took %.0fms", func.__name__, elapsed_ms
                )

    return cast(F, wrapper)
