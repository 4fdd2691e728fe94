"""
Timing decorators for protocol and discovery coroutines.

Controlled by NOTCHER_PERF_TRACKING; operations slower than
NOTCHER_PERF_THRESHOLD_MS are logged at WARNING, the rest at DEBUG.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Coroutine
from typing import Any, ParamSpec, TypeVar

__all__ = [
    "measure_time",
    "timed_async",
]

P = ParamSpec("P")
T = TypeVar("T")


def measure_time(start_time: float) -> float:
    """Milliseconds elapsed since ``start_time`` (a ``time.perf_counter()`` value)."""
    return (time.perf_counter() - start_time) * 1000


def timed_async(
    operation_name: str | None = None,
) -> Callable[[Callable[P, Coroutine[Any, Any, T]]], Callable[P, Coroutine[Any, Any, T]]]:
    """
    Time an async function when performance tracking is enabled.

    Args:
        operation_name: Name used in the log line (defaults to the function name)

    Example:
        @timed_async("roll_call")
        async def discover(self): ...
    """

    def decorator(func: Callable[P, Coroutine[Any, Any, T]]) -> Callable[P, Coroutine[Any, Any, T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            from notcher_link.const import (  # noqa: PLC0415
                NOTCHER_PERF_THRESHOLD_MS,
                NOTCHER_PERF_TRACKING,
            )

            if not NOTCHER_PERF_TRACKING:
                return await func(*args, **kwargs)

            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _log_timing(operation_name or func.__name__, measure_time(start_time), NOTCHER_PERF_THRESHOLD_MS)

        return wrapper

    return decorator


def _log_timing(operation_name: str, elapsed_ms: float, threshold_ms: int) -> None:
    from notcher_link.logging_abstraction import get_logger  # noqa: PLC0415

    logger = get_logger(__name__)
    extra = {
        "operation": operation_name,
        "duration_ms": round(elapsed_ms, 2),
        "threshold_ms": threshold_ms,
        "exceeded_threshold": elapsed_ms > threshold_ms,
    }
    if elapsed_ms > threshold_ms:
        logger.warning(
            "[%s] completed in %.1fms (threshold: %dms)", operation_name, elapsed_ms, threshold_ms, extra=extra
        )
    else:
        logger.debug("[%s] completed in %.1fms", operation_name, elapsed_ms, extra=extra)
