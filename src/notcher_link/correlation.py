"""
Correlation IDs for tracing one roll call or one device session through the logs.

Every log line emitted inside a correlation scope carries the same ID, so the
interleaved output of several units talking in parallel can be untangled.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "get_correlation_id",
    "new_correlation_id",
    "set_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "notcher_correlation_id",
    default=None,
)


def new_correlation_id(prefix: str | None = None) -> str:
    """
    Build a fresh correlation ID.

    Args:
        prefix: Optional tag prepended to the ID (e.g. "rollcall", a unit IP)

    Returns:
        Hex UUID4, optionally as "<prefix>-<hex>"
    """
    token = uuid.uuid4().hex
    return f"{prefix}-{token}" if prefix else token


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: str | None = None, prefix: str | None = None) -> Generator[str]:
    """
    Scope a correlation ID; the previous ID is restored on exit.

    Args:
        correlation_id: ID to use (generated when None)
        prefix: Prefix for a generated ID

    Yields:
        The correlation ID active inside the scope
    """
    previous_id = get_correlation_id()
    active_id = correlation_id or new_correlation_id(prefix)
    set_correlation_id(active_id)
    try:
        yield active_id
    finally:
        set_correlation_id(previous_id)


def ensure_correlation_id() -> str:
    """Return the active correlation ID, creating one for task entry points that have none."""
    current_id = get_correlation_id()
    if current_id is None:
        current_id = new_correlation_id()
        set_correlation_id(current_id)
    return current_id
