"""Exception hierarchy for notcher wire protocol errors.

Checksum and header errors never leave the command channel: the read path
recovers from them by resynchronizing and only counts them. Timeouts are
raised to callers that asked for a response with ``read_response``.
"""

from __future__ import annotations


class NotcherProtocolError(Exception):
    """Base exception for all notcher protocol errors.

    Attributes:
        reason: Short machine-readable failure reason
    """

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or f"Protocol error: {reason}")


class ChecksumError(NotcherProtocolError):
    """Frame body failed checksum validation.

    Attributes:
        command_id: Command ID byte that preceded the body
        data_preview: First 16 bytes of the rejected body
    """

    def __init__(self, command_id: int, data: bytes = b""):
        self.command_id = command_id
        self.data_preview = data[:16]
        super().__init__("invalid_checksum", f"Checksum mismatch for command 0x{command_id:02x}")


class HeaderMismatchError(NotcherProtocolError):
    """A byte in the sync header position did not match the expected marker.

    Attributes:
        position: Header index (0-3) where the mismatch was seen
        received: The byte actually read
    """

    def __init__(self, position: int, received: int):
        self.position = position
        self.received = received
        super().__init__(
            "header_mismatch",
            f"Sync header mismatch at byte {position}: got 0x{received:02x}",
        )


class ResponseTimeoutError(NotcherProtocolError, TimeoutError):
    """Bounded wait expired before the requested number of bytes arrived.

    Attributes:
        expected: Bytes requested
        available: Bytes available when the wait gave up
        timeout_ticks: Poll ticks spent waiting
    """

    def __init__(self, expected: int, available: int, timeout_ticks: int):
        self.expected = expected
        self.available = available
        self.timeout_ticks = timeout_ticks
        super().__init__(
            "response_timeout",
            f"Timed out after {timeout_ticks} ticks waiting for {expected} bytes ({available} available)",
        )
