"""The duplex byte channel a CommandChannel talks through."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Transport(Protocol):
    """Ordered duplex byte stream to one device.

    Implementations: ``SocketTransport`` (TCP) and ``LoopbackTransport``
    (in-process queue pair feeding a simulated device).
    """

    @property
    def peer(self) -> str: ...

    @property
    def is_open(self) -> bool: ...

    async def write(self, data: bytes) -> None:
        """Write all of ``data``; raises TransportIOError on failure."""
        ...

    def available_bytes(self) -> int:
        """Bytes that can be read right now without waiting."""
        ...

    def read_exact(self, n: int) -> bytes:
        """Read up to ``n`` already-available bytes; never waits."""
        ...

    async def wait_readable(self, timeout: float) -> bool:
        """Wait until more bytes arrive (or the peer closes), at most ``timeout`` seconds."""
        ...

    async def close(self) -> None: ...
