"""Bounded single-producer/single-consumer byte queue."""

from __future__ import annotations

import asyncio

from notcher_link.const import PIPE_CAPACITY
from notcher_link.transport.exceptions import TransportClosedError


class BoundedByteQueue:
    """One direction of a byte stream with socket-like backpressure.

    ``put`` blocks while the queue is full until the reader drains it.
    Reads never block; ``wait_for_data`` is the readiness notification and
    resolves when new bytes arrive after the call, or when the queue closes.
    """

    def __init__(self, capacity: int = PIPE_CAPACITY, name: str = "queue") -> None:
        if capacity <= 0:
            msg = f"capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self.name = name
        self._buffer = bytearray()
        self._arrival = asyncio.Event()
        self._space = asyncio.Event()
        self._space.set()
        self._closed = False

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, data: bytes) -> None:
        """
        Append ``data``, waiting for the reader whenever the queue is full.

        Raises:
            TransportClosedError: queue closed before all bytes were written
        """
        view = memoryview(data)
        while view:
            if self._closed:
                raise TransportClosedError(self.name)
            space = self.capacity - len(self._buffer)
            if space <= 0:
                self._space.clear()
                await self._space.wait()
                continue
            chunk, view = view[:space], view[space:]
            self._buffer.extend(chunk)
            self._arrival.set()

    def get_nowait(self, n: int) -> bytes:
        """Remove and return up to ``n`` bytes."""
        if n <= 0 or not self._buffer:
            return b""
        chunk = bytes(self._buffer[:n])
        del self._buffer[:n]
        self._space.set()
        return chunk

    def clear(self) -> int:
        dropped = len(self._buffer)
        self._buffer.clear()
        self._space.set()
        return dropped

    async def wait_for_data(self, timeout: float) -> bool:
        """
        Wait for bytes written after this call.

        Args:
            timeout: Seconds to wait at most

        Returns:
            True if new bytes arrived; False on timeout or if the queue is closed
        """
        if self._closed:
            return False
        self._arrival.clear()
        try:
            await asyncio.wait_for(self._arrival.wait(), timeout=max(timeout, 0))
        except TimeoutError:
            return False
        return not self._closed or bool(self._buffer)

    def close(self) -> None:
        """Close the queue and wake any waiting reader or writer. Buffered bytes stay readable."""
        if self._closed:
            return
        self._closed = True
        self._arrival.set()
        self._space.set()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"BoundedByteQueue({self.name}, {len(self._buffer)}/{self.capacity}, {state})"
