"""In-process transport pair that stands in for a device socket."""

from __future__ import annotations

import asyncio

from notcher_link.const import IO_TIMEOUT_SECONDS, PIPE_CAPACITY
from notcher_link.logging_abstraction import get_logger
from notcher_link.transport.byte_queue import BoundedByteQueue
from notcher_link.transport.exceptions import TransportClosedError, TransportIOError

logger = get_logger(__name__)


class LoopbackTransport:
    """One end of a loopback pair: reads ``inbound``, writes ``outbound``."""

    def __init__(
        self,
        inbound: BoundedByteQueue,
        outbound: BoundedByteQueue,
        peer: str,
        io_timeout: float = IO_TIMEOUT_SECONDS,
    ) -> None:
        self._inbound = inbound
        self._outbound = outbound
        self._peer = peer
        self.io_timeout = io_timeout
        self._closed = False

    @property
    def peer(self) -> str:
        return self._peer

    @property
    def is_open(self) -> bool:
        return not (self._closed or self._inbound.closed or self._outbound.closed)

    async def write(self, data: bytes) -> None:
        """
        Queue ``data`` for the other end.

        Raises:
            TransportClosedError: either end closed
            TransportIOError: the other end left the queue full for ``io_timeout``
        """
        if self._closed or self._outbound.closed:
            raise TransportClosedError(self._peer)
        try:
            await asyncio.wait_for(self._outbound.put(data), timeout=self.io_timeout)
        except TimeoutError as e:
            # Bytes queued before the timeout stay queued; the reader resyncs past them.
            raise TransportIOError("timeout", self._peer) from e

    def available_bytes(self) -> int:
        return len(self._inbound)

    def read_exact(self, n: int) -> bytes:
        return self._inbound.get_nowait(n)

    async def wait_readable(self, timeout: float) -> bool:
        return await self._inbound.wait_for_data(timeout)

    async def close(self) -> None:
        """Close both directions; the other end sees end of stream."""
        if self._closed:
            return
        self._closed = True
        self._outbound.close()
        self._inbound.close()
        logger.debug("Loopback to %s closed", self._peer, extra={"peer": self._peer})

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"LoopbackTransport({self._peer}, {status})"


def create_loopback_pair(
    peer: str,
    capacity: int = PIPE_CAPACITY,
    io_timeout: float = IO_TIMEOUT_SECONDS,
) -> tuple[LoopbackTransport, LoopbackTransport]:
    """
    Build a connected pair of loopback transports.

    Args:
        peer: Name of the simulated device (usually its IP address)
        capacity: Buffer size of each direction in bytes
        io_timeout: Seconds a write may wait for space before failing

    Returns:
        (host_end, device_end); bytes written to one end are read from the other
    """
    to_device = BoundedByteQueue(capacity, name=f"{peer}:to_device")
    to_host = BoundedByteQueue(capacity, name=f"{peer}:to_host")
    host_end = LoopbackTransport(inbound=to_host, outbound=to_device, peer=peer, io_timeout=io_timeout)
    device_end = LoopbackTransport(inbound=to_device, outbound=to_host, peer=f"host<-{peer}", io_timeout=io_timeout)
    return host_end, device_end
