"""Asyncio TCP transport to a unit's control port."""

from __future__ import annotations

import asyncio
import contextlib
import time

from notcher_link.const import CONNECT_TIMEOUT_SECONDS, IO_TIMEOUT_SECONDS, NOTCHER_CONTROL_PORT
from notcher_link.logging_abstraction import get_logger
from notcher_link.transport.byte_queue import BoundedByteQueue
from notcher_link.transport.exceptions import TransportClosedError, TransportIOError

logger = get_logger(__name__)

RECEIVE_BUFFER_SIZE = 65536


class SocketTransport:
    """TCP connection whose received bytes are pumped into a bounded buffer.

    A reader task moves bytes from the stream into the buffer so that
    ``available_bytes`` and ``read_exact`` never block, matching the loopback
    transport.
    """

    def __init__(
        self,
        host: str,
        port: int = NOTCHER_CONTROL_PORT,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        io_timeout: float = IO_TIMEOUT_SECONDS,
        max_read_size: int = 4096,
    ):
        """
        Set connection parameters; nothing is opened until ``connect``.

        Args:
            host: Unit IP address
            port: Control port
            connect_timeout: Connection timeout in seconds
            io_timeout: Write drain timeout in seconds
            max_read_size: Largest single read from the stream
        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.max_read_size = max_read_size
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self._inbound = BoundedByteQueue(RECEIVE_BUFFER_SIZE, name=f"{host}:{port}")
        self._pump_task: asyncio.Task[None] | None = None
        self._connected = False

    @property
    def peer(self) -> str:
        return self.host

    @property
    def is_open(self) -> bool:
        return self._connected and not self._inbound.closed

    async def connect(self) -> bool:
        """
        Open the TCP connection and start the receive pump.

        Returns:
            True if connected, False on timeout or socket error
        """
        lp = "SocketTransport:connect:"
        start_time = time.perf_counter()
        extra = {"host": self.host, "port": self.port, "timeout": self.connect_timeout}
        try:
            logger.info("%s Connecting to %s:%d", lp, self.host, self.port, extra=extra)
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "%s Connection to %s:%d timed out after %.1fms",
                lp,
                self.host,
                self.port,
                elapsed_ms,
                extra={**extra, "elapsed_ms": elapsed_ms, "error": "timeout"},
            )
            return False
        except OSError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "%s Connection to %s:%d failed after %.1fms: %s",
                lp,
                self.host,
                self.port,
                elapsed_ms,
                e,
                extra={**extra, "elapsed_ms": elapsed_ms, "error": str(e)},
            )
            return False

        self._connected = True
        self._pump_task = asyncio.create_task(self._pump(), name=f"socket_pump:{self.host}")
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s Connected to %s:%d in %.1fms",
            lp,
            self.host,
            self.port,
            elapsed_ms,
            extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
        )
        return True

    async def _pump(self) -> None:
        lp = "SocketTransport:_pump:"
        reader = self.reader
        if reader is None:
            return
        try:
            while True:
                data = await reader.read(self.max_read_size)
                if not data:
                    logger.warning("%s %s closed the connection", lp, self.host, extra={"host": self.host})
                    break
                await self._inbound.put(data)
        except TransportClosedError:
            pass
        except OSError as e:
            logger.warning(
                "%s Receive from %s failed: %s", lp, self.host, e, extra={"host": self.host, "error": str(e)}
            )
        finally:
            self._inbound.close()

    async def write(self, data: bytes) -> None:
        """
        Write and drain ``data``.

        Raises:
            TransportClosedError: not connected
            TransportIOError: drain timed out or the socket failed
        """
        if not self._connected or self.writer is None:
            raise TransportClosedError(self.host)
        try:
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), timeout=self.io_timeout)
        except TimeoutError as e:
            raise TransportIOError("timeout", self.host) from e
        except OSError as e:
            raise TransportIOError("os_error", self.host) from e
        logger.debug(
            "Sent %d bytes to %s:%d",
            len(data),
            self.host,
            self.port,
            extra={"bytes": len(data), "host": self.host, "data": data.hex(" ")},
        )

    def available_bytes(self) -> int:
        return len(self._inbound)

    def read_exact(self, n: int) -> bytes:
        return self._inbound.get_nowait(n)

    async def wait_readable(self, timeout: float) -> bool:
        return await self._inbound.wait_for_data(timeout)

    async def close(self) -> None:
        """Close the stream, then the socket. Errors are logged and swallowed."""
        lp = "SocketTransport:close:"
        if self._pump_task is not None:
            self._pump_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._pump_task
            self._pump_task = None
        self._inbound.close()
        if self.writer is None:
            self._connected = False
            return
        logger.info("%s Closing connection to %s:%d", lp, self.host, self.port, extra={"host": self.host})
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (OSError, RuntimeError) as e:
            logger.warning(
                "%s Error closing connection to %s: %s",
                lp,
                self.host,
                e,
                extra={"host": self.host, "error": str(e), "error_type": type(e).__name__},
            )
        finally:
            self._connected = False
            self.writer = None
            self.reader = None

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"SocketTransport({self.host}:{self.port}, {status})"
