"""Request/response protocol over one Transport.

A CommandChannel owns its transport's receive side and the resync state for
it. All public methods take the channel lock, so a blocking wait and a
non-blocking drain can never interleave on the same stream; a request and
its response are handled as one locked unit.

Waits are counted in ticks of ``POLL_INTERVAL_SECONDS`` (10 ms) against a
fixed deadline. Between checks the channel sleeps on the transport's
readiness notification instead of a plain sleep.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping, Sequence

from notcher_link.const import DEFAULT_TIMEOUT_TICKS, POLL_INTERVAL_SECONDS
from notcher_link.logging_abstraction import get_logger
from notcher_link.metrics import (
    record_checksum_error,
    record_header_mismatch,
    record_packet_recv,
    record_packet_sent,
    record_response_timeout,
    record_resync,
)
from notcher_link.protocol.commands import CommandSpec, command_name
from notcher_link.protocol.exceptions import ChecksumError, HeaderMismatchError, ResponseTimeoutError
from notcher_link.protocol.packet_codec import (
    HEADER_SIZE,
    PREAMBLE_SIZE,
    Packet,
    check_header_byte,
    decode_body,
    encode,
)
from notcher_link.protocol.resync import ResyncScanner
from notcher_link.transport.base import Transport
from notcher_link.transport.exceptions import TransportIOError
from notcher_link.transport.types import ChannelStats, PacketHandler, PacketOutcome, PacketResult

logger = get_logger(__name__)

LINE_TERMINATOR = 0x0A


class CommandChannel:
    """Framed command protocol over a Transport, dispatching by command ID."""

    def __init__(
        self,
        transport: Transport,
        table: Mapping[int, CommandSpec],
        handler: PacketHandler,
        timeout_ticks: int = DEFAULT_TIMEOUT_TICKS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        """
        Args:
            transport: Open transport; the channel takes ownership
            table: Command ID to expected body for packets read from this transport
            handler: Receives every verified packet
            timeout_ticks: Default wait budget in ticks
            poll_interval: Seconds per tick
        """
        self.transport = transport
        self.table = table
        self.handler = handler
        self.timeout_ticks = timeout_ticks
        self.poll_interval = poll_interval
        self.scanner = ResyncScanner(name=transport.peer)
        self.last_command_id: int | None = None
        self._lock = asyncio.Lock()
        self._packets_processed = 0
        self._checksum_errors = 0
        self._header_mismatches = 0
        self._timeouts = 0

    @property
    def peer(self) -> str:
        return self.transport.peer

    @property
    def is_open(self) -> bool:
        return self.transport.is_open

    # -- sending ---------------------------------------------------------

    async def send_command(self, command_id: int, payload: bytes = b"") -> bool:
        """
        Send one framed command.

        Args:
            command_id: Command ID byte
            payload: Payload bytes

        Returns:
            True if written, False on a transport error (logged)
        """
        async with self._lock:
            return await self._send(command_id, payload)

    async def _send(self, command_id: int, payload: bytes = b"") -> bool:
        lp = "CommandChannel:send:"
        frame = encode(command_id, payload)
        name = command_name(command_id)
        try:
            await self.transport.write(frame[:HEADER_SIZE])
            await self.transport.write(frame[HEADER_SIZE:])
        except TransportIOError as e:
            logger.error(
                "%s %s to %s failed: %s",
                lp,
                name,
                self.peer,
                e,
                extra={"peer": self.peer, "command": name, "reason": e.reason},
            )
            record_packet_sent(self.peer, name, "failed")
            return False
        logger.debug(
            "%s %s -> %s", lp, name, self.peer, extra={"peer": self.peer, "frame": frame.hex(" ")}
        )
        record_packet_sent(self.peer, name, "ok")
        return True

    async def _send_replies(self, replies: Sequence[Packet] | None) -> None:
        for reply in replies or ():
            await self._send(reply.command_id, reply.payload)

    # -- bounded waits -----------------------------------------------------

    async def wait_for_bytes(self, n: int, timeout_ticks: int | None = None) -> bool:
        """
        Wait until ``n`` bytes are available.

        Args:
            n: Bytes required
            timeout_ticks: Tick budget (channel default when None, 0 checks once)

        Returns:
            True once available, False after the tick budget is spent
        """
        async with self._lock:
            return await self._wait_for_bytes(n, timeout_ticks)

    async def _wait_for_bytes(self, n: int, timeout_ticks: int | None = None) -> bool:
        if self.transport.available_bytes() >= n:
            return True
        ticks = self.timeout_ticks if timeout_ticks is None else timeout_ticks
        if ticks <= 0:
            return False

        loop = asyncio.get_running_loop()
        deadline = loop.time() + ticks * self.poll_interval
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0 or not self.transport.is_open:
                return self.transport.available_bytes() >= n
            _ = await self.transport.wait_readable(min(self.poll_interval, remaining))
            if self.transport.available_bytes() >= n:
                return True

    async def read_response(self, n: int, timeout_ticks: int | None = None) -> bytes:
        """
        Wait for and read exactly ``n`` bytes.

        Raises:
            ResponseTimeoutError: the bytes did not arrive within the budget
        """
        async with self._lock:
            ticks = self.timeout_ticks if timeout_ticks is None else timeout_ticks
            if not await self._wait_for_bytes(n, ticks):
                self._note_timeout()
                raise ResponseTimeoutError(n, self.transport.available_bytes(), ticks)
            return self.transport.read_exact(n)

    async def read_line(self, timeout_ticks: int | None = None) -> str | None:
        """
        Read one newline-terminated ASCII line, as sent by a unit right after connect.

        Returns:
            The line without its terminator, or None if no full line arrived in time
        """
        async with self._lock:
            ticks = self.timeout_ticks if timeout_ticks is None else timeout_ticks
            loop = asyncio.get_running_loop()
            deadline = loop.time() + ticks * self.poll_interval
            line = bytearray()
            while True:
                while self.transport.available_bytes() > 0:
                    byte = self.transport.read_exact(1)[0]
                    if byte == LINE_TERMINATOR:
                        return line.decode("ascii", errors="replace").rstrip("\r")
                    line.append(byte)
                remaining_ticks = math.ceil((deadline - loop.time()) / self.poll_interval)
                if remaining_ticks <= 0 or not await self._wait_for_bytes(1, remaining_ticks):
                    if line:
                        logger.debug("Partial line from %s: %r", self.peer, bytes(line))
                    return None

    # -- read path ---------------------------------------------------------

    async def process_one_data_packet(self, wait_if_none: bool, timeout_ticks: int | None = None) -> PacketResult:
        """
        Read and dispatch at most one packet.

        Args:
            wait_if_none: Wait (bounded) for a packet preamble when none is buffered
            timeout_ticks: Tick budget for the wait

        Returns:
            PacketResult; checksum and header faults are recovered here by resync
        """
        async with self._lock:
            return await self._process_one(wait_if_none, timeout_ticks)

    async def _process_one(self, wait_if_none: bool, timeout_ticks: int | None = None) -> PacketResult:
        # a previous resync already consumed the first header byte
        start = 1 if self.scanner.resynced else 0
        needed = PREAMBLE_SIZE - start
        if self.transport.available_bytes() < needed and (
            not wait_if_none or not await self._wait_for_bytes(needed, timeout_ticks)
        ):
            return PacketResult(PacketOutcome.NO_PACKET)

        self.scanner.consume_resynced()
        try:
            for position in range(start, HEADER_SIZE):
                check_header_byte(position, self.transport.read_exact(1)[0])
        except HeaderMismatchError as e:
            self._header_mismatches += 1
            record_header_mismatch(self.peer)
            logger.debug(
                "%s from %s",
                e,
                self.peer,
                extra={"peer": self.peer, "position": e.position, "received": e.received},
            )
            return self._resync(e.reason)

        command_id = self.transport.read_exact(1)[0]
        spec = self.table.get(command_id)
        if spec is None:
            logger.debug(
                "Ignoring unknown command 0x%02x from %s",
                command_id,
                self.peer,
                extra={"peer": self.peer, "command_id": command_id},
            )
            return self._result(PacketResult(PacketOutcome.UNKNOWN_COMMAND))

        self.last_command_id = command_id
        if spec.body_length == 0:
            packet = Packet(command_id)
        else:
            # once the preamble is consumed, the body gets the full default budget
            body_ticks = timeout_ticks if wait_if_none and timeout_ticks is not None else self.timeout_ticks
            if not await self._wait_for_bytes(spec.body_length, body_ticks):
                self._note_timeout()
                logger.warning(
                    "%s body from %s incomplete after %d ticks (%d of %d bytes)",
                    command_name(command_id),
                    self.peer,
                    body_ticks,
                    self.transport.available_bytes(),
                    spec.body_length,
                    extra={"peer": self.peer, "command_id": command_id},
                )
                return self._result(PacketResult(PacketOutcome.TIMEOUT))
            body = self.transport.read_exact(spec.body_length)
            try:
                packet = decode_body(command_id, body)
            except ChecksumError as e:
                self._checksum_errors += 1
                record_checksum_error(self.peer)
                logger.warning(
                    "%s from %s",
                    e,
                    self.peer,
                    extra={"peer": self.peer, "command_id": command_id, "body": e.data_preview.hex(" ")},
                )
                await self._send_replies(self.handler.on_checksum_error(command_id))
                self._resync("checksum")
                return self._result(PacketResult(PacketOutcome.CHECKSUM_ERROR))

        self._packets_processed += 1
        replies = await self.handler.handle_packet(packet, spec)
        await self._send_replies(replies)
        return self._result(PacketResult(PacketOutcome.PROCESSED, PREAMBLE_SIZE + spec.body_length, packet))

    def _resync(self, reason: str) -> PacketResult:
        self.scanner.resync(self.transport, self.last_command_id)
        record_resync(self.peer, reason)
        return self._result(PacketResult(PacketOutcome.RESYNC))

    def _result(self, result: PacketResult) -> PacketResult:
        record_packet_recv(self.peer, result.outcome.value)
        return result

    def _note_timeout(self) -> None:
        self._timeouts += 1
        record_response_timeout(self.peer)

    async def process_all_available(self) -> int:
        """
        Drain every buffered packet without waiting for more.

        Returns:
            Number of packets processed
        """
        processed = 0
        async with self._lock:
            while True:
                result = await self._process_one(wait_if_none=False, timeout_ticks=0)
                if result.outcome in (PacketOutcome.NO_PACKET, PacketOutcome.TIMEOUT):
                    return processed
                if result.processed:
                    processed += 1

    async def process_until_type(self, command_id: int, timeout_ticks: int | None = None) -> Packet | None:
        """
        Process packets until one with ``command_id`` has been handled.

        Returns:
            That packet, or None if the budget ran out first
        """
        async with self._lock:
            return await self._process_until(command_id, timeout_ticks)

    async def _process_until(self, command_id: int, timeout_ticks: int | None) -> Packet | None:
        ticks = self.timeout_ticks if timeout_ticks is None else timeout_ticks
        loop = asyncio.get_running_loop()
        deadline = loop.time() + ticks * self.poll_interval
        while True:
            remaining_ticks = math.ceil((deadline - loop.time()) / self.poll_interval)
            if remaining_ticks <= 0:
                self._note_timeout()
                return None
            result = await self._process_one(wait_if_none=True, timeout_ticks=remaining_ticks)
            if result.processed and result.packet is not None and result.packet.command_id == command_id:
                return result.packet
            if result.outcome is PacketOutcome.NO_PACKET:
                self._note_timeout()
                return None

    async def request(
        self,
        command_id: int,
        payload: bytes = b"",
        response_id: int | None = None,
        timeout_ticks: int | None = None,
    ) -> Packet | None:
        """
        Send a command and wait for its reply as one locked exchange.

        Args:
            command_id: Command to send
            payload: Command payload
            response_id: Reply command ID (defaults to ``command_id``)
            timeout_ticks: Tick budget for the reply

        Returns:
            The reply packet, or None if sending failed or no reply arrived
        """
        async with self._lock:
            if not await self._send(command_id, payload):
                return None
            return await self._process_until(command_id if response_id is None else response_id, timeout_ticks)

    def get_stats(self) -> ChannelStats:
        return ChannelStats(
            peer=self.peer,
            is_open=self.transport.is_open,
            resynced=self.scanner.resynced,
            resync_count=self.scanner.resync_count,
            last_command_id=self.last_command_id,
            timeout_ticks=self.timeout_ticks,
            packets_processed=self._packets_processed,
            checksum_errors=self._checksum_errors,
            header_mismatches=self._header_mismatches,
            timeouts=self._timeouts,
        )

    async def close(self) -> None:
        """Close the transport; waiters wake and give up. Close errors are logged, not raised."""
        try:
            await self.transport.close()
        except (TransportIOError, OSError) as e:
            logger.warning(
                "Error closing channel to %s: %s",
                self.peer,
                e,
                extra={"peer": self.peer, "error": str(e), "error_type": type(e).__name__},
            )

    def __repr__(self) -> str:
        return f"CommandChannel({self.peer}, resyncs={self.scanner.resync_count})"
