"""Registry of discovered units and the commands addressed to them by IP."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from notcher_link.const import (
    ACK_TIMEOUT_TICKS,
    DEFAULT_TIMEOUT_TICKS,
    GREETING_TIMEOUT_TICKS,
    NOTCHER_CONTROL_PORT,
)
from notcher_link.correlation import correlation_context
from notcher_link.devices.exceptions import DeviceNotFoundError
from notcher_link.devices.record import DeviceRecord
from notcher_link.devices.responses import HostResponseHandler
from notcher_link.instrumentation import timed_async
from notcher_link.logging_abstraction import LoggerStatusLog, StatusLog, get_logger
from notcher_link.metrics import record_device_ready
from notcher_link.protocol.commands import CommandId, command_name, host_response_table
from notcher_link.protocol.data_packet import NotcherDataPacket
from notcher_link.protocol.packet_codec import pack_int
from notcher_link.simulator.device_simulator import DeviceSimulator
from notcher_link.transport.base import Transport
from notcher_link.transport.command_channel import CommandChannel
from notcher_link.transport.socket_transport import SocketTransport
from notcher_link.transport.types import DispatchFailure, DispatchResult

logger = get_logger(__name__)

TransportFactory = Callable[[DeviceRecord], Awaitable[Transport | None]]

# host commands carry a single zero byte when they have nothing else to say
NULL_PAYLOAD = b"\x00"


class DeviceRegistry:
    """Owns the discovered units, keyed by IP address.

    The map is written only by ``populate`` and the connect phase; after that
    dispatches only read it, so concurrent dispatches to different units are safe.
    """

    lp: str = "DeviceRegistry:"

    def __init__(
        self,
        simulate: bool = False,
        status_log: StatusLog | None = None,
        control_port: int = NOTCHER_CONTROL_PORT,
        transport_factory: TransportFactory | None = None,
        timeout_ticks: int = DEFAULT_TIMEOUT_TICKS,
    ) -> None:
        """
        Args:
            simulate: Open loopback simulators instead of sockets
            status_log: Sink for operator status lines
            control_port: TCP control port on each unit
            transport_factory: Overrides how a unit's transport is opened
            timeout_ticks: Default wait budget of every channel
        """
        self.simulate = simulate
        self.status_log: StatusLog = status_log or LoggerStatusLog()
        self.control_port = control_port
        self.timeout_ticks = timeout_ticks
        self._transport_factory = transport_factory or self._open_transport
        self._devices: dict[str, DeviceRecord] = {}

    # -- population --------------------------------------------------------

    def populate(self, records: Iterable[DeviceRecord]) -> int:
        """
        Add discovered records; a record whose IP is already registered is skipped.

        Returns:
            Number of records added
        """
        added = 0
        for record in records:
            if record.ip_address in self._devices:
                logger.warning(
                    "%s populate: %s already registered, skipping",
                    self.lp,
                    record.ip_address,
                    extra={"ip": record.ip_address},
                )
                continue
            self._devices[record.ip_address] = record
            added += 1
        return added

    @property
    def records(self) -> list[DeviceRecord]:
        return list(self._devices.values())

    def __len__(self) -> int:
        return len(self._devices)

    def find_by_ip(self, ip_address: str) -> DeviceRecord:
        """
        Raises:
            DeviceNotFoundError: no unit registered at ``ip_address``
        """
        try:
            return self._devices[ip_address]
        except KeyError:
            raise DeviceNotFoundError(ip_address) from None

    def find_by_index(self, index: int) -> DeviceRecord:
        for record in self._devices.values():
            if record.index == index:
                return record
        raise DeviceNotFoundError(f"index {index}")

    def missing_units(self, expected_names: Iterable[str]) -> list[str]:
        """Configured unit names with no discovered unit in their position."""
        return list(expected_names)[len(self._devices) :]

    # -- connection lifecycle ------------------------------------------------

    async def _open_transport(self, record: DeviceRecord) -> Transport | None:
        if self.simulate:
            simulator = DeviceSimulator(record.kind, record.ip_address, record.index)
            record.simulator = simulator
            return await simulator.start()

        transport = SocketTransport(record.ip_address, self.control_port)
        if await transport.connect():
            return transport
        return None

    @timed_async("connect_all")
    async def connect_all(self) -> int:
        """
        Open a channel to every registered unit in parallel.

        Returns:
            Number of units marked ready
        """
        results = await asyncio.gather(*(self._connect(record) for record in self._devices.values()))
        ready = sum(1 for ok in results if ok)
        logger.info("%s connect_all: %d/%d ready", self.lp, ready, len(results))
        return ready

    async def _connect(self, record: DeviceRecord) -> bool:
        lp = f"{self.lp}connect:"
        ip = record.ip_address
        with correlation_context(prefix=ip):
            self.status_log.append_line(f"Opening connection to {record.display_name} at {ip}")
            try:
                transport = await self._transport_factory(record)
            except OSError as e:
                logger.error("%s %s transport failed: %s", lp, ip, e, extra={"ip": ip})
                transport = None
            if transport is None:
                record.ready = False
                record_device_ready(ip, False)
                self.status_log.append_line(f"Unable to connect to {ip}")
                return False

            handler = HostResponseHandler(ip, record.kind)
            channel = CommandChannel(transport, host_response_table(record.kind), handler, self.timeout_ticks)
            record.channel = channel
            record.handler = handler

            greeting = await channel.read_line(GREETING_TIMEOUT_TICKS)
            if greeting is None:
                logger.warning("%s no greeting from %s", lp, ip, extra={"ip": ip})
                self.status_log.append_line(f"{ip} did not send a greeting")
            else:
                record.handshake = greeting
                self.status_log.append_line(f"{ip} says {greeting}")

            # a failed handshake leaves the unit listed and ready
            record.ready = True
            record_device_ready(ip, True)
            return True

    async def initialize_all(self) -> int:
        """
        Put every ready, enabled unit into stop mode and wait for its status reply.

        Returns:
            Number of units that answered
        """
        targets = [r for r in self._devices.values() if r.usable and r.enabled]
        results = await asyncio.gather(
            *(self.dispatch(r.ip_address, CommandId.STOP_MODE, wait_for_response=True) for r in targets)
        )
        answered = sum(1 for result in results if result.success)
        logger.info("%s initialize_all: %d/%d answered", self.lp, answered, len(targets))
        return answered

    async def poll_all(self) -> dict[str, int]:
        """
        Drain buffered packets on every ready channel without waiting.

        Returns:
            Packets processed per IP
        """
        targets = [r for r in self._devices.values() if r.usable and r.channel is not None]
        counts = await asyncio.gather(*(r.channel.process_all_available() for r in targets if r.channel))
        return {record.ip_address: count for record, count in zip(targets, counts, strict=True)}

    async def shutdown_all(self) -> None:
        """Close every channel, then stop simulators. Close errors are logged, never raised."""
        lp = f"{self.lp}shutdown_all:"
        for record in self._devices.values():
            if record.channel is not None:
                try:
                    await record.channel.close()
                except Exception as e:
                    # keep closing the rest of the fleet
                    logger.warning(
                        "%s error closing %s: %s",
                        lp,
                        record.ip_address,
                        e,
                        extra={"ip": record.ip_address, "error_type": type(e).__name__},
                    )
            if record.simulator is not None:
                await record.simulator.stop()
            record.ready = False
            record_device_ready(record.ip_address, False)
        logger.info("%s closed %d unit(s)", lp, len(self._devices))

    # -- commands ------------------------------------------------------------

    async def dispatch(
        self,
        ip_address: str,
        command_id: int,
        payload: bytes = NULL_PAYLOAD,
        wait_for_response: bool = False,
        response_id: int | None = None,
        timeout_ticks: int | None = None,
    ) -> DispatchResult:
        """
        Send a command to the unit at ``ip_address``.

        Args:
            ip_address: Target unit
            command_id: Command to send
            payload: Command payload (a single zero byte by default)
            wait_for_response: Wait for the reply packet
            response_id: Reply command ID when it differs from ``command_id``
            timeout_ticks: Reply wait budget

        Returns:
            DispatchResult; lookup, readiness and I/O failures are reported, not raised
        """
        try:
            record = self.find_by_ip(ip_address)
        except DeviceNotFoundError:
            logger.warning("%s dispatch: unknown unit %s", self.lp, ip_address, extra={"ip": ip_address})
            return DispatchResult.failed(ip_address, command_id, DispatchFailure.NOT_FOUND)

        channel = record.channel
        if not record.usable or channel is None:
            return DispatchResult.failed(ip_address, command_id, DispatchFailure.NOT_READY)

        if not wait_for_response:
            if not await channel.send_command(command_id, payload):
                return DispatchResult.failed(ip_address, command_id, DispatchFailure.SEND_FAILED)
            return DispatchResult.ok(ip_address, command_id)

        response = await channel.request(command_id, payload, response_id, timeout_ticks)
        record.last_seen_response = response is not None
        if response is None:
            failure = DispatchFailure.NO_RESPONSE if channel.is_open else DispatchFailure.SEND_FAILED
            logger.warning(
                "%s %s to %s: %s",
                self.lp,
                command_name(command_id),
                ip_address,
                failure.value,
                extra={"ip": ip_address, "command_id": command_id},
            )
            return DispatchResult.failed(ip_address, command_id, failure)
        return DispatchResult.ok(ip_address, command_id, response)

    async def invoke_cut_mode(self, ip_address: str, wait_for_response: bool = False) -> DispatchResult:
        return await self.dispatch(ip_address, CommandId.CUT_MODE, wait_for_response=wait_for_response)

    async def invoke_stop_mode(self, ip_address: str, wait_for_response: bool = False) -> DispatchResult:
        return await self.dispatch(ip_address, CommandId.STOP_MODE, wait_for_response=wait_for_response)

    async def zero_depth_count(self, ip_address: str, wait_for_response: bool = False) -> DispatchResult:
        return await self.dispatch(ip_address, CommandId.ZERO_DEPTH, wait_for_response=wait_for_response)

    async def zero_target_depth(self, ip_address: str, wait_for_response: bool = False) -> DispatchResult:
        return await self.dispatch(ip_address, CommandId.ZERO_TARGET_DEPTH, wait_for_response=wait_for_response)

    async def get_data_packet(self, ip_address: str) -> NotcherDataPacket | None:
        """Request and decode the unit's runtime data packet."""
        result = await self.dispatch(ip_address, CommandId.GET_DATA_PACKET, wait_for_response=True)
        if not result.success or result.response is None:
            return None
        try:
            return NotcherDataPacket.decode(result.response.payload)
        except ValueError as e:
            logger.warning("%s bad data packet from %s: %s", self.lp, ip_address, e, extra={"ip": ip_address})
            return None

    async def set_electrode_supply(self, ip_address: str, on: bool) -> DispatchResult:
        """Switch the electrode supply; succeeds once the unit ACKs the command."""
        return await self._acked(ip_address, CommandId.ELECTRODE_SUPPLY_ON_OFF, bytes([1 if on else 0]))

    async def send_test_set_value(self, ip_address: str, which: int, value: int) -> DispatchResult:
        """Set test value ``which`` to the 32-bit ``value``; succeeds once ACKed."""
        return await self._acked(ip_address, CommandId.TEST_SET_VALUE, bytes([which & 0xFF]) + pack_int(value))

    async def _acked(self, ip_address: str, command_id: int, payload: bytes) -> DispatchResult:
        result = await self.dispatch(
            ip_address,
            command_id,
            payload,
            wait_for_response=True,
            response_id=CommandId.ACK,
            timeout_ticks=ACK_TIMEOUT_TICKS,
        )
        if result.success and result.response is not None and result.response.first_byte != command_id:
            logger.warning(
                "%s %s: ACK for %s instead of %s",
                self.lp,
                ip_address,
                command_name(result.response.first_byte or 0),
                command_name(command_id),
                extra={"ip": ip_address},
            )
            return DispatchResult.failed(ip_address, command_id, DispatchFailure.NO_RESPONSE)
        return result

    def get_device_stats(self) -> dict[str, Any]:
        """Snapshot of every unit and its channel, for status output."""
        devices: list[dict[str, Any]] = []
        for record in self._devices.values():
            entry: dict[str, Any] = {
                "index": record.index,
                "ip": record.ip_address,
                "name": record.display_name,
                "kind": record.kind.value,
                "ready": record.ready,
                "enabled": record.enabled,
                "last_seen_response": record.last_seen_response,
            }
            if record.channel is not None:
                stats = record.channel.get_stats()
                entry["resync_count"] = stats.resync_count
                entry["checksum_errors"] = stats.checksum_errors
                entry["header_mismatches"] = stats.header_mismatches
                entry["timeouts"] = stats.timeouts
            devices.append(entry)
        return {
            "total": len(devices),
            "ready": sum(1 for d in devices if d["ready"]),
            "devices": devices,
        }
