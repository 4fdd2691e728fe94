"""
Simulated notcher / control board on the device end of a loopback pair.

The simulator speaks the same framed protocol as a real unit: it greets the
host with a text line on start, then a single driver task reads commands from
its inbound queue and writes replies to its outbound queue.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Sequence

from notcher_link.const import (
    CONTROL_BOARD_GREETING,
    DEFAULT_TIMEOUT_TICKS,
    NOTCHER_GREETING,
    PIPE_CAPACITY,
)
from notcher_link.logging_abstraction import get_logger
from notcher_link.protocol.commands import (
    CommandId,
    CommandSpec,
    DeviceKind,
    command_name,
    device_request_table,
    host_response_table,
)
from notcher_link.protocol.data_packet import NotcherDataPacket
from notcher_link.protocol.packet_codec import Packet, extract_int
from notcher_link.transport.command_channel import CommandChannel
from notcher_link.transport.exceptions import TransportIOError
from notcher_link.transport.loopback import LoopbackTransport, create_loopback_pair

logger = get_logger(__name__)

STATUS_OK = 0x01
DEPTH_STEP = 7
SIMULATED_VOLTAGE = 120
SIMULATED_CURRENT = 35


class DeviceSimulator:
    """In-process unit behind a loopback transport pair.

    Usage::

        simulator = DeviceSimulator(DeviceKind.NOTCHER, "169.254.1.1", index=0)
        host_end = await simulator.start()
        ...
        await simulator.stop()
    """

    def __init__(
        self,
        kind: DeviceKind,
        ip_address: str,
        index: int,
        capacity: int = PIPE_CAPACITY,
        send_greeting: bool = True,
    ) -> None:
        self.kind = kind
        self.ip_address = ip_address
        self.index = index
        self.send_greeting = send_greeting
        self.host_end, self.device_end = create_loopback_pair(ip_address, capacity)
        self.channel = CommandChannel(self.device_end, device_request_table(kind), self)
        self._data_size = host_response_table(kind)[CommandId.GET_DATA_PACKET].data_length
        self._driver: asyncio.Task[None] | None = None
        self._running = False

        self.mode: int = CommandId.STOP_MODE
        self.electrode_supply = False
        self.depth_count = 0
        self.target_depth = 0
        self.test_values: dict[int, int] = {}
        self.commands_received: list[int] = []

    @property
    def greeting(self) -> str:
        return NOTCHER_GREETING if self.kind is DeviceKind.NOTCHER else CONTROL_BOARD_GREETING

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> LoopbackTransport:
        """
        Send the greeting and start the driver task.

        Returns:
            The host end of the loopback pair
        """
        if self._driver is not None:
            return self.host_end
        if self.send_greeting:
            await self.device_end.write(f"{self.greeting}\n".encode("ascii"))
        self._running = True
        self._driver = asyncio.create_task(self._drive(), name=f"simulator:{self.ip_address}")
        logger.debug("Simulator %d started for %s", self.index, self.ip_address, extra={"kind": self.kind.value})
        return self.host_end

    async def _drive(self) -> None:
        try:
            while self._running and self.device_end.is_open:
                _ = await self.channel.process_one_data_packet(True, DEFAULT_TIMEOUT_TICKS)
        except TransportIOError as e:
            logger.debug("Simulator %s stopped on transport error: %s", self.ip_address, e)
        finally:
            self._running = False

    async def stop(self) -> None:
        """Stop the driver and close the device end."""
        self._running = False
        await self.device_end.close()
        if self._driver is not None:
            self._driver.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._driver
            self._driver = None

    async def handle_packet(self, packet: Packet, spec: CommandSpec) -> Sequence[Packet] | None:
        command_id = packet.command_id
        self.commands_received.append(command_id)
        logger.debug("Simulator %s got %s", self.ip_address, command_name(command_id))
        match command_id:
            case CommandId.STOP_MODE | CommandId.CUT_MODE:
                self.mode = command_id
                return [Packet(command_id, bytes([STATUS_OK]))]
            case CommandId.ZERO_DEPTH:
                self.depth_count = 0
                return [Packet(command_id, bytes([STATUS_OK]))]
            case CommandId.ZERO_TARGET_DEPTH:
                self.target_depth = 0
                return [Packet(command_id, bytes([STATUS_OK]))]
            case CommandId.GET_DATA_PACKET:
                return [Packet(command_id, self._data_packet())]
            case CommandId.ELECTRODE_SUPPLY_ON_OFF:
                self.electrode_supply = bool(packet.first_byte)
                return [Packet(CommandId.ACK, bytes([command_id]))]
            case CommandId.TEST_SET_VALUE:
                self.test_values[packet.payload[0]] = extract_int(packet.payload, 1)
                return [Packet(CommandId.ACK, bytes([command_id]))]
            case CommandId.DEBUG:
                return [Packet(CommandId.DEBUG, bytes([self.index & 0xFF]))]
            case CommandId.EXIT:
                self._running = False
                return None
            case _:
                return None

    def on_checksum_error(self, command_id: int) -> Sequence[Packet] | None:
        return [Packet(CommandId.ERROR, bytes([command_id]))]

    def _data_packet(self) -> bytes:
        if self.mode == CommandId.CUT_MODE:
            self.depth_count += DEPTH_STEP
        return NotcherDataPacket(
            mode=self.mode,
            electrode_supply=self.electrode_supply,
            depth_count=self.depth_count,
            target_depth=self.target_depth,
            voltage=SIMULATED_VOLTAGE if self.electrode_supply else 0,
            current=SIMULATED_CURRENT if self.mode == CommandId.CUT_MODE else 0,
            cut_rate=DEPTH_STEP if self.mode == CommandId.CUT_MODE else 0,
        ).encode(self._data_size)

    def __repr__(self) -> str:
        return f"DeviceSimulator({self.kind.value}, {self.ip_address}, index={self.index})"
