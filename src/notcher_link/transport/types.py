"""Result types for the command channel and device dispatch."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from notcher_link.protocol.commands import CommandSpec
    from notcher_link.protocol.packet_codec import Packet


class PacketOutcome(StrEnum):
    """What one pass of the read path did."""

    PROCESSED = "processed"
    NO_PACKET = "no_packet"
    RESYNC = "resync"
    UNKNOWN_COMMAND = "unknown_command"
    TIMEOUT = "timeout"
    CHECKSUM_ERROR = "checksum_error"


@dataclass(frozen=True)
class PacketResult:
    """Result of ``CommandChannel.process_one_data_packet``.

    Attributes:
        outcome: What happened
        bytes_consumed: Frame bytes consumed by a processed packet (0 otherwise)
        packet: The decoded packet when outcome is PROCESSED
    """

    outcome: PacketOutcome
    bytes_consumed: int = 0
    packet: Packet | None = None

    @property
    def processed(self) -> bool:
        return self.outcome is PacketOutcome.PROCESSED


class DispatchFailure(StrEnum):
    NOT_FOUND = "not_found"
    NOT_READY = "not_ready"
    SEND_FAILED = "send_failed"
    NO_RESPONSE = "no_response"


@dataclass(frozen=True)
class DispatchResult:
    """Result of a registry command dispatch; failures are values, not exceptions."""

    ip_address: str
    command_id: int
    success: bool
    failure: DispatchFailure | None = None
    response: Packet | None = None

    @classmethod
    def ok(cls, ip_address: str, command_id: int, response: Packet | None = None) -> DispatchResult:
        return cls(ip_address, command_id, True, None, response)

    @classmethod
    def failed(cls, ip_address: str, command_id: int, failure: DispatchFailure) -> DispatchResult:
        return cls(ip_address, command_id, False, failure)


@dataclass(frozen=True)
class ChannelStats:
    """Snapshot of a command channel's read-path state."""

    peer: str
    is_open: bool
    resynced: bool
    resync_count: int
    last_command_id: int | None
    timeout_ticks: int
    packets_processed: int
    checksum_errors: int
    header_mismatches: int
    timeouts: int


class PacketHandler(Protocol):
    """Receives verified packets from a command channel.

    Both methods may return packets for the channel to send back, which is how
    a simulated device answers the host without re-entering the channel.
    """

    async def handle_packet(self, packet: Packet, spec: CommandSpec) -> Sequence[Packet] | None: ...

    def on_checksum_error(self, command_id: int) -> Sequence[Packet] | None: ...
