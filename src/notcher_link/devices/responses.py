"""Host-side handling of packets received from units."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from notcher_link.logging_abstraction import get_logger
from notcher_link.protocol.commands import CommandSpec, DeviceKind, PacketKind, command_name
from notcher_link.protocol.data_packet import NotcherDataPacket
from notcher_link.protocol.packet_codec import Packet

logger = get_logger(__name__)


@dataclass
class UnitStatus:
    """What the host has learned from one unit's packets."""

    last_status: dict[int, int]
    data_packet: NotcherDataPacket | None = None
    last_acked_command: int | None = None
    last_error_command: int | None = None
    last_debug_code: int | None = None
    packets_seen: int = 0


class HostResponseHandler:
    """PacketHandler for the host end of a unit's channel; records, never replies."""

    def __init__(self, ip_address: str, kind: DeviceKind) -> None:
        self.ip_address = ip_address
        self.kind = kind
        self.status = UnitStatus(last_status={})

    async def handle_packet(self, packet: Packet, spec: CommandSpec) -> Sequence[Packet] | None:
        self.status.packets_seen += 1
        match spec.kind:
            case PacketKind.STATUS:
                if packet.first_byte is not None:
                    self.status.last_status[packet.command_id] = packet.first_byte
            case PacketKind.DATA_PACKET:
                try:
                    self.status.data_packet = NotcherDataPacket.decode(packet.payload)
                except ValueError as e:
                    logger.warning("Bad data packet from %s: %s", self.ip_address, e, extra={"ip": self.ip_address})
            case PacketKind.ACK:
                self.status.last_acked_command = packet.first_byte
            case PacketKind.ERROR:
                self.status.last_error_command = packet.first_byte
                logger.warning(
                    "%s reported an error for %s",
                    self.ip_address,
                    command_name(packet.first_byte or 0),
                    extra={"ip": self.ip_address, "command_id": packet.first_byte},
                )
            case PacketKind.DEBUG:
                self.status.last_debug_code = packet.first_byte
                logger.debug("%s debug code %s", self.ip_address, packet.first_byte)
            case _:
                pass
        return None

    def on_checksum_error(self, command_id: int) -> Sequence[Packet] | None:
        return None
