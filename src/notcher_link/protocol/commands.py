"""Command IDs and per-device-kind packet tables.

A table maps a command ID to the number of bytes that follow the ID on the
wire (payload plus checksum) and what kind of body it is. The host reads
with ``host_response_table(kind)``; a simulated device reads the host's
requests with ``device_request_table(kind)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum
from types import MappingProxyType
from typing import Final

from notcher_link.const import MONITOR_PACKET_SIZE, RUNTIME_PACKET_SIZE


class CommandId(IntEnum):
    """One-byte command IDs shared by notchers and control boards."""

    NO_ACTION = 0
    STOP_MODE = 1
    CUT_MODE = 2
    ZERO_DEPTH = 3
    ZERO_TARGET_DEPTH = 4
    GET_DATA_PACKET = 5
    ELECTRODE_SUPPLY_ON_OFF = 6
    ACK = 122
    TEST_SET_VALUE = 123
    TEST_PACKET = 124
    ERROR = 125
    DEBUG = 126
    EXIT = 127


class DeviceKind(StrEnum):
    NOTCHER = "notcher"
    CONTROL_BOARD = "control_board"


class PacketKind(StrEnum):
    """What a packet body carries."""

    EMPTY = "empty"
    STATUS = "status"
    DATA_PACKET = "data_packet"
    ACK = "ack"
    ERROR = "error"
    DEBUG = "debug"
    REQUEST = "request"


@dataclass(frozen=True)
class CommandSpec:
    """Expected body for one command ID.

    Attributes:
        command_id: Command ID byte
        body_length: Bytes after the ID, checksum included (0 means no body)
        kind: How the body is interpreted
    """

    command_id: int
    body_length: int
    kind: PacketKind

    @property
    def data_length(self) -> int:
        """Body length without the checksum."""
        return max(self.body_length - 1, 0)


ResponseTable = MappingProxyType[int, CommandSpec]

# status reply: one status byte + checksum
_STATUS_BODY: Final = 2
# host commands carry one payload byte + checksum
_REQUEST_BODY: Final = 2
# sub-command byte + big-endian int32 + checksum
_TEST_SET_VALUE_BODY: Final = 6


def _table(*specs: CommandSpec) -> ResponseTable:
    return MappingProxyType({spec.command_id: spec for spec in specs})


def _host_table(data_packet_body: int) -> ResponseTable:
    return _table(
        CommandSpec(CommandId.NO_ACTION, 0, PacketKind.EMPTY),
        CommandSpec(CommandId.STOP_MODE, _STATUS_BODY, PacketKind.STATUS),
        CommandSpec(CommandId.CUT_MODE, _STATUS_BODY, PacketKind.STATUS),
        CommandSpec(CommandId.ZERO_DEPTH, _STATUS_BODY, PacketKind.STATUS),
        CommandSpec(CommandId.ZERO_TARGET_DEPTH, _STATUS_BODY, PacketKind.STATUS),
        CommandSpec(CommandId.GET_DATA_PACKET, data_packet_body, PacketKind.DATA_PACKET),
        CommandSpec(CommandId.ACK, _STATUS_BODY, PacketKind.ACK),
        CommandSpec(CommandId.ERROR, _STATUS_BODY, PacketKind.ERROR),
        CommandSpec(CommandId.DEBUG, _STATUS_BODY, PacketKind.DEBUG),
    )


_HOST_TABLES: Final = MappingProxyType(
    {
        DeviceKind.NOTCHER: _host_table(MONITOR_PACKET_SIZE),
        DeviceKind.CONTROL_BOARD: _host_table(RUNTIME_PACKET_SIZE),
    }
)

_CONTROL_REQUESTS: Final = (
    CommandSpec(CommandId.NO_ACTION, _REQUEST_BODY, PacketKind.REQUEST),
    CommandSpec(CommandId.STOP_MODE, _REQUEST_BODY, PacketKind.REQUEST),
    CommandSpec(CommandId.CUT_MODE, _REQUEST_BODY, PacketKind.REQUEST),
    CommandSpec(CommandId.ZERO_DEPTH, _REQUEST_BODY, PacketKind.REQUEST),
    CommandSpec(CommandId.ZERO_TARGET_DEPTH, _REQUEST_BODY, PacketKind.REQUEST),
    CommandSpec(CommandId.GET_DATA_PACKET, _REQUEST_BODY, PacketKind.REQUEST),
    CommandSpec(CommandId.DEBUG, _REQUEST_BODY, PacketKind.REQUEST),
    CommandSpec(CommandId.EXIT, _REQUEST_BODY, PacketKind.REQUEST),
)

_DEVICE_TABLES: Final = MappingProxyType(
    {
        DeviceKind.NOTCHER: _table(
            *_CONTROL_REQUESTS,
            CommandSpec(CommandId.ELECTRODE_SUPPLY_ON_OFF, _REQUEST_BODY, PacketKind.REQUEST),
            CommandSpec(CommandId.TEST_SET_VALUE, _TEST_SET_VALUE_BODY, PacketKind.REQUEST),
        ),
        DeviceKind.CONTROL_BOARD: _table(*_CONTROL_REQUESTS),
    }
)


def host_response_table(kind: DeviceKind) -> ResponseTable:
    """Packets the host expects to receive from a device of ``kind``."""
    return _HOST_TABLES[kind]


def device_request_table(kind: DeviceKind) -> ResponseTable:
    """Packets a device of ``kind`` accepts from the host."""
    return _DEVICE_TABLES[kind]


def command_name(command_id: int) -> str:
    try:
        return CommandId(command_id).name
    except ValueError:
        return f"0x{command_id:02x}"
