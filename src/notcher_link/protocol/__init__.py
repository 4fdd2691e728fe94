"""Wire protocol: frame codec, command tables and stream resynchronization."""

from notcher_link.protocol.commands import (
    CommandId,
    CommandSpec,
    DeviceKind,
    PacketKind,
    device_request_table,
    host_response_table,
)
from notcher_link.protocol.data_packet import NotcherDataPacket
from notcher_link.protocol.exceptions import (
    ChecksumError,
    HeaderMismatchError,
    NotcherProtocolError,
    ResponseTimeoutError,
)
from notcher_link.protocol.packet_codec import (
    SYNC_HEADER,
    Packet,
    calculate_checksum,
    decode_body,
    encode,
    verify,
)
from notcher_link.protocol.resync import ResyncScanner

__all__ = [
    "SYNC_HEADER",
    "ChecksumError",
    "CommandId",
    "CommandSpec",
    "DeviceKind",
    "HeaderMismatchError",
    "NotcherDataPacket",
    "NotcherProtocolError",
    "Packet",
    "PacketKind",
    "ResponseTimeoutError",
    "ResyncScanner",
    "calculate_checksum",
    "decode_body",
    "device_request_table",
    "encode",
    "host_response_table",
    "verify",
]
