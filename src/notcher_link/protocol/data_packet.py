"""Runtime data packet carried by GET_DATA_PACKET replies."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from notcher_link.protocol.commands import CommandId
from notcher_link.protocol.packet_codec import (
    extract_int,
    extract_signed_short,
    extract_unsigned_short,
    pack_int,
    pack_short,
)

# bytes of the data packet that carry fields; the rest is reserved padding
DATA_PACKET_FIELDS_SIZE = 16


class NotcherDataPacket(BaseModel):
    """Runtime data reported by a unit in answer to GET_DATA_PACKET.

    Layout (big-endian)::

        0      mode (CommandId.STOP_MODE or CommandId.CUT_MODE)
        1      electrode supply (0 off, 1 on)
        2-5    depth count (int32)
        6-9    target depth (int32)
        10-11  electrode voltage (uint16)
        12-13  electrode current (uint16)
        14-15  cut rate (int16)
        16-    reserved
    """

    model_config = ConfigDict(frozen=True)

    mode: int
    electrode_supply: bool
    depth_count: int
    target_depth: int
    voltage: int
    current: int
    cut_rate: int

    @property
    def cutting(self) -> bool:
        return self.mode == CommandId.CUT_MODE

    @classmethod
    def decode(cls, data: bytes) -> NotcherDataPacket:
        """
        Parse the data bytes of a GET_DATA_PACKET reply (checksum already stripped).

        Raises:
            ValueError: fewer bytes than the field layout needs
        """
        if len(data) < DATA_PACKET_FIELDS_SIZE:
            msg = f"data packet too short: {len(data)} < {DATA_PACKET_FIELDS_SIZE}"
            raise ValueError(msg)
        return cls(
            mode=data[0],
            electrode_supply=bool(data[1]),
            depth_count=extract_int(data, 2),
            target_depth=extract_int(data, 6),
            voltage=extract_unsigned_short(data, 10),
            current=extract_unsigned_short(data, 12),
            cut_rate=extract_signed_short(data, 14),
        )

    def encode(self, size: int) -> bytes:
        """Serialize into ``size`` bytes, zero padded."""
        fields = (
            bytes([self.mode & 0xFF, 1 if self.electrode_supply else 0])
            + pack_int(self.depth_count)
            + pack_int(self.target_depth)
            + pack_short(self.voltage)
            + pack_short(self.current)
            + pack_short(self.cut_rate)
        )
        if size < len(fields):
            msg = f"data packet size {size} smaller than field layout {len(fields)}"
            raise ValueError(msg)
        return fields.ljust(size, b"\x00")
