"""Frame encoding and checksum validation.

Wire format::

    AA 55 BB 66 | command_id | payload ... | checksum

The checksum is the two's complement of the byte sum of command_id and the
payload, so a receiver summing command_id, payload and checksum gets zero
modulo 256.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from notcher_link.protocol.exceptions import ChecksumError, HeaderMismatchError

SYNC_HEADER = b"\xaa\x55\xbb\x66"
SYNC_BYTE = SYNC_HEADER[0]
HEADER_SIZE = len(SYNC_HEADER)
# header plus command id
PREAMBLE_SIZE = HEADER_SIZE + 1


@dataclass(frozen=True)
class Packet:
    """A decoded frame: command ID and payload with the checksum stripped."""

    command_id: int
    payload: bytes = field(default=b"")

    def __post_init__(self) -> None:
        _check_byte("command_id", self.command_id)

    def encode(self) -> bytes:
        return encode(self.command_id, self.payload)

    @property
    def first_byte(self) -> int | None:
        return self.payload[0] if self.payload else None


def _check_byte(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        msg = f"{name} must fit in one byte, got {value}"
        raise ValueError(msg)


def calculate_checksum(command_id: int, payload: bytes | bytearray = b"") -> int:
    """
    Compute the checksum byte for a frame.

    Args:
        command_id: Command ID byte
        payload: Payload bytes (checksum not included)

    Returns:
        ``(0x100 - (sum & 0xFF)) & 0xFF``
    """
    _check_byte("command_id", command_id)
    total = (command_id + sum(payload)) & 0xFF
    return (0x100 - total) & 0xFF


def encode(command_id: int, payload: bytes | bytearray | list[int] = b"") -> bytes:
    """
    Build a complete frame.

    Args:
        command_id: Command ID byte
        payload: Payload bytes (any iterable of ints 0-255)

    Returns:
        Header, command ID, payload and checksum as one bytes object

    Raises:
        ValueError: command_id or a payload value outside 0..255
    """
    body = bytes(payload)
    checksum = calculate_checksum(command_id, body)
    return SYNC_HEADER + bytes([command_id]) + body + bytes([checksum])


def verify(command_id: int, received: bytes | bytearray) -> bool:
    """
    Check a received frame body.

    Args:
        command_id: Command ID byte read after the header
        received: Payload followed by the trailing checksum byte

    Returns:
        True when command_id plus every received byte sums to 0 mod 256
    """
    if not received:
        return False
    return (command_id + sum(received)) & 0xFF == 0


def decode_body(command_id: int, received: bytes | bytearray) -> Packet:
    """
    Verify a frame body and return it as a Packet.

    Raises:
        ChecksumError: body failed validation
    """
    if not verify(command_id, received):
        raise ChecksumError(command_id, bytes(received))
    return Packet(command_id, bytes(received[:-1]))


def check_header_byte(position: int, received: int) -> None:
    """
    Compare one received byte with the sync header at ``position``.

    Raises:
        HeaderMismatchError: byte is not the expected marker
    """
    if received != SYNC_HEADER[position]:
        raise HeaderMismatchError(position, received)


def frame_body(frame: bytes) -> tuple[int, bytes]:
    """Split an encoded frame into (command_id, payload + checksum)."""
    if len(frame) < PREAMBLE_SIZE or not frame.startswith(SYNC_HEADER):
        msg = f"not a framed packet: {frame[:8].hex(' ')}"
        raise ValueError(msg)
    return frame[HEADER_SIZE], frame[PREAMBLE_SIZE:]


def pack_short(value: int) -> bytes:
    """Big-endian two's complement 16-bit value."""
    return (value & 0xFFFF).to_bytes(2, "big")


def pack_int(value: int) -> bytes:
    """Big-endian two's complement 32-bit value."""
    return (value & 0xFFFFFFFF).to_bytes(4, "big")


def extract_unsigned_short(data: bytes | bytearray, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 2], "big")


def extract_signed_short(data: bytes | bytearray, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 2], "big", signed=True)


def extract_int(data: bytes | bytearray, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 4], "big", signed=True)
