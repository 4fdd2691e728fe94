"""Unit tests for frame encoding and checksum validation."""

import pytest

from notcher_link.protocol.commands import CommandId
from notcher_link.protocol.exceptions import ChecksumError, HeaderMismatchError
from notcher_link.protocol.packet_codec import (
    SYNC_HEADER,
    Packet,
    calculate_checksum,
    check_header_byte,
    decode_body,
    encode,
    extract_int,
    extract_signed_short,
    extract_unsigned_short,
    frame_body,
    pack_int,
    pack_short,
    verify,
)
from tests.helpers.expectations import expect_exception


@pytest.mark.unit
def test_cut_mode_frame_bytes() -> None:
    """CUT_MODE with a zero payload byte has checksum 0x100 - 0x02."""
    assert encode(CommandId.CUT_MODE, [0x00]) == bytes.fromhex("AA 55 BB 66 02 00 FE")


@pytest.mark.unit
def test_cut_mode_body_verifies() -> None:
    assert verify(2, bytes([0x00, 0xFE])) is True


@pytest.mark.unit
@pytest.mark.parametrize(
    "command_id,payload",
    [
        (CommandId.NO_ACTION, b""),
        (CommandId.STOP_MODE, b"\x00"),
        (CommandId.GET_DATA_PACKET, bytes(range(24))),
        (CommandId.TEST_SET_VALUE, b"\x03" + pack_int(-123456)),
        (CommandId.EXIT, b"\xff" * 40),
        (0xFF, b"\xff\xff"),
    ],
)
def test_encoded_body_verifies(command_id: int, payload: bytes) -> None:
    """Whatever follows the header of an encoded frame passes verification."""
    frame = encode(command_id, payload)
    assert frame.startswith(SYNC_HEADER)
    parsed_id, body = frame_body(frame)
    assert parsed_id == command_id
    assert verify(parsed_id, body)
    assert decode_body(parsed_id, body) == Packet(command_id, payload)


@pytest.mark.unit
def test_single_bit_flip_fails_verification() -> None:
    """Flipping any one bit of the payload or checksum is detected."""
    _, body = frame_body(encode(CommandId.ZERO_DEPTH, b"\x10\x20\x30"))
    for index in range(len(body)):
        for bit in range(8):
            corrupted = bytearray(body)
            corrupted[index] ^= 1 << bit
            assert not verify(CommandId.ZERO_DEPTH, corrupted), (index, bit)


@pytest.mark.unit
def test_verify_rejects_empty_body() -> None:
    assert verify(0, b"") is False


@pytest.mark.unit
def test_checksum_wraps_to_zero() -> None:
    """A byte sum that is already a multiple of 256 gives a zero checksum."""
    assert calculate_checksum(0x80, b"\x80") == 0x00
    assert calculate_checksum(0x01) == 0xFF


@pytest.mark.unit
def test_decode_body_raises_checksum_error() -> None:
    err = expect_exception(decode_body, ChecksumError, CommandId.CUT_MODE, b"\x01\x01")
    assert err.reason == "invalid_checksum"
    assert err.command_id == CommandId.CUT_MODE
    assert err.data_preview == b"\x01\x01"


@pytest.mark.unit
def test_check_header_byte() -> None:
    for position, marker in enumerate(SYNC_HEADER):
        check_header_byte(position, marker)

    err = expect_exception(check_header_byte, HeaderMismatchError, 2, 0x00)
    assert err.reason == "header_mismatch"
    assert err.position == 2
    assert err.received == 0x00


@pytest.mark.unit
def test_command_id_out_of_range() -> None:
    with pytest.raises(ValueError, match="one byte"):
        encode(256, b"")
    with pytest.raises(ValueError):
        encode(1, [300])


@pytest.mark.unit
def test_frame_body_rejects_unframed_bytes() -> None:
    with pytest.raises(ValueError, match="not a framed packet"):
        frame_body(b"\x00\x55\xbb\x66\x01")


@pytest.mark.unit
def test_big_endian_helpers() -> None:
    data = pack_short(-2) + pack_int(0x01020304) + pack_short(0xFFFE)
    assert extract_signed_short(data, 0) == -2
    assert extract_int(data, 2) == 0x01020304
    assert extract_unsigned_short(data, 6) == 0xFFFE
    assert extract_int(pack_int(-1), 0) == -1


@pytest.mark.unit
def test_packet_first_byte() -> None:
    assert Packet(CommandId.ACK, b"\x06").first_byte == CommandId.ELECTRODE_SUPPLY_ON_OFF
    assert Packet(CommandId.NO_ACTION).first_byte is None
