"""Unit tests for the per-device-kind command tables."""

import pytest

from notcher_link.const import MONITOR_PACKET_SIZE, RUNTIME_PACKET_SIZE
from notcher_link.protocol.commands import (
    CommandId,
    DeviceKind,
    PacketKind,
    command_name,
    device_request_table,
    host_response_table,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "kind,expected",
    [(DeviceKind.NOTCHER, MONITOR_PACKET_SIZE), (DeviceKind.CONTROL_BOARD, RUNTIME_PACKET_SIZE)],
)
def test_data_packet_length_depends_on_kind(kind: DeviceKind, expected: int) -> None:
    spec = host_response_table(kind)[CommandId.GET_DATA_PACKET]
    assert spec.body_length == expected
    assert spec.data_length == expected - 1
    assert spec.kind is PacketKind.DATA_PACKET


@pytest.mark.unit
def test_control_commands_answer_with_status_byte() -> None:
    table = host_response_table(DeviceKind.NOTCHER)
    for command_id in (CommandId.STOP_MODE, CommandId.CUT_MODE, CommandId.ZERO_DEPTH, CommandId.ZERO_TARGET_DEPTH):
        assert table[command_id].body_length == 2
        assert table[command_id].kind is PacketKind.STATUS
    assert table[CommandId.NO_ACTION].body_length == 0


@pytest.mark.unit
def test_control_board_does_not_accept_notcher_only_commands() -> None:
    board = device_request_table(DeviceKind.CONTROL_BOARD)
    notcher = device_request_table(DeviceKind.NOTCHER)

    assert CommandId.ELECTRODE_SUPPLY_ON_OFF not in board
    assert CommandId.TEST_SET_VALUE not in board
    assert notcher[CommandId.TEST_SET_VALUE].body_length == 6


@pytest.mark.unit
def test_tables_are_read_only() -> None:
    table = host_response_table(DeviceKind.NOTCHER)
    with pytest.raises(TypeError):
        table[0x50] = table[CommandId.ACK]  # type: ignore[index]


@pytest.mark.unit
def test_command_name() -> None:
    assert command_name(5) == "GET_DATA_PACKET"
    assert command_name(0x50) == "0x50"
