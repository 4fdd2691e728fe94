"""Unit tests for DeviceSimulator, driven from a host-side command channel."""

from __future__ import annotations

import asyncio

import pytest

from notcher_link.devices.responses import HostResponseHandler
from notcher_link.protocol.commands import CommandId, DeviceKind, host_response_table
from notcher_link.protocol.packet_codec import Packet, pack_int
from notcher_link.simulator.device_simulator import DeviceSimulator
from notcher_link.transport.command_channel import CommandChannel
from notcher_link.transport.types import PacketOutcome

IP = "169.254.1.1"


async def start(
    kind: DeviceKind = DeviceKind.NOTCHER, send_greeting: bool = False
) -> tuple[DeviceSimulator, CommandChannel]:
    simulator = DeviceSimulator(kind, IP, index=3, send_greeting=send_greeting)
    host_end = await simulator.start()
    channel = CommandChannel(host_end, host_response_table(kind), HostResponseHandler(IP, kind), timeout_ticks=20)
    return simulator, channel


async def stop(simulator: DeviceSimulator, channel: CommandChannel) -> None:
    await channel.close()
    await simulator.stop()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_greeting_line_sent_on_start() -> None:
    simulator, channel = await start(send_greeting=True)
    try:
        assert await channel.read_line(25) == "Hello from Notcher Simulator!"
        assert simulator.running
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_control_board_greeting() -> None:
    simulator, channel = await start(DeviceKind.CONTROL_BOARD, send_greeting=True)
    try:
        assert await channel.read_line(25) == "Hello from Control Board Simulator!"
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_mode_commands_reply_with_status() -> None:
    simulator, channel = await start()
    try:
        assert await channel.request(CommandId.CUT_MODE, b"\x00") == Packet(CommandId.CUT_MODE, b"\x01")
        assert simulator.mode == CommandId.CUT_MODE
        assert await channel.request(CommandId.STOP_MODE, b"\x00") == Packet(CommandId.STOP_MODE, b"\x01")
        assert simulator.mode == CommandId.STOP_MODE
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_control_board_data_packet_is_runtime_sized() -> None:
    simulator, channel = await start(DeviceKind.CONTROL_BOARD)
    try:
        reply = await channel.request(CommandId.GET_DATA_PACKET, b"\x00")

        assert reply is not None
        assert len(reply.payload) == 49
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_depth_advances_while_cutting() -> None:
    simulator, channel = await start()
    try:
        _ = await channel.request(CommandId.CUT_MODE, b"\x00")
        _ = await channel.request(CommandId.GET_DATA_PACKET, b"\x00")
        _ = await channel.request(CommandId.GET_DATA_PACKET, b"\x00")

        assert simulator.depth_count == 14
        _ = await channel.request(CommandId.ZERO_DEPTH, b"\x00")
        assert simulator.depth_count == 0
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_test_set_value_is_acked() -> None:
    simulator, channel = await start()
    try:
        reply = await channel.request(
            CommandId.TEST_SET_VALUE, b"\x02" + pack_int(123456), response_id=CommandId.ACK
        )

        assert reply == Packet(CommandId.ACK, bytes([CommandId.TEST_SET_VALUE]))
        assert simulator.test_values == {2: 123456}
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_debug_reports_index() -> None:
    simulator, channel = await start()
    try:
        reply = await channel.request(CommandId.DEBUG, b"\x00")

        assert reply == Packet(CommandId.DEBUG, b"\x03")
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_corrupt_command_answered_with_error() -> None:
    simulator, channel = await start()
    try:
        await channel.transport.write(b"\xaa\x55\xbb\x66\x02\x00\x00")

        error = await channel.process_until_type(CommandId.ERROR, 50)

        assert error == Packet(CommandId.ERROR, bytes([CommandId.CUT_MODE]))
        assert simulator.mode == CommandId.STOP_MODE
        assert simulator.channel.get_stats().checksum_errors == 1
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exit_stops_driver() -> None:
    simulator, channel = await start()
    try:
        assert await channel.send_command(CommandId.EXIT, b"\x00")
        result = await channel.process_one_data_packet(True, 20)

        assert result.outcome is PacketOutcome.NO_PACKET
        assert not simulator.running
        assert simulator.commands_received == [CommandId.EXIT]
    finally:
        await stop(simulator, channel)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_is_idempotent() -> None:
    simulator, channel = await start()
    await stop(simulator, channel)
    await simulator.stop()

    assert not simulator.running
    assert not channel.is_open


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unpolled_replies_do_not_stall_host_sends() -> None:
    """Test a host that never reads replies still gets every send back promptly."""
    simulator = DeviceSimulator(DeviceKind.NOTCHER, IP, index=0, capacity=64, send_greeting=False)
    host_end = await simulator.start()
    handler = HostResponseHandler(IP, DeviceKind.NOTCHER)
    channel = CommandChannel(host_end, host_response_table(DeviceKind.NOTCHER), handler)
    try:
        results = [
            await asyncio.wait_for(channel.send_command(CommandId.GET_DATA_PACKET), timeout=2.0) for _ in range(40)
        ]

        assert len(results) == 40
        assert results[0] is True
    finally:
        await stop(simulator, channel)
