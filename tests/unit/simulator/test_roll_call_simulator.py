"""Unit tests for SimulatedRollCallEndpoint."""

from __future__ import annotations

import pytest

from notcher_link.const import ROLL_CALL_GREETING
from notcher_link.devices.record import IndexSequence
from notcher_link.protocol.commands import DeviceKind
from notcher_link.simulator.roll_call_simulator import SimulatedRollCallEndpoint, simulated_ip


@pytest.mark.unit
@pytest.mark.parametrize(("index", "expected"), [(0, "169.254.1.1"), (1, "169.254.1.2"), (254, "169.254.2.1")])
def test_simulated_ip(index: int, expected: str) -> None:
    assert simulated_ip(index) == expected


@pytest.mark.unit
@pytest.mark.asyncio
async def test_every_unit_answers_the_greeting() -> None:
    endpoint = SimulatedRollCallEndpoint([DeviceKind.NOTCHER, DeviceKind.CONTROL_BOARD])

    await endpoint.send(ROLL_CALL_GREETING)

    first = await endpoint.receive(0.1)
    second = await endpoint.receive(0.1)
    assert first == ("169.254.1.1", b"Notcher present...")
    assert second == ("169.254.1.2", b"Control Board present...")
    assert await endpoint.receive(0.01) is None
    assert endpoint.kind_of("169.254.1.2") is DeviceKind.CONTROL_BOARD
    assert endpoint.kind_of("10.0.0.1") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_other_datagrams_are_ignored() -> None:
    endpoint = SimulatedRollCallEndpoint([DeviceKind.NOTCHER])

    await endpoint.send(b"Who is there?")

    assert endpoint.broadcasts == 1
    assert await endpoint.receive(0.01) is None


@pytest.mark.unit
def test_addresses_follow_shared_sequence() -> None:
    sequence = IndexSequence(start=4)
    endpoint = SimulatedRollCallEndpoint([DeviceKind.NOTCHER] * 2, sequence)

    assert endpoint.addresses == ["169.254.1.5", "169.254.1.6"]
    assert sequence.peek() == 6
    endpoint.close()
    assert endpoint.closed
