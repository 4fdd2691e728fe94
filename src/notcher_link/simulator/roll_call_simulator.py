"""Simulated roll call endpoint: every simulated unit answers every broadcast."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from notcher_link.const import CONTROL_BOARD_ROLL_CALL_REPLY, NOTCHER_ROLL_CALL_REPLY, ROLL_CALL_GREETING
from notcher_link.devices.record import IndexSequence
from notcher_link.logging_abstraction import get_logger
from notcher_link.protocol.commands import DeviceKind

logger = get_logger(__name__)


def simulated_ip(index: int) -> str:
    """Link-local address of simulated unit ``index`` (169.254.1.1, 169.254.1.2, ...)."""
    return f"169.254.{1 + index // 254}.{1 + index % 254}"


class SimulatedRollCallEndpoint:
    """RollCallEndpoint backed by a fixed set of simulated units.

    Each recognised broadcast queues one reply per unit, so repeated broadcasts
    produce duplicate replies just like real units answering every attempt.
    """

    def __init__(self, kinds: Sequence[DeviceKind], sequence: IndexSequence | None = None) -> None:
        numbering = sequence or IndexSequence()
        self.units: list[tuple[str, DeviceKind]] = [(simulated_ip(numbering.next()), kind) for kind in kinds]
        self._replies: asyncio.Queue[tuple[str, bytes]] = asyncio.Queue()
        self.broadcasts = 0
        self.closed = False

    @property
    def addresses(self) -> list[str]:
        return [ip for ip, _ in self.units]

    def kind_of(self, ip_address: str) -> DeviceKind | None:
        return next((kind for ip, kind in self.units if ip == ip_address), None)

    async def send(self, datagram: bytes) -> None:
        self.broadcasts += 1
        if datagram != ROLL_CALL_GREETING:
            logger.debug("Simulated units ignore datagram %r", datagram)
            return
        for ip_address, kind in self.units:
            reply = CONTROL_BOARD_ROLL_CALL_REPLY if kind is DeviceKind.CONTROL_BOARD else NOTCHER_ROLL_CALL_REPLY
            self._replies.put_nowait((ip_address, reply.encode("ascii")))

    async def receive(self, timeout: float) -> tuple[str, bytes] | None:
        try:
            return await asyncio.wait_for(self._replies.get(), timeout)
        except TimeoutError:
            return None

    def close(self) -> None:
        self.closed = True
