"""Device records and the index sequence that numbers them."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from notcher_link.protocol.commands import DeviceKind

if TYPE_CHECKING:
    from notcher_link.devices.responses import HostResponseHandler
    from notcher_link.simulator.device_simulator import DeviceSimulator
    from notcher_link.transport.command_channel import CommandChannel


class IndexSequence:
    """Monotonic index generator handed to whoever numbers units or simulators."""

    def __init__(self, start: int = 0) -> None:
        self._next = start

    def next(self) -> int:
        value = self._next
        self._next += 1
        return value

    def peek(self) -> int:
        return self._next

    def __iter__(self) -> Iterator[int]:
        while True:
            yield self.next()


@dataclass
class DeviceRecord:
    """One discovered unit.

    Attributes:
        index: Position in discovery order
        ip_address: Unique key in the registry
        display_name: Operator-facing name from configuration
        greeting: Roll call reply text
        handshake: Greeting line the unit sent after the control connection opened
        kind: Notcher or control board
        ready: Channel opened (set even when the greeting handshake failed)
        enabled: Operator has this unit switched on
        last_seen_response: The last request got a reply
    """

    index: int
    ip_address: str
    display_name: str
    greeting: str = ""
    kind: DeviceKind = DeviceKind.NOTCHER
    ready: bool = False
    enabled: bool = True
    last_seen_response: bool = False
    handshake: str | None = None
    channel: CommandChannel | None = field(default=None, repr=False)
    handler: HostResponseHandler | None = field(default=None, repr=False)
    simulator: DeviceSimulator | None = field(default=None, repr=False)

    @property
    def usable(self) -> bool:
        return self.ready and self.channel is not None and self.channel.is_open
