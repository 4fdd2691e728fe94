"""Byte transports (TCP and loopback) and the command channel built on them."""

from notcher_link.transport.base import Transport
from notcher_link.transport.byte_queue import BoundedByteQueue
from notcher_link.transport.command_channel import CommandChannel
from notcher_link.transport.exceptions import TransportClosedError, TransportIOError
from notcher_link.transport.loopback import LoopbackTransport, create_loopback_pair
from notcher_link.transport.socket_transport import SocketTransport
from notcher_link.transport.types import (
    ChannelStats,
    DispatchFailure,
    DispatchResult,
    PacketHandler,
    PacketOutcome,
    PacketResult,
)

__all__ = [
    "BoundedByteQueue",
    "ChannelStats",
    "CommandChannel",
    "DispatchFailure",
    "DispatchResult",
    "LoopbackTransport",
    "PacketHandler",
    "PacketOutcome",
    "PacketResult",
    "SocketTransport",
    "Transport",
    "TransportClosedError",
    "TransportIOError",
    "create_loopback_pair",
]
