"""Datagram endpoints the roll call broadcasts through."""

from __future__ import annotations

import asyncio
import socket
from typing import Protocol

from notcher_link.const import (
    ROLL_CALL_GROUP,
    ROLL_CALL_LISTEN_PORT,
    ROLL_CALL_RECV_BUFFER,
    ROLL_CALL_SEND_PORT,
)
from notcher_link.discovery.exceptions import DiscoveryError
from notcher_link.logging_abstraction import get_logger

logger = get_logger(__name__)


class RollCallEndpoint(Protocol):
    """Sends the roll call greeting and yields replies as (source ip, datagram)."""

    async def send(self, datagram: bytes) -> None: ...

    async def receive(self, timeout: float) -> tuple[str, bytes] | None: ...

    def close(self) -> None: ...


class MulticastEndpoint:
    """UDP socket bound to the listen port, sending to the roll call group."""

    def __init__(
        self,
        interface_address: str | None,
        group: str = ROLL_CALL_GROUP,
        send_port: int = ROLL_CALL_SEND_PORT,
        listen_port: int = ROLL_CALL_LISTEN_PORT,
        buffer_size: int = ROLL_CALL_RECV_BUFFER,
    ) -> None:
        self.interface_address = interface_address
        self.group = group
        self.send_port = send_port
        self.listen_port = listen_port
        self.buffer_size = buffer_size
        self._sock: socket.socket | None = None

    @classmethod
    def open(cls, interface_address: str | None) -> MulticastEndpoint:
        """
        Create and bind the socket.

        Raises:
            DiscoveryError: the socket could not be created, configured or bound
        """
        endpoint = cls(interface_address)
        endpoint._open()
        return endpoint

    def _open(self) -> None:
        lp = "MulticastEndpoint:open:"
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        except OSError as e:
            raise DiscoveryError("socket_failed", self.interface_address) from e
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 1)
            if self.interface_address:
                sock.setsockopt(
                    socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(self.interface_address)
                )
            sock.bind(("", self.listen_port))
            sock.setblocking(False)
        except OSError as e:
            sock.close()
            logger.error(
                "%s cannot bind roll call socket on port %d: %s",
                lp,
                self.listen_port,
                e,
                extra={"interface": self.interface_address, "port": self.listen_port},
            )
            raise DiscoveryError("bind_failed", self.interface_address) from e
        self._sock = sock

    async def send(self, datagram: bytes) -> None:
        if self._sock is None:
            raise DiscoveryError("not_open", self.interface_address)
        loop = asyncio.get_running_loop()
        await loop.sock_sendto(self._sock, datagram, (self.group, self.send_port))

    async def receive(self, timeout: float) -> tuple[str, bytes] | None:
        if self._sock is None:
            return None
        loop = asyncio.get_running_loop()
        try:
            data, address = await asyncio.wait_for(loop.sock_recvfrom(self._sock, self.buffer_size), timeout)
        except TimeoutError:
            return None
        return address[0], data

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
