"""Network interface selection for the roll call."""

from __future__ import annotations

import socket
from dataclasses import dataclass

import psutil

from notcher_link.const import LINK_LOCAL_PREFIX
from notcher_link.logging_abstraction import StatusLog, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class InterfaceAddress:
    name: str
    address: str

    @property
    def link_local(self) -> bool:
        return self.address.startswith(LINK_LOCAL_PREFIX)


def list_ipv4_interfaces() -> list[InterfaceAddress]:
    """Every IPv4 address on the host, in the order psutil reports interfaces."""
    found: list[InterfaceAddress] = []
    for name, addresses in psutil.net_if_addrs().items():
        found.extend(
            InterfaceAddress(name, entry.address) for entry in addresses if entry.family == socket.AF_INET
        )
    return found


def find_link_local_interface(status_log: StatusLog | None = None) -> InterfaceAddress | None:
    """
    Pick the interface the units are on.

    Units without a DHCP server fall back to IPv4 link-local addressing, so the
    first interface with a 169.254.x.x address is the control network.

    Args:
        status_log: Receives one line per interface seen

    Returns:
        The first link-local interface, or None if the host has none
    """
    interfaces = list_ipv4_interfaces()
    selected: InterfaceAddress | None = None
    for interface in interfaces:
        if status_log is not None:
            status_log.append_line(f"Interface {interface.name}: {interface.address}")
        if selected is None and interface.link_local:
            selected = interface

    if selected is None:
        logger.warning(
            "No link-local interface found among %d IPv4 addresses",
            len(interfaces),
            extra={"interfaces": [i.address for i in interfaces]},
        )
    else:
        logger.info("Using interface %s (%s)", selected.name, selected.address, extra={"interface": selected.name})
        if status_log is not None:
            status_log.append_line(f"Roll call using {selected.name} at {selected.address}")
    return selected
