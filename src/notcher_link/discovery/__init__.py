"""Roll call discovery of units on the control network."""

from notcher_link.discovery.endpoints import MulticastEndpoint, RollCallEndpoint
from notcher_link.discovery.exceptions import DiscoveryError
from notcher_link.discovery.interfaces import InterfaceAddress, find_link_local_interface
from notcher_link.discovery.roll_call import DiscoveryService, DiscoverySession, DiscoveryState

__all__ = [
    "DiscoveryError",
    "DiscoveryService",
    "DiscoverySession",
    "DiscoveryState",
    "InterfaceAddress",
    "MulticastEndpoint",
    "RollCallEndpoint",
    "find_link_local_interface",
]
