"""Device registry exceptions."""

from __future__ import annotations

from notcher_link.protocol.exceptions import NotcherProtocolError


class DeviceNotFoundError(NotcherProtocolError):
    """No unit with the given IP address is registered.

    Attributes:
        ip_address: Address that was looked up
    """

    def __init__(self, ip_address: str):
        self.ip_address = ip_address
        super().__init__("not_found", f"No unit registered at {ip_address}")
