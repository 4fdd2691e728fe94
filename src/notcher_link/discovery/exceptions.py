"""Discovery exceptions."""

from __future__ import annotations

from notcher_link.protocol.exceptions import NotcherProtocolError


class DiscoveryError(NotcherProtocolError):
    """Roll call could not run (socket could not be opened or bound).

    Attributes:
        reason: Specific failure reason
        interface: Interface address the socket was meant to use
    """

    def __init__(self, reason: str, interface: str | None = None):
        self.interface = interface
        super().__init__(reason, f"Discovery failed: {reason} (interface: {interface or 'default'})")
