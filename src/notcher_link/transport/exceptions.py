"""Transport-level exceptions."""

from __future__ import annotations

from notcher_link.protocol.exceptions import NotcherProtocolError


class TransportIOError(NotcherProtocolError):
    """Write, read or close failed on the underlying byte channel.

    Attributes:
        reason: Specific failure reason ("closed", "timeout", "os_error")
        peer: Remote end description (IP address or loopback name)
    """

    def __init__(self, reason: str, peer: str = "unknown"):
        self.peer = peer
        super().__init__(reason, f"Transport I/O error: {reason} (peer: {peer})")


class TransportClosedError(TransportIOError):
    """Operation attempted on a closed transport."""

    def __init__(self, peer: str = "unknown"):
        super().__init__("closed", peer)
