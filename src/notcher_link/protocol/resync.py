"""Stream resynchronization after a corrupted or misaligned frame."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notcher_link.logging_abstraction import get_logger
from notcher_link.protocol.packet_codec import SYNC_BYTE

if TYPE_CHECKING:
    from notcher_link.transport.base import Transport

logger = get_logger(__name__)


class ResyncScanner:
    """Discard bytes until the first sync header byte, without waiting.

    When the scan stops on a sync byte, that byte has already been consumed and
    ``resynced`` is set so the next header read starts at the second byte.

    A sync byte that happens to be the last byte of a good packet looks the
    same as a real header start, so that packet and the one after it are lost.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.resynced: bool = False
        self.resync_count: int = 0
        self.last_packet_id: int | None = None
        self.bytes_discarded: int = 0

    def resync(self, transport: Transport, last_packet_id: int | None = None) -> bool:
        """
        Scan forward to the next sync byte.

        Args:
            transport: Transport to read from (only already-available bytes are read)
            last_packet_id: ID of the packet handled before the corruption, for logs

        Returns:
            True if a sync byte was found and consumed
        """
        self.resynced = False
        self.resync_count += 1
        self.last_packet_id = last_packet_id
        discarded = 0

        while transport.available_bytes() > 0:
            chunk = transport.read_exact(1)
            if not chunk:
                break
            if chunk[0] == SYNC_BYTE:
                self.resynced = True
                break
            discarded += 1

        self.bytes_discarded += discarded
        logger.warning(
            "%s resync #%d: discarded %d bytes, sync byte %s",
            self.name or "stream",
            self.resync_count,
            discarded,
            "found" if self.resynced else "not found",
            extra={
                "channel": self.name,
                "resync_count": self.resync_count,
                "discarded": discarded,
                "resynced": self.resynced,
                "last_packet_id": last_packet_id,
            },
        )
        return self.resynced

    def consume_resynced(self) -> bool:
        """Return the resynced flag and clear it."""
        was_resynced = self.resynced
        self.resynced = False
        return was_resynced
