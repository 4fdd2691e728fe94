"""Unit tests for ResyncScanner."""

import pytest

from notcher_link.protocol.resync import ResyncScanner
from tests.helpers.transports import ScriptedTransport


@pytest.mark.unit
def test_resync_consumes_garbage_and_sync_byte() -> None:
    transport = ScriptedTransport(b"\x01\x02\x03\xaa\x55\xbb")
    scanner = ResyncScanner("test")

    assert scanner.resync(transport, last_packet_id=5) is True

    assert scanner.resynced is True
    assert transport.available_bytes() == 2
    assert transport.read_exact(2) == b"\x55\xbb"
    assert scanner.resync_count == 1
    assert scanner.last_packet_id == 5
    assert scanner.bytes_discarded == 3


@pytest.mark.unit
def test_resync_without_sync_byte_drains_everything() -> None:
    transport = ScriptedTransport(b"\x01\x02\x03\x04")
    scanner = ResyncScanner()

    assert scanner.resync(transport) is False

    assert scanner.resynced is False
    assert transport.available_bytes() == 0
    assert scanner.resync_count == 1


@pytest.mark.unit
def test_resync_on_empty_stream_counts_but_does_not_wait() -> None:
    transport = ScriptedTransport()
    scanner = ResyncScanner()

    assert scanner.resync(transport) is False
    assert scanner.resync_count == 1
    assert transport.wait_calls == 0


@pytest.mark.unit
def test_sync_byte_first_is_consumed_alone() -> None:
    transport = ScriptedTransport(b"\xaa\xaa\x55")
    scanner = ResyncScanner()

    scanner.resync(transport)

    assert scanner.resynced is True
    assert transport.read_exact(5) == b"\xaa\x55"


@pytest.mark.unit
def test_consume_resynced_clears_flag() -> None:
    scanner = ResyncScanner()
    scanner.resync(ScriptedTransport(b"\xaa"))

    assert scanner.consume_resynced() is True
    assert scanner.consume_resynced() is False
    assert scanner.resync_count == 1


@pytest.mark.unit
def test_stale_flag_cleared_when_next_scan_finds_nothing() -> None:
    scanner = ResyncScanner()
    scanner.resync(ScriptedTransport(b"\xaa"))
    scanner.resync(ScriptedTransport(b"\x00"))

    assert scanner.resynced is False
    assert scanner.resync_count == 2
