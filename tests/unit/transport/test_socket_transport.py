"""Unit tests for SocketTransport.

Tests cover:
- Connection lifecycle (connect, receive pump, close)
- Error handling (timeouts, connection failures, write failures)
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notcher_link.transport.exceptions import TransportClosedError, TransportIOError
from notcher_link.transport.socket_transport import SocketTransport
from tests.helpers.expectations import expect_async_exception


@pytest.fixture
def socket_transport() -> SocketTransport:
    """Create SocketTransport instance for testing."""
    return SocketTransport(host="169.254.1.1", port=2323, connect_timeout=0.1, io_timeout=0.1)


def make_writer() -> MagicMock:
    writer = MagicMock(spec=asyncio.StreamWriter)
    writer.drain = AsyncMock()
    writer.wait_closed = AsyncMock()
    return writer


async def wait_for_available(transport: SocketTransport, n: int) -> None:
    for _ in range(50):
        if transport.available_bytes() >= n:
            return
        await asyncio.sleep(0.01)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_connect_and_receive(socket_transport: SocketTransport) -> None:
    """Test received bytes are pumped into the buffer without blocking reads."""
    reader = asyncio.StreamReader()
    reader.feed_data(b"Hello\n")
    writer = make_writer()

    with patch("asyncio.open_connection", new=AsyncMock(return_value=(reader, writer))) as mock_open:
        assert await socket_transport.connect() is True
        mock_open.assert_awaited_once_with("169.254.1.1", 2323)

    assert socket_transport.is_open
    await wait_for_available(socket_transport, 6)
    assert socket_transport.read_exact(6) == b"Hello\n"

    await socket_transport.close()
    assert not socket_transport.is_open
    writer.close.assert_called_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_peer_eof_closes_transport(socket_transport: SocketTransport) -> None:
    reader = asyncio.StreamReader()
    reader.feed_data(b"\xaa")
    reader.feed_eof()

    with patch("asyncio.open_connection", new=AsyncMock(return_value=(reader, make_writer()))):
        assert await socket_transport.connect() is True

    await wait_for_available(socket_transport, 1)
    for _ in range(50):
        if not socket_transport.is_open:
            break
        await asyncio.sleep(0.01)

    assert not socket_transport.is_open
    # bytes received before EOF stay readable
    assert socket_transport.read_exact(1) == b"\xaa"
    await socket_transport.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_connect_timeout(socket_transport: SocketTransport) -> None:
    """Test connection timeout returns False."""

    async def slow_connect(*_args: object, **_kwargs: object) -> tuple[object, object]:
        await asyncio.sleep(1.0)
        return (asyncio.StreamReader(), make_writer())

    with patch("asyncio.open_connection", new=slow_connect):
        assert await socket_transport.connect() is False
    assert not socket_transport.is_open


@pytest.mark.unit
@pytest.mark.asyncio
async def test_connect_refused(socket_transport: SocketTransport) -> None:
    with patch("asyncio.open_connection", new=AsyncMock(side_effect=ConnectionRefusedError("refused"))):
        assert await socket_transport.connect() is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_write_when_not_connected(socket_transport: SocketTransport) -> None:
    err = await expect_async_exception(socket_transport.write, TransportClosedError, b"x")
    assert err.reason == "closed"
    assert err.peer == "169.254.1.1"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_write_drains(socket_transport: SocketTransport) -> None:
    writer = make_writer()
    with patch("asyncio.open_connection", new=AsyncMock(return_value=(asyncio.StreamReader(), writer))):
        _ = await socket_transport.connect()

    await socket_transport.write(b"\xaa\x55\xbb\x66")

    writer.write.assert_called_once_with(b"\xaa\x55\xbb\x66")
    writer.drain.assert_awaited_once()
    await socket_transport.close()


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(("side_effect", "reason"), [(TimeoutError(), "timeout"), (BrokenPipeError(), "os_error")])
async def test_write_failure_reasons(
    socket_transport: SocketTransport, side_effect: BaseException, reason: str
) -> None:
    writer = make_writer()
    writer.drain = AsyncMock(side_effect=side_effect)
    with patch("asyncio.open_connection", new=AsyncMock(return_value=(asyncio.StreamReader(), writer))):
        _ = await socket_transport.connect()

    err = await expect_async_exception(socket_transport.write, TransportIOError, b"x")
    assert err.reason == reason
    await socket_transport.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_close_tolerates_socket_errors(socket_transport: SocketTransport) -> None:
    """Test close logs and swallows errors from the underlying socket."""
    writer = make_writer()
    writer.wait_closed = AsyncMock(side_effect=ConnectionResetError("reset"))
    with patch("asyncio.open_connection", new=AsyncMock(return_value=(asyncio.StreamReader(), writer))):
        _ = await socket_transport.connect()

    await socket_transport.close()

    assert not socket_transport.is_open
    assert socket_transport.writer is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_close_without_connect(socket_transport: SocketTransport) -> None:
    await socket_transport.close()
    assert not socket_transport.is_open
