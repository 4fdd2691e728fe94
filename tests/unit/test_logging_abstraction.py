"""Unit tests for structured logging, status sinks and correlation IDs."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest

from notcher_link.correlation import (
    correlation_context,
    ensure_correlation_id,
    get_correlation_id,
    new_correlation_id,
    set_correlation_id,
)
from notcher_link.instrumentation import timed_async
from notcher_link.logging_abstraction import (
    HumanReadableFormatter,
    JSONFormatter,
    LoggerStatusLog,
    MemoryStatusLog,
    StatusLog,
    get_logger,
    set_package_level,
)


def make_record(msg: str = "hello %s", args: tuple[object, ...] = ("world",), **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("notcher_link.test", logging.INFO, __file__, 10, msg, args, None)
    if extra:
        record.extra_data = extra
    return record


@pytest.mark.unit
def test_correlation_context_restores_previous() -> None:
    set_correlation_id(None)
    with correlation_context(prefix="rollcall") as outer:
        assert outer.startswith("rollcall-")
        with correlation_context("fixed") as inner:
            assert inner == "fixed"
            assert get_correlation_id() == "fixed"
        assert get_correlation_id() == outer
    assert get_correlation_id() is None


@pytest.mark.unit
def test_ensure_correlation_id_creates_once() -> None:
    set_correlation_id(None)
    first = ensure_correlation_id()

    assert ensure_correlation_id() == first
    assert len(new_correlation_id()) == 32
    set_correlation_id(None)


@pytest.mark.unit
def test_json_formatter_includes_context() -> None:
    with correlation_context("abc123"):
        line = JSONFormatter().format(make_record(peer="169.254.1.1"))

    data = json.loads(line)
    assert data["message"] == "hello world"
    assert data["correlation_id"] == "abc123"
    assert data["context"] == {"peer": "169.254.1.1"}
    assert data["level"] == "INFO"


@pytest.mark.unit
def test_human_formatter_shows_correlation_tail() -> None:
    with correlation_context("169.254.1.1-0123456789abcdef"):
        line = HumanReadableFormatter().format(make_record(command="CUT_MODE"))

    assert "[89abcdef]" in line
    assert line.endswith("hello world | command=CUT_MODE")


@pytest.mark.unit
def test_human_formatter_without_correlation() -> None:
    set_correlation_id(None)
    assert "[--------]" in HumanReadableFormatter().format(make_record())


@pytest.mark.unit
def test_get_logger_configures_handlers_once() -> None:
    first = get_logger("notcher_link.test_once", log_format="human", human_output="stderr")
    second = get_logger("notcher_link.test_once", log_format="human", human_output="stderr")

    assert len(first.handlers) == 1
    assert second.handlers is first.handlers


@pytest.mark.unit
def test_set_package_level_reaches_existing_loggers() -> None:
    logger = get_logger("notcher_link.test_levels", log_format="human", human_output="stderr")

    set_package_level(logging.DEBUG)
    assert logger.logger.level == logging.DEBUG
    assert all(h.level == logging.DEBUG for h in logger.handlers)

    set_package_level(logging.INFO)
    assert logger.logger.level == logging.INFO


@pytest.mark.unit
def test_status_logs() -> None:
    memory = MemoryStatusLog()
    memory.append_line("169.254.1.1 says hello")

    assert isinstance(memory, StatusLog)
    assert memory.contains("says hello")
    assert not memory.contains("goodbye")

    forwarding = LoggerStatusLog()
    with patch.object(forwarding._logger, "info") as mock_info:
        forwarding.append_line("Roll call complete")
    mock_info.assert_called_once_with("%s", "Roll call complete")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timed_async_logs_slow_operations() -> None:
    @timed_async("slow_op")
    async def slow() -> int:
        return 7

    with (
        patch("notcher_link.const.NOTCHER_PERF_TRACKING", True),
        patch("notcher_link.instrumentation._log_timing") as mock_log,
    ):
        assert await slow() == 7

    mock_log.assert_called_once()
    assert mock_log.call_args.args[0] == "slow_op"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timed_async_disabled_by_default() -> None:
    @timed_async()
    async def quick() -> str:
        return "done"

    with (
        patch("notcher_link.const.NOTCHER_PERF_TRACKING", False),
        patch("notcher_link.instrumentation._log_timing") as mock_log,
    ):
        assert await quick() == "done"

    mock_log.assert_not_called()
