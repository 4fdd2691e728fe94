"""UDP multicast roll call: find every unit on the control network."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from notcher_link.const import (
    NOTCHER_MAX_UNITS,
    ROLL_CALL_ATTEMPTS,
    ROLL_CALL_GREETING,
    ROLL_CALL_INTERVAL_SECONDS,
    ROLL_CALL_RECV_BUFFER,
    ROLL_CALL_RECV_TIMEOUT_SECONDS,
)
from notcher_link.correlation import correlation_context
from notcher_link.devices.record import DeviceRecord, IndexSequence
from notcher_link.discovery.endpoints import RollCallEndpoint
from notcher_link.discovery.exceptions import DiscoveryError
from notcher_link.instrumentation import timed_async
from notcher_link.logging_abstraction import LoggerStatusLog, StatusLog, get_logger
from notcher_link.metrics import record_discovery_response, record_roll_call
from notcher_link.protocol.commands import DeviceKind

logger = get_logger(__name__)

EndpointFactory = Callable[[], Awaitable[RollCallEndpoint]]


class DiscoveryState(StrEnum):
    IDLE = "idle"
    BROADCASTING = "broadcasting"
    COLLECTING = "collecting"
    DONE = "done"


@dataclass
class DiscoverySession:
    """State of one roll call."""

    attempts_remaining: int
    outbound_datagram: bytes
    inbound_buffer_size: int
    max_units: int
    responses: dict[str, str] = field(default_factory=dict)

    @property
    def full(self) -> bool:
        return len(self.responses) >= self.max_units


def kind_from_greeting(greeting: str, default: DeviceKind = DeviceKind.NOTCHER) -> DeviceKind:
    if greeting.startswith("Control Board"):
        return DeviceKind.CONTROL_BOARD
    if greeting.startswith("Notcher"):
        return DeviceKind.NOTCHER
    return default


def default_unit_name(index: int) -> str:
    return f"Notcher {index + 1}"


class DiscoveryService:
    """Broadcast the roll call greeting and collect one record per replying IP.

    The greeting goes out up to ``attempts`` times with ``interval`` seconds
    between sends; after each send, replies are read until none arrives for
    ``recv_timeout`` seconds. Collection stops as soon as ``max_units`` distinct
    addresses have answered.
    """

    def __init__(
        self,
        endpoint_factory: EndpointFactory,
        max_units: int = NOTCHER_MAX_UNITS,
        status_log: StatusLog | None = None,
        attempts: int = ROLL_CALL_ATTEMPTS,
        interval: float = ROLL_CALL_INTERVAL_SECONDS,
        recv_timeout: float = ROLL_CALL_RECV_TIMEOUT_SECONDS,
        sequence: IndexSequence | None = None,
        name_for: Callable[[int], str] = default_unit_name,
        default_kind: DeviceKind = DeviceKind.NOTCHER,
    ) -> None:
        self.endpoint_factory = endpoint_factory
        self.max_units = max_units
        self.status_log: StatusLog = status_log or LoggerStatusLog()
        self.attempts = attempts
        self.interval = interval
        self.recv_timeout = recv_timeout
        self.sequence = sequence or IndexSequence()
        self.name_for = name_for
        self.default_kind = default_kind
        self.state = DiscoveryState.IDLE
        self.session: DiscoverySession | None = None

    @timed_async("roll_call")
    async def roll_call(self) -> list[DeviceRecord]:
        """
        Run one roll call.

        Returns:
            Records in reply order; empty if the endpoint could not be opened
        """
        lp = "DiscoveryService:roll_call:"
        with correlation_context(prefix="rollcall"):
            start_time = time.perf_counter()
            self.state = DiscoveryState.BROADCASTING
            try:
                endpoint = await self.endpoint_factory()
            except DiscoveryError as e:
                logger.error("%s %s", lp, e, extra={"reason": e.reason})
                self.status_log.append_line(f"Roll call aborted: {e}")
                self.state = DiscoveryState.DONE
                return []

            session = DiscoverySession(
                attempts_remaining=self.attempts,
                outbound_datagram=ROLL_CALL_GREETING,
                inbound_buffer_size=ROLL_CALL_RECV_BUFFER,
                max_units=self.max_units,
            )
            self.session = session
            try:
                await self._run(endpoint, session)
            finally:
                endpoint.close()
                self.state = DiscoveryState.DONE
                record_roll_call(time.perf_counter() - start_time)

            self.status_log.append_line(f"Roll call complete: {len(session.responses)} unit(s) responded")
            logger.info(
                "%s %d unit(s) responded",
                lp,
                len(session.responses),
                extra={"units": list(session.responses), "attempts_used": self.attempts - session.attempts_remaining},
            )
            return self._build_records(session)

    async def _run(self, endpoint: RollCallEndpoint, session: DiscoverySession) -> None:
        lp = "DiscoveryService:_run:"
        while session.attempts_remaining > 0 and not session.full:
            self.state = DiscoveryState.BROADCASTING
            attempt = self.attempts - session.attempts_remaining + 1
            session.attempts_remaining -= 1
            self.status_log.append_line(f"Broadcasting roll call ({attempt} of {self.attempts})")
            try:
                await endpoint.send(session.outbound_datagram)
            except OSError as e:
                logger.warning("%s roll call send %d failed: %s", lp, attempt, e, extra={"attempt": attempt})
            else:
                self.state = DiscoveryState.COLLECTING
                await self._collect(endpoint, session)

            if session.attempts_remaining > 0 and not session.full:
                await asyncio.sleep(self.interval)

    async def _collect(self, endpoint: RollCallEndpoint, session: DiscoverySession) -> None:
        lp = "DiscoveryService:_collect:"
        while not session.full:
            try:
                reply = await endpoint.receive(self.recv_timeout)
            except OSError as e:
                # Ends this attempt only; replies gathered so far are kept.
                logger.warning("%s roll call receive failed: %s", lp, e, extra={"errno": e.errno})
                self.status_log.append_line(f"Roll call receive failed: {e}")
                return
            if reply is None:
                return
            ip_address, datagram = reply
            greeting = datagram[: session.inbound_buffer_size].decode("ascii", errors="replace").strip("\x00 \r\n")
            if ip_address in session.responses:
                record_discovery_response("duplicate")
                logger.debug("Duplicate roll call reply from %s", ip_address, extra={"ip": ip_address})
                continue
            session.responses[ip_address] = greeting
            record_discovery_response("accepted")
            self.status_log.append_line(f"{ip_address} responded: {greeting}")

    def _build_records(self, session: DiscoverySession) -> list[DeviceRecord]:
        records: list[DeviceRecord] = []
        for ip_address, greeting in session.responses.items():
            index = self.sequence.next()
            records.append(
                DeviceRecord(
                    index=index,
                    ip_address=ip_address,
                    display_name=self.name_for(index),
                    greeting=greeting,
                    kind=kind_from_greeting(greeting, self.default_kind),
                )
            )
        return records
