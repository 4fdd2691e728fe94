"""Prometheus metrics registry for notcher communication."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

notcher_packet_sent_total: Final = Counter(  # type: ignore[assignment]
    "notcher_packet_sent_total",
    "Total command packets sent",
    ["peer", "command", "outcome"],
)

notcher_packet_recv_total: Final = Counter(  # type: ignore[assignment]
    "notcher_packet_recv_total",
    "Total read-path passes by outcome",
    ["peer", "outcome"],
)

notcher_resync_total: Final = Counter(  # type: ignore[assignment]
    "notcher_resync_total",
    "Total stream resynchronizations",
    ["peer", "reason"],
)

notcher_checksum_errors_total: Final = Counter(  # type: ignore[assignment]
    "notcher_checksum_errors_total",
    "Total frames rejected by checksum validation",
    ["peer"],
)

notcher_header_mismatch_total: Final = Counter(  # type: ignore[assignment]
    "notcher_header_mismatch_total",
    "Total sync header mismatches",
    ["peer"],
)

notcher_response_timeout_total: Final = Counter(  # type: ignore[assignment]
    "notcher_response_timeout_total",
    "Total bounded waits that expired",
    ["peer"],
)

notcher_roll_call_duration_seconds: Final = Histogram(  # type: ignore[assignment]
    "notcher_roll_call_duration_seconds",
    "Roll call duration in seconds",
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 15.0),
)

notcher_discovery_responses_total: Final = Counter(  # type: ignore[assignment]
    "notcher_discovery_responses_total",
    "Roll call replies by outcome",
    ["outcome"],
)

notcher_device_ready: Final = Gauge(  # type: ignore[assignment]
    "notcher_device_ready",
    "1 when the unit's command channel is ready",
    ["peer"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_packet_sent(peer: str, command: str, outcome: str) -> None:
    """Record a sent command packet."""
    notcher_packet_sent_total.labels(peer=peer, command=command, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_packet_recv(peer: str, outcome: str) -> None:
    """Record one read-path pass."""
    notcher_packet_recv_total.labels(peer=peer, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_resync(peer: str, reason: str) -> None:
    """Record a resynchronization."""
    notcher_resync_total.labels(peer=peer, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_checksum_error(peer: str) -> None:
    notcher_checksum_errors_total.labels(peer=peer).inc()  # type: ignore[no-untyped-call]


def record_header_mismatch(peer: str) -> None:
    notcher_header_mismatch_total.labels(peer=peer).inc()  # type: ignore[no-untyped-call]


def record_response_timeout(peer: str) -> None:
    notcher_response_timeout_total.labels(peer=peer).inc()  # type: ignore[no-untyped-call]


def record_roll_call(duration_seconds: float) -> None:
    """Record how long a roll call took."""
    notcher_roll_call_duration_seconds.observe(duration_seconds)  # type: ignore[no-untyped-call]


def record_discovery_response(outcome: str) -> None:
    """Record a roll call reply ("accepted" or "duplicate")."""
    notcher_discovery_responses_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_device_ready(peer: str, ready: bool) -> None:
    notcher_device_ready.labels(peer=peer).set(1 if ready else 0)  # type: ignore[no-untyped-call]
