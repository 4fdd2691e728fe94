"""Prometheus metrics for device communication and discovery."""

from notcher_link.metrics.registry import (
    record_checksum_error,
    record_device_ready,
    record_discovery_response,
    record_header_mismatch,
    record_packet_recv,
    record_packet_sent,
    record_response_timeout,
    record_resync,
    record_roll_call,
    start_metrics_server,
)

__all__ = [
    "record_checksum_error",
    "record_device_ready",
    "record_discovery_response",
    "record_header_mismatch",
    "record_packet_recv",
    "record_packet_sent",
    "record_response_timeout",
    "record_resync",
    "record_roll_call",
    "start_metrics_server",
]
