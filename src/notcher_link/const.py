import os

from notcher_link import __version__

__all__ = [
    "ACK_TIMEOUT_TICKS",
    "CONNECT_TIMEOUT_SECONDS",
    "CONTROL_BOARD_GREETING",
    "CONTROL_BOARD_ROLL_CALL_REPLY",
    "DEFAULT_TIMEOUT_TICKS",
    "GREETING_TIMEOUT_TICKS",
    "IO_TIMEOUT_SECONDS",
    "LINK_LOCAL_PREFIX",
    "MONITOR_PACKET_SIZE",
    "NOTCHER_CONFIG_FILE",
    "NOTCHER_CONTROL_PORT",
    "NOTCHER_DEBUG",
    "NOTCHER_GREETING",
    "NOTCHER_LOG_FORMAT",
    "NOTCHER_LOG_HUMAN_OUTPUT",
    "NOTCHER_LOG_JSON_FILE",
    "NOTCHER_LOG_NAME",
    "NOTCHER_MAX_UNITS",
    "NOTCHER_METRICS_ENABLED",
    "NOTCHER_METRICS_PORT",
    "NOTCHER_PERF_THRESHOLD_MS",
    "NOTCHER_PERF_TRACKING",
    "NOTCHER_ROLL_CALL_REPLY",
    "NOTCHER_SIMULATE",
    "NOTCHER_VERSION",
    "PIPE_CAPACITY",
    "POLL_INTERVAL_SECONDS",
    "ROLL_CALL_ATTEMPTS",
    "ROLL_CALL_GREETING",
    "ROLL_CALL_GROUP",
    "ROLL_CALL_INTERVAL_SECONDS",
    "ROLL_CALL_LISTEN_PORT",
    "ROLL_CALL_RECV_BUFFER",
    "ROLL_CALL_RECV_TIMEOUT_SECONDS",
    "ROLL_CALL_SEND_PORT",
    "RUNTIME_PACKET_SIZE",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
NOTCHER_LOG_NAME: str = "notcher_link"
NOTCHER_VERSION: str = __version__

NOTCHER_DEBUG: bool = os.environ.get("NOTCHER_DEBUG", "0").casefold() in YES_ANSWER
NOTCHER_SIMULATE: bool = os.environ.get("NOTCHER_SIMULATE", "0").casefold() in YES_ANSWER
NOTCHER_CONFIG_FILE: str | None = os.environ.get("NOTCHER_CONFIG_FILE") or None

_max_units = os.environ.get("NOTCHER_MAX_UNITS", "4")
try:
    _max_units_value: int = int(_max_units) if _max_units else 4
except ValueError:
    _max_units_value = 4
NOTCHER_MAX_UNITS: int = _max_units_value

_control_port = os.environ.get("NOTCHER_CONTROL_PORT", "23")
NOTCHER_CONTROL_PORT: int = int(_control_port) if _control_port and _control_port.isdigit() else 23

# Wire protocol timing: one tick is one poll interval
POLL_INTERVAL_SECONDS: float = 0.010
DEFAULT_TIMEOUT_TICKS: int = 50
ACK_TIMEOUT_TICKS: int = 100
GREETING_TIMEOUT_TICKS: int = 25
CONNECT_TIMEOUT_SECONDS: float = 2.0
IO_TIMEOUT_SECONDS: float = 0.25

# Frame sizes (bytes after the command id, checksum included)
MONITOR_PACKET_SIZE: int = 25
RUNTIME_PACKET_SIZE: int = 50
PIPE_CAPACITY: int = 8192

# Roll call (UDP multicast discovery)
ROLL_CALL_GROUP: str = "230.0.0.1"
ROLL_CALL_SEND_PORT: int = 4446
ROLL_CALL_LISTEN_PORT: int = 4445
ROLL_CALL_GREETING: bytes = b"Control Board Roll Call"
ROLL_CALL_ATTEMPTS: int = 5
ROLL_CALL_INTERVAL_SECONDS: float = 1.0
ROLL_CALL_RECV_TIMEOUT_SECONDS: float = 1.0
ROLL_CALL_RECV_BUFFER: int = 256
LINK_LOCAL_PREFIX: str = "169.254."

NOTCHER_GREETING: str = "Hello from Notcher Simulator!"
CONTROL_BOARD_GREETING: str = "Hello from Control Board Simulator!"
NOTCHER_ROLL_CALL_REPLY: str = "Notcher present..."
CONTROL_BOARD_ROLL_CALL_REPLY: str = "Control Board present..."

# Logging Configuration
NOTCHER_LOG_FORMAT: str = os.environ.get("NOTCHER_LOG_FORMAT", "human")  # "json", "human", or "both"
NOTCHER_LOG_JSON_FILE: str | None = os.environ.get("NOTCHER_LOG_JSON_FILE") or None
NOTCHER_LOG_HUMAN_OUTPUT: str = os.environ.get("NOTCHER_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path

# Performance Instrumentation
NOTCHER_PERF_TRACKING: bool = os.environ.get("NOTCHER_PERF_TRACKING", "false").casefold() in YES_ANSWER
_perf_threshold = os.environ.get("NOTCHER_PERF_THRESHOLD_MS", "100")
NOTCHER_PERF_THRESHOLD_MS: int = int(_perf_threshold) if _perf_threshold and _perf_threshold.isdigit() else 100

# Metrics
NOTCHER_METRICS_ENABLED: bool = os.environ.get("NOTCHER_METRICS_ENABLED", "0").casefold() in YES_ANSWER
_metrics_port = os.environ.get("NOTCHER_METRICS_PORT", "9400")
NOTCHER_METRICS_PORT: int = int(_metrics_port) if _metrics_port and _metrics_port.isdigit() else 9400
