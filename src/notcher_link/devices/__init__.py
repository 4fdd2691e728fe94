"""Discovered units: records, host-side packet handling and the registry."""

from notcher_link.devices.exceptions import DeviceNotFoundError
from notcher_link.devices.record import DeviceRecord, IndexSequence
from notcher_link.devices.registry import DeviceRegistry
from notcher_link.devices.responses import HostResponseHandler

__all__ = [
    "DeviceNotFoundError",
    "DeviceRecord",
    "DeviceRegistry",
    "HostResponseHandler",
    "IndexSequence",
]
