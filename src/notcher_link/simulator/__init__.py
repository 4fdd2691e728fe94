"""In-process stand-ins for units and their roll call replies."""

from notcher_link.simulator.device_simulator import DeviceSimulator
from notcher_link.simulator.roll_call_simulator import SimulatedRollCallEndpoint, simulated_ip

__all__ = [
    "DeviceSimulator",
    "SimulatedRollCallEndpoint",
    "simulated_ip",
]
