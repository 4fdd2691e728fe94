import argparse
import asyncio
import logging
import time
from pathlib import Path

import uvloop

from notcher_link.config import ConfigError, NotcherConfig, load_config
from notcher_link.const import (
    NOTCHER_CONFIG_FILE,
    NOTCHER_DEBUG,
    NOTCHER_METRICS_ENABLED,
    NOTCHER_VERSION,
    POLL_INTERVAL_SECONDS,
)
from notcher_link.correlation import correlation_context
from notcher_link.devices.record import DeviceRecord, IndexSequence
from notcher_link.devices.registry import DeviceRegistry
from notcher_link.discovery.endpoints import MulticastEndpoint, RollCallEndpoint
from notcher_link.discovery.interfaces import find_link_local_interface
from notcher_link.discovery.roll_call import DiscoveryService
from notcher_link.logging_abstraction import LoggerStatusLog, StatusLog, get_logger, set_package_level
from notcher_link.metrics import start_metrics_server
from notcher_link.simulator.roll_call_simulator import SimulatedRollCallEndpoint

logger = get_logger(__name__)

# the caller's poll timer runs much slower than the protocol tick
DEFAULT_POLL_PERIOD = POLL_INTERVAL_SECONDS * 10


class NotcherLink:
    """Discovery, connection and polling of the unit fleet for one process."""

    lp: str = "NotcherLink:"

    def __init__(self, config: NotcherConfig, status_log: StatusLog | None = None) -> None:
        self.config = config
        self.status_log: StatusLog = status_log or LoggerStatusLog()
        self.sequence = IndexSequence()
        self.registry = DeviceRegistry(
            simulate=config.simulate,
            status_log=self.status_log,
            control_port=config.control_port,
        )
        self.discovery = DiscoveryService(
            self._open_endpoint,
            max_units=config.max_units,
            status_log=self.status_log,
            attempts=config.roll_call_attempts,
            sequence=self.sequence,
            name_for=config.unit_name,
        )

    async def _open_endpoint(self) -> RollCallEndpoint:
        if self.config.simulate:
            return SimulatedRollCallEndpoint(self.config.simulated_kinds())
        interface = find_link_local_interface(self.status_log)
        return MulticastEndpoint.open(interface.address if interface else None)

    async def discover(self) -> list[DeviceRecord]:
        records = await self.discovery.roll_call()
        for record in records:
            record.enabled = self.config.unit_enabled(record.index)
        self.registry.populate(records)
        for name in self.registry.missing_units(u.name for u in self.config.units):
            self.status_log.append_line(f"{name} did not respond to the roll call")
        return records

    async def start(self) -> int:
        """Discover, connect and initialize; returns the number of ready units."""
        await self.discover()
        if not len(self.registry):
            self.status_log.append_line("No units found")
            return 0
        ready = await self.registry.connect_all()
        await self.registry.initialize_all()
        return ready

    async def run(self, duration: float, poll_period: float = DEFAULT_POLL_PERIOD, report: bool = True) -> None:
        """Start the fleet, poll it for ``duration`` seconds, then shut down."""
        try:
            if not await self.start():
                return
            deadline = time.monotonic() + duration
            while time.monotonic() < deadline:
                await self.registry.poll_all()
                if report:
                    await self._report()
                await asyncio.sleep(poll_period)
        finally:
            await self.registry.shutdown_all()

    async def _report(self) -> None:
        for record in self.registry.records:
            if not (record.usable and record.enabled):
                continue
            data = await self.registry.get_data_packet(record.ip_address)
            if data is not None:
                self.status_log.append_line(
                    f"{record.display_name}: mode={data.mode} depth={data.depth_count} "
                    f"target={data.target_depth} electrode={'on' if data.electrode_supply else 'off'}"
                )


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="notcher-link", description="Notcher fleet discovery and control")
    parser.add_argument("command", choices=("discover", "run"), nargs="?", default="discover")
    parser.add_argument("--simulate", action="store_true", help="Use simulated units instead of the network")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(NOTCHER_CONFIG_FILE) if NOTCHER_CONFIG_FILE else None,
        help="YAML configuration file",
    )
    parser.add_argument("--duration", type=float, default=5.0, help="Seconds to poll in 'run' mode")
    parser.add_argument("--poll-period", type=float, default=DEFAULT_POLL_PERIOD, help="Seconds between polls")
    parser.add_argument("--metrics", action="store_true", help="Expose Prometheus metrics")
    parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    args = parser.parse_args(argv)

    if args.debug or NOTCHER_DEBUG:
        set_package_level(logging.DEBUG)
        logger.info("Debug mode enabled")
    return args


async def _amain(args: argparse.Namespace, config: NotcherConfig) -> int:
    link = NotcherLink(config)
    if args.command == "discover":
        records = await link.discover()
        for record in records:
            print(f"{record.index}\t{record.ip_address}\t{record.display_name}\t{record.greeting}")
        return 0 if records else 1
    await link.run(args.duration, args.poll_period)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the notcher-link console script."""
    with correlation_context():
        args = parse_cli(argv)
        logger.info("Starting notcher-link", extra={"version": NOTCHER_VERSION})
        try:
            config = load_config(args.config)
        except ConfigError as e:
            logger.error("%s", e, extra={"reason": e.reason})
            return 2
        if args.simulate:
            config = config.model_copy(update={"simulate": True})

        if args.metrics or NOTCHER_METRICS_ENABLED:
            start_metrics_server(config.metrics_port)

        try:
            return uvloop.run(_amain(args, config))
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
            return 130


if __name__ == "__main__":
    raise SystemExit(main())
