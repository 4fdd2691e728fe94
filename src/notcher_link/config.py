"""Runtime configuration: environment defaults overlaid by an optional YAML file.

Example ``notcher.yaml``::

    simulate: true
    max_units: 2
    units:
      - name: Left Notcher
      - name: Right Notcher
        enabled: false
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from notcher_link.const import (
    NOTCHER_CONTROL_PORT,
    NOTCHER_MAX_UNITS,
    NOTCHER_METRICS_PORT,
    NOTCHER_SIMULATE,
    ROLL_CALL_ATTEMPTS,
)
from notcher_link.logging_abstraction import get_logger
from notcher_link.protocol.commands import DeviceKind

logger = get_logger(__name__)


class ConfigError(Exception):
    """Configuration file missing, unreadable or invalid.

    Attributes:
        reason: Specific failure reason
        path: File that failed
    """

    def __init__(self, reason: str, path: Path | str | None = None):
        self.reason = reason
        self.path = str(path) if path is not None else None
        super().__init__(f"Configuration error: {reason} ({self.path or 'no file'})")


class UnitConfig(BaseModel):
    """Per-unit settings, matched to units by discovery order."""

    name: str
    enabled: bool = True
    kind: DeviceKind = DeviceKind.NOTCHER


class NotcherConfig(BaseModel):
    simulate: bool = NOTCHER_SIMULATE
    max_units: int = Field(default=NOTCHER_MAX_UNITS, ge=1, le=254)
    control_port: int = NOTCHER_CONTROL_PORT
    roll_call_attempts: int = Field(default=ROLL_CALL_ATTEMPTS, ge=1)
    metrics_port: int = NOTCHER_METRICS_PORT
    units: list[UnitConfig] = Field(default_factory=list)

    def unit(self, index: int) -> UnitConfig | None:
        return self.units[index] if 0 <= index < len(self.units) else None

    def unit_name(self, index: int) -> str:
        """Configured name for the unit at ``index``, else "Notcher <n>"."""
        unit = self.unit(index)
        return unit.name if unit is not None else f"Notcher {index + 1}"

    def unit_enabled(self, index: int) -> bool:
        unit = self.unit(index)
        return unit.enabled if unit is not None else True

    def simulated_kinds(self) -> list[DeviceKind]:
        """Kinds of the units to simulate: configured units first, then notchers up to the fleet cap."""
        kinds = [unit.kind for unit in self.units[: self.max_units]]
        kinds.extend(DeviceKind.NOTCHER for _ in range(self.max_units - len(kinds)))
        return kinds


def load_config(path: Path | str | None = None) -> NotcherConfig:
    """Load configuration.

    Args:
        path: YAML file; environment defaults only when None

    Returns:
        Validated NotcherConfig

    Raises:
        ConfigError: file unreadable, not YAML, or failing validation

    """
    if path is None:
        return NotcherConfig()

    config_path = Path(path)
    logger.debug("Loading config file: %s", config_path)
    try:
        with config_path.open() as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError("unreadable", config_path) from e
    except yaml.YAMLError as e:
        raise ConfigError("invalid_yaml", config_path) from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("not_a_mapping", config_path)

    try:
        config = NotcherConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"validation_failed: {e.error_count()} error(s)", config_path) from e

    logger.info(
        "Loaded config: %d unit(s), simulate=%s",
        len(config.units),
        config.simulate,
        extra={"path": str(config_path), "max_units": config.max_units},
    )
    return config
