"""Unit tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from notcher_link.config import ConfigError, NotcherConfig, UnitConfig, load_config
from notcher_link.protocol.commands import DeviceKind
from tests.helpers.expectations import expect_exception


@pytest.mark.unit
def test_defaults_without_file() -> None:
    config = load_config(None)

    assert config.units == []
    assert config.unit_name(0) == "Notcher 1"
    assert config.unit_enabled(3) is True


@pytest.mark.unit
def test_load_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "notcher.yaml"
    path.write_text(
        "simulate: true\n"
        "max_units: 3\n"
        "units:\n"
        "  - name: Left Notcher\n"
        "  - name: Board\n"
        "    kind: control_board\n"
        "    enabled: false\n"
    )

    config = load_config(path)

    assert config.simulate is True
    assert config.max_units == 3
    assert config.unit_name(1) == "Board"
    assert config.unit_enabled(1) is False
    assert config.unit_name(2) == "Notcher 3"
    assert config.simulated_kinds() == [DeviceKind.NOTCHER, DeviceKind.CONTROL_BOARD, DeviceKind.NOTCHER]


@pytest.mark.unit
def test_empty_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(path) == NotcherConfig()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("content", "reason"),
    [
        ("units: [\n", "invalid_yaml"),
        ("- just\n- a list\n", "not_a_mapping"),
        ("max_units: 0\n", "validation_failed"),
        ("units:\n  - enabled: true\n", "validation_failed"),
    ],
)
def test_invalid_files(tmp_path: Path, content: str, reason: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    err = expect_exception(load_config, ConfigError, path)

    assert err.reason.startswith(reason)
    assert err.path == str(path)


@pytest.mark.unit
def test_missing_file(tmp_path: Path) -> None:
    err = expect_exception(load_config, ConfigError, tmp_path / "nope.yaml")

    assert err.reason == "unreadable"


@pytest.mark.unit
def test_simulated_kinds_capped_by_fleet_size() -> None:
    config = NotcherConfig(max_units=1, units=[UnitConfig(name="A"), UnitConfig(name="B")])

    assert config.simulated_kinds() == [DeviceKind.NOTCHER]
