"""Smoke tests for CLI commands.

Tests that CLI commands parse correctly and don't crash. Uses Click's
CliRunner; nothing here opens a real serial port.
"""

import json
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from arcadelink.cli.main import cli


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def base_args(tmp_path: Path):
    """Global options pointing config and log file into a temp dir."""
    return [
        "--config", str(tmp_path / "config.json"),
        "--log-file", str(tmp_path / "arcadelink.log"),
    ]


@pytest.mark.integration
class TestCLIHelp:
    """Test that all commands have working help text."""

    def test_main_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "micro:bit arcade buttons" in result.output

    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    @pytest.mark.parametrize(
        "command",
        [
            ["ports"],
            ["monitor"],
            ["led"],
            ["led", "set"],
            ["led", "flash"],
            ["pattern"],
            ["pattern", "cascade"],
            ["pattern", "game"],
            ["pattern", "bike"],
            ["pattern", "random-flash"],
            ["pattern", "random-game"],
            ["cadence"],
            ["cadence", "simulate"],
            ["config"],
        ],
    )
    def test_command_help(self, runner, command):
        result = runner.invoke(cli, [*command, "--help"])
        assert result.exit_code == 0, result.output


@pytest.mark.integration
class TestConfigCommands:
    def test_path_before_creation(self, runner, base_args, tmp_path):
        result = runner.invoke(cli, [*base_args, "config", "path"])
        assert result.exit_code == 0
        assert "not created yet" in result.output

    def test_show_defaults(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "config", "show"])
        assert result.exit_code == 0
        assert json.loads(result.output)["baud_rate"] == 115200

    def test_show_field(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "config", "show", "--field", "confirm_flash_ms"])
        assert result.exit_code == 0
        assert result.output.strip() == "500"

    def test_show_unknown_field(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "config", "show", "--field", "nope"])
        assert result.exit_code == 1

    def test_reset_writes_file(self, runner, base_args, tmp_path):
        result = runner.invoke(cli, [*base_args, "config", "reset", "--yes"])
        assert result.exit_code == 0
        assert (tmp_path / "config.json").exists()

        result = runner.invoke(cli, [*base_args, "config", "validate"])
        assert result.exit_code == 0
        assert "[OK]" in result.output

    def test_validate_reports_broken_file(self, runner, base_args, tmp_path):
        (tmp_path / "config.json").write_text('{"baud_rate": 0}', encoding="utf-8")
        result = runner.invoke(cli, [*base_args, "config", "validate"])
        assert result.exit_code == 1
        assert "baud_rate" in result.output

    def test_broken_config_fails_cleanly(self, runner, base_args, tmp_path):
        (tmp_path / "config.json").write_text("{,}", encoding="utf-8")
        result = runner.invoke(cli, [*base_args, "config", "show"])
        assert result.exit_code == 1
        assert "ERROR" in result.output
        assert "Traceback" not in result.output


@pytest.mark.integration
class TestHardwareFreeCommands:
    def test_cadence_simulate(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "cadence", "simulate", "5", "80"])
        assert result.exit_code == 0
        assert "count=5 rpm=80" in result.output

    def test_cadence_simulate_rejects_negative(self, runner, base_args):
        result = runner.invoke(cli, [*base_args, "cadence", "simulate", "--", "-1", "80"])
        assert result.exit_code != 0

    def test_ports_lists_candidates(self, runner, base_args):
        fake_ports = [
            SimpleNamespace(
                device="/dev/ttyACM0", description="BBC micro:bit CMSIS-DAP",
                manufacturer="ARM", vid=0x0D28, pid=0x0204,
            ),
            SimpleNamespace(
                device="/dev/ttyS0", description="n/a", manufacturer=None, vid=None, pid=None,
            ),
        ]
        with patch("arcadelink.devices.scanner.list_ports.comports", return_value=fake_ports):
            result = runner.invoke(cli, [*base_args, "ports"])
            assert result.exit_code == 0
            assert "/dev/ttyACM0" in result.output
            assert "/dev/ttyS0" not in result.output

            result = runner.invoke(cli, [*base_args, "ports", "--all"])
            assert "/dev/ttyS0" in result.output

    def test_ports_none_found(self, runner, base_args):
        with patch("arcadelink.devices.scanner.list_ports.comports", return_value=[]):
            result = runner.invoke(cli, [*base_args, "ports"])
        assert result.exit_code == 0
        assert "No micro:bit ports found" in result.output
