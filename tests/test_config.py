"""Tests for configuration loading and persistence safety."""

import json
from pathlib import Path

import pytest

from arcadelink.exceptions import ConfigFileInvalidError, ConfigValidationError, ConfigurationError
from arcadelink.models import AppConfig, ButtonLayout
from arcadelink.utils import PydanticPersistence


@pytest.mark.unit
class TestAppConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.baud_rate == 115200
        assert config.open_timeout == 3.0
        assert config.identify_delay == 1.0
        assert config.confirm_flash_ms == 500
        assert [b.color for b in config.buttons] == ["GREEN", "WHITE", "RED", "GREEN"]
        assert config.layout_for(3).position == "MIDDLE-RIGHT"
        assert config.scanner.vendor_ids == ["0d28"]

    def test_buttons_are_sorted_by_role(self):
        buttons = [
            ButtonLayout(role_id=4, color="BLUE", position="D"),
            ButtonLayout(role_id=2, color="RED", position="B"),
            ButtonLayout(role_id=1, color="RED", position="A"),
            ButtonLayout(role_id=3, color="RED", position="C"),
        ]
        config = AppConfig(buttons=buttons)
        assert [b.role_id for b in config.buttons] == [1, 2, 3, 4]
        assert config.layout_for(4).color == "BLUE"

    def test_missing_button_layout_rejected(self):
        with pytest.raises(ValueError):
            AppConfig(buttons=[ButtonLayout(role_id=1, color="RED", position="A")])

    def test_negative_timeout_rejected(self):
        with pytest.raises(ValueError):
            AppConfig(open_timeout=-1)


@pytest.mark.unit
class TestConfigFile:
    def test_missing_file_gives_defaults(self, tmp_path: Path):
        config = AppConfig.load_or_default(tmp_path / "missing.json")
        assert config == AppConfig()

    def test_round_trip(self, tmp_path: Path):
        path = tmp_path / "config.json"
        AppConfig(baud_rate=9600, confirm_flash_ms=0).save(path)
        loaded = AppConfig.load_or_default(path)
        assert loaded.baud_rate == 9600
        assert loaded.confirm_flash_ms == 0

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{ not json", encoding="utf-8")
        with pytest.raises(ConfigFileInvalidError) as exc_info:
            AppConfig.load_or_default(path)
        assert exc_info.value.file_path == str(path)

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("   ", encoding="utf-8")
        with pytest.raises(ConfigFileInvalidError):
            AppConfig.load_or_default(path)

    def test_invalid_value(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"baud_rate": "fast"}), encoding="utf-8")
        with pytest.raises(ConfigValidationError) as exc_info:
            AppConfig.load_or_default(path)
        assert exc_info.value.field == "baud_rate"
        assert isinstance(exc_info.value, ConfigurationError)

    def test_multiple_invalid_values(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"baud_rate": -1, "open_timeout": 0}), encoding="utf-8")
        with pytest.raises(ConfigValidationError) as exc_info:
            AppConfig.load_or_default(path)
        assert exc_info.value.field == "multiple fields"


@pytest.mark.unit
class TestPersistenceSafety:
    def test_save_creates_backup(self, tmp_path: Path):
        path = tmp_path / "config.json"
        PydanticPersistence.save_json(AppConfig(baud_rate=9600), path, backup=False)
        PydanticPersistence.save_json(AppConfig(baud_rate=57600), path)

        backup = PydanticPersistence.load_json(path.with_suffix(".json.bak"), AppConfig)
        assert backup.baud_rate == 9600
        assert PydanticPersistence.load_json(path, AppConfig).baud_rate == 57600

    def test_no_temp_file_left(self, tmp_path: Path):
        path = tmp_path / "nested" / "config.json"
        PydanticPersistence.save_json(AppConfig(), path)
        assert path.exists()
        assert not path.with_suffix(".json.tmp").exists()

    def test_load_json_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            PydanticPersistence.load_json(tmp_path / "nope.json", AppConfig)

    def test_default_factory(self, tmp_path: Path):
        config = PydanticPersistence.load_json_or_default(
            tmp_path / "nope.json", AppConfig, default_factory=lambda: AppConfig(baud_rate=9600)
        )
        assert config.baud_rate == 9600
