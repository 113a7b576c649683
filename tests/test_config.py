"""
Tests for YAML configuration loading.
"""

from datetime import time
from pathlib import Path

import pytest

from clinicslots.config import AppConfig

CONFIG_YAML = """
timezone: America/Sao_Paulo
appointment_duration_minutes: 20
buffer_minutes: 10
working_hours:
  monday: {open: "09:00", close: "18:00"}
  saturday: {open: "08:00", close: 14:30}
  lunch_break: {start: "12:00", end: "13:00"}
providers:
  dr-ana:
    monday: {open: "10:00", close: "16:00"}
    tuesday: null
    lunch_break: null
waitlist:
  expiry_days: 3
  store_path: data/waitlist.json
autofill:
  fan_out: 2
  webhook_url: https://hooks.clinic.test/waitlist
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadFromYaml:
    """Tests for AppConfig.load_from_yaml."""

    def test_full_config(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        assert config.appointment_duration_minutes == 20
        assert config.buffer_minutes == 10
        assert config.waitlist.expiry_days == 3
        assert config.waitlist.store_path == Path("data/waitlist.json")
        assert config.autofill.fan_out == 2
        assert config.autofill.timeout_seconds == 10.0

    def test_unquoted_time_is_read_as_clock_time(self, tmp_path):
        """YAML turns 14:30 into 870; it must still mean half past two."""
        config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        assert config.working_hours.saturday.close == time(14, 30)

    def test_defaults_when_sections_are_missing(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, "{}"))

        hours = config.default_working_hours()
        assert hours.monday.open == time(8, 0)
        assert hours.saturday is None
        assert hours.lunch_break.end == time(14, 0)
        assert config.appointment_duration_minutes == 30
        assert config.buffer_minutes == 15
        assert config.autofill.fan_out == 5
        assert config.waitlist.expiry_days == 7

    def test_empty_file_uses_defaults(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, ""))

        assert config.timezone == "America/Sao_Paulo"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError):
            AppConfig.load_from_yaml(_write(tmp_path, "working_hours: [unclosed"))

    def test_root_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError):
            AppConfig.load_from_yaml(_write(tmp_path, "- a\n- b\n"))

    def test_lunch_outside_hours_rejected(self, tmp_path):
        text = """
working_hours:
  monday: {open: "09:00", close: "12:00"}
  lunch_break: {start: "12:00", end: "13:00"}
"""
        with pytest.raises(ValueError, match="lunch break"):
            AppConfig.load_from_yaml(_write(tmp_path, text))

    def test_zero_duration_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            AppConfig.load_from_yaml(_write(tmp_path, "appointment_duration_minutes: 0\n"))

    def test_negative_buffer_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            AppConfig.load_from_yaml(_write(tmp_path, "buffer_minutes: -5\n"))

    def test_unknown_timezone_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            AppConfig.load_from_yaml(_write(tmp_path, "timezone: Mars/Olympus_Mons\n"))


class TestProviderHours:
    """Tests for per-provider working hours."""

    def test_provider_override(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        hours = config.working_hours_for("dr-ana")

        assert hours.monday.open == time(10, 0)
        assert hours.tuesday is None
        assert hours.lunch_break is None

    def test_unknown_provider_uses_clinic_hours(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        assert config.working_hours_for("dr-bruno") == config.default_working_hours()
        assert config.working_hours_for(None) == config.default_working_hours()

    def test_clinic_timezone_is_propagated(self):
        config = AppConfig(
            timezone="Europe/Lisbon",
            working_hours={"monday": {"open": "09:00", "close": "17:00"}, "lunch_break": None},
            providers={"dr-ana": {}},
        )

        assert config.default_working_hours().timezone == "Europe/Lisbon"
        assert config.working_hours_for("dr-ana").timezone == "Europe/Lisbon"

    def test_provider_timezone_wins(self):
        config = AppConfig(timezone="Europe/Lisbon", providers={"dr-ana": {"timezone": "America/Manaus"}})

        assert config.working_hours_for("dr-ana").timezone == "America/Manaus"

    def test_default_hours_follow_clinic_timezone(self):
        config = AppConfig(timezone="Europe/Lisbon")

        assert config.default_working_hours().timezone == "Europe/Lisbon"

    def test_availability_for(self, tmp_path):
        config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        availability = config.availability_for("dr-ana")
        custom = config.availability_for("dr-ana", duration_minutes=45)

        assert availability.provider_id == "dr-ana"
        assert availability.appointment_duration_minutes == 20
        assert availability.buffer_minutes == 10
        assert availability.working_hours.monday.close == time(16, 0)
        assert custom.appointment_duration_minutes == 45
