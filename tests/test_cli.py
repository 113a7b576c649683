"""
Tests for the command-line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from clinicslots import __version__
from clinicslots.adapters.json_waitlist_repository import load_entries
from clinicslots.cli.app import app
from clinicslots.domain.models import WaitlistStatus

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "appointment_duration_minutes: 30\n"
        "buffer_minutes: 15\n"
        "working_hours:\n"
        '  monday: {open: "09:00", close: "18:00"}\n'
        '  lunch_break: {start: "12:00", end: "13:00"}\n'
        "waitlist:\n"
        f"  store_path: {tmp_path / 'waitlist.json'}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def bookings_file(tmp_path):
    path = tmp_path / "bookings.json"
    path.write_text(json.dumps([
        {"id": "a1", "providerId": "dr-ana", "start": "2026-03-02T10:00", "end": "2026-03-02T10:30"},
    ]), encoding="utf-8")
    return path


class TestSlotsCommand:
    """Tests for `clinicslots slots`."""

    def test_lists_open_times(self, config_file):
        result = runner.invoke(app, ["slots", "2026-03-02", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Manhã" in result.output
        assert "13:00" in result.output

    def test_closed_day(self, config_file):
        result = runner.invoke(app, ["slots", "2026-03-07", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Nenhum" in result.output

    def test_invalid_date(self, config_file):
        result = runner.invoke(app, ["slots", "02/03/2026", "--config", str(config_file)])

        assert result.exit_code == 1

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["slots", "2026-03-02", "--config", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1


class TestCheckCommand:
    """Tests for `clinicslots check`."""

    def test_conflict_exits_with_error(self, config_file, bookings_file):
        result = runner.invoke(app, [
            "check", "2026-03-02T10:40", "2026-03-02T11:10",
            "--provider", "dr-ana", "--bookings", str(bookings_file), "--config", str(config_file),
        ])

        assert result.exit_code == 1
        assert "Conflito" in result.output
        assert "a1" in result.output

    def test_free_slot(self, config_file, bookings_file):
        result = runner.invoke(app, [
            "check", "2026-03-02T10:45", "2026-03-02T11:15",
            "--provider", "dr-ana", "--bookings", str(bookings_file), "--config", str(config_file),
        ])

        assert result.exit_code == 0

    def test_moving_booking_ignores_itself(self, config_file, bookings_file):
        result = runner.invoke(app, [
            "check", "2026-03-02T10:15", "2026-03-02T10:45", "--id", "a1",
            "--provider", "dr-ana", "--bookings", str(bookings_file), "--config", str(config_file),
        ])

        assert result.exit_code == 0


class TestWaitlistCommands:
    """Tests for the waitlist commands."""

    def test_add_then_list(self, tmp_path, config_file):
        added = runner.invoke(app, ["waitlist-add", "p1", "Consulta", "--priority", "urgent", "--config", str(config_file)])
        listed = runner.invoke(app, ["waitlist-list", "--config", str(config_file)])

        assert added.exit_code == 0
        assert listed.exit_code == 0
        assert "p1" in listed.output
        entries = load_entries(tmp_path / "waitlist.json")
        assert [entry.priority.value for entry in entries] == ["URGENT"]

    def test_duplicate_add_fails(self, config_file):
        runner.invoke(app, ["waitlist-add", "p1", "Consulta", "--config", str(config_file)])
        result = runner.invoke(app, ["waitlist-add", "p1", "Consulta", "--config", str(config_file)])

        assert result.exit_code == 1

    def test_remove(self, tmp_path, config_file):
        runner.invoke(app, ["waitlist-add", "p1", "Consulta", "--config", str(config_file)])
        entry_id = load_entries(tmp_path / "waitlist.json")[0].id

        result = runner.invoke(app, ["waitlist-remove", entry_id, "--config", str(config_file)])

        assert result.exit_code == 0
        assert load_entries(tmp_path / "waitlist.json")[0].status is WaitlistStatus.REMOVED

    def test_remove_unknown(self, config_file):
        result = runner.invoke(app, ["waitlist-remove", "missing", "--config", str(config_file)])

        assert result.exit_code == 1

    def test_empty_list(self, config_file):
        result = runner.invoke(app, ["waitlist-list", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "vazia" in result.output

    def test_expire_with_nothing_overdue(self, config_file):
        runner.invoke(app, ["waitlist-add", "p1", "Consulta", "--config", str(config_file)])

        result = runner.invoke(app, ["waitlist-expire", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "0 entrada" in result.output


class TestAutofillCommand:
    """Tests for `clinicslots autofill`."""

    def test_mock_run_marks_candidates_notified(self, tmp_path, config_file):
        runner.invoke(app, ["waitlist-add", "p1", "Consulta", "--config", str(config_file)])
        runner.invoke(app, ["waitlist-add", "p2", "Retorno", "--config", str(config_file)])

        result = runner.invoke(app, ["autofill", "Consulta", "2026-03-02T10:00", "--mock", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "1 notificado" in result.output
        statuses = {entry.patient_id: entry.status for entry in load_entries(tmp_path / "waitlist.json")}
        assert statuses == {"p1": WaitlistStatus.NOTIFIED, "p2": WaitlistStatus.ACTIVE}

    def test_no_candidates(self, config_file):
        result = runner.invoke(app, ["autofill", "Consulta", "2026-03-02T10:00", "--mock", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Nenhum paciente" in result.output

    def test_without_webhook_url_fails(self, config_file):
        result = runner.invoke(app, ["autofill", "Consulta", "2026-03-02T10:00", "--config", str(config_file)])

        assert result.exit_code == 1


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output
