"""Tests for the click CLI."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from colorcal.cli import main
from colorcal.config import Config, PreferenceStore
from colorcal.ports.calendar_provider import AccessDenied, ProviderUnavailable

from conftest import FakeProvider, ms


@pytest.fixture
def provider(calendars, make_event):
    return FakeProvider(
        calendars=calendars,
        events=[
            make_event(ms(2024, 1, 31, 22), ms(2024, 2, 2, 2), "work", "Offsite"),
            make_event(ms(2024, 2, 1, 9), ms(2024, 2, 1, 10), "home", "Dentist"),
        ],
    )


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "calendars.json"


@pytest.fixture
def run(provider, store_path):
    """Invoke the CLI against the fake provider in New York time."""

    def _run(*args):
        config = Config(timezone="America/New_York")
        with patch("colorcal.cli.load_config", return_value=config), patch(
            "colorcal.cli.build_provider", return_value=provider
        ), patch("colorcal.cli.PreferenceStore", lambda: PreferenceStore(store_path)):
            return CliRunner().invoke(main, list(args))

    return _run


class TestJsonCommands:
    def test_list_calendars(self, run):
        result = run("list-calendars")
        assert result.exit_code == 0
        assert json.loads(result.output) == [
            {"id": "work", "name": "Work", "color": "#FF0000"},
            {"id": "home", "name": "Home", "color": "#00FF00"},
        ]

    def test_events_by_day(self, run):
        result = run(
            "events-by-day",
            "--start-ms", str(ms(2024, 1, 1)),
            "--end-ms", str(ms(2024, 3, 1)),
            "--cal-ids", "work,home",
        )
        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "2024-01-31": ["work"],
            "2024-02-01": ["home", "work"],
            "2024-02-02": ["work"],
        }

    def test_events_by_day_uses_enabled_calendars(self, run, provider, store_path):
        run("disable", "home")

        result = run("events-by-day", "--start-ms", str(ms(2024, 1, 1)), "--end-ms", str(ms(2024, 3, 1)))

        assert result.exit_code == 0
        assert json.loads(result.output)["2024-02-01"] == ["work"]
        assert provider.fetch_calls[-1][2] == {"work"}

    def test_events_for_day(self, run):
        result = run("events-for-day", "--day-ms", str(ms(2024, 2, 1, 12)), "--cal-ids", "work,home")
        assert result.exit_code == 0
        assert [e["title"] for e in json.loads(result.output)] == ["Offsite", "Dentist"]

    def test_invalid_range_exit_code(self, run):
        result = run("events-by-day", "--start-ms", "2000", "--end-ms", "1000", "--cal-ids", "work")
        assert result.exit_code == 2
        assert json.loads(result.output)["kind"] == "invalid_range"

    def test_inverted_range_checked_before_preferences(self, run, provider):
        provider.error = ProviderUnavailable("helper not running")
        result = run("events-by-day", "--start-ms", "2000", "--end-ms", "1000")
        assert result.exit_code == 2
        assert json.loads(result.output)["kind"] == "invalid_range"
        assert provider.list_calls == 0

    def test_missing_option_is_json_error(self, run):
        result = run("events-by-day", "--end-ms", "5")
        assert result.exit_code == 2
        error = json.loads(result.output)
        assert error["kind"] == "invalid_argument"
        assert "--start-ms" in error["error"]

    def test_non_integer_day_is_json_error(self, run):
        result = run("events-for-day", "--day-ms", "today")
        assert result.exit_code == 2
        assert json.loads(result.output)["kind"] == "invalid_argument"

    def test_provider_failure(self, run, provider):
        provider.error = AccessDenied("Calendar access not granted.")
        result = run("list-calendars")
        assert result.exit_code == 1
        assert json.loads(result.output) == {
            "error": "Calendar access not granted.",
            "kind": "access_denied",
        }


class TestViews:
    def test_day(self, run):
        result = run("day", "--date", "2024-02-01")
        assert result.exit_code == 0
        assert "Thursday, February 01, 2024" in result.output
        assert "Offsite" in result.output
        assert "9:00 AM - 10:00 AM" in result.output
        assert result.output.index("Offsite") < result.output.index("Dentist")

    def test_day_without_events(self, run):
        result = run("day", "--date", "2024-06-01")
        assert "No events." in result.output

    def test_month(self, run):
        result = run("month", "--month", "2024-02")
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].strip() == "February 2024"
        assert lines[1].startswith("Su")
        assert "●" in result.output

    def test_month_offset(self, run):
        result = run("month", "--month", "2024-01", "--offset", "1")
        assert result.exit_code == 0
        assert result.output.splitlines()[0].strip() == "February 2024"

    def test_bad_month(self, run):
        result = run("month", "--month", "Feb")
        assert result.exit_code == 2

    def test_provider_failure_in_view(self, run, provider):
        provider.error = AccessDenied("Calendar access not granted.")
        result = run("day")
        assert result.exit_code == 1


class TestPreferenceCommands:
    def test_calendars_grouped(self, run):
        result = run("calendars")
        assert result.exit_code == 0
        assert result.output.index("iCloud") < result.output.index("Exchange")
        assert "[x]" in result.output

    def test_disable_and_color(self, run, store_path):
        assert run("disable", "work").exit_code == 0
        assert run("color", "work", "#abcdef").exit_code == 0

        prefs = {p.id: p for p in PreferenceStore(store_path).load()}
        assert prefs["work"].enabled is False
        assert prefs["work"].color == "#ABCDEF"

    def test_bad_color(self, run):
        assert run("color", "work", "blue").exit_code == 2

    def test_unknown_calendar(self, run):
        result = run("enable", "nope")
        assert result.exit_code == 1
