"""Shared fixtures."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from colorcal.core.calendar import CalendarDescriptor, CalendarEvent

NY = ZoneInfo("America/New_York")


def ms(year, month, day, hour=0, minute=0, tz=NY) -> int:
    """Epoch ms for a wall-clock time in the given zone."""
    return round(datetime(year, month, day, hour, minute, tzinfo=tz).timestamp() * 1000)


class FakeProvider:
    """In-memory CalendarProvider that records its calls."""

    def __init__(self, calendars=None, events=None, error=None):
        self.calendars = calendars or []
        self.events = events or []
        self.error = error
        self.fetch_calls = []
        self.list_calls = 0

    def list_calendars(self):
        self.list_calls += 1
        if self.error:
            raise self.error
        return list(self.calendars)

    def fetch_events(self, range_start_ms, range_end_ms, calendar_ids=None):
        self.fetch_calls.append((range_start_ms, range_end_ms, calendar_ids))
        if self.error:
            raise self.error
        return [
            e for e in self.events
            if not calendar_ids or e.calendar_id in calendar_ids
        ]


@pytest.fixture
def tz():
    return NY


@pytest.fixture
def make_event():
    """Factory for creating events."""
    counter = iter(range(1, 10_000))

    def _make(
        start: int,
        end: int,
        calendar_id: str = "work",
        title: str = "Meeting",
        all_day: bool = False,
        id: str | None = None,
    ) -> CalendarEvent:
        return CalendarEvent(
            id=id or f"evt-{next(counter)}",
            title=title,
            start_ms=start,
            end_ms=end,
            all_day=all_day,
            calendar_id=calendar_id,
            calendar_name=calendar_id.title(),
        )

    return _make


@pytest.fixture
def calendars():
    return [
        CalendarDescriptor(id="work", name="Work", color="#FF0000", source="exchange", account="corp"),
        CalendarDescriptor(id="home", name="Home", color="#00FF00", source="caldav", account="iCloud"),
    ]
