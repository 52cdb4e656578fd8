"""Functional core - pure business logic with no I/O."""

from .calendar import (
    CalendarDescriptor,
    CalendarEvent,
    bucket_events_by_day,
    day_key,
    events_overlapping_day,
    sort_day_events,
    start_of_day,
)
from .grid import month_grid, grid_range_ms
from .preferences import CalendarPref, classify, merge_preferences

__all__ = [
    # Calendar
    "CalendarDescriptor",
    "CalendarEvent",
    "bucket_events_by_day",
    "day_key",
    "events_overlapping_day",
    "sort_day_events",
    "start_of_day",
    # Grid
    "month_grid",
    "grid_range_ms",
    # Preferences
    "CalendarPref",
    "classify",
    "merge_preferences",
]
