"""Month grid layout - which days the six-week view shows."""

from datetime import date, timedelta, tzinfo

from .calendar import day_start_ms

GRID_DAYS = 42

SUNDAY = 6
MONDAY = 0

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def parse_week_start(value: str) -> int:
    """Weekday number (Monday=0) for a day name. Raises ValueError."""
    try:
        return WEEKDAYS[value.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown weekday: {value!r}") from None


def grid_start(month: date, week_start: int = SUNDAY) -> date:
    """First day shown for a month: the week start on or before the 1st."""
    first = month.replace(day=1)
    offset = (first.weekday() - week_start) % 7
    return first - timedelta(days=offset)


def month_grid(month: date, week_start: int = SUNDAY) -> list[date]:
    """The 42 consecutive days of the six-week grid for a month."""
    start = grid_start(month, week_start)
    return [start + timedelta(days=i) for i in range(GRID_DAYS)]


def grid_range_ms(
    month: date,
    tz: tzinfo | None = None,
    week_start: int = SUNDAY,
) -> tuple[int, int]:
    """Half-open instant range covering the whole grid."""
    start = grid_start(month, week_start)
    return day_start_ms(start, tz), day_start_ms(start + timedelta(days=GRID_DAYS), tz)


def add_months(month: date, delta: int) -> date:
    """First day of the month delta months away."""
    index = month.year * 12 + (month.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)
