"""Pure calendar domain logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo

DEFAULT_COLOR = "#3B82F6"
UNTITLED = "Untitled Event"

# Smallest representable step between two instants (instants are epoch ms).
INSTANT_RESOLUTION_MS = 1


@dataclass(frozen=True)
class CalendarDescriptor:
    """A calendar as listed by a provider."""

    id: str
    name: str
    color: str = DEFAULT_COLOR
    source: str = ""
    account: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict) -> "CalendarDescriptor":
        """Create a descriptor from the wire format."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            color=data.get("color") or DEFAULT_COLOR,
            source=data.get("source", ""),
            account=data.get("account", ""),
        )


@dataclass(frozen=True)
class CalendarEvent:
    """One concrete occurrence of a calendar event."""

    id: str
    title: str
    start_ms: int
    end_ms: int
    all_day: bool
    calendar_id: str
    calendar_name: str = ""

    def __post_init__(self):
        if not self.title or not self.title.strip():
            object.__setattr__(self, "title", UNTITLED)

    @property
    def effective_end_ms(self) -> int:
        """End instant, never earlier than the start."""
        return max(self.end_ms, self.start_ms)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "startMs": self.start_ms,
            "endMs": self.end_ms,
            "isAllDay": self.all_day,
            "calendarId": self.calendar_id,
            "calendarName": self.calendar_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CalendarEvent":
        """Create an event from the wire format.

        Raises KeyError, TypeError or ValueError on a malformed payload.
        """
        start_ms = data["startMs"]
        end_ms = data["endMs"]
        if isinstance(start_ms, bool) or isinstance(end_ms, bool):
            raise TypeError("startMs/endMs must be numbers")
        start_ms = int(start_ms)
        end_ms = int(end_ms)
        calendar_id = str(data["calendarId"])
        return cls(
            id=str(data.get("id") or f"{calendar_id}:{start_ms}:{end_ms}"),
            title=data.get("title") or UNTITLED,
            start_ms=start_ms,
            end_ms=end_ms,
            all_day=bool(data.get("isAllDay", False)),
            calendar_id=calendar_id,
            calendar_name=data.get("calendarName", ""),
        )


# --- Day arithmetic ---------------------------------------------------------
#
# tz=None means the host's local zone. Days are advanced as dates and
# converted back to instants, so 23h and 25h days come out right.


def to_datetime(ms: int, tz: tzinfo | None = None) -> datetime:
    """Local wall-clock datetime for an epoch-ms instant."""
    seconds, millis = divmod(ms, 1000)
    return datetime.fromtimestamp(seconds, tz) + timedelta(milliseconds=millis)


def local_date(ms: int, tz: tzinfo | None = None) -> date:
    """Calendar date an instant falls on."""
    # Midnight is always on a whole second, so the sub-second part never
    # changes the date.
    return datetime.fromtimestamp(ms // 1000, tz).date()


def day_start_ms(d: date, tz: tzinfo | None = None) -> int:
    """First instant of a calendar date."""
    midnight = datetime(d.year, d.month, d.day, tzinfo=tz)
    return round(midnight.timestamp() * 1000)


def start_of_day(ms: int, tz: tzinfo | None = None) -> int:
    return day_start_ms(local_date(ms, tz), tz)


def next_day_start_ms(d: date, tz: tzinfo | None = None) -> int:
    return day_start_ms(d + timedelta(days=1), tz)


def day_key(ms: int, tz: tzinfo | None = None) -> str:
    """Canonical yyyy-MM-dd key for the day an instant falls on."""
    return local_date(ms, tz).isoformat()


def effective_span(event: CalendarEvent, tz: tzinfo | None = None) -> tuple[int, int]:
    """
    Half-open [start, end) instants an event occupies.

    All-day events cover whole local days: from the start of their first day
    to the start of the day after their last one.
    """
    start = event.start_ms
    end = event.effective_end_ms
    if not event.all_day:
        return start, end

    first = local_date(start, tz)
    last = local_date(end - INSTANT_RESOLUTION_MS, tz) if end > start else first
    last = max(first, last)
    return day_start_ms(first, tz), next_day_start_ms(last, tz)


# --- Aggregation ------------------------------------------------------------


def bucket_events_by_day(
    events: list[CalendarEvent],
    range_start_ms: int,
    range_end_ms: int,
    tz: tzinfo | None = None,
) -> dict[str, set[str]]:
    """
    Map each day key to the ids of calendars with activity that day.

    Pure function - no I/O. Events are clamped to [range_start, range_end);
    an event ending exactly at midnight does not mark the following day.
    An empty or inverted range yields an empty mapping.
    """
    by_day: dict[str, set[str]] = {}
    if range_start_ms >= range_end_ms:
        return by_day

    for event in events:
        event_start, event_end = effective_span(event, tz)
        s = max(event_start, range_start_ms)
        e = min(event_end, range_end_ms)
        if e <= s:
            continue

        inclusive_end = e - INSTANT_RESOLUTION_MS
        if inclusive_end < s:
            continue

        day = local_date(s, tz)
        last = local_date(inclusive_end, tz)
        while day <= last:
            by_day.setdefault(day.isoformat(), set()).add(event.calendar_id)
            day += timedelta(days=1)

    return by_day


def overlaps_range(
    event: CalendarEvent,
    range_start_ms: int,
    range_end_ms: int,
    tz: tzinfo | None = None,
) -> bool:
    """Check if an event occupies any instant of [range_start, range_end)."""
    event_start, event_end = effective_span(event, tz)
    return max(event_start, range_start_ms) < min(event_end, range_end_ms)


def _title_key(title: str) -> tuple[str, str]:
    return (title.casefold(), title)


def sort_day_events(events: list[CalendarEvent]) -> list[CalendarEvent]:
    """
    Order events for a day listing.

    All-day events first by title, then timed events by (start, end, title).
    The event id and then the calendar id break any remaining tie so the
    order never depends on the input order.
    """
    all_day = sorted(
        (e for e in events if e.all_day),
        key=lambda e: (*_title_key(e.title), e.id, e.calendar_id),
    )
    timed = sorted(
        (e for e in events if not e.all_day),
        key=lambda e: (e.start_ms, e.effective_end_ms, *_title_key(e.title), e.id, e.calendar_id),
    )
    return all_day + timed


def events_overlapping_day(
    events: list[CalendarEvent],
    day_ms: int,
    tz: tzinfo | None = None,
) -> list[CalendarEvent]:
    """
    Events overlapping the local day containing day_ms, in display order.

    Pure function - no I/O. An event ending exactly at the day's start is
    not included. No deduplication is done.
    """
    d = local_date(day_ms, tz)
    day_start = day_start_ms(d, tz)
    day_end = next_day_start_ms(d, tz)
    return sort_day_events([e for e in events if overlaps_range(e, day_start, day_end, tz)])


def format_time_range(event: CalendarEvent, day: date, tz: tzinfo | None = None) -> str:
    """Format an event's time range as seen from a given day."""
    if event.all_day:
        return "All-day"

    start = to_datetime(event.start_ms, tz)
    end = to_datetime(event.end_ms, tz)

    def _clock(dt: datetime) -> str:
        return dt.strftime("%I:%M %p").lstrip("0")

    start_text = _clock(start) if start.date() == day else f"Starts {start.strftime('%a')} {_clock(start)}"
    end_text = _clock(end) if end.date() == day else f"Ends {end.strftime('%a')} {_clock(end)}"
    return f"{start_text} - {end_text}"
