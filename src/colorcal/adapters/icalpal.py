"""icalPal adapter - subprocess wrapper for macOS Calendar."""

import json
import logging
import subprocess
from datetime import datetime, timedelta, tzinfo

from colorcal.core.calendar import (
    DEFAULT_COLOR,
    CalendarDescriptor,
    CalendarEvent,
    local_date,
    overlaps_range,
)
from colorcal.core.preferences import normalize_color
from colorcal.ports.calendar_provider import (
    AccessDenied,
    MalformedResponse,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)


class IcalPalProvider:
    """
    icalPal subprocess adapter.

    Implements CalendarProvider protocol. Reads macOS Calendar via the icalPal
    CLI tool. icalPal has no stable calendar identifiers, so the calendar name
    is used as the id.
    """

    def __init__(
        self,
        include_calendars: list[str] | None = None,
        exclude_calendars: list[str] | None = None,
        tz: tzinfo | None = None,
        timeout: int = 30,
    ):
        self.include_calendars = include_calendars
        self.exclude_calendars = exclude_calendars
        self.tz = tz
        self.timeout = timeout

    def _run(self, *args: str) -> list[dict]:
        cmd = ["icalPal", *args, "-o", "json"]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            logger.warning(f"icalPal command failed: {e}")
            stderr = (e.stderr or "").strip()
            if "permission" in stderr.lower() or "full disk access" in stderr.lower():
                raise AccessDenied(f"icalPal cannot read the Calendar database: {stderr}") from e
            raise ProviderUnavailable(f"icalPal command failed: {stderr or e}") from e
        except FileNotFoundError as e:
            logger.warning("icalPal not found - install with 'brew install icalpal'")
            raise ProviderUnavailable("icalPal not found - install with 'brew install icalpal'") from e
        except subprocess.TimeoutExpired as e:
            logger.warning(f"icalPal timed out after {self.timeout}s")
            raise ProviderUnavailable(f"icalPal timed out after {self.timeout}s") from e

        try:
            data = json.loads(result.stdout) if result.stdout.strip() else []
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse icalPal output: {e}")
            raise MalformedResponse(f"Failed to parse icalPal output: {e}") from e
        if not isinstance(data, list):
            raise MalformedResponse("icalPal did not return a list")
        return data

    def _wanted(self, cal_name: str) -> bool:
        if self.include_calendars and cal_name not in self.include_calendars:
            return False
        if self.exclude_calendars and cal_name in self.exclude_calendars:
            return False
        return True

    def list_calendars(self) -> list[CalendarDescriptor]:
        calendars = []
        seen = set()
        for item in self._run("calendars"):
            name = item.get("calendar") or item.get("title") or ""
            if not name or name in seen or not self._wanted(name):
                continue
            seen.add(name)
            calendars.append(
                CalendarDescriptor(
                    id=name,
                    name=name,
                    color=normalize_color(item.get("color")) if item.get("color") else DEFAULT_COLOR,
                    source=str(item.get("type", "")),
                    account=str(item.get("account", "")),
                )
            )
        return calendars

    def fetch_events(
        self,
        range_start_ms: int,
        range_end_ms: int,
        calendar_ids: set[str] | None = None,
    ) -> list[CalendarEvent]:
        # icalPal takes whole dates, so fetch the covering days and filter
        first = local_date(range_start_ms, self.tz)
        last = local_date(range_end_ms, self.tz) + timedelta(days=1)
        data = self._run("events", f"--from={first.isoformat()}", f"--to={last.isoformat()}")

        events = []
        for item in data:
            cal_name = item.get("calendar", "")
            if not self._wanted(cal_name):
                continue
            if calendar_ids and cal_name not in calendar_ids:
                continue

            try:
                event = self._parse_event(item)
            except (ValueError, KeyError, TypeError) as e:
                logger.debug(f"Skipping malformed event: {e}")
                continue
            if event and overlaps_range(event, range_start_ms, range_end_ms, self.tz):
                events.append(event)

        return events

    def _parse_event(self, item: dict) -> CalendarEvent | None:
        """Parse a single event from icalPal data."""
        is_all_day = item.get("all_day") == 1

        # Use sctime/ectime strings - they have correct dates for recurring events
        sctime = item.get("sctime", "")
        ectime = item.get("ectime", "")

        if sctime:
            start_ms = self._parse_ctime(sctime, floating=is_all_day)
        elif item.get("sseconds"):
            start_ms = int(item["sseconds"]) * 1000
        else:
            return None

        if ectime:
            end_ms = self._parse_ctime(ectime, floating=is_all_day)
        elif item.get("eseconds"):
            end_ms = int(item["eseconds"]) * 1000
        else:
            end_ms = start_ms

        cal_name = item.get("calendar", "")
        return CalendarEvent(
            id=str(item.get("UUID") or item.get("uuid") or f"{cal_name}:{start_ms}:{item.get('title', '')}"),
            title=item.get("title", ""),
            start_ms=start_ms,
            end_ms=end_ms,
            all_day=is_all_day,
            calendar_id=cal_name,
            calendar_name=cal_name,
        )

    def _parse_ctime(self, value: str, floating: bool = False) -> int:
        """Parse "2026-01-27 14:00:00 -0500" to epoch ms.

        Floating times (all-day events) ignore the offset and are read as
        local wall-clock time.
        """
        dt = None
        if not floating and len(value) > 19:
            try:
                dt = datetime.strptime(value[:25], "%Y-%m-%d %H:%M:%S %z")
            except ValueError:
                dt = None
        if dt is None:
            dt = datetime.strptime(value[:19], "%Y-%m-%d %H:%M:%S")
            if self.tz is not None:
                dt = dt.replace(tzinfo=self.tz)
        return round(dt.timestamp() * 1000)
