"""Google Calendar API adapter."""

import logging
from datetime import date, datetime, timezone, tzinfo
from pathlib import Path

from colorcal.core.calendar import (
    DEFAULT_COLOR,
    CalendarDescriptor,
    CalendarEvent,
    day_start_ms,
)
from colorcal.core.preferences import normalize_color
from colorcal.ports.calendar_provider import (
    AccessDenied,
    AccessResult,
    MalformedResponse,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]


def _iso_utc(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, timezone.utc).isoformat().replace("+00:00", "Z")


class GoogleCalendarProvider:
    """Reads calendars and events from Google Calendar via the API."""

    def __init__(
        self,
        config_folder: str,
        label: str | None = None,
        calendars: list[str] | None = None,
        client_secret_file: str = "",
        tz: tzinfo | None = None,
    ):
        self.config_folder = config_folder
        self.label = label or Path(config_folder).name
        self.calendars = calendars
        self.client_secret_file = client_secret_file
        self.tz = tz
        self._token_path = Path(config_folder).expanduser() / "token.json"

    def _get_credentials(self):
        """Load credentials from token.json, refreshing if needed."""
        from google.auth.exceptions import RefreshError
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials

        if not self._token_path.exists():
            logger.warning(f"No token.json for {self.label} - run 'colorcal cal-auth'")
            return None

        creds = Credentials.from_authorized_user_file(str(self._token_path), SCOPES)

        if creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
            except RefreshError as e:
                logger.warning(f"Failed to refresh token for {self.label}: {e}")
                return None
            self._token_path.write_text(creds.to_json())
            self._token_path.chmod(0o600)

        return creds

    def _build_service(self):
        """Build a Google Calendar API service."""
        from googleapiclient.discovery import build

        creds = self._get_credentials()
        if not creds:
            raise AccessDenied(f"Google account {self.label} is not authorized - run 'colorcal cal-auth'")
        return build("calendar", "v3", credentials=creds)

    def _call(self, request):
        """Execute an API request, translating failures."""
        from googleapiclient.errors import HttpError

        try:
            return request.execute()
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            logger.warning(f"Google Calendar API error for {self.label}: {e}")
            if status in (401, 403):
                raise AccessDenied(f"Google Calendar denied access for {self.label}") from e
            raise ProviderUnavailable(f"Google Calendar API error for {self.label}: {e}") from e
        except OSError as e:
            logger.warning(f"Google Calendar unreachable for {self.label}: {e}")
            raise ProviderUnavailable(f"Google Calendar unreachable for {self.label}: {e}") from e

    def authenticate(self) -> bool:
        """Run OAuth flow for this account. Returns True on success."""
        from google_auth_oauthlib.flow import InstalledAppFlow

        if not self.client_secret_file:
            logger.error("No client secret file configured")
            return False

        secret_path = Path(self.client_secret_file).expanduser()
        if not secret_path.exists():
            logger.error(f"Client secret file not found: {secret_path}")
            return False

        flow = InstalledAppFlow.from_client_secrets_file(str(secret_path), SCOPES)
        creds = flow.run_local_server(port=0)

        token_dir = self._token_path.parent
        token_dir.mkdir(parents=True, exist_ok=True)
        self._token_path.write_text(creds.to_json())
        self._token_path.chmod(0o600)
        return True

    def request_access(self) -> AccessResult:
        if not self._token_path.exists():
            return AccessResult.denied(f"No token for {self.label} - run 'colorcal cal-auth'")
        return AccessResult.ok()

    def _calendar_entries(self, service) -> list[dict]:
        entries = []
        page_token = None
        while True:
            result = self._call(service.calendarList().list(pageToken=page_token))
            entries.extend(result.get("items", []))
            page_token = result.get("nextPageToken")
            if not page_token:
                return entries

    def list_calendars(self) -> list[CalendarDescriptor]:
        service = self._build_service()
        calendars = []
        for entry in self._calendar_entries(service):
            name = entry.get("summaryOverride") or entry.get("summary", "")
            if self.calendars and name not in self.calendars:
                continue
            try:
                calendars.append(
                    CalendarDescriptor(
                        id=entry["id"],
                        name=name or entry["id"],
                        color=normalize_color(entry.get("backgroundColor")) if entry.get("backgroundColor") else DEFAULT_COLOR,
                        source="google",
                        account=self.label,
                    )
                )
            except KeyError as e:
                raise MalformedResponse(f"Calendar entry without id for {self.label}") from e
        return calendars

    def fetch_events(
        self,
        range_start_ms: int,
        range_end_ms: int,
        calendar_ids: set[str] | None = None,
    ) -> list[CalendarEvent]:
        service = self._build_service()
        entries = self._calendar_entries(service)

        events = []
        for entry in entries:
            name = entry.get("summaryOverride") or entry.get("summary", "")
            if self.calendars and name not in self.calendars:
                continue
            if calendar_ids and entry.get("id") not in calendar_ids:
                continue
            events.extend(self._fetch_calendar(service, entry["id"], name, range_start_ms, range_end_ms))
        return events

    def _fetch_calendar(
        self,
        service,
        cal_id: str,
        cal_name: str,
        range_start_ms: int,
        range_end_ms: int,
    ) -> list[CalendarEvent]:
        events = []
        page_token = None
        while True:
            result = self._call(
                service.events().list(
                    calendarId=cal_id,
                    timeMin=_iso_utc(range_start_ms),
                    timeMax=_iso_utc(range_end_ms),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                )
            )
            for item in result.get("items", []):
                try:
                    event = self._parse_event(item, cal_id, cal_name)
                except (KeyError, ValueError) as e:
                    logger.debug(f"Skipping malformed Google event: {e}")
                    continue
                if event:
                    events.append(event)
            page_token = result.get("nextPageToken")
            if not page_token:
                return events

    def _parse_event(self, item: dict, cal_id: str, cal_name: str) -> CalendarEvent | None:
        start_raw = item.get("start", {})
        end_raw = item.get("end", {})

        if "date" in start_raw:
            # All-day: dates are floating, anchor them in the viewer's zone
            start_ms = day_start_ms(date.fromisoformat(start_raw["date"]), self.tz)
            end_ms = day_start_ms(date.fromisoformat(end_raw["date"]), self.tz) if "date" in end_raw else start_ms
            all_day = True
        elif "dateTime" in start_raw:
            start_ms = self._parse_datetime(start_raw["dateTime"])
            end_ms = self._parse_datetime(end_raw["dateTime"]) if "dateTime" in end_raw else start_ms
            all_day = False
        else:
            return None

        return CalendarEvent(
            id=item["id"],
            title=item.get("summary", ""),
            start_ms=start_ms,
            end_ms=end_ms,
            all_day=all_day,
            calendar_id=cal_id,
            calendar_name=cal_name,
        )

    @staticmethod
    def _parse_datetime(value: str) -> int:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return round(dt.timestamp() * 1000)
