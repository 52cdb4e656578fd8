"""Provider-facing workflows shared by the CLI commands.

CalendarService validates requests, calls the provider, runs the pure
aggregation core on the result, and surfaces provider failures as
ProviderError subclasses. It never returns a partial result.
"""

import json
import logging
import threading
from datetime import tzinfo

from .adapters.bridge import BridgeProvider
from .adapters.composite import CompositeProvider
from .adapters.google_calendar import GoogleCalendarProvider
from .adapters.icalpal import IcalPalProvider
from .config import Config, PreferenceStore
from .core.calendar import (
    CalendarDescriptor,
    CalendarEvent,
    bucket_events_by_day,
    day_start_ms,
    events_overlapping_day,
    local_date,
    next_day_start_ms,
)
from .core.preferences import CalendarPref, enabled_ids, merge_preferences
from .ports.calendar_provider import (
    AccessDenied,
    AccessRequester,
    AccessResult,
    CalendarProvider,
    InvalidArgument,
    InvalidRange,
    MalformedResponse,
    ProviderError,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)


def build_provider(config: Config) -> CalendarProvider:
    """Create the provider(s) named in the config."""
    tz = config.tz()
    providers: list[CalendarProvider] = []
    for name in config.providers:
        match name:
            case "bridge":
                providers.append(
                    BridgeProvider(
                        binary=config.bridge_path,
                        build_command=config.bridge_build_command or None,
                        source_dir=config.bridge_source_dir or None,
                        timeout=config.provider_timeout,
                    )
                )
            case "icalpal":
                providers.append(
                    IcalPalProvider(
                        include_calendars=config.icalpal_include_calendars or None,
                        exclude_calendars=config.icalpal_exclude_calendars or None,
                        tz=tz,
                        timeout=config.provider_timeout,
                    )
                )
            case "google":
                for account in config.google_accounts:
                    providers.append(
                        GoogleCalendarProvider(
                            config_folder=account.config_folder,
                            label=account.label,
                            calendars=account.calendars or None,
                            client_secret_file=config.google_client_secret_file,
                            tz=tz,
                        )
                    )
    if len(providers) == 1:
        return providers[0]
    return CompositeProvider(providers)


def _require_ms(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer number of milliseconds, got {value!r}")
    return value


def check_range(start_ms, end_ms) -> tuple[int, int]:
    """Validate a [start, end) range of epoch milliseconds."""
    start_ms = _require_ms("start_ms", start_ms)
    end_ms = _require_ms("end_ms", end_ms)
    if start_ms > end_ms:
        raise InvalidRange(f"start_ms ({start_ms}) is after end_ms ({end_ms})")
    return start_ms, end_ms


def _calendar_filter(calendar_ids) -> set[str] | None:
    if calendar_ids is None:
        return None
    if isinstance(calendar_ids, str):
        raise InvalidArgument("calendar_ids must be a collection of ids, not a string")
    ids = {str(c) for c in calendar_ids if c}
    return ids or None


class CalendarService:
    """Request/response boundary between callers and a calendar provider."""

    def __init__(self, provider: CalendarProvider, tz: tzinfo | None = None):
        self.provider = provider
        self.tz = tz
        self._access_lock = threading.Lock()
        self._access: AccessResult | None = None

    def ensure_access(self) -> AccessResult:
        """
        Ask the provider for access once per process.

        Concurrent callers share one request; the answer is cached. A denial
        raises AccessDenied now and on every later call.
        """
        if self._access is None:
            with self._access_lock:
                if self._access is None:
                    if isinstance(self.provider, AccessRequester):
                        self._access = self._guard(self.provider.request_access)
                    else:
                        self._access = AccessResult.ok()
        if not self._access.granted:
            raise AccessDenied(self._access.reason or "Calendar access not granted")
        return self._access

    def _guard(self, call, *args):
        """Run a provider call, translating stray failures to ProviderError."""
        try:
            return call(*args)
        except ProviderError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Provider returned malformed data: {e}")
            raise MalformedResponse(f"Provider returned malformed data: {e}") from e
        except OSError as e:
            logger.warning(f"Provider unavailable: {e}")
            raise ProviderUnavailable(f"Provider unavailable: {e}") from e

    def list_calendars(self) -> list[CalendarDescriptor]:
        self.ensure_access()
        return self._guard(self.provider.list_calendars)

    def fetch_events(
        self,
        start_ms: int,
        end_ms: int,
        calendar_ids=None,
    ) -> list[CalendarEvent]:
        start_ms, end_ms = check_range(start_ms, end_ms)
        ids = _calendar_filter(calendar_ids)
        if start_ms == end_ms:
            return []
        self.ensure_access()
        return self._guard(self.provider.fetch_events, start_ms, end_ms, ids)

    def events_by_day(
        self,
        start_ms: int,
        end_ms: int,
        calendar_ids=None,
    ) -> dict[str, set[str]]:
        """Day key -> ids of calendars with events that day, over [start, end)."""
        events = self.fetch_events(start_ms, end_ms, calendar_ids)
        return bucket_events_by_day(events, start_ms, end_ms, self.tz)

    def events_for_day(self, day_ms: int, calendar_ids=None) -> list[CalendarEvent]:
        """Ordered events overlapping the day containing day_ms."""
        day_ms = _require_ms("day_ms", day_ms)
        d = local_date(day_ms, self.tz)
        events = self.fetch_events(day_start_ms(d, self.tz), next_day_start_ms(d, self.tz), calendar_ids)
        return events_overlapping_day(events, day_ms, self.tz)

    def calendar_preferences(self, store: PreferenceStore) -> list[CalendarPref]:
        """Current calendars merged with saved preferences, saved back."""
        prefs = merge_preferences(self.list_calendars(), store.load())
        store.save(prefs)
        return prefs

    def enabled_calendar_ids(self, store: PreferenceStore) -> list[str]:
        return enabled_ids(self.calendar_preferences(store))


# --- Wire encoding ---


def encode_bucket_map(by_day: dict[str, set[str]]) -> dict[str, list[str]]:
    return {key: sorted(ids) for key, ids in sorted(by_day.items())}


def encode_events(events: list[CalendarEvent]) -> list[dict]:
    return [e.to_dict() for e in events]


def encode_calendars(calendars: list[CalendarDescriptor]) -> list[dict]:
    return [c.to_dict() for c in calendars]


def encode_error(error: ProviderError) -> dict:
    return {"error": str(error), "kind": error.kind}


def dumps(value) -> str:
    return json.dumps(value, separators=(",", ":"))
