"""Calendar provider interface and its failure kinds."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from colorcal.core.calendar import CalendarDescriptor, CalendarEvent


class ProviderError(RuntimeError):
    """Base class for failures at the provider boundary."""

    kind = "provider_error"
    retryable = False


class AccessDenied(ProviderError):
    """The user has not granted calendar access."""

    kind = "access_denied"


class ProviderUnavailable(ProviderError):
    """The provider could not be started or did not answer."""

    kind = "provider_unavailable"
    retryable = True


class MalformedResponse(ProviderUnavailable):
    """The provider answered with data that could not be parsed."""

    kind = "malformed_response"


class InvalidArgument(ProviderError):
    """A caller passed an invalid argument."""

    kind = "invalid_argument"


class InvalidRange(InvalidArgument):
    """A time range with start after end."""

    kind = "invalid_range"


@dataclass(frozen=True)
class AccessResult:
    """Outcome of asking for calendar access."""

    granted: bool
    reason: str = ""

    @classmethod
    def ok(cls) -> "AccessResult":
        return cls(granted=True)

    @classmethod
    def denied(cls, reason: str) -> "AccessResult":
        return cls(granted=False, reason=reason)


class CalendarProvider(Protocol):
    """Interface for reading calendars and events from any backend."""

    def list_calendars(self) -> list[CalendarDescriptor]:
        """List every calendar the user can see."""
        ...

    def fetch_events(
        self,
        range_start_ms: int,
        range_end_ms: int,
        calendar_ids: set[str] | None = None,
    ) -> list[CalendarEvent]:
        """Fetch concrete occurrences overlapping [range_start, range_end).

        An empty or missing calendar_ids means all calendars.
        """
        ...


@runtime_checkable
class AccessRequester(Protocol):
    """Providers that gate reads behind a permission prompt."""

    def request_access(self) -> AccessResult:
        ...
