"""Composite calendar provider - combines multiple calendar sources."""

from colorcal.core.calendar import CalendarDescriptor, CalendarEvent
from colorcal.ports.calendar_provider import AccessRequester, AccessResult, CalendarProvider


class CompositeProvider:
    """
    Composite provider that merges several providers.

    Implements CalendarProvider protocol. A failure from any source fails the
    whole call; results are never partially merged.
    """

    def __init__(self, providers: list[CalendarProvider]):
        self.providers = providers

    def request_access(self) -> AccessResult:
        for provider in self.providers:
            if not isinstance(provider, AccessRequester):
                continue
            result = provider.request_access()
            if not result.granted:
                return result
        return AccessResult.ok()

    def list_calendars(self) -> list[CalendarDescriptor]:
        calendars = []
        for provider in self.providers:
            calendars.extend(provider.list_calendars())
        return calendars

    def fetch_events(
        self,
        range_start_ms: int,
        range_end_ms: int,
        calendar_ids: set[str] | None = None,
    ) -> list[CalendarEvent]:
        events = []
        for provider in self.providers:
            events.extend(provider.fetch_events(range_start_ms, range_end_ms, calendar_ids))
        return events
