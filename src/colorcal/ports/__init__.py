"""Ports - interfaces/protocols for external dependencies."""

from .calendar_provider import (
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

__all__ = [
    "AccessDenied",
    "AccessRequester",
    "AccessResult",
    "CalendarProvider",
    "InvalidArgument",
    "InvalidRange",
    "MalformedResponse",
    "ProviderError",
    "ProviderUnavailable",
]
