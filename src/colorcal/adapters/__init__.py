"""Adapters - I/O implementations of ports."""

from .bridge import BridgeProvider
from .composite import CompositeProvider
from .google_calendar import GoogleCalendarProvider
from .icalpal import IcalPalProvider

__all__ = [
    "BridgeProvider",
    "CompositeProvider",
    "GoogleCalendarProvider",
    "IcalPalProvider",
]
