"""Calendar preferences - which calendars are shown and in what color."""

import re
from dataclasses import dataclass

from .calendar import DEFAULT_COLOR, CalendarDescriptor

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass
class CalendarPref:
    """User preference for one calendar."""

    id: str
    name: str
    enabled: bool = True
    color: str = DEFAULT_COLOR

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "enabled": self.enabled, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict) -> "CalendarPref":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            enabled=bool(data.get("enabled", True)),
            color=normalize_color(data.get("color", "")),
        )


def normalize_color(value: str | None) -> str:
    """Uppercase #RRGGBB, or the default color if the value isn't one."""
    if value and _HEX_COLOR.match(value.strip()):
        return value.strip().upper()
    return DEFAULT_COLOR


def merge_preferences(
    descriptors: list[CalendarDescriptor],
    existing: list[CalendarPref],
) -> list[CalendarPref]:
    """
    Reconcile saved preferences with the calendars a provider lists now.

    Known calendars keep their enabled flag and color; new calendars start
    enabled in the provider's color; calendars that disappeared are dropped.
    Names always follow the provider.
    """
    saved = {p.id: p for p in existing}
    merged = []
    for d in descriptors:
        found = saved.get(d.id)
        merged.append(
            CalendarPref(
                id=d.id,
                name=d.name,
                enabled=found.enabled if found else True,
                color=found.color if found else normalize_color(d.color),
            )
        )
    return merged


def enabled_ids(prefs: list[CalendarPref]) -> list[str]:
    return [p.id for p in prefs if p.enabled]


def colors_by_id(prefs: list[CalendarPref]) -> dict[str, str]:
    return {p.id: p.color for p in prefs}


# Group labels, in display order
GROUPS = ["iCloud", "Google", "Exchange", "Subscribed", "Local", "Other"]

_SOURCE_GROUPS = {
    "icloud": "iCloud",
    "google": "Google",
    "exchange": "Exchange",
    "subscription": "Subscribed",
    "subscribed": "Subscribed",
    "birthdays": "Subscribed",
    "local": "Local",
}


def classify(descriptor: CalendarDescriptor) -> str:
    """
    Group label for a calendar.

    Only looks at the descriptor's `source` (provider source type, e.g.
    "caldav", "google", "exchange", "subscription", "local") and `account`
    (account or server name) fields.
    """
    source = descriptor.source.strip().lower()
    account = descriptor.account.strip().lower()

    if "icloud" in account:
        return "iCloud"
    if "google" in account or account.endswith("gmail.com"):
        return "Google"
    if source in _SOURCE_GROUPS:
        return _SOURCE_GROUPS[source]
    return "Other"


def group_calendars(descriptors: list[CalendarDescriptor]) -> list[tuple[str, list[CalendarDescriptor]]]:
    """Group descriptors by label, groups in display order, names sorted."""
    groups: dict[str, list[CalendarDescriptor]] = {}
    for d in descriptors:
        groups.setdefault(classify(d), []).append(d)
    return [
        (label, sorted(groups[label], key=lambda d: d.name.casefold()))
        for label in GROUPS
        if label in groups
    ]
