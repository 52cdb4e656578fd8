"""Tests for calendar preferences and grouping."""

from colorcal.core.calendar import CalendarDescriptor
from colorcal.core.preferences import (
    CalendarPref,
    classify,
    enabled_ids,
    group_calendars,
    merge_preferences,
    normalize_color,
)


class TestNormalizeColor:
    def test_uppercases_hex(self):
        assert normalize_color("#3b82f6") == "#3B82F6"

    def test_rejects_named_color(self):
        assert normalize_color("red") == "#3B82F6"

    def test_rejects_short_hex(self):
        assert normalize_color("#fff") == "#3B82F6"

    def test_none(self):
        assert normalize_color(None) == "#3B82F6"


class TestMergePreferences:
    def test_new_calendars_enabled_with_provider_color(self, calendars):
        prefs = merge_preferences(calendars, [])
        assert [(p.id, p.enabled, p.color) for p in prefs] == [
            ("work", True, "#FF0000"),
            ("home", True, "#00FF00"),
        ]

    def test_keeps_saved_choices(self, calendars):
        saved = [CalendarPref("work", "Old Name", enabled=False, color="#123456")]
        prefs = merge_preferences(calendars, saved)
        work = prefs[0]
        assert work.enabled is False
        assert work.color == "#123456"
        assert work.name == "Work"

    def test_drops_removed_calendars(self, calendars):
        saved = [CalendarPref("gone", "Gone")]
        prefs = merge_preferences(calendars, saved)
        assert [p.id for p in prefs] == ["work", "home"]

    def test_enabled_ids(self):
        prefs = [CalendarPref("a", "A"), CalendarPref("b", "B", enabled=False)]
        assert enabled_ids(prefs) == ["a"]

    def test_from_dict_normalizes_color(self):
        pref = CalendarPref.from_dict({"id": "a", "color": "nope"})
        assert pref.name == "a"
        assert pref.enabled is True
        assert pref.color == "#3B82F6"


class TestClassify:
    def test_icloud_account(self):
        assert classify(CalendarDescriptor("1", "Home", source="caldav", account="iCloud")) == "iCloud"

    def test_google_account(self):
        assert classify(CalendarDescriptor("1", "Me", source="caldav", account="me@gmail.com")) == "Google"

    def test_exchange_source(self):
        assert classify(CalendarDescriptor("1", "Work", source="Exchange", account="corp")) == "Exchange"

    def test_subscribed_source(self):
        assert classify(CalendarDescriptor("1", "Holidays", source="subscription")) == "Subscribed"

    def test_local_source(self):
        assert classify(CalendarDescriptor("1", "On My Mac", source="local")) == "Local"

    def test_unknown(self):
        assert classify(CalendarDescriptor("1", "Mystery")) == "Other"

    def test_group_calendars_order(self, calendars):
        extra = CalendarDescriptor("x", "Another", source="exchange")
        groups = group_calendars(calendars + [extra])
        assert [label for label, _ in groups] == ["iCloud", "Exchange"]
        assert [d.name for d in groups[1][1]] == ["Another", "Work"]
