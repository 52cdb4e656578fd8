"""Configuration management for ColorCal."""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .core.grid import SUNDAY, parse_week_start
from .core.preferences import CalendarPref

logger = logging.getLogger(__name__)

COLORCAL_HOME = Path(os.environ.get("COLORCAL_HOME", Path.home() / "colorcal"))
CONFIG_FILE = COLORCAL_HOME / "config" / "colorcal.conf"
PREFS_FILE = COLORCAL_HOME / "config" / "calendars.json"

PROVIDERS = ("bridge", "icalpal", "google")


@dataclass
class GoogleAccount:
    """A Google Calendar account configuration."""

    config_folder: str
    label: str | None = None
    calendars: list[str] = field(default_factory=list)


@dataclass
class Config:
    """ColorCal configuration."""

    providers: list[str] = field(default_factory=lambda: ["bridge"])
    bridge_path: str = str(COLORCAL_HOME / "bin" / "ColorCalBridge")
    bridge_build_command: list[str] = field(default_factory=list)
    bridge_source_dir: str = ""
    provider_timeout: int = 30
    timezone: str = ""
    week_start: int = SUNDAY
    google_accounts: list[GoogleAccount] = field(default_factory=list)
    google_client_secret_file: str = ""
    icalpal_include_calendars: list[str] = field(default_factory=list)
    icalpal_exclude_calendars: list[str] = field(default_factory=list)

    def tz(self) -> tzinfo | None:
        """Configured zone, or None for the host's local zone."""
        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone {self.timezone!r} - using local time")
            return None


class PreferenceStore:
    """Saved calendar preferences (enabled flag and color per calendar)."""

    def __init__(self, path: Path | None = None):
        self.path = path or PREFS_FILE

    def load(self) -> list[CalendarPref]:
        """Load preferences from file."""
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text())
            return [CalendarPref.from_dict(item) for item in data.get("calendars", [])]
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return []

    def save(self, prefs: list[CalendarPref]) -> None:
        """Save preferences to file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"calendars": [p.to_dict() for p in prefs]}, indent=2))


def _split_list(value: str) -> list[str]:
    return [c.strip() for c in value.split(",") if c.strip()]


def _parse_google_accounts(value: str) -> list[GoogleAccount]:
    # JSON format: [{"config_folder": "...", "label": "...", "calendars": [...]}]
    # Simple format: "path1:label1,path2:label2"
    accounts = []
    if value.startswith("["):
        try:
            data = json.loads(value)
            for item in data:
                accounts.append(
                    GoogleAccount(
                        config_folder=item["config_folder"],
                        label=item.get("label"),
                        calendars=item.get("calendars", []),
                    )
                )
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(f"Failed to parse GOOGLE_ACCOUNTS JSON: {e}")
        return accounts

    for entry in _split_list(value):
        if ":" in entry:
            folder, label = entry.split(":", 1)
            accounts.append(GoogleAccount(folder.strip(), label.strip()))
        else:
            accounts.append(GoogleAccount(entry))
    return accounts


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    if value[:1] in ('"', "'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def load_config() -> Config:
    """Load configuration from colorcal.conf file."""
    config = Config()

    if not CONFIG_FILE.exists():
        return config

    for line in CONFIG_FILE.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "provider":
                providers = [p.lower() for p in _split_list(value)]
                unknown = [p for p in providers if p not in PROVIDERS]
                if unknown or not providers:
                    logger.warning(f"Unknown PROVIDER {value!r} - expected one of {', '.join(PROVIDERS)}")
                else:
                    config.providers = providers
            case "bridge_path":
                config.bridge_path = value
            case "bridge_build_command":
                config.bridge_build_command = value.split()
            case "bridge_source_dir":
                config.bridge_source_dir = value
            case "provider_timeout":
                try:
                    config.provider_timeout = int(value)
                except ValueError:
                    logger.warning(f"Invalid PROVIDER_TIMEOUT {value!r}")
            case "timezone":
                config.timezone = value
            case "week_start":
                try:
                    config.week_start = parse_week_start(value)
                except ValueError as e:
                    logger.warning(f"Invalid WEEK_START: {e}")
            case "google_accounts":
                config.google_accounts = _parse_google_accounts(value)
            case "google_client_secret_file":
                config.google_client_secret_file = value
            case "icalpal_include_calendars":
                config.icalpal_include_calendars = _split_list(value)
            case "icalpal_exclude_calendars":
                config.icalpal_exclude_calendars = _split_list(value)

    return config
