"""ColorCal CLI - calendar activity at a glance."""

import logging
import sys
from datetime import date, datetime

import click

from .config import PreferenceStore, load_config
from .core.calendar import day_start_ms, format_time_range
from .core.grid import WEEKDAYS, add_months, grid_range_ms, month_grid
from .core.preferences import colors_by_id, group_calendars, merge_preferences, normalize_color
from .ports.calendar_provider import InvalidArgument, ProviderError
from .workflows import (
    CalendarService,
    build_provider,
    check_range,
    dumps,
    encode_bucket_map,
    encode_calendars,
    encode_error,
    encode_events,
)

DOT = "●"
MAX_DOTS = 3


def _service() -> CalendarService:
    config = load_config()
    return CalendarService(build_provider(config), tz=config.tz())


def _fail_json(error: ProviderError) -> None:
    """Print a JSON error and exit non-zero."""
    click.echo(dumps(encode_error(error)))
    sys.exit(2 if isinstance(error, InvalidArgument) else 1)


class JsonCommand(click.Command):
    """Command that reports bad arguments as a JSON error."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            _fail_json(InvalidArgument(e.format_message()))


def _fail(error: ProviderError) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _split_ids(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [c.strip() for c in value.split(",") if c.strip()]


def _rgb(color: str) -> tuple[int, int, int]:
    color = normalize_color(color)
    return int(color[1:3], 16), int(color[3:5], 16), int(color[5:7], 16)


@click.group()
@click.version_option(package_name="colorcal")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """ColorCal - which calendars are busy on which days."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


# --- JSON commands (same contract as the native helper) ---


@main.command("list-calendars", cls=JsonCommand)
def list_calendars():
    """List calendars as JSON."""
    try:
        calendars = _service().list_calendars()
    except ProviderError as e:
        _fail_json(e)
    click.echo(dumps(encode_calendars(calendars)))


@main.command("events-by-day", cls=JsonCommand)
@click.option("--start-ms", type=int, required=True, help="Range start (epoch ms, inclusive)")
@click.option("--end-ms", type=int, required=True, help="Range end (epoch ms, exclusive)")
@click.option("--cal-ids", default=None, help="Comma-separated calendar ids (default: enabled calendars)")
def events_by_day(start_ms: int, end_ms: int, cal_ids: str | None):
    """Map each day to the calendars with events that day, as JSON."""
    service = _service()
    try:
        check_range(start_ms, end_ms)
        ids = _split_ids(cal_ids)
        if ids is None:
            ids = service.enabled_calendar_ids(PreferenceStore())
            if not ids:
                click.echo(dumps({}))
                return
        by_day = service.events_by_day(start_ms, end_ms, ids)
    except ProviderError as e:
        _fail_json(e)
    click.echo(dumps(encode_bucket_map(by_day)))


@main.command("events-for-day", cls=JsonCommand)
@click.option("--day-ms", type=int, required=True, help="Any instant within the day (epoch ms)")
@click.option("--cal-ids", default=None, help="Comma-separated calendar ids (default: enabled calendars)")
def events_for_day(day_ms: int, cal_ids: str | None):
    """List one day's events in display order, as JSON."""
    service = _service()
    try:
        ids = _split_ids(cal_ids)
        if ids is None:
            ids = service.enabled_calendar_ids(PreferenceStore())
            if not ids:
                click.echo(dumps([]))
                return
        events = service.events_for_day(day_ms, ids)
    except ProviderError as e:
        _fail_json(e)
    click.echo(dumps(encode_events(events)))


# --- Human-readable views ---


def _cell(day: date, month: date, calendar_ids: list[str], colors: dict[str, str], today: date) -> str:
    number = f"{day.day:2}"
    if day == today:
        number = click.style(number, reverse=True)
    elif day.month != month.month:
        number = click.style(number, dim=True)

    shown = calendar_ids[:MAX_DOTS]
    dots = "".join(click.style(DOT, fg=_rgb(colors.get(c, ""))) for c in shown)
    return number + " " + dots + " " * (MAX_DOTS - len(shown))


@main.command()
@click.option("--month", "month_str", default=None, help="Month to show (YYYY-MM), defaults to this month")
@click.option("--offset", "-n", type=int, default=0, help="Months forward (negative for back) from --month")
def month(month_str: str | None, offset: int):
    """Show a six-week grid with a colored dot per busy calendar."""
    config = load_config()
    tz = config.tz()
    service = CalendarService(build_provider(config), tz=tz)
    store = PreferenceStore()

    try:
        target = datetime.strptime(month_str, "%Y-%m").date() if month_str else date.today().replace(day=1)
    except ValueError:
        click.echo(f"Error: invalid month {month_str!r}, expected YYYY-MM", err=True)
        sys.exit(2)
    target = add_months(target, offset)

    try:
        prefs = service.calendar_preferences(store)
        ids = [p.id for p in prefs if p.enabled]
        start_ms, end_ms = grid_range_ms(target, tz, config.week_start)
        by_day = service.events_by_day(start_ms, end_ms, ids) if ids else {}
    except ProviderError as e:
        _fail(e)

    colors = colors_by_id(prefs)
    order = {p.id: i for i, p in enumerate(prefs)}
    today = date.today()

    click.echo(target.strftime("%B %Y").center(7 * 7))
    names = sorted(WEEKDAYS, key=lambda n: (WEEKDAYS[n] - config.week_start) % 7)
    click.echo(" ".join(n[:2].title().ljust(6) for n in names).rstrip())

    days = month_grid(target, config.week_start)
    for week in range(6):
        cells = []
        for d in days[week * 7 : week * 7 + 7]:
            active = sorted(by_day.get(d.isoformat(), ()), key=lambda c: order.get(c, len(order)))
            cells.append(_cell(d, target, active, colors, today))
        click.echo(" ".join(cells).rstrip())


@main.command()
@click.option("--date", "-d", "target_date", default=None, help="Date to view (YYYY-MM-DD), defaults to today")
def day(target_date: str | None):
    """Show one day's events, color-coded by calendar."""
    config = load_config()
    tz = config.tz()
    service = CalendarService(build_provider(config), tz=tz)

    try:
        target = date.fromisoformat(target_date) if target_date else date.today()
    except ValueError:
        click.echo(f"Error: invalid date {target_date!r}, expected YYYY-MM-DD", err=True)
        sys.exit(2)

    try:
        prefs = service.calendar_preferences(PreferenceStore())
        ids = [p.id for p in prefs if p.enabled]
        events = service.events_for_day(day_start_ms(target, tz), ids) if ids else []
    except ProviderError as e:
        _fail(e)

    colors = colors_by_id(prefs)
    click.echo(f"### {target.strftime('%A, %B %d, %Y')}")
    if not events:
        click.echo("  No events.")
        return

    for event in events:
        dot = click.style(DOT, fg=_rgb(colors.get(event.calendar_id, "")))
        time_str = format_time_range(event, target, tz)
        click.echo(f"  {dot} {time_str:24} {event.title}")


# --- Preferences ---


@main.command()
def calendars():
    """List calendars grouped by account, with enabled flag and color."""
    service = _service()
    store = PreferenceStore()
    try:
        descriptors = service.list_calendars()
    except ProviderError as e:
        _fail(e)

    prefs = merge_preferences(descriptors, store.load())
    store.save(prefs)
    by_id = {p.id: p for p in prefs}

    for label, members in group_calendars(descriptors):
        click.echo(label)
        for d in members:
            pref = by_id[d.id]
            mark = "x" if pref.enabled else " "
            dot = click.style(DOT, fg=_rgb(pref.color))
            click.echo(f"  [{mark}] {dot} {pref.color}  {d.name}  ({d.id})")


def _update_pref(calendar_id: str, **changes) -> None:
    store = PreferenceStore()
    try:
        prefs = _service().calendar_preferences(store)
    except ProviderError as e:
        _fail(e)

    for pref in prefs:
        if pref.id == calendar_id:
            for key, value in changes.items():
                setattr(pref, key, value)
            store.save(prefs)
            return

    click.echo(f"Error: no calendar with id {calendar_id!r}", err=True)
    sys.exit(1)


@main.command()
@click.argument("calendar_id")
def enable(calendar_id: str):
    """Show a calendar's events."""
    _update_pref(calendar_id, enabled=True)
    click.echo(f"Enabled {calendar_id}")


@main.command()
@click.argument("calendar_id")
def disable(calendar_id: str):
    """Hide a calendar's events."""
    _update_pref(calendar_id, enabled=False)
    click.echo(f"Disabled {calendar_id}")


@main.command()
@click.argument("calendar_id")
@click.argument("hex_color")
def color(calendar_id: str, hex_color: str):
    """Set a calendar's dot color (#RRGGBB)."""
    normalized = normalize_color(hex_color)
    if normalized != hex_color.strip().upper():
        click.echo(f"Error: invalid color {hex_color!r}, expected #RRGGBB", err=True)
        sys.exit(2)
    _update_pref(calendar_id, color=normalized)
    click.echo(f"Set {calendar_id} to {normalized}")


@main.command("cal-auth")
@click.option("--account", default=None, help="Label of account to authenticate (default: all)")
def cal_auth(account: str | None):
    """Authenticate with Google Calendar."""
    config = load_config()

    if not config.google_accounts:
        click.echo("No Google accounts configured in colorcal.conf", err=True)
        sys.exit(1)

    if not config.google_client_secret_file:
        click.echo("GOOGLE_CLIENT_SECRET_FILE not set in colorcal.conf", err=True)
        sys.exit(1)

    from .adapters.google_calendar import GoogleCalendarProvider

    for acct in config.google_accounts:
        if account and acct.label != account:
            continue

        click.echo(f"\nAuthenticating: {acct.label or acct.config_folder}")
        provider = GoogleCalendarProvider(
            config_folder=acct.config_folder,
            label=acct.label,
            client_secret_file=config.google_client_secret_file,
        )
        if provider.authenticate():
            click.echo(f"  ✓ Token saved to {provider._token_path}")
        else:
            click.echo("  ✗ Authentication failed", err=True)


if __name__ == "__main__":
    main()
