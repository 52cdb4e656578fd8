"""Bridge adapter - subprocess wrapper for a native calendar helper binary.

The helper takes one command name plus `--flag value` pairs, prints a single
JSON value on success, and prints {"error": "..."} with a non-zero exit
status on failure.
"""

import json
import logging
import subprocess
import threading
from pathlib import Path

from colorcal.core.calendar import CalendarDescriptor, CalendarEvent
from colorcal.ports.calendar_provider import (
    AccessDenied,
    AccessResult,
    InvalidRange,
    MalformedResponse,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)

_ACCESS_PHRASES = ("not granted", "permission", "denied")


def _is_access_error(message: str) -> bool:
    lowered = message.lower()
    return any(phrase in lowered for phrase in _ACCESS_PHRASES)


def _is_unknown_command(message: str) -> bool:
    return message.lower().startswith("unknown command")


def _provider_error(message: str) -> ProviderUnavailable | AccessDenied:
    if _is_access_error(message):
        return AccessDenied(message)
    return ProviderUnavailable(message)


class BridgeProvider:
    """
    Native helper subprocess adapter.

    Implements CalendarProvider protocol. Optionally builds the helper on
    first use when the binary is missing or older than its sources.
    """

    def __init__(
        self,
        binary: Path | str,
        build_command: list[str] | None = None,
        source_dir: Path | str | None = None,
        timeout: int = 30,
    ):
        self.binary = Path(binary).expanduser()
        self.build_command = build_command
        self.source_dir = Path(source_dir).expanduser() if source_dir else None
        self.timeout = timeout
        self._build_lock = threading.Lock()
        self._built = False

    # --- Build on demand ---

    def _needs_build(self) -> bool:
        if not self.binary.exists():
            return True
        if not self.source_dir or not self.source_dir.exists():
            return False
        binary_mtime = self.binary.stat().st_mtime
        return any(
            p.stat().st_mtime > binary_mtime
            for p in self.source_dir.rglob("*")
            if p.is_file() and ".build" not in p.parts
        )

    def ensure_built(self) -> None:
        """Build the helper once per process if needed. Safe to call concurrently."""
        if self._built:
            return
        with self._build_lock:
            if self._built:
                return
            if self.build_command and self._needs_build():
                logger.info(f"Building calendar helper: {' '.join(self.build_command)}")
                try:
                    subprocess.run(
                        self.build_command,
                        cwd=self.source_dir,
                        capture_output=True,
                        text=True,
                        check=True,
                        timeout=self.timeout * 10,
                    )
                except subprocess.CalledProcessError as e:
                    logger.warning(f"Calendar helper build failed: {e.stderr}")
                    raise ProviderUnavailable(f"Calendar helper build failed: {e.stderr.strip()}") from e
                except FileNotFoundError as e:
                    raise ProviderUnavailable(f"Build tool not found: {self.build_command[0]}") from e
                except subprocess.TimeoutExpired as e:
                    raise ProviderUnavailable("Calendar helper build timed out") from e
            if not self.binary.exists():
                raise ProviderUnavailable(f"Calendar helper not found at {self.binary}")
            self._built = True

    # --- Running commands ---

    def _run(self, command: str, *args: str):
        """Run one helper command and return its decoded JSON output."""
        self.ensure_built()
        cmd = [str(self.binary), command, *args]
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ProviderUnavailable(f"Calendar helper not found at {self.binary}") from e
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Calendar helper timed out after {self.timeout}s")
            raise ProviderUnavailable(f"Calendar helper timed out after {self.timeout}s") from e

        stdout = proc.stdout.strip()
        if proc.returncode != 0:
            message = self._error_message(stdout) or proc.stderr.strip() or f"exit status {proc.returncode}"
            logger.warning(f"Calendar helper '{command}' failed: {message}")
            raise _provider_error(message)

        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse calendar helper output: {e}")
            raise MalformedResponse(f"Unparseable output from '{command}': {e}") from e

        if isinstance(data, dict) and "error" in data:
            message = str(data["error"])
            logger.warning(f"Calendar helper '{command}' failed: {message}")
            raise _provider_error(message)
        return data

    @staticmethod
    def _error_message(stdout: str) -> str:
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError:
            return ""
        if isinstance(data, dict):
            return str(data.get("error", ""))
        return ""

    # --- CalendarProvider ---

    def request_access(self) -> AccessResult:
        try:
            self._run("request-access")
        except AccessDenied as e:
            return AccessResult.denied(str(e))
        except ProviderUnavailable as e:
            # Helpers without the command check access on every call instead
            if _is_unknown_command(str(e)):
                logger.debug("Calendar helper has no request-access command")
                return AccessResult.ok()
            raise
        return AccessResult.ok()

    def list_calendars(self) -> list[CalendarDescriptor]:
        data = self._run("list-calendars")
        if not isinstance(data, list):
            raise MalformedResponse("list-calendars did not return a list")
        try:
            return [CalendarDescriptor.from_dict(item) for item in data]
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"Malformed calendar entry: {e}") from e

    def fetch_events(
        self,
        range_start_ms: int,
        range_end_ms: int,
        calendar_ids: set[str] | None = None,
    ) -> list[CalendarEvent]:
        if range_start_ms >= range_end_ms:
            raise InvalidRange(f"Empty or inverted range: {range_start_ms} >= {range_end_ms}")
        args = ["--start-ms", str(range_start_ms), "--end-ms", str(range_end_ms)]
        if calendar_ids:
            args.extend(["--cal-ids", ",".join(sorted(calendar_ids))])
        data = self._run("list-events", *args)
        if not isinstance(data, list):
            raise MalformedResponse("list-events did not return a list")
        try:
            return [CalendarEvent.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedResponse(f"Malformed event entry: {e}") from e
