"""Error taxonomy + structured error logging (JSON to errors.log)."""
import json
import logging
import sys
from datetime import datetime
from typing import Optional

from .config import ERRORS_LOG, DATA_DIR, DEV_MODE

logger = logging.getLogger(__name__)


class CrestinError(Exception):
    """Base class for every error raised by the player core."""


class ProcessStartTimeout(CrestinError):
    """The control socket never appeared after launching the player."""


class ProcessExited(CrestinError):
    def __init__(self, returncode: Optional[int]):
        super().__init__(f"Player process exited with code {returncode}")
        self.returncode = returncode


class CommandTimeout(CrestinError):
    def __init__(self, command: list, timeout: float):
        super().__init__(f"Command {command[0]!r} timed out after {timeout:g}s")
        self.command = command
        self.timeout = timeout


class CommandError(CrestinError):
    """The player answered a command with a non-success status."""

    def __init__(self, command: list, error: str):
        super().__init__(f"Command {command[0]!r} failed: {error}")
        self.command = command
        self.error = error


class Disconnected(CrestinError):
    """The control socket is closed (or was never opened)."""


class NoStreamsAvailable(CrestinError):
    def __init__(self, station_title: str):
        super().__init__(f"No streams available for station: {station_title}")
        self.station_title = station_title


class AllStreamsFailed(CrestinError):
    def __init__(self, station_title: str, attempts: int):
        super().__init__(
            f"All streams failed for {station_title} after {attempts} retries"
        )
        self.station_title = station_title
        self.attempts = attempts


class StationsFetchError(CrestinError):
    """The station directory could not be fetched or parsed."""


_FRIENDLY_MESSAGES = {
    "process_start": "Couldn't start the audio player.",
    "process_exit": "The audio player stopped unexpectedly.",
    "play_station": "Couldn't play this station — all streams failed.",
    "stations_fetch": "Couldn't load the station list.",
    "command": "The player didn't respond — try again.",
}


def format_error(
    stage: str,
    station: str = "",
    context: Optional[dict] = None,
    raw: str = "",
) -> str:
    entry = {
        "timestamp": datetime.now().isoformat(),
        "stage": stage,
        "station": station,
        "context": context,
        "error": raw,
        "python": sys.version.split()[0],
    }

    _append_to_log(entry)
    logger.error("Error at %s: %s", stage, raw)

    if DEV_MODE:
        return json.dumps(entry, indent=2)
    return _FRIENDLY_MESSAGES.get(stage, f"Something went wrong ({stage}).")


def _append_to_log(entry: dict):
    try:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        with open(ERRORS_LOG, "a") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError:
        pass
