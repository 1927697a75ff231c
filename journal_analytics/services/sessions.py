"""Trading session classification.

Two independent tables live here and must stay separate:

* ``classify_session`` answers *which* session a trade was entered in. It
  works in New York wall-clock time, so US daylight-saving transitions move
  the UTC boundaries twice a year.
* ``minutes_since_session_open`` answers *how far into* a session a trade
  was entered. It uses fixed UTC-hour windows.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from journal_analytics.utils.time import to_utc

NEW_YORK = ZoneInfo("America/New_York")

TOKYO = "tokyo"
LONDON = "london"
NEW_YORK_AM = "new_york_am"
NEW_YORK_PM = "new_york_pm"
OFF_HOURS = "off_hours"

SESSIONS = (TOKYO, LONDON, NEW_YORK_AM, NEW_YORK_PM, OFF_HOURS)

# (start_hour, end_hour) in UTC
UTC_SESSION_WINDOWS: dict[str, tuple[int, int]] = {
    "tokyo": (0, 9),
    "london": (7, 16),
    "new_york": (13, 22),
    "overlap_london_ny": (13, 16),
}

# Classifier labels that measure elapsed time from a different window name
_WINDOW_ALIASES = {
    NEW_YORK_AM: "new_york",
    NEW_YORK_PM: "new_york",
}


def new_york_time(ts: datetime) -> float:
    """Hour of day in America/New_York as a real number in [0, 24)."""
    local = to_utc(ts).astimezone(NEW_YORK)
    return local.hour + local.minute / 60


def classify_session(ts: datetime) -> str:
    """Map a UTC instant to a named session.

    London is checked first so 03:00-04:00 ET is London, not Tokyo.
    """
    et_time = new_york_time(ts)
    if 3 <= et_time < 8:
        return LONDON
    if 8 <= et_time < 12:
        return NEW_YORK_AM
    if 12 <= et_time < 17:
        return NEW_YORK_PM
    if et_time >= 19 or et_time < 3:
        return TOKYO
    return OFF_HOURS


def minutes_since_session_open(session: str | None, ts: datetime) -> int | None:
    """Minutes between the session's UTC open and ``ts``.

    An entry earlier in the day than the window start is counted from the
    previous day's open. Returns None for sessions without a UTC window.
    """
    if not session:
        return None
    window = UTC_SESSION_WINDOWS.get(_WINDOW_ALIASES.get(session, session))
    if window is None:
        return None

    ts = to_utc(ts)
    start_minutes = window[0] * 60
    entry_minutes = ts.hour * 60 + ts.minute
    if entry_minutes < start_minutes:
        return entry_minutes + 24 * 60 - start_minutes
    return entry_minutes - start_minutes
