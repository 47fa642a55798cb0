"""
Admission window status.

Given the start/end of an admission window (either may be missing) and the
current time, pick exactly one status:

    no_dates      neither date known
    open_now      now inside [start, end], end more than 14 days away
    closing_soon  now inside [start, end] (or before end), end within 14 days
    opening_soon  start in the future, within 14 days
    upcoming      start in the future, more than 14 days away
    past          window over (or start passed with no end known)

The same rule drives the dashboard buckets, the universities status filter
and the calendar. The 14-day threshold is inclusive on the "soon" side.
All times are epoch milliseconds so the function stays pure.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Any, Optional

DAY_MS = 24 * 60 * 60 * 1000
SOON_MS = 14 * DAY_MS

NO_DATES = "no_dates"
OPEN_NOW = "open_now"
OPENING_SOON = "opening_soon"
CLOSING_SOON = "closing_soon"
UPCOMING = "upcoming"
PAST = "past"

# Display order used by the dashboard.
STATUSES = (CLOSING_SOON, OPEN_NOW, OPENING_SOON, UPCOMING, PAST, NO_DATES)

STATUS_LABELS = {
    CLOSING_SOON: "Closing soon",
    OPEN_NOW: "Open now",
    OPENING_SOON: "Opening soon",
    UPCOMING: "Upcoming",
    PAST: "Past",
    NO_DATES: "No dates",
}

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_date_ms(value: Any) -> Optional[int]:
    """
    Parse 'YYYY-MM-DD' as UTC midnight and return epoch milliseconds.

    Anything else (non-strings, other formats, impossible dates) -> None.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _DATE_RE.match(text):
        return None
    try:
        dt = datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None
    return int(dt.timestamp() * 1000)


def _before_start(start: int, now: int) -> str:
    return OPENING_SOON if start - now <= SOON_MS else UPCOMING


def _before_end(end: int, now: int) -> str:
    return CLOSING_SOON if end - now <= SOON_MS else OPEN_NOW


def classify(start_ms: Optional[int], end_ms: Optional[int], now: int) -> str:
    """
    Return the window status for (start, end) at time `now`.
    """
    if start_ms is None and end_ms is None:
        return NO_DATES

    if start_ms is not None and end_ms is not None:
        if start_ms <= now <= end_ms:
            return _before_end(end_ms, now)
        if start_ms > now:
            return _before_start(start_ms, now)
        return PAST

    if start_ms is not None:
        return _before_start(start_ms, now) if start_ms > now else PAST

    # only the end date is set
    return _before_end(end_ms, now) if now <= end_ms else PAST


def window_dates(university: dict[str, Any], calendar: dict[str, Any] | None) -> tuple[Optional[int], Optional[int]]:
    """
    Resolve (start_ms, end_ms) of a university through the admin calendar mapping.
    """
    calendar = calendar or {}
    fields = university.get("fields") or {}
    start_key = calendar.get("startFieldKey")
    end_key = calendar.get("endFieldKey")
    start = parse_date_ms(fields.get(start_key)) if start_key else None
    end = parse_date_ms(fields.get(end_key)) if end_key else None
    return start, end


def classify_university(university: dict[str, Any], calendar: dict[str, Any] | None, now: int) -> str:
    start, end = window_dates(university, calendar)
    return classify(start, end, now)
