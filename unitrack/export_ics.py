"""
iCalendar (.ics) export.

Admission start/end dates and dated targets become all-day events, so the
application calendar can be imported into:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from unitrack.views import calendar_events


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def export_workspace_to_ics(ws: dict[str, Any], out_path: str | Path) -> int:
    """
    Write all calendar events of the workspace to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//unitrack//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for ev in calendar_events(ws):
        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(ev.id)}@unitrack")
        lines.append(f"DTSTAMP:{dtstamp}")
        # all-day: DTEND is the following day (exclusive)
        lines.append(f"DTSTART;VALUE=DATE:{ev.date.strftime('%Y%m%d')}")
        lines.append(f"DTEND;VALUE=DATE:{(ev.date + timedelta(days=1)).strftime('%Y%m%d')}")
        lines.append(f"SUMMARY:{_ics_escape(ev.title)}")
        lines.append(f"CATEGORIES:{ev.kind.upper()}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
