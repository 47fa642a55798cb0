"""
Derived views of the workspace.

Nothing in here changes the document; these functions turn a workspace
dict into what the dashboard, calendar, universities table and checklist
show. Window status comes from unitrack.periods, using the date fields the
admin mapped as start/end.
"""

from __future__ import annotations

import calendar as _calendar
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from unitrack.fields import field_definitions
from unitrack.model import CalendarEvent, FieldDefinition
from unitrack.periods import STATUSES, classify_university, now_ms, parse_date_ms, window_dates

# Shown on their own pages, not as table columns.
HIDDEN_FIELD_KEYS = {"required_documents", "degree_duration_months"}


def _calendar_mapping(ws: dict[str, Any]) -> dict[str, Any]:
    return (ws.get("admin") or {}).get("calendar") or {}


def _name_key(u: dict[str, Any]) -> str:
    return str(u.get("name", "")).casefold()


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def dashboard_buckets(ws: dict[str, Any], now: Optional[int] = None) -> dict[str, list[dict[str, Any]]]:
    """
    Group universities by admission window status.

    Every status is present (possibly empty), in STATUSES order. Inside a
    bucket, universities are ordered by the date that matters for it (end
    for open windows, start otherwise), then by name.
    """
    now = now_ms() if now is None else now
    mapping = _calendar_mapping(ws)
    buckets: dict[str, list[tuple[int, str, dict[str, Any]]]] = defaultdict(list)

    for u in ws.get("universities", []):
        status = classify_university(u, mapping, now)
        start, end = window_dates(u, mapping)
        if status in ("open_now", "closing_soon"):
            pivot = end if end is not None else start
        else:
            pivot = start if start is not None else end
        buckets[status].append((pivot if pivot is not None else 0, _name_key(u), u))

    return {s: [u for _, _, u in sorted(buckets[s], key=lambda t: (t[0], t[1]))] for s in STATUSES}


def upcoming_targets(ws: dict[str, Any], limit: int = 5) -> list[dict[str, Any]]:
    """
    Targets with a date, soonest first.
    """
    dated = [t for t in ws.get("targets", []) if _parse_day(t.get("targetDate"))]
    dated.sort(key=lambda t: str(t.get("targetDate")))
    return dated[:limit]


def checklist_progress(ws: dict[str, Any]) -> dict[str, Any]:
    """
    Collected vs. total templates, plus the required ones still missing.
    """
    templates = ws.get("documentTemplates", [])
    collected = set(ws.get("collectedDocumentIds", []))
    done = [t for t in templates if t.get("id") in collected]
    missing_required = [t for t in templates if t.get("requiredByDefault") and t.get("id") not in collected]
    return {"collected": len(done), "total": len(templates), "missing_required": missing_required}


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


def _parse_day(value: Any) -> Optional[date]:
    """
    Same YYYY-MM-DD rule as the status classifier, so a date shows up in the
    calendar exactly when it counts for the window status.
    """
    ms = parse_date_ms(value)
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).date()


def calendar_events(ws: dict[str, Any]) -> list[CalendarEvent]:
    """
    Admission start/end dates of every university plus dated targets.
    """
    mapping = _calendar_mapping(ws)
    start_key = mapping.get("startFieldKey")
    end_key = mapping.get("endFieldKey")

    out: list[CalendarEvent] = []
    for u in ws.get("universities", []):
        fields = u.get("fields") or {}
        for kind, key in (("start", start_key), ("end", end_key)):
            if not key:
                continue
            d = _parse_day(fields.get(key))
            if d:
                out.append(
                    CalendarEvent(
                        id=f"{u.get('id')}:{kind}",
                        title=f"{u.get('name', '')} ({kind})",
                        date=d,
                        kind=kind,
                        university_id=u.get("id"),
                    )
                )

    for t in ws.get("targets", []):
        d = _parse_day(t.get("targetDate"))
        if d:
            out.append(CalendarEvent(id=f"{t.get('id')}:target", title=str(t.get("name", "")), date=d, kind="target"))

    out.sort(key=lambda e: (e.date, e.title))
    return out


def events_by_day(events: list[CalendarEvent]) -> dict[date, list[CalendarEvent]]:
    out: dict[date, list[CalendarEvent]] = defaultdict(list)
    for e in events:
        out[e.date].append(e)
    return dict(out)


def month_grid(year: int, month: int) -> list[list[date]]:
    """
    Weeks (Monday first) covering the whole month, padded with
    days of the neighbouring months.
    """
    first = date(year, month, 1)
    last = date(year, month, _calendar.monthrange(year, month)[1])
    day = first - timedelta(days=first.weekday())
    grid_end = last + timedelta(days=6 - last.weekday())

    weeks: list[list[date]] = []
    while day <= grid_end:
        weeks.append([day + timedelta(days=i) for i in range(7)])
        day += timedelta(days=7)
    return weeks


# ---------------------------------------------------------------------------
# Universities table
# ---------------------------------------------------------------------------


def visible_field_definitions(ws: dict[str, Any]) -> list[FieldDefinition]:
    return [d for d in field_definitions(ws) if d.key not in HIDDEN_FIELD_KEYS and "ielts" not in d.key.lower()]


def filter_universities(
    ws: dict[str, Any], status: Optional[str] = None, search: str = "", now: Optional[int] = None
) -> list[dict[str, Any]]:
    """
    Universities sorted by name, optionally limited to one window status
    and/or a search text (matched against name, city and degree title).
    """
    now = now_ms() if now is None else now
    mapping = _calendar_mapping(ws)
    query = (search or "").strip().casefold()

    out = []
    for u in ws.get("universities", []):
        if status and classify_university(u, mapping, now) != status:
            continue
        if query:
            hay = " ".join(str(u.get(k) or "") for k in ("name", "city", "degreeTitle")).casefold()
            if query not in hay:
                continue
        out.append(u)
    return sorted(out, key=_name_key)


def format_field_value(definition: FieldDefinition, value: Any) -> str:
    """
    Table cell text for one custom field value.
    """
    if value is None:
        return ""
    if definition.type == "boolean":
        return "Yes" if value else "No"
    if definition.type == "date":
        d = _parse_day(value)
        return d.isoformat() if d else str(value)
    return str(value)
