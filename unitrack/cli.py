"""
CLI (Command Line Interface).

Quick terminal commands on top of the workspace API, e.g.:

    unitrack serve
    unitrack dashboard
    unitrack calendar --month 2026-07
    unitrack universities --status closing_soon
    unitrack checklist
    unitrack export <file.ics>

and for editing:

    unitrack university add "TU Berlin" --city Berlin --field admission_end=2026-07-15
    unitrack university edit <id> --fee 350
    unitrack check <template id>
    unitrack target add "IELTS 7.0" --date 2026-05-01
    unitrack note add "APS" --body "book appointment"
    unitrack field add "Semester contribution" --type number
    unitrack field map --start admission_start --end admission_end
    unitrack upload add passport.pdf --name Passport

Note:
- `serve` runs the HTTP API; every other command talks to it through
  WorkspaceClient (UNITRACK_API_URL or --url), like any other front-end
- edits fetch the workspace, apply one change and save the whole document
- ids can be given in full or as a unique prefix (tables show 8 chars)
- output is rendered with rich tables
"""

from __future__ import annotations

import argparse
import logging
import mimetypes
from datetime import MAXYEAR, MINYEAR, date
from pathlib import Path
from typing import Any, Callable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from unitrack import records
from unitrack.client import WorkspaceClient
from unitrack.config import configure_logging, load_settings
from unitrack.errors import NotFoundError, UnitrackError, ValidationError
from unitrack.export_ics import export_workspace_to_ics
from unitrack.fields import add_field_definition, field_definitions, remove_field_definition, set_calendar_mapping
from unitrack.model import FIELD_TYPES
from unitrack.periods import STATUS_LABELS, STATUSES, now_ms, parse_date_ms
from unitrack.views import (
    calendar_events,
    checklist_progress,
    dashboard_buckets,
    events_by_day,
    filter_universities,
    format_field_value,
    month_grid,
    upcoming_targets,
    visible_field_definitions,
)

logger = logging.getLogger(__name__)

console = Console()

Workspace = dict[str, Any]


def _make_client(args: argparse.Namespace) -> WorkspaceClient:
    url = (getattr(args, "url", None) or "").strip() or load_settings().api_url
    return WorkspaceClient(url)


def _print_error(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")


def _fetch(args: argparse.Namespace) -> tuple[WorkspaceClient, Workspace | None]:
    """
    Fetch the workspace, printing the client's error when that fails.
    """
    client = _make_client(args)
    ws = client.fetch()
    if ws is None:
        _print_error(client.error or "")
    return client, ws


def _short(record_id: Any) -> str:
    return str(record_id or "")[:8]


def _resolve(items: list[dict[str, Any]], ref: str, what: str) -> dict[str, Any]:
    """
    Find a record by full id or unique id prefix.
    """
    ref = (ref or "").strip()
    for item in items:
        if item.get("id") == ref:
            return item
    matches = [item for item in items if ref and str(item.get("id", "")).startswith(ref)]
    if not matches:
        raise NotFoundError(f"{what} not found: {ref}")
    if len(matches) > 1:
        raise ValidationError(f"{what} id {ref!r} is ambiguous")
    return matches[0]


def _apply_change(args: argparse.Namespace, change: Callable[[Workspace], tuple[Workspace, str]]) -> int:
    """
    Fetch, apply one change, save. Returns the exit code.
    """
    client, ws = _fetch(args)
    if ws is None:
        return 1
    try:
        next_ws, message = change(ws)
    except UnitrackError as exc:
        _print_error(str(exc))
        return 1
    if not client.save(next_ws):
        _print_error(client.error or "Save failed")
        return 1
    console.print(escape(message))
    return 0


def _parse_month(text: str | None) -> tuple[int, int]:
    """
    'YYYY-MM' -> (year, month); empty means the current month.
    Raises ValueError for invalid input.
    """
    if not text:
        today = date.today()
        return today.year, today.month
    parts = text.strip().split("-")
    if len(parts) != 2:
        raise ValueError(f"Invalid month: {text!r}")
    year, month = int(parts[0]), int(parts[1])
    # the grid of the last supported month runs into the following year
    if not 1 <= month <= 12 or not MINYEAR <= year < MAXYEAR:
        raise ValueError(f"Invalid month: {text!r}")
    return year, month


def _check_date(text: str | None) -> str | None:
    """
    Empty stays empty (clears the date); anything else must be YYYY-MM-DD.
    """
    if text is None or not text.strip():
        return text
    if parse_date_ms(text) is None:
        raise ValidationError(f"Invalid date (use YYYY-MM-DD): {text}")
    return text.strip()


def _parse_field_args(items: list[str] | None) -> dict[str, str]:
    """
    ['admission_end=2026-07-15', ...] -> {'admission_end': '2026-07-15', ...}
    """
    out: dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValidationError(f"Expected KEY=VALUE, got {item!r}")
        out[key.strip()] = value
    return out


# ---------------------------------------------------------------------------
# Server and views
# ---------------------------------------------------------------------------


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from unitrack.api import create_app

    settings = load_settings()
    mode = "read-only" if settings.read_only else "read-write"
    logger.info("Serving %s (%s) on %s:%d", settings.data_dir, mode, args.host, args.port)
    uvicorn.run(create_app(settings=settings), host=args.host, port=args.port)
    return 0


def _cmd_dashboard(args: argparse.Namespace) -> int:
    _, ws = _fetch(args)
    if ws is None:
        return 1

    buckets = dashboard_buckets(ws, now_ms())
    table = Table(title="Admission windows")
    table.add_column("Status")
    table.add_column("Universities")
    for status in STATUSES:
        names = ", ".join(escape(str(u.get("name", ""))) for u in buckets[status])
        table.add_row(STATUS_LABELS[status], names or "-")
    console.print(table)

    targets = upcoming_targets(ws)
    if targets:
        console.print("\n[bold]Upcoming targets[/bold]")
        for t in targets:
            console.print(f"- {t.get('targetDate')}  {escape(str(t.get('name')))}")
    else:
        console.print("\nNo targets with dates yet.")

    progress = checklist_progress(ws)
    console.print(f"\nDocuments collected: {progress['collected']}/{progress['total']}")
    for t in progress["missing_required"]:
        console.print(f"  missing (required): {escape(str(t.get('name')))}")
    return 0


def _cmd_calendar(args: argparse.Namespace) -> int:
    try:
        year, month = _parse_month(args.month)
    except ValueError as exc:
        console.print(escape(str(exc)))
        return 1

    _, ws = _fetch(args)
    if ws is None:
        return 1

    by_day = events_by_day(calendar_events(ws))
    table = Table(title=date(year, month, 1).strftime("%B %Y"))
    for name in ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"):
        table.add_column(name)

    for week in month_grid(year, month):
        cells = []
        for day in week:
            label = str(day.day) if day.month == month else f"[dim]{day.day}[/dim]"
            titles = [escape(e.title) for e in by_day.get(day, [])[:3]]
            cells.append("\n".join([label, *titles]))
        table.add_row(*cells)
    console.print(table)
    return 0


def _cmd_universities(args: argparse.Namespace) -> int:
    status = (args.status or "").strip() or None
    if status is not None and status not in STATUSES:
        console.print(f"Unknown status: {escape(status)} (choose from {', '.join(STATUSES)})")
        return 1

    _, ws = _fetch(args)
    if ws is None:
        return 1

    rows = filter_universities(ws, status=status, search=args.search or "", now=now_ms())
    if not rows:
        console.print("No universities.")
        return 0

    defs = visible_field_definitions(ws)
    table = Table(title=f"Universities ({len(rows)})")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("City")
    for d in defs:
        table.add_column(escape(d.label))
    for u in rows:
        fields = u.get("fields") or {}
        table.add_row(
            _short(u.get("id")),
            escape(str(u.get("name", ""))),
            escape(str(u.get("city") or "")),
            *[escape(format_field_value(d, fields.get(d.key))) for d in defs],
        )
    console.print(table)
    return 0


def _cmd_checklist(args: argparse.Namespace) -> int:
    _, ws = _fetch(args)
    if ws is None:
        return 1

    collected = set(ws.get("collectedDocumentIds", []))
    table = Table(title="Document checklist")
    table.add_column("ID")
    table.add_column("Done")
    table.add_column("Document")
    table.add_column("Category")
    table.add_column("Required")
    for t in ws.get("documentTemplates", []):
        table.add_row(
            _short(t.get("id")),
            "x" if t.get("id") in collected else "",
            escape(str(t.get("name", ""))),
            escape(str(t.get("category") or "")),
            "yes" if t.get("requiredByDefault") else "",
        )
    console.print(table)
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    out_path = (args.out or "").strip()
    if not out_path:
        console.print("Please provide output .ics path.")
        return 1

    _, ws = _fetch(args)
    if ws is None:
        return 1

    n = export_workspace_to_ics(ws, out_path)
    console.print(f"Exported {n} events to: {escape(out_path)}")
    return 0


# ---------------------------------------------------------------------------
# Universities
# ---------------------------------------------------------------------------


def _university_inputs(args: argparse.Namespace, current: dict[str, Any], ws: Workspace) -> dict[str, Any]:
    """
    Keyword arguments for records.save_university.

    Options left out keep the current value; an empty string clears it.
    """
    field_inputs = _parse_field_args(args.field)
    known = {d.key for d in field_definitions(ws)}
    for key in field_inputs:
        if key not in known:
            raise ValidationError(f"Unknown field key: {key} (see `unitrack field list`)")

    def pick(attr: str, key: str) -> Any:
        value = getattr(args, attr, None)
        return current.get(key) if value is None else value

    return {
        "name": pick("name", "name"),
        "city": pick("city", "city"),
        "website": pick("website", "website"),
        "degree_title": pick("degree", "degreeTitle"),
        "duration_semesters": pick("semesters", "durationSemesters"),
        "tuition_fee_per_semester": pick("fee", "tuitionFeePerSemester"),
        "german_language_test_required": bool(pick("german_test", "germanLanguageTestRequired")),
        "notes": pick("notes", "notes"),
        "field_inputs": field_inputs,
    }


def _cmd_university_add(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        uni = records.new_university()
        next_ws, _ = records.save_university(ws, uni, **_university_inputs(args, uni, ws))
        return next_ws, f"Added university {args.name.strip()} ({_short(uni['id'])})"

    return _apply_change(args, change)


def _cmd_university_edit(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        uni = _resolve(ws.get("universities", []), args.id, "University")
        next_ws, _ = records.save_university(ws, uni, **_university_inputs(args, uni, ws))
        return next_ws, f"Updated university {_short(uni['id'])}"

    return _apply_change(args, change)


def _cmd_university_rm(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        uni = _resolve(ws.get("universities", []), args.id, "University")
        return records.delete_university(ws, uni["id"]), f"Deleted university {uni.get('name', '')}"

    return _apply_change(args, change)


def _cmd_university_docs(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        uni = _resolve(ws.get("universities", []), args.id, "University")
        templates = ws.get("documentTemplates", [])
        ids = [_resolve(templates, ref, "Document template")["id"] for ref in args.templates]
        next_ws = records.set_required_documents(ws, uni["id"], ids)
        return next_ws, f"{uni.get('name', '')} requires {len(set(ids))} documents"

    return _apply_change(args, change)


# ---------------------------------------------------------------------------
# Document checklist
# ---------------------------------------------------------------------------


def _cmd_document_add(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        next_ws = records.add_document_template(ws, args.name, args.category, args.required)
        return next_ws, f"Added document {args.name.strip()} ({_short(next_ws['documentTemplates'][-1]['id'])})"

    return _apply_change(args, change)


def _cmd_document_rm(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        template = _resolve(ws.get("documentTemplates", []), args.id, "Document template")
        return records.delete_document_template(ws, template["id"]), f"Deleted document {template.get('name', '')}"

    return _apply_change(args, change)


def _cmd_check(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        template = _resolve(ws.get("documentTemplates", []), args.id, "Document template")
        next_ws = records.toggle_collected(ws, template["id"])
        state = "collected" if template["id"] in next_ws["collectedDocumentIds"] else "not collected"
        return next_ws, f"{template.get('name', '')}: {state}"

    return _apply_change(args, change)


# ---------------------------------------------------------------------------
# Targets & notes
# ---------------------------------------------------------------------------


def _cmd_target_list(args: argparse.Namespace) -> int:
    _, ws = _fetch(args)
    if ws is None:
        return 1
    table = Table(title="Targets")
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Name")
    table.add_column("Description")
    for t in records.sorted_by_updated(ws.get("targets", [])):
        table.add_row(
            _short(t.get("id")),
            escape(str(t.get("targetDate") or "")),
            escape(str(t.get("name", ""))),
            escape(str(t.get("description") or "")),
        )
    console.print(table)
    return 0


def _cmd_target_save(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        target = _resolve(ws.get("targets", []), args.id, "Target") if getattr(args, "id", None) else None
        current = target or {}
        next_ws, created = records.save_target(
            ws,
            target,
            name=args.name if args.name is not None else current.get("name", ""),
            description=args.description if args.description is not None else current.get("description"),
            target_date=_check_date(args.date) if args.date is not None else current.get("targetDate"),
        )
        return next_ws, "Added target" if created else "Updated target"

    return _apply_change(args, change)


def _cmd_target_rm(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        target = _resolve(ws.get("targets", []), args.id, "Target")
        return records.delete_target(ws, target["id"]), f"Deleted target {target.get('name', '')}"

    return _apply_change(args, change)


def _cmd_note_list(args: argparse.Namespace) -> int:
    _, ws = _fetch(args)
    if ws is None:
        return 1
    notes = records.sorted_by_updated(ws.get("notes", []))
    if not notes:
        console.print("No notes.")
    for n in notes:
        console.print(f"[bold]{escape(str(n.get('title', '')))}[/bold] ({_short(n.get('id'))})")
        if n.get("body"):
            console.print(escape(str(n["body"])))
    return 0


def _cmd_note_save(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        note = _resolve(ws.get("notes", []), args.id, "Note") if getattr(args, "id", None) else None
        current = note or {}
        next_ws, created = records.save_note(
            ws,
            note,
            title=args.title if args.title is not None else current.get("title", ""),
            body=args.body if args.body is not None else current.get("body", ""),
        )
        return next_ws, "Added note" if created else "Updated note"

    return _apply_change(args, change)


def _cmd_note_rm(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        note = _resolve(ws.get("notes", []), args.id, "Note")
        return records.delete_note(ws, note["id"]), f"Deleted note {note.get('title', '')}"

    return _apply_change(args, change)


# ---------------------------------------------------------------------------
# Custom fields
# ---------------------------------------------------------------------------


def _cmd_field_list(args: argparse.Namespace) -> int:
    _, ws = _fetch(args)
    if ws is None:
        return 1
    calendar = (ws.get("admin") or {}).get("calendar") or {}
    table = Table(title="University fields")
    table.add_column("Key")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Calendar")
    for d in field_definitions(ws):
        slot = ""
        if d.key == calendar.get("startFieldKey"):
            slot = "start"
        elif d.key == calendar.get("endFieldKey"):
            slot = "end"
        table.add_row(escape(d.key), escape(d.label), d.type, slot)
    console.print(table)
    return 0


def _cmd_field_add(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        next_ws = add_field_definition(ws, args.label, key=args.key, field_type=args.type)
        return next_ws, f"Added field {field_definitions(next_ws)[-1].key}"

    return _apply_change(args, change)


def _cmd_field_rm(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        ref = args.key.strip()
        by_key = [d for d in field_definitions(ws) if d.key == ref]
        if by_key:
            definition_id = by_key[0].id
        else:
            definition_id = _resolve((ws.get("admin") or {}).get("universityFields", []), ref, "Field")["id"]
        return remove_field_definition(ws, definition_id), f"Removed field {ref}"

    return _apply_change(args, change)


def _cmd_field_map(args: argparse.Namespace) -> int:
    def change(ws: Workspace) -> tuple[Workspace, str]:
        calendar = (ws.get("admin") or {}).get("calendar") or {}
        start = calendar.get("startFieldKey") if args.start is None else (args.start.strip() or None)
        end = calendar.get("endFieldKey") if args.end is None else (args.end.strip() or None)
        return set_calendar_mapping(ws, start, end), f"Calendar: start={start or '-'} end={end or '-'}"

    return _apply_change(args, change)


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


def _find_upload(client: WorkspaceClient, ref: str) -> dict[str, Any] | None:
    uploads = client.list_uploads()
    if uploads is None:
        _print_error(client.error or "")
        return None
    try:
        return _resolve(uploads, ref, "Upload")
    except UnitrackError as exc:
        _print_error(str(exc))
        return None


def _cmd_upload_list(args: argparse.Namespace) -> int:
    client = _make_client(args)
    uploads = client.list_uploads()
    if uploads is None:
        _print_error(client.error or "")
        return 1
    table = Table(title=f"Uploads ({len(uploads)})")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("File")
    table.add_column("Size")
    table.add_column("Notes")
    for u in uploads:
        table.add_row(
            _short(u.get("id")),
            escape(str(u.get("displayName", ""))),
            escape(str(u.get("originalName", ""))),
            str(u.get("size", "")),
            escape(str(u.get("notes") or "")),
        )
    console.print(table)
    return 0


def _cmd_upload_add(args: argparse.Namespace) -> int:
    path = Path(args.path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        _print_error(f"Cannot read {path}: {exc}")
        return 1

    client = _make_client(args)
    template_id = None
    if args.template:
        ws = client.fetch()
        if ws is None:
            _print_error(client.error or "")
            return 1
        try:
            template_id = _resolve(ws.get("documentTemplates", []), args.template, "Document template")["id"]
        except UnitrackError as exc:
            _print_error(str(exc))
            return 1

    mime_type = mimetypes.guess_type(path.name)[0]
    upload_id = client.upload(data, path.name, args.name, args.notes, mime_type, template_id)
    if upload_id is None:
        _print_error(client.error or "Upload failed")
        return 1
    console.print(f"Uploaded {escape(path.name)} ({_short(upload_id)})")
    return 0


def _cmd_upload_get(args: argparse.Namespace) -> int:
    client = _make_client(args)
    record = _find_upload(client, args.id)
    if record is None:
        return 1
    data = client.download(record["id"])
    if data is None:
        _print_error(client.error or "Download failed")
        return 1
    out = Path(args.out or str(record.get("originalName") or record.get("storedName")))
    out.write_bytes(data)
    console.print(f"Saved {len(data)} bytes to {escape(str(out))}")
    return 0


def _cmd_upload_edit(args: argparse.Namespace) -> int:
    client = _make_client(args)
    record = _find_upload(client, args.id)
    if record is None:
        return 1
    changes: dict[str, Any] = {}
    if args.clear_notes:
        changes["notes"] = None
    elif args.notes is not None:
        changes["notes"] = args.notes
    if not client.update_upload(record["id"], display_name=args.name, **changes):
        _print_error(client.error or "Update failed")
        return 1
    console.print(f"Updated upload {_short(record['id'])}")
    return 0


def _cmd_upload_rm(args: argparse.Namespace) -> int:
    client = _make_client(args)
    record = _find_upload(client, args.id)
    if record is None:
        return 1
    if not client.delete_upload(record["id"]):
        _print_error(client.error or "Delete failed")
        return 1
    console.print(f"Deleted upload {escape(str(record.get('displayName', '')))}")
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_url(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
    p.add_argument("--url", type=str, default=None, help="API base URL (default: UNITRACK_API_URL)")
    return p


def _add_university_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--city", type=str, default=None)
    p.add_argument("--website", type=str, default=None)
    p.add_argument("--degree", type=str, default=None, help="Degree title")
    p.add_argument("--semesters", type=str, default=None, help="Duration in semesters")
    p.add_argument("--fee", type=str, default=None, help="Tuition fee per semester")
    p.add_argument("--german-test", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--notes", type=str, default=None)
    p.add_argument("--field", action="append", default=None, metavar="KEY=VALUE", help="Custom field value (repeatable)")
    _add_url(p)


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="unitrack", description="University application tracker")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", type=str, default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)

    _add_url(sub.add_parser("dashboard", help="Admission window status, targets and documents"))

    p_cal = _add_url(sub.add_parser("calendar", help="Month view of admission dates and targets"))
    p_cal.add_argument("--month", "-m", type=str, default=None, help="Month as YYYY-MM (default: current)")

    p_unis = _add_url(sub.add_parser("universities", help="List universities"))
    p_unis.add_argument("--status", "-s", type=str, default=None, help="Only this window status")
    p_unis.add_argument("--search", type=str, default="", help="Match name, city or degree title")

    _add_url(sub.add_parser("checklist", help="Document checklist"))

    p_export = _add_url(sub.add_parser("export", help="Export calendar to .ics"))
    p_export.add_argument("out", type=str, help="Output file path (e.g. admissions.ics)")

    # universities
    p_uni = sub.add_parser("university", help="Add, edit or remove a university")
    uni_sub = p_uni.add_subparsers(dest="action", required=True)
    p = uni_sub.add_parser("add")
    p.add_argument("name", type=str)
    _add_university_options(p)
    p = uni_sub.add_parser("edit")
    p.add_argument("id", type=str)
    p.add_argument("--name", type=str, default=None)
    _add_university_options(p)
    _add_url(uni_sub.add_parser("rm")).add_argument("id", type=str)
    p = _add_url(uni_sub.add_parser("docs", help="Set the required documents"))
    p.add_argument("id", type=str)
    p.add_argument("templates", nargs="*", help="Document template ids")

    # checklist
    p_doc = sub.add_parser("document", help="Add or remove a document template")
    doc_sub = p_doc.add_subparsers(dest="action", required=True)
    p = _add_url(doc_sub.add_parser("add"))
    p.add_argument("name", type=str)
    p.add_argument("--category", type=str, default=None)
    p.add_argument("--required", action="store_true", help="Required by default")
    _add_url(doc_sub.add_parser("rm")).add_argument("id", type=str)

    _add_url(sub.add_parser("check", help="Toggle a document as collected")).add_argument("id", type=str)

    # targets
    p_target = sub.add_parser("target", help="Personal targets")
    target_sub = p_target.add_subparsers(dest="action", required=True)
    _add_url(target_sub.add_parser("list"))
    for action in ("add", "edit"):
        p = _add_url(target_sub.add_parser(action))
        if action == "add":
            p.add_argument("name", type=str)
        else:
            p.add_argument("id", type=str)
            p.add_argument("--name", type=str, default=None)
        p.add_argument("--date", type=str, default=None, help="YYYY-MM-DD (empty clears)")
        p.add_argument("--description", type=str, default=None)
    _add_url(target_sub.add_parser("rm")).add_argument("id", type=str)

    # notes
    p_note = sub.add_parser("note", help="Notes")
    note_sub = p_note.add_subparsers(dest="action", required=True)
    _add_url(note_sub.add_parser("list"))
    for action in ("add", "edit"):
        p = _add_url(note_sub.add_parser(action))
        if action == "add":
            p.add_argument("title", type=str)
        else:
            p.add_argument("id", type=str)
            p.add_argument("--title", type=str, default=None)
        p.add_argument("--body", type=str, default=None)
    _add_url(note_sub.add_parser("rm")).add_argument("id", type=str)

    # custom fields
    p_field = sub.add_parser("field", help="Custom university fields and the calendar mapping")
    field_sub = p_field.add_subparsers(dest="action", required=True)
    _add_url(field_sub.add_parser("list"))
    p = _add_url(field_sub.add_parser("add"))
    p.add_argument("label", type=str)
    p.add_argument("--key", type=str, default=None, help="Default: derived from the label")
    p.add_argument("--type", type=str, default="string", choices=FIELD_TYPES)
    _add_url(field_sub.add_parser("rm")).add_argument("key", type=str, help="Field key or id")
    p = _add_url(field_sub.add_parser("map", help="Which date fields are admission start/end"))
    p.add_argument("--start", type=str, default=None, help="Field key (empty clears)")
    p.add_argument("--end", type=str, default=None, help="Field key (empty clears)")

    # uploads
    p_upload = sub.add_parser("upload", help="Uploaded documents")
    upload_sub = p_upload.add_subparsers(dest="action", required=True)
    _add_url(upload_sub.add_parser("list"))
    p = _add_url(upload_sub.add_parser("add"))
    p.add_argument("path", type=str)
    p.add_argument("--name", type=str, default=None, help="Display name")
    p.add_argument("--notes", type=str, default=None)
    p.add_argument("--template", type=str, default=None, help="Document template id")
    p = _add_url(upload_sub.add_parser("get"))
    p.add_argument("id", type=str)
    p.add_argument("--out", "-o", type=str, default=None, help="Default: original file name")
    p = _add_url(upload_sub.add_parser("edit"))
    p.add_argument("id", type=str)
    p.add_argument("--name", type=str, default=None, help="Display name")
    p.add_argument("--notes", type=str, default=None)
    p.add_argument("--clear-notes", action="store_true")
    _add_url(upload_sub.add_parser("rm")).add_argument("id", type=str)

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(load_settings().log_level)

    handlers = {
        "serve": _cmd_serve,
        "dashboard": _cmd_dashboard,
        "calendar": _cmd_calendar,
        "universities": _cmd_universities,
        "checklist": _cmd_checklist,
        "export": _cmd_export,
        "university add": _cmd_university_add,
        "university edit": _cmd_university_edit,
        "university rm": _cmd_university_rm,
        "university docs": _cmd_university_docs,
        "document add": _cmd_document_add,
        "document rm": _cmd_document_rm,
        "check": _cmd_check,
        "target list": _cmd_target_list,
        "target add": _cmd_target_save,
        "target edit": _cmd_target_save,
        "target rm": _cmd_target_rm,
        "note list": _cmd_note_list,
        "note add": _cmd_note_save,
        "note edit": _cmd_note_save,
        "note rm": _cmd_note_rm,
        "field list": _cmd_field_list,
        "field add": _cmd_field_add,
        "field rm": _cmd_field_rm,
        "field map": _cmd_field_map,
        "upload list": _cmd_upload_list,
        "upload add": _cmd_upload_add,
        "upload get": _cmd_upload_get,
        "upload edit": _cmd_upload_edit,
        "upload rm": _cmd_upload_rm,
    }
    action = getattr(args, "action", None)
    handler = handlers.get(f"{args.command} {action}" if action else args.command)
    if handler is None:
        raise SystemExit(2)
    raise SystemExit(handler(args))
