"""
Custom university fields.

Admins define extra per-university attributes (IELTS score, VPD required,
admission dates, ...) in admin.universityFields. This module covers:
- coercion of raw form input into a FieldValue, per field type
- slugging of labels into machine-safe keys
- adding/removing field definitions and the calendar start/end mapping

Removing a definition never touches university["fields"]: old values stay
in the document so they come back if the field is defined again.
"""

from __future__ import annotations

import math
import re
import uuid
from typing import Any, Optional

from unitrack.errors import NotFoundError, ValidationError
from unitrack.model import FIELD_TYPES, FieldDefinition, FieldValue

_TRUE_WORDS = {"on", "true", "1", "yes"}


def slug_key(label: str) -> str:
    """
    'IELTS overall (min)' -> 'ielts_overall_min'
    """
    key = re.sub(r"[^a-z0-9]+", "_", label.strip().lower())
    return key.strip("_")


def parse_number_or_none(text: Any) -> Optional[float | int]:
    """
    Parse trimmed text as a finite number, or return None.

    Integral text ("4") gives an int, anything else a float.
    """
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return text if math.isfinite(text) else None
    t = str(text if text is not None else "").strip()
    # Python accepts "1_000", form input should not
    if not t or "_" in t:
        return None
    try:
        return int(t)
    except ValueError:
        pass
    try:
        n = float(t)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def coerce_field_value(field_type: str, raw: Any) -> FieldValue:
    """
    Convert raw input (form text, checkbox value, JSON scalar) for one field.
    """
    if field_type == "boolean":
        if isinstance(raw, bool):
            return FieldValue("boolean", raw)
        return FieldValue("boolean", str(raw or "").strip().lower() in _TRUE_WORDS)

    if field_type == "number":
        n = parse_number_or_none(raw)
        return FieldValue.null() if n is None else FieldValue("number", n)

    if field_type not in FIELD_TYPES:
        raise ValidationError(f"Unknown field type: {field_type!r}")

    text = "" if raw is None else str(raw).strip()
    return FieldValue("string", text) if text else FieldValue.null()


def field_definitions(ws: dict[str, Any]) -> list[FieldDefinition]:
    admin = ws.get("admin") or {}
    return [FieldDefinition.from_dict(d) for d in admin.get("universityFields", []) if isinstance(d, dict)]


def apply_field_inputs(
    current: dict[str, Any], definitions: list[FieldDefinition], form: dict[str, Any]
) -> dict[str, Any]:
    """
    Return a new fields mapping with the given form inputs coerced in.

    Only defined keys present in `form` change; everything else (including
    values of deleted definitions) is carried over untouched.
    """
    fields = dict(current or {})
    for d in definitions:
        if d.key in form:
            fields[d.key] = coerce_field_value(d.type, form[d.key]).to_json()
    return fields


def add_field_definition(
    ws: dict[str, Any], label: str, key: str | None = None, field_type: str = "string"
) -> dict[str, Any]:
    """
    Return a copy of ws with a new field definition appended.
    """
    final_label = (label or "").strip()
    final_key = ((key or "").strip() or slug_key(final_label)).strip()
    if not final_label or not final_key:
        raise ValidationError("Field label and key are required.")
    if field_type not in FIELD_TYPES:
        raise ValidationError(f"Unknown field type: {field_type!r}")
    if any(d.key == final_key for d in field_definitions(ws)):
        raise ValidationError(f"Field key already exists: {final_key}")

    new_field = FieldDefinition(id=str(uuid.uuid4()), key=final_key, label=final_label, type=field_type)
    admin = dict(ws.get("admin") or {})
    admin["universityFields"] = [*admin.get("universityFields", []), new_field.to_dict()]
    return {**ws, "admin": admin}


def remove_field_definition(ws: dict[str, Any], field_id: str) -> dict[str, Any]:
    """
    Return a copy of ws without the definition; calendar slots using its key are cleared.
    """
    admin = dict(ws.get("admin") or {})
    defs = list(admin.get("universityFields", []))
    removed = next((d for d in defs if d.get("id") == field_id), None)
    if removed is None:
        raise NotFoundError(f"Field definition not found: {field_id}")

    removed_key = removed.get("key")
    calendar = dict(admin.get("calendar") or {})
    for slot in ("startFieldKey", "endFieldKey"):
        if removed_key and calendar.get(slot) == removed_key:
            calendar[slot] = None

    admin["universityFields"] = [d for d in defs if d.get("id") != field_id]
    admin["calendar"] = {"startFieldKey": calendar.get("startFieldKey"), "endFieldKey": calendar.get("endFieldKey")}
    return {**ws, "admin": admin}


def set_calendar_mapping(ws: dict[str, Any], start_key: str | None, end_key: str | None) -> dict[str, Any]:
    known = {d.key for d in field_definitions(ws)}
    for k in (start_key, end_key):
        if k is not None and k not in known:
            raise ValidationError(f"Unknown field key: {k}")

    admin = dict(ws.get("admin") or {})
    admin["calendar"] = {"startFieldKey": start_key, "endFieldKey": end_key}
    return {**ws, "admin": admin}
