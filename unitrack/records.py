"""
Read-modify-write helpers for the workspace document.

Every function takes a workspace dict and returns a NEW workspace dict with
one change applied; the input is left alone. The caller then hands the
result to WorkspaceClient.save() (or WorkspaceStore.save()), which replaces
the whole document.

Records are matched by id: update = replace in list, delete = filter out.
"""

from __future__ import annotations

from typing import Any, Optional

from unitrack.errors import NotFoundError, ValidationError
from unitrack.fields import apply_field_inputs, field_definitions, parse_number_or_none
from unitrack.storage import now_iso, random_id


def find_by_id(items: list[dict[str, Any]], record_id: str) -> Optional[dict[str, Any]]:
    for item in items:
        if item.get("id") == record_id:
            return item
    return None


def upsert(ws: dict[str, Any], collection: str, record: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    """
    Replace the record with the same id, or append it.

    Returns (new workspace, created).
    """
    items = list(ws.get(collection, []))
    exists = any(item.get("id") == record["id"] for item in items)
    if exists:
        items = [record if item.get("id") == record["id"] else item for item in items]
    else:
        items.append(record)
    return {**ws, collection: items}, not exists


def remove(ws: dict[str, Any], collection: str, record_id: str) -> dict[str, Any]:
    items = list(ws.get(collection, []))
    kept = [item for item in items if item.get("id") != record_id]
    if len(kept) == len(items):
        raise NotFoundError(f"Not found in {collection}: {record_id}")
    return {**ws, collection: kept}


def _text_or_none(value: Any) -> Optional[str]:
    text = "" if value is None else str(value).strip()
    return text or None


def _without_none(record: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in record.items() if v is not None}


# ---------------------------------------------------------------------------
# Universities
# ---------------------------------------------------------------------------


def new_university() -> dict[str, Any]:
    now = now_iso()
    return {
        "id": random_id(),
        "name": "",
        "germanLanguageTestRequired": False,
        "requiredDocumentIds": [],
        "fields": {},
        "createdAt": now,
        "updatedAt": now,
    }


def save_university(
    ws: dict[str, Any],
    university: dict[str, Any],
    *,
    name: str,
    city: str | None = None,
    website: str | None = None,
    degree_title: str | None = None,
    duration_semesters: Any = None,
    tuition_fee_per_semester: Any = None,
    german_language_test_required: bool = False,
    notes: str | None = None,
    field_inputs: dict[str, Any] | None = None,
) -> tuple[dict[str, Any], bool]:
    """
    Apply form input to `university` and upsert it.

    The name is required. Custom field inputs are coerced by their
    definition's type; fields not mentioned keep their stored value.
    requiredDocumentIds is managed separately and kept as is.
    """
    final_name = (name or "").strip()
    if not final_name:
        raise ValidationError("University name is required.")

    duration = parse_number_or_none(duration_semesters)
    fee = parse_number_or_none(tuition_fee_per_semester)

    base = {
        k: v
        for k, v in university.items()
        if k not in {"city", "website", "degreeTitle", "durationSemesters", "tuitionFeePerSemester", "notes"}
    }
    updated = {
        **base,
        "name": final_name,
        "germanLanguageTestRequired": bool(german_language_test_required),
        "requiredDocumentIds": list(university.get("requiredDocumentIds") or []),
        "fields": apply_field_inputs(university.get("fields") or {}, field_definitions(ws), field_inputs or {}),
        "updatedAt": now_iso(),
        **_without_none(
            {
                "city": _text_or_none(city),
                "website": _text_or_none(website),
                "degreeTitle": _text_or_none(degree_title),
                # 0 semesters means "not set"
                "durationSemesters": duration or None,
                "tuitionFeePerSemester": fee,
                "notes": _text_or_none(notes),
            }
        ),
    }
    return upsert(ws, "universities", updated)


def delete_university(ws: dict[str, Any], university_id: str) -> dict[str, Any]:
    """
    Remove a university together with its programs and their admission windows.
    """
    programs = ws.get("programs", [])
    next_ws = remove(ws, "universities", university_id)

    owned = {p.get("id") for p in programs if p.get("universityId") == university_id}
    next_ws["programs"] = [p for p in programs if p.get("universityId") != university_id]
    # windows whose program is unknown are kept
    next_ws["admissionWindows"] = [aw for aw in ws.get("admissionWindows", []) if aw.get("programId") not in owned]
    return next_ws


def set_required_documents(ws: dict[str, Any], university_id: str, template_ids: list[str]) -> dict[str, Any]:
    university = find_by_id(ws.get("universities", []), university_id)
    if university is None:
        raise NotFoundError(f"University not found: {university_id}")
    templates = {t.get("id") for t in ws.get("documentTemplates", [])}
    unknown = [t for t in template_ids if t not in templates]
    if unknown:
        raise NotFoundError(f"Document template not found: {unknown[0]}")

    updated = {**university, "requiredDocumentIds": list(dict.fromkeys(template_ids)), "updatedAt": now_iso()}
    return upsert(ws, "universities", updated)[0]


# ---------------------------------------------------------------------------
# Document checklist
# ---------------------------------------------------------------------------


def add_document_template(
    ws: dict[str, Any], name: str, category: str | None = None, required_by_default: bool = False
) -> dict[str, Any]:
    final_name = (name or "").strip()
    if not final_name:
        raise ValidationError("Document name is required.")
    now = now_iso()
    template = {
        "id": random_id(),
        "name": final_name,
        "category": _text_or_none(category),
        "requiredByDefault": bool(required_by_default),
        "createdAt": now,
        "updatedAt": now,
    }
    return upsert(ws, "documentTemplates", _without_none(template))[0]


def delete_document_template(ws: dict[str, Any], template_id: str) -> dict[str, Any]:
    """
    Remove a template and every reference to it (collected marks, university requirements).
    """
    next_ws = remove(ws, "documentTemplates", template_id)
    next_ws["collectedDocumentIds"] = [i for i in ws.get("collectedDocumentIds", []) if i != template_id]
    next_ws["universities"] = [
        {**u, "requiredDocumentIds": [i for i in u.get("requiredDocumentIds", []) if i != template_id]}
        for u in ws.get("universities", [])
    ]
    return next_ws


def set_collected(ws: dict[str, Any], template_id: str, collected: bool) -> dict[str, Any]:
    if find_by_id(ws.get("documentTemplates", []), template_id) is None:
        raise NotFoundError(f"Document template not found: {template_id}")
    ids = [i for i in ws.get("collectedDocumentIds", []) if i != template_id]
    if collected:
        ids.append(template_id)
    return {**ws, "collectedDocumentIds": ids}


def toggle_collected(ws: dict[str, Any], template_id: str) -> dict[str, Any]:
    return set_collected(ws, template_id, template_id not in ws.get("collectedDocumentIds", []))


# ---------------------------------------------------------------------------
# Targets & notes
# ---------------------------------------------------------------------------


def save_target(
    ws: dict[str, Any],
    target: dict[str, Any] | None,
    *,
    name: str,
    description: str | None = None,
    target_date: str | None = None,
) -> tuple[dict[str, Any], bool]:
    final_name = (name or "").strip()
    if not final_name:
        raise ValidationError("Target name is required.")

    now = now_iso()
    base = target or {"id": random_id(), "createdAt": now}
    base = {k: v for k, v in base.items() if k not in {"description", "targetDate"}}
    record = {
        **base,
        "name": final_name,
        "updatedAt": now,
        **_without_none({"description": _text_or_none(description), "targetDate": _text_or_none(target_date)}),
    }
    return upsert(ws, "targets", record)


def delete_target(ws: dict[str, Any], target_id: str) -> dict[str, Any]:
    return remove(ws, "targets", target_id)


def save_note(ws: dict[str, Any], note: dict[str, Any] | None, *, title: str, body: str = "") -> tuple[dict[str, Any], bool]:
    final_title = (title or "").strip()
    if not final_title:
        raise ValidationError("Note title is required.")

    now = now_iso()
    base = note or {"id": random_id(), "createdAt": now}
    record = {**base, "title": final_title, "body": (body or "").strip(), "updatedAt": now}
    return upsert(ws, "notes", record)


def delete_note(ws: dict[str, Any], note_id: str) -> dict[str, Any]:
    return remove(ws, "notes", note_id)


def sorted_by_updated(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Newest first, as the targets and notes pages list them.
    """
    return sorted(items, key=lambda item: str(item.get("updatedAt", "")), reverse=True)
