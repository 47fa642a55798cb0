"""
Persistent storage for the workspace document.

This module manages the file:

    <data dir>/workspace.json

Design rationale:
- the whole tracker state is one JSON document, read and written as a unit
- reading is forgiving: a missing or broken file means "no workspace yet"
  and a default document is seeded and saved
- normalize_workspace() fills in whatever an older schema revision left
  out, so every caller can rely on the full shape

Saves replace the whole file. There is no merge: callers load, modify and
save the complete document (last write wins).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from unitrack.model import COLLECTIONS, WORKSPACE_VERSION

logger = logging.getLogger(__name__)


def now_iso() -> str:
    """
    Current UTC time as ISO-8601 with milliseconds and a Z suffix.
    """
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def random_id() -> str:
    return str(uuid.uuid4())


def _default_data_dir() -> Path:
    """
    Return ./data relative to the working directory.

    Using a function instead of a constant makes testing easier,
    because tests can pass their own path instead.
    """
    return Path.cwd() / "data"


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

_DEFAULT_FIELDS = (
    ("admission_start", "Admission start", "date"),
    ("admission_end", "Admission end", "date"),
    ("ielts_overall", "IELTS overall", "number"),
    ("ielts_min_band", "IELTS min band", "number"),
    ("vpd_required", "VPD required", "boolean"),
    ("degree_duration_months", "Degree duration (months)", "number"),
    ("required_documents", "Required documents", "text"),
)

# (name, category, requiredByDefault)
_DEFAULT_TEMPLATES = (
    ("Passport", "Identity", True),
    ("Transcripts", "Academic", True),
    ("Degree Certificate", "Academic", False),
    ("IELTS / Language Proof", "Language", True),
    ("CV", "Application", True),
    ("Statement of Purpose (SOP)", "Application", True),
    ("Letters of Recommendation (LORs)", "Application", False),
    ("APS Certificate (if applicable)", "Portal", False),
    ("VPD / uni-assist (if required)", "Portal", False),
)


def default_admin_settings() -> dict[str, Any]:
    return {
        "universityFields": [
            {"id": random_id(), "key": key, "label": label, "type": ftype} for key, label, ftype in _DEFAULT_FIELDS
        ],
        "calendar": {"startFieldKey": "admission_start", "endFieldKey": "admission_end"},
    }


def default_document_templates() -> list[dict[str, Any]]:
    now = now_iso()
    return [
        {
            "id": random_id(),
            "name": name,
            "category": category,
            "requiredByDefault": required,
            "createdAt": now,
            "updatedAt": now,
        }
        for name, category, required in _DEFAULT_TEMPLATES
    ]


def default_workspace() -> dict[str, Any]:
    """
    The document written on first run: default admin fields and checklist.
    """
    ws: dict[str, Any] = {"version": WORKSPACE_VERSION, "admin": default_admin_settings()}
    for name in COLLECTIONS:
        ws[name] = []
    ws["documentTemplates"] = default_document_templates()
    return ws


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _list_or_empty(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def _normalize_admin(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        return default_admin_settings()

    calendar = raw.get("calendar")
    calendar = calendar if isinstance(calendar, dict) else {}
    return {
        **raw,
        "universityFields": _list_or_empty(raw.get("universityFields")),
        "calendar": {
            **calendar,
            "startFieldKey": calendar.get("startFieldKey"),
            "endFieldKey": calendar.get("endFieldKey"),
        },
    }


def _normalize_university(u: dict[str, Any], base_now: str) -> dict[str, Any]:
    fields = u.get("fields")
    required = u.get("requiredDocumentIds")
    return {
        **u,
        "fields": dict(fields) if isinstance(fields, dict) else {},
        "requiredDocumentIds": list(required) if isinstance(required, list) else [],
        "createdAt": u.get("createdAt") or base_now,
        "updatedAt": u.get("updatedAt") or base_now,
    }


def _normalize_upload(d: dict[str, Any], base_now: str) -> dict[str, Any]:
    created = d.get("createdAt") or base_now
    return {
        **d,
        "displayName": d.get("displayName") or d.get("originalName") or "Untitled",
        "createdAt": created,
        "updatedAt": d.get("updatedAt") or created,
    }


def normalize_workspace(raw: Any) -> dict[str, Any]:
    """
    Return a well-formed workspace built from arbitrary parsed JSON.

    Never mutates `raw`. Applying it twice gives the same result as once.
    """
    r: dict[str, Any] = raw if isinstance(raw, dict) else {}
    base_now = now_iso()

    ws: dict[str, Any] = {**r, "version": WORKSPACE_VERSION, "admin": _normalize_admin(r.get("admin"))}
    for name in COLLECTIONS:
        ws[name] = _list_or_empty(r.get(name))

    ws["universities"] = [_normalize_university(u, base_now) for u in ws["universities"] if isinstance(u, dict)]
    ws["uploads"] = [_normalize_upload(d, base_now) for d in ws["uploads"] if isinstance(d, dict)]
    return ws


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class WorkspaceStore:
    """
    Reads and writes the workspace document at `data_dir/workspace.json`.

    The uploads directory sits next to it and is created together with the
    data directory, so the first load prepares the whole layout.
    """

    def __init__(self, data_dir: str | Path | None = None) -> None:
        self.data_dir = Path(data_dir) if data_dir is not None else _default_data_dir()
        self.path = self.data_dir / "workspace.json"
        self.uploads_dir = self.data_dir / "uploads"

    def ensure_dirs(self) -> None:
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

    def normalize(self, raw: Any) -> dict[str, Any]:
        return normalize_workspace(raw)

    def load(self, persist: bool = True) -> dict[str, Any]:
        """
        Load the workspace, seeding and saving defaults if there is none yet.

        A missing, unreadable or invalid file counts as "no workspace".
        Only a failure to create directories or to write the seed raises.
        With persist=False nothing is created or written: the normalized
        defaults are only returned (read-only deployments).
        """
        if persist:
            self.ensure_dirs()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.info("No workspace at %s, seeding defaults", self.path)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Unreadable workspace at %s (%s), seeding defaults", self.path, exc)
        else:
            if isinstance(raw, dict):
                return normalize_workspace(raw)
            logger.warning("Workspace at %s is not a JSON object, seeding defaults", self.path)

        ws = normalize_workspace(default_workspace())
        if persist:
            self.save(ws)
        return ws

    def save(self, workspace: dict[str, Any]) -> None:
        """
        Overwrite the backing file with the full document.

        The JSON goes to a temporary file in the same directory first and is
        then moved over the old file, so readers never see half a document.
        """
        self.ensure_dirs()
        payload = json.dumps(workspace, indent=2, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=".workspace-", suffix=".json.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved workspace to %s", self.path)
