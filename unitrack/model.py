"""
Central data model definitions used across the project.

The workspace itself stays a plain JSON dict (camelCase keys, exactly as it
is stored on disk), so files written by older revisions keep loading.
This module defines the typed pieces that code passes around:
- the names of the workspace collections
- custom field definitions and tagged field values
- calendar events derived from the workspace
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Union

WORKSPACE_VERSION = 1

# Collections every workspace document carries (empty list when unused).
COLLECTIONS = (
    "universities",
    "programs",
    "admissionWindows",
    "documentTemplates",
    "collectedDocumentIds",
    "applications",
    "applicationDocuments",
    "uploads",
    "targets",
    "notes",
)

FIELD_TYPES = ("string", "text", "number", "date", "boolean", "url")

JsonScalar = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class FieldDefinition:
    """
    One admin-defined custom attribute of a university.

    Stored in admin.universityFields as {"id", "key", "label", "type"}.
    """

    id: str
    key: str
    label: str
    type: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "FieldDefinition":
        return cls(
            id=str(raw.get("id", "")),
            key=str(raw.get("key", "")),
            label=str(raw.get("label", "")),
            type=str(raw.get("type", "string")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "key": self.key, "label": self.label, "type": self.type}


@dataclass(frozen=True)
class FieldValue:
    """
    Tagged value of a custom field: kind is one of string/number/boolean/null.

    to_json() returns the raw value that goes into university["fields"].
    """

    kind: str
    value: JsonScalar = None

    @classmethod
    def null(cls) -> "FieldValue":
        return cls("null", None)

    @classmethod
    def of(cls, raw: Any) -> "FieldValue":
        # bool first: bool is a subclass of int
        if raw is None:
            return cls.null()
        if isinstance(raw, bool):
            return cls("boolean", raw)
        if isinstance(raw, (int, float)):
            return cls("number", raw)
        return cls("string", str(raw))

    def to_json(self) -> JsonScalar:
        return self.value


@dataclass(frozen=True)
class CalendarEvent:
    """
    One dated entry on the calendar.

    kind is "start" / "end" for admission window dates of a university,
    or "target" for a personal target with a date.
    """

    id: str
    title: str
    date: date
    kind: str
    university_id: Optional[str] = None
