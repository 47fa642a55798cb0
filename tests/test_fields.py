"""
Unit tests for custom field coercion and admin field definitions.
"""

import unittest

from unitrack.errors import NotFoundError, ValidationError
from unitrack.fields import (
    add_field_definition,
    apply_field_inputs,
    coerce_field_value,
    field_definitions,
    remove_field_definition,
    set_calendar_mapping,
    slug_key,
)
from unitrack.model import FieldDefinition, FieldValue
from unitrack.storage import normalize_workspace


class TestCoerce(unittest.TestCase):
    def test_boolean(self) -> None:
        self.assertEqual(coerce_field_value("boolean", "on"), FieldValue("boolean", True))
        self.assertEqual(coerce_field_value("boolean", True), FieldValue("boolean", True))
        self.assertEqual(coerce_field_value("boolean", None), FieldValue("boolean", False))
        self.assertEqual(coerce_field_value("boolean", "off"), FieldValue("boolean", False))

    def test_number(self) -> None:
        self.assertEqual(coerce_field_value("number", " 6.5 ").to_json(), 6.5)
        self.assertEqual(coerce_field_value("number", "4").to_json(), 4)
        self.assertEqual(coerce_field_value("number", 7).to_json(), 7)
        for raw in ("", "abc", "inf", "nan", None, "1_000"):
            self.assertEqual(coerce_field_value("number", raw), FieldValue.null(), raw)

    def test_text_types(self) -> None:
        for ftype in ("string", "text", "date", "url"):
            self.assertEqual(coerce_field_value(ftype, "  x ").to_json(), "x")
            self.assertEqual(coerce_field_value(ftype, "   "), FieldValue.null())

    def test_unknown_type(self) -> None:
        with self.assertRaises(ValidationError):
            coerce_field_value("color", "red")

    def test_field_value_of(self) -> None:
        self.assertEqual(FieldValue.of(True).kind, "boolean")
        self.assertEqual(FieldValue.of(1.5).kind, "number")
        self.assertEqual(FieldValue.of(None).kind, "null")
        self.assertEqual(FieldValue.of("x").kind, "string")


class TestSlug(unittest.TestCase):
    def test_slug_key(self) -> None:
        self.assertEqual(slug_key("IELTS overall (min)"), "ielts_overall_min")
        self.assertEqual(slug_key("  --Uni-Assist--  "), "uni_assist")
        self.assertEqual(slug_key("!!!"), "")


class TestDefinitions(unittest.TestCase):
    def setUp(self) -> None:
        self.ws = normalize_workspace({})

    def test_add_uses_slug_of_label(self) -> None:
        ws = add_field_definition(self.ws, "Semester contribution", field_type="number")
        added = field_definitions(ws)[-1]
        self.assertEqual(added.key, "semester_contribution")
        self.assertEqual(added.type, "number")
        # input untouched
        self.assertEqual(len(field_definitions(self.ws)), len(field_definitions(ws)) - 1)

    def test_add_rejects_duplicates_and_bad_input(self) -> None:
        with self.assertRaises(ValidationError):
            add_field_definition(self.ws, "Admission start", key="admission_start")
        with self.assertRaises(ValidationError):
            add_field_definition(self.ws, "   ")
        with self.assertRaises(ValidationError):
            add_field_definition(self.ws, "Color", field_type="color")

    def test_remove_clears_calendar_slot_and_keeps_values(self) -> None:
        ws = dict(self.ws)
        ws["universities"] = [{"id": "u1", "name": "TUM", "fields": {"admission_start": "2026-01-15"}}]
        start_def = next(d for d in field_definitions(ws) if d.key == "admission_start")

        ws2 = remove_field_definition(ws, start_def.id)
        self.assertNotIn("admission_start", [d.key for d in field_definitions(ws2)])
        self.assertEqual(ws2["admin"]["calendar"], {"startFieldKey": None, "endFieldKey": "admission_end"})
        self.assertEqual(ws2["universities"][0]["fields"], {"admission_start": "2026-01-15"})

    def test_remove_unknown(self) -> None:
        with self.assertRaises(NotFoundError):
            remove_field_definition(self.ws, "nope")

    def test_set_calendar_mapping(self) -> None:
        ws = set_calendar_mapping(self.ws, None, "admission_end")
        self.assertEqual(ws["admin"]["calendar"], {"startFieldKey": None, "endFieldKey": "admission_end"})
        with self.assertRaises(ValidationError):
            set_calendar_mapping(self.ws, "not_a_field", None)


class TestApplyInputs(unittest.TestCase):
    def test_only_given_keys_change(self) -> None:
        defs = [FieldDefinition("1", "vpd_required", "VPD", "boolean"), FieldDefinition("2", "ielts", "IELTS", "number")]
        current = {"ielts": 6.5, "gone": "kept"}
        fields = apply_field_inputs(current, defs, {"vpd_required": "on"})
        self.assertEqual(fields, {"ielts": 6.5, "gone": "kept", "vpd_required": True})
        self.assertEqual(current, {"ielts": 6.5, "gone": "kept"})


if __name__ == "__main__":
    unittest.main()
