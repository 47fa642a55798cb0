"""
Unit tests for admission window classification.

Rule (14-day threshold, inclusive on the "soon" side):
- inside the window: closing_soon if end is within 14 days, else open_now
- before the window: opening_soon if start is within 14 days, else upcoming
- after the window: past
"""

import unittest

from unitrack.periods import (
    CLOSING_SOON,
    DAY_MS,
    NO_DATES,
    OPEN_NOW,
    OPENING_SOON,
    PAST,
    SOON_MS,
    STATUSES,
    UPCOMING,
    classify,
    classify_university,
    parse_date_ms,
)

NOW = parse_date_ms("2026-06-15")


class TestClassify(unittest.TestCase):
    def test_no_dates(self) -> None:
        self.assertEqual(classify(None, None, NOW), NO_DATES)

    def test_closing_soon_within_threshold(self) -> None:
        self.assertEqual(classify(NOW - DAY_MS, NOW + 13 * DAY_MS, NOW), CLOSING_SOON)

    def test_open_now_beyond_threshold(self) -> None:
        self.assertEqual(classify(NOW - DAY_MS, NOW + 15 * DAY_MS, NOW), OPEN_NOW)

    def test_threshold_is_inclusive(self) -> None:
        self.assertEqual(classify(NOW - DAY_MS, NOW + SOON_MS, NOW), CLOSING_SOON)
        self.assertEqual(classify(NOW + SOON_MS, NOW + 30 * DAY_MS, NOW), OPENING_SOON)
        self.assertEqual(classify(NOW + SOON_MS + 1, NOW + 30 * DAY_MS, NOW), UPCOMING)

    def test_window_boundaries_count_as_open(self) -> None:
        self.assertEqual(classify(NOW, NOW + 30 * DAY_MS, NOW), OPEN_NOW)
        self.assertEqual(classify(NOW - 30 * DAY_MS, NOW, NOW), CLOSING_SOON)

    def test_before_window(self) -> None:
        self.assertEqual(classify(NOW + 3 * DAY_MS, NOW + 40 * DAY_MS, NOW), OPENING_SOON)
        self.assertEqual(classify(NOW + 20 * DAY_MS, NOW + 40 * DAY_MS, NOW), UPCOMING)

    def test_after_window(self) -> None:
        self.assertEqual(classify(NOW - 40 * DAY_MS, NOW - DAY_MS, NOW), PAST)

    def test_only_start(self) -> None:
        self.assertEqual(classify(NOW + DAY_MS, None, NOW), OPENING_SOON)
        self.assertEqual(classify(NOW + 20 * DAY_MS, None, NOW), UPCOMING)
        self.assertEqual(classify(NOW - DAY_MS, None, NOW), PAST)
        # started exactly now: no longer in the future
        self.assertEqual(classify(NOW, None, NOW), PAST)

    def test_only_end(self) -> None:
        self.assertEqual(classify(None, NOW + DAY_MS, NOW), CLOSING_SOON)
        self.assertEqual(classify(None, NOW + 20 * DAY_MS, NOW), OPEN_NOW)
        self.assertEqual(classify(None, NOW, NOW), CLOSING_SOON)
        self.assertEqual(classify(None, NOW - 1, NOW), PAST)

    def test_always_one_known_status(self) -> None:
        offsets = [None, -30, -14, -1, 0, 1, 13, 14, 15, 30]
        for s in offsets:
            for e in offsets:
                start = None if s is None else NOW + s * DAY_MS
                end = None if e is None else NOW + e * DAY_MS
                status = classify(start, end, NOW)
                self.assertIn(status, STATUSES)
                self.assertEqual(status, classify(start, end, NOW))


class TestParseDate(unittest.TestCase):
    def test_parses_as_utc_midnight(self) -> None:
        self.assertEqual(parse_date_ms("1970-01-02"), DAY_MS)

    def test_invalid_values_are_none(self) -> None:
        for value in (None, 20260101, "", "2026-13-01", "2026-02-30", "01.02.2026", "2026-01-01T10:00"):
            self.assertIsNone(parse_date_ms(value), value)


class TestClassifyUniversity(unittest.TestCase):
    def test_uses_calendar_mapping(self) -> None:
        uni = {"fields": {"from": "2026-06-10", "to": "2026-06-20"}}
        calendar = {"startFieldKey": "from", "endFieldKey": "to"}
        self.assertEqual(classify_university(uni, calendar, NOW), CLOSING_SOON)

    def test_unmapped_or_garbage_fields_mean_no_dates(self) -> None:
        uni = {"fields": {"admission_start": "soon", "admission_end": 5}}
        calendar = {"startFieldKey": "admission_start", "endFieldKey": "admission_end"}
        self.assertEqual(classify_university(uni, calendar, NOW), NO_DATES)
        self.assertEqual(classify_university({"fields": {}}, {"startFieldKey": None, "endFieldKey": None}, NOW), NO_DATES)


if __name__ == "__main__":
    unittest.main()
