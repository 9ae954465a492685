"""Tests for the schemas module."""

import unittest

from pydantic import ValidationError

from src.schemas import format_validation_errors, validate_athan_data, validate_iqamah_data

ATHAN_ROW = {"date": "2026-01-15", "fajr": "06:30", "sunrise": "07:50", "dhuhr": "12:30", "asr": "15:00", "maghrib": "17:00", "isha": "18:30"}
IQAMAH_ROW = {"date": "2026-01-15", "fajr": "06:45", "dhuhr": "13:00", "asr": "15:30", "isha": "19:00"}


class TestAthanSchema(unittest.TestCase):
    def test_valid_year(self):
        entries = validate_athan_data([ATHAN_ROW])
        self.assertEqual(entries[0].maghrib, "17:00")

    def test_extra_keys_ignored(self):
        entries = validate_athan_data([dict(ATHAN_ROW, note="hello")])
        self.assertFalse(hasattr(entries[0], "note"))

    def test_rejects_single_digit_hour(self):
        with self.assertRaises(ValidationError):
            validate_athan_data([dict(ATHAN_ROW, fajr="6:30")])

    def test_rejects_out_of_range_time(self):
        with self.assertRaises(ValidationError):
            validate_athan_data([dict(ATHAN_ROW, isha="24:00")])
        with self.assertRaises(ValidationError):
            validate_athan_data([dict(ATHAN_ROW, isha="18:60")])

    def test_rejects_bad_date(self):
        with self.assertRaises(ValidationError):
            validate_athan_data([dict(ATHAN_ROW, date="15/01/2026")])

    def test_rejects_non_list(self):
        with self.assertRaises(ValidationError):
            validate_athan_data(ATHAN_ROW)

    def test_entries_are_immutable(self):
        entry = validate_athan_data([ATHAN_ROW])[0]
        with self.assertRaises(ValidationError):
            entry.fajr = "05:00"


class TestIqamahSchema(unittest.TestCase):
    def test_jumuah_optional(self):
        entry = validate_iqamah_data([IQAMAH_ROW])[0]
        self.assertIsNone(entry.jumuah1)
        self.assertIsNone(entry.jumuah2)

    def test_friday_row(self):
        entry = validate_iqamah_data([dict(IQAMAH_ROW, jumuah1="13:10", jumuah2="13:45")])[0]
        self.assertEqual(entry.jumuah1, "13:10")

    def test_rejects_bad_jumuah(self):
        with self.assertRaises(ValidationError):
            validate_iqamah_data([dict(IQAMAH_ROW, jumuah1="1:10pm")])

    def test_missing_field(self):
        row = dict(IQAMAH_ROW)
        del row["asr"]
        with self.assertRaises(ValidationError):
            validate_iqamah_data([row])


class TestFormatValidationErrors(unittest.TestCase):
    def test_lists_every_issue_with_path(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_athan_data([ATHAN_ROW, dict(ATHAN_ROW, fajr="6:30", asr="bad")])
        lines = format_validation_errors(ctx.exception).splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith("  - 1.fajr: "))
        self.assertTrue(lines[1].startswith("  - 1.asr: "))


if __name__ == "__main__":
    unittest.main()
