import unittest
from datetime import date, datetime

from medsync.utils.datetime_parser import (
    add_months,
    canonical_date_string,
    normalize_time,
    parse_calendar_date,
    time_to_minutes,
)


class TestTimes(unittest.TestCase):
    def test_seconds_are_truncated(self):
        self.assertEqual(normalize_time("08:00:00"), "08:00")
        self.assertEqual(normalize_time("8:05"), "08:05")

    def test_meridiem_conversion(self):
        self.assertEqual(normalize_time("09:00 Am"), "09:00")
        self.assertEqual(normalize_time("2:30 pm"), "14:30")
        self.assertEqual(normalize_time("12:15 AM"), "00:15")
        self.assertEqual(normalize_time("12:00 PM"), "12:00")
        # already 24h, the suffix is redundant
        self.assertEqual(normalize_time("14:00 Pm"), "14:00")

    def test_iso_timestamp_keeps_wall_clock(self):
        self.assertEqual(normalize_time("2025-06-10T21:45:00.000Z"), "21:45")
        self.assertEqual(normalize_time(datetime(2025, 6, 10, 7, 30)), "07:30")
        self.assertEqual(normalize_time("2025-06-10T23:30:00-05:00"), "23:30")
        self.assertEqual(normalize_time("2025-06-10T0830"), "00:00")

    def test_time_after_t_must_be_a_full_clock(self):
        self.assertEqual(normalize_time("T8-ish"), "00:00")
        self.assertEqual(normalize_time("2025-06-10T8 in the morning"), "00:00")
        self.assertEqual(normalize_time("2025-06-10T08:00junk", default="08:00"), "08:00")

    def test_failures_use_default(self):
        self.assertEqual(normalize_time("soon"), "00:00")
        self.assertEqual(normalize_time("25:00"), "00:00")
        self.assertEqual(normalize_time(None, default="08:00"), "08:00")

    def test_minutes_since_midnight(self):
        self.assertEqual(time_to_minutes("13:30"), 810)
        self.assertEqual(time_to_minutes("bad"), 0)


class TestDates(unittest.TestCase):
    def test_date_prefix_is_kept_without_shift(self):
        self.assertEqual(canonical_date_string("2025-06-10T23:30:00-05:00"), "2025-06-10")
        self.assertEqual(canonical_date_string("2025-06-10 08:00:00"), "2025-06-10")
        self.assertEqual(canonical_date_string(date(2025, 6, 10)), "2025-06-10")

    def test_non_iso_strings(self):
        self.assertEqual(parse_calendar_date("June 10, 2025"), date(2025, 6, 10))
        self.assertEqual(canonical_date_string("##/##"), "")
        self.assertIsNone(parse_calendar_date(""))

    def test_impossible_calendar_dates(self):
        self.assertEqual(canonical_date_string("2025-02-30"), "")
        self.assertEqual(canonical_date_string("2025-13-01T08:00:00Z"), "")
        self.assertIsNone(parse_calendar_date("2025-02-30"))
        self.assertEqual(canonical_date_string("2024-02-29"), "2024-02-29")

    def test_add_months_clamps_day(self):
        self.assertEqual(add_months(date(2025, 1, 31), 1), date(2025, 2, 28))
        self.assertEqual(add_months(date(2025, 11, 15), 3), date(2026, 2, 15))


if __name__ == "__main__":
    unittest.main(verbosity=2)
