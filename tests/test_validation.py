import unittest
from datetime import datetime, timezone, timedelta

from reservations.errors import ValidationError
from reservations.validation import (
    parse_timestamp,
    validate_window,
    normalize_vehicle_number,
    validate_amount,
    validate_area_name,
)


class TestTimestamps(unittest.TestCase):
    def test_naive_iso_is_taken_as_utc(self):
        self.assertEqual(parse_timestamp("2030-01-01T10:00:00", "start_time"), datetime(2030, 1, 1, 10))

    def test_zulu_and_offsets_are_converted_to_naive_utc(self):
        self.assertEqual(parse_timestamp("2030-01-01T10:00:00Z", "start_time"), datetime(2030, 1, 1, 10))
        self.assertEqual(parse_timestamp("2030-01-01T15:30:00+05:30", "start_time"), datetime(2030, 1, 1, 10))

    def test_aware_datetime(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        value = datetime(2030, 1, 1, 15, 30, tzinfo=ist)
        self.assertEqual(parse_timestamp(value, "start_time"), datetime(2030, 1, 1, 10))

    def test_garbage_and_missing(self):
        for value in ("tomorrow", "", None, 42):
            with self.assertRaises(ValidationError):
                parse_timestamp(value, "start_time")

    def test_window_must_be_strictly_increasing(self):
        with self.assertRaises(ValidationError):
            validate_window("2030-01-01T11:00:00", "2030-01-01T10:00:00")
        with self.assertRaises(ValidationError):
            validate_window("2030-01-01T10:00:00", "2030-01-01T10:00:00")
        start, end = validate_window("2030-01-01T10:00:00", "2030-01-01T10:01:00")
        self.assertLess(start, end)


class TestBookingFields(unittest.TestCase):
    def test_vehicle_number_is_normalized(self):
        self.assertEqual(normalize_vehicle_number("ka 01 ab 1234"), "KA01AB1234")
        self.assertEqual(normalize_vehicle_number("MH-12-A-1234"), "MH12A1234")

    def test_bad_vehicle_numbers(self):
        for value in ("", "1234", "KA01ABC1234", "KA0AB1234", None):
            with self.assertRaises(ValidationError):
                normalize_vehicle_number(value)

    def test_amount(self):
        self.assertEqual(validate_amount(5000), 5000)
        self.assertEqual(validate_amount(" 250 "), 250)
        for value in (0, -10, 10.5, "ten", None, True):
            with self.assertRaises(ValidationError):
                validate_amount(value)

    def test_area_name(self):
        self.assertEqual(validate_area_name("  A1 "), "A1")
        for value in ("", "   ", None, 7):
            with self.assertRaises(ValidationError):
                validate_area_name(value)


if __name__ == "__main__":
    unittest.main()
