from __future__ import annotations

import unittest

from babylog.utils.day_window import clip_to_day, date_prefix, dates_spanned, parse_timestamp

HOUR_MS = 3_600_000


class TestDayWindow(unittest.TestCase):
    def test_parse_timestamp(self) -> None:
        self.assertIsNotNone(parse_timestamp("2024-03-01T08:00"))
        self.assertIsNotNone(parse_timestamp("2024-03-01T08:00:00.000Z"))
        self.assertIsNone(parse_timestamp("not a time"))
        self.assertIsNone(parse_timestamp(None))

    def test_clip_inside_day(self) -> None:
        self.assertEqual(clip_to_day("2024-03-01T13:00", "2024-03-01T15:00", "2024-03-01"), 2 * HOUR_MS)

    def test_clip_stops_at_last_second(self) -> None:
        self.assertEqual(clip_to_day("2024-01-01T23:00", "2024-01-02T01:00", "2024-01-01"), HOUR_MS - 1000)
        self.assertEqual(clip_to_day("2024-01-01T23:00", "2024-01-02T01:00", "2024-01-02"), HOUR_MS)

    def test_clip_outside_day_is_zero(self) -> None:
        self.assertEqual(clip_to_day("2024-01-03T01:00", "2024-01-03T02:00", "2024-01-01"), 0)
        self.assertEqual(clip_to_day("garbage", "2024-01-03T02:00", "2024-01-03"), 0)

    def test_aware_timestamps_use_configured_zone(self) -> None:
        # 22:00-23:00 UTC is 23:00-00:00 in Paris (winter), so 1 h minus the last second lands on Jan 1
        ms = clip_to_day("2024-01-01T22:00:00Z", "2024-01-01T23:00:00Z", "2024-01-01", timezone="Europe/Paris")
        self.assertEqual(ms, HOUR_MS - 1000)

    def test_dates_spanned(self) -> None:
        self.assertEqual(dates_spanned("2024-02-28T22:00", "2024-03-01T02:00"), ["2024-02-28", "2024-02-29", "2024-03-01"])
        self.assertEqual(dates_spanned("2024-03-01T08:00", "2024-03-01T09:00"), ["2024-03-01"])
        self.assertEqual(dates_spanned("2024-03-02T08:00", "2024-03-01T09:00"), ["2024-03-02"])

    def test_date_prefix(self) -> None:
        self.assertEqual(date_prefix("2024-03-01T08:00"), "2024-03-01")
        self.assertEqual(date_prefix(None), "")


if __name__ == "__main__":
    unittest.main()
