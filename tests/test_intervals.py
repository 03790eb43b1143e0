from datetime import date, datetime, timedelta, timezone
import unittest
from zoneinfo import ZoneInfo

from timetrack.errors import InvalidIntervalError
from timetrack.services.intervals import (
    load_zone,
    local_clock_interval,
    normalize_utc,
    split_by_local_midnight,
)

HELSINKI = ZoneInfo("Europe/Helsinki")


class SplitByLocalMidnightTests(unittest.TestCase):
    def test_overnight_interval_splits_at_local_midnight(self) -> None:
        segments = split_by_local_midnight(
            datetime(2026, 2, 10, 20, 0, tzinfo=timezone.utc),
            datetime(2026, 2, 11, 3, 0, tzinfo=timezone.utc),
            HELSINKI,
        )

        self.assertEqual([segment.local_date for segment in segments], [date(2026, 2, 10), date(2026, 2, 11)])
        self.assertEqual(segments[0].end_utc, datetime(2026, 2, 10, 22, 0, tzinfo=timezone.utc))
        self.assertEqual(segments[1].start_utc, segments[0].end_utc)
        self.assertEqual(segments[1].end_utc, datetime(2026, 2, 11, 3, 0, tzinfo=timezone.utc))

    def test_same_day_interval_returns_input_unchanged(self) -> None:
        start = datetime(2026, 2, 10, 6, 15, tzinfo=timezone.utc)
        end = datetime(2026, 2, 10, 14, 45, tzinfo=timezone.utc)

        segments = split_by_local_midnight(start, end, HELSINKI)

        self.assertEqual(len(segments), 1)
        self.assertEqual(segments[0].start_utc, start)
        self.assertEqual(segments[0].end_utc, end)
        self.assertEqual(segments[0].local_date, date(2026, 2, 10))

    def test_multi_day_interval_is_contiguous(self) -> None:
        start = datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc)
        end = datetime(2026, 2, 13, 8, 0, tzinfo=timezone.utc)

        segments = split_by_local_midnight(start, end, HELSINKI)

        self.assertEqual(len(segments), 4)
        self.assertEqual(segments[0].start_utc, start)
        self.assertEqual(segments[-1].end_utc, end)
        for previous, current in zip(segments, segments[1:]):
            self.assertEqual(previous.end_utc, current.start_utc)
            self.assertEqual(current.local_date, previous.local_date + timedelta(days=1))

    def test_dst_spring_forward_day(self) -> None:
        # 2026-03-29 in Helsinki has 23 hours; local midnight is 22:00Z before and 21:00Z after.
        segments = split_by_local_midnight(
            datetime(2026, 3, 28, 21, 0, tzinfo=timezone.utc),
            datetime(2026, 3, 29, 23, 0, tzinfo=timezone.utc),
            HELSINKI,
        )

        self.assertEqual(len(segments), 3)
        self.assertEqual(segments[1].local_date, date(2026, 3, 29))
        self.assertEqual(segments[1].start_utc, datetime(2026, 3, 28, 22, 0, tzinfo=timezone.utc))
        self.assertEqual(segments[1].end_utc, datetime(2026, 3, 29, 21, 0, tzinfo=timezone.utc))

    def test_naive_input_is_treated_as_utc(self) -> None:
        segments = split_by_local_midnight(datetime(2026, 2, 10, 8, 0), datetime(2026, 2, 10, 9, 0), HELSINKI)

        self.assertEqual(segments[0].start_utc, datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc))

    def test_empty_or_reversed_interval_fails(self) -> None:
        start = datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc)
        with self.assertRaises(InvalidIntervalError):
            split_by_local_midnight(start, start, HELSINKI)
        with self.assertRaises(InvalidIntervalError):
            split_by_local_midnight(start, start - timedelta(minutes=1), HELSINKI)


class LocalClockIntervalTests(unittest.TestCase):
    def test_same_day_clock_interval(self) -> None:
        start, end = local_clock_interval(date(2026, 2, 10), "09:00", "17:30", HELSINKI)

        self.assertEqual(start, datetime(2026, 2, 10, 7, 0, tzinfo=timezone.utc))
        self.assertEqual(end, datetime(2026, 2, 10, 15, 30, tzinfo=timezone.utc))

    def test_end_not_after_start_rolls_to_next_day(self) -> None:
        start, end = local_clock_interval(date(2026, 2, 10), "22:00", "06:00", HELSINKI)

        self.assertEqual(start, datetime(2026, 2, 10, 20, 0, tzinfo=timezone.utc))
        self.assertEqual(end, datetime(2026, 2, 11, 4, 0, tzinfo=timezone.utc))

    def test_equal_clocks_mean_a_full_day(self) -> None:
        start, end = local_clock_interval(date(2026, 2, 10), "08:00", "08:00", HELSINKI)

        self.assertEqual(end - start, timedelta(hours=24))


class ZoneHelpersTests(unittest.TestCase):
    def test_unknown_zone_falls_back_to_default(self) -> None:
        self.assertEqual(load_zone("Mars/Olympus_Mons"), HELSINKI)
        self.assertEqual(load_zone(None), HELSINKI)

    def test_normalize_utc_converts_offsets(self) -> None:
        local = datetime(2026, 2, 10, 10, 0, tzinfo=HELSINKI)
        self.assertEqual(normalize_utc(local), datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc))


if __name__ == "__main__":
    unittest.main()
