import unittest
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from nutria.nutrition_day import (
    day_range,
    month_week_buckets,
    parse_day,
    parse_timestamp,
    resolve_day_key,
    span_range,
    week_days,
    weekday_name,
)

UTC = timezone.utc
SAO_PAULO = ZoneInfo("America/Sao_Paulo")


class ResolveDayKeyTestCase(unittest.TestCase):
    def test_five_am_boundary_splits_calendar_date(self):
        before = datetime(2024, 1, 15, 4, 59, 59, tzinfo=UTC)
        at = datetime(2024, 1, 15, 5, 0, 0, tzinfo=UTC)
        self.assertEqual(resolve_day_key(before, UTC), date(2024, 1, 14))
        self.assertEqual(resolve_day_key(at, UTC), date(2024, 1, 15))

    def test_late_night_meal_counts_for_previous_day(self):
        self.assertEqual(resolve_day_key(datetime(2024, 1, 15, 4, 30)), date(2024, 1, 14))

    def test_naive_timestamp_is_read_as_utc_when_zone_given(self):
        # 06:00 UTC is 03:00 in Sao Paulo
        self.assertEqual(resolve_day_key(datetime(2024, 1, 15, 6, 0), SAO_PAULO), date(2024, 1, 14))

    def test_every_instant_of_a_range_maps_back_to_its_key(self):
        key = date(2024, 3, 10)
        start, end = day_range(key, UTC)
        probe = start
        while probe < end:
            self.assertEqual(resolve_day_key(probe, UTC), key)
            probe += timedelta(minutes=37)
        self.assertEqual(resolve_day_key(end, UTC), key + timedelta(days=1))


class DayRangeTestCase(unittest.TestCase):
    def test_utc_range_starts_at_five(self):
        start, end = day_range(date(2024, 1, 15))
        self.assertEqual(start, datetime(2024, 1, 15, 5, tzinfo=UTC))
        self.assertEqual(end - start, timedelta(hours=24))

    def test_consecutive_ranges_tile_without_gaps(self):
        first = day_range(date(2024, 1, 15), SAO_PAULO)
        second = day_range(date(2024, 1, 16), SAO_PAULO)
        self.assertEqual(first[1], second[0])

    def test_local_zone_range_is_expressed_in_utc(self):
        start, _ = day_range(date(2024, 1, 15), SAO_PAULO)
        self.assertEqual(start, datetime(2024, 1, 15, 8, tzinfo=UTC))

    def test_span_range_covers_first_to_last_day(self):
        start, end = span_range(date(2024, 1, 14), date(2024, 1, 20), UTC)
        self.assertEqual(start, datetime(2024, 1, 14, 5, tzinfo=UTC))
        self.assertEqual(end, datetime(2024, 1, 21, 5, tzinfo=UTC))


class CalendarHelpersTestCase(unittest.TestCase):
    def test_week_runs_sunday_to_saturday(self):
        days = week_days(date(2024, 1, 17))
        self.assertEqual(len(days), 7)
        self.assertEqual(days[0], date(2024, 1, 14))
        self.assertEqual(days[-1], date(2024, 1, 20))
        self.assertEqual(weekday_name(days[0]), "Domingo")
        self.assertEqual(weekday_name(days[-1]), "Sábado")

    def test_sunday_anchor_starts_its_own_week(self):
        self.assertEqual(week_days(date(2024, 1, 14))[0], date(2024, 1, 14))

    def test_month_buckets_keep_full_weeks(self):
        buckets = month_week_buckets(date(2024, 2, 20))
        self.assertEqual(buckets[0], (date(2024, 1, 28), date(2024, 2, 3)))
        self.assertEqual(buckets[-1], (date(2024, 2, 25), date(2024, 3, 2)))
        self.assertEqual(len(buckets), 5)

    def test_december_buckets_roll_into_next_year(self):
        buckets = month_week_buckets(date(2024, 12, 5))
        self.assertEqual(buckets[-1][1], date(2025, 1, 4))

    def test_parse_helpers(self):
        self.assertEqual(parse_day("2024-01-15"), date(2024, 1, 15))
        self.assertIsNone(parse_day("15/01/2024"))
        self.assertEqual(parse_day(None, fallback=date(2024, 1, 1)), date(2024, 1, 1))
        self.assertEqual(parse_timestamp("2024-01-15T04:30:00Z"), datetime(2024, 1, 15, 4, 30, tzinfo=UTC))
        self.assertIsNone(parse_timestamp("ontem"))


if __name__ == "__main__":
    unittest.main()
