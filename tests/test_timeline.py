"""Tests for the timeline and prayer_times modules."""

import datetime
import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock

import pytz

import src.prayer_data as data_mod
from src.prayer_data import set_data_dir
from src.prayer_times import ATHAN as ATHAN_LEG, IQAMAH as IQAMAH_LEG, PrayerTime
from src.schemas import AthanEntry, IqamahEntry
from src.timeline import (
    MAX_CACHED_DAYS,
    TimelineCache,
    build_timeline,
    empty_timeline,
    get_combined_timeline,
    is_friday_mode,
    resolve_legs,
    to_instant,
)

THURSDAY = datetime.date(2026, 1, 15)
FRIDAY = datetime.date(2026, 1, 16)

ATHAN_ROW = AthanEntry(date="2026-01-16", fajr="06:30", sunrise="07:50", dhuhr="12:30", asr="15:00", maghrib="17:00", isha="18:30")
WEEKDAY_IQAMAH = IqamahEntry(date="2026-01-15", fajr="06:45", dhuhr="13:00", asr="15:30", isha="19:00")
FRIDAY_IQAMAH = IqamahEntry(
    date="2026-01-16", fajr="06:45", dhuhr="13:00", asr="15:30", isha="19:00", jumuah1="13:10", jumuah2="13:45"
)


def utc(day, hour, minute):
    return pytz.utc.localize(datetime.datetime.combine(day, datetime.time(hour, minute)))


class TestResolveLegs(unittest.TestCase):
    def test_friday_mode(self):
        self.assertTrue(is_friday_mode(FRIDAY_IQAMAH))
        self.assertFalse(is_friday_mode(WEEKDAY_IQAMAH))
        self.assertFalse(is_friday_mode(None))

    def test_weekday_dhuhr(self):
        self.assertEqual(resolve_legs("dhuhr", ATHAN_ROW, WEEKDAY_IQAMAH, False), ("12:30", "13:00"))

    def test_friday_dhuhr_loses_iqamah(self):
        self.assertEqual(resolve_legs("dhuhr", ATHAN_ROW, FRIDAY_IQAMAH, True), ("12:30", None))

    def test_jumuah1_takes_dhuhr_athan(self):
        self.assertEqual(resolve_legs("jumuah1", ATHAN_ROW, FRIDAY_IQAMAH, True), ("12:30", "13:10"))

    def test_jumuah2_iqamah_only(self):
        self.assertEqual(resolve_legs("jumuah2", ATHAN_ROW, FRIDAY_IQAMAH, True), (None, "13:45"))

    def test_jumuah_absent_on_weekdays(self):
        self.assertEqual(resolve_legs("jumuah1", ATHAN_ROW, WEEKDAY_IQAMAH, False), (None, None))
        self.assertEqual(resolve_legs("jumuah2", ATHAN_ROW, WEEKDAY_IQAMAH, False), (None, None))

    def test_maghrib_iqamah_is_athan(self):
        self.assertEqual(resolve_legs("maghrib", ATHAN_ROW, WEEKDAY_IQAMAH, False), ("17:00", "17:00"))

    def test_sunrise_has_no_iqamah(self):
        self.assertEqual(resolve_legs("sunrise", ATHAN_ROW, WEEKDAY_IQAMAH, False), ("07:50", None))


class TestBuildTimeline(unittest.TestCase):
    def test_weekday(self):
        timeline = build_timeline(THURSDAY, ATHAN_ROW, WEEKDAY_IQAMAH, pytz.utc)
        self.assertEqual(timeline["fajr"], PrayerTime(utc(THURSDAY, 6, 30), utc(THURSDAY, 6, 45)))
        self.assertEqual(timeline["maghrib"].iqamah, timeline["maghrib"].athan)
        self.assertIsNone(timeline["sunrise"].iqamah)
        self.assertTrue(timeline["jumuah1"].is_empty)
        self.assertTrue(timeline["jumuah2"].is_empty)
        self.assertFalse(timeline.friday_mode)
        self.assertTrue(timeline.has_iqamah)

    def test_friday(self):
        timeline = build_timeline(FRIDAY, ATHAN_ROW, FRIDAY_IQAMAH, pytz.utc)
        self.assertTrue(timeline.friday_mode)
        self.assertIsNone(timeline["dhuhr"].iqamah)
        self.assertEqual(timeline["jumuah1"].athan, timeline["dhuhr"].athan)
        self.assertEqual(timeline["jumuah1"].iqamah, utc(FRIDAY, 13, 10))
        self.assertIsNone(timeline["jumuah2"].athan)
        self.assertEqual(timeline["jumuah2"].start, utc(FRIDAY, 13, 45))

    def test_jumuah2_alone_is_not_friday(self):
        iqamah = IqamahEntry(date="2026-01-16", fajr="06:45", dhuhr="13:00", asr="15:30", isha="19:00", jumuah2="13:45")
        timeline = build_timeline(FRIDAY, ATHAN_ROW, iqamah)
        self.assertFalse(timeline.friday_mode)
        self.assertTrue(timeline["jumuah2"].is_empty)
        self.assertIsNotNone(timeline["dhuhr"].iqamah)

    def test_missing_iqamah_record(self):
        timeline = build_timeline(THURSDAY, ATHAN_ROW, None)
        self.assertIsNone(timeline["fajr"].iqamah)
        self.assertIsNone(timeline["isha"].iqamah)
        self.assertIsNotNone(timeline["maghrib"].iqamah)
        self.assertFalse(timeline.has_iqamah)

    def test_missing_athan_record_is_empty(self):
        timeline = build_timeline(THURSDAY, None, WEEKDAY_IQAMAH)
        self.assertTrue(timeline.is_empty)
        self.assertEqual(timeline, empty_timeline(THURSDAY))

    def test_idempotent(self):
        self.assertEqual(
            build_timeline(FRIDAY, ATHAN_ROW, FRIDAY_IQAMAH, pytz.utc),
            build_timeline(FRIDAY, ATHAN_ROW, FRIDAY_IQAMAH, pytz.utc),
        )

    def test_naive_without_timezone(self):
        timeline = build_timeline(THURSDAY, ATHAN_ROW, WEEKDAY_IQAMAH)
        self.assertEqual(timeline["asr"].athan, datetime.datetime(2026, 1, 15, 15, 0))

    def test_localized_with_dst(self):
        london = pytz.timezone("Europe/London")
        instant = to_instant(datetime.date(2026, 7, 1), "13:00", london)
        self.assertEqual(instant.utcoffset(), datetime.timedelta(hours=1))
        self.assertIsNone(to_instant(THURSDAY, None, london))

    def test_date_string(self):
        self.assertEqual(empty_timeline(THURSDAY).date_string, "2026-01-15")


class TestTimelineViews(unittest.TestCase):
    def test_tick_view_drops_dhuhr_on_friday(self):
        view = build_timeline(FRIDAY, ATHAN_ROW, FRIDAY_IQAMAH).tick_view()
        self.assertTrue(view["dhuhr"].is_empty)
        self.assertFalse(view["jumuah1"].is_empty)

    def test_tick_view_unchanged_on_weekday(self):
        timeline = build_timeline(THURSDAY, ATHAN_ROW, WEEKDAY_IQAMAH)
        self.assertIs(timeline.tick_view(), timeline)

    def test_events_ordered(self):
        events = build_timeline(FRIDAY, ATHAN_ROW, FRIDAY_IQAMAH).events()
        instants = [instant for instant, _, _ in events]
        self.assertEqual(instants, sorted(instants))
        # shared 12:30 start: dhuhr before jumuah1
        self.assertEqual(events[3][1:], ("dhuhr", ATHAN_LEG))
        self.assertEqual(events[4][1:], ("jumuah1", ATHAN_LEG))
        # maghrib athan before its identical iqamah
        maghrib = [e for e in events if e[1] == "maghrib"]
        self.assertEqual([leg for _, _, leg in maghrib], [ATHAN_LEG, IQAMAH_LEG])


class TestCombinedTimeline(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.mkdtemp()
        self._orig_data_dir = data_mod.DATA_DIR
        for data_type, row in (("athan", ATHAN_ROW.model_dump()), ("iqamah", FRIDAY_IQAMAH.model_dump())):
            os.makedirs(os.path.join(self._tmpdir, data_type))
            with open(os.path.join(self._tmpdir, data_type, "2026.json"), "w") as f:
                json.dump([row], f)
        set_data_dir(self._tmpdir)

    def tearDown(self):
        set_data_dir(self._orig_data_dir)
        shutil.rmtree(self._tmpdir, ignore_errors=True)

    def test_builds_from_data_files(self):
        timeline = get_combined_timeline("2026-01-16", pytz.utc)
        self.assertTrue(timeline.friday_mode)
        self.assertEqual(timeline["asr"].iqamah, utc(FRIDAY, 15, 30))

    def test_accepts_datetime(self):
        timeline = get_combined_timeline(datetime.datetime(2026, 1, 16, 9, 0))
        self.assertEqual(timeline.date, FRIDAY)

    def test_unsupported_year_is_empty(self):
        timeline = get_combined_timeline(datetime.date(2031, 1, 1))
        self.assertTrue(timeline.is_empty)

    def test_date_without_record_is_empty(self):
        self.assertTrue(get_combined_timeline(THURSDAY).is_empty)


class TestTimelineCache(unittest.TestCase):
    def setUp(self):
        self.builder = MagicMock(side_effect=lambda day, tz: build_timeline(day, ATHAN_ROW, WEEKDAY_IQAMAH, tz))
        self.cache = TimelineCache(pytz.utc, builder=self.builder)

    def test_builds_each_date_once(self):
        first = self.cache.get(THURSDAY)
        second = self.cache.get("2026-01-15")
        self.assertIs(first, second)
        self.builder.assert_called_once_with(THURSDAY, pytz.utc)

    def test_evicts_oldest(self):
        for offset in range(MAX_CACHED_DAYS + 2):
            self.cache.get(THURSDAY + datetime.timedelta(days=offset))
        self.assertEqual(len(self.cache), MAX_CACHED_DAYS)
        self.cache.get(THURSDAY)
        self.assertEqual(self.builder.call_count, MAX_CACHED_DAYS + 3)

    def test_warns_for_empty_timeline(self):
        cache = TimelineCache(builder=lambda day, tz: empty_timeline(day))
        with self.assertLogs("src.timeline", level="WARNING"):
            self.assertTrue(cache.get(THURSDAY).is_empty)

    def test_clear(self):
        self.cache.get(THURSDAY)
        self.cache.clear()
        self.cache.get(THURSDAY)
        self.assertEqual(self.builder.call_count, 2)


if __name__ == "__main__":
    unittest.main()
