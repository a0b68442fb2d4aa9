"""Tests for the prayer_times module."""

import datetime
import math
import unittest

import pytz

from prayer_reminder.errors import ConfigurationError
from prayer_reminder.prayer_times import (
    CalculationMethod,
    Coordinates,
    HighLatitudeRule,
    Madhab,
    PrayerName,
    PrayerTimeEngine,
    remaining_time,
)

CAIRO = (30.0444, 31.2357)
CAIRO_TZ = pytz.timezone("Africa/Cairo")
WINTER_DAY = datetime.date(2025, 1, 15)


def _cairo_engine(method=CalculationMethod.EGYPTIAN, **kwargs):
    return PrayerTimeEngine(CAIRO[0], CAIRO[1], method, tz=CAIRO_TZ, **kwargs)


def _at(hour, minute, second=0, day=WINTER_DAY):
    return CAIRO_TZ.localize(datetime.datetime(day.year, day.month, day.day, hour, minute, second))


def _assert_strictly_increasing(test, prayers):
    test.assertEqual([p.name for p in prayers], list(PrayerName))
    for earlier, later in zip(prayers, prayers[1:]):
        test.assertLess(earlier.time, later.time, f"{earlier.name} !< {later.name}")


class TestCoordinates(unittest.TestCase):
    def test_accepts_bounds(self):
        Coordinates(90, 180)
        Coordinates(-90, -180)

    def test_rejects_out_of_range(self):
        for lat, lon in ((90.1, 0), (-91, 0), (0, 180.5), (0, -181)):
            with self.assertRaises(ConfigurationError):
                Coordinates(lat, lon)

    def test_rejects_non_numbers(self):
        for lat, lon in ((math.nan, 0), (0, math.inf), ("30", 31), (True, 0)):
            with self.assertRaises(ConfigurationError):
                Coordinates(lat, lon)

    def test_engine_validates_at_construction(self):
        with self.assertRaises(ConfigurationError):
            PrayerTimeEngine(123.0, 0.0, CalculationMethod.EGYPTIAN)

    def test_engine_rejects_method_string(self):
        with self.assertRaises(TypeError):
            PrayerTimeEngine(30.0, 31.0, "Egyptian")


class TestCalculationMethod(unittest.TestCase):
    def test_from_name_matches_value_case_insensitively(self):
        self.assertIs(CalculationMethod.from_name("egyptian"), CalculationMethod.EGYPTIAN)
        self.assertIs(CalculationMethod.from_name("MuslimWorldLeague"), CalculationMethod.MUSLIM_WORLD_LEAGUE)

    def test_from_name_aliases(self):
        self.assertIs(CalculationMethod.from_name("Makkah"), CalculationMethod.UMM_AL_QURA)
        self.assertIs(CalculationMethod.from_name("ISNA"), CalculationMethod.NORTH_AMERICA)
        self.assertIs(CalculationMethod.from_name("MWL"), CalculationMethod.MUSLIM_WORLD_LEAGUE)

    def test_unknown_method(self):
        with self.assertRaises(ConfigurationError):
            CalculationMethod.from_name("Atlantis")

    def test_every_method_has_parameters(self):
        for method in CalculationMethod:
            params = method.parameters
            self.assertTrue(params.isha_angle is not None or params.isha_interval is not None)


class TestComputeDay(unittest.TestCase):
    def test_cairo_winter_times(self):
        prayers = {p.name: p.time for p in _cairo_engine().compute_day(WINTER_DAY)}
        self.assertTrue(_at(4, 55) <= prayers[PrayerName.FAJR] <= _at(5, 40))
        self.assertTrue(_at(6, 30) <= prayers[PrayerName.SUNRISE] <= _at(7, 5))
        self.assertTrue(_at(11, 55) <= prayers[PrayerName.DHUHR] <= _at(12, 15))
        self.assertTrue(_at(14, 40) <= prayers[PrayerName.ASR] <= _at(15, 15))
        self.assertTrue(_at(17, 0) <= prayers[PrayerName.MAGHRIB] <= _at(17, 35))
        self.assertTrue(_at(18, 15) <= prayers[PrayerName.ISHA] <= _at(19, 0))

    def test_six_entries_strictly_increasing(self):
        for method in CalculationMethod:
            with self.subTest(method=method):
                engine = _cairo_engine(method)
                _assert_strictly_increasing(self, engine.compute_day(WINTER_DAY))

    def test_times_are_minute_aligned_and_local(self):
        for prayer in _cairo_engine().compute_day(WINTER_DAY):
            self.assertEqual(prayer.time.second, 0)
            self.assertEqual(prayer.time.date(), WINTER_DAY)
            self.assertEqual(prayer.time.utcoffset(), datetime.timedelta(hours=2))

    def test_display_names(self):
        names = [p.display_name for p in _cairo_engine().compute_day(WINTER_DAY)]
        self.assertEqual(names, ["Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha"])

    def test_isha_interval_method(self):
        engine = _cairo_engine(CalculationMethod.UMM_AL_QURA)
        prayers = {p.name: p.time for p in engine.compute_day(WINTER_DAY)}
        self.assertEqual(prayers[PrayerName.ISHA] - prayers[PrayerName.MAGHRIB], datetime.timedelta(minutes=90))

    def test_hanafi_asr_is_later(self):
        shafi = {p.name: p.time for p in _cairo_engine().compute_day(WINTER_DAY)}
        hanafi = {p.name: p.time for p in _cairo_engine(madhab=Madhab.HANAFI).compute_day(WINTER_DAY)}
        self.assertGreater(hanafi[PrayerName.ASR], shafi[PrayerName.ASR])

    def test_tehran_maghrib_after_sunset(self):
        tehran = PrayerTimeEngine(35.6892, 51.3890, CalculationMethod.TEHRAN, tz=pytz.timezone("Asia/Tehran"))
        mwl = PrayerTimeEngine(35.6892, 51.3890, CalculationMethod.MUSLIM_WORLD_LEAGUE,
                               tz=pytz.timezone("Asia/Tehran"))
        day = datetime.date(2025, 3, 1)
        t = {p.name: p.time for p in tehran.compute_day(day)}
        m = {p.name: p.time for p in mwl.compute_day(day)}
        self.assertGreater(t[PrayerName.MAGHRIB], m[PrayerName.MAGHRIB])

    def test_southern_hemisphere(self):
        engine = PrayerTimeEngine(-6.2088, 106.8456, CalculationMethod.SINGAPORE,
                                  tz=pytz.timezone("Asia/Jakarta"))
        _assert_strictly_increasing(self, engine.compute_day(datetime.date(2025, 3, 1)))


class TestHighLatitude(unittest.TestCase):
    DAYS = (datetime.date(2025, 6, 21), datetime.date(2025, 12, 21), datetime.date(2025, 3, 20))

    def _check(self, lat, lon, tz, method=CalculationMethod.MUSLIM_WORLD_LEAGUE, rule=None):
        kwargs = {"high_latitude_rule": rule} if rule else {}
        engine = PrayerTimeEngine(lat, lon, method, tz=tz, **kwargs)
        for day in self.DAYS:
            with self.subTest(lat=lat, day=day):
                _assert_strictly_increasing(self, engine.compute_day(day))

    def test_oslo_summer_uses_night_fallback(self):
        self._check(59.91, 10.75, pytz.timezone("Europe/Oslo"))

    def test_tromso_midnight_sun_and_polar_night(self):
        self._check(69.65, 18.96, pytz.timezone("Europe/Oslo"))

    def test_just_inside_polar_circle(self):
        self._check(66.5, 25.7, pytz.timezone("Europe/Helsinki"))

    def test_poles(self):
        self._check(90.0, 0.0, pytz.utc)
        self._check(-90.0, 0.0, pytz.utc)

    def test_every_rule(self):
        for rule in HighLatitudeRule:
            self._check(62.0, 6.15, pytz.timezone("Europe/Oslo"), rule=rule)

    def test_tehran_maghrib_angle_every_rule(self):
        for rule in HighLatitudeRule:
            for lat in (60.0, 62.0, 69.65, -71.0, -90.0):
                self._check(lat, 10.75, pytz.utc, method=CalculationMethod.TEHRAN, rule=rule)

    def test_tehran_isha_stays_after_clamped_maghrib(self):
        engine = PrayerTimeEngine(60.0, 10.75, CalculationMethod.TEHRAN,
                                  high_latitude_rule=HighLatitudeRule.SEVENTH_OF_THE_NIGHT, tz=pytz.utc)
        prayers = {p.name: p.time for p in engine.compute_day(datetime.date(2025, 6, 21))}
        self.assertGreaterEqual(prayers[PrayerName.ISHA] - prayers[PrayerName.MAGHRIB],
                                datetime.timedelta(minutes=2))

    def test_every_method_and_latitude_at_solstices(self):
        for method in CalculationMethod:
            for day in (datetime.date(2025, 6, 21), datetime.date(2025, 12, 21)):
                for lat in range(-90, 91):
                    engine = PrayerTimeEngine(lat, 0.0, method, tz=pytz.utc)
                    with self.subTest(method=method.value, lat=lat, day=day):
                        _assert_strictly_increasing(self, engine.compute_day(day))

    def test_middle_of_night_bounds_isha(self):
        engine = PrayerTimeEngine(59.91, 10.75, CalculationMethod.MUSLIM_WORLD_LEAGUE,
                                  tz=pytz.timezone("Europe/Oslo"))
        prayers = {p.name: p.time for p in engine.compute_day(datetime.date(2025, 6, 21))}
        sunrise, sunset = prayers[PrayerName.SUNRISE], prayers[PrayerName.MAGHRIB]
        night = datetime.timedelta(hours=24) - (sunset - sunrise)
        self.assertLessEqual(prayers[PrayerName.ISHA] - sunset, night / 2 + datetime.timedelta(minutes=1))
        self.assertLessEqual(sunrise - prayers[PrayerName.FAJR], night / 2 + datetime.timedelta(minutes=1))


class TestGetNextPrayer(unittest.TestCase):
    def setUp(self):
        self.engine = _cairo_engine()
        self.today = {p.name: p for p in self.engine.compute_day(WINTER_DAY)}

    def test_returns_next_prayer(self):
        prayer = self.engine.get_next_prayer(_at(12, 30))
        self.assertIs(prayer.name, PrayerName.ASR)

    def test_skips_sunrise(self):
        between = self.today[PrayerName.FAJR].time + datetime.timedelta(minutes=5)
        self.assertIs(self.engine.get_next_prayer(between).name, PrayerName.DHUHR)

    def test_after_isha_returns_tomorrows_fajr(self):
        prayer = self.engine.get_next_prayer(_at(23, 30))
        self.assertIs(prayer.name, PrayerName.FAJR)
        self.assertEqual(prayer.time.date(), WINTER_DAY + datetime.timedelta(days=1))

    def test_exact_prayer_instant_moves_on(self):
        dhuhr = self.today[PrayerName.DHUHR].time
        self.assertIs(self.engine.get_next_prayer(dhuhr).name, PrayerName.ASR)

    def test_always_in_the_future(self):
        reference = _at(0, 0)
        end = reference + datetime.timedelta(days=1)
        while reference < end:
            self.assertGreater(self.engine.get_next_prayer(reference).time, reference)
            reference += datetime.timedelta(minutes=17)

    def test_naive_reference_is_local(self):
        naive = datetime.datetime(2025, 1, 15, 12, 30)
        self.assertIs(self.engine.get_next_prayer(naive).name, PrayerName.ASR)

    def test_zone_far_from_meridian(self):
        engine = PrayerTimeEngine(-6.2088, 106.8456, CalculationMethod.SINGAPORE, tz=pytz.utc)
        reference = pytz.utc.localize(datetime.datetime(2025, 3, 1, 0, 0))
        end = reference + datetime.timedelta(days=1)
        while reference < end:
            self.assertGreater(engine.get_next_prayer(reference).time, reference)
            reference += datetime.timedelta(minutes=23)

    def test_all_prayer_times_includes_passed(self):
        prayers = self.engine.get_all_prayer_times(_at(23, 30))
        self.assertEqual(len(prayers), 6)
        self.assertEqual(prayers[0].time.date(), WINTER_DAY)


class TestRemainingTime(unittest.TestCase):
    def test_minutes_and_seconds(self):
        now = _at(11, 44, 30)
        rt = remaining_time(now + datetime.timedelta(seconds=930), now)
        self.assertEqual((rt.total_seconds, rt.minutes, rt.seconds), (930, 15, 30))
        self.assertEqual(rt.formatted, "15m 30s")

    def test_minutes_are_total_minutes(self):
        now = _at(10, 0)
        rt = remaining_time(now + datetime.timedelta(seconds=3700), now)
        self.assertEqual(rt.minutes, 61)
        self.assertEqual(rt.minutes * 60 + rt.seconds, rt.total_seconds)
        self.assertEqual(rt.formatted, "1h 01m")

    def test_never_negative(self):
        now = _at(10, 0)
        rt = remaining_time(now - datetime.timedelta(seconds=60), now)
        self.assertEqual((rt.total_seconds, rt.minutes, rt.seconds), (0, 0, 0))

    def test_rounds_to_nearest_second(self):
        now = _at(10, 0)
        rt = remaining_time(now + datetime.timedelta(seconds=59, milliseconds=600), now)
        self.assertEqual(rt.total_seconds, 60)

    def test_engine_method(self):
        engine = _cairo_engine()
        now = _at(11, 0)
        rt = engine.get_remaining_time(now + datetime.timedelta(minutes=5), now)
        self.assertEqual(rt.total_seconds, 300)


if __name__ == "__main__":
    unittest.main()
