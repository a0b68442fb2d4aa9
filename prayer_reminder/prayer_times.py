"""Astronomical prayer time computation and next-prayer queries."""

import datetime
import enum
import logging
import math
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

import pytz

from prayer_reminder.errors import ConfigurationError

logger = logging.getLogger(__name__)

RISE_SET_ANGLE = 0.833        # degrees below the horizon at sunrise / sunset
NEAREST_SOLAR_LATITUDE = 65.0  # where the sun always rises and sets
MIN_PRAYER_GAP = 2 / 60.0     # hours between two clamped prayers
ITERATIONS = 2

# Approximate local solar hour of each event, used as the first guess.
_INITIAL_GUESS = {
    "fajr": 5.0,
    "sunrise": 6.0,
    "dhuhr": 12.0,
    "asr": 13.0,
    "sunset": 18.0,
    "maghrib": 18.0,
    "isha": 18.0,
}


class PrayerName(enum.Enum):
    FAJR = "Fajr"
    SUNRISE = "Sunrise"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"


PRAYER_NAMES = list(PrayerName)
PRAYER_DISPLAY = {
    PrayerName.FAJR: "Fajr",
    PrayerName.SUNRISE: "Sunrise",
    PrayerName.DHUHR: "Dhuhr",
    PrayerName.ASR: "Asr",
    PrayerName.MAGHRIB: "Maghrib",
    PrayerName.ISHA: "Isha",
}


class MethodParameters(NamedTuple):
    fajr_angle: float
    isha_angle: Optional[float] = None
    isha_interval: Optional[int] = None    # minutes after Maghrib
    maghrib_angle: Optional[float] = None  # None = sunset
    dhuhr_minutes: int = 0


class CalculationMethod(enum.Enum):
    MUSLIM_WORLD_LEAGUE = "MuslimWorldLeague"
    EGYPTIAN = "Egyptian"
    KARACHI = "Karachi"
    UMM_AL_QURA = "UmmAlQura"
    DUBAI = "Dubai"
    QATAR = "Qatar"
    KUWAIT = "Kuwait"
    MOONSIGHTING_COMMITTEE = "MoonsightingCommittee"
    SINGAPORE = "Singapore"
    TURKEY = "Turkey"
    TEHRAN = "Tehran"
    NORTH_AMERICA = "NorthAmerica"

    @property
    def parameters(self) -> MethodParameters:
        return METHOD_PARAMETERS[self]

    @classmethod
    def from_name(cls, name: str) -> "CalculationMethod":
        """Look up a method by its value or a common alias, ignoring case."""
        key = str(name).strip().lower()
        for method in cls:
            if method.value.lower() == key:
                return method
        if key in METHOD_ALIASES:
            return METHOD_ALIASES[key]
        raise ConfigurationError(f"Unknown calculation method: {name!r}")


METHOD_PARAMETERS = {
    CalculationMethod.MUSLIM_WORLD_LEAGUE: MethodParameters(18, 17, dhuhr_minutes=1),
    CalculationMethod.EGYPTIAN: MethodParameters(19.5, 17.5, dhuhr_minutes=1),
    CalculationMethod.KARACHI: MethodParameters(18, 18, dhuhr_minutes=1),
    CalculationMethod.UMM_AL_QURA: MethodParameters(18.5, isha_interval=90),
    CalculationMethod.DUBAI: MethodParameters(18.2, 18.2),
    CalculationMethod.QATAR: MethodParameters(18, isha_interval=90),
    CalculationMethod.KUWAIT: MethodParameters(18, 17.5),
    CalculationMethod.MOONSIGHTING_COMMITTEE: MethodParameters(18, 18, dhuhr_minutes=5),
    CalculationMethod.SINGAPORE: MethodParameters(20, 18, dhuhr_minutes=1),
    CalculationMethod.TURKEY: MethodParameters(18, 17),
    CalculationMethod.TEHRAN: MethodParameters(17.7, 14, maghrib_angle=4.5),
    CalculationMethod.NORTH_AMERICA: MethodParameters(15, 15, dhuhr_minutes=1),
}

METHOD_ALIASES = {
    "mwl": CalculationMethod.MUSLIM_WORLD_LEAGUE,
    "egypt": CalculationMethod.EGYPTIAN,
    "makkah": CalculationMethod.UMM_AL_QURA,
    "isna": CalculationMethod.NORTH_AMERICA,
}


class Madhab(enum.Enum):
    SHAFI = "Shafi"
    HANAFI = "Hanafi"

    @property
    def shadow_factor(self) -> int:
        return 2 if self is Madhab.HANAFI else 1

    @classmethod
    def from_name(cls, name: str) -> "Madhab":
        for madhab in cls:
            if madhab.value.lower() == str(name).strip().lower():
                return madhab
        raise ConfigurationError(f"Unknown madhab: {name!r}")


class HighLatitudeRule(enum.Enum):
    MIDDLE_OF_THE_NIGHT = "MiddleOfTheNight"
    SEVENTH_OF_THE_NIGHT = "SeventhOfTheNight"
    TWILIGHT_ANGLE = "TwilightAngle"

    def night_portion(self, angle: float) -> float:
        if self is HighLatitudeRule.SEVENTH_OF_THE_NIGHT:
            return 1 / 7.0
        if self is HighLatitudeRule.TWILIGHT_ANGLE:
            return angle / 60.0
        return 1 / 2.0


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self):
        for label, value, bound in (
            ("latitude", self.latitude, 90.0),
            ("longitude", self.longitude, 180.0),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{label} must be a number, got {value!r}")
            if not math.isfinite(value) or not -bound <= value <= bound:
                raise ConfigurationError(f"{label} {value} is outside [-{bound:g}, {bound:g}]")


@dataclass(frozen=True)
class PrayerInfo:
    name: PrayerName
    display_name: str
    time: datetime.datetime


@dataclass(frozen=True)
class RemainingTime:
    total_seconds: int
    minutes: int
    seconds: int
    formatted: str


# ──────────────────────────────────────────────────────────────────────────────
# Degree-based solar math
# ──────────────────────────────────────────────────────────────────────────────
def _sin(d):
    return math.sin(math.radians(d))


def _cos(d):
    return math.cos(math.radians(d))


def _fix_angle(a):
    return a - 360.0 * math.floor(a / 360.0)


def _fix_hour(h):
    return h - 24.0 * math.floor(h / 24.0)


def _julian_date(year, month, day):
    if month <= 2:
        year -= 1
        month += 12
    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)
    return math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1)) + day + b - 1524.5


def _sun_position(jd):
    """Return (declination in degrees, equation of time in hours) for a Julian date."""
    d = jd - 2451545.0
    g = _fix_angle(357.529 + 0.98560028 * d)
    q = _fix_angle(280.459 + 0.98564736 * d)
    ecliptic_lon = _fix_angle(q + 1.915 * _sin(g) + 0.020 * _sin(2 * g))
    obliquity = 23.439 - 0.00000036 * d
    ra = math.degrees(math.atan2(_cos(obliquity) * _sin(ecliptic_lon), _cos(ecliptic_lon))) / 15.0
    eqt = q / 15.0 - _fix_hour(ra)
    decl = math.degrees(math.asin(_sin(obliquity) * _sin(ecliptic_lon)))
    return decl, eqt


def _mid_day(jd, hour):
    _, eqt = _sun_position(jd + hour / 24.0)
    return _fix_hour(12 - eqt)


def _sun_angle_time(jd, latitude, angle, hour, ccw=False):
    """
    Local solar hour at which the sun is `angle` degrees below the horizon,
    before noon when ccw is set. Returns None if the sun never gets there.
    """
    decl, _ = _sun_position(jd + hour / 24.0)
    denominator = _cos(decl) * _cos(latitude)
    if denominator == 0:
        return None
    x = (-_sin(angle) - _sin(decl) * _sin(latitude)) / denominator
    if x < -1 or x > 1:
        return None
    t = math.degrees(math.acos(x)) / 15.0
    noon = _mid_day(jd, hour)
    return noon - t if ccw else noon + t


def _asr_time(jd, latitude, factor, hour):
    decl, _ = _sun_position(jd + hour / 24.0)
    angle = -math.degrees(math.atan(1.0 / (factor + math.tan(math.radians(abs(latitude - decl))))))
    return _sun_angle_time(jd, latitude, angle, hour)


def remaining_time(target: datetime.datetime, reference: datetime.datetime) -> RemainingTime:
    """Whole seconds from reference until target, clamped at zero."""
    total = max(0, int(round((target - reference).total_seconds())))
    minutes, seconds = divmod(total, 60)
    hours, minutes_of_hour = divmod(minutes, 60)
    if hours:
        formatted = f"{hours}h {minutes_of_hour:02d}m"
    else:
        formatted = f"{minutes}m {seconds:02d}s"
    return RemainingTime(total_seconds=total, minutes=minutes, seconds=seconds, formatted=formatted)


# ──────────────────────────────────────────────────────────────────────────────
# Engine
# ──────────────────────────────────────────────────────────────────────────────
class PrayerTimeEngine:
    """
    Daily prayer times for one location and calculation method.

    Holds no mutable state; every query recomputes from its inputs, so an
    instance may be shared between threads.
    """

    def __init__(
        self,
        latitude: float,
        longitude: float,
        method: CalculationMethod,
        madhab: Madhab = Madhab.SHAFI,
        high_latitude_rule: HighLatitudeRule = HighLatitudeRule.MIDDLE_OF_THE_NIGHT,
        tz=None,
    ):
        if not isinstance(method, CalculationMethod):
            raise TypeError(f"method must be a CalculationMethod, got {method!r}")
        self.coordinates = Coordinates(latitude, longitude)
        self.method = method
        self.madhab = madhab
        self.high_latitude_rule = high_latitude_rule
        self.tz = tz

    # ── time helpers ────────────────────────────────────────────────────────
    def now(self) -> datetime.datetime:
        if self.tz is None:
            return datetime.datetime.now().astimezone()
        return datetime.datetime.now(self.tz)

    def _to_local(self, dt: datetime.datetime) -> datetime.datetime:
        if dt.tzinfo is None:
            if self.tz is None:
                return dt.astimezone()
            if hasattr(self.tz, "localize"):
                return self.tz.localize(dt)
            return dt.replace(tzinfo=self.tz)
        return dt.astimezone(self.tz) if self.tz is not None else dt.astimezone()

    # ── astronomy ───────────────────────────────────────────────────────────
    def _solar_hours(self, day: datetime.date, latitude: float) -> dict:
        params = self.method.parameters
        jd = _julian_date(day.year, day.month, day.day) - self.coordinates.longitude / (15 * 24.0)
        maghrib_angle = params.maghrib_angle if params.maghrib_angle is not None else RISE_SET_ANGLE
        guess = dict(_INITIAL_GUESS)
        hours = {}
        for _ in range(ITERATIONS):
            hours = {
                "fajr": _sun_angle_time(jd, latitude, params.fajr_angle, guess["fajr"], ccw=True),
                "sunrise": _sun_angle_time(jd, latitude, RISE_SET_ANGLE, guess["sunrise"], ccw=True),
                "dhuhr": _mid_day(jd, guess["dhuhr"]),
                "asr": _asr_time(jd, latitude, self.madhab.shadow_factor, guess["asr"]),
                "sunset": _sun_angle_time(jd, latitude, RISE_SET_ANGLE, guess["sunset"]),
                "maghrib": _sun_angle_time(jd, latitude, maghrib_angle, guess["maghrib"]),
                "isha": None,
            }
            if params.isha_angle is not None:
                hours["isha"] = _sun_angle_time(jd, latitude, params.isha_angle, guess["isha"])
            guess = {k: (v if v is not None else guess[k]) for k, v in hours.items()}
        return hours

    def _bounded_hours(self, day: datetime.date, latitude: float) -> Optional[dict]:
        """Solar hours with the high-latitude bounds applied, or None if the sun never rises or sets."""
        hours = self._solar_hours(day, latitude)
        if hours["sunrise"] is None or hours["sunset"] is None or hours["asr"] is None:
            return None

        params = self.method.parameters
        rule = self.high_latitude_rule
        sunrise, sunset = hours["sunrise"], hours["sunset"]
        night = 24.0 - (sunset - sunrise)

        fajr_limit = sunrise - rule.night_portion(params.fajr_angle) * night
        if hours["fajr"] is None or hours["fajr"] < fajr_limit:
            hours["fajr"] = fajr_limit

        if params.maghrib_angle is None:
            hours["maghrib"] = sunset
        else:
            maghrib_limit = sunset + rule.night_portion(params.maghrib_angle) * night
            if hours["maghrib"] is None or hours["maghrib"] > maghrib_limit:
                hours["maghrib"] = maghrib_limit

        if params.isha_interval is not None:
            hours["isha"] = hours["maghrib"] + params.isha_interval / 60.0
        else:
            isha_limit = sunset + rule.night_portion(params.isha_angle) * night
            if hours["isha"] is None or hours["isha"] > isha_limit:
                hours["isha"] = isha_limit
            if params.maghrib_angle is not None and hours["isha"] - hours["maghrib"] < MIN_PRAYER_GAP:
                # Both clamped to the same night portion; keep the twilight gap between them.
                gap = (params.isha_angle - params.maghrib_angle) / 60.0 * night
                hours["isha"] = hours["maghrib"] + max(gap, MIN_PRAYER_GAP)

        hours["dhuhr"] += params.dhuhr_minutes / 60.0
        return hours

    def _prayers_at(self, day: datetime.date, latitude: float) -> Optional[List[PrayerInfo]]:
        hours = self._bounded_hours(day, latitude)
        if hours is None:
            return None
        utc_midnight = datetime.datetime(day.year, day.month, day.day, tzinfo=pytz.utc)
        offset = self.coordinates.longitude / 15.0
        prayers = []
        for name in PRAYER_NAMES:
            key = "sunrise" if name is PrayerName.SUNRISE else name.value.lower()
            minutes = int(round((hours[key] - offset) * 60))
            instant = self._to_local(utc_midnight + datetime.timedelta(minutes=minutes))
            prayers.append(PrayerInfo(name=name, display_name=PRAYER_DISPLAY[name], time=instant))
        if any(not a.time < b.time for a, b in zip(prayers, prayers[1:])):
            return None
        return prayers

    def compute_day(self, day: datetime.date) -> List[PrayerInfo]:
        """
        Compute the six ordered prayer instants for a calendar date.

        Where the sun does not rise and set far enough apart to order the
        prayers (polar day or night), the day is computed at the nearest
        latitude where it does, ±NEAREST_SOLAR_LATITUDE.
        """
        latitude = self.coordinates.latitude
        prayers = self._prayers_at(day, latitude)
        if prayers is None and abs(latitude) > NEAREST_SOLAR_LATITUDE:
            latitude = math.copysign(NEAREST_SOLAR_LATITUDE, latitude)
            logger.debug("Prayer times undefined on %s; computing at latitude %s", day, latitude)
            prayers = self._prayers_at(day, latitude)
        if prayers is None:
            raise ConfigurationError(f"Prayer times undefined at latitude {latitude} on {day}")
        return prayers

    # ── queries ─────────────────────────────────────────────────────────────
    def get_all_prayer_times(self, reference: datetime.datetime = None) -> List[PrayerInfo]:
        """All of today's entries, including those that have passed."""
        reference = self.now() if reference is None else self._to_local(reference)
        return self.compute_day(reference.date())

    def get_next_prayer(self, reference: datetime.datetime = None) -> PrayerInfo:
        """
        Return the first prayer strictly after reference. Sunrise is shown in
        the daily list but is never a next prayer.
        """
        reference = self.now() if reference is None else self._to_local(reference)
        today = reference.date()
        # Scanning one day past tomorrow covers zones far from the solar meridian.
        for offset in range(3):
            for prayer in self.compute_day(today + datetime.timedelta(days=offset)):
                if prayer.name is PrayerName.SUNRISE:
                    continue
                if prayer.time > reference:
                    return prayer
        raise ConfigurationError(f"No upcoming prayer found after {reference}")

    def get_remaining_time(
        self, target: datetime.datetime, reference: datetime.datetime = None
    ) -> RemainingTime:
        reference = self.now() if reference is None else self._to_local(reference)
        return remaining_time(self._to_local(target), reference)
