"""User settings stored as JSON in the home directory."""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Optional

import pytz

from prayer_reminder.errors import ConfigurationError
from prayer_reminder.formatting import TIME_FORMATS
from prayer_reminder.prayer_times import CalculationMethod, Madhab

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".prayer_reminder")
CONFIG_FILE = os.path.join(CONFIG_DIR, "settings.json")

# Changing only these keeps the running engine; anything else rebuilds it.
LIGHT_SETTINGS = ("reminder_minutes", "enable_adhan", "time_format")


@dataclass(frozen=True)
class Settings:
    city: str = "Cairo"
    country: str = "EG"
    method: str = "Egyptian"
    madhab: str = "Shafi"
    reminder_minutes: int = 15
    enable_adhan: bool = True
    time_format: str = "12h"
    timezone: Optional[str] = None
    adhan_sound: Optional[str] = None

    @property
    def calculation_method(self) -> CalculationMethod:
        return CalculationMethod.from_name(self.method)

    @property
    def madhab_value(self) -> Madhab:
        return Madhab.from_name(self.madhab)

    @property
    def tzinfo(self):
        """The configured pytz zone, or None for the host's local zone."""
        if not self.timezone:
            return None
        try:
            return pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            raise ConfigurationError(f"Unknown timezone: {self.timezone!r}")


def validate_settings(settings: Settings) -> Settings:
    """Raise ConfigurationError if any setting is unusable."""
    settings.calculation_method
    settings.madhab_value
    settings.tzinfo
    minutes = settings.reminder_minutes
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 0:
        raise ConfigurationError(f"reminder_minutes must be a non-negative integer, got {minutes!r}")
    if settings.time_format not in TIME_FORMATS:
        raise ConfigurationError(f"time_format must be one of {TIME_FORMATS}, got {settings.time_format!r}")
    if not str(settings.city).strip() or not str(settings.country).strip():
        raise ConfigurationError("city and country must not be empty")
    return settings


def requires_rebuild(old: Settings, new: Settings) -> bool:
    """True when a change affects location or calculation, not just reminders."""
    return replace(old, **{k: getattr(new, k) for k in LIGHT_SETTINGS}) != new


def save_settings(settings: Settings) -> None:
    """Save settings to the config file."""
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(asdict(settings), f, indent=2)


def load_settings() -> Settings:
    """Load saved settings, or defaults when there are none."""
    if not os.path.isfile(CONFIG_FILE):
        return Settings()
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable settings file %s", CONFIG_FILE, exc_info=True)
        return Settings()
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: not a JSON object", CONFIG_FILE)
        return Settings()
    known = {f.name for f in fields(Settings)}
    return Settings(**{k: v for k, v in data.items() if k in known})
