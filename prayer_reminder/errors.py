"""Exception types raised by the prayer reminder package."""


class PrayerReminderError(Exception):
    """Base class for all package errors."""


class ConfigurationError(PrayerReminderError):
    """Invalid coordinates, method or settings. Fatal for initialization."""


class ResolutionFailure(PrayerReminderError):
    """A city could not be geocoded; callers fall back to a default location."""
