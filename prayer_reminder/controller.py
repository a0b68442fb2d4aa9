"""Wires settings, geocoding, the engine and the reminder state machine together."""

import logging

from prayer_reminder.config import Settings, requires_rebuild, validate_settings
from prayer_reminder.formatting import render_day_summary
from prayer_reminder.location import resolve
from prayer_reminder.notifier import StatusDisplay
from prayer_reminder.prayer_times import PrayerTimeEngine
from prayer_reminder.reminder import ReminderStateMachine

logger = logging.getLogger(__name__)

CONFIG_UPDATED_MESSAGE = "Prayer Times configuration updated"


class ReminderController:
    """
    Owns the engine / state machine pair for the current settings.

    Location or calculation changes tear the pair down and build a new one;
    reminder-only changes go through ReminderStateMachine.update_config.
    """

    def __init__(self, settings: Settings, notifier, status_callback=None,
                 warn=None, resolver=resolve, autostart: bool = True):
        self.settings = settings
        self.notifier = notifier
        self.status_callback = status_callback
        self.warn = warn
        self.resolver = resolver
        self.autostart = autostart
        self.engine = None
        self.reminders = None

    def start(self) -> None:
        """Build the engine and state machine. ConfigurationError propagates."""
        settings = validate_settings(self.settings)
        coordinates = self.resolver(settings.city, settings.country, warn=self.warn)
        self.engine = PrayerTimeEngine(
            coordinates.latitude,
            coordinates.longitude,
            settings.calculation_method,
            madhab=settings.madhab_value,
            tz=settings.tzinfo,
        )
        self.reminders = ReminderStateMachine(
            self.engine,
            self.notifier,
            reminder_minutes=settings.reminder_minutes,
            enable_adhan=settings.enable_adhan,
            time_format=settings.time_format,
            status=StatusDisplay(self.status_callback),
            adhan_sound=settings.adhan_sound,
            autostart=self.autostart,
        )
        logger.info(
            "Reminders started for %s, %s (%.4f, %.4f) using %s",
            settings.city, settings.country, coordinates.latitude, coordinates.longitude,
            settings.calculation_method.value,
        )

    def apply(self, new_settings: Settings) -> None:
        """Switch to new settings, rebuilding only when location or method changed."""
        validate_settings(new_settings)
        old = self.settings
        self.settings = new_settings
        if self.reminders is None or requires_rebuild(old, new_settings):
            self.shutdown()
            self.start()
        else:
            self.reminders.update_config(
                new_settings.reminder_minutes,
                new_settings.enable_adhan,
                new_settings.time_format,
            )
        self.notifier.notify(CONFIG_UPDATED_MESSAGE)

    def show_details(self) -> str:
        """Full-day summary with the next prayer marked."""
        reminders, settings = self.reminders, self.settings
        if reminders is None:
            return "Prayer Times service is not initialized"
        now = reminders.clock()
        return render_day_summary(
            reminders.get_all_prayer_times(now),
            reminders.get_next_prayer(now),
            reminders.get_remaining_time(now),
            settings.city,
            settings.country,
            settings.time_format,
            now,
        )

    def shutdown(self) -> None:
        if self.reminders is not None:
            self.reminders.dispose()
            self.reminders = None
        self.engine = None
