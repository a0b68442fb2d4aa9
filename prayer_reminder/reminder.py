"""
Reminder state machine.

Polls the prayer time engine once a minute and decides when to send the
pre-prayer reminder, the arrival notification (with adhan), and the
"Did you pray?" follow-up that repeats every 20 minutes until answered.
"""

import datetime
import functools
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from prayer_reminder.audio import DEFAULT_ADHAN_SOUND, play_sound
from prayer_reminder.errors import ConfigurationError
from prayer_reminder.formatting import TIME_FORMATS, format_time
from prayer_reminder.notifier import ANSWER_NO, StatusDisplay
from prayer_reminder.prayer_times import PrayerName

logger = logging.getLogger(__name__)

TICK_INTERVAL = 60  # seconds
FOLLOW_UP_DELAY = datetime.timedelta(minutes=20)


@dataclass
class ReminderState:
    last_reminder_prayer: Optional[PrayerName] = None
    last_adhan_prayer: Optional[PrayerName] = None
    next_follow_up_time: Optional[datetime.datetime] = None
    follow_up_prayer_name: Optional[str] = None


class ReminderStateMachine:
    """
    Per-minute reminder loop for one engine.

    Each tick refreshes the status line, sends at most one pre-prayer
    reminder and one arrival notification per prayer, and asks the
    "Did you pray?" follow-up once it is due. Answering "No" asks again
    FOLLOW_UP_DELAY later; "Yes" or dismissing the prompt ends it.
    Notifications, sounds and prompts run outside the state lock.
    """

    def __init__(
        self,
        engine,
        notifier,
        reminder_minutes: int = 15,
        enable_adhan: bool = True,
        time_format: str = "12h",
        status: StatusDisplay = None,
        adhan_sound: str = None,
        clock=None,
        tick_interval: float = TICK_INTERVAL,
        autostart: bool = True,
    ):
        _check_config(reminder_minutes, time_format)
        self.engine = engine
        self.notifier = notifier
        self.reminder_minutes = reminder_minutes
        self.enable_adhan = enable_adhan
        self.time_format = time_format
        self.status = status if status is not None else StatusDisplay()
        self.adhan_sound = adhan_sound or DEFAULT_ADHAN_SOUND
        self.clock = clock or engine.now
        self.tick_interval = tick_interval
        self.state = ReminderState()

        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._disposed = False

        self.refresh_status()
        if autostart:
            self.start()

    # ──────────────────────────────────────────────────────────────────────
    # Timer
    # ──────────────────────────────────────────────────────────────────────
    def start(self) -> None:
        with self._lock:
            if self._disposed or self._timer is not None:
                return
            self._schedule_next()

    def _schedule_next(self) -> None:
        t = threading.Timer(self.tick_interval, self._on_timer)
        t.daemon = True
        t.start()
        self._timer = t

    def _on_timer(self) -> None:
        with self._lock:
            if self._disposed:
                return
            # Reschedule first so a slow tick never delays the cadence.
            self._schedule_next()
        try:
            self.tick()
        except ConfigurationError:
            logger.exception("Prayer times can no longer be computed; stopping reminders")
            self.dispose()
        except Exception:
            logger.exception("Reminder tick failed")

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._disposed

    # ──────────────────────────────────────────────────────────────────────
    # Tick
    # ──────────────────────────────────────────────────────────────────────
    def tick(self, now: datetime.datetime = None) -> None:
        """Run the status, reminder, arrival, follow-up and rollover checks once."""
        effects = []
        with self._lock:
            if self._disposed:
                return
            now = now or self.clock()
            prayer = self.engine.get_next_prayer(now)
            remaining = self.engine.get_remaining_time(prayer.time, now)

            self._show_status(prayer, remaining)
            self._check_reminder(prayer, remaining, effects)
            self._check_arrival(prayer, remaining, now, effects)
            self._check_follow_up(now, effects)
            self._check_rollover(prayer)

        for effect in effects:
            if self._disposed:
                break
            try:
                effect()
            except Exception:
                logger.warning("Reminder side effect failed", exc_info=True)

    def _check_reminder(self, prayer, remaining, effects) -> None:
        if remaining.minutes != self.reminder_minutes or remaining.seconds >= 60:
            return
        if self.state.last_reminder_prayer == prayer.name:
            return
        minutes = self.reminder_minutes
        message = (
            f"🕌 Prayer Reminder: {prayer.display_name} in "
            f"{minutes} minute{'s' if minutes != 1 else ''}"
        )
        self.state.last_reminder_prayer = prayer.name
        logger.info("Reminder for %s (%d min)", prayer.name.value, minutes)
        effects.append(functools.partial(self.notifier.notify, message, False))

    def _check_arrival(self, prayer, remaining, now, effects) -> None:
        if remaining.total_seconds > 60 or remaining.minutes != 0:
            return
        if self.state.last_adhan_prayer == prayer.name:
            return
        self.state.last_adhan_prayer = prayer.name
        self.state.next_follow_up_time = now + FOLLOW_UP_DELAY
        self.state.follow_up_prayer_name = prayer.display_name
        logger.info("%s has arrived; follow-up at %s", prayer.name.value, self.state.next_follow_up_time)

        effects.append(
            functools.partial(self.notifier.notify, f"🕌 {prayer.display_name} time has arrived!", True)
        )
        if self.enable_adhan:
            effects.append(functools.partial(play_sound, self.adhan_sound))

    def _check_follow_up(self, now, effects) -> None:
        due = self.state.next_follow_up_time
        if due is None or now < due:
            return
        # Cleared before asking so a pending prompt is never asked twice.
        self.state.next_follow_up_time = None
        effects.append(functools.partial(self._ask_follow_up, self.state.follow_up_prayer_name))

    def _check_rollover(self, prayer) -> None:
        last = self.state.last_adhan_prayer
        if last is not None and last != prayer.name:
            self.state.last_reminder_prayer = None
            self.state.last_adhan_prayer = None

    # ──────────────────────────────────────────────────────────────────────
    # Follow-up prompt
    # ──────────────────────────────────────────────────────────────────────
    def _ask_follow_up(self, prayer_name: str) -> None:
        future = self.notifier.prompt_yes_no(f"Did you pray {prayer_name}?")
        future.add_done_callback(self._on_follow_up_answer)

    def _on_follow_up_answer(self, future) -> None:
        try:
            answer = future.result()
        except Exception:
            logger.warning("Follow-up prompt failed", exc_info=True)
            return
        with self._lock:
            if self._disposed:
                return
            if answer == ANSWER_NO:
                self.state.next_follow_up_time = self.clock() + FOLLOW_UP_DELAY
                logger.info("Follow-up re-armed for %s", self.state.next_follow_up_time)
            else:
                # "Yes" ends the follow-up; a dismissed prompt lets it lapse.
                self.state.follow_up_prayer_name = None

    # ──────────────────────────────────────────────────────────────────────
    # Status and queries
    # ──────────────────────────────────────────────────────────────────────
    def _show_status(self, prayer, remaining) -> None:
        if remaining.total_seconds > 0:
            text = (
                f"⏰ {prayer.display_name} in {remaining.formatted} "
                f"({format_time(prayer.time, self.time_format)})"
            )
        else:
            text = f"🕌 {prayer.display_name} now"
        self.status.show(text)

    def refresh_status(self) -> None:
        """Recompute the status line without touching reminder state."""
        if self._disposed:
            return
        now = self.clock()
        prayer = self.engine.get_next_prayer(now)
        self._show_status(prayer, self.engine.get_remaining_time(prayer.time, now))

    def get_all_prayer_times(self, now: datetime.datetime = None):
        return self.engine.get_all_prayer_times(now or self.clock())

    def get_next_prayer(self, now: datetime.datetime = None):
        return self.engine.get_next_prayer(now or self.clock())

    def get_remaining_time(self, now: datetime.datetime = None):
        now = now or self.clock()
        prayer = self.engine.get_next_prayer(now)
        return self.engine.get_remaining_time(prayer.time, now)

    # ──────────────────────────────────────────────────────────────────────
    # Configuration and teardown
    # ──────────────────────────────────────────────────────────────────────
    def update_config(self, reminder_minutes: int, enable_adhan: bool, time_format: str = "12h") -> None:
        """
        Apply new reminder settings. The pre-prayer reminder may fire again;
        the arrival flag and any pending follow-up are kept.
        """
        _check_config(reminder_minutes, time_format)
        with self._lock:
            if self._disposed:
                return
            self.reminder_minutes = reminder_minutes
            self.enable_adhan = enable_adhan
            self.time_format = time_format
            self.state.last_reminder_prayer = None
        self.refresh_status()

    def dispose(self) -> None:
        """Stop ticking and release the status line. Safe to call repeatedly."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self.status.dispose()

    @property
    def disposed(self) -> bool:
        return self._disposed


def _check_config(reminder_minutes, time_format) -> None:
    if isinstance(reminder_minutes, bool) or not isinstance(reminder_minutes, int) or reminder_minutes < 0:
        raise ConfigurationError(f"reminder_minutes must be a non-negative integer, got {reminder_minutes!r}")
    if time_format not in TIME_FORMATS:
        raise ConfigurationError(f"time_format must be one of {TIME_FORMATS}, got {time_format!r}")
