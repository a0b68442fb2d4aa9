"""Desktop notifications, yes/no prompts and the status line."""

import logging
import threading
from concurrent.futures import Future

from plyer import notification as plyer_notification

logger = logging.getLogger(__name__)

APP_NAME = "Prayer Reminder"
APP_ICON = ""  # Path to icon file; empty = default

ANSWER_YES = "Yes"
ANSWER_NO = "No"


def _send_plyer(title: str, message: str, timeout: int = 10) -> None:
    """Send a desktop notification via plyer (cross-platform)."""
    kwargs = dict(
        app_name=APP_NAME,
        title=title,
        message=message,
        timeout=timeout,
    )
    if APP_ICON:
        kwargs["app_icon"] = APP_ICON
    plyer_notification.notify(**kwargs)


class Notifier:
    """
    Sends notifications to the desktop and, optionally, to the GUI.

    gui_callback(title, message) is called after every notification.
    ask(message) blocks until the user answers and returns "Yes", "No" or
    None when the prompt is dismissed; it always runs on a worker thread.
    """

    def __init__(self, gui_callback=None, ask=None):
        self.gui_callback = gui_callback
        self.ask = ask

    def notify(self, message: str, urgent: bool = False) -> None:
        title = f"🕌 {APP_NAME}"
        try:
            _send_plyer(title, message, timeout=30 if urgent else 15)
        except Exception:
            logger.warning("Desktop notification failed: %s", message, exc_info=True)
        if self.gui_callback:
            self.gui_callback(title, message)

    def prompt_yes_no(self, message: str) -> Future:
        """Ask a yes/no question without blocking; the future holds the answer."""
        future = Future()
        if self.ask is None:
            logger.info("No prompt handler; dismissing %r", message)
            future.set_result(None)
            return future
        t = threading.Thread(target=self._run_prompt, args=(future, message), daemon=True)
        t.start()
        return future

    def _run_prompt(self, future: Future, message: str) -> None:
        try:
            answer = self.ask(message)
        except Exception as exc:
            logger.warning("Prompt failed: %s", message, exc_info=True)
            future.set_exception(exc)
            return
        if answer not in (ANSWER_YES, ANSWER_NO):
            answer = None
        future.set_result(answer)


class StatusDisplay:
    """The always-visible one-line status. Forwards text to a callback."""

    def __init__(self, callback=None):
        self.callback = callback
        self.text = ""
        self.disposed = False

    def show(self, text: str) -> None:
        if self.disposed:
            return
        self.text = text
        if self.callback:
            self.callback(text)

    def dispose(self) -> None:
        self.disposed = True
        self.callback = None
        self.text = ""
