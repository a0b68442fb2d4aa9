#!/usr/bin/env python3
"""
Prayer Reminder Desktop Widget
Islamic pixel-art themed always-on-top strip showing:
  - Next prayer and the time remaining until it
  - Desktop reminder N minutes before each prayer
  - Arrival notification with optional adhan
  - "Did you pray?" follow-up every 20 minutes until answered
"""

import logging
import threading
import tkinter as tk
from dataclasses import replace
from tkinter import messagebox

from prayer_reminder.config import load_settings, save_settings, validate_settings
from prayer_reminder.controller import ReminderController
from prayer_reminder.errors import ConfigurationError
from prayer_reminder.notifier import ANSWER_NO, ANSWER_YES, Notifier
from prayer_reminder.prayer_times import CalculationMethod

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Theme constants - pixel-art Islamic palette
# ──────────────────────────────────────────────────────────────────────────────
BG_DARK = "#0d1117"          # near-black background
BG_CARD = "#161b22"          # slightly lighter card
BG_HIGHLIGHT = "#1a3a2a"     # deep Islamic green for highlighted row
BG_BANNER = "#2d1b00"
BORDER_COLOR = "#2ea043"     # Islamic green border
ACCENT_GOLD = "#f0c040"      # gold accents
ACCENT_GREEN = "#3fb950"     # bright green
TEXT_WHITE = "#e6edf3"       # off-white text
TEXT_DIM = "#8b949e"         # dimmed text
TEXT_RED = "#ff6b6b"         # warning red

FONT_PIXEL = ("Courier", 10, "bold")
FONT_PIXEL_SM = ("Courier", 8)
FONT_PIXEL_LG = ("Courier", 14, "bold")
FONT_TITLE = ("Courier", 12, "bold")

WINDOW_W = 420
WINDOW_H = 150

BANNER_MS = 15000

SETTINGS_FIELDS = (
    ("City:", "city"),
    ("Country code:", "country"),
    ("Method:", "method"),
    ("Madhab:", "madhab"),
    ("Remind (min):", "reminder_minutes"),
    ("Time format:", "time_format"),
    ("Timezone:", "timezone"),
    ("Adhan file:", "adhan_sound"),
)


class PrayerReminderApp:
    def __init__(self, root: tk.Tk):
        self.root = root
        self._drag_x = 0
        self._drag_y = 0

        self.notifier = Notifier(gui_callback=self._on_notification, ask=self._ask_yes_no)
        self.controller = ReminderController(
            load_settings(),
            self.notifier,
            status_callback=self._on_status,
            warn=self._on_warning,
        )

        self._setup_window()
        self._build_ui()
        self._start()

    # ──────────────────────────────────────────────────────────────────────
    # Window setup
    # ──────────────────────────────────────────────────────────────────────
    def _setup_window(self):
        root = self.root
        root.title("Prayer Reminder")
        root.configure(bg=BG_DARK)
        root.resizable(False, False)
        root.overrideredirect(True)        # remove OS title bar
        root.attributes("-topmost", True)  # always on top
        root.attributes("-alpha", 0.97)

        screen_w = root.winfo_screenwidth()
        root.geometry(f"{WINDOW_W}x{WINDOW_H}+{screen_w - WINDOW_W - 40}+40")

        root.bind("<ButtonPress-1>", self._on_drag_start)
        root.bind("<B1-Motion>", self._on_drag_motion)
        root.protocol("WM_DELETE_WINDOW", self._quit)

    def _on_drag_start(self, event):
        self._drag_x = event.x_root - self.root.winfo_x()
        self._drag_y = event.y_root - self.root.winfo_y()

    def _on_drag_motion(self, event):
        self.root.geometry(f"+{event.x_root - self._drag_x}+{event.y_root - self._drag_y}")

    # ──────────────────────────────────────────────────────────────────────
    # UI construction
    # ──────────────────────────────────────────────────────────────────────
    def _build_ui(self):
        outer = tk.Frame(self.root, bg=BORDER_COLOR, bd=0)
        outer.pack(fill=tk.BOTH, expand=True, padx=2, pady=2)
        inner = tk.Frame(outer, bg=BG_DARK, bd=0)
        inner.pack(fill=tk.BOTH, expand=True, padx=1, pady=1)

        # ── title bar (drag zone + buttons) ──────────────────────────────
        title_bar = tk.Frame(inner, bg=BG_CARD, height=30)
        title_bar.pack(fill=tk.X, side=tk.TOP)
        title_bar.pack_propagate(False)

        tk.Label(
            title_bar, text="  🕌  PRAYER REMINDER  ", font=FONT_PIXEL,
            fg=ACCENT_GOLD, bg=BG_CARD,
        ).pack(side=tk.LEFT, padx=6)

        for text, fg, command in (
            (" ✕ ", TEXT_RED, self._quit),
            (" ⚙ ", ACCENT_GREEN, self._show_settings_dialog),
            (" ☰ ", ACCENT_GOLD, self._show_details),
        ):
            tk.Button(
                title_bar, text=text, font=FONT_PIXEL_SM, fg=fg, bg=BG_CARD,
                activeforeground=TEXT_WHITE, activebackground=BG_HIGHLIGHT,
                bd=0, cursor="hand2", command=command,
            ).pack(side=tk.RIGHT, padx=2, pady=4)

        # ── status line ──────────────────────────────────────────────────
        self.lbl_status = tk.Label(
            inner, text="⏰ Prayer Times", font=FONT_PIXEL_LG,
            fg=ACCENT_GREEN, bg=BG_DARK, pady=8,
        )
        self.lbl_status.pack(fill=tk.X)

        self.lbl_warning = tk.Label(
            inner, text="", font=FONT_PIXEL_SM, fg=TEXT_DIM, bg=BG_DARK,
            wraplength=WINDOW_W - 20,
        )
        self.lbl_warning.pack(fill=tk.X)

        # ── notification banner (hidden by default) ───────────────────────
        self.notif_frame = tk.Frame(inner, bg=BG_BANNER, bd=1, relief=tk.RIDGE)
        self.lbl_notif = tk.Label(
            self.notif_frame, text="", font=FONT_PIXEL, fg=ACCENT_GOLD,
            bg=BG_BANNER, wraplength=WINDOW_W - 30,
        )
        self.lbl_notif.pack(pady=4)

    # ──────────────────────────────────────────────────────────────────────
    # Controller lifecycle
    # ──────────────────────────────────────────────────────────────────────
    def _start(self):
        self._run_in_background(self.controller.start)

    def _run_in_background(self, action, *args):
        """Geocoding hits the network, so controller changes run off the GUI thread."""
        self.lbl_status.config(text="📍 Resolving location…", fg=TEXT_DIM)
        t = threading.Thread(target=self._run_action, args=(action,) + args, daemon=True)
        t.start()

    def _run_action(self, action, *args):
        try:
            action(*args)
        except ConfigurationError as exc:
            self.root.after(0, lambda e=exc: self._show_config_error(e))

    def _show_config_error(self, exc):
        logger.error("Invalid settings: %s", exc)
        self.lbl_status.config(text="⚠ Check settings", fg=TEXT_RED)
        messagebox.showerror("Prayer Reminder", f"Failed to initialize: {exc}", parent=self.root)

    def _quit(self):
        self.controller.shutdown()
        self.root.destroy()

    # ──────────────────────────────────────────────────────────────────────
    # Collaborator callbacks (may run on timer threads)
    # ──────────────────────────────────────────────────────────────────────
    def _on_status(self, text: str):
        self.root.after(0, lambda: self.lbl_status.config(text=text, fg=ACCENT_GREEN))

    def _on_warning(self, message: str):
        self.root.after(0, lambda: self.lbl_warning.config(text=f"⚠ {message}"))

    def _on_notification(self, title: str, message: str):
        self.root.after(0, lambda: self._show_notif_banner(message))
        self.root.after(0, self.root.bell)

    def _show_notif_banner(self, message: str):
        self.lbl_notif.config(text=message)
        self.notif_frame.pack(fill=tk.X, padx=10, pady=4)
        self.root.attributes("-topmost", True)
        self.root.after(BANNER_MS, self.notif_frame.pack_forget)

    def _ask_yes_no(self, message: str):
        """Block the calling worker thread until the user answers in the GUI."""
        done = threading.Event()
        answer = {}

        def _prompt():
            try:
                result = messagebox.askyesnocancel("Prayer Reminder", message, parent=self.root)
            except tk.TclError:
                result = None
            if result is not None:
                answer["value"] = ANSWER_YES if result else ANSWER_NO
            done.set()

        self.root.after(0, _prompt)
        done.wait()
        return answer.get("value")

    # ──────────────────────────────────────────────────────────────────────
    # Commands
    # ──────────────────────────────────────────────────────────────────────
    def _show_details(self):
        messagebox.showinfo("Prayer Times", self.controller.show_details(), parent=self.root)

    def _show_settings_dialog(self):
        """Edit settings; location or method changes rebuild the reminders."""
        settings = self.controller.settings
        dlg = tk.Toplevel(self.root)
        dlg.title("Settings")
        dlg.configure(bg=BG_DARK)
        dlg.resizable(False, False)
        dlg.attributes("-topmost", True)
        dlg.transient(self.root)
        dlg.grab_set()

        tk.Label(dlg, text="⚙ Settings", font=FONT_TITLE, fg=ACCENT_GOLD, bg=BG_DARK).pack(pady=(10, 6))

        fields_frame = tk.Frame(dlg, bg=BG_DARK)
        fields_frame.pack(fill=tk.X, padx=20, pady=4)
        entries = {}
        for i, (label, key) in enumerate(SETTINGS_FIELDS):
            tk.Label(
                fields_frame, text=label, font=FONT_PIXEL_SM,
                fg=TEXT_WHITE, bg=BG_DARK, anchor="w", width=14,
            ).grid(row=i, column=0, sticky="w", pady=2)
            ent = tk.Entry(
                fields_frame, font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg=BG_CARD,
                insertbackground=TEXT_WHITE, width=28, relief=tk.FLAT,
            )
            ent.grid(row=i, column=1, sticky="ew", pady=2, padx=(4, 0))
            value = getattr(settings, key)
            if value is not None:
                ent.insert(0, str(value))
            entries[key] = ent

        adhan_var = tk.BooleanVar(value=settings.enable_adhan)
        tk.Checkbutton(
            fields_frame, text="Play adhan", variable=adhan_var, font=FONT_PIXEL_SM,
            fg=TEXT_WHITE, bg=BG_DARK, selectcolor=BG_CARD, activebackground=BG_DARK,
        ).grid(row=len(SETTINGS_FIELDS), column=1, sticky="w", pady=2)
        fields_frame.columnconfigure(1, weight=1)

        tk.Label(
            dlg, text="Methods: " + ", ".join(m.value for m in CalculationMethod),
            font=FONT_PIXEL_SM, fg=TEXT_DIM, bg=BG_DARK, wraplength=360, justify=tk.LEFT,
        ).pack(padx=20)

        def _apply():
            try:
                new_settings = replace(
                    settings,
                    city=entries["city"].get().strip(),
                    country=entries["country"].get().strip().upper(),
                    method=entries["method"].get().strip(),
                    madhab=entries["madhab"].get().strip(),
                    reminder_minutes=int(entries["reminder_minutes"].get().strip()),
                    time_format=entries["time_format"].get().strip(),
                    timezone=entries["timezone"].get().strip() or None,
                    adhan_sound=entries["adhan_sound"].get().strip() or None,
                    enable_adhan=adhan_var.get(),
                )
                validate_settings(new_settings)
            except ValueError:
                messagebox.showerror("Invalid input", "Reminder minutes must be a whole number.", parent=dlg)
                return
            except ConfigurationError as exc:
                messagebox.showerror("Invalid input", str(exc), parent=dlg)
                return
            save_settings(new_settings)
            dlg.destroy()
            self.lbl_warning.config(text="")
            self._run_in_background(self.controller.apply, new_settings)

        btn_frame = tk.Frame(dlg, bg=BG_DARK)
        btn_frame.pack(pady=10)
        tk.Button(
            btn_frame, text="  Save  ", font=FONT_PIXEL_SM,
            fg=BG_DARK, bg=ACCENT_GREEN, activebackground=BORDER_COLOR,
            bd=0, cursor="hand2", command=_apply,
        ).pack(side=tk.LEFT, padx=6)
        tk.Button(
            btn_frame, text="  Cancel  ", font=FONT_PIXEL_SM,
            fg=TEXT_WHITE, bg=BG_CARD, activebackground=BG_HIGHLIGHT,
            bd=0, cursor="hand2", command=dlg.destroy,
        ).pack(side=tk.LEFT, padx=6)


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────
def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    root = tk.Tk()
    PrayerReminderApp(root)
    root.mainloop()


if __name__ == "__main__":
    main()
