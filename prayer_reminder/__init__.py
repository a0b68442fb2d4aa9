"""Prayer time computation and desktop reminders."""

__version__ = "0.1.0"
