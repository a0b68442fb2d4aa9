"""Display formatting for prayer times and the daily summary."""

import datetime

TIME_FORMATS = ("12h", "24h")


def format_time(dt: datetime.datetime, time_format: str = "12h") -> str:
    """Format a time of day as '03:30 PM' (12h) or '15:30' (24h)."""
    if time_format == "24h":
        return dt.strftime("%H:%M")
    return dt.strftime("%I:%M %p")


def format_date(dt: datetime.date) -> str:
    return dt.strftime("%A, %d %B %Y")


def render_day_summary(
    prayers,
    next_prayer,
    remaining,
    city: str,
    country: str,
    time_format: str = "12h",
    now: datetime.datetime = None,
) -> str:
    """
    Render the full-day summary: every prayer with its time, a marker on the
    next one, and how long until it starts.
    """
    if now is None:
        now = datetime.datetime.now(next_prayer.time.tzinfo)
    lines = [
        f"🕌 Prayer Times - {format_date(now)}",
        f"📍 {city}, {country}",
        "",
    ]
    for prayer in prayers:
        marker = "➜" if prayer.name == next_prayer.name else "  "
        lines.append(f"{marker} {prayer.display_name}: {format_time(prayer.time, time_format)}")

    tail = f"⏰ Next: {next_prayer.display_name} at {format_time(next_prayer.time, time_format)}"
    if remaining.total_seconds > 0:
        tail += f" (in {remaining.formatted})"
    else:
        tail += " (now)"
    lines.extend(["", tail])
    return "\n".join(lines)
