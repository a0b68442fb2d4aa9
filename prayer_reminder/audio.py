"""Fire-and-forget sound playback through the platform's audio player."""

import logging
import os
import platform
import shutil
import subprocess

logger = logging.getLogger(__name__)

DEFAULT_ADHAN_SOUND = os.path.join(os.path.dirname(__file__), "assets", "adhan.mp3")

LINUX_PLAYERS = (
    ("paplay",),
    ("mpg123", "-q"),
    ("ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"),
)


def _player_command(resource_path: str):
    system = platform.system()
    if system == "Darwin":
        return ["afplay", resource_path]
    if system == "Windows":
        return [
            "powershell",
            "-NoProfile",
            "-Command",
            f"(New-Object Media.SoundPlayer '{resource_path}').PlaySync()",
        ]
    for player in LINUX_PLAYERS:
        if shutil.which(player[0]):
            return list(player) + [resource_path]
    return None


def play_sound(resource_path: str = DEFAULT_ADHAN_SOUND):
    """
    Start playing resource_path and return immediately.

    Returns the player process, or None when playback could not start.
    Errors are logged, never raised.
    """
    if not resource_path or not os.path.isfile(resource_path):
        logger.warning("Sound file not found: %s", resource_path)
        return None
    command = _player_command(resource_path)
    if command is None:
        logger.warning("No audio player available on %s", platform.system())
        return None
    try:
        return subprocess.Popen(
            command,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError:
        logger.warning("Could not start audio player %s", command[0], exc_info=True)
        return None
