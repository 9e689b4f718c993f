"""
Helper functions for formatting data into human-readable strings.
"""

import math


def format_time(seconds: float | None) -> str:
    """Formats a playback position as 'm:ss' (e.g., '3:07'); unknown values show '0:00'."""
    if seconds is None or math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
        return "0:00"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 34m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def progress_bar(percent: float, width: int = 30) -> str:
    """Renders a text progress bar for a percentage in [0, 100]."""
    percent = min(100.0, max(0.0, percent))
    filled = int(round(width * percent / 100))
    return "━" * filled + "─" * (width - filled)
