"""Timestamp parsing and formatting helpers."""

from __future__ import annotations

import re

# HH:MM:SS(.fff), MM:SS(.fff) or plain seconds
_TIMESTAMP_PATTERN = re.compile(
    r"^(?:(?:(?P<h>\d+):)?(?P<m>\d{1,2}):)?(?P<s>\d+(?:\.\d+)?)$"
)


def parse_timestamp(value: str | float | int) -> float:
    """Parse a timestamp into seconds.

    Accepts "HH:MM:SS", "HH:MM:SS.mmm", "MM:SS" or a number of seconds.

    Args:
        value: Timestamp string or number.

    Returns:
        Seconds as float.

    Raises:
        ValueError: If the value is negative or malformed.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Timestamp must not be negative: {value}")
        return float(value)

    match = _TIMESTAMP_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(
            f"Invalid timestamp '{value}'. Use HH:MM:SS, MM:SS or seconds."
        )
    hours = int(match.group("h") or 0)
    minutes = int(match.group("m") or 0)
    seconds = float(match.group("s"))
    if match.group("m") is not None and seconds >= 60:
        raise ValueError(f"Invalid timestamp '{value}': seconds must be < 60")
    if match.group("h") is not None and minutes >= 60:
        raise ValueError(f"Invalid timestamp '{value}': minutes must be < 60")
    return hours * 3600 + minutes * 60 + seconds


def format_timestamp(seconds: float) -> str:
    """Format seconds as an FFmpeg timestamp (HH:MM:SS.mmm)."""
    total_ms = int(round(max(seconds, 0.0) * 1000))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, ms = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{ms:03d}"


def format_eta(seconds: float | None) -> str:
    """Format a duration for humans, e.g. "1h 2m 3s".

    Returns "--" for unknown durations.
    """
    if seconds is None:
        return "--"
    total = int(round(max(seconds, 0.0)))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def quick_range(
    duration: float, first: float | None = None, last: float | None = None
) -> tuple[float, float]:
    """Compute a trim range covering the first or last N seconds of a file.

    Exactly one of first/last must be given. The range is clipped to the
    file duration.

    Raises:
        ValueError: If neither or both are given, or the length is not positive.
    """
    if (first is None) == (last is None):
        raise ValueError("Exactly one of first or last must be given")
    length = first if first is not None else last
    assert length is not None
    if length <= 0:
        raise ValueError("Range length must be positive")
    length = min(length, duration)
    if first is not None:
        return 0.0, length
    return max(duration - length, 0.0), duration
