"""FFmpeg progress line parsing.

FFmpeg writes periodic status lines to stderr, for example:
frame= 1234 fps= 30 q=28.0 size= 2048kB time=00:01:23.45 bitrate=200kbits/s speed=2.0x

These helpers extract the output timestamp and turn it into a raw fraction
of the expected duration.
"""

import re
from dataclasses import dataclass


@dataclass
class FFmpegProgress:
    """Parsed FFmpeg progress output."""

    frame: int | None = None
    fps: float | None = None
    bitrate: str | None = None
    out_time_us: int | None = None  # Output time in microseconds
    speed: str | None = None

    @property
    def out_time_seconds(self) -> float | None:
        """Get output time in seconds."""
        if self.out_time_us is not None:
            return self.out_time_us / 1_000_000
        return None

    def get_fraction(self, duration_seconds: float | None) -> float | None:
        """Fraction of duration reached, or None if unknown.

        Not clamped; the progress monitor clamps.
        """
        if duration_seconds is None or duration_seconds <= 0:
            return None
        out_time = self.out_time_seconds
        if out_time is None:
            return None
        return out_time / duration_seconds


PROGRESS_PATTERNS = {
    "frame": re.compile(r"frame=\s*(\d+)"),
    "fps": re.compile(r"fps=\s*([\d.]+)"),
    "bitrate": re.compile(r"bitrate=\s*([^\s]+)"),
    "out_time_us": re.compile(r"out_time_us=\s*(\d+)"),
    "speed": re.compile(r"speed=\s*([^\s]+)"),
}

_TIME_PATTERN = re.compile(r"time=\s*(-?)(\d+):(\d+):(\d+)(?:\.(\d+))?")


def _convert_value(key: str, value: str) -> int | float | str | None:
    if key in ("frame", "out_time_us"):
        try:
            return int(value)
        except ValueError:
            return None
    if key == "fps":
        try:
            return float(value)
        except ValueError:
            return None
    return value if value != "N/A" else None


def parse_stderr_progress(line: str) -> FFmpegProgress | None:
    """Parse an FFmpeg stderr status line.

    Args:
        line: A line from FFmpeg stderr.

    Returns:
        Parsed FFmpegProgress or None if not a progress line.
    """
    if "time=" not in line and "out_time_us=" not in line:
        return None

    result = FFmpegProgress()
    for key, pattern in PROGRESS_PATTERNS.items():
        match = pattern.search(line)
        if match:
            converted = _convert_value(key, match.group(1))
            if converted is not None:
                setattr(result, key, converted)

    time_match = _TIME_PATTERN.search(line)
    if time_match:
        if time_match.group(1):
            # Negative timestamps appear before the first output packet
            result.out_time_us = 0
        else:
            hours = int(time_match.group(2))
            minutes = int(time_match.group(3))
            seconds = int(time_match.group(4))
            fraction = time_match.group(5) or "0"
            micros = int(fraction.ljust(6, "0")[:6])
            result.out_time_us = (
                hours * 3600 + minutes * 60 + seconds
            ) * 1_000_000 + micros

    if result.out_time_us is None and result.frame is None:
        return None
    return result
