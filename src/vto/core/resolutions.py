"""Resolution presets and downscale helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass

ASPECT_RATIO_TOLERANCE = 0.1


@dataclass(frozen=True)
class Resolution:
    """A named output resolution."""

    width: int
    height: int
    label: str

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def value(self) -> str:
        return f"{self.width}x{self.height}"


# Shorthand names accepted in downscale requests (landscape).
NAMED_RESOLUTIONS: dict[str, tuple[int, int]] = {
    "2160p": (3840, 2160),
    "4k": (3840, 2160),
    "1440p": (2560, 1440),
    "1080p": (1920, 1080),
    "720p": (1280, 720),
    "480p": (854, 480),
    "360p": (640, 360),
}

COMMON_RESOLUTIONS: tuple[Resolution, ...] = (
    # 16:9 landscape
    Resolution(3840, 2160, "4K"),
    Resolution(2560, 1440, "1440p"),
    Resolution(1920, 1080, "1080p"),
    Resolution(1280, 720, "720p"),
    Resolution(854, 480, "480p"),
    Resolution(640, 360, "360p"),
    # 16:9 portrait
    Resolution(2160, 3840, "4K Vertical"),
    Resolution(1440, 2560, "1440p Vertical"),
    Resolution(1080, 1920, "1080p Vertical"),
    Resolution(720, 1280, "720p Vertical"),
    Resolution(480, 854, "480p Vertical"),
    Resolution(360, 640, "360p Vertical"),
    # 4:3
    Resolution(1440, 1080, "4:3 HD"),
    Resolution(1024, 768, "4:3 Standard"),
    Resolution(800, 600, "4:3 Low"),
    Resolution(640, 480, "4:3 Basic"),
    Resolution(1080, 1440, "4:3 HD Portrait"),
    Resolution(768, 1024, "4:3 Standard Portrait"),
    Resolution(600, 800, "4:3 Low Portrait"),
    Resolution(480, 640, "4:3 Basic Portrait"),
    # Square
    Resolution(1080, 1080, "Square HD"),
    Resolution(720, 720, "Square Standard"),
    Resolution(480, 480, "Square Low"),
)

_DIMENSIONS_PATTERN = re.compile(r"^(\d+)\s*[x×:]\s*(\d+)$")


def parse_resolution(value: str) -> tuple[int, int]:
    """Parse a named resolution ("720p") or explicit "WxH" into dimensions.

    Raises:
        ValueError: If the value is not recognized.
    """
    folded = value.casefold().strip()
    if folded in NAMED_RESOLUTIONS:
        return NAMED_RESOLUTIONS[folded]
    match = _DIMENSIONS_PATTERN.match(folded)
    if match is None:
        raise ValueError(
            f"Invalid resolution '{value}'. Use WIDTHxHEIGHT or one of: "
            f"{', '.join(NAMED_RESOLUTIONS)}"
        )
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid resolution '{value}': dimensions must be positive")
    return width, height


def compatible_resolutions(
    source_width: int,
    source_height: int,
    tolerance: float = ASPECT_RATIO_TOLERANCE,
) -> list[Resolution]:
    """List common resolutions a source can be downscaled to.

    A preset qualifies when its aspect ratio is within tolerance of the
    source's and it is no larger than the source in either dimension.
    """
    if source_width <= 0 or source_height <= 0:
        return []
    source_ratio = source_width / source_height
    return [
        res
        for res in COMMON_RESOLUTIONS
        if abs(res.aspect_ratio - source_ratio) <= tolerance
        and res.width <= source_width
        and res.height <= source_height
    ]
