"""Configuration data models.

This module defines dataclasses for orchestrator configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class LimitsConfig:
    """Resource ceilings emitted on every engine invocation."""

    # Encoder thread count (re-encode paths only)
    threads: int = 4

    # Packets buffered per output stream before the muxer stalls
    max_muxing_queue_size: int = 1024

    # Rate-control ceilings for x264/x265
    maxrate: str = "2M"
    bufsize: str = "4M"

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")
        if self.max_muxing_queue_size < 1:
            raise ValueError(
                "max_muxing_queue_size must be at least 1, "
                f"got {self.max_muxing_queue_size}"
            )


@dataclass
class EncodingConfig:
    """Encoder quality defaults for re-encode paths."""

    x26x_crf: int = 23
    vp9_crf: int = 30
    vp9_bitrate: str = "1M"
    audio_bitrate: str = "128k"

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in ("x26x_crf", "vp9_crf"):
            value = getattr(self, name)
            if not 0 <= value <= 63:
                raise ValueError(f"{name} must be between 0 and 63, got {value}")


@dataclass
class AnimationConfig:
    """Settings for GIF and WebP trim exports."""

    fps: int = 10
    width: int = 480
    webp_quality: int = 75

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.fps < 1:
            raise ValueError(f"fps must be at least 1, got {self.fps}")
        if self.width < 16:
            raise ValueError(f"width must be at least 16, got {self.width}")
        if not 0 <= self.webp_quality <= 100:
            raise ValueError(
                f"webp_quality must be between 0 and 100, got {self.webp_quality}"
            )


@dataclass
class ProgressConfig:
    """Configuration for progress estimation."""

    # Elapsed seconds after which a still-running job is flagged slow
    slow_threshold_seconds: float = 120.0

    # How often the engine checks for cancellation while a job runs
    poll_interval_seconds: float = 0.25

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.slow_threshold_seconds <= 0:
            raise ValueError(
                "slow_threshold_seconds must be positive, "
                f"got {self.slow_threshold_seconds}"
            )
        if not 0 < self.poll_interval_seconds <= 5:
            raise ValueError(
                "poll_interval_seconds must be in (0, 5], "
                f"got {self.poll_interval_seconds}"
            )


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: Literal["text", "json"] = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class VTOConfig:
    """Main configuration container.

    Aggregates all configuration sections.
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    animation: AnimationConfig = field(default_factory=AnimationConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Parent directory for engine workspaces (None = system temp dir)
    workspace_directory: Path | None = None

    def get_tool_path(self, tool_name: str) -> Path | None:
        """Get configured path for a tool.

        Args:
            tool_name: Name of the tool (ffmpeg, ffprobe).

        Returns:
            Configured path or None if not configured.
        """
        return getattr(self.tools, tool_name.lower(), None)
