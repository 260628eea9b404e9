"""Configuration builder with explicit layering.

ConfigBuilder composes VTOConfig from several ConfigSources; later sources
override earlier ones for every value they specify.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from vto.config.env import EnvReader
from vto.config.models import (
    AnimationConfig,
    EncodingConfig,
    LimitsConfig,
    LoggingConfig,
    ProgressConfig,
    ToolPathsConfig,
    VTOConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values mean "not specified here" and never override values from
    lower-precedence sources.
    """

    # Tool paths
    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None

    # Workspace
    workspace_directory: Path | None = None

    # Limits
    threads: int | None = None
    max_muxing_queue_size: int | None = None
    maxrate: str | None = None
    bufsize: str | None = None

    # Encoding
    x26x_crf: int | None = None
    vp9_crf: int | None = None
    vp9_bitrate: str | None = None
    audio_bitrate: str | None = None

    # Animation
    animation_fps: int | None = None
    animation_width: int | None = None
    webp_quality: int | None = None

    # Progress
    slow_threshold_seconds: float | None = None
    poll_interval_seconds: float | None = None

    # Logging
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds VTOConfig by layering ConfigSources with precedence.

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        builder.apply(cli_source)
        config = builder.build()
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource) -> None:
        """Apply a source; its non-None values override existing ones."""
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> VTOConfig:
        """Build the final VTOConfig with defaults for unset values.

        Raises:
            ValueError: If a section's validation rejects a value.
        """
        tools = ToolPathsConfig(
            ffmpeg=self._get("ffmpeg_path", None),
            ffprobe=self._get("ffprobe_path", None),
        )
        limits = LimitsConfig(
            threads=self._get("threads", 4),
            max_muxing_queue_size=self._get("max_muxing_queue_size", 1024),
            maxrate=self._get("maxrate", "2M"),
            bufsize=self._get("bufsize", "4M"),
        )
        encoding = EncodingConfig(
            x26x_crf=self._get("x26x_crf", 23),
            vp9_crf=self._get("vp9_crf", 30),
            vp9_bitrate=self._get("vp9_bitrate", "1M"),
            audio_bitrate=self._get("audio_bitrate", "128k"),
        )
        animation = AnimationConfig(
            fps=self._get("animation_fps", 10),
            width=self._get("animation_width", 480),
            webp_quality=self._get("webp_quality", 75),
        )
        progress = ProgressConfig(
            slow_threshold_seconds=self._get("slow_threshold_seconds", 120.0),
            poll_interval_seconds=self._get("poll_interval_seconds", 0.25),
        )
        logging_config = LoggingConfig(
            level=self._get("logging_level", "info"),
            file=self._get("logging_file", None),
            format=self._get("logging_format", "text"),
            include_stderr=self._get("logging_include_stderr", False),
            max_bytes=self._get("logging_max_bytes", 10_485_760),
            backup_count=self._get("logging_backup_count", 5),
        )
        return VTOConfig(
            tools=tools,
            limits=limits,
            encoding=encoding,
            animation=animation,
            progress=progress,
            logging=logging_config,
            workspace_directory=self._get("workspace_directory", None),
        )


def _path_or_none(value: Any) -> Path | None:
    return Path(value).expanduser() if value else None


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create a ConfigSource from a parsed TOML config file.

    Expected layout::

        workspace_directory = "~/.cache/vto"

        [tools]
        ffmpeg = "/usr/bin/ffmpeg"

        [limits]
        threads = 2

        [encoding]
        x26x_crf = 23

        [animation]
        fps = 12

        [progress]
        slow_threshold_seconds = 60

        [logging]
        level = "debug"
    """
    tools = file_config.get("tools", {})
    limits = file_config.get("limits", {})
    encoding = file_config.get("encoding", {})
    animation = file_config.get("animation", {})
    progress = file_config.get("progress", {})
    logging_conf = file_config.get("logging", {})

    return ConfigSource(
        ffmpeg_path=_path_or_none(tools.get("ffmpeg")),
        ffprobe_path=_path_or_none(tools.get("ffprobe")),
        workspace_directory=_path_or_none(file_config.get("workspace_directory")),
        threads=limits.get("threads"),
        max_muxing_queue_size=limits.get("max_muxing_queue_size"),
        maxrate=limits.get("maxrate"),
        bufsize=limits.get("bufsize"),
        x26x_crf=encoding.get("x26x_crf"),
        vp9_crf=encoding.get("vp9_crf"),
        vp9_bitrate=encoding.get("vp9_bitrate"),
        audio_bitrate=encoding.get("audio_bitrate"),
        animation_fps=animation.get("fps"),
        animation_width=animation.get("width"),
        webp_quality=animation.get("webp_quality"),
        slow_threshold_seconds=progress.get("slow_threshold_seconds"),
        poll_interval_seconds=progress.get("poll_interval_seconds"),
        logging_level=logging_conf.get("level"),
        logging_file=_path_or_none(logging_conf.get("file")),
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create a ConfigSource from VTO_* environment variables."""
    return ConfigSource(
        ffmpeg_path=reader.get_path("VTO_FFMPEG_PATH"),
        ffprobe_path=reader.get_path("VTO_FFPROBE_PATH"),
        workspace_directory=reader.get_path("VTO_WORKSPACE_DIR"),
        threads=reader.get_int("VTO_THREADS"),
        max_muxing_queue_size=reader.get_int("VTO_MAX_MUXING_QUEUE_SIZE"),
        slow_threshold_seconds=reader.get_float("VTO_SLOW_THRESHOLD_SECONDS"),
        logging_level=reader.get_str("VTO_LOG_LEVEL"),
        logging_file=reader.get_path("VTO_LOG_FILE"),
        logging_format=reader.get_str("VTO_LOG_FORMAT"),
    )
