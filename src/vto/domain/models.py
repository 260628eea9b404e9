"""Domain data models.

Frozen dataclasses describing probed media, progress and operation results.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from vto.domain.enums import OperationKind


@dataclass(frozen=True)
class VideoStreamInfo:
    """A video stream as reported by the engine's probe."""

    index: int
    codec: str | None
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    pix_fmt: str | None = None
    bit_rate: int | None = None
    display_aspect_ratio: str | None = None


@dataclass(frozen=True)
class AudioStreamInfo:
    """An audio stream as reported by the engine's probe."""

    index: int
    codec: str | None
    sample_rate: int | None = None
    channels: int | None = None
    channel_layout: str | None = None
    bit_rate: int | None = None
    language: str | None = None
    is_default: bool = False


@dataclass(frozen=True)
class SubtitleStreamInfo:
    """A subtitle stream as reported by the engine's probe."""

    index: int
    codec: str | None
    language: str | None = None
    is_default: bool = False
    is_forced: bool = False


@dataclass(frozen=True)
class StreamProbe:
    """Snapshot of a source file's container and streams.

    Produced once per mount and cached by the session manager. Immutable;
    a remount yields a new probe.
    """

    container: str | None
    format_name: str | None = None
    duration_seconds: float | None = None
    bit_rate: int | None = None
    size_bytes: int | None = None
    video_streams: tuple[VideoStreamInfo, ...] = ()
    audio_streams: tuple[AudioStreamInfo, ...] = ()
    subtitle_streams: tuple[SubtitleStreamInfo, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def primary_video(self) -> VideoStreamInfo | None:
        return self.video_streams[0] if self.video_streams else None

    @property
    def primary_audio(self) -> AudioStreamInfo | None:
        for stream in self.audio_streams:
            if stream.is_default:
                return stream
        return self.audio_streams[0] if self.audio_streams else None

    @property
    def video_codec(self) -> str | None:
        video = self.primary_video
        return video.codec if video else None

    @property
    def audio_codec(self) -> str | None:
        audio = self.primary_audio
        return audio.codec if audio else None

    @property
    def has_video(self) -> bool:
        return bool(self.video_streams)

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_streams)


@dataclass(frozen=True)
class ProgressSample:
    """A derived progress reading for the running operation."""

    fraction: float
    elapsed_seconds: float
    remaining_seconds: float | None = None
    slow: bool = False

    @property
    def percent(self) -> float:
        """Percentage rounded to one decimal place."""
        return round(self.fraction * 1000) / 10


@dataclass(frozen=True)
class CopiedStreams:
    """Which tracks an operation passed through without re-encoding."""

    video: bool = False
    audio: bool = False


@dataclass(frozen=True)
class OperationResult:
    """Output of a completed operation."""

    data: bytes = field(repr=False)
    filename: str
    mime_type: str
    operation: OperationKind
    copied_streams: CopiedStreams = CopiedStreams()

    @property
    def size_bytes(self) -> int:
        return len(self.data)
