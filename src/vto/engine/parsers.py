"""Pure parsing functions for ffprobe JSON output.

These functions transform ffprobe JSON data into StreamProbe objects.
All functions are pure (no I/O, no side effects) for easy testing.
"""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Any

from vto.core.codecs import normalize_container
from vto.domain.models import (
    AudioStreamInfo,
    StreamProbe,
    SubtitleStreamInfo,
    VideoStreamInfo,
)

logger = logging.getLogger(__name__)

# Codec names ffprobe reports for cover art and other still images that
# appear as video streams but are not playable video.
_ATTACHED_PIC_CODECS = frozenset({"mjpeg", "png", "bmp"})


def _to_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        result = int(value)
    except (TypeError, ValueError):
        return None
    return result if result >= 0 else None


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if result >= 0 else None


def parse_frame_rate(value: str | None) -> float | None:
    """Parse an ffprobe rational frame rate such as "30000/1001".

    Returns:
        Frames per second rounded to 3 decimals, or None if unknown.
    """
    if not value or value == "0/0":
        return None
    num, _, den = value.partition("/")
    try:
        numerator = float(num)
        denominator = float(den) if den else 1.0
    except ValueError:
        return None
    if denominator == 0:
        return None
    return round(numerator / denominator, 3)


def _is_attached_picture(stream: dict) -> bool:
    disposition = stream.get("disposition", {})
    return disposition.get("attached_pic", 0) == 1 or (
        stream.get("codec_name") in _ATTACHED_PIC_CODECS
        and stream.get("nb_frames") in ("1", 1)
    )


def parse_video_stream(stream: dict) -> VideoStreamInfo:
    """Parse a single ffprobe video stream dict."""
    return VideoStreamInfo(
        index=stream.get("index", 0),
        codec=stream.get("codec_name"),
        width=_to_int(stream.get("width")),
        height=_to_int(stream.get("height")),
        fps=parse_frame_rate(stream.get("r_frame_rate") or stream.get("avg_frame_rate")),
        pix_fmt=stream.get("pix_fmt"),
        bit_rate=_to_int(stream.get("bit_rate")),
        display_aspect_ratio=stream.get("display_aspect_ratio"),
    )


def parse_audio_stream(stream: dict) -> AudioStreamInfo:
    """Parse a single ffprobe audio stream dict."""
    disposition = stream.get("disposition", {})
    tags = stream.get("tags", {})
    return AudioStreamInfo(
        index=stream.get("index", 0),
        codec=stream.get("codec_name"),
        sample_rate=_to_int(stream.get("sample_rate")),
        channels=_to_int(stream.get("channels")),
        channel_layout=stream.get("channel_layout"),
        bit_rate=_to_int(stream.get("bit_rate")),
        language=tags.get("language"),
        is_default=disposition.get("default", 0) == 1,
    )


def parse_subtitle_stream(stream: dict) -> SubtitleStreamInfo:
    """Parse a single ffprobe subtitle stream dict."""
    disposition = stream.get("disposition", {})
    tags = stream.get("tags", {})
    return SubtitleStreamInfo(
        index=stream.get("index", 0),
        codec=stream.get("codec_name"),
        language=tags.get("language"),
        is_default=disposition.get("default", 0) == 1,
        is_forced=disposition.get("forced", 0) == 1,
    )


def infer_container(file_name: str | None, format_name: str | None) -> str | None:
    """Infer the normalized container name.

    The file extension wins because ffprobe reports families such as
    "mov,mp4,m4a,3gp,3g2,mj2" for every ISO-BMFF file.
    """
    if file_name:
        from_ext = normalize_container(PurePath(file_name).suffix)
        if from_ext is not None:
            return from_ext
    return normalize_container(format_name)


def parse_ffprobe_output(data: dict, file_name: str | None = None) -> StreamProbe:
    """Parse complete ffprobe JSON output into a StreamProbe.

    Args:
        data: Parsed JSON from ``ffprobe -show_format -show_streams``.
        file_name: Source file name, used for container inference.

    Returns:
        StreamProbe snapshot.
    """
    fmt = data.get("format", {}) or {}
    format_name = fmt.get("format_name")

    video: list[VideoStreamInfo] = []
    audio: list[AudioStreamInfo] = []
    subtitles: list[SubtitleStreamInfo] = []
    warnings: list[str] = []
    seen: set[int] = set()

    for stream in data.get("streams", []) or []:
        index = stream.get("index", 0)
        if index in seen:
            warnings.append(f"Duplicate stream index {index}, skipping")
            continue
        seen.add(index)

        codec_type = stream.get("codec_type", "")
        if codec_type == "video":
            if _is_attached_picture(stream):
                logger.debug("Skipping attached picture stream %d", index)
                continue
            video.append(parse_video_stream(stream))
        elif codec_type == "audio":
            audio.append(parse_audio_stream(stream))
        elif codec_type == "subtitle":
            subtitles.append(parse_subtitle_stream(stream))

    duration = _to_float(fmt.get("duration"))
    if duration is None:
        for stream in data.get("streams", []) or []:
            duration = _to_float(stream.get("duration"))
            if duration is not None:
                break

    return StreamProbe(
        container=infer_container(file_name or fmt.get("filename"), format_name),
        format_name=format_name,
        duration_seconds=duration,
        bit_rate=_to_int(fmt.get("bit_rate")),
        size_bytes=_to_int(fmt.get("size")),
        video_streams=tuple(video),
        audio_streams=tuple(audio),
        subtitle_streams=tuple(subtitles),
        warnings=tuple(warnings),
    )


def fallback_probe(file_name: str, size_bytes: int | None, reason: str) -> StreamProbe:
    """Minimal probe used when ffprobe output is unusable.

    Only the container (from the extension) and size are known.
    """
    logger.warning("Using fallback probe for %s: %s", file_name, reason)
    return StreamProbe(
        container=infer_container(file_name, None),
        size_bytes=size_bytes,
        warnings=(f"ffprobe failed: {reason}",),
    )
