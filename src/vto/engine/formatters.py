"""Output formatting for probe results.

Provides human-readable and JSON formatting of StreamProbe data for CLI
output.
"""

from __future__ import annotations

import json
from dataclasses import asdict

from vto.core.resolutions import compatible_resolutions
from vto.core.timecode import format_timestamp
from vto.domain.models import StreamProbe


def format_size(size: int | None) -> str:
    if size is None:
        return "unknown"
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def format_human(probe: StreamProbe, name: str | None = None) -> str:
    """Format a probe for human-readable output."""
    lines: list[str] = []
    if name:
        lines.append(f"File: {name}")
    lines.append(f"Container: {probe.container or 'unknown'}")
    if probe.duration_seconds is not None:
        lines.append(f"Duration: {format_timestamp(probe.duration_seconds)}")
    lines.append(f"Size: {format_size(probe.size_bytes)}")
    if probe.bit_rate:
        lines.append(f"Bitrate: {probe.bit_rate // 1000} kb/s")

    if probe.video_streams:
        lines.append("")
        lines.append("Video:")
        for v in probe.video_streams:
            dims = f"{v.width}x{v.height}" if v.width and v.height else "?"
            fps = f" @ {v.fps:g} fps" if v.fps else ""
            lines.append(f"  #{v.index}: {v.codec or 'unknown'} {dims}{fps}")

    if probe.audio_streams:
        lines.append("")
        lines.append("Audio:")
        for a in probe.audio_streams:
            parts = [a.codec or "unknown"]
            if a.channel_layout:
                parts.append(a.channel_layout)
            elif a.channels:
                parts.append(f"{a.channels}ch")
            if a.sample_rate:
                parts.append(f"{a.sample_rate} Hz")
            if a.language:
                parts.append(f"[{a.language}]")
            if a.is_default:
                parts.append("(default)")
            lines.append(f"  #{a.index}: {' '.join(parts)}")

    if probe.subtitle_streams:
        lines.append("")
        lines.append("Subtitles:")
        for s in probe.subtitle_streams:
            lang = f" [{s.language}]" if s.language else ""
            lines.append(f"  #{s.index}: {s.codec or 'unknown'}{lang}")

    video = probe.primary_video
    if video and video.width and video.height:
        sizes = compatible_resolutions(video.width, video.height)
        if sizes:
            lines.append("")
            lines.append(
                "Downscale options: " + ", ".join(res.value for res in sizes)
            )

    for warning in probe.warnings:
        lines.append(f"Warning: {warning}")
    return "\n".join(lines)


def format_json(probe: StreamProbe) -> str:
    """Format a probe as JSON."""
    return json.dumps(asdict(probe), indent=2)
