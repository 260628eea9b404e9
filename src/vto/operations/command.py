"""FFmpeg command building for orchestrated operations.

This module constructs FFmpeg argument lists for convert, compress, trim
(original/GIF/WebP) and audio extraction. Every builder is pure: it reads the
probe, request and resolved codecs and returns a fresh list without mutating
any input. The engine prepends the ffmpeg executable itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vto.config.models import AnimationConfig, EncodingConfig, LimitsConfig
from vto.core.codecs import (
    AUDIO_OUTPUT_FORMATS,
    ENCODERS,
    ResolvedCodecs,
    get_container_profile,
    normalize_codec,
)
from vto.core.timecode import format_timestamp
from vto.domain.models import StreamProbe
from vto.operations.decisions import (
    CopyPlan,
    StreamCopyDecision,
    decide_audio_copy,
    plan_stream_copy,
)
from vto.operations.requests import (
    DERIVED_DIMENSION,
    CompressRequest,
    ConvertRequest,
    DownscaleSpec,
    ExtractAudioRequest,
    TrimRequest,
)

logger = logging.getLogger(__name__)

# libvpx-vp9 -cpu-used per x264 preset (0 = slowest/best, 5 = fastest)
VP9_CPU_USED: dict[str, int] = {
    "ultrafast": 5,
    "superfast": 5,
    "veryfast": 4,
    "faster": 3,
    "fast": 2,
    "medium": 1,
    "slow": 1,
    "slower": 0,
    "veryslow": 0,
}

# Audio codecs with no bitrate knob
_LOSSLESS_AUDIO = frozenset({"flac", "pcm"})


@dataclass(frozen=True)
class CommandIO:
    """Engine-side names for one invocation."""

    input_ref: str
    output_name: str


def _global_args() -> list[str]:
    return ["-hide_banner", "-nostdin", "-y", "-stats_period", "1"]


def _limit_args(limits: LimitsConfig, reencode: bool) -> list[str]:
    args: list[str] = []
    if reencode:
        args.extend(["-threads", str(limits.threads)])
    args.extend(["-max_muxing_queue_size", str(limits.max_muxing_queue_size)])
    return args


def build_scale_filter(spec: DownscaleSpec) -> str:
    """Build a single scale filter expression for a downscale request.

    Derived dimensions (-1) become -2 so the encoder receives an even size.
    With both dimensions explicit and aspect ratio kept, the source is fitted
    inside the box (decrease-only).
    """
    width, height = spec.dimensions()
    w = -2 if width == DERIVED_DIMENSION else width
    h = -2 if height == DERIVED_DIMENSION else height
    both_explicit = width != DERIVED_DIMENSION and height != DERIVED_DIMENSION
    if spec.maintain_aspect_ratio and both_explicit:
        return (
            f"scale={w}:{h}:force_original_aspect_ratio=decrease"
            ":force_divisible_by=2"
        )
    return f"scale={w}:{h}"


def build_video_encode_args(
    codec: str,
    preset: str,
    limits: LimitsConfig,
    encoding: EncodingConfig,
    crf: int | None = None,
) -> list[str]:
    """Build encoder and rate-control arguments for a video codec family.

    Args:
        codec: Target video codec family (h264, hevc, vp9).
        preset: Encoder speed preset name.
        limits: Resource ceilings (maxrate/bufsize for x264/x265).
        encoding: Encoder defaults.
        crf: Explicit CRF; None uses the codec default.

    Returns:
        List of FFmpeg arguments.
    """
    family = normalize_codec(codec, "video")
    encoder = ENCODERS[family] if family in ENCODERS else codec
    args = ["-c:v", encoder]
    if family in ("h264", "hevc"):
        args.extend(["-preset", preset])
        args.extend(["-crf", str(encoding.x26x_crf if crf is None else crf)])
        args.extend(["-maxrate", limits.maxrate, "-bufsize", limits.bufsize])
        args.extend(["-pix_fmt", "yuv420p"])
    elif family == "vp9":
        args.extend(["-crf", str(encoding.vp9_crf if crf is None else crf)])
        args.extend(["-b:v", encoding.vp9_bitrate])
        args.extend(["-deadline", "good"])
        args.extend(["-cpu-used", str(VP9_CPU_USED.get(preset, 1))])
        args.extend(["-row-mt", "1"])
    return args


def build_audio_encode_args(codec: str, bitrate: str | None) -> list[str]:
    """Build encoder arguments for an audio codec family."""
    family = normalize_codec(codec, "audio")
    encoder = ENCODERS[family] if family in ENCODERS else codec
    args = ["-c:a", encoder]
    if bitrate and family not in _LOSSLESS_AUDIO:
        args.extend(["-b:a", bitrate])
    return args


def plan_convert_copy(
    probe: StreamProbe, request: ConvertRequest, resolved: ResolvedCodecs
) -> CopyPlan:
    """Copy eligibility for a convert request."""
    return plan_stream_copy(
        source_video=probe.video_codec,
        source_audio=probe.audio_codec,
        target_video=resolved.video,
        target_audio=resolved.audio,
        downscale=request.downscale is not None,
    )


def _map_args(probe: StreamProbe, video: bool = True, audio: bool = True) -> list[str]:
    args: list[str] = []
    if video and probe.primary_video is not None:
        args.extend(["-map", f"0:{probe.primary_video.index}"])
    if audio and probe.primary_audio is not None:
        args.extend(["-map", f"0:{probe.primary_audio.index}"])
    return args


def _track_args(
    probe: StreamProbe,
    resolved: ResolvedCodecs,
    copy_plan: CopyPlan,
    preset: str,
    limits: LimitsConfig,
    encoding: EncodingConfig,
    crf: int | None = None,
    downscale: DownscaleSpec | None = None,
) -> list[str]:
    args: list[str] = []
    if not probe.has_video:
        args.append("-vn")
    elif copy_plan.video.copy:
        args.extend(["-c:v", "copy"])
    else:
        args.extend(
            build_video_encode_args(resolved.video, preset, limits, encoding, crf=crf)
        )
        if downscale is not None:
            args.extend(["-vf", build_scale_filter(downscale)])

    if not probe.has_audio:
        args.append("-an")
    elif copy_plan.audio.copy:
        args.extend(["-c:a", "copy"])
    else:
        args.extend(build_audio_encode_args(resolved.audio, encoding.audio_bitrate))
    return args


def _needs_reencode(probe: StreamProbe, copy_plan: CopyPlan) -> bool:
    return (probe.has_video and not copy_plan.video.copy) or (
        probe.has_audio and not copy_plan.audio.copy
    )


def build_convert_command(
    probe: StreamProbe,
    request: ConvertRequest,
    resolved: ResolvedCodecs,
    io: CommandIO,
    limits: LimitsConfig | None = None,
    encoding: EncodingConfig | None = None,
) -> list[str]:
    """Build the FFmpeg arguments for a convert request.

    Tracks whose codec family already matches the target are copied; the
    rest are re-encoded with the resolved codecs.

    Args:
        probe: Probe of the mounted source.
        request: Validated convert request.
        resolved: Codecs after compatibility resolution.
        io: Engine input reference and output name.
        limits: Resource ceilings.
        encoding: Encoder defaults.

    Returns:
        FFmpeg argument list (without the executable).
    """
    limits = limits or LimitsConfig()
    encoding = encoding or EncodingConfig()
    copy_plan = plan_convert_copy(probe, request, resolved)
    profile = get_container_profile(resolved.container)

    cmd = _global_args()
    cmd.extend(["-i", io.input_ref])
    cmd.extend(_map_args(probe))
    cmd.extend(
        _track_args(
            probe,
            resolved,
            copy_plan,
            request.preset,
            limits,
            encoding,
            downscale=request.downscale,
        )
    )
    cmd.extend(_limit_args(limits, _needs_reencode(probe, copy_plan)))
    if profile.faststart:
        cmd.extend(["-movflags", "+faststart"])
    cmd.append(io.output_name)

    logger.debug(
        "Built convert command: video=%s audio=%s container=%s",
        "copy" if copy_plan.video.copy else resolved.video,
        "copy" if copy_plan.audio.copy else resolved.audio,
        profile.name,
    )
    return cmd


def plan_compress_copy(probe: StreamProbe, resolved: ResolvedCodecs) -> CopyPlan:
    """Copy plan for compression: nothing is ever copied."""
    return plan_stream_copy(
        source_video=probe.video_codec,
        source_audio=probe.audio_codec,
        target_video=resolved.video,
        target_audio=resolved.audio,
        force_reencode=True,
    )


def build_compress_command(
    probe: StreamProbe,
    request: CompressRequest,
    resolved: ResolvedCodecs,
    io: CommandIO,
    limits: LimitsConfig | None = None,
    encoding: EncodingConfig | None = None,
) -> list[str]:
    """Build the FFmpeg arguments for a compress request.

    Always re-encodes; the request's quality becomes the CRF.
    """
    limits = limits or LimitsConfig()
    encoding = encoding or EncodingConfig()
    copy_plan = plan_compress_copy(probe, resolved)
    profile = get_container_profile(resolved.container)

    cmd = _global_args()
    cmd.extend(["-i", io.input_ref])
    cmd.extend(_map_args(probe))
    cmd.extend(
        _track_args(
            probe,
            resolved,
            copy_plan,
            request.preset,
            limits,
            encoding,
            crf=request.quality,
        )
    )
    cmd.extend(_limit_args(limits, reencode=True))
    if profile.faststart:
        cmd.extend(["-movflags", "+faststart"])
    cmd.append(io.output_name)
    return cmd


def _trim_input_args(request: TrimRequest, io: CommandIO) -> list[str]:
    return [
        "-ss",
        format_timestamp(request.start),
        "-to",
        format_timestamp(request.end),
        "-i",
        io.input_ref,
    ]


def build_trim_original_command(
    probe: StreamProbe,
    request: TrimRequest,
    io: CommandIO,
    limits: LimitsConfig | None = None,
) -> list[str]:
    """Trim into the source format with stream copy.

    Every video, audio and subtitle stream is kept; data streams are
    dropped. Cut points snap to keyframes.
    """
    limits = limits or LimitsConfig()
    cmd = _global_args()
    cmd.extend(_trim_input_args(request, io))
    cmd.extend(["-map", "0", "-map", "-0:d?"])
    cmd.extend(["-c", "copy", "-avoid_negative_ts", "make_zero"])
    cmd.extend(_limit_args(limits, reencode=False))
    cmd.append(io.output_name)
    return cmd


def build_trim_gif_command(
    probe: StreamProbe,
    request: TrimRequest,
    io: CommandIO,
    limits: LimitsConfig | None = None,
    animation: AnimationConfig | None = None,
) -> list[str]:
    """Trim into an animated GIF with a generated palette.

    The GIF muxer uses -loop 0 for infinite looping and -1 to play once.
    """
    limits = limits or LimitsConfig()
    animation = animation or AnimationConfig()
    graph = (
        f"fps={animation.fps},scale={animation.width}:-1:flags=lanczos,"
        "split[a][b];[a]palettegen[p];[b][p]paletteuse"
    )
    cmd = _global_args()
    cmd.extend(_trim_input_args(request, io))
    cmd.extend(_map_args(probe, audio=False))
    cmd.extend(["-vf", graph, "-an"])
    cmd.extend(["-loop", "0" if request.loop else "-1"])
    cmd.extend(_limit_args(limits, reencode=True))
    cmd.append(io.output_name)
    return cmd


def build_trim_webp_command(
    probe: StreamProbe,
    request: TrimRequest,
    io: CommandIO,
    limits: LimitsConfig | None = None,
    animation: AnimationConfig | None = None,
) -> list[str]:
    """Trim into an animated WebP.

    The WebP muxer uses -loop 0 for infinite looping and 1 to play once.
    """
    limits = limits or LimitsConfig()
    animation = animation or AnimationConfig()
    cmd = _global_args()
    cmd.extend(_trim_input_args(request, io))
    cmd.extend(_map_args(probe, audio=False))
    cmd.extend(
        ["-vf", f"fps={animation.fps},scale={animation.width}:-1:flags=lanczos"]
    )
    cmd.extend(["-c:v", ENCODERS["webp"], "-lossless", "0"])
    cmd.extend(["-q:v", str(animation.webp_quality)])
    cmd.extend(["-an"])
    cmd.extend(["-loop", "0" if request.loop else "1"])
    cmd.extend(_limit_args(limits, reencode=True))
    cmd.append(io.output_name)
    return cmd


def decide_extract_copy(probe: StreamProbe, request: ExtractAudioRequest) -> StreamCopyDecision:
    """Copy eligibility for audio extraction."""
    fmt = AUDIO_OUTPUT_FORMATS[request.audio_format]
    return decide_audio_copy(probe.audio_codec, fmt.codec)


def build_extract_audio_command(
    probe: StreamProbe,
    request: ExtractAudioRequest,
    io: CommandIO,
    limits: LimitsConfig | None = None,
) -> list[str]:
    """Build the FFmpeg arguments to export the primary audio track."""
    limits = limits or LimitsConfig()
    fmt = AUDIO_OUTPUT_FORMATS[request.audio_format]
    decision = decide_extract_copy(probe, request)

    cmd = _global_args()
    cmd.extend(["-i", io.input_ref])
    cmd.extend(_map_args(probe, video=False))
    cmd.append("-vn")
    if decision.copy:
        cmd.extend(["-c:a", "copy"])
    else:
        cmd.extend(build_audio_encode_args(fmt.codec, fmt.bitrate))
    if fmt.muxer:
        cmd.extend(["-f", fmt.muxer])
    cmd.extend(_limit_args(limits, reencode=not decision.copy))
    cmd.append(io.output_name)
    return cmd
