"""Centralized codec registry and container compatibility matrix.

This module is the single source of truth for codec knowledge, including:
- Codec alias groups for matching/normalization (families)
- The FFmpeg encoder used for each family
- Container profiles with their ordered, allowed codec lists
- Audio-only output formats for audio extraction
- The compatibility resolver

The matrix is validated when the module is imported so an inconsistent table
fails at startup instead of mid-operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from vto.exceptions import MatrixConfigurationError, ValidationError

CodecKind = Literal["video", "audio"]

# =============================================================================
# Codec Alias Groups
# =============================================================================
# Keys are the canonical family names. Encoder ids are part of each group so a
# request may name either "h264" or "libx264".

VIDEO_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "h264": frozenset({"h264", "h.264", "avc", "avc1", "x264", "libx264"}),
    "hevc": frozenset({"hevc", "h265", "h.265", "x265", "hvc1", "hev1", "libx265"}),
    "vp9": frozenset({"vp9", "vp09", "libvpx-vp9"}),
    "gif": frozenset({"gif"}),
    "webp": frozenset({"webp", "libwebp", "libwebp_anim"}),
}

AUDIO_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "aac": frozenset({"aac", "aac_latm", "mp4a", "libfdk_aac"}),
    "mp3": frozenset({"mp3", "mp3float", "libmp3lame"}),
    "opus": frozenset({"opus", "libopus"}),
    "flac": frozenset({"flac"}),
    "pcm": frozenset({"pcm", "pcm_s16le", "pcm_s24le", "pcm_s32le", "pcm_f32le"}),
    "vorbis": frozenset({"vorbis", "libvorbis"}),
}

# =============================================================================
# Encoders
# =============================================================================
# Family name -> FFmpeg encoder id.

ENCODERS: dict[str, str] = {
    "h264": "libx264",
    "hevc": "libx265",
    "vp9": "libvpx-vp9",
    "gif": "gif",
    "webp": "libwebp",
    "aac": "aac",
    "mp3": "libmp3lame",
    "opus": "libopus",
    "flac": "flac",
    "pcm": "pcm_s16le",
    "vorbis": "libvorbis",
}

# =============================================================================
# Container Profiles
# =============================================================================


@dataclass(frozen=True)
class ContainerProfile:
    """A target container and the codecs it may carry.

    Codec tuples are ordered by priority: the first entry is the fallback
    used when a requested codec is not allowed.
    """

    name: str
    extension: str
    mime_type: str
    video_codecs: tuple[str, ...]
    audio_codecs: tuple[str, ...]
    faststart: bool = False

    def allowed(self, kind: CodecKind) -> tuple[str, ...]:
        """Return the ordered codec families allowed for a stream kind."""
        return self.video_codecs if kind == "video" else self.audio_codecs


COMPATIBILITY_MATRIX: dict[str, ContainerProfile] = {
    "mp4": ContainerProfile(
        name="mp4",
        extension="mp4",
        mime_type="video/mp4",
        video_codecs=("h264", "hevc"),
        audio_codecs=("aac", "mp3"),
        faststart=True,
    ),
    "webm": ContainerProfile(
        name="webm",
        extension="webm",
        mime_type="video/webm",
        video_codecs=("vp9",),
        audio_codecs=("opus",),
    ),
    "mkv": ContainerProfile(
        name="mkv",
        extension="mkv",
        mime_type="video/x-matroska",
        video_codecs=("h264", "hevc", "vp9"),
        audio_codecs=("aac", "mp3", "opus"),
    ),
    "avi": ContainerProfile(
        name="avi",
        extension="avi",
        mime_type="video/x-msvideo",
        video_codecs=("h264", "hevc"),
        audio_codecs=("aac", "mp3"),
    ),
    "mov": ContainerProfile(
        name="mov",
        extension="mov",
        mime_type="video/quicktime",
        video_codecs=("h264", "hevc"),
        audio_codecs=("aac", "mp3"),
        faststart=True,
    ),
}

# Names ffprobe and users use for the same containers.
CONTAINER_ALIASES: dict[str, str] = {
    "mp4": "mp4",
    "m4v": "mp4",
    "webm": "webm",
    "mkv": "mkv",
    "matroska": "mkv",
    "avi": "avi",
    "mov": "mov",
    "quicktime": "mov",
}

# =============================================================================
# Audio Extraction Formats
# =============================================================================


@dataclass(frozen=True)
class AudioFormatProfile:
    """An audio-only output format for extraction."""

    name: str
    extension: str
    mime_type: str
    codec: str
    bitrate: str | None = None
    muxer: str | None = None


AUDIO_OUTPUT_FORMATS: dict[str, AudioFormatProfile] = {
    "mp3": AudioFormatProfile(
        name="mp3", extension="mp3", mime_type="audio/mpeg", codec="mp3",
        bitrate="192k",
    ),
    "wav": AudioFormatProfile(
        name="wav", extension="wav", mime_type="audio/wav", codec="pcm",
    ),
    "aac": AudioFormatProfile(
        name="aac", extension="aac", mime_type="audio/aac", codec="aac",
        bitrate="192k", muxer="adts",
    ),
    "flac": AudioFormatProfile(
        name="flac", extension="flac", mime_type="audio/flac", codec="flac",
    ),
    "opus": AudioFormatProfile(
        name="opus", extension="opus", mime_type="audio/ogg", codec="opus",
        bitrate="128k", muxer="ogg",
    ),
}

# Animated image exports produced by trim.
ANIMATION_MIME_TYPES: dict[str, str] = {
    "gif": "image/gif",
    "webp": "image/webp",
}


# =============================================================================
# Normalization Helpers
# =============================================================================


def _aliases(kind: CodecKind) -> dict[str, frozenset[str]]:
    return VIDEO_CODEC_ALIASES if kind == "video" else AUDIO_CODEC_ALIASES


def normalize_codec(codec: str | None, kind: CodecKind) -> str | None:
    """Normalize a codec or encoder name to its family name.

    Args:
        codec: Codec name, alias or encoder id (case-insensitive).
        kind: Whether the codec is a video or audio codec.

    Returns:
        Canonical family name, the casefolded input if it belongs to no
        known family, or None if codec is None/empty.
    """
    if not codec:
        return None
    folded = codec.casefold().strip()
    for family, aliases in _aliases(kind).items():
        if folded in aliases:
            return family
    return folded


def codec_family_matches(
    first: str | None, second: str | None, kind: CodecKind
) -> bool:
    """Check whether two codec names belong to the same family.

    Returns False if either side is unknown (None).
    """
    a = normalize_codec(first, kind)
    b = normalize_codec(second, kind)
    return a is not None and a == b


def normalize_container(container: str | None) -> str | None:
    """Normalize a container or extension name to a matrix key.

    Accepts values such as "MP4", ".mkv" or ffprobe's "matroska,webm".
    Returns None if the container is not recognized.
    """
    if not container:
        return None
    folded = container.casefold().strip().lstrip(".")
    for part in folded.split(","):
        key = CONTAINER_ALIASES.get(part.strip())
        if key is not None:
            return key
    return None


def get_container_profile(container: str) -> ContainerProfile:
    """Look up a container profile.

    Raises:
        ValidationError: If the container is not in the matrix.
    """
    key = normalize_container(container)
    if key is None:
        raise ValidationError(
            f"Unsupported container '{container}'. "
            f"Must be one of: {', '.join(sorted(COMPATIBILITY_MATRIX))}",
            field="target_container",
        )
    return COMPATIBILITY_MATRIX[key]


def get_compatible_codecs(container: str, kind: CodecKind) -> tuple[str, ...]:
    """Return the ordered codec families a container allows for a kind."""
    return get_container_profile(container).allowed(kind)


def is_codec_compatible(container: str, codec: str | None, kind: CodecKind) -> bool:
    """Check whether a codec may be muxed into a container."""
    family = normalize_codec(codec, kind)
    return family is not None and family in get_compatible_codecs(container, kind)


def get_encoder(codec: str) -> str:
    """Return the FFmpeg encoder id for a codec family or alias.

    Raises:
        ValidationError: If no encoder is known for the codec.
    """
    for kind in ("video", "audio"):
        family = normalize_codec(codec, kind)
        if family in ENCODERS:
            return ENCODERS[family]
    raise ValidationError(f"No encoder available for codec '{codec}'", field="codec")


# =============================================================================
# Compatibility Resolver
# =============================================================================


@dataclass(frozen=True)
class ResolvedCodecs:
    """Codec choice after validating a request against a container."""

    container: str
    video: str
    audio: str
    video_changed: bool = False
    audio_changed: bool = False

    @property
    def changed(self) -> bool:
        """True if either requested codec had to be replaced."""
        return self.video_changed or self.audio_changed


def _resolve_one(
    profile: ContainerProfile, requested: str | None, kind: CodecKind
) -> tuple[str, bool]:
    allowed = profile.allowed(kind)
    family = normalize_codec(requested, kind)
    if family is None:
        return allowed[0], False
    if family in allowed:
        return family, False
    return allowed[0], True


def resolve(
    container: str,
    requested_video: str | None = None,
    requested_audio: str | None = None,
) -> ResolvedCodecs:
    """Validate requested codecs against a container, repairing if needed.

    Each requested codec is kept when the container allows it; otherwise the
    container's first allowed codec is substituted and the result is marked
    changed. A codec that was not requested (None) takes the container
    default without being marked changed.

    Args:
        container: Target container name.
        requested_video: Requested video codec (family, alias or encoder id).
        requested_audio: Requested audio codec (family, alias or encoder id).

    Returns:
        ResolvedCodecs with family names.

    Raises:
        ValidationError: If the container is unknown.
    """
    profile = get_container_profile(container)
    video, video_changed = _resolve_one(profile, requested_video, "video")
    audio, audio_changed = _resolve_one(profile, requested_audio, "audio")
    return ResolvedCodecs(
        container=profile.name,
        video=video,
        audio=audio,
        video_changed=video_changed,
        audio_changed=audio_changed,
    )


def validate_matrix(
    matrix: dict[str, ContainerProfile] | None = None,
    encoders: dict[str, str] | None = None,
) -> None:
    """Check that every container is usable and every codec has an encoder.

    Raises:
        MatrixConfigurationError: On the first inconsistency found.
    """
    matrix = COMPATIBILITY_MATRIX if matrix is None else matrix
    encoders = ENCODERS if encoders is None else encoders
    for name, profile in matrix.items():
        if not profile.video_codecs or not profile.audio_codecs:
            raise MatrixConfigurationError(
                f"Container '{name}' must allow at least one video and one audio codec"
            )
        for codec in profile.video_codecs + profile.audio_codecs:
            if codec not in encoders:
                raise MatrixConfigurationError(
                    f"Codec '{codec}' allowed in '{name}' has no encoder"
                )
    for fmt in AUDIO_OUTPUT_FORMATS.values():
        if fmt.codec not in encoders:
            raise MatrixConfigurationError(
                f"Audio format '{fmt.name}' uses codec '{fmt.codec}' with no encoder"
            )


validate_matrix()
