"""Enumerations shared across the orchestrator."""

from enum import Enum


class SessionState(Enum):
    """Lifecycle state of the media session."""

    UNMOUNTED = "unmounted"
    MOUNTING = "mounting"
    MOUNTED = "mounted"
    EXECUTING = "executing"
    RECOVERING = "recovering"
    UNMOUNTING = "unmounting"
    FAILED = "failed"


class OperationKind(Enum):
    """Kinds of operation an executor can run."""

    CONVERT = "convert"
    COMPRESS = "compress"
    TRIM = "trim"
    EXTRACT_AUDIO = "extract_audio"


class TrimFormat(Enum):
    """Output format of a trim operation."""

    ORIGINAL = "original"
    GIF = "gif"
    WEBP = "webp"


class Preset(Enum):
    """Encoder speed/efficiency preset (x264 naming)."""

    ULTRAFAST = "ultrafast"
    SUPERFAST = "superfast"
    VERYFAST = "veryfast"
    FASTER = "faster"
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"
    SLOWER = "slower"
    VERYSLOW = "veryslow"
