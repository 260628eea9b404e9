"""Domain types for the transcode orchestrator."""

from vto.domain.enums import OperationKind, Preset, SessionState, TrimFormat
from vto.domain.models import (
    AudioStreamInfo,
    CopiedStreams,
    OperationResult,
    ProgressSample,
    StreamProbe,
    SubtitleStreamInfo,
    VideoStreamInfo,
)

__all__ = [
    # Enums
    "OperationKind",
    "Preset",
    "SessionState",
    "TrimFormat",
    # Models
    "AudioStreamInfo",
    "CopiedStreams",
    "OperationResult",
    "ProgressSample",
    "StreamProbe",
    "SubtitleStreamInfo",
    "VideoStreamInfo",
]
