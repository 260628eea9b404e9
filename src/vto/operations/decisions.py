"""Stream copy decision logic.

Decides, per track, whether a job can pass the source stream through
unchanged (``-c copy``) or must re-encode it.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from vto.core.codecs import codec_family_matches

logger = logging.getLogger(__name__)


class CopyReasonCode(Enum):
    """Why a track is copied or re-encoded."""

    SAME_CODEC = "same_codec"
    CODEC_MISMATCH = "codec_mismatch"
    DOWNSCALE_REQUESTED = "downscale_requested"
    FORCED_REENCODE = "forced_reencode"
    NO_SOURCE_STREAM = "no_source_stream"


@dataclass(frozen=True)
class StreamCopyDecision:
    """Result of evaluating whether one track can be stream-copied."""

    copy: bool
    reason: CopyReasonCode
    source_codec: str | None = None
    target_codec: str | None = None


@dataclass(frozen=True)
class CopyPlan:
    """Copy decisions for the video and audio tracks of a job."""

    video: StreamCopyDecision
    audio: StreamCopyDecision

    @property
    def full_copy(self) -> bool:
        """True if every present track is copied (a pure remux)."""
        video_ok = self.video.copy or self.video.reason == CopyReasonCode.NO_SOURCE_STREAM
        audio_ok = self.audio.copy or self.audio.reason == CopyReasonCode.NO_SOURCE_STREAM
        return video_ok and audio_ok


def decide_video_copy(
    source_codec: str | None,
    target_codec: str,
    downscale: bool = False,
    force_reencode: bool = False,
) -> StreamCopyDecision:
    """Decide whether the video track can be copied.

    Video is copied only when no downscale is requested and the target codec
    is the same family as the source codec.
    """
    if source_codec is None:
        decision = StreamCopyDecision(
            copy=False, reason=CopyReasonCode.NO_SOURCE_STREAM, target_codec=target_codec
        )
    elif force_reencode:
        decision = StreamCopyDecision(
            copy=False,
            reason=CopyReasonCode.FORCED_REENCODE,
            source_codec=source_codec,
            target_codec=target_codec,
        )
    elif downscale:
        decision = StreamCopyDecision(
            copy=False,
            reason=CopyReasonCode.DOWNSCALE_REQUESTED,
            source_codec=source_codec,
            target_codec=target_codec,
        )
    elif codec_family_matches(source_codec, target_codec, "video"):
        decision = StreamCopyDecision(
            copy=True,
            reason=CopyReasonCode.SAME_CODEC,
            source_codec=source_codec,
            target_codec=target_codec,
        )
    else:
        decision = StreamCopyDecision(
            copy=False,
            reason=CopyReasonCode.CODEC_MISMATCH,
            source_codec=source_codec,
            target_codec=target_codec,
        )
    logger.debug(
        "Video copy decision: %s (%s -> %s)",
        decision.reason.value,
        source_codec,
        target_codec,
    )
    return decision


def decide_audio_copy(
    source_codec: str | None,
    target_codec: str,
    force_reencode: bool = False,
) -> StreamCopyDecision:
    """Decide whether the audio track can be copied.

    Independent of the video decision: audio is copied whenever its codec
    family already matches the target.
    """
    if source_codec is None:
        decision = StreamCopyDecision(
            copy=False, reason=CopyReasonCode.NO_SOURCE_STREAM, target_codec=target_codec
        )
    elif force_reencode:
        decision = StreamCopyDecision(
            copy=False,
            reason=CopyReasonCode.FORCED_REENCODE,
            source_codec=source_codec,
            target_codec=target_codec,
        )
    elif codec_family_matches(source_codec, target_codec, "audio"):
        decision = StreamCopyDecision(
            copy=True,
            reason=CopyReasonCode.SAME_CODEC,
            source_codec=source_codec,
            target_codec=target_codec,
        )
    else:
        decision = StreamCopyDecision(
            copy=False,
            reason=CopyReasonCode.CODEC_MISMATCH,
            source_codec=source_codec,
            target_codec=target_codec,
        )
    logger.debug(
        "Audio copy decision: %s (%s -> %s)",
        decision.reason.value,
        source_codec,
        target_codec,
    )
    return decision


def plan_stream_copy(
    source_video: str | None,
    source_audio: str | None,
    target_video: str,
    target_audio: str,
    downscale: bool = False,
    force_reencode: bool = False,
) -> CopyPlan:
    """Evaluate copy eligibility for both tracks of a job."""
    return CopyPlan(
        video=decide_video_copy(
            source_video, target_video, downscale=downscale, force_reencode=force_reencode
        ),
        audio=decide_audio_copy(
            source_audio, target_audio, force_reencode=force_reencode
        ),
    )
