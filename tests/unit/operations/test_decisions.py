"""Tests for stream copy decisions."""

from vto.operations.decisions import (
    CopyReasonCode,
    decide_audio_copy,
    decide_video_copy,
    plan_stream_copy,
)


class TestDecideVideoCopy:
    """Tests for decide_video_copy()."""

    def test_same_family_copies(self) -> None:
        decision = decide_video_copy("avc1", "h264")
        assert decision.copy
        assert decision.reason == CopyReasonCode.SAME_CODEC

    def test_mismatch_reencodes(self) -> None:
        decision = decide_video_copy("h264", "vp9")
        assert not decision.copy
        assert decision.reason == CopyReasonCode.CODEC_MISMATCH

    def test_downscale_forces_reencode(self) -> None:
        decision = decide_video_copy("h264", "h264", downscale=True)
        assert not decision.copy
        assert decision.reason == CopyReasonCode.DOWNSCALE_REQUESTED

    def test_forced_reencode(self) -> None:
        decision = decide_video_copy("h264", "h264", force_reencode=True)
        assert decision.reason == CopyReasonCode.FORCED_REENCODE

    def test_missing_source(self) -> None:
        decision = decide_video_copy(None, "h264")
        assert not decision.copy
        assert decision.reason == CopyReasonCode.NO_SOURCE_STREAM


class TestDecideAudioCopy:
    """Tests for decide_audio_copy()."""

    def test_same_family_copies(self) -> None:
        assert decide_audio_copy("aac", "aac").copy

    def test_mismatch_reencodes(self) -> None:
        decision = decide_audio_copy("aac", "opus")
        assert decision.reason == CopyReasonCode.CODEC_MISMATCH


class TestPlanStreamCopy:
    """Tests for plan_stream_copy()."""

    def test_audio_copied_when_video_reencoded(self) -> None:
        plan = plan_stream_copy("h264", "aac", "h264", "aac", downscale=True)
        assert not plan.video.copy
        assert plan.audio.copy
        assert not plan.full_copy

    def test_full_copy(self) -> None:
        plan = plan_stream_copy("hevc", "mp3", "hevc", "mp3")
        assert plan.full_copy

    def test_full_copy_ignores_missing_track(self) -> None:
        plan = plan_stream_copy(None, "aac", "h264", "aac")
        assert plan.full_copy

    def test_force_reencode_applies_to_both(self) -> None:
        plan = plan_stream_copy("h264", "aac", "h264", "aac", force_reencode=True)
        assert not plan.video.copy
        assert not plan.audio.copy
