"""Tests for the operation executors."""

from pathlib import Path

import pytest

from vto.domain.enums import OperationKind
from vto.engine.stub import StubEngine
from vto.exceptions import ValidationError
from vto.operations.cancellation import CancellationToken
from vto.operations.context import OperationContext
from vto.operations.executors import (
    CompressExecutor,
    ConvertExecutor,
    ExtractAudioExecutor,
    TrimExecutor,
)
from vto.operations.progress import ProgressMonitor
from vto.session.manager import SessionManager


def _context(kind: OperationKind) -> OperationContext:
    token = CancellationToken()
    return OperationContext(
        kind=kind, token=token, monitor=ProgressMonitor(), operation_id=token.operation_id
    )


def _mounted(probe, source_file: Path):
    engine = StubEngine(probe=probe)
    manager = SessionManager(lambda: engine)
    handle = manager.mount(source_file)
    return engine, manager, handle


class TestConvertExecutor:
    """Tests for ConvertExecutor."""

    def test_remux_result(self, mp4_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        outcome = ConvertExecutor(manager).execute(
            handle, {"target_container": "mkv"}, _context(OperationKind.CONVERT)
        )
        result = outcome.result
        assert result.filename == "clip_converted.mkv"
        assert result.mime_type == "video/x-matroska"
        assert result.copied_streams.video and result.copied_streams.audio
        assert result.data == StubEngine.DEFAULT_OUTPUT
        assert result.operation == OperationKind.CONVERT

    def test_output_named_after_operation_and_cleaned_up(
        self, mp4_probe, source_file: Path
    ) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        context = _context(OperationKind.CONVERT)
        ConvertExecutor(manager).execute(handle, {"target_container": "webm"}, context)
        assert engine.executed[0][-1] == f"{context.operation_id}.webm"
        assert engine.outputs == {}

    def test_progress_reaches_completion(self, mp4_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        context = _context(OperationKind.CONVERT)
        ConvertExecutor(manager).execute(handle, {"target_container": "webm"}, context)
        assert context.last_sample.fraction == 1.0

    def test_validation_error_never_reaches_engine(
        self, mp4_probe, source_file: Path
    ) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        with pytest.raises(ValidationError):
            ConvertExecutor(manager).execute(
                handle, {"target_container": "mp4", "fps": 60}, _context(OperationKind.CONVERT)
            )
        assert engine.executed == []

    def test_silent_engine_is_flagged_slow(self, probe_factory, source_file: Path) -> None:
        now = [0.0]
        slow: list = []

        def stall(args, token) -> None:
            now[0] += 30.0

        engine = StubEngine(
            probe=probe_factory(duration=None), progress_steps=(), on_execute=stall
        )
        manager = SessionManager(lambda: engine)
        handle = manager.mount(source_file)
        token = CancellationToken()
        monitor = ProgressMonitor(
            slow_threshold=10.0, on_slow=slow.append, clock=lambda: now[0]
        )
        context = OperationContext(
            kind=OperationKind.COMPRESS,
            token=token,
            monitor=monitor,
            operation_id=token.operation_id,
        )

        CompressExecutor(manager).execute(handle, {}, context)

        assert len(slow) == 1
        assert slow[0].slow is True
        assert slow[0].fraction == 0.0

    def test_downscale_larger_than_source(self, probe_factory, source_file: Path) -> None:
        engine, manager, handle = _mounted(
            probe_factory(width=1280, height=720), source_file
        )
        with pytest.raises(ValidationError) as exc_info:
            ConvertExecutor(manager).execute(
                handle,
                {"target_container": "mp4", "downscale": {"resolution": "1080p"}},
                _context(OperationKind.CONVERT),
            )
        assert exc_info.value.field == "downscale"
        assert engine.executed == []

    def test_downscale_without_video(self, audio_only_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(audio_only_probe, source_file)
        with pytest.raises(ValidationError):
            ConvertExecutor(manager).execute(
                handle,
                {"target_container": "mp4", "downscale": {"width": 640}},
                _context(OperationKind.CONVERT),
            )

    def test_source_without_streams(self, probe_factory, source_file: Path) -> None:
        engine, manager, handle = _mounted(
            probe_factory(video_codec=None, audio_codec=None), source_file
        )
        with pytest.raises(ValidationError, match="no audio or video"):
            ConvertExecutor(manager).execute(
                handle, {"target_container": "mp4"}, _context(OperationKind.CONVERT)
            )

    def test_incompatible_codec_request_is_repaired(
        self, mp4_probe, source_file: Path, caplog
    ) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        ConvertExecutor(manager).execute(
            handle,
            {"target_container": "webm", "video_codec": "h264"},
            _context(OperationKind.CONVERT),
        )
        assert "libvpx-vp9" in engine.executed[0]
        assert "not valid in webm" in caplog.text


class TestCompressExecutor:
    """Tests for CompressExecutor."""

    def test_keeps_container(self, mkv_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(mkv_probe, source_file)
        result = CompressExecutor(manager).execute(
            handle, {"quality": 30}, _context(OperationKind.COMPRESS)
        ).result
        assert result.filename == "clip_compressed.mkv"
        assert not result.copied_streams.video
        assert not result.copied_streams.audio
        cmd = engine.executed[0]
        assert cmd[cmd.index("-crf") + 1] == "30"

    def test_unknown_container(self, probe_factory, source_file: Path) -> None:
        engine, manager, handle = _mounted(probe_factory(container=None), source_file)
        with pytest.raises(ValidationError):
            CompressExecutor(manager).execute(handle, {}, _context(OperationKind.COMPRESS))
        assert engine.executed == []


class TestTrimExecutor:
    """Tests for TrimExecutor."""

    def test_original_keeps_source_extension(self, mp4_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        result = TrimExecutor(manager).execute(
            handle, {"start": "00:00:05", "end": "00:00:10"}, _context(OperationKind.TRIM)
        ).result
        assert result.filename == "clip_trimmed.mp4"
        assert result.mime_type == "video/mp4"

    def test_gif(self, mp4_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        result = TrimExecutor(manager).execute(
            handle,
            {"start": 0, "end": 3, "export_format": "gif"},
            _context(OperationKind.TRIM),
        ).result
        assert result.filename == "clip_trimmed.gif"
        assert result.mime_type == "image/gif"

    def test_webp_requires_video(self, audio_only_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(audio_only_probe, source_file)
        with pytest.raises(ValidationError) as exc_info:
            TrimExecutor(manager).execute(
                handle,
                {"start": 0, "end": 3, "export_format": "webp"},
                _context(OperationKind.TRIM),
            )
        assert exc_info.value.field == "export_format"

    def test_start_beyond_duration(self, mp4_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        with pytest.raises(ValidationError) as exc_info:
            TrimExecutor(manager).execute(
                handle, {"start": 61, "end": 70}, _context(OperationKind.TRIM)
            )
        assert exc_info.value.field == "start"
        assert engine.executed == []


class TestExtractAudioExecutor:
    """Tests for ExtractAudioExecutor."""

    def test_copy_when_codec_matches(self, mp4_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(mp4_probe, source_file)
        result = ExtractAudioExecutor(manager).execute(
            handle, {"audio_format": "aac"}, _context(OperationKind.EXTRACT_AUDIO)
        ).result
        assert result.filename == "clip.aac"
        assert result.mime_type == "audio/aac"
        assert result.copied_streams.audio

    def test_no_audio(self, video_only_probe, source_file: Path) -> None:
        engine, manager, handle = _mounted(video_only_probe, source_file)
        with pytest.raises(ValidationError, match="no audio"):
            ExtractAudioExecutor(manager).execute(
                handle, {}, _context(OperationKind.EXTRACT_AUDIO)
            )
