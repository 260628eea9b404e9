"""Tests for FFmpegEngine with subprocess calls mocked out."""

import io
import json
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from vto.engine.ffmpeg import FFmpegEngine
from vto.exceptions import EngineFault, MountError, OperationCanceled, TranscodeIOError
from vto.operations.cancellation import CancellationToken


@pytest.fixture
def engine(tmp_path: Path):
    """Engine with tools resolved to fake paths and a temp workspace."""
    with patch(
        "vto.engine.ffmpeg.require_tool",
        side_effect=lambda name, configured=None: Path(f"/usr/bin/{name}"),
    ):
        eng = FFmpegEngine(workspace_parent=tmp_path / "work", poll_interval=0.01)
        yield eng
        eng.terminate()


def _process(stderr: str, returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.stderr = io.StringIO(stderr)
    process.poll.return_value = returncode
    process.wait.return_value = returncode
    process.pid = 4242
    return process


class TestMount:
    """Tests for mount()/unmount()."""

    def test_mount_links_source_into_workspace(self, engine, source_file: Path) -> None:
        ref = engine.mount(source_file)
        assert ref == "input/source.mp4"
        assert (engine.workspace / ref).read_bytes() == source_file.read_bytes()

        engine.unmount(ref)
        assert not (engine.workspace / ref).exists()

    def test_mount_missing_file(self, engine, tmp_path: Path) -> None:
        with pytest.raises(MountError):
            engine.mount(tmp_path / "nope.mp4")

    def test_mount_without_ffmpeg(self, source_file: Path) -> None:
        with patch(
            "vto.engine.ffmpeg.require_tool",
            side_effect=FileNotFoundError("Required tool 'ffmpeg' not found"),
        ):
            with pytest.raises(MountError, match="ffmpeg"):
                FFmpegEngine().mount(source_file)


class TestProbe:
    """Tests for probe()."""

    def test_parses_ffprobe_json(self, engine, source_file: Path) -> None:
        ref = engine.mount(source_file)
        payload = {
            "format": {"format_name": "mov,mp4,m4a,3gp,3g2,mj2", "duration": "5.0"},
            "streams": [{"index": 0, "codec_type": "video", "codec_name": "h264"}],
        }
        with patch(
            "vto.engine.ffmpeg.run_command", return_value=(json.dumps(payload), "", 0)
        ) as mock_run:
            probe = engine.probe(ref)

        assert probe.container == "mp4"
        assert probe.video_codec == "h264"
        args = mock_run.call_args.args[0]
        assert args[0] == Path("/usr/bin/ffprobe")
        assert args[-1] == ref
        assert mock_run.call_args.kwargs["cwd"] == engine.workspace

    def test_falls_back_on_failure(self, engine, source_file: Path) -> None:
        ref = engine.mount(source_file)
        with patch("vto.engine.ffmpeg.run_command", return_value=("", "bad data", 1)):
            probe = engine.probe(ref)
        assert probe.container == "mp4"
        assert probe.size_bytes == source_file.stat().st_size
        assert "bad data" in probe.warnings[0]

    def test_falls_back_on_invalid_json(self, engine, source_file: Path) -> None:
        ref = engine.mount(source_file)
        with patch("vto.engine.ffmpeg.run_command", return_value=("{not json", "", 0)):
            probe = engine.probe(ref)
        assert not probe.has_video


class TestExecute:
    """Tests for execute()."""

    def test_reports_progress(self, engine) -> None:
        stderr = (
            "Input #0, mov,mp4\n"
            "frame=  100 fps=30 time=00:00:05.00 bitrate=1000k speed=1x\n"
            "frame=  200 fps=30 time=00:00:10.00 bitrate=1000k speed=1x\n"
        )
        seen: list[float] = []
        with patch(
            "vto.engine.ffmpeg.subprocess.Popen", return_value=_process(stderr)
        ) as mock_popen:
            engine.execute(
                ["-i", "input/source.mp4", "out.mkv"],
                progress_callback=seen.append,
                duration_seconds=20.0,
            )

        assert seen == [pytest.approx(0.25), pytest.approx(0.5)]
        cmd = mock_popen.call_args.args[0]
        assert cmd[0] == "/usr/bin/ffmpeg"
        assert cmd[-1] == "out.mkv"
        assert mock_popen.call_args.kwargs["cwd"] == engine.workspace

    def test_ticks_while_ffmpeg_is_silent(self, engine) -> None:
        release = threading.Event()

        def silent_stderr():
            release.wait(timeout=5)
            yield from ()

        process = _process("")
        process.stderr = silent_stderr()
        process.poll.return_value = None
        ticks: list[int] = []

        def on_tick() -> None:
            ticks.append(1)
            if len(ticks) >= 3:
                process.poll.return_value = 0
                release.set()

        with patch("vto.engine.ffmpeg.subprocess.Popen", return_value=process):
            engine.execute(["out.gif"], tick_callback=on_tick)

        assert len(ticks) >= 3

    def test_unknown_time_ticks_instead_of_progress(self, engine) -> None:
        stderr = (
            "frame=    0 fps=0.0 q=0.0 size=N/A time=N/A bitrate=N/A speed=N/A\n"
            "frame=   50 fps=25 time=00:00:02.00 bitrate=1000k speed=1x\n"
        )
        seen: list[float] = []
        ticks: list[int] = []
        with patch("vto.engine.ffmpeg.subprocess.Popen", return_value=_process(stderr)):
            engine.execute(
                ["out.gif"],
                progress_callback=seen.append,
                tick_callback=lambda: ticks.append(1),
                duration_seconds=None,
            )

        assert seen == []
        assert len(ticks) >= 2

    def test_nonzero_exit_is_engine_fault(self, engine) -> None:
        stderr = "Error while decoding stream\nConversion failed!\n"
        with patch(
            "vto.engine.ffmpeg.subprocess.Popen", return_value=_process(stderr, 1)
        ):
            with pytest.raises(EngineFault) as exc_info:
                engine.execute(["out.mp4"])
        assert exc_info.value.returncode == 1
        assert "Conversion failed!" in exc_info.value.stderr_tail

    def test_start_failure_is_engine_fault(self, engine) -> None:
        with patch("vto.engine.ffmpeg.subprocess.Popen", side_effect=OSError("exec")):
            with pytest.raises(EngineFault, match="Failed to start"):
                engine.execute(["out.mp4"])

    def test_cancel_kills_process(self, engine) -> None:
        process = _process("")
        process.poll.return_value = None
        token = CancellationToken("op-9")
        token.cancel()
        with patch("vto.engine.ffmpeg.subprocess.Popen", return_value=process):
            with pytest.raises(OperationCanceled) as exc_info:
                engine.execute(["out.mp4"], cancel_token=token)
        assert exc_info.value.operation_id == "op-9"
        process.kill.assert_called_once()


class TestOutputs:
    """Tests for read_output()/remove_output()/terminate()."""

    def test_read_and_remove(self, engine) -> None:
        (engine.workspace / "op.mp4").write_bytes(b"data")
        assert engine.read_output("op.mp4") == b"data"
        engine.remove_output("op.mp4")
        assert not (engine.workspace / "op.mp4").exists()

    def test_missing_output(self, engine) -> None:
        with pytest.raises(TranscodeIOError):
            engine.read_output("missing.mp4")

    @pytest.mark.parametrize("name", ["../escape.mp4", "/etc/passwd"])
    def test_paths_outside_workspace_rejected(self, engine, name: str) -> None:
        with pytest.raises(TranscodeIOError):
            engine.read_output(name)

    def test_terminate_removes_workspace(self, engine) -> None:
        workspace = engine.workspace
        engine.terminate()
        assert not workspace.exists()
