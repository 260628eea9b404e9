"""Tests for the stub engine."""

from pathlib import Path

import pytest

from vto.engine.stub import StubEngine
from vto.exceptions import EngineFault, MountError, OperationCanceled, TranscodeIOError
from vto.operations.cancellation import CancellationToken


class TestStubEngine:
    """Tests for StubEngine."""

    def test_execute_writes_output_and_reports(self, source_file: Path) -> None:
        engine = StubEngine(progress_steps=(0.5, 1.0))
        ref = engine.mount(source_file)
        seen: list[float] = []

        engine.execute(["-i", ref, "out.mp4"], progress_callback=seen.append)

        assert seen == [0.5, 1.0]
        assert engine.read_output("out.mp4") == StubEngine.DEFAULT_OUTPUT
        engine.remove_output("out.mp4")
        with pytest.raises(TranscodeIOError):
            engine.read_output("out.mp4")

    def test_heartbeats_before_progress(self) -> None:
        engine = StubEngine(progress_steps=(1.0,), heartbeats=2)
        events: list[object] = []

        engine.execute(
            ["out.mp4"],
            progress_callback=events.append,
            tick_callback=lambda: events.append("tick"),
        )

        assert events == ["tick", "tick", 1.0]

    def test_fail_with_is_one_shot(self) -> None:
        engine = StubEngine(fail_with=EngineFault("boom"))
        with pytest.raises(EngineFault):
            engine.execute(["out"])
        engine.execute(["out"])
        assert len(engine.executed) == 2

    def test_cancelled_token(self) -> None:
        engine = StubEngine()
        token = CancellationToken("op")
        token.cancel()
        with pytest.raises(OperationCanceled):
            engine.execute(["out"], cancel_token=token)
        assert "out" not in engine.outputs

    def test_refuse_mount(self, source_file: Path) -> None:
        with pytest.raises(MountError):
            StubEngine(refuse_mount=True).mount(source_file)

    def test_terminated_engine_rejects_work(self, source_file: Path) -> None:
        engine = StubEngine()
        engine.terminate()
        with pytest.raises(MountError):
            engine.mount(source_file)
        with pytest.raises(EngineFault):
            engine.execute(["out"])

    def test_probe_requires_mount(self) -> None:
        with pytest.raises(EngineFault):
            StubEngine().probe("input/source.mp4")
