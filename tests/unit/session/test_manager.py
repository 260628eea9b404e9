"""Tests for SessionManager lifecycle and crash recovery."""

from pathlib import Path

import pytest

from vto.domain.enums import SessionState
from vto.engine.stub import StubEngine
from vto.exceptions import (
    EngineFault,
    MountError,
    OperationCanceled,
    SessionBusyError,
    SessionNotFoundError,
)
from vto.session.manager import SessionHandle, SessionManager


class EngineSequence:
    """Factory that hands out a new engine per call."""

    def __init__(self, *engines: StubEngine) -> None:
        self.engines = list(engines)
        self.created: list[StubEngine] = []

    def __call__(self) -> StubEngine:
        engine = self.engines.pop(0)
        self.created.append(engine)
        return engine


class TestMount:
    """Tests for mount() and unmount()."""

    def test_mount_and_unmount(self, engine_factory, stub_engine, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        handle = manager.mount(source_file)

        assert manager.state == SessionState.MOUNTED
        assert handle.source_name == "clip.mp4"
        assert manager.current_session.input_ref == "input/source.mp4"
        assert stub_engine.mounted

        manager.unmount(handle)
        assert manager.state == SessionState.UNMOUNTED
        assert manager.current_session is None
        assert not stub_engine.mounted

    def test_unmount_is_idempotent(self, engine_factory, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        manager.unmount()
        handle = manager.mount(source_file)
        manager.unmount(handle)
        manager.unmount(handle)
        assert manager.state == SessionState.UNMOUNTED

    def test_second_mount_rejected(self, engine_factory, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        manager.mount(source_file)
        with pytest.raises(MountError, match="already mounted"):
            manager.mount(source_file)

    def test_missing_file(self, engine_factory, tmp_path: Path) -> None:
        manager = SessionManager(engine_factory)
        with pytest.raises(MountError):
            manager.mount(tmp_path / "missing.mp4")
        assert manager.state == SessionState.UNMOUNTED

    def test_engine_refusal_returns_to_unmounted(self, source_file: Path) -> None:
        manager = SessionManager(lambda: StubEngine(refuse_mount=True))
        with pytest.raises(MountError):
            manager.mount(source_file)
        assert manager.state == SessionState.UNMOUNTED

    def test_remount_after_unmount_gets_new_session(
        self, engine_factory, source_file: Path
    ) -> None:
        manager = SessionManager(engine_factory)
        first = manager.mount(source_file)
        manager.unmount(first)
        second = manager.mount(source_file)
        assert first.session_id != second.session_id

    def test_stale_handle_unmount_is_ignored(self, engine_factory, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        manager.mount(source_file)
        manager.unmount(SessionHandle(session_id="stale"))
        assert manager.state == SessionState.MOUNTED


class TestProbe:
    """Tests for get_probe() caching."""

    def test_probe_is_cached(self, engine_factory, stub_engine, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        handle = manager.mount(source_file)
        first = manager.get_probe(handle)
        second = manager.get_probe(handle)
        assert first is second
        assert stub_engine.probe_calls == 1

    def test_stale_handle(self, engine_factory, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        manager.mount(source_file)
        with pytest.raises(SessionNotFoundError):
            manager.get_probe(SessionHandle(session_id="stale"))


class TestWithEngine:
    """Tests for with_engine() state handling."""

    def test_executing_during_call(self, engine_factory, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        handle = manager.mount(source_file)
        seen = []

        result = manager.with_engine(
            handle, lambda engine, session: seen.append(manager.state) or "done"
        )
        assert result == "done"
        assert seen == [SessionState.EXECUTING]
        assert manager.state == SessionState.MOUNTED

    def test_nested_call_is_busy(self, engine_factory, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        handle = manager.mount(source_file)

        def nested(engine, session):
            manager.with_engine(handle, lambda e, s: None)

        with pytest.raises(SessionBusyError):
            manager.with_engine(handle, nested)
        assert manager.state == SessionState.MOUNTED

    def test_unmount_while_executing_is_busy(self, engine_factory, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        handle = manager.mount(source_file)

        def unmount(engine, session):
            manager.unmount(handle)

        with pytest.raises(SessionBusyError):
            manager.with_engine(handle, unmount)

    def test_cancel_returns_to_mounted_without_restart(self, source_file: Path) -> None:
        factory = EngineSequence(StubEngine(), StubEngine())
        manager = SessionManager(factory)
        handle = manager.mount(source_file)

        def cancel(engine, session):
            raise OperationCanceled("op")

        with pytest.raises(OperationCanceled):
            manager.with_engine(handle, cancel)
        assert manager.state == SessionState.MOUNTED
        assert len(factory.created) == 1


class TestRecovery:
    """Tests for crash recovery on EngineFault."""

    def test_fault_restarts_and_remounts(self, source_file: Path) -> None:
        first, second = StubEngine(), StubEngine()
        factory = EngineSequence(first, second)
        manager = SessionManager(factory)
        handle = manager.mount(source_file)
        manager.get_probe(handle)

        def crash(engine, session):
            raise EngineFault("segfault", returncode=-11)

        with pytest.raises(EngineFault) as exc_info:
            manager.with_engine(handle, crash)

        assert exc_info.value.recovered is True
        assert manager.state == SessionState.MOUNTED
        assert first.terminated
        assert second.mounted
        # Same handle keeps working against the new engine
        manager.get_probe(handle)
        assert second.probe_calls == 1
        assert manager.with_engine(handle, lambda e, s: e) is second

    def test_failed_remount_discards_session(self, source_file: Path) -> None:
        factory = EngineSequence(StubEngine(), StubEngine(refuse_mount=True))
        manager = SessionManager(factory)
        handle = manager.mount(source_file)

        def crash(engine, session):
            raise EngineFault("crash")

        with pytest.raises(EngineFault) as exc_info:
            manager.with_engine(handle, crash)

        assert exc_info.value.recovered is False
        assert manager.state == SessionState.FAILED
        assert manager.current_session is None
        with pytest.raises(SessionNotFoundError):
            manager.get_probe(handle)

    def test_mount_after_failure(self, source_file: Path) -> None:
        factory = EngineSequence(
            StubEngine(), StubEngine(refuse_mount=True), StubEngine()
        )
        manager = SessionManager(factory)
        handle = manager.mount(source_file)
        def crash(engine, session):
            raise EngineFault("crash")

        with pytest.raises(EngineFault):
            manager.with_engine(handle, crash)
        assert manager.state == SessionState.FAILED

        new_handle = manager.mount(source_file)
        assert manager.state == SessionState.MOUNTED
        assert new_handle.session_id != handle.session_id

    def test_close_terminates_engine(self, engine_factory, stub_engine, source_file: Path) -> None:
        manager = SessionManager(engine_factory)
        manager.mount(source_file)
        manager.close()
        assert stub_engine.terminated
        assert manager.state == SessionState.UNMOUNTED
