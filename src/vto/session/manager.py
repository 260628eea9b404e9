"""Session manager: owns the engine and the single mounted source.

The manager serializes access to the engine. Executors run their work through
with_engine(), which drives the state machine and performs crash recovery:
on EngineFault the engine is rebuilt and the source remounted before the
original fault propagates. The failed work is never re-run.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

from vto.domain.enums import SessionState
from vto.domain.models import StreamProbe
from vto.engine.interface import EngineFactory, TranscodeEngine
from vto.exceptions import (
    EngineFault,
    MountError,
    SessionBusyError,
    SessionNotFoundError,
    TranscodeError,
)
from vto.session.state import check_transition

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SessionHandle:
    """Opaque reference to a mounted session, given to callers."""

    session_id: str
    source_name: str = ""


@dataclass
class MediaSession:
    """The mounted source and its cached probe.

    Owned by SessionManager; executors receive it read-only inside
    with_engine().
    """

    session_id: str
    source_path: Path
    input_ref: str
    probe: StreamProbe | None = None
    mounted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def source_name(self) -> str:
        return self.source_path.name


class SessionManager:
    """Owns the engine instance and the lifecycle of the media session."""

    def __init__(self, engine_factory: EngineFactory) -> None:
        """Initialize the manager.

        Args:
            engine_factory: Builds a fresh engine, lazily on first mount and
                again during crash recovery.
        """
        self._engine_factory = engine_factory
        self._engine: TranscodeEngine | None = None
        self._session: MediaSession | None = None
        self._state = SessionState.UNMOUNTED
        self._lock = threading.RLock()

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def current_session(self) -> MediaSession | None:
        with self._lock:
            return self._session

    def _transition(self, target: SessionState) -> None:
        # Caller holds the lock.
        check_transition(self._state, target)
        logger.debug("Session state %s -> %s", self._state.value, target.value)
        self._state = target

    def _ensure_engine(self) -> TranscodeEngine:
        if self._engine is None:
            self._engine = self._engine_factory()
        return self._engine

    def _require_session(self, handle: SessionHandle) -> MediaSession:
        session = self._session
        if session is None or session.session_id != handle.session_id:
            raise SessionNotFoundError(handle.session_id)
        return session

    def _clear_failed(self) -> None:
        # Caller holds the lock.
        if self._state == SessionState.FAILED:
            self._transition(SessionState.UNMOUNTING)
            self._transition(SessionState.UNMOUNTED)

    def mount(self, path: Path | str) -> SessionHandle:
        """Mount a source file and open a session.

        Raises:
            MountError: If a session is already mounted, the file is missing,
                or the engine refuses the mount.
        """
        source = Path(path).expanduser()
        with self._lock:
            self._clear_failed()
            if self._state != SessionState.UNMOUNTED:
                raise MountError(
                    f"A session is already mounted ({self._state.value}); "
                    "unmount it first",
                    path=str(source),
                )
            if not source.is_file():
                raise MountError(f"Source file not found: {source}", path=str(source))

            self._transition(SessionState.MOUNTING)
            try:
                engine = self._ensure_engine()
                ref = engine.mount(source)
            except MountError:
                self._transition(SessionState.UNMOUNTED)
                raise
            except (EngineFault, OSError) as e:
                self._transition(SessionState.UNMOUNTED)
                raise MountError(f"Cannot mount {source}: {e}", path=str(source)) from e

            session = MediaSession(
                session_id=uuid.uuid4().hex,
                source_path=source,
                input_ref=ref,
            )
            self._session = session
            self._transition(SessionState.MOUNTED)

        logger.info("Mounted %s (session %s)", source.name, session.session_id)
        return SessionHandle(session_id=session.session_id, source_name=source.name)

    def unmount(self, handle: SessionHandle | None = None) -> None:
        """Release the session. Idempotent.

        Raises:
            SessionBusyError: If an operation is executing.
        """
        with self._lock:
            if self._state in (SessionState.EXECUTING, SessionState.RECOVERING):
                raise SessionBusyError("Cannot unmount while an operation is running")
            if self._state == SessionState.FAILED:
                self._clear_failed()
                return
            session = self._session
            if self._state != SessionState.MOUNTED or session is None:
                return
            if handle is not None and handle.session_id != session.session_id:
                logger.debug("Ignoring unmount for stale session %s", handle.session_id)
                return

            self._transition(SessionState.UNMOUNTING)
            try:
                if self._engine is not None:
                    self._engine.unmount(session.input_ref)
            finally:
                self._session = None
                self._transition(SessionState.UNMOUNTED)
        logger.info("Unmounted session %s", session.session_id)

    def get_probe(self, handle: SessionHandle) -> StreamProbe:
        """Return the session's probe, probing on first access."""
        with self._lock:
            session = self._require_session(handle)
            if session.probe is not None:
                return session.probe
            engine = self._ensure_engine()
            probe = engine.probe(session.input_ref)
            session.probe = probe
        logger.debug(
            "Probed %s: container=%s video=%s audio=%s",
            session.source_name,
            probe.container,
            probe.video_codec,
            probe.audio_codec,
        )
        return probe

    def with_engine(
        self,
        handle: SessionHandle,
        fn: Callable[[TranscodeEngine, MediaSession], T],
    ) -> T:
        """Run fn with exclusive use of the engine.

        On EngineFault the engine is restarted and the source remounted
        before the original fault is re-raised. Any other error, including
        OperationCanceled, returns the session to MOUNTED.

        Raises:
            SessionBusyError: If another operation holds the engine.
            SessionNotFoundError: If the handle is stale.
        """
        with self._lock:
            session = self._require_session(handle)
            if self._state != SessionState.MOUNTED:
                raise SessionBusyError(
                    f"Session is {self._state.value}; operations are not queued"
                )
            self._transition(SessionState.EXECUTING)
            engine = self._ensure_engine()

        try:
            result = fn(engine, session)
        except EngineFault as fault:
            logger.error("Engine fault during operation: %s", fault)
            self._recover(session, engine, fault)
            raise
        except BaseException:
            with self._lock:
                self._transition(SessionState.MOUNTED)
            raise

        with self._lock:
            self._transition(SessionState.MOUNTED)
        return result

    def _recover(
        self, session: MediaSession, engine: TranscodeEngine, fault: EngineFault
    ) -> None:
        with self._lock:
            self._transition(SessionState.RECOVERING)
            logger.warning("Restarting engine and remounting %s", session.source_name)
            try:
                engine.terminate()
            except (TranscodeError, OSError) as e:
                logger.warning("Error terminating faulted engine: %s", e)
            self._engine = None

            new_engine: TranscodeEngine | None = None
            try:
                new_engine = self._engine_factory()
                ref = new_engine.mount(session.source_path)
            except (TranscodeError, OSError) as e:
                logger.error("Recovery failed, session discarded: %s", e)
                if new_engine is not None:
                    try:
                        new_engine.terminate()
                    except (TranscodeError, OSError) as term_error:
                        logger.debug("Error terminating new engine: %s", term_error)
                self._session = None
                fault.recovered = False
                self._transition(SessionState.FAILED)
                return

            self._engine = new_engine
            session.input_ref = ref
            session.probe = None
            fault.recovered = True
            self._transition(SessionState.MOUNTED)
            logger.info("Engine recovered; session %s remounted", session.session_id)

    def close(self) -> None:
        """Unmount and shut the engine down."""
        self.unmount()
        with self._lock:
            engine, self._engine = self._engine, None
        if engine is not None:
            engine.terminate()
