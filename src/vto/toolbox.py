"""Public surface of the transcode orchestrator.

TranscodeToolbox wires the session manager, executors, progress monitor and
cancellation controller together and exposes one method per operation:

    with TranscodeToolbox.from_config(get_config()) as toolbox:
        handle = toolbox.mount("clip.mp4")
        result = toolbox.convert(handle, {"target_container": "webm"})
        Path(result.filename).write_bytes(result.data)

Only one operation runs at a time; a second call while one is executing
raises SessionBusyError instead of queuing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from vto.config.models import VTOConfig
from vto.domain.enums import OperationKind, SessionState
from vto.domain.models import OperationResult, StreamProbe
from vto.engine.ffmpeg import FFmpegEngine
from vto.engine.interface import EngineFactory
from vto.exceptions import SessionBusyError, SessionNotFoundError, ValidationError
from vto.logging.context import operation_context
from vto.operations.cancellation import CancellationController
from vto.operations.context import OperationContext
from vto.operations.executors import EXECUTOR_TYPES, OperationExecutor, OperationOutcome
from vto.operations.progress import ProgressCallback, ProgressMonitor, SlowCallback
from vto.session.manager import SessionHandle, SessionManager

logger = logging.getLogger(__name__)

Options = Mapping[str, Any] | BaseModel


def ffmpeg_engine_factory(config: VTOConfig) -> EngineFactory:
    """Build an engine factory from configuration."""

    def factory() -> FFmpegEngine:
        return FFmpegEngine(
            ffmpeg_path=config.get_tool_path("ffmpeg"),
            ffprobe_path=config.get_tool_path("ffprobe"),
            workspace_parent=config.workspace_directory,
            poll_interval=config.progress.poll_interval_seconds,
        )

    return factory


class TranscodeToolbox:
    """Mount a source file and run convert/compress/trim/extract-audio on it."""

    def __init__(
        self,
        engine_factory: EngineFactory,
        config: VTOConfig | None = None,
    ) -> None:
        """Initialize the toolbox.

        Args:
            engine_factory: Builds the engine (FFmpegEngine in production,
                StubEngine in tests).
            config: Orchestrator configuration; defaults apply if None.
        """
        self.config = config or VTOConfig()
        self.sessions = SessionManager(engine_factory)
        self.cancellation = CancellationController()
        self._executors: dict[OperationKind, OperationExecutor] = {
            kind: executor_type(
                self.sessions,
                limits=self.config.limits,
                encoding=self.config.encoding,
                animation=self.config.animation,
            )
            for kind, executor_type in EXECUTOR_TYPES.items()
        }
        self._busy = threading.Lock()
        self._last_context: OperationContext | None = None

    @classmethod
    def from_config(cls, config: VTOConfig) -> TranscodeToolbox:
        """Create a toolbox backed by FFmpeg."""
        return cls(ffmpeg_engine_factory(config), config=config)

    def __enter__(self) -> TranscodeToolbox:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def state(self) -> SessionState:
        return self.sessions.state

    @property
    def last_context(self) -> OperationContext | None:
        """Context of the most recently finished or failed operation."""
        return self._last_context

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    def mount(self, path: Path | str) -> SessionHandle:
        return self.sessions.mount(path)

    def unmount(self, handle: SessionHandle | None = None) -> None:
        self.sessions.unmount(handle)

    def probe(self, handle: SessionHandle) -> StreamProbe:
        return self.sessions.get_probe(handle)

    def close(self) -> None:
        """Cancel anything running, unmount and shut down the engine."""
        self.cancellation.cancel()
        with self._busy:
            self.sessions.close()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def convert(
        self,
        handle: SessionHandle,
        options: Options,
        progress_callback: ProgressCallback | None = None,
        slow_callback: SlowCallback | None = None,
    ) -> OperationResult:
        """Convert to another container and/or codecs."""
        return self._run(
            OperationKind.CONVERT, handle, options, progress_callback, slow_callback
        )

    def compress(
        self,
        handle: SessionHandle,
        options: Options,
        progress_callback: ProgressCallback | None = None,
        slow_callback: SlowCallback | None = None,
    ) -> OperationResult:
        """Re-encode at a quality level in the source container."""
        return self._run(
            OperationKind.COMPRESS, handle, options, progress_callback, slow_callback
        )

    def trim(
        self,
        handle: SessionHandle,
        options: Options,
        progress_callback: ProgressCallback | None = None,
        slow_callback: SlowCallback | None = None,
    ) -> OperationResult:
        """Cut a time range as original format, GIF or WebP."""
        return self._run(
            OperationKind.TRIM, handle, options, progress_callback, slow_callback
        )

    def extract_audio(
        self,
        handle: SessionHandle,
        options: Options,
        progress_callback: ProgressCallback | None = None,
        slow_callback: SlowCallback | None = None,
    ) -> OperationResult:
        """Export the primary audio track."""
        return self._run(
            OperationKind.EXTRACT_AUDIO, handle, options, progress_callback, slow_callback
        )

    def run_request(
        self,
        handle: SessionHandle,
        request: Mapping[str, Any],
        progress_callback: ProgressCallback | None = None,
        slow_callback: SlowCallback | None = None,
    ) -> OperationResult:
        """Dispatch a tagged request mapping ({"operation": ..., ...})."""
        data = dict(request)
        operation = data.get("operation")
        try:
            kind = OperationKind(operation)
        except ValueError:
            raise ValidationError(
                f"Unknown operation '{operation}'. "
                f"Must be one of: {', '.join(k.value for k in OperationKind)}",
                field="operation",
            ) from None
        return self._run(kind, handle, data, progress_callback, slow_callback)

    def cancel_current_operation(self, handle: SessionHandle | None = None) -> bool:
        """Request cancellation of the running operation.

        Returns:
            True if an operation was signalled; False if nothing was running
            (including cancel after completion).

        Raises:
            SessionNotFoundError: If handle does not refer to the live session.
        """
        if handle is not None:
            session = self.sessions.current_session
            if session is None or session.session_id != handle.session_id:
                raise SessionNotFoundError(handle.session_id)
        return self.cancellation.cancel()

    def _run(
        self,
        kind: OperationKind,
        handle: SessionHandle,
        options: Options,
        progress_callback: ProgressCallback | None,
        slow_callback: SlowCallback | None,
    ) -> OperationResult:
        if not self._busy.acquire(blocking=False):
            raise SessionBusyError("An operation is already running")
        try:
            token = self.cancellation.begin()
            monitor = ProgressMonitor(
                slow_threshold=self.config.progress.slow_threshold_seconds,
                on_progress=progress_callback,
                on_slow=slow_callback,
            )
            context = OperationContext(
                kind=kind, token=token, monitor=monitor, operation_id=token.operation_id
            )
            self._last_context = context
            try:
                with operation_context(handle.session_id, context.operation_id):
                    outcome: OperationOutcome = self._executors[kind].execute(
                        handle, options, context
                    )
            finally:
                self.cancellation.finish(token)
            return outcome.result
        finally:
            self._busy.release()
