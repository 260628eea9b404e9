"""Exception hierarchy for the transcode orchestrator.

Every error raised across the public surface derives from TranscodeError so
callers can catch the whole family. The concrete classes map to the failure
kinds a caller can act on:

- MountError: the source file could not be mounted, or a handle is stale.
- ValidationError: options were rejected before the engine was touched.
- EngineFault: the engine crashed or exited abnormally mid-job.
- OperationCanceled: the caller cancelled the running operation.
- TranscodeIOError: output could not be read back from the engine.
- SessionBusyError: an operation is already running.
"""

from __future__ import annotations


class TranscodeError(Exception):
    """Base class for all orchestrator errors."""


class MountError(TranscodeError):
    """Raised when a source file cannot be mounted into the engine."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class SessionNotFoundError(MountError):
    """Raised when a handle does not refer to the live session."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"No mounted session with id {session_id}")


class ValidationError(TranscodeError):
    """Raised when operation options are invalid or unsupported."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class EngineFault(TranscodeError):
    """Raised when the engine crashes or exits with a failure status."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr_tail: str | None = None,
    ) -> None:
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        # Set by the session manager once recovery has been attempted
        self.recovered: bool | None = None
        super().__init__(message)


class OperationCanceled(TranscodeError):
    """Raised when an operation ends because the caller cancelled it."""

    def __init__(self, operation_id: str | None = None) -> None:
        self.operation_id = operation_id
        message = "Operation canceled"
        if operation_id:
            message = f"Operation {operation_id} canceled"
        super().__init__(message)


class TranscodeIOError(TranscodeError):
    """Raised when output data cannot be read, removed or written."""

    def __init__(self, message: str, name: str | None = None) -> None:
        self.name = name
        super().__init__(message)


class SessionBusyError(TranscodeError):
    """Raised when an operation is requested while another one is running."""


class InvalidStateTransitionError(TranscodeError):
    """Raised when the session state machine is driven along an illegal edge."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid session transition: {current} -> {target}")


class MatrixConfigurationError(TranscodeError):
    """Raised at import time when the compatibility matrix is inconsistent."""
