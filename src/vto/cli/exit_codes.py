"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (options, config)
    20-29: Source file errors
    30-39: Tool/dependency errors
    40-49: Operation errors
"""

from enum import IntEnum

from vto.exceptions import (
    EngineFault,
    MountError,
    OperationCanceled,
    SessionBusyError,
    TranscodeError,
    TranscodeIOError,
    ValidationError,
)


class ExitCode(IntEnum):
    """Exit codes for vto CLI commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2

    # Validation errors (10-19)
    VALIDATION_ERROR = 10
    CONFIG_ERROR = 11

    # Source file errors (20-29)
    TARGET_NOT_FOUND = 20
    MOUNT_FAILED = 21

    # Tool/dependency errors (30-39)
    TOOL_NOT_AVAILABLE = 30

    # Operation errors (40-49)
    OPERATION_FAILED = 40
    ENGINE_FAULT = 41
    CANCELED = 42
    SESSION_BUSY = 43


_ERROR_EXIT_CODES: tuple[tuple[type[TranscodeError], ExitCode], ...] = (
    (ValidationError, ExitCode.VALIDATION_ERROR),
    (MountError, ExitCode.MOUNT_FAILED),
    (EngineFault, ExitCode.ENGINE_FAULT),
    (OperationCanceled, ExitCode.CANCELED),
    (SessionBusyError, ExitCode.SESSION_BUSY),
    (TranscodeIOError, ExitCode.OPERATION_FAILED),
)


def exit_code_for(error: TranscodeError) -> ExitCode:
    """Map an orchestrator error to its CLI exit code."""
    for error_type, code in _ERROR_EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return ExitCode.OPERATION_FAILED
