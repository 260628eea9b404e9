"""Operation context for structured logging.

Uses contextvars to inject session_id and operation_id into every log record
emitted while an operation runs.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id", default=None
)
_operation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation_id", default=None
)


def get_operation_context() -> tuple[str | None, str | None]:
    """Get current (session_id, operation_id), either may be None."""
    return _session_id.get(), _operation_id.get()


@contextmanager
def operation_context(
    session_id: str, operation_id: str | None = None
) -> Generator[None, None, None]:
    """Set logging context for the duration of an operation.

    Example:
        with operation_context(handle.session_id, ctx.operation_id):
            logger.info("Converting")  # record carries both ids
    """
    session_token = _session_id.set(session_id)
    operation_token = _operation_id.set(operation_id)
    try:
        yield
    finally:
        _operation_id.reset(operation_token)
        _session_id.reset(session_token)


class OperationContextFilter(logging.Filter):
    """Logging filter that injects operation context into log records.

    Adds session_id and operation_id attributes and, for text format, a
    compact op_tag such as "[3f2a9c1d] ".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        session_id, operation_id = get_operation_context()
        record.session_id = session_id
        record.operation_id = operation_id
        record.op_tag = f"[{operation_id[:8]}] " if operation_id else ""
        return True
