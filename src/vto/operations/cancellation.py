"""Cooperative cancellation for the running operation.

One CancellationToken is created per operation. The engine polls it while
the job runs and raises OperationCanceled when it is set.
"""

from __future__ import annotations

import logging
import threading
import uuid

from vto.exceptions import OperationCanceled

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancellation flag for a single operation."""

    def __init__(self, operation_id: str | None = None) -> None:
        self.operation_id = operation_id or uuid.uuid4().hex
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout; returns True if cancelled."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        """Raise OperationCanceled if cancellation was requested."""
        if self._event.is_set():
            raise OperationCanceled(self.operation_id)


class CancellationController:
    """Hands out per-operation tokens and routes cancel requests to them.

    cancel() after the operation has finished is a no-op.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: CancellationToken | None = None

    @property
    def current(self) -> CancellationToken | None:
        with self._lock:
            return self._current

    def begin(self, operation_id: str | None = None) -> CancellationToken:
        """Create the token for a new operation."""
        token = CancellationToken(operation_id)
        with self._lock:
            self._current = token
        return token

    def cancel(self) -> bool:
        """Request cancellation of the live operation.

        Returns:
            True if a running operation was signalled, False if none was running.
        """
        with self._lock:
            token = self._current
        if token is None:
            logger.debug("Cancel requested with no running operation")
            return False
        logger.info("Cancel requested for operation %s", token.operation_id)
        token.cancel()
        return True

    def finish(self, token: CancellationToken) -> None:
        """Detach a finished operation's token."""
        with self._lock:
            if self._current is token:
                self._current = None
