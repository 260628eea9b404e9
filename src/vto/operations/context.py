"""Per-operation context passed into and returned from executors."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from vto.domain.enums import OperationKind
from vto.domain.models import ProgressSample
from vto.operations.cancellation import CancellationToken
from vto.operations.progress import ProgressMonitor


@dataclass
class OperationContext:
    """Mutable state scoped to exactly one operation.

    Created fresh by the toolbox for each call. Nothing here outlives the
    operation.
    """

    kind: OperationKind
    token: CancellationToken
    monitor: ProgressMonitor
    operation_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def last_sample(self) -> ProgressSample | None:
        return self.monitor.last_sample

    def report(self, raw_fraction: float) -> ProgressSample:
        """Forward a raw engine fraction to the monitor."""
        return self.monitor.update(raw_fraction)

    def tick(self) -> ProgressSample:
        """Re-check elapsed time when the engine has no new fraction."""
        return self.monitor.tick()

    def check_cancelled(self) -> None:
        self.token.raise_if_cancelled()
