"""Progress monitoring for the running operation.

The engine reports raw fractional progress that may be sparse or regress.
ProgressMonitor turns it into ProgressSample values that callers can rely on:
fractions stay in [0, 1] and never go backwards within one operation.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from vto.domain.models import ProgressSample

logger = logging.getLogger(__name__)

DEFAULT_SLOW_THRESHOLD_SECONDS = 120.0

ProgressCallback = Callable[[ProgressSample], None]
SlowCallback = Callable[[ProgressSample], None]


class ProgressMonitor:
    """Derives monotonic progress, ETA and a slow-operation advisory.

    Call start() at the beginning of each operation; all derived state is
    reset so nothing leaks from a previous operation or session.

    Example:
        monitor = ProgressMonitor(slow_threshold=60.0)
        monitor.start()
        sample = monitor.update(0.25)
    """

    def __init__(
        self,
        slow_threshold: float = DEFAULT_SLOW_THRESHOLD_SECONDS,
        on_progress: ProgressCallback | None = None,
        on_slow: SlowCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the monitor.

        Args:
            slow_threshold: Elapsed seconds after which an unfinished
                operation is flagged slow.
            on_progress: Called with every derived sample.
            on_slow: Called once per operation when it is first flagged slow.
            clock: Monotonic time source (injectable for tests).
        """
        self._slow_threshold = slow_threshold
        self._on_progress = on_progress
        self._on_slow = on_slow
        self._clock = clock
        self._lock = threading.Lock()
        self._started_at: float | None = None
        self._fraction = 0.0
        self._slow = False
        self._slow_notified = False
        self._finished = False
        self._last: ProgressSample | None = None

    @property
    def fraction(self) -> float:
        return self._fraction

    @property
    def is_slow(self) -> bool:
        return self._slow

    @property
    def last_sample(self) -> ProgressSample | None:
        return self._last

    def reset(self) -> None:
        """Clear all derived state."""
        with self._lock:
            self._started_at = None
            self._fraction = 0.0
            self._slow = False
            self._slow_notified = False
            self._finished = False
            self._last = None

    def start(self) -> None:
        """Reset and record the start of a new operation."""
        self.reset()
        with self._lock:
            self._started_at = self._clock()

    def update(self, raw_fraction: float) -> ProgressSample:
        """Record a raw engine progress event.

        Args:
            raw_fraction: Engine-reported fraction; may be out of range or
                lower than a previous report.

        Returns:
            The derived sample.
        """
        with self._lock:
            if self._started_at is None:
                self._started_at = self._clock()
            clamped = min(max(float(raw_fraction), 0.0), 1.0)
            self._fraction = max(self._fraction, clamped)
            sample, notify_slow = self._sample()
        self._emit(sample, notify_slow)
        return sample

    def tick(self) -> ProgressSample:
        """Re-evaluate elapsed time without a new fraction."""
        with self._lock:
            if self._started_at is None:
                self._started_at = self._clock()
            sample, notify_slow = self._sample()
        self._emit(sample, notify_slow)
        return sample

    def complete(self) -> ProgressSample:
        """Mark the operation finished at 100%."""
        with self._lock:
            if self._started_at is None:
                self._started_at = self._clock()
            self._fraction = 1.0
            self._finished = True
            sample, _ = self._sample()
        self._emit(sample, False)
        return sample

    def _sample(self) -> tuple[ProgressSample, bool]:
        # Caller holds the lock.
        assert self._started_at is not None
        elapsed = max(self._clock() - self._started_at, 0.0)
        fraction = self._fraction
        remaining = None
        if fraction > 0:
            remaining = elapsed * (1 - fraction) / fraction

        notify_slow = False
        if (
            not self._slow
            and not self._finished
            and fraction < 1.0
            and elapsed > self._slow_threshold
        ):
            self._slow = True
            if not self._slow_notified:
                self._slow_notified = True
                notify_slow = True

        sample = ProgressSample(
            fraction=fraction,
            elapsed_seconds=elapsed,
            remaining_seconds=remaining,
            slow=self._slow,
        )
        self._last = sample
        return sample, notify_slow

    def _emit(self, sample: ProgressSample, notify_slow: bool) -> None:
        if notify_slow:
            logger.info(
                "Operation is taking longer than %.0fs (%.1f%% done)",
                self._slow_threshold,
                sample.percent,
            )
            if self._on_slow is not None:
                try:
                    self._on_slow(sample)
                except Exception as e:
                    logger.warning("Slow-operation callback error: %s", e)
        if self._on_progress is not None:
            try:
                self._on_progress(sample)
            except Exception as e:
                logger.warning("Progress callback error: %s", e)
