"""Terminal output helpers shared by the operation commands."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import click

from vto.core.timecode import format_eta
from vto.domain.models import OperationResult, ProgressSample
from vto.exceptions import TranscodeIOError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProgressPrinter:
    """Render progress samples as a single updating line on stderr."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._drawn = False

    def __call__(self, sample: ProgressSample) -> None:
        if not self.enabled:
            return
        click.echo(
            f"\r{sample.percent:5.1f}%  elapsed {format_eta(sample.elapsed_seconds)}"
            f"  eta {format_eta(sample.remaining_seconds)}   ",
            err=True,
            nl=False,
        )
        self._drawn = True

    def slow(self, sample: ProgressSample) -> None:
        if not self.enabled:
            return
        self.finish()
        click.echo(
            f"Still working after {format_eta(sample.elapsed_seconds)}; "
            "large files can take a while.",
            err=True,
        )

    def finish(self) -> None:
        if self._drawn:
            click.echo("", err=True)
            self._drawn = False


def run_interruptible(fn: Callable[[], T], on_interrupt: Callable[[], object]) -> T:
    """Run fn in a worker thread; Ctrl+C calls on_interrupt instead of aborting.

    The worker's exception (including OperationCanceled after an interrupt)
    is re-raised in the calling thread.
    """
    outcome: dict[str, object] = {}

    def target() -> None:
        try:
            outcome["result"] = fn()
        except BaseException as e:  # re-raised below in the caller's thread
            outcome["error"] = e

    worker = threading.Thread(target=target, name="vto-operation", daemon=True)
    worker.start()
    while worker.is_alive():
        try:
            worker.join(timeout=0.2)
        except KeyboardInterrupt:
            click.echo("\nCanceling...", err=True)
            logger.info("Interrupt received, canceling current operation")
            on_interrupt()

    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["result"]  # type: ignore[return-value]


def write_result(
    result: OperationResult, output: Path | None, default_dir: Path
) -> Path:
    """Write an operation's bytes to output, or next to the source file.

    A directory output receives the result's suggested filename.

    Raises:
        TranscodeIOError: If the file cannot be written.
    """
    if output is None:
        target = default_dir / result.filename
    elif output.is_dir():
        target = output / result.filename
    else:
        target = output
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(result.data)
    except OSError as e:
        raise TranscodeIOError(f"Cannot write {target}: {e}", name=str(target)) from e
    return target

