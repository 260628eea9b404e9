"""Transcoding engine protocol.

The engine owns a private workspace ("mounted filesystem"), runs one job at a
time and reports raw fractional progress. Implementations:
- FFmpegEngine: drives ffmpeg/ffprobe subprocesses
- StubEngine: scripted in-memory engine for tests and dry runs
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from vto.domain.models import StreamProbe
from vto.operations.cancellation import CancellationToken

RawProgressCallback = Callable[[float], None]
TickCallback = Callable[[], None]


class TranscodeEngine(Protocol):
    """Protocol for transcoding engines."""

    def mount(self, path: Path) -> str:
        """Make a source file visible to the engine.

        Returns:
            Engine-side input reference used in command arguments.

        Raises:
            MountError: If the engine cannot access the file.
        """
        ...

    def unmount(self, ref: str) -> None:
        """Release a mounted input. Unknown refs are ignored."""
        ...

    def probe(self, ref: str) -> StreamProbe:
        """Introspect a mounted input."""
        ...

    def execute(
        self,
        args: list[str],
        *,
        cancel_token: CancellationToken | None = None,
        progress_callback: RawProgressCallback | None = None,
        duration_seconds: float | None = None,
        tick_callback: TickCallback | None = None,
    ) -> None:
        """Run one job to completion.

        tick_callback is called periodically while the job runs without a
        new fraction, so elapsed-time checks keep running when the engine
        reports nothing.

        Raises:
            OperationCanceled: If the token was cancelled while running.
            EngineFault: If the engine crashed or exited abnormally.
        """
        ...

    def read_output(self, name: str) -> bytes:
        """Read a produced output file.

        Raises:
            TranscodeIOError: If the output is missing or unreadable.
        """
        ...

    def remove_output(self, name: str) -> None:
        """Delete an output file if it exists."""
        ...

    def terminate(self) -> None:
        """Stop any running job and release all engine resources."""
        ...


EngineFactory = Callable[[], TranscodeEngine]
