"""Stub engine for testing and dry runs.

Provides a scripted in-memory engine that records every call and never
spawns a process. Probes, progress steps and failures are configured by the
caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from vto.domain.models import StreamProbe
from vto.engine.interface import RawProgressCallback, TickCallback
from vto.exceptions import EngineFault, MountError, OperationCanceled, TranscodeIOError
from vto.operations.cancellation import CancellationToken

logger = logging.getLogger(__name__)

ExecuteHook = Callable[[list[str], CancellationToken | None], None]


class StubEngine:
    """In-memory engine that simulates FFmpeg.

    Example:
        engine = StubEngine(probe=StreamProbe(container="mp4"))
        ref = engine.mount(Path("movie.mp4"))
        engine.execute(["-i", ref, "out.mp4"])
        assert engine.read_output("out.mp4") == StubEngine.DEFAULT_OUTPUT
    """

    DEFAULT_OUTPUT = b"stub-output"

    def __init__(
        self,
        probe: StreamProbe | None = None,
        progress_steps: Sequence[float] = (0.25, 0.5, 0.75, 1.0),
        output_data: bytes = DEFAULT_OUTPUT,
        fail_with: Exception | None = None,
        refuse_mount: bool = False,
        on_execute: ExecuteHook | None = None,
        require_existing_source: bool = True,
        heartbeats: int = 1,
    ) -> None:
        """Initialize the stub engine.

        Args:
            probe: Probe returned for any mounted input.
            progress_steps: Raw fractions reported during each execute().
            output_data: Bytes written to the output name (last argument).
            fail_with: Exception raised by the next execute(), then cleared.
            refuse_mount: If True, mount() raises MountError.
            on_execute: Hook called at the start of execute(); may block or raise.
            require_existing_source: If True, mount() checks the path exists.
            heartbeats: Tick callbacks issued before any progress is reported.
        """
        self.probe_result = probe or StreamProbe(container="mp4")
        self.progress_steps = tuple(progress_steps)
        self.output_data = output_data
        self.fail_with = fail_with
        self.refuse_mount = refuse_mount
        self.on_execute = on_execute
        self.require_existing_source = require_existing_source
        self.heartbeats = heartbeats

        self.mounted: dict[str, Path] = {}
        self.outputs: dict[str, bytes] = {}
        self.executed: list[list[str]] = []
        self.probe_calls = 0
        self.terminated = False

    def mount(self, path: Path) -> str:
        if self.terminated:
            raise MountError("Engine has been terminated", path=str(path))
        if self.refuse_mount:
            raise MountError(f"Engine refused to mount {path}", path=str(path))
        if self.require_existing_source and not Path(path).is_file():
            raise MountError(f"Source file not found: {path}", path=str(path))
        ref = f"input/source{Path(path).suffix.lower()}"
        self.mounted[ref] = Path(path)
        return ref

    def unmount(self, ref: str) -> None:
        self.mounted.pop(ref, None)

    def probe(self, ref: str) -> StreamProbe:
        if ref not in self.mounted:
            raise EngineFault(f"Probe of unmounted input {ref}")
        self.probe_calls += 1
        return self.probe_result

    def execute(
        self,
        args: list[str],
        *,
        cancel_token: CancellationToken | None = None,
        progress_callback: RawProgressCallback | None = None,
        duration_seconds: float | None = None,
        tick_callback: TickCallback | None = None,
    ) -> None:
        if self.terminated:
            raise EngineFault("Engine has been terminated")
        self.executed.append(list(args))

        if self.on_execute is not None:
            self.on_execute(list(args), cancel_token)

        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

        if tick_callback is not None:
            for _ in range(self.heartbeats):
                tick_callback()

        for fraction in self.progress_steps:
            if cancel_token is not None and cancel_token.is_cancelled:
                raise OperationCanceled(cancel_token.operation_id)
            if progress_callback is not None:
                progress_callback(fraction)

        if cancel_token is not None and cancel_token.is_cancelled:
            raise OperationCanceled(cancel_token.operation_id)

        if args:
            self.outputs[args[-1]] = self.output_data

    def read_output(self, name: str) -> bytes:
        try:
            return self.outputs[name]
        except KeyError:
            raise TranscodeIOError(f"Output not found: {name}", name=name) from None

    def remove_output(self, name: str) -> None:
        self.outputs.pop(name, None)

    def terminate(self) -> None:
        self.terminated = True
        self.mounted.clear()
        self.outputs.clear()
