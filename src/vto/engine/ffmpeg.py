"""FFmpeg subprocess engine.

Each engine instance owns a private workspace directory. Mounting places the
source under ``input/`` (symlink, or a copy where links are unavailable);
jobs run with the workspace as working directory so command arguments use
short relative names.
"""

from __future__ import annotations

import json
import logging
import os
import queue
import shutil
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import tempfile
import threading
from collections import deque
from pathlib import Path, PurePath

from vto.core.subprocess_utils import require_tool, run_command
from vto.domain.models import StreamProbe
from vto.engine.interface import RawProgressCallback, TickCallback
from vto.engine.parsers import fallback_probe, parse_ffprobe_output
from vto.engine.progress import parse_stderr_progress
from vto.exceptions import EngineFault, MountError, OperationCanceled, TranscodeIOError
from vto.operations.cancellation import CancellationToken

logger = logging.getLogger(__name__)

INPUT_DIR = "input"

# Lines of stderr kept for fault reports
STDERR_TAIL_LINES = 20


class FFmpegEngine:
    """Engine that runs ffmpeg/ffprobe as child processes."""

    STDERR_DRAIN_TIMEOUT: float = 5.0
    PROBE_TIMEOUT: int = 60

    def __init__(
        self,
        ffmpeg_path: Path | None = None,
        ffprobe_path: Path | None = None,
        workspace_parent: Path | None = None,
        poll_interval: float = 0.25,
    ) -> None:
        """Initialize the engine.

        Args:
            ffmpeg_path: Explicit ffmpeg path; None looks it up on PATH.
            ffprobe_path: Explicit ffprobe path; None looks it up on PATH.
            workspace_parent: Directory for the workspace; None = system temp.
            poll_interval: Seconds between cancellation checks while a job runs.
        """
        self._configured_ffmpeg = ffmpeg_path
        self._configured_ffprobe = ffprobe_path
        self._workspace_parent = workspace_parent
        self._poll_interval = poll_interval
        self._ffmpeg: Path | None = None
        self._ffprobe: Path | None = None
        self._workspace: Path | None = None
        self._process: subprocess.Popen | None = None
        self._process_lock = threading.Lock()

    @property
    def workspace(self) -> Path:
        """Workspace directory, created on first use."""
        if self._workspace is None:
            parent = self._workspace_parent
            if parent is not None:
                parent.mkdir(parents=True, exist_ok=True)
            self._workspace = Path(tempfile.mkdtemp(prefix="vto-", dir=parent))
            (self._workspace / INPUT_DIR).mkdir()
            logger.debug("Created engine workspace %s", self._workspace)
        return self._workspace

    def _require_tools(self) -> tuple[Path, Path]:
        if self._ffmpeg is None:
            self._ffmpeg = require_tool("ffmpeg", self._configured_ffmpeg)
        if self._ffprobe is None:
            self._ffprobe = require_tool("ffprobe", self._configured_ffprobe)
        return self._ffmpeg, self._ffprobe

    def _resolve(self, name: str) -> Path:
        # Only plain names inside the workspace are accepted.
        pure = PurePath(name)
        if pure.is_absolute() or ".." in pure.parts:
            raise TranscodeIOError(f"Invalid engine path: {name}", name=name)
        return self.workspace / pure

    def mount(self, path: Path) -> str:
        try:
            self._require_tools()
        except FileNotFoundError as e:
            raise MountError(str(e), path=str(path)) from e

        source = Path(path).expanduser()
        if not source.is_file():
            raise MountError(f"Source file not found: {path}", path=str(path))

        ref = f"{INPUT_DIR}/source{source.suffix.lower()}"
        target = self._resolve(ref)
        target.unlink(missing_ok=True)
        try:
            os.symlink(source.resolve(), target)
        except OSError:
            try:
                shutil.copy2(source, target)
            except OSError as e:
                raise MountError(
                    f"Cannot mount {path}: {e}", path=str(path)
                ) from e
        logger.debug("Mounted %s as %s", source, ref)
        return ref

    def unmount(self, ref: str) -> None:
        if self._workspace is None:
            return
        self._resolve(ref).unlink(missing_ok=True)
        logger.debug("Unmounted %s", ref)

    def probe(self, ref: str) -> StreamProbe:
        _, ffprobe = self._require_tools()
        target = self._resolve(ref)
        size = target.stat().st_size if target.exists() else None
        try:
            stdout, stderr, returncode = run_command(
                [
                    ffprobe,
                    "-v",
                    "quiet",
                    "-print_format",
                    "json",
                    "-show_format",
                    "-show_streams",
                    ref,
                ],
                timeout=self.PROBE_TIMEOUT,
                cwd=self.workspace,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            return fallback_probe(ref, size, str(e))

        if returncode != 0:
            return fallback_probe(
                ref, size, stderr.strip() or f"exit status {returncode}"
            )
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            return fallback_probe(ref, size, f"invalid JSON: {e}")
        return parse_ffprobe_output(data, file_name=ref)

    def execute(
        self,
        args: list[str],
        *,
        cancel_token: CancellationToken | None = None,
        progress_callback: RawProgressCallback | None = None,
        duration_seconds: float | None = None,
        tick_callback: TickCallback | None = None,
    ) -> None:
        """Run ffmpeg with threaded stderr reading and cooperative cancel.

        Raises:
            OperationCanceled: If the token is set while the job runs.
            EngineFault: If ffmpeg cannot start or exits non-zero.
        """
        ffmpeg, _ = self._require_tools()
        cmd = [str(ffmpeg), *args]
        logger.debug("Running: %s", " ".join(cmd))

        try:
            process = subprocess.Popen(  # nosec B603
                cmd,
                cwd=self.workspace,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise EngineFault(f"Failed to start ffmpeg: {e}") from e

        with self._process_lock:
            self._process = process

        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        stderr_queue: queue.Queue[str | None] = queue.Queue()
        stop_event = threading.Event()

        def read_stderr() -> None:
            """Read stderr lines and put them in the queue."""
            try:
                assert process.stderr is not None
                for line in process.stderr:
                    if stop_event.is_set():
                        break
                    stderr_queue.put(line)
            except (ValueError, OSError) as e:
                # Pipe closed or process terminated
                logger.debug("Stderr reader stopped: %s", e)
            finally:
                stderr_queue.put(None)

        reader_thread = threading.Thread(target=read_stderr, daemon=True)
        reader_thread.start()

        def tick() -> None:
            if tick_callback is None:
                return
            try:
                tick_callback()
            except Exception as e:
                logger.warning("Tick callback error: %s", e)

        def handle_line(line: str) -> None:
            stderr_tail.append(line.rstrip())
            progress = parse_stderr_progress(line)
            fraction = None
            if progress is not None:
                fraction = progress.get_fraction(duration_seconds)
            if fraction is None or progress_callback is None:
                # Unknown duration or N/A timestamps still advance elapsed time
                tick()
                return
            try:
                progress_callback(fraction)
            except Exception as e:
                logger.warning("Progress callback error: %s", e)

        canceled = False
        try:
            while True:
                if cancel_token is not None and cancel_token.is_cancelled:
                    canceled = True
                    break
                try:
                    line = stderr_queue.get(timeout=self._poll_interval)
                except queue.Empty:
                    if process.poll() is not None and not reader_thread.is_alive():
                        break
                    tick()
                    continue
                if line is None:
                    break
                handle_line(line)
        except BaseException:
            stop_event.set()
            self._kill(process)
            with self._process_lock:
                self._process = None
            raise

        stop_event.set()
        if canceled:
            self._kill(process)
            reader_thread.join(timeout=2.0)
            with self._process_lock:
                self._process = None
            logger.info("ffmpeg job canceled")
            raise OperationCanceled(cancel_token.operation_id if cancel_token else None)

        reader_thread.join(timeout=self.STDERR_DRAIN_TIMEOUT)
        while True:
            try:
                line = stderr_queue.get_nowait()
            except queue.Empty:
                break
            if line is None:
                break
            handle_line(line)

        returncode = process.wait()
        with self._process_lock:
            self._process = None

        if returncode != 0:
            tail = "\n".join(stderr_tail)
            raise EngineFault(
                f"ffmpeg exited with status {returncode}",
                returncode=returncode,
                stderr_tail=tail,
            )

    def _kill(self, process: subprocess.Popen) -> None:
        if process.poll() is None:
            process.kill()
        if process.stderr:
            try:
                process.stderr.close()
            except OSError as e:
                logger.debug("Error closing ffmpeg stderr: %s", e)
        process.wait()

    def read_output(self, name: str) -> bytes:
        path = self._resolve(name)
        try:
            return path.read_bytes()
        except OSError as e:
            raise TranscodeIOError(f"Cannot read output {name}: {e}", name=name) from e

    def remove_output(self, name: str) -> None:
        if self._workspace is None:
            return
        try:
            self._resolve(name).unlink(missing_ok=True)
        except OSError as e:
            raise TranscodeIOError(
                f"Cannot remove output {name}: {e}", name=name
            ) from e

    def terminate(self) -> None:
        with self._process_lock:
            process = self._process
            self._process = None
        if process is not None:
            logger.debug("Killing running ffmpeg process %s", process.pid)
            self._kill(process)
        if self._workspace is not None:
            shutil.rmtree(self._workspace, ignore_errors=True)
            logger.debug("Removed engine workspace %s", self._workspace)
            self._workspace = None
