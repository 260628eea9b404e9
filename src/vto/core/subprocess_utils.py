"""Subprocess utilities for external tool invocation.

Standard wrapper used for short-lived tool calls such as ffprobe and
``ffmpeg -version``. Long-running transcodes go through the engine's own
streaming runner instead.
"""

from __future__ import annotations

import logging
import shutil
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def run_command(
    args: list[str | Path],
    timeout: int = 120,
    errors: str = "replace",
    **kwargs: Any,
) -> tuple[str, str, int]:
    """Run an external command and capture its text output.

    Args:
        args: Command and arguments. Path objects are converted to strings.
        timeout: Timeout in seconds (default 120).
        errors: Error handling mode for text decoding (default "replace").
        **kwargs: Additional subprocess.run arguments.

    Returns:
        Tuple of (stdout, stderr, returncode).

    Raises:
        subprocess.TimeoutExpired: If the command times out. The child has
            already been killed by subprocess.run when this is raised.
    """
    str_args = [str(arg) for arg in args]
    command_name = Path(str_args[0]).name if str_args else "unknown"

    logger.debug(
        "Executing command: %s",
        " ".join(str_args),
        extra={"command": command_name, "arg_count": len(str_args)},
    )
    start_time = time.monotonic()

    try:
        result = subprocess.run(  # nosec B603 - caller validates args
            str_args,
            capture_output=True,
            text=True,
            errors=errors,
            timeout=timeout,
            **kwargs,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "Command timed out after %ds: %s",
            timeout,
            command_name,
            extra={
                "command": command_name,
                "elapsed_seconds": round(time.monotonic() - start_time, 3),
            },
        )
        raise

    logger.debug(
        "Command completed",
        extra={
            "command": command_name,
            "elapsed_seconds": round(time.monotonic() - start_time, 3),
            "returncode": result.returncode,
        },
    )
    return result.stdout or "", result.stderr or "", result.returncode


def require_tool(name: str, configured: Path | None = None) -> Path:
    """Resolve an external tool, preferring a configured path.

    Args:
        name: Executable name looked up on PATH (e.g. "ffmpeg").
        configured: Explicit path from configuration, if any.

    Returns:
        Path to the executable.

    Raises:
        FileNotFoundError: If the tool cannot be found.
    """
    if configured is not None:
        if configured.exists():
            return configured
        raise FileNotFoundError(f"Configured {name} not found: {configured}")
    found = shutil.which(name)
    if found is None:
        raise FileNotFoundError(
            f"Required tool '{name}' not found on PATH. Install FFmpeg "
            f"or set the path in the configuration."
        )
    return Path(found)
