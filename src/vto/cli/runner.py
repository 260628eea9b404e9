"""Shared mount-run-write flow for the operation commands."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path

import click

from vto.cli.exit_codes import ExitCode, exit_code_for
from vto.cli.output import ProgressPrinter, run_interruptible, write_result
from vto.config.models import VTOConfig
from vto.engine.formatters import format_size
from vto.exceptions import TranscodeError, TranscodeIOError
from vto.session.manager import SessionHandle
from vto.toolbox import Options, TranscodeToolbox

logger = logging.getLogger(__name__)

OptionsBuilder = Callable[[TranscodeToolbox, SessionHandle], Options]


def create_toolbox(config: VTOConfig) -> TranscodeToolbox:
    """Create the FFmpeg-backed toolbox. Patched in tests."""
    return TranscodeToolbox.from_config(config)


def check_source(source: Path) -> None:
    if not source.is_file():
        click.echo(f"Error: File not found: {source}", err=True)
        sys.exit(ExitCode.TARGET_NOT_FOUND)


def fail(error: TranscodeError) -> None:
    """Report an orchestrator error and exit with its mapped code."""
    click.echo(f"Error: {error}", err=True)
    field = getattr(error, "field", None)
    if field:
        click.echo(f"Field: {field}", err=True)
    sys.exit(exit_code_for(error))


def run_operation(
    config: VTOConfig,
    source: Path,
    operation: str,
    build_options: OptionsBuilder,
    output: Path | None,
    quiet: bool = False,
) -> None:
    """Mount source, run one operation, and write its result.

    Args:
        config: Effective configuration.
        source: Source media file.
        operation: Toolbox method name (convert, compress, trim, extract_audio,
            run_request).
        build_options: Produces the options once the file is mounted, so
            options may depend on the probe (e.g. trim --last).
        output: Output file or directory; defaults to the source directory.
        quiet: Suppress progress output.
    """
    check_source(source)
    printer = ProgressPrinter(enabled=not quiet)

    try:
        with create_toolbox(config) as toolbox:
            handle = toolbox.mount(source)
            options = build_options(toolbox, handle)
            method = getattr(toolbox, operation)
            try:
                result = run_interruptible(
                    lambda: method(
                        handle,
                        options,
                        progress_callback=printer,
                        slow_callback=printer.slow,
                    ),
                    on_interrupt=toolbox.cancel_current_operation,
                )
            finally:
                printer.finish()
    except TranscodeError as e:
        fail(e)
        return

    try:
        target = write_result(result, output, source.parent)
    except TranscodeIOError as e:
        fail(e)
        return

    copied = []
    if result.copied_streams.video:
        copied.append("video")
    if result.copied_streams.audio:
        copied.append("audio")
    suffix = f" (stream copy: {', '.join(copied)})" if copied else ""
    click.echo(f"Wrote {target} [{format_size(result.size_bytes)}]{suffix}")
    logger.info("Wrote %s (%d bytes)", target, result.size_bytes)
