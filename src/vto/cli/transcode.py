"""CLI operation commands: convert, compress, trim, extract-audio, run."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import click
import yaml

from vto.cli import runner
from vto.cli.exit_codes import ExitCode
from vto.core.codecs import AUDIO_OUTPUT_FORMATS, COMPATIBILITY_MATRIX
from vto.domain.enums import Preset, TrimFormat
from vto.exceptions import ValidationError
from vto.operations.requests import TrimRequest
from vto.session.manager import SessionHandle
from vto.toolbox import TranscodeToolbox

_PRESETS = [p.value for p in Preset]

output_option = click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file or directory (default: next to the source).",
)
quiet_option = click.option(
    "--quiet", "-q", is_flag=True, help="Suppress progress output."
)


def _fixed(options: dict[str, Any]):
    """Options builder that ignores the mounted session."""

    def build(toolbox: TranscodeToolbox, handle: SessionHandle) -> dict[str, Any]:
        return options

    return build


@click.command("convert")
@click.argument("source", type=click.Path(path_type=Path))
@click.option(
    "--to",
    "target_container",
    required=True,
    type=click.Choice(sorted(COMPATIBILITY_MATRIX), case_sensitive=False),
    help="Target container.",
)
@click.option("--video-codec", default=None, help="Requested video codec.")
@click.option("--audio-codec", default=None, help="Requested audio codec.")
@click.option("--preset", type=click.Choice(_PRESETS), default=None)
@click.option("--resolution", default=None, help="Downscale to e.g. 720p or 1280x720.")
@click.option("--width", type=int, default=None, help="Downscale target width.")
@click.option("--height", type=int, default=None, help="Downscale target height.")
@click.option(
    "--keep-aspect/--no-keep-aspect",
    default=True,
    help="Derive the missing dimension from the source aspect ratio.",
)
@output_option
@quiet_option
@click.pass_context
def convert_command(
    ctx: click.Context,
    source: Path,
    target_container: str,
    video_codec: str | None,
    audio_codec: str | None,
    preset: str | None,
    resolution: str | None,
    width: int | None,
    height: int | None,
    keep_aspect: bool,
    output: Path | None,
    quiet: bool,
) -> None:
    """Convert SOURCE to another container, copying compatible streams."""
    options: dict[str, Any] = {"target_container": target_container}
    if video_codec:
        options["video_codec"] = video_codec
    if audio_codec:
        options["audio_codec"] = audio_codec
    if preset:
        options["preset"] = preset
    if resolution or width or height:
        downscale: dict[str, Any] = {"maintain_aspect_ratio": keep_aspect}
        if resolution:
            downscale["resolution"] = resolution
        if width:
            downscale["width"] = width
        if height:
            downscale["height"] = height
        options["downscale"] = downscale

    runner.run_operation(
        ctx.obj["config"], source, "convert", _fixed(options), output, quiet
    )


@click.command("compress")
@click.argument("source", type=click.Path(path_type=Path))
@click.option(
    "--quality",
    type=click.IntRange(0, 51),
    default=None,
    help="CRF quality, lower is better (default: 23).",
)
@click.option("--preset", type=click.Choice(_PRESETS), default=None)
@output_option
@quiet_option
@click.pass_context
def compress_command(
    ctx: click.Context,
    source: Path,
    quality: int | None,
    preset: str | None,
    output: Path | None,
    quiet: bool,
) -> None:
    """Re-encode SOURCE at a quality level, keeping its container."""
    options: dict[str, Any] = {}
    if quality is not None:
        options["quality"] = quality
    if preset:
        options["preset"] = preset
    runner.run_operation(
        ctx.obj["config"], source, "compress", _fixed(options), output, quiet
    )


@click.command("trim")
@click.argument("source", type=click.Path(path_type=Path))
@click.option("--start", default=None, help="Start time (HH:MM:SS.fff or seconds).")
@click.option("--end", default=None, help="End time (HH:MM:SS.fff or seconds).")
@click.option("--first", type=float, default=None, help="Keep the first N seconds.")
@click.option("--last", type=float, default=None, help="Keep the last N seconds.")
@click.option(
    "--format",
    "export_format",
    type=click.Choice([f.value for f in TrimFormat]),
    default=TrimFormat.ORIGINAL.value,
    help="Export format (default: original).",
)
@click.option("--loop/--no-loop", default=True, help="Loop GIF/WebP output.")
@output_option
@quiet_option
@click.pass_context
def trim_command(
    ctx: click.Context,
    source: Path,
    start: str | None,
    end: str | None,
    first: float | None,
    last: float | None,
    export_format: str,
    loop: bool,
    output: Path | None,
    quiet: bool,
) -> None:
    """Cut a time range from SOURCE.

    Give either --start/--end, or one of --first/--last.
    """
    quick = first is not None or last is not None
    if quick and (start is not None or end is not None):
        raise click.UsageError("--first/--last cannot be combined with --start/--end")
    if not quick and (start is None or end is None):
        raise click.UsageError("Both --start and --end are required")
    if first is not None and last is not None:
        raise click.UsageError("Use only one of --first or --last")

    extra = {"export_format": export_format, "loop": loop}

    def build(toolbox: TranscodeToolbox, handle: SessionHandle) -> Any:
        if not quick:
            return {"start": start, "end": end, **extra}
        duration = toolbox.probe(handle).duration_seconds
        if duration is None:
            raise ValidationError("Source duration is unknown", field="end")
        try:
            if first is not None:
                return TrimRequest.first_seconds(duration, first, **extra)
            return TrimRequest.last_seconds(duration, last, **extra)
        except ValueError as e:
            raise ValidationError(str(e), field="end") from e

    runner.run_operation(ctx.obj["config"], source, "trim", build, output, quiet)


@click.command("extract-audio")
@click.argument("source", type=click.Path(path_type=Path))
@click.option(
    "--format",
    "audio_format",
    type=click.Choice(sorted(AUDIO_OUTPUT_FORMATS)),
    default="mp3",
    help="Audio output format (default: mp3).",
)
@output_option
@quiet_option
@click.pass_context
def extract_audio_command(
    ctx: click.Context,
    source: Path,
    audio_format: str,
    output: Path | None,
    quiet: bool,
) -> None:
    """Export the primary audio track of SOURCE."""
    runner.run_operation(
        ctx.obj["config"],
        source,
        "extract_audio",
        _fixed({"audio_format": audio_format}),
        output,
        quiet,
    )


@click.command("run")
@click.argument("source", type=click.Path(path_type=Path))
@click.option(
    "--request",
    "request_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file with an 'operation' key and its options.",
)
@output_option
@quiet_option
@click.pass_context
def run_command(
    ctx: click.Context,
    source: Path,
    request_path: Path,
    output: Path | None,
    quiet: bool,
) -> None:
    """Run the operation described in a YAML request file on SOURCE.

    \b
    Example request:
        operation: trim
        start: "00:00:05"
        end: "00:00:10"
        export_format: gif
    """
    try:
        with request_path.open(encoding="utf-8") as f:
            request = yaml.safe_load(f)
    except yaml.YAMLError as e:
        click.echo(f"Error: Invalid YAML in {request_path}: {e}", err=True)
        sys.exit(ExitCode.VALIDATION_ERROR)

    if not isinstance(request, dict):
        click.echo(
            f"Error: {request_path} must contain a mapping of options", err=True
        )
        sys.exit(ExitCode.VALIDATION_ERROR)

    runner.run_operation(
        ctx.obj["config"], source, "run_request", _fixed(request), output, quiet
    )
