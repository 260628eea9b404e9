"""CLI probe command."""

from __future__ import annotations

from pathlib import Path

import click

from vto.cli import runner
from vto.engine.formatters import format_human, format_json
from vto.exceptions import TranscodeError


@click.command("probe")
@click.argument("source", type=click.Path(path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output JSON.")
@click.pass_context
def probe_command(ctx: click.Context, source: Path, as_json: bool) -> None:
    """Show container, streams and downscale options for SOURCE."""
    runner.check_source(source)
    try:
        with runner.create_toolbox(ctx.obj["config"]) as toolbox:
            handle = toolbox.mount(source)
            probe = toolbox.probe(handle)
    except TranscodeError as e:
        runner.fail(e)
        return

    if as_json:
        click.echo(format_json(probe))
    else:
        click.echo(format_human(probe, name=source.name))
