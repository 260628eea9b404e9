"""CLI module for the video transcode orchestrator."""

import logging
import sys
from pathlib import Path

import click

from vto.cli.exit_codes import ExitCode
from vto.config.loader import ConfigError, get_config
from vto.logging.config import configure_logging

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="video-transcode-orchestrator")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Config file (default: ~/.vto/config.toml or $VTO_CONFIG_PATH).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Video Transcode Orchestrator - convert, compress, trim and extract audio."""
    ctx.ensure_object(dict)

    # Preserve a config injected by tests
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = get_config(
                config_path=config_path,
                logging_level=log_level,
                logging_file=log_file,
                logging_format="json" if log_json else None,
                strict=config_path is not None,
            )
        except ConfigError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(ExitCode.CONFIG_ERROR)

    configure_logging(ctx.obj["config"].logging)
    logger.debug("Running %s", ctx.invoked_subcommand)


# Defer import to avoid circular dependency
def _register_commands():
    from vto.cli.probe import probe_command
    from vto.cli.transcode import (
        compress_command,
        convert_command,
        extract_audio_command,
        run_command,
        trim_command,
    )

    main.add_command(probe_command)
    main.add_command(convert_command)
    main.add_command(compress_command)
    main.add_command(trim_command)
    main.add_command(extract_audio_command)
    main.add_command(run_command)


_register_commands()
