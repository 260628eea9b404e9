"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables (VTO_*)
3. Config file (~/.vto/config.toml)
4. Default values

Environment variables:
- VTO_CONFIG_PATH: Path to config file (overrides default location)
- VTO_FFMPEG_PATH / VTO_FFPROBE_PATH: Tool executables
- VTO_WORKSPACE_DIR: Parent directory for engine workspaces
- VTO_THREADS / VTO_MAX_MUXING_QUEUE_SIZE: Resource ceilings
- VTO_SLOW_THRESHOLD_SECONDS: Slow-operation advisory threshold
- VTO_LOG_LEVEL / VTO_LOG_FILE / VTO_LOG_FORMAT: Logging
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path

from vto.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from vto.config.env import EnvReader
from vto.config.models import VTOConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".vto"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


class ConfigError(Exception):
    """Raised when a config file cannot be parsed or holds invalid values."""


def get_default_config_path() -> Path:
    """Return the config file path, honoring VTO_CONFIG_PATH."""
    env_path = os.environ.get("VTO_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_toml_file(path: Path, *, strict: bool = False) -> dict:
    """Parse a TOML file.

    Returns an empty dict if the file does not exist, or if it cannot be
    parsed and strict is False.

    Raises:
        ConfigError: When strict=True and the file cannot be read or parsed.
    """
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        if strict:
            raise ConfigError(f"Cannot parse config file {path}: {e}") from e
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load the config file, cached with mtime-based invalidation."""
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        if path in _config_cache:
            cached_config, cached_mtime = _config_cache[path]
            if current_mtime == cached_mtime:
                return cached_config
        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    logging_level: str | None = None,
    logging_file: Path | None = None,
    logging_format: str | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> VTOConfig:
    """Get configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides VTO_CONFIG_PATH).
        ffmpeg_path: CLI override for ffmpeg path.
        ffprobe_path: CLI override for ffprobe path.
        logging_level: CLI override for log level.
        logging_file: CLI override for log file.
        logging_format: CLI override for log format.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigError on parse failures.

    Returns:
        VTOConfig with merged configuration.

    Raises:
        ConfigError: If the file is unparseable (strict) or a merged value
            fails validation.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config))
    builder.apply(source_from_env(reader))
    builder.apply(
        ConfigSource(
            ffmpeg_path=ffmpeg_path,
            ffprobe_path=ffprobe_path,
            logging_level=logging_level,
            logging_file=logging_file,
            logging_format=logging_format,
        )
    )
    try:
        return builder.build()
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def validate_config(config: VTOConfig) -> list[str]:
    """Check cross-field constraints beyond per-section validation.

    Returns:
        List of error strings. Empty list means configuration is valid.
    """
    errors: list[str] = []
    for tool in ("ffmpeg", "ffprobe"):
        path = config.get_tool_path(tool)
        if path is not None and not path.exists():
            errors.append(f"Configured {tool} does not exist: {path}")
    workspace = config.workspace_directory
    if workspace is not None and workspace.exists() and not workspace.is_dir():
        errors.append(f"Workspace directory is not a directory: {workspace}")
    if config.progress.poll_interval_seconds >= config.progress.slow_threshold_seconds:
        errors.append("poll_interval_seconds must be smaller than slow_threshold_seconds")
    return errors
