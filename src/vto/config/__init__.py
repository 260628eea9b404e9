"""Configuration: dataclass models, env reader, layered builder and loader."""

from vto.config.env import EnvReader
from vto.config.loader import (
    ConfigError,
    clear_config_cache,
    get_config,
    get_default_config_path,
    validate_config,
)
from vto.config.models import (
    AnimationConfig,
    EncodingConfig,
    LimitsConfig,
    LoggingConfig,
    ProgressConfig,
    ToolPathsConfig,
    VTOConfig,
)

__all__ = [
    # Loader
    "ConfigError",
    "EnvReader",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "validate_config",
    # Models
    "AnimationConfig",
    "EncodingConfig",
    "LimitsConfig",
    "LoggingConfig",
    "ProgressConfig",
    "ToolPathsConfig",
    "VTOConfig",
]
