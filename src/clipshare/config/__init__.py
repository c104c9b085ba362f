"""Configuration management for clipshare.

Precedence: CLI flags > CLIPSHARE_* environment > config.toml > defaults.
"""

from clipshare.config.env import EnvReader
from clipshare.config.loader import (
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
)
from clipshare.config.models import (
    ClipshareConfig,
    ExecutorConfig,
    ExportConfig,
    LoggingConfig,
    MediaServerConfig,
    PipelineConfig,
    RegenerationConfig,
    ServerConfig,
    ToolPathsConfig,
)

__all__ = [
    "ClipshareConfig",
    "EnvReader",
    "ExecutorConfig",
    "ExportConfig",
    "LoggingConfig",
    "MediaServerConfig",
    "PipelineConfig",
    "RegenerationConfig",
    "ServerConfig",
    "ToolPathsConfig",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "load_config_file",
]
