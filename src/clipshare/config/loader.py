"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (applied by the caller on the returned config)
2. Environment variables (CLIPSHARE_*)
3. Config file ({data_dir}/config.toml or CLIPSHARE_CONFIG_PATH)
4. Default values

Environment variables:
- DATA_DIR / CLIPSHARE_DATA_DIR: Data root (default: current directory)
- CLIPSHARE_CONFIG_PATH: Path to config file
- CLIPSHARE_FFMPEG_PATH, CLIPSHARE_FFPROBE_PATH, CLIPSHARE_YT_DLP_PATH
- CLIPSHARE_MEDIA_SERVER_URL, CLIPSHARE_MEDIA_SERVER_TOKEN
- CLIPSHARE_SERVER_BIND, CLIPSHARE_SERVER_PORT
- CLIPSHARE_DEBOUNCE_SECONDS, CLIPSHARE_FRAME_BATCH_SIZE
- CLIPSHARE_SHARED_RESOURCE_GUARD
- CLIPSHARE_LOG_LEVEL, CLIPSHARE_LOG_FORMAT, CLIPSHARE_LOG_FILE
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

from clipshare.config.env import EnvReader
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

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.toml"

_SECTIONS: dict[str, type] = {
    "tools": ToolPathsConfig,
    "executor": ExecutorConfig,
    "pipeline": PipelineConfig,
    "regeneration": RegenerationConfig,
    "export": ExportConfig,
    "media_server": MediaServerConfig,
    "server": ServerConfig,
    "logging": LoggingConfig,
}

# (section, key) -> (environment variable, reader method)
_ENV_OVERRIDES: dict[tuple[str, str], tuple[str, str]] = {
    ("tools", "ffmpeg"): ("CLIPSHARE_FFMPEG_PATH", "get_str"),
    ("tools", "ffprobe"): ("CLIPSHARE_FFPROBE_PATH", "get_str"),
    ("tools", "yt_dlp"): ("CLIPSHARE_YT_DLP_PATH", "get_str"),
    ("media_server", "url"): ("CLIPSHARE_MEDIA_SERVER_URL", "get_str"),
    ("media_server", "token"): ("CLIPSHARE_MEDIA_SERVER_TOKEN", "get_str"),
    ("server", "bind"): ("CLIPSHARE_SERVER_BIND", "get_str"),
    ("server", "port"): ("CLIPSHARE_SERVER_PORT", "get_int"),
    ("regeneration", "debounce_seconds"): ("CLIPSHARE_DEBOUNCE_SECONDS", "get_float"),
    ("pipeline", "frame_batch_size"): ("CLIPSHARE_FRAME_BATCH_SIZE", "get_int"),
    ("pipeline", "shared_resource_guard"): (
        "CLIPSHARE_SHARED_RESOURCE_GUARD",
        "get_bool",
    ),
    ("logging", "level"): ("CLIPSHARE_LOG_LEVEL", "get_str"),
    ("logging", "format"): ("CLIPSHARE_LOG_FORMAT", "get_str"),
    ("logging", "file"): ("CLIPSHARE_LOG_FILE", "get_path"),
}


def get_data_dir(env: Mapping[str, str] | None = None) -> Path:
    """Get the data root directory.

    DATA_DIR wins over CLIPSHARE_DATA_DIR; both support tilde expansion.
    Defaults to the current working directory.
    """
    reader = EnvReader(env)
    path = reader.get_path("DATA_DIR") or reader.get_path("CLIPSHARE_DATA_DIR")
    return path if path is not None else Path.cwd()


def get_default_config_path(
    data_dir: Path | None = None, env: Mapping[str, str] | None = None
) -> Path:
    """Get the config file path (CLIPSHARE_CONFIG_PATH overrides)."""
    env_path = EnvReader(env).get_path("CLIPSHARE_CONFIG_PATH")
    if env_path is not None:
        return env_path
    return (data_dir or get_data_dir(env)) / CONFIG_FILENAME


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse a TOML config file.

    Returns:
        Parsed mapping, or an empty dict if the file does not exist.

    Raises:
        ValueError: If the file is not valid TOML.
    """
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e


def _known_fields(section: str, values: dict[str, Any]) -> dict[str, Any]:
    cls = _SECTIONS[section]
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - names)
    if unknown:
        logger.warning(
            "Ignoring unknown keys in [%s]: %s", section, ", ".join(unknown)
        )
    return {k: v for k, v in values.items() if k in names}


def get_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ClipshareConfig:
    """Build the effective configuration.

    Args:
        config_path: Explicit config file. Defaults to get_default_config_path().
        env: Environment mapping (os.environ when None).

    Returns:
        Validated ClipshareConfig.

    Raises:
        ValueError: If the file is malformed or a value fails validation.
    """
    data_dir = get_data_dir(env)
    path = config_path or get_default_config_path(data_dir, env)
    file_data = load_config_file(path)
    if file_data:
        logger.debug("Loaded config file %s", path)

    sections: dict[str, dict[str, Any]] = {
        name: dict(file_data.get(name, {})) for name in _SECTIONS
    }

    reader = EnvReader(env)
    for (section, key), (var, method) in _ENV_OVERRIDES.items():
        value = getattr(reader, method)(var)
        if value is not None:
            sections[section][key] = value

    built = {
        name: cls(**_known_fields(name, sections[name]))
        for name, cls in _SECTIONS.items()
    }
    return ClipshareConfig(data_dir=data_dir, **built)
