"""Command-line interface for clipshare."""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

import click

from clipshare.config import ClipshareConfig, get_config
from clipshare.logging import configure_logging

logger = logging.getLogger(__name__)


def load_cli_config(
    config_path: Path | None,
    data_dir: Path | None,
    log_level: str | None,
    log_json: bool,
) -> ClipshareConfig:
    """Build configuration with CLI flags layered over env and file.

    Raises:
        click.ClickException: The configuration is invalid.
    """
    env = dict(os.environ)
    if data_dir is not None:
        env["CLIPSHARE_DATA_DIR"] = str(data_dir)
    try:
        config = get_config(config_path=config_path, env=env)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    overrides: dict[str, str] = {}
    if log_level:
        overrides["level"] = log_level.lower()
    if log_json:
        overrides["format"] = "json"
    if overrides:
        config.logging = dataclasses.replace(config.logging, **overrides)
    return config


@click.group()
@click.version_option(package_name="clipshare")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: {data_dir}/config.toml).",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Data root holding processed-files/, temp/, db/ and logs/.",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
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
    data_dir: Path | None,
    log_level: str | None,
    log_json: bool,
) -> None:
    """Clipshare - derive clips, previews and control packages from video."""
    ctx.ensure_object(dict)
    # Tests may inject a ready-made config
    if "config" not in ctx.obj:
        ctx.obj["config"] = load_cli_config(config_path, data_dir, log_level, log_json)
    config: ClipshareConfig = ctx.obj["config"]
    configure_logging(config.logging)
    logger.debug("Using data directory %s", config.data_dir)


def _register_commands() -> None:
    from clipshare.cli.jobs import export_command, process_command
    from clipshare.cli.seed import range_group, resource_group
    from clipshare.cli.serve import serve_command
    from clipshare.cli.status import recover_command, status_command

    main.add_command(serve_command)
    main.add_command(recover_command)
    main.add_command(status_command)
    main.add_command(process_command)
    main.add_command(export_command)
    main.add_command(resource_group)
    main.add_command(range_group)


_register_commands()
