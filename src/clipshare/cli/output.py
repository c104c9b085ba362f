"""CLI output helpers shared by every command.

Commands accept ``--json`` and print either a human-readable line or a
JSON document; errors go to stderr and exit with an ExitCode.
"""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import click

from clipshare.cli.exit_codes import ExitCode

json_option = click.option(
    "--json",
    "json_output",
    is_flag=True,
    default=False,
    help="Print machine-readable JSON.",
)


def error_exit(message: str, code: ExitCode, json_output: bool = False) -> NoReturn:
    """Print an error and exit with code."""
    if json_output:
        click.echo(
            json.dumps(
                {"status": "failed", "error": {"code": code.name, "message": message}}
            ),
            err=True,
        )
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(int(code))


def emit(data: dict[str, Any], message: str, json_output: bool = False) -> None:
    """Print data as JSON, or message as text."""
    if json_output:
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(message)
