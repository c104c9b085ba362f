"""Foreground `process` and `export` commands.

Both build a Runtime, run the startup recovery sweep, run one Job to
completion and close the Runtime, so an interrupted earlier run is
recovered before new work starts.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click
import pydantic

from clipshare.cli.exit_codes import ExitCode
from clipshare.cli.output import emit, error_exit, json_option
from clipshare.config import ClipshareConfig
from clipshare.db import Job, JobStatus
from clipshare.exceptions import StorageFailure, ValidationFailure
from clipshare.export import ExportOptions
from clipshare.jobs import ResourceNotFoundError
from clipshare.runtime import Runtime

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_runtime(
    config: ClipshareConfig,
    fn: Callable[[Runtime], Awaitable[T]],
    recover: bool = True,
) -> T:
    """Build a Runtime, optionally sweep, await fn(runtime) and close."""

    async def _main() -> T:
        runtime = Runtime.build(config)
        try:
            if recover:
                await runtime.recover()
            return await fn(runtime)
        finally:
            await runtime.close()

    return asyncio.run(_main())


def job_summary(job: Job) -> dict[str, Any]:
    return {
        "jobId": job.id,
        "kind": job.kind.value,
        "status": job.status.value,
        "progress": job.progress_percent,
        "error": job.error_text,
        "payload": job.payload,
    }


def _finish(job: Job, json_output: bool) -> None:
    data = job_summary(job)
    if job.status != JobStatus.COMPLETED:
        if json_output:
            click.echo(json.dumps(data, indent=2))
        error_exit(
            f"Job {job.id} {job.status.value}: {job.error_text or 'no error recorded'}",
            ExitCode.JOB_FAILED,
            json_output,
        )
    emit(data, f"Job {job.id} completed", json_output)


def _run_job(
    ctx: click.Context,
    json_output: bool,
    fn: Callable[[Runtime], Awaitable[Job]],
) -> Job:
    config: ClipshareConfig = ctx.obj["config"]
    try:
        return run_with_runtime(config, fn)
    except ResourceNotFoundError as e:
        error_exit(str(e), ExitCode.NOT_FOUND, json_output)
    except ValidationFailure as e:
        error_exit(e.message, ExitCode.INVALID_ARGUMENTS, json_output)
    except StorageFailure as e:
        error_exit(str(e), ExitCode.DATABASE_ERROR, json_output)


@click.command("process")
@click.argument("resource_id")
@json_option
@click.pass_context
def process_command(ctx: click.Context, resource_id: str, json_output: bool) -> None:
    """Process RESOURCE_ID in the foreground.

    Acquires the source, transcodes it, detects shots, samples preview
    frames and cuts a clip for each range.
    """
    job = _run_job(
        ctx, json_output, lambda runtime: runtime.orchestrator.process_now(resource_id)
    )
    _finish(job, json_output)


@click.command("export")
@click.argument("resource_id")
@click.option(
    "--quality",
    type=click.Choice(["1080p", "720p", "480p"], case_sensitive=False),
    default=None,
    help="Clip quality (default from config).",
)
@click.option(
    "--theme",
    type=click.Choice(["dark", "light"]),
    default=None,
    help="Control page theme.",
)
@click.option(
    "--naming",
    "naming_convention",
    type=click.Choice(
        ["workspace-content-label", "content-label", "label-only", "workspace-label"]
    ),
    default=None,
    help="Clip filename convention.",
)
@click.option(
    "--no-collaborators",
    is_flag=True,
    default=False,
    help="Leave range creators out of the package metadata.",
)
@json_option
@click.pass_context
def export_command(
    ctx: click.Context,
    resource_id: str,
    quality: str | None,
    theme: str | None,
    naming_convention: str | None,
    no_collaborators: bool,
    json_output: bool,
) -> None:
    """Build an OBS control package for RESOURCE_ID in the foreground."""
    config: ClipshareConfig = ctx.obj["config"]
    try:
        options = ExportOptions.from_config(
            config.export,
            quality=quality,
            theme=theme,
            naming_convention=naming_convention,
            include_collaborators=False if no_collaborators else None,
        )
    except pydantic.ValidationError as e:
        error_exit(str(e), ExitCode.INVALID_ARGUMENTS, json_output)

    job = _run_job(
        ctx,
        json_output,
        lambda runtime: runtime.packager.export_now(resource_id, options),
    )
    _finish(job, json_output)
