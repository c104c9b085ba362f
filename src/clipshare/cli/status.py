"""`status` and `recover` commands."""

from __future__ import annotations

import asyncio
import logging

import click

from clipshare.cli.exit_codes import ExitCode
from clipshare.cli.jobs import job_summary
from clipshare.cli.output import emit, error_exit, json_option
from clipshare.config import ClipshareConfig
from clipshare.db import DaemonConnectionPool
from clipshare.exceptions import StorageFailure
from clipshare.jobs import JobTracker, RecoverySweep

logger = logging.getLogger(__name__)


def _open_sweep(config: ClipshareConfig) -> tuple[DaemonConnectionPool, RecoverySweep]:
    config.ensure_directories()
    pool = DaemonConnectionPool(config.db_path)
    pool.initialize_schema()
    return pool, RecoverySweep(pool)


@click.command("recover")
@json_option
@click.pass_context
def recover_command(ctx: click.Context, json_output: bool) -> None:
    """Fail Jobs left processing by a previous run.

    The daemon does this at startup; this command runs the same sweep
    without starting it. Running it twice performs no second write.
    """
    pool, sweep = _open_sweep(ctx.obj["config"])
    try:
        stats = sweep.sweep()
    finally:
        pool.close()
    emit(
        stats.to_dict(),
        f"Recovered {stats.recovered_jobs} job(s) and "
        f"{stats.recovered_resources} resource(s)",
        json_output,
    )


@click.command("status")
@click.option("--job", "job_id", default=None, help="Show a single job.")
@json_option
@click.pass_context
def status_command(ctx: click.Context, job_id: str | None, json_output: bool) -> None:
    """Show job and resource counts, or one job with --job."""
    pool, sweep = _open_sweep(ctx.obj["config"])
    try:
        if job_id is not None:
            job = asyncio.run(JobTracker(pool).get_job(job_id))
            if job is None:
                error_exit(f"Job {job_id} not found", ExitCode.NOT_FOUND, json_output)
            data = job_summary(job)
            emit(
                data,
                f"{job.id} {job.kind.value} {job.status.value} "
                f"{job.progress_percent:.1f}%"
                + (f" - {job.error_text}" if job.error_text else ""),
                json_output,
            )
            return
        summary = sweep.status_summary()
    except StorageFailure as e:
        error_exit(str(e), ExitCode.DATABASE_ERROR, json_output)
    finally:
        pool.close()

    lines = [f"Jobs: {summary['jobs']['total']}"]
    for status, count in sorted(summary["jobs"]["by_status"].items()):
        lines.append(f"  {status}: {count}")
    lines.append("Resources:")
    for status, count in sorted(summary["resources"].items()):
        lines.append(f"  {status}: {count}")
    emit(summary, "\n".join(lines), json_output)
