"""`resource add` and `range add`: seed the store for local use."""

from __future__ import annotations

import uuid
from pathlib import Path

import click

from clipshare.cli.exit_codes import ExitCode
from clipshare.cli.output import emit, error_exit, json_option
from clipshare.config import ClipshareConfig
from clipshare.core.datetime_utils import utc_now_iso
from clipshare.db import (
    DaemonConnectionPool,
    ProcessingStatus,
    Range,
    Resource,
    SourceKind,
    get_resource,
    insert_range,
    insert_resource,
)
from clipshare.exceptions import ValidationFailure
from clipshare.pipeline import validate_offsets


def _open_pool(config: ClipshareConfig) -> DaemonConnectionPool:
    config.ensure_directories()
    pool = DaemonConnectionPool(config.db_path)
    pool.initialize_schema()
    return pool


@click.group("resource")
def resource_group() -> None:
    """Manage resources."""


@resource_group.command("add")
@click.argument("source_ref")
@click.option("--title", required=True, help="Resource title.")
@click.option("--content-title", default=None, help="Title of the source content.")
@click.option(
    "--kind",
    "source_kind",
    type=click.Choice([k.value for k in SourceKind]),
    default=SourceKind.LOCAL.value,
    show_default=True,
    help="Where SOURCE_REF points.",
)
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Known duration in seconds (probed when omitted).",
)
@json_option
@click.pass_context
def add_resource_command(
    ctx: click.Context,
    source_ref: str,
    title: str,
    content_title: str | None,
    source_kind: str,
    duration: float | None,
    json_output: bool,
) -> None:
    """Register a resource whose media is at SOURCE_REF.

    SOURCE_REF is a file path, a media-server metadata key or a
    video-host URL depending on --kind.
    """
    kind = SourceKind(source_kind)
    if kind == SourceKind.LOCAL:
        source_ref = str(Path(source_ref).expanduser().resolve())
    now = utc_now_iso()
    resource = Resource(
        id=str(uuid.uuid4()),
        title=title,
        content_title=content_title,
        source_kind=kind,
        source_ref=source_ref,
        duration_seconds=duration,
        processing_status=ProcessingStatus.IDLE,
        processing_progress=0.0,
        created_at=now,
        updated_at=now,
    )
    pool = _open_pool(ctx.obj["config"])
    try:
        with pool.transaction() as conn:
            insert_resource(conn, resource)
    finally:
        pool.close()
    emit({"resourceId": resource.id}, resource.id, json_output)


@click.group("range")
def range_group() -> None:
    """Manage ranges."""


@range_group.command("add")
@click.argument("resource_id")
@click.option("--start-ms", type=int, required=True, help="Start offset (ms).")
@click.option("--end-ms", type=int, required=True, help="End offset (ms).")
@click.option("--label", default=None, help="Display label.")
@click.option("--created-by", default=None, help="Creator shown in exports.")
@json_option
@click.pass_context
def add_range_command(
    ctx: click.Context,
    resource_id: str,
    start_ms: int,
    end_ms: int,
    label: str | None,
    created_by: str | None,
    json_output: bool,
) -> None:
    """Add a range to RESOURCE_ID."""
    try:
        validate_offsets(start_ms, end_ms)
    except ValidationFailure as e:
        error_exit(e.message, ExitCode.INVALID_ARGUMENTS, json_output)

    now = utc_now_iso()
    range_ = Range(
        id=str(uuid.uuid4()),
        resource_id=resource_id,
        label=label,
        start_ms=start_ms,
        end_ms=end_ms,
        created_by=created_by,
        clip_path=None,
        created_at=now,
        updated_at=now,
    )
    pool = _open_pool(ctx.obj["config"])
    try:
        with pool.read_connection() as conn:
            exists = get_resource(conn, resource_id) is not None
        if not exists:
            error_exit(f"Resource {resource_id} not found", ExitCode.NOT_FOUND, json_output)
        with pool.transaction() as conn:
            insert_range(conn, range_)
    finally:
        pool.close()
    emit({"rangeId": range_.id}, range_.id, json_output)
