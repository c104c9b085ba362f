"""Export package builder.

An export_package Job stages every artifact under
``{temp}/obs-package-{resource}-{timestamp}/`` in the final archive
layout, zips it into ``{processed}/{resource}/obs-package-{timestamp}.zip``
and removes the staging directory:

    clips/                        one file per range, at the chosen quality
    web-interface/                index.html, style.css, script.js
    web-interface/thumbnails/     {range_id}.jpg
    obs/                          setup_obs.py/.sh/.bat, config.json
    metadata/                     clips.json, hotkeys.json, resource-info.json
    README.md

Progress follows fixed stage bands: 10 start, 20 loaded, 30 structure,
60 clips, 70 thumbnails, 80 hotkeys, 90 web interface, 100 archived.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import uuid
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from clipshare.config.models import ClipshareConfig
from clipshare.core.datetime_utils import compact_timestamp, utc_now_iso
from clipshare.core.timing import range_window
from clipshare.db import (
    Job,
    JobKind,
    ProcessingStatus,
    Range,
    Resource,
    get_resource,
    list_ranges,
)
from clipshare.exceptions import StorageFailure, ValidationFailure
from clipshare.executor import CommandRunner, ProcessFailure, RunOptions
from clipshare.export.hotkeys import build_hotkeys
from clipshare.export.metadata import (
    clips_document,
    collaborators_for,
    hotkeys_document,
    obs_config_document,
    resource_info_document,
    write_json,
)
from clipshare.export.naming import unique_clip_filenames
from clipshare.export.options import ExportOptions
from clipshare.export.rendering import (
    PackageClip,
    render_obs_scripts,
    render_readme,
    render_web_interface,
)
from clipshare.jobs import ClaimTable, JobProgress, JobTracker, ResourceNotFoundError
from clipshare.logging import job_context
from clipshare.pipeline.orchestrator import CANONICAL_NAME
from clipshare.tools import export_clip_args, thumbnail_args

logger = logging.getLogger(__name__)

PACKAGE_DIRS = (
    "clips",
    "metadata",
    "web-interface",
    "web-interface/thumbnails",
    "obs",
)

# Thumbnails are taken this far into each clip (or at its midpoint if shorter)
THUMBNAIL_OFFSET_SECONDS = 1.0


@dataclass
class StagedOutputs:
    """What made it into the staging directory."""

    clips: list[PackageClip]
    clip_failures: list[str]
    thumbnail_failures: list[str]


def thumbnail_time(range_: Range) -> float:
    window = range_window(range_.start_ms, range_.end_ms)
    return window.start + min(THUMBNAIL_OFFSET_SECONDS, window.duration / 2)


def zip_directory(source_dir: Path, archive: Path) -> int:
    """Zip a directory tree with paths relative to it.

    Returns:
        Size of the archive in bytes.
    """
    archive.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(source_dir.rglob("*")):
            if path.is_file():
                zf.write(path, path.relative_to(source_dir).as_posix())
    return archive.stat().st_size


class ExportPackager:
    """Builds export packages under a per-resource single-flight guard.

    Args:
        config: Application configuration.
        tracker: Job state writer.
        runner: Process executor.
        claims: Single-flight table; a private one is created if omitted,
            so exports do not block processing of the same resource.
    """

    def __init__(
        self,
        config: ClipshareConfig,
        tracker: JobTracker,
        runner: CommandRunner,
        claims: ClaimTable | None = None,
    ) -> None:
        self._config = config
        self._tracker = tracker
        self._runner = runner
        self.claims = claims if claims is not None else ClaimTable("export")
        self._tasks: set[asyncio.Task[None]] = set()
        self._job_ids: set[str] = set()

        ex = config.executor
        self._clip_options = RunOptions(
            timeout=ex.export_clip_timeout,
            kill_grace=ex.kill_grace,
            retries=1,
            retry_delay=ex.retry_delay,
            label="export clip",
        )
        self._thumbnail_options = RunOptions(
            timeout=ex.thumbnail_timeout,
            kill_grace=ex.kill_grace,
            retries=1,
            retry_delay=ex.retry_delay,
            label="thumbnail",
        )

    def default_options(self) -> ExportOptions:
        return ExportOptions.from_config(self._config.export)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def start_export(
        self, resource_id: str, options: ExportOptions | None = None
    ) -> str:
        """Create an export_package Job and build it in the background.

        A request for a resource whose package is already being built
        returns the running Job's id.

        Raises:
            ResourceNotFoundError: The resource does not exist.
            ValidationFailure: The resource has not finished processing.
        """
        job_id, job = await self._claim_and_create(resource_id, options)
        if job is not None:
            task = asyncio.create_task(
                self._run_claimed(job, options or self.default_options()),
                name=f"export-{resource_id}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return job_id

    async def export_now(
        self, resource_id: str, options: ExportOptions | None = None
    ) -> Job:
        """Build a package in the foreground and return the final Job."""
        job_id, job = await self._claim_and_create(resource_id, options)
        if job is not None:
            await self._run_claimed(job, options or self.default_options())
        else:
            await self.wait_idle()
        final = await self._tracker.get_job(job_id)
        if final is None:
            raise ValidationFailure(f"Job {job_id} vanished", field="job_id")
        return final

    async def _load_ready_resource(self, resource_id: str) -> Resource:
        resource = await self._tracker.read(get_resource, resource_id)
        if resource is None:
            raise ResourceNotFoundError(resource_id)
        canonical = self._config.processed_dir / resource_id / CANONICAL_NAME
        if (
            resource.processing_status != ProcessingStatus.COMPLETED
            or not canonical.is_file()
        ):
            raise ValidationFailure(
                f"Resource {resource_id} must finish processing before export",
                field="resource_id",
            )
        return resource

    async def _claim_and_create(
        self, resource_id: str, options: ExportOptions | None
    ) -> tuple[str, Job | None]:
        await self._load_ready_resource(resource_id)

        job_id = str(uuid.uuid4())
        self._job_ids.add(job_id)
        if not self.claims.try_claim(resource_id, job_id):
            self._job_ids.discard(job_id)
            owner = self.claims.owner(resource_id)
            if owner is not None and owner not in self._job_ids:
                # Shared guard held by resource processing
                raise ValidationFailure(
                    f"Resource {resource_id} is busy with job {owner}",
                    field="resource_id",
                )
            if owner is None:
                existing = await self._tracker.active_job(
                    resource_id, JobKind.EXPORT_PACKAGE
                )
                if existing is None:
                    raise ValidationFailure(
                        f"Resource {resource_id} is busy", field="resource_id"
                    )
                owner = existing.id
            logger.info(
                "Export of resource %s already running (job %s)", resource_id, owner
            )
            return owner, None

        opts = options or self.default_options()
        try:
            job = await self._tracker.create_job(
                resource_id,
                JobKind.EXPORT_PACKAGE,
                payload=opts.model_dump(by_alias=True),
                job_id=job_id,
            )
        except BaseException:
            self._job_ids.discard(job_id)
            self.claims.release(resource_id)
            raise
        return job.id, job

    async def _run_claimed(self, job: Job, options: ExportOptions) -> None:
        try:
            with job_context(job.id, job.resource_id):
                await self.run_job(job, options)
        finally:
            self._job_ids.discard(job.id)
            self.claims.release(job.resource_id)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel background builds; interrupted Jobs are left for recovery."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Job boundary
    # ------------------------------------------------------------------

    async def run_job(self, job: Job, options: ExportOptions) -> None:
        """Build the package for a claimed Job, recording the outcome."""
        if not await self._tracker.start(job):
            return
        progress = JobProgress(self._tracker, job)
        try:
            payload = await self._build(job, options, progress)
        except asyncio.CancelledError:
            logger.warning("Export job %s interrupted", job.id)
            raise
        except Exception as e:
            logger.exception("Export job %s failed", job.id)
            try:
                await self._tracker.fail(job, e)
            except StorageFailure as store_error:
                logger.error("Could not record failure of job %s: %s", job.id, store_error)
            return
        await self._tracker.complete(job, payload)

    async def _build(
        self, job: Job, options: ExportOptions, progress: JobProgress
    ) -> dict[str, object]:
        await progress.report(10)
        resource = await self._load_ready_resource(job.resource_id)
        ranges = await self._tracker.read(list_ranges, resource.id)
        await progress.report(20)

        timestamp = compact_timestamp()
        staging = self._config.temp_dir / f"obs-package-{resource.id}-{timestamp}"
        archive = (
            self._config.processed_dir / resource.id / f"obs-package-{timestamp}.zip"
        )
        try:
            for name in PACKAGE_DIRS:
                (staging / name).mkdir(parents=True, exist_ok=True)
            await progress.report(30)

            staged = await self._stage(resource, ranges, options, staging, progress)
            size = await asyncio.to_thread(zip_directory, staging, archive)
        finally:
            await asyncio.to_thread(shutil.rmtree, staging, True)

        logger.info(
            "Packaged %d clips for resource %s into %s (%d bytes)",
            len(staged.clips),
            resource.id,
            archive,
            size,
        )
        return {
            **options.model_dump(by_alias=True),
            "zipPath": str(archive),
            "packageSize": size,
            "clipCount": len(staged.clips),
            "clipFailures": staged.clip_failures,
            "thumbnailFailures": staged.thumbnail_failures,
        }

    async def _stage(
        self,
        resource: Resource,
        ranges: Sequence[Range],
        options: ExportOptions,
        staging: Path,
        progress: JobProgress,
    ) -> StagedOutputs:
        canonical = self._config.processed_dir / resource.id / CANONICAL_NAME
        filenames = unique_clip_filenames(resource, ranges, options.naming_convention)
        hotkeys = build_hotkeys(ranges)
        clips = [
            PackageClip(
                range_id=r.id,
                label=hk.label,
                filename=filenames[r.id],
                start_ms=r.start_ms,
                end_ms=r.end_ms,
                creator=r.created_by or "",
                created_at=r.created_at,
                hotkey_binding=hk,
            )
            for r, hk in zip(ranges, hotkeys)
        ]

        clip_failures = []
        for range_, clip in zip(ranges, clips):
            window = range_window(range_.start_ms, range_.end_ms)
            output = staging / "clips" / clip.filename
            try:
                await self._runner.run(
                    "ffmpeg",
                    export_clip_args(canonical, window, output, options.quality),
                    self._clip_options,
                )
            except ProcessFailure as e:
                logger.warning("Export clip for range %s failed: %s", range_.id, e)
                clip_failures.append(range_.id)
        await progress.report(60)

        thumbnail_failures = []
        for range_ in ranges:
            output = staging / "web-interface" / "thumbnails" / f"{range_.id}.jpg"
            try:
                await self._runner.run(
                    "ffmpeg",
                    thumbnail_args(canonical, thumbnail_time(range_), output),
                    self._thumbnail_options,
                )
            except ProcessFailure as e:
                logger.warning("Thumbnail for range %s failed: %s", range_.id, e)
                thumbnail_failures.append(range_.id)
        await progress.report(70)

        write_json(staging / "metadata" / "hotkeys.json", hotkeys_document(clips))
        await progress.report(80)

        for filename, text in render_web_interface(resource, clips, options.theme).items():
            (staging / "web-interface" / filename).write_text(text, encoding="utf-8")
        await progress.report(90)

        export_config = self._config.export
        for filename, text in render_obs_scripts(
            resource,
            clips,
            export_config.websocket_port,
            export_config.websocket_password,
        ).items():
            (staging / "obs" / filename).write_text(text, encoding="utf-8")
        (staging / "obs" / "setup_obs.sh").chmod(0o755)
        write_json(
            staging / "obs" / "config.json",
            obs_config_document(resource, clips, staging.name),
        )

        created_at = utc_now_iso()
        collaborators = collaborators_for(ranges) if options.include_collaborators else []
        write_json(staging / "metadata" / "clips.json", clips_document(clips))
        write_json(
            staging / "metadata" / "resource-info.json",
            resource_info_document(resource, len(clips), collaborators, created_at),
        )
        (staging / "README.md").write_text(
            render_readme(
                resource,
                clips,
                quality=options.quality,
                collaborators=collaborators,
                created_at=created_at,
                websocket_port=export_config.websocket_port,
                websocket_password=export_config.websocket_password,
            ),
            encoding="utf-8",
        )
        return StagedOutputs(clips, clip_failures, thumbnail_failures)
