"""Pipeline orchestrator for resource processing Jobs.

One process_resource Job runs these stages in order:

    acquire    0-10%   local file, media server part, or video-host download
    transcode 10-80%   canonical H.264/AAC MP4 (stderr-driven progress)
    shots       80%    scene detection, boundaries replaced in the store
    frames    80-100%  batched preview extraction plus JSON sidecar
    clips      100%    one clip per existing Range

Any stage error fails the Job with the error message; artifacts from
earlier stages are kept on disk.
"""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from dataclasses import replace
from pathlib import Path

from clipshare.config.models import ClipshareConfig
from clipshare.core.datetime_utils import utc_now_iso
from clipshare.db import (
    Job,
    JobKind,
    Resource,
    get_resource,
    list_ranges,
    replace_shot_boundaries,
    set_range_clip_path,
    set_resource_duration,
)
from clipshare.exceptions import StorageFailure, ValidationFailure
from clipshare.executor import CommandRunner, ProcessFailure, RunOptions
from clipshare.jobs import (
    ClaimTable,
    JobProgress,
    JobTracker,
    ProgressTicker,
    ResourceNotFoundError,
    StageBand,
)
from clipshare.logging import job_context
from clipshare.pipeline.clips import clip_relpath, generate_range_clips
from clipshare.pipeline.frames import FrameSampler
from clipshare.pipeline.shots import ShotDetector
from clipshare.sources import AcquiredSource, SourceAcquirer
from clipshare.tools import (
    StderrProgress,
    parse_probe_duration,
    probe_duration_args,
    transcode_args,
)

logger = logging.getLogger(__name__)

CANONICAL_NAME = "processed.mp4"
FRAMES_DIRNAME = "frames"

ACQUIRE_BAND = StageBand(0, 10)
TRANSCODE_BAND = StageBand(10, 80)
FRAMES_BAND = StageBand(80, 100)


def frames_progress(done: int, total: int) -> float:
    """Whole-percent progress inside the frames band."""
    if total <= 0:
        return FRAMES_BAND.end
    span = FRAMES_BAND.end - FRAMES_BAND.start
    return FRAMES_BAND.start + min(span, math.floor(done / total * span))


class PipelineOrchestrator:
    """Runs process_resource Jobs under a per-resource single-flight guard.

    Args:
        config: Application configuration (paths, timeouts, constants).
        tracker: Job state writer.
        runner: Process executor shared by every stage.
        acquirer: Source acquisition strategy.
        claims: Single-flight table; a private one is created if omitted.
    """

    def __init__(
        self,
        config: ClipshareConfig,
        tracker: JobTracker,
        runner: CommandRunner,
        acquirer: SourceAcquirer,
        claims: ClaimTable | None = None,
    ) -> None:
        self._config = config
        self._tracker = tracker
        self._runner = runner
        self._acquirer = acquirer
        self.claims = claims if claims is not None else ClaimTable("processing")
        self._tasks: set[asyncio.Task[None]] = set()
        self._job_ids: set[str] = set()

        ex = config.executor
        self._transcode_options = RunOptions(
            timeout=ex.transcode_timeout, kill_grace=ex.kill_grace, label="transcode"
        )
        self._probe_options = RunOptions(
            timeout=ex.probe_timeout,
            kill_grace=ex.kill_grace,
            retries=1,
            retry_delay=ex.retry_delay,
            label="duration probe",
        )
        self._clip_options = RunOptions(
            timeout=ex.clip_timeout, kill_grace=ex.kill_grace, label="range clip"
        )
        self.shot_detector = ShotDetector(
            runner,
            threshold=config.pipeline.scene_threshold,
            options=RunOptions(
                timeout=ex.shot_detect_timeout,
                kill_grace=ex.kill_grace,
                label="shot detection",
            ),
        )
        self.frame_sampler = FrameSampler(
            runner,
            batch_size=config.pipeline.frame_batch_size,
            interval=config.pipeline.frame_interval_seconds,
            dedupe=config.pipeline.frame_dedupe_seconds,
            warning_threshold=config.pipeline.frame_warning_threshold,
            options=RunOptions(
                timeout=ex.frame_batch_timeout,
                kill_grace=ex.kill_grace,
                retries=1,
                retry_delay=ex.retry_delay,
                label="frame batch",
            ),
        )

    def resource_dir(self, resource_id: str) -> Path:
        return self._config.processed_dir / resource_id

    def canonical_path(self, resource_id: str) -> Path:
        return self.resource_dir(resource_id) / CANONICAL_NAME

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def start_processing(self, resource_id: str) -> str:
        """Create a processing Job and run it in the background.

        A trigger for a resource that is already being processed is
        dropped: no Job is created and the running Job's id is returned.

        Returns:
            The id of the new (or already running) Job.

        Raises:
            ResourceNotFoundError: The resource does not exist.
        """
        job_id, job = await self._claim_and_create(resource_id)
        if job is not None:
            task = asyncio.create_task(
                self._run_claimed(job), name=f"process-{resource_id}"
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return job_id

    async def process_now(self, resource_id: str) -> Job:
        """Run a processing Job in the foreground and return its final state."""
        job_id, job = await self._claim_and_create(resource_id)
        if job is not None:
            await self._run_claimed(job)
        else:
            await self.wait_idle()
        final = await self._tracker.get_job(job_id)
        if final is None:
            raise ValidationFailure(f"Job {job_id} vanished", field="job_id")
        return final

    async def _claim_and_create(self, resource_id: str) -> tuple[str, Job | None]:
        """Claim the resource and create its Job.

        Returns:
            (job id, new Job), or (holder's job id, None) when the
            resource was already claimed.
        """
        resource = await self._tracker.read(get_resource, resource_id)
        if resource is None:
            raise ResourceNotFoundError(resource_id)

        job_id = str(uuid.uuid4())
        self._job_ids.add(job_id)
        if not self.claims.try_claim(resource_id, job_id):
            self._job_ids.discard(job_id)
            owner = self.claims.owner(resource_id)
            if owner is not None and owner not in self._job_ids:
                # Shared guard held by another component
                raise ValidationFailure(
                    f"Resource {resource_id} is busy with job {owner}",
                    field="resource_id",
                )
            logger.info(
                "Resource %s is already processing (job %s); trigger dropped",
                resource_id,
                owner,
            )
            if owner is None:
                existing = await self._tracker.active_job(
                    resource_id, JobKind.PROCESS_RESOURCE
                )
                if existing is None:
                    raise ValidationFailure(
                        f"Resource {resource_id} is busy", field="resource_id"
                    )
                owner = existing.id
            return owner, None

        try:
            job = await self._tracker.create_job(
                resource_id, JobKind.PROCESS_RESOURCE, job_id=job_id
            )
        except BaseException:
            self._job_ids.discard(job_id)
            self.claims.release(resource_id)
            raise
        return job.id, job

    async def _run_claimed(self, job: Job) -> None:
        try:
            with job_context(job.id, job.resource_id):
                await self.run_job(job)
        finally:
            self._job_ids.discard(job.id)
            self.claims.release(job.resource_id)

    async def wait_idle(self) -> None:
        """Wait for every background processing task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel background tasks; interrupted Jobs are left for recovery."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Job boundary
    # ------------------------------------------------------------------

    async def run_job(self, job: Job) -> None:
        """Run every stage for a claimed Job, recording the outcome.

        Errors are recorded on the Job and never propagate; cancellation
        (daemon shutdown) propagates and leaves the Job processing for the
        startup recovery sweep.
        """
        if not await self._tracker.start(job):
            return
        progress = JobProgress(self._tracker, job)
        try:
            payload = await self._run_stages(job, progress)
        except asyncio.CancelledError:
            logger.warning("Processing job %s interrupted", job.id)
            raise
        except Exception as e:
            logger.exception("Processing job %s failed", job.id)
            await progress.drain()
            try:
                await self._tracker.fail(job, e)
            except StorageFailure as store_error:
                logger.error("Could not record failure of job %s: %s", job.id, store_error)
            return
        await progress.drain()
        await self._tracker.complete(job, payload)

    async def _run_stages(self, job: Job, progress: JobProgress) -> dict[str, object]:
        resource = await self._tracker.read(get_resource, job.resource_id)
        if resource is None:
            raise ResourceNotFoundError(job.resource_id)
        resource_dir = self.resource_dir(resource.id)
        resource_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Acquiring %s source %s", resource.source_kind.value, resource.source_ref)
        source = await self._acquirer.acquire(resource, resource_dir)
        await progress.report(ACQUIRE_BAND.end)

        canonical = self.canonical_path(resource.id)
        duration_hint = resource.duration_seconds or source.duration_seconds
        await self._transcode(source, canonical, duration_hint, progress)
        await progress.report(TRANSCODE_BAND.end)

        resource = await self._ensure_duration(resource, canonical, source.duration_seconds)
        duration = resource.duration_seconds or 0.0

        boundaries = await self.shot_detector.detect(
            resource.id, canonical, duration, resource_dir / "tmp"
        )
        await self._tracker.write(
            "replace shot boundaries", replace_shot_boundaries, resource.id, boundaries
        )

        async def _on_batch(done: int, total: int) -> None:
            await progress.report(frames_progress(done, total))

        frames = await self.frame_sampler.sample(
            canonical,
            resource_dir / FRAMES_DIRNAME,
            boundaries,
            duration,
            on_batch=_on_batch,
        )

        ranges = await self._tracker.read(list_ranges, resource.id)
        clips = await generate_range_clips(
            self._runner, canonical, resource_dir, ranges, self._clip_options
        )
        for range_id in [*clips.created, *clips.skipped]:
            await self._tracker.write(
                "record clip path", set_range_clip_path, range_id, clip_relpath(range_id)
            )

        return {
            "canonicalPath": CANONICAL_NAME,
            "durationSeconds": duration,
            "shotCount": len(boundaries),
            "frameCount": len(frames.frame_times),
            "frameBatches": frames.batch_count,
            "clipsCreated": len(clips.created),
            "clipsSkipped": len(clips.skipped),
            "clipsFailed": len(clips.failed),
        }

    async def _transcode(
        self,
        source: AcquiredSource,
        canonical: Path,
        duration_hint: float | None,
        progress: JobProgress,
    ) -> None:
        parser = StderrProgress(duration_hint)

        def _on_line(line: str) -> None:
            fraction = parser.feed(line)
            if fraction is not None:
                progress.report_nowait(TRANSCODE_BAND.at(fraction))

        options = replace(self._transcode_options, on_stderr_line=_on_line)
        args = transcode_args(source.path, canonical)
        if duration_hint is None:
            # No duration until ffmpeg prints its banner; tick meanwhile
            async with ProgressTicker(
                progress,
                TRANSCODE_BAND,
                self._config.pipeline.ticker_step_percent,
                self._config.pipeline.ticker_interval_seconds,
            ):
                await self._runner.run("ffmpeg", args, options)
        else:
            await self._runner.run("ffmpeg", args, options)
        await progress.drain()
        logger.info("Transcoded %s to %s", source.path, canonical)

        if source.managed:
            try:
                source.path.unlink()
                logger.info("Removed downloaded source %s", source.path)
            except FileNotFoundError:
                pass

    async def _ensure_duration(
        self, resource: Resource, canonical: Path, reported: float | None
    ) -> Resource:
        if resource.duration_seconds:
            return resource
        if reported:
            await self._tracker.write(
                "record duration",
                set_resource_duration,
                resource.id,
                reported,
                utc_now_iso(),
            )
            return replace(resource, duration_seconds=reported)
        try:
            result = await self._runner.run(
                "ffprobe", probe_duration_args(canonical), self._probe_options
            )
        except ProcessFailure as e:
            raise ValidationFailure(
                f"Could not determine duration of {canonical.name}: {e}",
                field="duration",
            ) from e
        duration = parse_probe_duration(result.stdout)
        await self._tracker.write(
            "record duration", set_resource_duration, resource.id, duration, utc_now_iso()
        )
        logger.info("Probed duration %.2fs", duration)
        return replace(resource, duration_seconds=duration)
