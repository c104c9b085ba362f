"""Explicit construction of the daemon's collaborators.

Runtime wires the connection pool, process executor, job tracker,
orchestrator, regeneration scheduler, export packager and recovery sweep
from one ClipshareConfig. The CLI and the HTTP app both build a Runtime;
nothing in the package holds module-level state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from clipshare.config.models import ClipshareConfig
from clipshare.db import DaemonConnectionPool
from clipshare.executor import CommandRunner, ProcessExecutor, RunOptions
from clipshare.export import ExportPackager
from clipshare.jobs import ClaimTable, JobTracker, RecoveryStats, RecoverySweep
from clipshare.pipeline import PipelineOrchestrator, RegenerationScheduler
from clipshare.sources import SourceAcquirer, VideoHostFetcher

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Every long-lived component of a running service."""

    config: ClipshareConfig
    pool: DaemonConnectionPool
    executor: CommandRunner
    tracker: JobTracker
    orchestrator: PipelineOrchestrator
    scheduler: RegenerationScheduler
    packager: ExportPackager
    recovery: RecoverySweep
    recovered: RecoveryStats | None = None

    @classmethod
    def build(
        cls,
        config: ClipshareConfig,
        runner: CommandRunner | None = None,
        media_server_transport: httpx.AsyncBaseTransport | None = None,
    ) -> Runtime:
        """Create the directory layout, open the store and wire components.

        Args:
            config: Effective configuration.
            runner: Process executor override (tests pass a fake).
            media_server_transport: httpx transport override for the media
                server client.
        """
        config.ensure_directories()
        pool = DaemonConnectionPool(config.db_path)
        pool.initialize_schema()

        ex = config.executor
        executor = runner or ProcessExecutor(config.tools.as_mapping(), ex.kill_grace)
        tracker = JobTracker(pool)
        video_host = VideoHostFetcher(
            executor,
            timeout=ex.download_timeout,
            retries=2,
            retry_delay=ex.retry_delay,
        )
        acquirer = SourceAcquirer(config.media_server, video_host, media_server_transport)

        shared = ClaimTable("resource") if config.pipeline.shared_resource_guard else None
        orchestrator = PipelineOrchestrator(config, tracker, executor, acquirer, shared)
        scheduler = RegenerationScheduler(
            tracker,
            executor,
            config.processed_dir,
            debounce_seconds=config.regeneration.debounce_seconds,
            options=RunOptions(
                timeout=ex.clip_timeout, kill_grace=ex.kill_grace, label="range trim"
            ),
        )
        packager = ExportPackager(config, tracker, executor, shared)
        logger.debug(
            "Runtime built for %s (shared resource guard: %s)",
            config.data_dir,
            shared is not None,
        )
        return cls(
            config=config,
            pool=pool,
            executor=executor,
            tracker=tracker,
            orchestrator=orchestrator,
            scheduler=scheduler,
            packager=packager,
            recovery=RecoverySweep(pool),
        )

    async def recover(self) -> RecoveryStats:
        """Run the startup recovery sweep.

        Must complete before any trigger is accepted: no Job can still be
        running in a fresh process, so every processing Job is stale.
        """
        self.recovered = await asyncio.to_thread(self.recovery.sweep)
        return self.recovered

    async def close(self) -> None:
        """Stop background work, kill in-flight children and close the store."""
        await self.scheduler.shutdown()
        await self.packager.shutdown()
        await self.orchestrator.shutdown()
        if isinstance(self.executor, ProcessExecutor):
            await self.executor.terminate_all()
        self.pool.close()
        logger.info("Runtime closed")
