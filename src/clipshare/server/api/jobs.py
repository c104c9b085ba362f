"""API handlers for jobs.

Endpoints:
    GET /api/jobs/{job_id} - Job status, progress and payload
    GET /api/status/summary - Job and resource counts by status and kind
"""

from __future__ import annotations

import asyncio
from typing import Any

from aiohttp import web

from clipshare.db import Job
from clipshare.runtime import Runtime
from clipshare.server.api.errors import NOT_FOUND, api_error


def job_to_dict(job: Job) -> dict[str, Any]:
    """JSON form of a Job as returned by every endpoint."""
    return {
        "id": job.id,
        "resourceId": job.resource_id,
        "rangeId": job.range_id,
        "kind": job.kind.value,
        "status": job.status.value,
        "progress": job.progress_percent,
        "error": job.error_text,
        "payload": job.payload,
        "createdAt": job.created_at,
        "updatedAt": job.updated_at,
        "startedAt": job.started_at,
        "completedAt": job.completed_at,
    }


async def api_job_handler(request: web.Request) -> web.Response:
    runtime: Runtime = request.app["runtime"]
    job_id = request.match_info["job_id"]
    job = await runtime.tracker.get_job(job_id)
    if job is None:
        return api_error(f"Job {job_id} not found", code=NOT_FOUND, status=404)
    return web.json_response(job_to_dict(job))


async def api_status_summary_handler(request: web.Request) -> web.Response:
    """Handle GET /api/status/summary.

    Also reports what the startup recovery sweep found and the claims
    currently held by the orchestrator and packager.
    """
    runtime: Runtime = request.app["runtime"]
    summary = await asyncio.to_thread(runtime.recovery.status_summary)
    summary["recovery"] = runtime.recovered.to_dict() if runtime.recovered else None
    summary["active"] = {
        "processing": runtime.orchestrator.claims.snapshot(),
        "export": runtime.packager.claims.snapshot(),
        "pendingRegenerations": runtime.scheduler.pending_timers,
    }
    return web.json_response(summary)


def setup_job_routes(app: web.Application) -> None:
    app.router.add_get("/api/jobs/{job_id}", api_job_handler)
    app.router.add_get("/api/status/summary", api_status_summary_handler)
