"""API handlers for resource triggers.

Endpoints:
    POST /api/resources/{resource_id}/process - Start processing (202)
    POST /api/resources/{resource_id}/export - Start an export package (202)
    GET /api/resources/{resource_id}/status - Resource state and latest jobs
"""

from __future__ import annotations

import logging

from aiohttp import web

from clipshare.db import JobKind, get_jobs_for_resource, get_resource, list_ranges
from clipshare.export import ExportOptions
from clipshare.jobs import ResourceNotFoundError
from clipshare.runtime import Runtime
from clipshare.server.api.jobs import job_to_dict
from clipshare.server.middleware import read_json_body, trigger_guard

logger = logging.getLogger(__name__)

# Jobs listed per resource in the status response
STATUS_JOB_LIMIT = 20


@trigger_guard
async def api_process_handler(request: web.Request) -> web.Response:
    runtime: Runtime = request.app["runtime"]
    resource_id = request.match_info["resource_id"]
    job_id = await runtime.orchestrator.start_processing(resource_id)
    return web.json_response({"jobId": job_id, "resourceId": resource_id}, status=202)


@trigger_guard
async def api_export_handler(request: web.Request) -> web.Response:
    """Handle POST /api/resources/{resource_id}/export.

    The optional JSON body overrides configured export defaults using the
    camelCase option names (quality, hotkeyPattern, webInterfaceTheme,
    namingConvention, includeCollaborators).
    """
    runtime: Runtime = request.app["runtime"]
    resource_id = request.match_info["resource_id"]
    body = await read_json_body(request, required=False)
    options = ExportOptions.from_request(runtime.config.export, body)
    job_id = await runtime.packager.start_export(resource_id, options)
    return web.json_response({"jobId": job_id, "resourceId": resource_id}, status=202)


async def api_resource_status_handler(request: web.Request) -> web.Response:
    runtime: Runtime = request.app["runtime"]
    resource_id = request.match_info["resource_id"]
    resource = await runtime.tracker.read(get_resource, resource_id)
    if resource is None:
        raise ResourceNotFoundError(resource_id)
    jobs = await runtime.tracker.read(
        get_jobs_for_resource, resource_id, None, STATUS_JOB_LIMIT
    )
    ranges = await runtime.tracker.read(list_ranges, resource_id)
    latest_export = next((j for j in jobs if j.kind == JobKind.EXPORT_PACKAGE), None)
    return web.json_response(
        {
            "id": resource.id,
            "title": resource.title,
            "sourceKind": resource.source_kind.value,
            "durationSeconds": resource.duration_seconds,
            "processingStatus": resource.processing_status.value,
            "processingProgress": resource.processing_progress,
            "rangeCount": len(ranges),
            "clipsReady": sum(1 for r in ranges if r.clip_path),
            "latestExport": job_to_dict(latest_export) if latest_export else None,
            "jobs": [job_to_dict(j) for j in jobs],
        }
    )


def setup_resource_routes(app: web.Application) -> None:
    app.router.add_post("/api/resources/{resource_id}/process", api_process_handler)
    app.router.add_post("/api/resources/{resource_id}/export", api_export_handler)
    app.router.add_get(
        "/api/resources/{resource_id}/status", api_resource_status_handler
    )
