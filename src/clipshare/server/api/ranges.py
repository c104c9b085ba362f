"""API handlers for ranges.

Endpoints:
    PUT /api/ranges/{range_id} - Update offsets and schedule regeneration (202)
    DELETE /api/ranges/{range_id} - Delete a range and its clip
"""

from __future__ import annotations

from aiohttp import web
from pydantic import BaseModel, ConfigDict, Field

from clipshare.jobs import RangeNotFoundError
from clipshare.runtime import Runtime
from clipshare.server.middleware import read_json_body, trigger_guard


class RangeEditRequest(BaseModel):
    """Body of PUT /api/ranges/{range_id}."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    start_ms: int = Field(alias="startMs")
    end_ms: int = Field(alias="endMs")
    label: str | None = None


@trigger_guard
async def api_range_edit_handler(request: web.Request) -> web.Response:
    runtime: Runtime = request.app["runtime"]
    range_id = request.match_info["range_id"]
    edit = RangeEditRequest.model_validate(await read_json_body(request))
    job_id = await runtime.scheduler.edit_range(
        range_id, edit.start_ms, edit.end_ms, edit.label
    )
    return web.json_response({"jobId": job_id, "rangeId": range_id}, status=202)


@trigger_guard
async def api_range_delete_handler(request: web.Request) -> web.Response:
    runtime: Runtime = request.app["runtime"]
    range_id = request.match_info["range_id"]
    if not await runtime.scheduler.delete_range(range_id):
        raise RangeNotFoundError(range_id)
    return web.json_response({"deleted": range_id})


def setup_range_routes(app: web.Application) -> None:
    app.router.add_put("/api/ranges/{range_id}", api_range_edit_handler)
    app.router.add_delete("/api/ranges/{range_id}", api_range_delete_handler)
