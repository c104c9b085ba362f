"""Request middleware and handler decorators.

error_middleware turns the pipeline's exception taxonomy into JSON error
responses, so handlers raise instead of building error bodies:

    ResourceNotFoundError, RangeNotFoundError  404
    ValidationFailure, pydantic ValidationError  400
    UpstreamFetchFailure  502
    StorageFailure  503
    anything else  500 (logged with traceback)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any

import pydantic
from aiohttp import web

from clipshare.exceptions import StorageFailure, UpstreamFetchFailure, ValidationFailure
from clipshare.jobs import RangeNotFoundError, ResourceNotFoundError
from clipshare.server.api.errors import (
    DATABASE_UNAVAILABLE,
    INTERNAL_ERROR,
    INVALID_JSON,
    NOT_FOUND,
    RECOVERY_PENDING,
    SHUTTING_DOWN,
    UPSTREAM_FAILED,
    VALIDATION_FAILED,
    api_error,
)

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except (ResourceNotFoundError, RangeNotFoundError) as e:
        return api_error(str(e), code=NOT_FOUND, status=404)
    except ValidationFailure as e:
        return api_error(
            e.message,
            code=VALIDATION_FAILED,
            details={"field": e.field} if e.field else None,
        )
    except pydantic.ValidationError as e:
        return api_error(
            "Invalid request body",
            code=VALIDATION_FAILED,
            details=e.errors(include_url=False, include_context=False),
        )
    except UpstreamFetchFailure as e:
        return api_error(str(e), code=UPSTREAM_FAILED, status=502)
    except StorageFailure as e:
        logger.error("Storage failure serving %s: %s", request.path, e)
        return api_error(str(e), code=DATABASE_UNAVAILABLE, status=503)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unhandled error serving %s %s", request.method, request.path)
        return api_error("Internal server error", code=INTERNAL_ERROR, status=500)


def trigger_guard(handler: Handler) -> Handler:
    """Return 503 unless the daemon is accepting triggers.

    Triggers are refused until the startup recovery sweep has finished and
    again once shutdown has begun.
    """

    @wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        lifecycle = request.app.get("lifecycle")
        if lifecycle is not None and not lifecycle.accepting_triggers:
            if lifecycle.is_shutting_down:
                return api_error(
                    "Service is shutting down", code=SHUTTING_DOWN, status=503
                )
            return api_error(
                "Startup recovery has not finished",
                code=RECOVERY_PENDING,
                status=503,
            )
        return await handler(request)

    return wrapper


async def read_json_body(request: web.Request, *, required: bool = True) -> dict[str, Any]:
    """Parse the request body as a JSON object.

    An empty body yields {} when required is False.

    Raises:
        web.HTTPBadRequest: Body is not a JSON object.
    """
    if not request.can_read_body:
        if required:
            raise web.HTTPBadRequest(
                text=json.dumps({"error": "Request body required", "code": INVALID_JSON}),
                content_type="application/json",
            )
        return {}
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": f"Invalid JSON: {e}", "code": INVALID_JSON}),
            content_type="application/json",
        ) from e
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Body must be a JSON object", "code": INVALID_JSON}),
            content_type="application/json",
        )
    return body
