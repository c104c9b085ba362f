"""Standardized API error responses.

Every error body is ``{"error": message, "code": CODE}`` plus optional
``details``.
"""

from __future__ import annotations

from typing import Any

from aiohttp import web

INVALID_JSON = "INVALID_JSON"
NOT_FOUND = "NOT_FOUND"
VALIDATION_FAILED = "VALIDATION_FAILED"
UPSTREAM_FAILED = "UPSTREAM_FAILED"
DATABASE_UNAVAILABLE = "DATABASE_UNAVAILABLE"
SHUTTING_DOWN = "SHUTTING_DOWN"
RECOVERY_PENDING = "RECOVERY_PENDING"
INTERNAL_ERROR = "INTERNAL_ERROR"


def api_error(
    message: str,
    *,
    code: str,
    status: int = 400,
    details: Any = None,
) -> web.Response:
    """Create a JSON error response.

    Args:
        message: Human-readable description.
        code: Machine-readable code from this module.
        status: HTTP status (default 400).
        details: Optional extra context.
    """
    body: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)
