"""aiohttp application for daemon mode.

The app owns a Runtime: its startup hook runs the recovery sweep before
the site accepts any trigger, and its cleanup hook shuts the Runtime down
(timers, background Jobs, in-flight children, connection pool).
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import asdict, dataclass

from aiohttp import web

from clipshare import __version__
from clipshare.executor import ProcessExecutor
from clipshare.runtime import Runtime
from clipshare.server.api import setup_api_routes
from clipshare.server.lifecycle import DaemonLifecycle
from clipshare.server.middleware import error_middleware

logger = logging.getLogger(__name__)

HEALTH_CHECK_TIMEOUT = 5.0  # seconds


@dataclass
class HealthStatus:
    """Health check response payload."""

    status: str
    """Overall status: 'healthy', 'degraded', or 'unhealthy'."""

    database: str
    """'connected' or 'disconnected'."""

    uptime_seconds: float
    version: str
    recovered: bool = False
    """Whether the startup recovery sweep has finished."""

    shutting_down: bool = False
    active_processes: int = 0
    """Children currently running under the process executor."""

    def to_dict(self) -> dict:
        return asdict(self)


async def check_database_health(runtime: Runtime) -> bool:
    """Run SELECT 1 on a read connection, with a timeout."""

    def _sync_check() -> bool:
        try:
            with runtime.pool.read_connection() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error as e:
            logger.warning("Database health check failed: %s", e)
            return False

    try:
        return await asyncio.wait_for(
            asyncio.to_thread(_sync_check), timeout=HEALTH_CHECK_TIMEOUT
        )
    except asyncio.TimeoutError:
        logger.warning(
            "Database health check timed out after %.1fs", HEALTH_CHECK_TIMEOUT
        )
        return False


async def health_handler(request: web.Request) -> web.Response:
    """Handle GET /health: 200 when healthy, 503 otherwise."""
    runtime: Runtime = request.app["runtime"]
    lifecycle: DaemonLifecycle | None = request.app.get("lifecycle")

    db_connected = await check_database_health(runtime)
    shutting_down = lifecycle.is_shutting_down if lifecycle else False

    if shutting_down:
        status = "unhealthy"
    elif not db_connected:
        status = "degraded"
    else:
        status = "healthy"

    executor = runtime.executor
    health = HealthStatus(
        status=status,
        database="connected" if db_connected else "disconnected",
        uptime_seconds=round(lifecycle.uptime_seconds, 1) if lifecycle else 0.0,
        version=__version__,
        recovered=lifecycle.is_recovered if lifecycle else False,
        shutting_down=shutting_down,
        active_processes=(
            executor.active_count if isinstance(executor, ProcessExecutor) else 0
        ),
    )
    return web.json_response(health.to_dict(), status=200 if status == "healthy" else 503)


async def _run_recovery(app: web.Application) -> None:
    runtime: Runtime = app["runtime"]
    stats = await runtime.recover()
    app["lifecycle"].mark_recovered()
    logger.info("Startup recovery: %s", stats.to_dict())


async def _close_runtime(app: web.Application) -> None:
    runtime: Runtime = app["runtime"]
    logger.debug("Closing runtime")
    await runtime.close()


def create_app(runtime: Runtime, lifecycle: DaemonLifecycle | None = None) -> web.Application:
    """Create the aiohttp Application.

    Args:
        runtime: Components serving the API; closed on app cleanup.
        lifecycle: Shutdown coordination (a fresh one when omitted).
    """
    app = web.Application(middlewares=[error_middleware])
    app["runtime"] = runtime
    app["lifecycle"] = lifecycle or DaemonLifecycle(
        shutdown_timeout=runtime.config.server.shutdown_timeout
    )

    app.router.add_get("/health", health_handler)
    setup_api_routes(app)

    app.on_startup.append(_run_recovery)
    app.on_cleanup.append(_close_runtime)
    return app
