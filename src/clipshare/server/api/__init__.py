"""JSON API route modules.

- jobs.py: job detail and status summary
- resources.py: processing and export triggers, resource status
- ranges.py: range edits (debounced regeneration) and deletion
"""

from aiohttp import web

__all__ = ["setup_api_routes"]


def setup_api_routes(app: web.Application) -> None:
    """Register every API route with the application."""
    from clipshare.server.api.jobs import setup_job_routes
    from clipshare.server.api.ranges import setup_range_routes
    from clipshare.server.api.resources import setup_resource_routes

    setup_job_routes(app)
    setup_resource_routes(app)
    setup_range_routes(app)
