"""`clipshare serve`: run the HTTP daemon."""

from __future__ import annotations

import asyncio
import dataclasses
import errno
import logging
import os
import sys

import click

from clipshare.cli.exit_codes import ExitCode
from clipshare.config import ClipshareConfig

logger = logging.getLogger(__name__)


async def run_server(config: ClipshareConfig) -> int:
    """Serve until SIGTERM/SIGINT.

    The app's startup hook runs the recovery sweep before the site starts
    listening, and its cleanup hook terminates in-flight children and
    closes the store.

    Returns:
        Exit code (0 for clean shutdown).
    """
    from aiohttp import web

    from clipshare.runtime import Runtime
    from clipshare.server.app import create_app
    from clipshare.server.lifecycle import DaemonLifecycle
    from clipshare.server.signals import remove_signal_handlers, setup_signal_handlers

    bind, port = config.server.bind, config.server.port
    lifecycle = DaemonLifecycle(shutdown_timeout=config.server.shutdown_timeout)
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    setup_signal_handlers(loop, lifecycle, shutdown_event)

    app = create_app(Runtime.build(config), lifecycle)
    runner = web.AppRunner(app, shutdown_timeout=config.server.shutdown_timeout)
    await runner.setup()

    try:
        site = web.TCPSite(runner, bind, port)
        await site.start()
        logger.info(
            "Clipshare daemon started on http://%s:%d (PID %d)", bind, port, os.getpid()
        )
        logger.info("Press Ctrl+C or send SIGTERM to stop")
        await shutdown_event.wait()
        logger.info("Shutdown initiated")
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            logger.error("Port %d is already in use", port)
        elif e.errno == errno.EADDRNOTAVAIL:
            logger.error("Cannot bind to address %s", bind)
        else:
            logger.error("Server error: %s", e)
        return 1
    finally:
        remove_signal_handlers(loop)
        await runner.cleanup()
        logger.info("Clipshare daemon stopped")
    return 0


@click.command("serve")
@click.option("--bind", default=None, help="Address to bind to (default: 127.0.0.1).")
@click.option("--port", "-p", type=int, default=None, help="Port (default: 8420).")
@click.pass_context
def serve_command(ctx: click.Context, bind: str | None, port: int | None) -> None:
    """Run the HTTP API daemon.

    Interrupted Jobs from a previous run are failed before any trigger is
    accepted. Shutdown (SIGTERM or Ctrl+C) kills in-flight ffmpeg, ffprobe
    and yt-dlp children.
    """
    config: ClipshareConfig = ctx.obj["config"]
    overrides = {k: v for k, v in (("bind", bind), ("port", port)) if v is not None}
    if overrides:
        try:
            config.server = dataclasses.replace(config.server, **overrides)
        except ValueError as e:
            raise click.BadParameter(str(e)) from e

    logger.info(
        "Starting clipshare daemon (bind=%s, port=%d, data=%s)",
        config.server.bind,
        config.server.port,
        config.data_dir,
    )
    try:
        sys.exit(asyncio.run(run_server(config)))
    except KeyboardInterrupt:
        logger.info("Interrupted before server started")
        sys.exit(int(ExitCode.GENERAL_ERROR))
