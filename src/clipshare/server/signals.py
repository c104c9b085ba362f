"""Signal handlers for graceful daemon shutdown on SIGTERM and SIGINT."""

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clipshare.server.lifecycle import DaemonLifecycle

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def setup_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    lifecycle: "DaemonLifecycle",
    shutdown_event: asyncio.Event,
) -> None:
    """Register handlers that start graceful shutdown.

    Args:
        loop: The running event loop.
        lifecycle: Lifecycle to mark as shutting down.
        shutdown_event: Event set when a shutdown signal arrives.
    """

    def handle_shutdown_signal(sig: signal.Signals) -> None:
        if lifecycle.initiate_shutdown():
            logger.info("Received %s, initiating graceful shutdown", sig.name)
        else:
            logger.info("Received %s again; shutdown already in progress", sig.name)
        shutdown_event.set()

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, handle_shutdown_signal, sig)
            logger.debug("Registered handler for %s", sig.name)
        except (ValueError, RuntimeError, NotImplementedError) as e:
            # Not in the main thread, or no signal support on this platform
            logger.warning("Failed to register handler for %s: %s", sig.name, e)


def remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except (ValueError, RuntimeError, NotImplementedError):
            logger.debug("No handler to remove for %s", sig.name)
