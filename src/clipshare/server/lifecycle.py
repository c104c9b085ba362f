"""Daemon lifecycle state.

Triggers are accepted only between the end of the startup recovery sweep
and the first shutdown request; health and the trigger handlers read this
state, signal handlers and the app's startup hook write it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DaemonLifecycle:
    """Startup, recovery and shutdown timestamps for `clipshare serve`."""

    shutdown_timeout: float = 30.0
    started_at: datetime = field(default_factory=_utcnow)
    recovered_at: datetime | None = None
    shutdown_requested_at: datetime | None = None

    @property
    def uptime_seconds(self) -> float:
        return (_utcnow() - self.started_at).total_seconds()

    @property
    def is_recovered(self) -> bool:
        return self.recovered_at is not None

    @property
    def is_shutting_down(self) -> bool:
        return self.shutdown_requested_at is not None

    @property
    def accepting_triggers(self) -> bool:
        return self.is_recovered and not self.is_shutting_down

    def mark_recovered(self) -> None:
        if self.recovered_at is None:
            self.recovered_at = _utcnow()

    def initiate_shutdown(self) -> bool:
        """Record the first shutdown request.

        Returns:
            False if shutdown was already under way.
        """
        if self.shutdown_requested_at is not None:
            return False
        self.shutdown_requested_at = _utcnow()
        return True
