"""Single-flight claim table.

An explicit in-memory map enforcing at most one active operation per key
(a resource id). Each orchestrator or packager owns the instance it was
constructed with, so tests can build isolated ones and the daemon can
choose to share one between components.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ClaimTable:
    """Thread-safe map of claimed keys to the job that holds them."""

    def __init__(self, name: str = "claims") -> None:
        self.name = name
        self._claims: dict[str, str | None] = {}
        self._lock = threading.Lock()

    def try_claim(self, key: str, owner: str | None = None) -> bool:
        """Claim key for owner.

        Returns:
            True if the key was free and is now claimed, False if another
            operation already holds it.
        """
        with self._lock:
            if key in self._claims:
                return False
            self._claims[key] = owner
            return True

    def release(self, key: str) -> None:
        """Release key. Releasing an unclaimed key is a no-op."""
        with self._lock:
            self._claims.pop(key, None)

    def owner(self, key: str) -> str | None:
        """Return the job holding key, or None."""
        with self._lock:
            return self._claims.get(key)

    def is_claimed(self, key: str) -> bool:
        with self._lock:
            return key in self._claims

    def snapshot(self) -> dict[str, str | None]:
        """Copy of the current claims, for status output."""
        with self._lock:
            return dict(self._claims)

    @contextmanager
    def claim(self, key: str, owner: str | None = None) -> Iterator[bool]:
        """Claim key for the duration of a block.

        Yields False (and holds nothing) if the key was already claimed.
        """
        acquired = self.try_claim(key, owner)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._claims)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._claims
