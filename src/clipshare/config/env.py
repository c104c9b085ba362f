"""Typed access to CLIPSHARE_* environment variables.

EnvReader takes an optional mapping in place of os.environ, so the loader
and its tests never mutate the process environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


class EnvReader:
    """Read and convert environment variables.

    Unset and empty variables yield the default. A value that fails to
    convert is logged and also yields the default, so a typo in one
    variable never stops the daemon from starting.

    Example:
        reader = EnvReader({"CLIPSHARE_SERVER_PORT": "9000"})
        reader.get_int("CLIPSHARE_SERVER_PORT", 8420)  # 9000
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = os.environ if env is None else env

    def _get(self, var: str, convert: Callable[[str], T], default: T | None) -> T | None:
        raw = self._env.get(var)
        if not raw:
            return default
        try:
            return convert(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: expected %s", var, raw, convert.__name__)
            return default

    def get_str(self, var: str, default: str | None = None) -> str | None:
        return self._get(var, str, default)

    def get_int(self, var: str, default: int | None = None) -> int | None:
        return self._get(var, int, default)

    def get_float(self, var: str, default: float | None = None) -> float | None:
        return self._get(var, float, default)

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """True for 1/true/yes/on in any case, False for anything else."""
        return self._get(var, lambda raw: raw.strip().lower() in TRUE_VALUES, default)

    def get_path(self, var: str, default: Path | None = None) -> Path | None:
        """Path with ``~`` expanded."""
        return self._get(var, lambda raw: Path(raw).expanduser(), default)
