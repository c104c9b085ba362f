"""Executor protocol and value types shared by every call site."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

StderrLineCallback = Callable[[str], None]


@dataclass(frozen=True)
class RunOptions:
    """Per-invocation execution policy.

    Attributes:
        timeout: Seconds before the child is terminated. None = no limit.
        kill_grace: Seconds between SIGTERM and SIGKILL on timeout.
        retries: Extra attempts after the first one fails.
        retry_delay: Fixed delay in seconds between attempts.
        retry_on_timeout: Whether a timeout consumes a retry (default: no,
            a timeout ends the call immediately).
        cwd: Working directory for the child.
        label: Call-site name used in logs and error messages.
        on_stderr_line: Called for every stderr line (split on CR or LF)
            while the child runs.
    """

    timeout: float | None = 1800.0
    kill_grace: float = 5.0
    retries: int = 0
    retry_delay: float = 5.0
    retry_on_timeout: bool = False
    cwd: Path | None = None
    label: str | None = None
    on_stderr_line: StderrLineCallback | None = field(default=None, compare=False)


@dataclass
class ProcessResult:
    """Outcome of a successful invocation."""

    command: str
    args: list[str]
    returncode: int
    stdout: str
    stderr: str
    elapsed_seconds: float
    attempts: int = 1


@runtime_checkable
class CommandRunner(Protocol):
    """Anything that can run an external command for a pipeline stage."""

    async def run(
        self,
        command: str,
        args: Sequence[str | Path],
        options: RunOptions | None = None,
    ) -> ProcessResult:
        """Run command to completion or raise a ProcessFailure subclass."""
        ...
