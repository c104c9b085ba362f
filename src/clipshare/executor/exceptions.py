"""Typed failures raised by the process executor."""

from __future__ import annotations

from clipshare.exceptions import ClipshareError

# Stderr kept on an exception; the full text is in ProcessResult / logs
STDERR_TAIL_CHARS = 4000


def _tail(text: str, limit: int = STDERR_TAIL_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


class ProcessFailure(ClipshareError):
    """Base class for failures of an external command.

    Attributes:
        command: Executable name or path.
        label: Human-readable call-site label used in logs.
        attempts: Number of attempts made before giving up.
    """

    def __init__(self, message: str, command: str, label: str | None = None) -> None:
        self.command = command
        self.label = label or command
        self.attempts = 1
        super().__init__(message)


class SpawnFailure(ProcessFailure):
    """The command could not be started (missing binary, permissions)."""

    def __init__(self, command: str, cause: OSError, label: str | None = None) -> None:
        self.cause = cause
        super().__init__(
            f"Failed to start {label or command}: {cause}", command, label
        )


class ProcessExitFailure(ProcessFailure):
    """The command ran but exited non-zero or was killed by a signal.

    Attributes:
        returncode: Exit status (negative for signals, as asyncio reports it).
        stderr: Captured standard error, tail-truncated.
        stdout: Captured standard output, tail-truncated.
    """

    def __init__(
        self,
        command: str,
        returncode: int,
        stderr: str = "",
        stdout: str = "",
        label: str | None = None,
    ) -> None:
        self.returncode = returncode
        self.stderr = _tail(stderr)
        self.stdout = _tail(stdout)
        if returncode < 0:
            reason = f"killed by signal {-returncode}"
        else:
            reason = f"exited {returncode}"
        message = f"{label or command} {reason}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message, command, label)

    @property
    def signal(self) -> int | None:
        return -self.returncode if self.returncode < 0 else None


class ProcessTimeout(ProcessFailure):
    """The command exceeded its timeout and was forcibly terminated."""

    def __init__(
        self,
        command: str,
        timeout: float,
        stderr: str = "",
        label: str | None = None,
    ) -> None:
        self.timeout = timeout
        self.stderr = _tail(stderr)
        super().__init__(
            f"{label or command} timed out after {timeout:g}s", command, label
        )
