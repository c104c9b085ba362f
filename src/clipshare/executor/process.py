"""Asynchronous process executor.

One place spawns and supervises every external command the pipeline uses
(ffmpeg, ffprobe, yt-dlp). Each invocation captures both output streams,
enforces a timeout with escalating termination, and optionally retries
with a fixed delay.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import re
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from clipshare.executor.exceptions import (
    ProcessExitFailure,
    ProcessFailure,
    ProcessTimeout,
    SpawnFailure,
)
from clipshare.executor.interface import (
    ProcessResult,
    RunOptions,
    StderrLineCallback,
)

logger = logging.getLogger(__name__)

# ffmpeg rewrites its stats line with carriage returns
_LINE_SPLIT = re.compile(r"\r\n|\r|\n")

_READ_CHUNK = 65536


class ProcessExecutor:
    """Runs external commands and tracks the children still in flight.

    Logical command names ("ffmpeg", "ffprobe", "yt-dlp") are mapped to
    configured executable paths; unknown names are used as-is and resolved
    through PATH by the OS.
    """

    STDERR_DRAIN_TIMEOUT: float = 5.0

    def __init__(
        self,
        tool_paths: Mapping[str, str | Path] | None = None,
        kill_grace: float = 5.0,
    ) -> None:
        """Initialize the executor.

        Args:
            tool_paths: Mapping of logical command name to executable path.
            kill_grace: Default SIGTERM-to-SIGKILL grace for terminate_all().
        """
        self._tool_paths = {k: str(v) for k, v in (tool_paths or {}).items()}
        self._kill_grace = kill_grace
        self._active: dict[int, asyncio.subprocess.Process] = {}

    @property
    def active_count(self) -> int:
        """Number of children currently running."""
        return len(self._active)

    def resolve(self, command: str) -> str:
        """Return the executable path configured for a logical command."""
        return self._tool_paths.get(command, command)

    async def run(
        self,
        command: str,
        args: Sequence[str | Path],
        options: RunOptions | None = None,
    ) -> ProcessResult:
        """Run a command to completion.

        Args:
            command: Logical command name or executable path.
            args: Arguments (Path objects are converted to strings).
            options: Execution policy. Defaults to RunOptions().

        Returns:
            ProcessResult for the successful attempt.

        Raises:
            SpawnFailure: The command could not be started.
            ProcessExitFailure: Non-zero exit or killed by a signal.
            ProcessTimeout: Timeout exceeded; the child was terminated.
        """
        options = options or RunOptions()
        str_args = [str(a) for a in args]
        max_attempts = max(1, options.retries + 1)
        attempt = 1

        while True:
            try:
                result = await self._run_once(command, str_args, options)
            except ProcessTimeout as e:
                e.attempts = attempt
                if not options.retry_on_timeout or attempt >= max_attempts:
                    raise
                failure: ProcessFailure = e
            except (SpawnFailure, ProcessExitFailure) as e:
                e.attempts = attempt
                if attempt >= max_attempts:
                    raise
                failure = e
            else:
                result.attempts = attempt
                return result

            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                options.label or command,
                attempt,
                max_attempts,
                options.retry_delay,
                failure,
            )
            attempt += 1
            await asyncio.sleep(options.retry_delay)

    async def _run_once(
        self, command: str, args: list[str], options: RunOptions
    ) -> ProcessResult:
        executable = self.resolve(command)
        label = options.label or command

        logger.debug(
            "Executing command: %s %s",
            executable,
            " ".join(args),
            extra={"command": command, "arg_count": len(args)},
        )
        start = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(  # nosec B603
                executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(options.cwd) if options.cwd else None,
            )
        except OSError as e:
            raise SpawnFailure(command, e, label) from e

        self._active[proc.pid] = proc
        try:
            stdout_task = asyncio.create_task(_drain(proc.stdout, None))
            stderr_task = asyncio.create_task(
                _drain(proc.stderr, options.on_stderr_line)
            )
            try:
                await asyncio.wait_for(proc.wait(), timeout=options.timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "%s timed out after %ss, terminating pid %d",
                    label,
                    options.timeout,
                    proc.pid,
                )
                await terminate_process(proc, options.kill_grace)
                _, stderr = await self._collect(stdout_task, stderr_task)
                raise ProcessTimeout(
                    command, options.timeout or 0.0, stderr, label
                ) from None
            except asyncio.CancelledError:
                await terminate_process(proc, options.kill_grace)
                stdout_task.cancel()
                stderr_task.cancel()
                raise

            stdout, stderr = await self._collect(stdout_task, stderr_task)
        finally:
            self._active.pop(proc.pid, None)

        elapsed = time.monotonic() - start
        returncode = proc.returncode if proc.returncode is not None else -1
        logger.debug(
            "Command completed",
            extra={
                "command": command,
                "elapsed_seconds": round(elapsed, 3),
                "returncode": returncode,
            },
        )

        if returncode != 0:
            raise ProcessExitFailure(command, returncode, stderr, stdout, label)

        return ProcessResult(
            command=command,
            args=args,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            elapsed_seconds=elapsed,
        )

    async def _collect(
        self, stdout_task: asyncio.Task[str], stderr_task: asyncio.Task[str]
    ) -> tuple[str, str]:
        """Wait for both stream readers, abandoning them if a pipe stays open."""
        done, pending = await asyncio.wait(
            {stdout_task, stderr_task}, timeout=self.STDERR_DRAIN_TIMEOUT
        )
        for task in pending:
            task.cancel()
        stdout = stdout_task.result() if stdout_task in done else ""
        stderr = stderr_task.result() if stderr_task in done else ""
        return stdout, stderr

    async def terminate_all(self, grace: float | None = None) -> int:
        """Best-effort termination of every in-flight child.

        Sends SIGTERM to each child, then SIGKILL to any that are still
        running after the grace window.

        Returns:
            Number of children that were signalled.
        """
        procs = list(self._active.values())
        if not procs:
            return 0
        grace = self._kill_grace if grace is None else grace
        logger.info("Terminating %d in-flight process(es)", len(procs))
        results = await asyncio.gather(
            *(terminate_process(p, grace) for p in procs),
            return_exceptions=True,
        )
        for proc, outcome in zip(procs, results):
            if isinstance(outcome, Exception):
                logger.warning("Could not terminate pid %d: %s", proc.pid, outcome)
        self._active.clear()
        return len(procs)


async def terminate_process(proc: asyncio.subprocess.Process, grace: float) -> None:
    """Send SIGTERM, then SIGKILL if the child outlives the grace window."""
    if proc.returncode is not None:
        return
    try:
        proc.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace)
    except asyncio.TimeoutError:
        logger.warning(
            "pid %d ignored SIGTERM for %.1fs, sending SIGKILL", proc.pid, grace
        )
        try:
            proc.kill()
        except ProcessLookupError:
            return
        await proc.wait()


async def _drain(
    stream: asyncio.StreamReader | None,
    on_line: StderrLineCallback | None,
) -> str:
    """Read a pipe to EOF, optionally feeding complete lines to a callback."""
    if stream is None:
        return ""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    chunks: list[str] = []
    pending = ""
    while True:
        data = await stream.read(_READ_CHUNK)
        if not data:
            break
        text = decoder.decode(data)
        chunks.append(text)
        if on_line is not None:
            pending += text
            *lines, pending = _LINE_SPLIT.split(pending)
            for line in lines:
                _emit(on_line, line)
    tail = decoder.decode(b"", final=True)
    chunks.append(tail)
    if on_line is not None:
        pending += tail
        if pending:
            _emit(on_line, pending)
    return "".join(chunks)


def _emit(on_line: StderrLineCallback, line: str) -> None:
    if not line.strip():
        return
    try:
        on_line(line)
    except Exception:
        logger.exception("stderr line callback failed")
