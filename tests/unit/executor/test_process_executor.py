"""Tests for ProcessExecutor against real short-lived children."""

import asyncio
import logging

import pytest

from clipshare.executor import (
    CommandRunner,
    ProcessExecutor,
    ProcessExitFailure,
    ProcessTimeout,
    RunOptions,
    SpawnFailure,
)

SH = "/bin/sh"


@pytest.fixture
def executor() -> ProcessExecutor:
    return ProcessExecutor({"shell": SH}, kill_grace=0.5)


class TestRun:
    """Tests for ProcessExecutor.run()."""

    @pytest.mark.asyncio
    async def test_captures_output(self, executor):
        """Both streams are captured on success."""
        result = await executor.run(SH, ["-c", "echo out; echo err >&2"])
        assert result.returncode == 0
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"
        assert result.attempts == 1
        assert executor.active_count == 0

    @pytest.mark.asyncio
    async def test_logical_name_resolves_to_configured_path(self, executor):
        """A logical command name maps to its configured executable."""
        assert executor.resolve("shell") == SH
        assert executor.resolve("ffmpeg") == "ffmpeg"
        result = await executor.run("shell", ["-c", "printf ok"])
        assert result.stdout == "ok"

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self, executor):
        """A non-zero exit raises with the code and stderr tail."""
        with pytest.raises(ProcessExitFailure) as exc_info:
            await executor.run(SH, ["-c", "echo broken >&2; exit 3"], RunOptions(label="probe"))
        err = exc_info.value
        assert err.returncode == 3
        assert err.stderr == "broken"
        assert "probe exited 3" in str(err)

    @pytest.mark.asyncio
    async def test_missing_binary_raises_spawn_failure(self, executor):
        with pytest.raises(SpawnFailure):
            await executor.run("/nonexistent/clipshare-tool", [])

    @pytest.mark.asyncio
    async def test_timeout_terminates_child(self, executor):
        """A child that outlives its timeout is terminated."""
        with pytest.raises(ProcessTimeout) as exc_info:
            await executor.run(SH, ["-c", "exec sleep 10"], RunOptions(timeout=0.2, kill_grace=0.5))
        assert exc_info.value.timeout == 0.2
        assert executor.active_count == 0

    @pytest.mark.asyncio
    async def test_timeout_kills_child_ignoring_sigterm(self, executor, caplog):
        """A child that ignores SIGTERM is killed once the grace window ends."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        with caplog.at_level(logging.WARNING, logger="clipshare.executor.process"):
            with pytest.raises(ProcessTimeout):
                await executor.run(
                    SH,
                    ["-c", "trap '' TERM; exec sleep 10"],
                    RunOptions(timeout=0.2, kill_grace=0.3),
                )
        elapsed = loop.time() - started

        assert 0.45 <= elapsed < 3.0
        assert "sending SIGKILL" in caplog.text
        assert executor.active_count == 0

    @pytest.mark.asyncio
    async def test_timeout_does_not_retry_by_default(self, executor, tmp_path):
        """Retries are not spent on timeouts unless requested."""
        marker = tmp_path / "count"
        script = f"echo x >> {marker}; exec sleep 10"
        with pytest.raises(ProcessTimeout):
            await executor.run(
                SH, ["-c", script], RunOptions(timeout=0.2, retries=2, retry_delay=0)
            )
        assert marker.read_text().count("x") == 1


class TestRetries:
    @pytest.mark.asyncio
    async def test_retries_until_success(self, executor, tmp_path):
        """A command that fails once succeeds on the second attempt."""
        marker = tmp_path / "seen"
        script = f"if [ -f {marker} ]; then echo done; else touch {marker}; exit 1; fi"
        result = await executor.run(SH, ["-c", script], RunOptions(retries=1, retry_delay=0))
        assert result.stdout == "done\n"
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, executor):
        with pytest.raises(ProcessExitFailure) as exc_info:
            await executor.run(SH, ["-c", "exit 1"], RunOptions(retries=2, retry_delay=0))
        assert exc_info.value.attempts == 3


class TestStderrLines:
    @pytest.mark.asyncio
    async def test_carriage_returns_split_lines(self, executor):
        """ffmpeg-style CR-rewritten status lines arrive one by one."""
        lines: list[str] = []
        await executor.run(
            SH,
            ["-c", "printf 'time=00:00:01\\rtime=00:00:02\\rdone\\n' >&2"],
            RunOptions(on_stderr_line=lines.append),
        )
        assert lines == ["time=00:00:01", "time=00:00:02", "done"]

    @pytest.mark.asyncio
    async def test_callback_errors_do_not_fail_the_run(self, executor):
        def _explode(line: str) -> None:
            raise RuntimeError("callback bug")

        result = await executor.run(
            SH, ["-c", "echo hi >&2"], RunOptions(on_stderr_line=_explode)
        )
        assert result.returncode == 0


class TestTerminateAll:
    @pytest.mark.asyncio
    async def test_kills_in_flight_children(self, executor):
        """terminate_all signals every running child."""
        task = asyncio.create_task(executor.run(SH, ["-c", "exec sleep 10"], RunOptions(timeout=None)))
        for _ in range(100):
            if executor.active_count:
                break
            await asyncio.sleep(0.01)
        assert await executor.terminate_all(grace=0.5) == 1
        with pytest.raises(ProcessExitFailure) as exc_info:
            await task
        assert exc_info.value.signal is not None

    @pytest.mark.asyncio
    async def test_nothing_running(self, executor):
        assert await executor.terminate_all() == 0

    def test_satisfies_protocol(self, executor):
        assert isinstance(executor, CommandRunner)
