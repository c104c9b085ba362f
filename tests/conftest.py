"""Shared test fixtures for clipshare."""

from __future__ import annotations

import asyncio
import json
import re
import sqlite3
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from clipshare.config.models import (
    ClipshareConfig,
    ExecutorConfig,
    PipelineConfig,
    RegenerationConfig,
)
from clipshare.core.datetime_utils import utc_now_iso
from clipshare.db import (
    DaemonConnectionPool,
    ProcessingStatus,
    Range,
    Resource,
    SourceKind,
    get_connection,
    initialize_database,
    insert_range,
    insert_resource,
)
from clipshare.executor import ProcessExitFailure, ProcessResult, RunOptions

_SELECT_TERM = re.compile(r"eq\(t,")


@dataclass
class Call:
    """One recorded invocation."""

    command: str
    args: list[str]
    options: RunOptions | None

    @property
    def label(self) -> str | None:
        return self.options.label if self.options else None


@dataclass
class FakeRunner:
    """CommandRunner double that records calls and writes expected outputs.

    ffmpeg invocations create their output file (or the numbered images a
    frame batch would produce); ffprobe invocations answer from
    ``probe_duration`` and ``scene_csv``, ffmpeg scene detection from
    ``scene_metadata``. yt-dlp answers from ``video_metadata`` and writes
    a .webm download. ``fail`` decides which calls raise
    ProcessExitFailure.
    """

    probe_duration: float = 120.0
    scene_csv: str = "12.0,0.62\n47.5,0.88\n95.25,0.41\n"
    scene_metadata: str = ""
    video_metadata: dict = field(
        default_factory=lambda: {"title": "Big Match: Highlights!", "duration": 90}
    )
    stderr_lines: list[str] = field(default_factory=list)
    fail: Callable[[str, list[str]], bool] | None = None
    delay: float = 0.0
    calls: list[Call] = field(default_factory=list)

    def calls_labelled(self, label: str) -> list[Call]:
        return [c for c in self.calls if c.label == label]

    async def run(self, command, args, options=None) -> ProcessResult:
        str_args = [str(a) for a in args]
        self.calls.append(Call(command, str_args, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail is not None and self.fail(command, str_args):
            raise ProcessExitFailure(
                command, 1, "simulated failure", label=options.label if options else None
            )
        if options is not None and options.on_stderr_line is not None:
            for line in self.stderr_lines:
                options.on_stderr_line(line)

        stdout = ""
        if command == "ffprobe":
            if "format=duration" in str_args:
                stdout = json.dumps({"format": {"duration": str(self.probe_duration)}})
            else:
                stdout = self.scene_csv
        elif command == "ffmpeg":
            if "null" in str_args:
                stdout = self.scene_metadata
            self._write_outputs(str_args)
        elif command == "yt-dlp":
            if "--dump-single-json" in str_args:
                stdout = json.dumps(self.video_metadata)
            else:
                template = str_args[str_args.index("-o") + 1]
                target = Path(template.replace("%(ext)s", "webm"))
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(b"downloaded")
        return ProcessResult(command, str_args, 0, stdout, "", 0.01)

    @staticmethod
    def _write_outputs(args: list[str]) -> None:
        if "null" in args:
            return
        pattern = next((a for a in args if "%0" in a), None)
        if pattern is not None:
            if "shot_frame_" in pattern:
                start = int(args[args.index("-start_number") + 1])
                vf = args[args.index("-vf") + 1]
                count = len(_SELECT_TERM.findall(vf))
            else:
                start, count = 1, 5
            for n in range(start, start + count):
                out = Path(pattern % n)
                out.parent.mkdir(parents=True, exist_ok=True)
                out.write_bytes(b"\xff\xd8" + bytes(n % 7 * 100))
            return
        target = Path(args[-1])
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"fake media " + target.name.encode())


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config(tmp_path: Path) -> ClipshareConfig:
    """Configuration rooted in a temporary data directory with fast timings."""
    cfg = ClipshareConfig(
        data_dir=tmp_path / "data",
        executor=ExecutorConfig(retry_delay=0.0),
        pipeline=PipelineConfig(ticker_interval_seconds=0.05),
        regeneration=RegenerationConfig(debounce_seconds=0.1),
    )
    cfg.ensure_directories()
    return cfg


@pytest.fixture
def pool(config: ClipshareConfig) -> Iterator[DaemonConnectionPool]:
    p = DaemonConnectionPool(config.db_path)
    p.initialize_schema()
    yield p
    p.close()


@pytest.fixture
def db_conn(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    """A standalone connection with the schema applied."""
    with get_connection(tmp_path / "queries.db") as conn:
        initialize_database(conn)
        yield conn


def make_resource(
    *,
    title: str = "Match Day",
    content_title: str | None = "Final",
    source_kind: SourceKind = SourceKind.LOCAL,
    source_ref: str = "/media/source.mov",
    duration_seconds: float | None = 120.0,
    status: ProcessingStatus = ProcessingStatus.IDLE,
) -> Resource:
    now = utc_now_iso()
    return Resource(
        id=str(uuid.uuid4()),
        title=title,
        content_title=content_title,
        source_kind=source_kind,
        source_ref=source_ref,
        duration_seconds=duration_seconds,
        processing_status=status,
        processing_progress=100.0 if status == ProcessingStatus.COMPLETED else 0.0,
        created_at=now,
        updated_at=now,
    )


def make_range(
    resource_id: str,
    start_ms: int,
    end_ms: int,
    label: str | None = None,
    created_by: str | None = "ana",
) -> Range:
    now = utc_now_iso()
    return Range(
        id=str(uuid.uuid4()),
        resource_id=resource_id,
        label=label,
        start_ms=start_ms,
        end_ms=end_ms,
        created_by=created_by,
        clip_path=None,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def seed(pool: DaemonConnectionPool):
    """Insert a resource and ranges through the pool.

    Usage:
        resource, ranges = seed(ranges=[(0, 5000), (10000, 12000)])
    """

    def _seed(
        ranges: list[tuple[int, int]] = (),
        **resource_fields,
    ) -> tuple[Resource, list[Range]]:
        resource = make_resource(**resource_fields)
        created = [
            make_range(resource.id, start, end, label=f"Moment {i + 1}")
            for i, (start, end) in enumerate(ranges)
        ]
        with pool.transaction() as conn:
            insert_resource(conn, resource)
            for range_ in created:
                insert_range(conn, range_)
        return resource, created

    return _seed


@pytest.fixture
def local_source(tmp_path: Path) -> Path:
    path = tmp_path / "incoming" / "source.mov"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"source media")
    return path


@pytest.fixture
def processed_resource(config: ClipshareConfig, seed):
    """A resource that finished processing, with its canonical file on disk."""

    def _make(range_count: int) -> tuple[Resource, list[Range]]:
        resource, ranges = seed(
            ranges=[(i * 2000, i * 2000 + 1500) for i in range(range_count)],
            status=ProcessingStatus.COMPLETED,
        )
        resource_dir = config.processed_dir / resource.id
        resource_dir.mkdir(parents=True, exist_ok=True)
        (resource_dir / "processed.mp4").write_bytes(b"canonical")
        return resource, ranges

    return _make
