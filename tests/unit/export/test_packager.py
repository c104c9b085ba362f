"""Tests for the export package builder."""

import json
import stat
import zipfile
from pathlib import Path

import pytest

from clipshare.db import JobKind, JobStatus, ProcessingStatus
from clipshare.exceptions import ValidationFailure
from clipshare.export import (
    ExportOptions,
    ExportPackager,
    unique_clip_filenames,
    zip_directory,
)
from clipshare.export.packager import thumbnail_time
from clipshare.jobs import ClaimTable, JobTracker, ResourceNotFoundError
from conftest import make_range


@pytest.fixture
def packager(config, pool, fake_runner):
    return ExportPackager(config, JobTracker(pool), fake_runner)


def _archive_names(payload: dict) -> list[str]:
    with zipfile.ZipFile(payload["zipPath"]) as zf:
        return zf.namelist()


def _archive_text(payload: dict, name: str) -> str:
    with zipfile.ZipFile(payload["zipPath"]) as zf:
        return zf.read(name).decode("utf-8")


class TestExportNow:
    @pytest.mark.asyncio
    async def test_fifty_ranges_are_packaged(self, packager, processed_resource, config):
        """Every range gets a clip, a thumbnail and a card in the control page."""
        resource, ranges = processed_resource(50)

        job = await packager.export_now(resource.id)

        assert job.kind == JobKind.EXPORT_PACKAGE
        assert job.status == JobStatus.COMPLETED
        assert job.progress_percent == 100.0
        payload = job.payload
        assert payload["clipCount"] == 50
        assert payload["clipFailures"] == []
        assert payload["thumbnailFailures"] == []
        assert payload["packageSize"] == Path(payload["zipPath"]).stat().st_size

        names = _archive_names(payload)
        assert len([n for n in names if n.startswith("clips/")]) == 50
        thumbnails = [n for n in names if n.startswith("web-interface/thumbnails/")]
        assert len(thumbnails) == 50
        for expected in (
            "README.md",
            "web-interface/index.html",
            "web-interface/style.css",
            "web-interface/script.js",
            "obs/setup_obs.py",
            "obs/setup_obs.sh",
            "obs/setup_obs.bat",
            "obs/config.json",
            "metadata/hotkeys.json",
            "metadata/resource-info.json",
        ):
            assert expected in names

        html = _archive_text(payload, "web-interface/index.html")
        for range_ in ranges:
            assert f'data-range-id="{range_.id}"' in html
        clips = json.loads(_archive_text(payload, "metadata/clips.json"))
        assert len(clips) == 50
        assert clips[12]["hotkey"] == "Ctrl+F1"

        with zipfile.ZipFile(payload["zipPath"]) as zf:
            mode = zf.getinfo("obs/setup_obs.sh").external_attr >> 16
        assert mode & stat.S_IXUSR

    @pytest.mark.asyncio
    async def test_archive_location_and_staging_cleanup(
        self, packager, processed_resource, config
    ):
        resource, _ = processed_resource(2)

        job = await packager.export_now(resource.id)

        archive = Path(job.payload["zipPath"])
        assert archive.parent == config.processed_dir / resource.id
        assert archive.name.startswith("obs-package-")
        assert archive.suffix == ".zip"
        assert list(config.temp_dir.glob("obs-package-*")) == []

    @pytest.mark.asyncio
    async def test_payload_carries_options(self, packager, processed_resource):
        resource, _ = processed_resource(1)
        options = ExportOptions(quality="720p", webInterfaceTheme="light")

        job = await packager.export_now(resource.id, options)

        assert job.payload["quality"] == "720p"
        assert job.payload["webInterfaceTheme"] == "light"
        assert "body class=\"light\"" in _archive_text(job.payload, "web-interface/index.html")

    @pytest.mark.asyncio
    async def test_without_collaborators(self, packager, processed_resource):
        resource, _ = processed_resource(1)

        job = await packager.export_now(
            resource.id, ExportOptions(includeCollaborators=False)
        )

        info = json.loads(_archive_text(job.payload, "metadata/resource-info.json"))
        assert info["collaborators"] == []

    @pytest.mark.asyncio
    async def test_setup_script_compiles_for_quoted_title(self, packager, seed, config):
        resource, ranges = seed(
            ranges=[(0, 1500), (2000, 3500)],
            title='Cup "Final" \\ """extra"""',
            status=ProcessingStatus.COMPLETED,
        )
        resource_dir = config.processed_dir / resource.id
        resource_dir.mkdir(parents=True)
        (resource_dir / "processed.mp4").write_bytes(b"canonical")

        job = await packager.export_now(resource.id)

        assert job.status == JobStatus.COMPLETED
        script = _archive_text(job.payload, "obs/setup_obs.py")
        compile(script, "setup_obs.py", "exec")
        for range_ in ranges:
            assert json.dumps(range_.id) in script
        assert resource.title not in _archive_text(job.payload, "obs/setup_obs.sh")

    @pytest.mark.asyncio
    async def test_clip_failures_are_recorded(self, config, pool, fake_runner, processed_resource):
        """A failed clip is listed, not fatal to the package."""
        resource, ranges = processed_resource(3)
        failing = ranges[1].id
        target = unique_clip_filenames(resource, ranges, "workspace-content-label")[failing]
        fake_runner.fail = lambda cmd, args: Path(args[-1]).name == target
        packager = ExportPackager(config, JobTracker(pool), fake_runner)

        job = await packager.export_now(resource.id)

        assert job.status == JobStatus.COMPLETED
        assert job.payload["clipFailures"] == [failing]
        assert job.payload["clipCount"] == 3

    @pytest.mark.asyncio
    async def test_unprocessed_resource_is_rejected(self, packager, seed):
        resource, _ = seed(ranges=[(0, 1000)])
        with pytest.raises(ValidationFailure, match="finish processing"):
            await packager.export_now(resource.id)

    @pytest.mark.asyncio
    async def test_completed_without_canonical_file_is_rejected(self, packager, seed):
        resource, _ = seed(ranges=[(0, 1000)], status=ProcessingStatus.COMPLETED)
        with pytest.raises(ValidationFailure):
            await packager.export_now(resource.id)

    @pytest.mark.asyncio
    async def test_unknown_resource(self, packager):
        with pytest.raises(ResourceNotFoundError):
            await packager.export_now("missing")


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_duplicate_request_returns_running_job(
        self, packager, processed_resource, fake_runner
    ):
        resource, _ = processed_resource(2)
        fake_runner.delay = 0.05

        first = await packager.start_export(resource.id)
        second = await packager.start_export(resource.id)
        await packager.wait_idle()

        assert first == second
        assert not packager.claims.is_claimed(resource.id)

    @pytest.mark.asyncio
    async def test_shared_guard_held_elsewhere_is_busy(
        self, config, pool, fake_runner, processed_resource
    ):
        resource, _ = processed_resource(1)
        claims = ClaimTable("resources")
        claims.try_claim(resource.id, "processing-job")
        packager = ExportPackager(config, JobTracker(pool), fake_runner, claims=claims)

        with pytest.raises(ValidationFailure, match="busy"):
            await packager.start_export(resource.id)

    @pytest.mark.asyncio
    async def test_claim_released_after_build(self, packager, processed_resource):
        resource, _ = processed_resource(1)
        await packager.export_now(resource.id)
        assert len(packager.claims) == 0


class TestHelpers:
    def test_thumbnail_time_one_second_in(self):
        assert thumbnail_time(make_range("r", 10_000, 20_000)) == 11.0

    def test_thumbnail_time_short_clip_uses_midpoint(self):
        assert thumbnail_time(make_range("r", 10_000, 11_000)) == 10.5

    def test_zip_directory(self, tmp_path):
        source = tmp_path / "tree"
        (source / "a" / "b").mkdir(parents=True)
        (source / "top.txt").write_text("top")
        (source / "a" / "b" / "deep.txt").write_text("deep")
        archive = tmp_path / "out" / "tree.zip"

        size = zip_directory(source, archive)

        assert size == archive.stat().st_size
        with zipfile.ZipFile(archive) as zf:
            assert sorted(zf.namelist()) == ["a/b/deep.txt", "top.txt"]

