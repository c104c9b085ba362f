"""End-to-end tests of the HTTP API against a fake process runner."""

import asyncio

import pytest
import pytest_asyncio

from clipshare.runtime import Runtime
from clipshare.server import create_app

pytestmark = pytest.mark.integration

TERMINAL = {"completed", "failed", "cancelled"}


@pytest_asyncio.fixture
async def client(aiohttp_client, config, fake_runner):
    runtime = Runtime.build(config, runner=fake_runner)
    return await aiohttp_client(create_app(runtime))


async def wait_for_job(client, job_id: str, timeout: float = 5.0) -> dict:
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        resp = await client.get(f"/api/jobs/{job_id}")
        assert resp.status == 200
        job = await resp.json()
        if job["status"] in TERMINAL:
            return job
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"job {job_id} still {job['status']}")
        await asyncio.sleep(0.05)


async def process(client, resource_id: str) -> dict:
    resp = await client.post(f"/api/resources/{resource_id}/process")
    assert resp.status == 202
    return await wait_for_job(client, (await resp.json())["jobId"])


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, client):
        resp = await client.get("/health")
        assert resp.status == 200
        body = await resp.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["recovered"] is True
        assert body["shutting_down"] is False

    @pytest.mark.asyncio
    async def test_unhealthy_while_shutting_down(self, client):
        client.app["lifecycle"].initiate_shutdown()
        resp = await client.get("/health")
        assert resp.status == 503
        assert (await resp.json())["status"] == "unhealthy"


class TestProcessing:
    @pytest.mark.asyncio
    async def test_process_and_report_status(self, client, seed, local_source):
        resource, ranges = seed(ranges=[(0, 3000), (5000, 9000)], source_ref=str(local_source))

        job = await process(client, resource.id)

        assert job["status"] == "completed"
        assert job["kind"] == "process_resource"
        assert job["progress"] == 100.0
        assert job["payload"]["clipsCreated"] == 2

        resp = await client.get(f"/api/resources/{resource.id}/status")
        status = await resp.json()
        assert status["processingStatus"] == "completed"
        assert status["processingProgress"] == 100.0
        assert status["rangeCount"] == 2
        assert status["clipsReady"] == 2
        assert status["jobs"][0]["id"] == job["id"]

    @pytest.mark.asyncio
    async def test_unknown_resource(self, client):
        resp = await client.post("/api/resources/missing/process")
        assert resp.status == 404
        assert (await resp.json())["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_job(self, client):
        resp = await client.get("/api/jobs/missing")
        assert resp.status == 404

    @pytest.mark.asyncio
    async def test_refused_during_shutdown(self, client, seed, local_source):
        resource, _ = seed(source_ref=str(local_source))
        client.app["lifecycle"].initiate_shutdown()
        resp = await client.post(f"/api/resources/{resource.id}/process")
        assert resp.status == 503


class TestExport:
    @pytest.mark.asyncio
    async def test_export_requires_processing(self, client, seed):
        resource, _ = seed(ranges=[(0, 1000)])
        resp = await client.post(f"/api/resources/{resource.id}/export")
        assert resp.status == 400
        assert (await resp.json())["code"] == "VALIDATION_FAILED"

    @pytest.mark.asyncio
    async def test_export_after_processing(self, client, seed, local_source):
        resource, _ = seed(ranges=[(0, 3000), (4000, 6000)], source_ref=str(local_source))
        await process(client, resource.id)

        resp = await client.post(
            f"/api/resources/{resource.id}/export",
            json={"quality": "480p", "webInterfaceTheme": "light"},
        )
        assert resp.status == 202
        job = await wait_for_job(client, (await resp.json())["jobId"])

        assert job["status"] == "completed"
        assert job["payload"]["quality"] == "480p"
        assert job["payload"]["clipCount"] == 2
        status = await (await client.get(f"/api/resources/{resource.id}/status")).json()
        assert status["latestExport"]["id"] == job["id"]

    @pytest.mark.asyncio
    async def test_invalid_options(self, client, seed, local_source):
        resource, _ = seed(ranges=[(0, 3000)], source_ref=str(local_source))
        await process(client, resource.id)
        resp = await client.post(
            f"/api/resources/{resource.id}/export", json={"quality": "8k"}
        )
        assert resp.status == 400


class TestRanges:
    @pytest.mark.asyncio
    async def test_edit_regenerates_clip(self, client, seed, local_source, fake_runner):
        resource, ranges = seed(ranges=[(0, 3000)], source_ref=str(local_source))
        await process(client, resource.id)

        resp = await client.put(
            f"/api/ranges/{ranges[0].id}", json={"startMs": 500, "endMs": 2500}
        )
        assert resp.status == 202
        job = await wait_for_job(client, (await resp.json())["jobId"])

        assert job["kind"] == "export_clip"
        assert job["status"] == "completed"
        assert job["payload"]["startMs"] == 500
        assert job["payload"]["endMs"] == 2500
        assert len(fake_runner.calls_labelled("range trim")) == 1

    @pytest.mark.asyncio
    async def test_rapid_edits_coalesce(self, client, seed, local_source):
        resource, ranges = seed(ranges=[(0, 3000)], source_ref=str(local_source))
        await process(client, resource.id)
        client.app["runtime"].scheduler.debounce_seconds = 0.5

        job_ids = []
        for start in (100, 200, 300):
            resp = await client.put(
                f"/api/ranges/{ranges[0].id}", json={"startMs": start, "endMs": 2900}
            )
            job_ids.append((await resp.json())["jobId"])
        jobs = [await wait_for_job(client, job_id) for job_id in job_ids]

        assert [j["status"] for j in jobs] == ["cancelled", "cancelled", "completed"]
        assert jobs[-1]["payload"]["startMs"] == 300

    @pytest.mark.asyncio
    async def test_edit_validation(self, client, seed):
        _, ranges = seed(ranges=[(0, 3000)])
        resp = await client.put(
            f"/api/ranges/{ranges[0].id}", json={"startMs": 3000, "endMs": 1000}
        )
        assert resp.status == 400
        body = await resp.json()
        assert body["details"] == {"field": "end_ms"}

    @pytest.mark.asyncio
    async def test_edit_missing_fields(self, client, seed):
        _, ranges = seed(ranges=[(0, 3000)])
        resp = await client.put(f"/api/ranges/{ranges[0].id}", json={"startMs": 10})
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_edit_unknown_range(self, client):
        resp = await client.put("/api/ranges/missing", json={"startMs": 0, "endMs": 10})
        assert resp.status == 404

    @pytest.mark.asyncio
    async def test_delete(self, client, seed):
        _, ranges = seed(ranges=[(0, 3000)])

        first = await client.delete(f"/api/ranges/{ranges[0].id}")
        second = await client.delete(f"/api/ranges/{ranges[0].id}")

        assert first.status == 200
        assert await first.json() == {"deleted": ranges[0].id}
        assert second.status == 404


class TestSummary:
    @pytest.mark.asyncio
    async def test_summary_after_processing(self, client, seed, local_source):
        resource, _ = seed(ranges=[(0, 1000)], source_ref=str(local_source))
        await process(client, resource.id)

        summary = await (await client.get("/api/status/summary")).json()

        assert summary["jobs"]["by_status"] == {"completed": 1}
        assert summary["resources"] == {"completed": 1}
        assert summary["recovery"]["recovered_jobs"] == 0
        assert summary["active"]["pendingRegenerations"] == 0
