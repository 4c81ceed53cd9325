"""Unit tests for the batch coordinator."""

import asyncio
from typing import Any, Dict

import httpx
import pytest

from genbatch.core.batch.coordinator import BatchCoordinator
from genbatch.core.batch.models import BatchStatus, JobAssets, JobStatus, ProviderName
from genbatch.core.errors import (
    InvalidProvider,
    ProviderCommunicationError,
    StoreError,
    SubmissionFailure,
)
from genbatch.integrations.providers import WaveSpeedGateway
from genbatch.tests.fakes import FakeGateway


def make_coordinator(repository, locks, clock, *gateways) -> BatchCoordinator:
    return BatchCoordinator(
        repository, {gateway.name: gateway for gateway in gateways}, locks=locks, clock=clock
    )


class TestSubmitBatch:
    """Test fan-out and write-back of a batch."""

    @pytest.mark.asyncio
    async def test_partial_submission_failure_still_processes(self, repository, locks, clock):
        """Test one rejected job out of four leaves three request ids and processing."""
        gateway = FakeGateway(
            submit_results=["j1", ProviderCommunicationError("502 bad gateway"), "j3", "j4"]
        )
        coordinator = make_coordinator(repository, locks, clock, gateway)

        summary = await coordinator.submit_batch("a castle", "WaveSpeed", count=4)

        record = await repository.get(summary.record_id)
        assert summary.submitted == 3
        assert summary.failed == 1
        assert summary.status is BatchStatus.PROCESSING
        assert sorted(record.request_ids) == ["j1", "j3", "j4"]
        assert record.failed_submissions == ["502 bad gateway"]
        assert record.status is BatchStatus.PROCESSING
        assert record.note == "Batch started: 3 ok, 1 failed."
        assert record.invariant_violations() == []

    @pytest.mark.asyncio
    async def test_all_submissions_failing_fails_batch(self, repository, locks, clock):
        """Test a batch where no job was accepted ends failed immediately."""
        gateway = FakeGateway(
            submit_results=[SubmissionFailure("no id"), ProviderCommunicationError("down")]
        )
        coordinator = make_coordinator(repository, locks, clock, gateway)

        summary = await coordinator.submit_batch("a castle", "wavespeed", count=2)

        record = await repository.get(summary.record_id)
        assert summary.status is BatchStatus.FAILED
        assert record.status is BatchStatus.FAILED
        assert record.request_ids == []
        assert len(record.failed_submissions) == 2

    @pytest.mark.asyncio
    async def test_record_fields_written(self, repository, locks, clock):
        """Test the record carries the prompt, assets, size and model."""
        gateway = FakeGateway(name=ProviderName.FAL, submit_results=["f1"])
        coordinator = make_coordinator(repository, locks, clock, gateway)
        assets = JobAssets(subject_url="https://img/subject.png", reference_urls=["https://img/r1"])

        summary = await coordinator.submit_batch(
            "portrait", "fal", assets=assets, width=768, height=512
        )

        record = await repository.get(summary.record_id)
        assert record.provider is ProviderName.FAL
        assert record.prompt == "portrait"
        assert record.model == "test-model"
        assert record.subject_url == "https://img/subject.png"
        assert record.reference_urls == ["https://img/r1"]
        assert (record.width, record.height) == (768, 512)
        assert record.run_id == summary.run_id
        assert record.created_at == clock()

    @pytest.mark.asyncio
    async def test_jobs_carry_correlation_ids_and_prepared_assets(self, repository, locks, clock):
        """Test every submitted job gets the record id, run id and prepared inputs."""

        class PreparingGateway(FakeGateway):
            prepare_calls = 0

            async def prepare_assets(self, assets: JobAssets) -> Dict[str, Any]:
                self.prepare_calls += 1
                return {"images": ["data:image/png;base64,AAAA"]}

        gateway = PreparingGateway(submit_results=["j1", "j2"])
        coordinator = make_coordinator(repository, locks, clock, gateway)

        summary = await coordinator.submit_batch("a castle", "WaveSpeed", count=2)

        assert gateway.prepare_calls == 1
        assert len(gateway.submitted) == 2
        for job in gateway.submitted:
            assert job.record_id == summary.record_id
            assert job.run_id == summary.run_id
            assert job.prepared == {"images": ["data:image/png;base64,AAAA"]}
        assert gateway.webhook_url(summary.record_id, summary.run_id).startswith(
            f"https://hooks.test/webhooks/wavespeed?record_id={summary.record_id}"
        )

    @pytest.mark.asyncio
    async def test_invalid_provider_rejected_before_record_creation(self, repository, locks, clock):
        """Test an unknown provider raises and creates no record."""
        coordinator = make_coordinator(repository, locks, clock, FakeGateway())

        with pytest.raises(InvalidProvider):
            await coordinator.submit_batch("a castle", "Midjourney")

        assert repository.rows == {}

    @pytest.mark.asyncio
    async def test_count_below_one_rejected(self, repository, locks, clock):
        """Test count must be positive."""
        coordinator = make_coordinator(repository, locks, clock, FakeGateway())

        with pytest.raises(ValueError):
            await coordinator.submit_batch("a castle", "WaveSpeed", count=0)


class TestWriteBackRace:
    """Test submission write-back against early completions."""

    @pytest.mark.asyncio
    async def test_webhook_before_write_back_is_not_lost(self, repository, locks, clock, engine):
        """Test a completion racing the write-back is deferred, then picked up."""
        started = asyncio.Event()
        release = asyncio.Event()

        class SlowGateway(FakeGateway):
            async def submit(self, job):
                started.set()
                await release.wait()
                return await super().submit(job)

        gateway = SlowGateway(submit_results=["j1"])
        coordinator = make_coordinator(repository, locks, clock, gateway)

        task = asyncio.create_task(coordinator.submit_batch("a castle", "WaveSpeed"))
        await started.wait()
        record_id = next(iter(repository.rows))

        early = await engine.merge_completion(record_id, "j1", JobStatus.completed("https://img/1"))
        release.set()
        await task

        late = await engine.merge_completion(record_id, "j1", JobStatus.completed("https://img/1"))
        record = await repository.get(record_id)
        assert early.value == "not_ready"
        assert late.value == "applied"
        assert record.status is BatchStatus.COMPLETED


class TestSubmissionAborted:
    """Test a batch never stays pending when submission breaks off."""

    @pytest.mark.asyncio
    async def test_asset_preparation_error_fails_batch(self, repository, locks, clock):
        """Test an error while preparing assets marks the record failed and re-raises."""

        class BrokenAssetsGateway(FakeGateway):
            async def prepare_assets(self, assets: JobAssets) -> Dict[str, Any]:
                raise RuntimeError("asset store unreachable")

        gateway = BrokenAssetsGateway(submit_results=["j1"])
        coordinator = make_coordinator(repository, locks, clock, gateway)

        with pytest.raises(RuntimeError):
            await coordinator.submit_batch("a castle", "WaveSpeed")

        (record_id,) = repository.rows
        record = await repository.get(record_id)
        assert record.status is BatchStatus.FAILED
        assert "asset store unreachable" in record.note
        assert gateway.submitted == []

    @pytest.mark.asyncio
    async def test_write_back_store_error_fails_batch(self, repository, locks, clock):
        """Test a store error on the write-back leaves a failed record with a note."""
        gateway = FakeGateway(submit_results=["j1", "j2"])
        coordinator = make_coordinator(repository, locks, clock, gateway)
        original_patch = repository.patch
        calls = []

        async def flaky_patch(record_id, fields):
            calls.append(fields)
            if len(calls) == 1:
                raise StoreError("write rejected")
            await original_patch(record_id, fields)

        repository.patch = flaky_patch

        with pytest.raises(StoreError):
            await coordinator.submit_batch("a castle", "WaveSpeed", count=2)

        (record_id,) = repository.rows
        record = await repository.get(record_id)
        assert record.status is BatchStatus.FAILED
        assert "write rejected" in record.note
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_malformed_asset_url_is_skipped(self, repository, locks, clock):
        """Test an unparseable subject URL is dropped and the jobs are still submitted."""
        submitted = []

        def handler(request: httpx.Request) -> httpx.Response:
            submitted.append(request.url)
            return httpx.Response(200, json={"data": {"id": f"ws-{len(submitted)}"}})

        gateway = WaveSpeedGateway(
            api_key="ws-key",
            model="bytedance/seedream-v4",
            public_base_url="https://hooks.example.com",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        coordinator = make_coordinator(repository, locks, clock, gateway)

        summary = await coordinator.submit_batch(
            "a castle", "WaveSpeed", assets=JobAssets(subject_url="http://[::1"), count=2
        )

        record = await repository.get(summary.record_id)
        assert summary.submitted == 2
        assert record.status is BatchStatus.PROCESSING
        assert sorted(record.request_ids) == ["ws-1", "ws-2"]
