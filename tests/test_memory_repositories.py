import asyncio
from datetime import timedelta

import pytest

from conftest import ORG, FakeClock
from pricebook.domain import (
    ItemFailure,
    FailureKind,
    JobStatus,
    OperationType,
    PricingJob,
    PricingJobId,
    ResultSummary,
)
from pricebook.domain.errors import ItemNotFoundError, JobConflictError
from pricebook.infrastructure.repositories import (
    LineItemMemoryRepository,
    PricingJobMemoryRepository,
)


def _job(job_id, clock, status=JobStatus.PENDING):
    return PricingJob(
        id=PricingJobId(job_id),
        organization_id=ORG,
        operation_type=OperationType.APPLY_PRICING,
        status=status,
        mode_id=None,
        mode_name=None,
        adjustments={"all": 1.0},
        target_item_ids=[],
        snapshot=[],
        processed_count=0,
        total_count=10,
        created_at=clock(),
        updated_at=clock(),
    )


class TestPricingJobMemoryRepository:
    def test_second_active_job_conflicts(self):
        clock = FakeClock()
        repo = PricingJobMemoryRepository()

        async def scenario():
            await repo.create(_job("one", clock))
            await repo.create(_job("two", clock))

        with pytest.raises(JobConflictError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.active_job_id == "one"

    def test_progress_is_monotonic(self):
        clock = FakeClock()
        repo = PricingJobMemoryRepository()

        async def scenario():
            await repo.create(_job("one", clock))
            await repo.update_progress(PricingJobId("one"), 6, 10, [], clock())
            await repo.update_progress(PricingJobId("one"), 4, 10, [], clock())
            return await repo.find_by_id(PricingJobId("one"))

        assert asyncio.run(scenario()).processed_count == 6

    def test_terminal_job_ignores_further_updates(self):
        clock = FakeClock()
        repo = PricingJobMemoryRepository()
        summary = ResultSummary(success_count=10, failed_count=0)

        async def scenario():
            await repo.create(_job("one", clock))
            assert await repo.complete(PricingJobId("one"), summary, clock())
            clock.advance(5)
            failure = ItemFailure("x", FailureKind.UNKNOWN, "late")
            results = (
                await repo.update_progress(PricingJobId("one"), 10, 10, [failure], clock()),
                await repo.fail(PricingJobId("one"), "stuck", None, clock()),
                await repo.mark_processing(PricingJobId("one"), clock()),
            )
            return results, await repo.find_by_id(PricingJobId("one"))

        results, job = asyncio.run(scenario())
        assert results == (False, False, False)
        assert job.status is JobStatus.COMPLETED
        assert job.error is None
        assert job.failures == []
        assert job.completed_at == job.updated_at

    def test_latest_and_active_are_newest_first(self):
        clock = FakeClock()
        repo = PricingJobMemoryRepository()

        async def scenario():
            await repo.create(_job("old", clock, JobStatus.COMPLETED))
            clock.advance(1)
            await repo.create(_job("new", clock))
            return await repo.find_latest(ORG), await repo.list_active(ORG)

        latest, active = asyncio.run(scenario())
        assert latest.id == "new"
        assert [j.id for j in active] == ["new"]

    def test_unknown_job_updates_are_no_ops(self):
        clock = FakeClock()
        repo = PricingJobMemoryRepository()
        assert asyncio.run(repo.mark_processing(PricingJobId("ghost"), clock())) is False
        assert asyncio.run(repo.find_latest(ORG)) is None


def test_set_price_on_missing_item_raises():
    repo = LineItemMemoryRepository()
    with pytest.raises(ItemNotFoundError):
        asyncio.run(repo.set_price("missing", 1.0, None))


def test_clock_helper_moves_forward():
    clock = FakeClock()
    start = clock()
    clock.advance(1.5)
    assert clock() - start == timedelta(seconds=1.5)
