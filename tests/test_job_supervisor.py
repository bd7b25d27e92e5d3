import asyncio

from conftest import DISCOUNT_MODE, ORG, OTHER_ORG, build_engine, make_item
from pricebook.application.pricing import RecoveryAction
from pricebook.domain import JobStatus, PricingJobId, STUCK_REASON


def _five_items():
    return [make_item(str(i), 10.0 * (i + 1)) for i in range(5)]


def test_old_unstarted_job_is_abandoned_as_stuck():
    engine = build_engine(_five_items())

    async def scenario():
        job_id = await engine.service.create_job(ORG, DISCOUNT_MODE.id)
        engine.clock.advance(180)
        outcome = await engine.supervisor.recover(ORG)
        return outcome, await engine.jobs.find_by_id(job_id)

    outcome, job = asyncio.run(scenario())

    assert outcome.action is RecoveryAction.ABANDONED
    assert job.status is JobStatus.FAILED
    assert job.error == STUCK_REASON
    assert job.completed_at == engine.clock.now
    assert engine.items.writes == []


def test_started_job_without_recent_progress_is_abandoned():
    engine = build_engine(_five_items())

    async def scenario():
        job_id = await engine.service.create_job(ORG, DISCOUNT_MODE.id)
        await engine.jobs.mark_processing(job_id, engine.clock())
        await engine.jobs.update_progress(job_id, 2, 5, [], engine.clock())
        engine.clock.advance(45)
        outcome = await engine.supervisor.recover(ORG)
        return outcome, await engine.jobs.find_by_id(job_id)

    outcome, job = asyncio.run(scenario())

    assert outcome.action is RecoveryAction.ABANDONED
    assert job.error == STUCK_REASON
    assert job.result_summary.success_count == 2
    assert job.result_summary.failed_count == 0


def test_pending_job_waiting_a_little_is_resumed_not_abandoned():
    engine = build_engine(_five_items())

    async def scenario():
        job_id = await engine.service.create_job(ORG, DISCOUNT_MODE.id)
        engine.clock.advance(45)
        outcome = await engine.supervisor.recover(ORG)
        await engine.supervisor.join()
        return outcome, await engine.jobs.find_by_id(job_id)

    outcome, job = asyncio.run(scenario())

    assert outcome.action is RecoveryAction.RESUMED
    assert job.status is JobStatus.COMPLETED
    assert job.result_summary.success_count == 5


def test_live_job_resumes_from_its_checkpoint():
    engine = build_engine(_five_items())
    progress = []

    async def scenario():
        job_id = await engine.service.create_job(ORG, DISCOUNT_MODE.id)
        job = await engine.jobs.find_by_id(job_id)
        for entry in job.snapshot[:2]:
            item = await engine.items.get(entry.item_id)
            await engine.items.set_price(item.id, DISCOUNT_MODE.apply(item), DISCOUNT_MODE.id)
        await engine.jobs.mark_processing(job_id, engine.clock())
        await engine.jobs.update_progress(job_id, 2, 5, [], engine.clock())
        engine.clock.advance(5)

        outcome = await engine.supervisor.start(
            ORG, progress_cb=lambda p, t: progress.append((p, t))
        )
        await engine.supervisor.join()
        return outcome, await engine.jobs.find_by_id(job_id)

    outcome, job = asyncio.run(scenario())

    assert outcome.action is RecoveryAction.RESUMED
    assert outcome.job.processed_count == 2
    assert job.status is JobStatus.COMPLETED
    assert progress == [(4, 5), (5, 5)]
    assert [w[0] for w in engine.items.writes[2:]] == ["2", "3", "4"]


def test_nothing_to_recover():
    engine = build_engine(_five_items())
    outcome = asyncio.run(engine.supervisor.recover(ORG))
    assert outcome.action is RecoveryAction.NONE
    assert outcome.job is None


def test_known_terminal_job_is_surfaced_once():
    engine = build_engine(_five_items())

    async def scenario():
        job = await engine.service.apply_mode(ORG, DISCOUNT_MODE.id)
        first = await engine.supervisor.recover(ORG, known_job_id=job.id)
        second = await engine.supervisor.recover(ORG, known_job_id=job.id)
        return first, second

    first, second = asyncio.run(scenario())

    assert first.action is RecoveryAction.SURFACED
    assert first.job.status is JobStatus.COMPLETED
    assert second.action is RecoveryAction.NONE


def test_abandoned_job_is_not_surfaced_again():
    engine = build_engine(_five_items())

    async def scenario():
        job_id = await engine.service.create_job(ORG, DISCOUNT_MODE.id)
        engine.clock.advance(300)
        await engine.supervisor.recover(ORG)
        return await engine.supervisor.recover(ORG, known_job_id=job_id)

    assert asyncio.run(scenario()).action is RecoveryAction.NONE


def test_switching_organization_rebinds_supervisor():
    engine = build_engine(_five_items())

    async def scenario():
        await engine.supervisor.start(ORG)
        await engine.supervisor.start(OTHER_ORG)
        bound = engine.supervisor.organization_id
        await engine.supervisor.stop()
        return bound, engine.supervisor.organization_id

    bound, after_stop = asyncio.run(scenario())
    assert bound == OTHER_ORG
    assert after_stop is None


def test_runner_keeps_writing_after_external_fail():
    engine = build_engine(_five_items(), batch_size=1)

    async def scenario():
        job_id = await engine.service.create_job(ORG, DISCOUNT_MODE.id)

        async def fail_midway(processed, total):
            if processed == 2:
                await engine.jobs.fail(job_id, STUCK_REASON, None, engine.clock())

        job = await engine.runner.run(job_id, fail_midway)
        return job

    job = asyncio.run(scenario())

    # статус остаётся тем, что записал супервизор
    assert job.status is JobStatus.FAILED
    assert job.error == STUCK_REASON
    assert job.processed_count == 2
    assert len(engine.items.writes) == 5


def test_watch_forwards_progress_until_terminal():
    engine = build_engine(_five_items(), batch_size=1)
    seen = []

    async def scenario():
        job_id = await engine.service.create_job(ORG, DISCOUNT_MODE.id)
        run = engine.service.start_job(job_id)
        watched = await engine.supervisor.watch(
            job_id, lambda p, t: seen.append(p), interval=0
        )
        await run
        return watched

    job = asyncio.run(scenario())

    assert job.status is JobStatus.COMPLETED
    assert seen[-1] == 5
    assert seen == sorted(set(seen))


def test_watch_unknown_job_returns_none():
    engine = build_engine()
    assert asyncio.run(engine.supervisor.watch(PricingJobId("nope"), lambda p, t: None, interval=0)) is None


def test_is_abandoned_thresholds():
    engine = build_engine(_five_items())

    async def scenario():
        job_id = await engine.service.create_job(ORG, DISCOUNT_MODE.id)
        return await engine.jobs.find_by_id(job_id)

    job = asyncio.run(scenario())
    start = engine.clock.now

    engine.clock.advance(119)
    assert not engine.supervisor.is_abandoned(job)
    engine.clock.advance(2)
    assert engine.supervisor.is_abandoned(job)
    assert engine.supervisor.is_abandoned(job, start) is False
