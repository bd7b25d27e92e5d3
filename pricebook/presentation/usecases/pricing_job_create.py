from __future__ import annotations

import asyncio
import logging
import sys
from typing import List, Optional, Set

from pricebook.domain.value_objects import (
    LineItemId,
    OrganizationId,
    PricingJobId,
    PricingModeId,
)

from .pricing_context import open_pricing_context

logger = logging.getLogger(__name__)

_background: Set[asyncio.Task] = set()


async def _run_pricing_job(job_id: PricingJobId) -> None:
    """
    Фоновый прогон задачи со своим соединением с БД.
    """
    ctx = await open_pricing_context()
    try:
        await ctx.runner.run(job_id)
    except Exception:
        # статус failed уже записан раннером
        logger.exception("Background pricing job %s crashed", job_id)
    finally:
        await ctx.close()


def schedule_pricing_job(job_id: PricingJobId) -> asyncio.Task:
    task = asyncio.create_task(_run_pricing_job(job_id))
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task


async def create_pricing_job_usecase(
    organization_id: str,
    mode_id: str,
    item_ids: Optional[List[str]] = None,
) -> str:
    """
    Создаёт задачу применения режима (снимок цен снимается сразу)
    и запускает её выполнение в фоне. Возвращает id задачи.

    JobConflictError пробрасывается вызывающему: вторая задача не создаётся.
    """
    ctx = await open_pricing_context()
    try:
        job_id = await ctx.service.create_job(
            OrganizationId(organization_id),
            PricingModeId(mode_id),
            [LineItemId(i) for i in item_ids] if item_ids else None,
        )
    finally:
        await ctx.close()

    schedule_pricing_job(job_id)
    return str(job_id)


async def _main_cli(organization_id: str, mode_id: str) -> None:
    """
    Применяет режим ко всему прайс-листу организации и печатает прогресс.
    """
    ctx = await open_pricing_context()
    try:
        def _print_progress(processed: int, total: int) -> None:
            print(f"  {processed}/{total}")

        job = await ctx.service.apply_mode(
            OrganizationId(organization_id),
            PricingModeId(mode_id),
            progress_cb=_print_progress,
        )
        if job is None:
            print("Job disappeared")
            return
        print(f"Status: {job.status.value}")
        if job.result_summary is not None:
            print(job.result_summary.message)
    finally:
        await ctx.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("usage: python -m pricebook.presentation.usecases.pricing_job_create ORG_ID MODE_ID")
        sys.exit(2)
    asyncio.run(_main_cli(sys.argv[1], sys.argv[2]))
