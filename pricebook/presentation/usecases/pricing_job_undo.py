from __future__ import annotations

from pricebook.application.pricing import UndoWindow
from pricebook.domain.errors import JobNotFoundError, UndoUnavailableError
from pricebook.domain.value_objects import PricingJobId

from .pricing_context import open_pricing_context
from .pricing_job_create import schedule_pricing_job


async def undo_pricing_job_usecase(job_id: str) -> str:
    """
    Создаёт задачу отката для завершённой задачи и запускает её в фоне.

    UndoUnavailableError: окно истекло, задачу вытеснила более новая
    или откатывать нечего.
    """
    ctx = await open_pricing_context()
    try:
        job = await ctx.jobs.find_by_id(PricingJobId(job_id))
        if job is None:
            raise JobNotFoundError(job_id)

        window = UndoWindow.open_for(
            job,
            ctx.service,
            ctx.jobs,
            duration_seconds=ctx.config.undo_window_seconds,
        )
        if window is None:
            raise UndoUnavailableError(f"job {job_id} can no longer be undone")

        undo_job_id = await window.undo()
    finally:
        await ctx.close()

    schedule_pricing_job(undo_job_id)
    return str(undo_job_id)
