from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from pricebook.application.pricing import RecoveryAction, RecoveryOutcome
from pricebook.domain.value_objects import OrganizationId, PricingJobId

from .pricing_context import PricingContext, open_pricing_context

logger = logging.getLogger(__name__)

_background: Set[asyncio.Task] = set()


async def _finish_resumed(ctx: PricingContext) -> None:
    try:
        await ctx.supervisor.join()
    finally:
        await ctx.close()


async def recover_pricing_jobs_usecase(
    organization_id: str,
    known_job_id: Optional[str] = None,
) -> RecoveryOutcome:
    """
    Вызывается при выборе организации (или после перезагрузки клиента):
    помечает зависшую задачу failed, живую возобновляет в фоне,
    уже завершённую возвращает один раз для показа итога.
    """
    ctx = await open_pricing_context()
    try:
        outcome = await ctx.supervisor.start(
            OrganizationId(organization_id),
            PricingJobId(known_job_id) if known_job_id else None,
        )
    except Exception:
        await ctx.close()
        raise

    if outcome.action is RecoveryAction.RESUMED:
        # соединение живёт, пока возобновлённая задача не доработает
        task = asyncio.create_task(_finish_resumed(ctx))
        _background.add(task)
        task.add_done_callback(_background.discard)
    else:
        await ctx.supervisor.stop()
        await ctx.close()

    logger.info("Recovery for organization %s: %s", organization_id, outcome.action.value)
    return outcome
