from __future__ import annotations

from typing import List, Optional

from pricebook.domain.pricing_job import PricingJob
from pricebook.domain.value_objects import OrganizationId, PricingJobId

from .pricing_context import open_pricing_context


async def get_pricing_job_usecase(job_id: str) -> Optional[PricingJob]:
    ctx = await open_pricing_context()
    try:
        return await ctx.service.get_job_status(PricingJobId(job_id))
    finally:
        await ctx.close()


async def list_active_pricing_jobs_usecase(organization_id: str) -> List[PricingJob]:
    """
    Незавершённые задачи организации, новые первыми.
    """
    ctx = await open_pricing_context()
    try:
        return await ctx.service.get_active_jobs(OrganizationId(organization_id))
    finally:
        await ctx.close()
