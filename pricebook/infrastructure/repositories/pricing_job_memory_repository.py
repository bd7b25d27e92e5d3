from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from pricebook.domain.errors import JobConflictError
from pricebook.domain.pricing_job import ItemFailure, PricingJob, ResultSummary
from pricebook.domain.repositories.pricing_job_repository import PricingJobRepository
from pricebook.domain.value_objects import (
    JobStatus,
    OrganizationId,
    PricingJobId,
)


class PricingJobMemoryRepository(PricingJobRepository):
    """
    JobStore в памяти процесса. Между проверкой конфликта и вставкой
    нет await, поэтому create атомарен в рамках одного event loop.
    """

    def __init__(self) -> None:
        self._jobs: Dict[PricingJobId, PricingJob] = {}
        self._order: Dict[PricingJobId, int] = {}

    async def create(self, job: PricingJob) -> None:
        active = self._active(job.organization_id)
        if active:
            raise JobConflictError(job.organization_id, active[0].id)

        self._order[job.id] = len(self._order)
        self._jobs[job.id] = job

    async def find_by_id(self, job_id: PricingJobId) -> Optional[PricingJob]:
        return self._jobs.get(job_id)

    async def list_active(self, organization_id: OrganizationId) -> List[PricingJob]:
        return self._active(organization_id)

    async def find_latest(self, organization_id: OrganizationId) -> Optional[PricingJob]:
        jobs = self._newest_first(organization_id)
        return jobs[0] if jobs else None

    async def mark_processing(self, job_id: PricingJobId, at: datetime) -> bool:
        job = self._jobs.get(job_id)
        if job is None or job.is_terminal:
            return False
        self._jobs[job_id] = replace(job, status=JobStatus.PROCESSING, updated_at=at)
        return True

    async def update_progress(
        self,
        job_id: PricingJobId,
        processed: int,
        total: int,
        failures: List[ItemFailure],
        at: datetime,
    ) -> bool:
        job = self._jobs.get(job_id)
        if job is None or job.is_terminal:
            return False
        self._jobs[job_id] = replace(
            job,
            processed_count=max(job.processed_count, processed),
            total_count=total,
            failures=list(failures),
            updated_at=at,
        )
        return True

    async def complete(
        self,
        job_id: PricingJobId,
        summary: ResultSummary,
        at: datetime,
    ) -> bool:
        return self._finish(job_id, JobStatus.COMPLETED, None, summary, at)

    async def fail(
        self,
        job_id: PricingJobId,
        error: str,
        summary: Optional[ResultSummary],
        at: datetime,
    ) -> bool:
        return self._finish(job_id, JobStatus.FAILED, error, summary, at)

    def _finish(
        self,
        job_id: PricingJobId,
        status: JobStatus,
        error: Optional[str],
        summary: Optional[ResultSummary],
        at: datetime,
    ) -> bool:
        job = self._jobs.get(job_id)
        if job is None or job.is_terminal:
            return False
        self._jobs[job_id] = replace(
            job,
            status=status,
            error=error,
            result_summary=summary,
            updated_at=at,
            completed_at=at,
        )
        return True

    def _newest_first(self, organization_id: OrganizationId) -> List[PricingJob]:
        jobs = [j for j in self._jobs.values() if j.organization_id == organization_id]
        return sorted(
            jobs,
            key=lambda j: (j.created_at, self._order[j.id]),
            reverse=True,
        )

    def _active(self, organization_id: OrganizationId) -> List[PricingJob]:
        return [j for j in self._newest_first(organization_id) if not j.is_terminal]
