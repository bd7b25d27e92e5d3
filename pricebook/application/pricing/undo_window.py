from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional

from pricebook.config import DEFAULT_UNDO_WINDOW_SECONDS
from pricebook.domain.errors import UndoUnavailableError
from pricebook.domain.pricing_job import PricingJob, SnapshotEntry
from pricebook.domain.repositories.pricing_job_repository import PricingJobRepository
from pricebook.domain.value_objects import JobStatus, OperationType, PricingJobId

from .clock import Clock, utcnow
from .pricing_job_service import PricingJobService

logger = logging.getLogger(__name__)


class UndoWindow:
    """
    Обратный отсчёт для отката завершённой задачи применения режима.

    Таймер только для отображения. Решающее правило: откат возможен,
    пока для организации не создана более новая задача. После истечения
    окна или после отката снимок больше не используется. Откат отката
    не поддерживается.
    """

    def __init__(
        self,
        job: PricingJob,
        service: PricingJobService,
        jobs: PricingJobRepository,
        *,
        duration_seconds: int = DEFAULT_UNDO_WINDOW_SECONDS,
        clock: Clock = utcnow,
    ) -> None:
        if not self.is_eligible(job):
            raise UndoUnavailableError(f"job {job.id} cannot be undone")
        self._job = job
        self._service = service
        self._jobs = jobs
        self._clock = clock
        self._expires_at: datetime = job.completed_at + timedelta(seconds=duration_seconds)
        self._snapshot: Optional[List[SnapshotEntry]] = list(job.snapshot)
        self._undo_job_id: Optional[PricingJobId] = None

    @classmethod
    def open_for(
        cls,
        job: PricingJob,
        service: PricingJobService,
        jobs: PricingJobRepository,
        *,
        duration_seconds: int = DEFAULT_UNDO_WINDOW_SECONDS,
        clock: Clock = utcnow,
    ) -> Optional["UndoWindow"]:
        """
        Окно для задачи или None, если откатывать нечего. Время считается
        от completed_at, поэтому после перезагрузки отсчёт продолжается.
        """
        if not cls.is_eligible(job):
            return None
        window = cls(job, service, jobs, duration_seconds=duration_seconds, clock=clock)
        if not window.is_open():
            return None
        return window

    @staticmethod
    def is_eligible(job: PricingJob) -> bool:
        return (
            job.operation_type is OperationType.APPLY_PRICING
            and job.status is JobStatus.COMPLETED
            and job.completed_at is not None
            and job.result_summary is not None
            and job.result_summary.success_count > 0
        )

    @property
    def job(self) -> PricingJob:
        return self._job

    @property
    def expires_at(self) -> datetime:
        return self._expires_at

    @property
    def undo_job_id(self) -> Optional[PricingJobId]:
        return self._undo_job_id

    def seconds_left(self) -> int:
        remaining = (self._expires_at - self._clock()).total_seconds()
        return max(0, math.ceil(remaining))

    def is_open(self) -> bool:
        if self._snapshot is None:
            return False
        if self._clock() >= self._expires_at:
            self._snapshot = None
            return False
        return True

    async def is_superseded(self) -> bool:
        latest = await self._jobs.find_latest(self._job.organization_id)
        return latest is not None and latest.id != self._job.id

    async def undo(self) -> PricingJobId:
        if self._undo_job_id is not None:
            raise UndoUnavailableError(f"job {self._job.id} was already undone")
        if not self.is_open():
            raise UndoUnavailableError(f"undo window for job {self._job.id} has expired")
        if await self.is_superseded():
            self._snapshot = None
            raise UndoUnavailableError(
                f"job {self._job.id} was superseded by a newer pricing job"
            )

        self._undo_job_id = await self._service.create_undo_job(
            self._job.organization_id,
            self._snapshot,
            source_job=self._job,
        )
        self._snapshot = None
        logger.info("Undo of pricing job %s started as %s", self._job.id, self._undo_job_id)
        return self._undo_job_id
