from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pricebook.domain.pricing_job import ItemFailure, PricingJob, ResultSummary
from pricebook.domain.value_objects import OrganizationId, PricingJobId


class PricingJobRepository:
    """
    Хранилище задач (JobStore). Все обновления статуса и прогресса
    идемпотентны и не двигают статус назад.
    """

    async def create(self, job: PricingJob) -> None:
        """
        Регистрирует новую задачу. Бросает JobConflictError, если у организации
        уже есть задача в статусе pending/processing.
        """
        raise NotImplementedError

    async def find_by_id(self, job_id: PricingJobId) -> Optional[PricingJob]:
        raise NotImplementedError

    async def list_active(self, organization_id: OrganizationId) -> List[PricingJob]:
        """
        Незавершённые задачи организации, новые первыми.
        """
        raise NotImplementedError

    async def find_latest(self, organization_id: OrganizationId) -> Optional[PricingJob]:
        """
        Самая новая задача организации в любом статусе.
        """
        raise NotImplementedError

    async def mark_processing(self, job_id: PricingJobId, at: datetime) -> bool:
        """
        pending -> processing. Для processing ничего не меняет и возвращает True
        (возобновление), для завершённой задачи возвращает False.
        """
        raise NotImplementedError

    async def update_progress(
        self,
        job_id: PricingJobId,
        processed: int,
        total: int,
        failures: List[ItemFailure],
        at: datetime,
    ) -> bool:
        """
        Upsert прогресса. Для завершённой задачи ничего не делает и возвращает
        False. processed никогда не уменьшается.
        """
        raise NotImplementedError

    async def complete(
        self,
        job_id: PricingJobId,
        summary: ResultSummary,
        at: datetime,
    ) -> bool:
        raise NotImplementedError

    async def fail(
        self,
        job_id: PricingJobId,
        error: str,
        summary: Optional[ResultSummary],
        at: datetime,
    ) -> bool:
        raise NotImplementedError
