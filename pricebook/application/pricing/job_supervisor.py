from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Set

from pricebook.config import JobEngineConfig
from pricebook.domain.pricing_job import PricingJob, ResultSummary
from pricebook.domain.repositories.pricing_job_repository import PricingJobRepository
from pricebook.domain.value_objects import STUCK_REASON, OrganizationId, PricingJobId

from .clock import Clock, utcnow
from .pricing_job_runner import PricingJobRunner, ProgressCallback, notify_progress

logger = logging.getLogger(__name__)


class RecoveryAction(str, Enum):
    NONE = "none"
    RESUMED = "resumed"
    ABANDONED = "abandoned"
    SURFACED = "surfaced"


@dataclass(frozen=True)
class RecoveryOutcome:
    action: RecoveryAction
    job: Optional[PricingJob] = None


class JobSupervisor:
    """
    Восстановление задач после перезагрузки страницы или рестарта процесса.

    Экземпляр принадлежит вызывающему коду и привязан к выбранной организации:
    start() при выборе организации, stop() при уходе с неё.

    Зависшей считается задача старше max_age_seconds или начатая задача,
    прогресс которой не обновлялся дольше idle_seconds. Такая задача
    помечается failed с причиной "stuck" без попытки продолжить.
    Живая задача возобновляется с processed_count тем же раннером.
    """

    def __init__(
        self,
        jobs: PricingJobRepository,
        runner: PricingJobRunner,
        *,
        config: Optional[JobEngineConfig] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._jobs = jobs
        self._runner = runner
        self._config = config or JobEngineConfig()
        self._clock = clock
        self._organization_id: Optional[OrganizationId] = None
        self._resumed: Dict[PricingJobId, asyncio.Task] = {}
        self._watchers: Set[asyncio.Task] = set()
        self._surfaced: Set[PricingJobId] = set()

    @property
    def organization_id(self) -> Optional[OrganizationId]:
        return self._organization_id

    async def start(
        self,
        organization_id: OrganizationId,
        known_job_id: Optional[PricingJobId] = None,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> RecoveryOutcome:
        if self._organization_id is not None and self._organization_id != organization_id:
            await self.stop()

        self._organization_id = organization_id
        return await self.recover(organization_id, known_job_id, progress_cb)

    async def stop(self) -> None:
        """
        Отключает наблюдателей. Возобновлённые прогоны не отменяются:
        API отмены у задач нет, они дорабатывают сами (см. join()).
        """
        for task in list(self._watchers):
            task.cancel()
        if self._watchers:
            await asyncio.gather(*self._watchers, return_exceptions=True)
        self._watchers.clear()
        self._organization_id = None

    async def join(self) -> None:
        tasks = list(self._resumed.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def is_abandoned(self, job: PricingJob, now: Optional[datetime] = None) -> bool:
        now = now or self._clock()
        age = now - job.created_at
        if age > timedelta(seconds=self._config.max_age_seconds):
            return True

        idle = now - job.updated_at
        return job.processed_count > 0 and idle > timedelta(seconds=self._config.idle_seconds)

    async def recover(
        self,
        organization_id: OrganizationId,
        known_job_id: Optional[PricingJobId] = None,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> RecoveryOutcome:
        if known_job_id is not None:
            known = await self._jobs.find_by_id(known_job_id)
            if known is not None and known.is_terminal:
                return self._surface(known)

        active = await self._jobs.list_active(organization_id)
        if not active:
            return RecoveryOutcome(RecoveryAction.NONE)

        job = active[0]
        now = self._clock()

        if self.is_abandoned(job, now):
            summary = ResultSummary(
                success_count=job.processed_count - len(job.failures),
                failed_count=len(job.failures),
                failures=list(job.failures),
            )
            await self._jobs.fail(job.id, STUCK_REASON, summary, now)
            logger.warning(
                "Pricing job %s abandoned as stuck: age %ss, %s/%s processed",
                job.id,
                int((now - job.created_at).total_seconds()),
                job.processed_count,
                job.total_count,
            )
            refreshed = await self._jobs.find_by_id(job.id)
            if refreshed is not None and refreshed.is_terminal:
                # причина "stuck" уже показана, повторно не показываем
                self._surfaced.add(refreshed.id)
            return RecoveryOutcome(RecoveryAction.ABANDONED, refreshed or job)

        # Задача могла завершиться между list_active и этим моментом.
        latest = await self._jobs.find_by_id(job.id)
        if latest is not None and latest.is_terminal:
            return self._surface(latest)

        if job.id not in self._resumed and not self._runner.is_running(job.id):
            logger.info(
                "Resuming pricing job %s from %s/%s",
                job.id,
                job.processed_count,
                job.total_count,
            )
            task = asyncio.create_task(
                self._runner.run(job.id, progress_cb, start_at=job.processed_count)
            )
            self._resumed[job.id] = task
            task.add_done_callback(lambda _t, job_id=job.id: self._resumed.pop(job_id, None))

        return RecoveryOutcome(RecoveryAction.RESUMED, job)

    async def watch(
        self,
        job_id: PricingJobId,
        progress_cb: ProgressCallback,
        *,
        interval: Optional[float] = None,
    ) -> Optional[PricingJob]:
        """
        Опрашивает хранилище и передаёт изменившийся прогресс в колбэк,
        пока задача не завершится. Возвращает последнее состояние задачи.
        """
        interval = self._config.poll_seconds if interval is None else interval
        task = asyncio.create_task(self._poll(job_id, progress_cb, interval))
        self._watchers.add(task)
        task.add_done_callback(self._watchers.discard)
        return await task

    async def _poll(
        self,
        job_id: PricingJobId,
        progress_cb: ProgressCallback,
        interval: float,
    ) -> Optional[PricingJob]:
        last_processed: Optional[int] = None
        while True:
            job = await self._jobs.find_by_id(job_id)
            if job is None:
                return None

            if job.processed_count != last_processed:
                last_processed = job.processed_count
                await notify_progress(progress_cb, job.processed_count, job.total_count)

            if job.is_terminal:
                self._surfaced.add(job.id)
                return job

            await asyncio.sleep(interval)

    def _surface(self, job: PricingJob) -> RecoveryOutcome:
        if job.id in self._surfaced:
            return RecoveryOutcome(RecoveryAction.NONE, job)
        self._surfaced.add(job.id)
        logger.info("Pricing job %s already %s", job.id, job.status.value)
        return RecoveryOutcome(RecoveryAction.SURFACED, job)
