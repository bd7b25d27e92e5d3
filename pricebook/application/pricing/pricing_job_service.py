from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, List, Optional, Sequence, Set
from uuid import uuid4

from pricebook.domain.errors import (
    JobConflictError,
    ModeNotFoundError,
    PricingError,
    SnapshotCaptureError,
)
from pricebook.domain.pricing_job import PricingJob, SnapshotEntry
from pricebook.domain.pricing_mode import PricingMode
from pricebook.domain.repositories.line_item_repository import LineItemRepository
from pricebook.domain.repositories.pricing_job_repository import PricingJobRepository
from pricebook.domain.repositories.pricing_mode_repository import PricingModeRepository
from pricebook.domain.value_objects import (
    JobStatus,
    LineItemId,
    OperationType,
    OrganizationId,
    PricingJobId,
    PricingModeId,
)

from .clock import Clock, utcnow
from .pricing_job_runner import PricingJobRunner, ProgressCallback

logger = logging.getLogger(__name__)


def _new_job_id() -> str:
    return str(uuid4())


class PricingJobService:
    """
    Точка входа для внешних слоёв: создание задач (прямой и откат),
    чтение статуса и запуск выполнения.

    Создание синхронное и быстрое: снимок цен снимается до первой записи,
    сама переоценка идёт в PricingJobRunner.
    """

    def __init__(
        self,
        jobs: PricingJobRepository,
        items: LineItemRepository,
        modes: PricingModeRepository,
        runner: PricingJobRunner,
        *,
        clock: Clock = utcnow,
        id_factory: Callable[[], str] = _new_job_id,
    ) -> None:
        self._jobs = jobs
        self._items = items
        self._modes = modes
        self._runner = runner
        self._clock = clock
        self._id_factory = id_factory
        self._tasks: Set[asyncio.Task] = set()

    @property
    def runner(self) -> PricingJobRunner:
        return self._runner

    async def create_job(
        self,
        organization_id: OrganizationId,
        mode_id: PricingModeId,
        item_ids: Optional[Sequence[LineItemId]] = None,
    ) -> PricingJobId:
        mode = await self._modes.find_by_id(mode_id)
        if mode is None or not self._mode_visible(mode, organization_id):
            raise ModeNotFoundError(mode_id)

        await self._ensure_no_active_job(organization_id)

        target_ids = _unique(item_ids or [])
        snapshot = await self._capture_snapshot(organization_id, target_ids)

        now = self._clock()
        job = PricingJob(
            id=PricingJobId(self._id_factory()),
            organization_id=organization_id,
            operation_type=OperationType.APPLY_PRICING,
            status=JobStatus.PENDING,
            mode_id=mode.id,
            mode_name=mode.name,
            adjustments=dict(mode.adjustments),
            target_item_ids=target_ids,
            snapshot=snapshot,
            processed_count=0,
            total_count=len(snapshot),
            created_at=now,
            updated_at=now,
        )
        await self._jobs.create(job)
        await self._modes.record_usage(mode.id)

        logger.info(
            "Created pricing job %s (%s) for organization %s: %s items",
            job.id,
            mode.name,
            organization_id,
            job.total_count,
        )
        return job.id

    async def create_undo_job(
        self,
        organization_id: OrganizationId,
        snapshot: Iterable[SnapshotEntry],
        *,
        source_job: Optional[PricingJob] = None,
    ) -> PricingJobId:
        entries = list(snapshot)
        await self._ensure_no_active_job(organization_id)

        now = self._clock()
        job = PricingJob(
            id=PricingJobId(self._id_factory()),
            organization_id=organization_id,
            operation_type=OperationType.UNDO_PRICING,
            status=JobStatus.PENDING,
            mode_id=source_job.mode_id if source_job else None,
            mode_name=source_job.mode_name if source_job else None,
            adjustments={},
            target_item_ids=[entry.item_id for entry in entries],
            snapshot=entries,
            processed_count=0,
            total_count=len(entries),
            created_at=now,
            updated_at=now,
            source_job_id=source_job.id if source_job else None,
        )
        await self._jobs.create(job)

        logger.info(
            "Created undo job %s for organization %s: %s items",
            job.id,
            organization_id,
            job.total_count,
        )
        return job.id

    async def get_job_status(self, job_id: PricingJobId) -> Optional[PricingJob]:
        return await self._jobs.find_by_id(job_id)

    async def get_active_jobs(self, organization_id: OrganizationId) -> List[PricingJob]:
        return await self._jobs.list_active(organization_id)

    async def run_job(
        self,
        job_id: PricingJobId,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> Optional[PricingJob]:
        return await self._runner.run(job_id, progress_cb)

    def start_job(
        self,
        job_id: PricingJobId,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> asyncio.Task:
        """
        Запускает выполнение в фоне текущего event loop.
        """
        task = asyncio.create_task(self._runner.run(job_id, progress_cb))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def apply_mode(
        self,
        organization_id: OrganizationId,
        mode_id: PricingModeId,
        item_ids: Optional[Sequence[LineItemId]] = None,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> Optional[PricingJob]:
        job_id = await self.create_job(organization_id, mode_id, item_ids)
        return await self.run_job(job_id, progress_cb)

    async def _ensure_no_active_job(self, organization_id: OrganizationId) -> None:
        # Быстрая проверка до снятия снимка. Окончательно конфликт
        # ловит хранилище в create().
        active = await self._jobs.list_active(organization_id)
        if active:
            raise JobConflictError(organization_id, active[0].id)

    async def _capture_snapshot(
        self,
        organization_id: OrganizationId,
        target_ids: List[LineItemId],
    ) -> List[SnapshotEntry]:
        try:
            if not target_ids:
                items = await self._items.list_by_organization(organization_id)
                return [
                    SnapshotEntry(item.id, item.price, item.applied_mode_id)
                    for item in items
                ]

            snapshot: List[SnapshotEntry] = []
            for item_id in target_ids:
                item = await self._items.get(item_id)
                if item is None or item.organization_id != organization_id:
                    # позиция упадёт в ItemNotFound и при выполнении, и при откате
                    snapshot.append(SnapshotEntry(item_id, None, found=False))
                else:
                    snapshot.append(SnapshotEntry(item.id, item.price, item.applied_mode_id))
            return snapshot
        except PricingError:
            raise
        except Exception as exc:
            raise SnapshotCaptureError(
                f"failed to capture prices for organization {organization_id}: {exc}"
            ) from exc

    @staticmethod
    def _mode_visible(mode: PricingMode, organization_id: OrganizationId) -> bool:
        return mode.is_preset or mode.organization_id == organization_id


def _unique(item_ids: Iterable[LineItemId]) -> List[LineItemId]:
    seen: Set[LineItemId] = set()
    result: List[LineItemId] = []
    for item_id in item_ids:
        if item_id not in seen:
            seen.add(item_id)
            result.append(item_id)
    return result
