from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Iterator, List, Optional, Sequence, Set, Union

from pricebook.config import DEFAULT_BATCH_SIZE
from pricebook.domain.errors import (
    ItemNotFoundError,
    ItemOperationError,
)
from pricebook.domain.line_item import LineItem
from pricebook.domain.pricing_job import (
    ItemFailure,
    PricingJob,
    ResultSummary,
    SnapshotEntry,
)
from pricebook.domain.pricing_mode import apply_adjustments
from pricebook.domain.repositories.line_item_repository import LineItemRepository
from pricebook.domain.repositories.pricing_job_repository import PricingJobRepository
from pricebook.domain.value_objects import FailureKind, PricingJobId

from .clock import Clock, utcnow

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


def iter_batches(entries: Sequence[SnapshotEntry], size: int) -> Iterator[Sequence[SnapshotEntry]]:
    for start in range(0, len(entries), size):
        yield entries[start:start + size]


async def notify_progress(
    progress_cb: Optional[ProgressCallback],
    processed: int,
    total: int,
) -> None:
    """
    Ошибки колбэка прогресса глотаются: на статус задачи они не влияют.
    """
    if progress_cb is None:
        return
    try:
        result = progress_cb(processed, total)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.warning("Progress callback failed at %s/%s", processed, total, exc_info=True)


class PricingJobRunner:
    """
    Выполняет задачу батчами фиксированного размера.

    Ошибки по отдельным позициям накапливаются в failures и не прерывают цикл.
    Задача получает failed, только если не удалось ни одной позиции
    или случилась ошибка уровня задачи (например, упало хранилище задач).

    Отмены нет: если супервизор пометил задачу failed, уже идущий прогон
    дописывает оставшиеся батчи, а обновления статуса просто не применяются.
    """

    def __init__(
        self,
        jobs: PricingJobRepository,
        items: LineItemRepository,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Clock = utcnow,
        running: Optional[Set[PricingJobId]] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {batch_size}")
        self._jobs = jobs
        self._items = items
        self._batch_size = batch_size
        self._clock = clock
        # реестр может быть общим для всех раннеров процесса
        self._running: Set[PricingJobId] = set() if running is None else running

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def is_running(self, job_id: PricingJobId) -> bool:
        return job_id in self._running

    async def run(
        self,
        job_id: PricingJobId,
        progress_cb: Optional[ProgressCallback] = None,
        start_at: Optional[int] = None,
    ) -> Optional[PricingJob]:
        job = await self._jobs.find_by_id(job_id)
        if job is None:
            logger.warning("Pricing job %s not found, nothing to run", job_id)
            return None

        if job.is_terminal:
            return job

        if job_id in self._running:
            logger.info("Pricing job %s is already running in this process", job_id)
            return job

        self._running.add(job_id)
        try:
            return await self._execute(job, progress_cb, start_at)
        except Exception as exc:
            logger.exception("Pricing job %s failed", job_id)
            await self._jobs.fail(job_id, str(exc) or type(exc).__name__, None, self._clock())
            raise
        finally:
            self._running.discard(job_id)

    async def _execute(
        self,
        job: PricingJob,
        progress_cb: Optional[ProgressCallback],
        start_at: Optional[int],
    ) -> Optional[PricingJob]:
        total = job.total_count
        start = job.processed_count if start_at is None else start_at
        start = max(0, min(start, total))

        # Ошибки уже пройденных позиций сохраняем, повторно выполняемые пересчитаются.
        done_ids = {entry.item_id for entry in job.snapshot[:start]}
        failures: List[ItemFailure] = [f for f in job.failures if f.item_id in done_ids]

        if not await self._jobs.mark_processing(job.id, self._clock()):
            return await self._jobs.find_by_id(job.id)

        logger.info(
            "Running %s job %s for organization %s: %s/%s done, batch size %s",
            job.operation_type.value,
            job.id,
            job.organization_id,
            start,
            total,
            self._batch_size,
        )

        processed = start
        for batch in iter_batches(job.snapshot[start:], self._batch_size):
            for entry in batch:
                failure = await self._process_item(job, entry)
                if failure is not None:
                    failures.append(failure)

            processed += len(batch)
            still_active = await self._jobs.update_progress(
                job.id, processed, total, failures, self._clock()
            )
            if not still_active:
                logger.warning(
                    "Pricing job %s was finalized externally at %s/%s, writes continue",
                    job.id,
                    processed,
                    total,
                )
            await notify_progress(progress_cb, processed, total)

        await self._finish(job, total, failures)
        return await self._jobs.find_by_id(job.id)

    async def _process_item(self, job: PricingJob, entry: SnapshotEntry) -> Optional[ItemFailure]:
        try:
            item = await self._tenant_item(job, entry)
            if job.is_undo:
                await self._restore(entry, item)
            else:
                await self._apply(job, item)
            return None
        except ItemOperationError as exc:
            logger.debug("Item %s failed in job %s: %s", entry.item_id, job.id, exc)
            return ItemFailure(item_id=entry.item_id, kind=exc.kind, reason=exc.reason)
        except Exception as exc:
            logger.warning("Unexpected error for item %s in job %s", entry.item_id, job.id, exc_info=True)
            return ItemFailure(
                item_id=entry.item_id,
                kind=FailureKind.UNKNOWN,
                reason=str(exc) or type(exc).__name__,
            )

    async def _tenant_item(self, job: PricingJob, entry: SnapshotEntry) -> LineItem:
        """
        Позиция из снимка, если она есть и принадлежит организации задачи.
        Прямая задача и откат пишут только в позиции своей организации.
        """
        if not entry.found:
            raise ItemNotFoundError(entry.item_id, "line item was not in organization at snapshot time")

        item = await self._items.get(entry.item_id)
        if item is None or item.organization_id != job.organization_id:
            raise ItemNotFoundError(entry.item_id, "line item not found in organization")
        return item

    async def _apply(self, job: PricingJob, item: LineItem) -> None:
        price = apply_adjustments(job.adjustments, item)
        await self._items.set_price(item.id, price, job.mode_id)

    async def _restore(self, entry: SnapshotEntry, item: LineItem) -> None:
        # None тоже восстанавливается: у позиции до задачи не было цены
        await self._items.set_price(item.id, entry.previous_price, entry.previous_mode_id)

    async def _finish(self, job: PricingJob, total: int, failures: List[ItemFailure]) -> None:
        summary = ResultSummary(
            success_count=total - len(failures),
            failed_count=len(failures),
            failures=list(failures),
        )
        now = self._clock()

        if total > 0 and len(failures) == total:
            first = failures[0]
            error = f"All {total} items failed; first failure {first.kind.value}: {first.reason}"
            await self._jobs.fail(job.id, error, summary, now)
            logger.warning("Pricing job %s failed: %s", job.id, error)
            return

        await self._jobs.complete(job.id, summary, now)
        logger.info("Pricing job %s completed: %s", job.id, summary.message)
