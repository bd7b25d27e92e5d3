from __future__ import annotations

from typing import Dict, Optional

from pricebook.domain.line_item import LineItem
from pricebook.domain.pricing_job import PricingJob
from pricebook.domain.repositories.line_item_repository import LineItemRepository
from pricebook.domain.value_objects import LineItemId


class OptimisticPriceBuffer:
    """
    Временные цены, которые UI показывает до завершения задачи.

    Это второй, неавторитетный писатель: пока задача по позиции идёт,
    буфер только для отображения. После завершения задачи (любым статусом)
    reconcile() выбрасывает временные значения и возвращает цены из хранилища.
    """

    def __init__(self) -> None:
        self._provisional: Dict[LineItemId, float] = {}

    def record(self, item_id: LineItemId, price: float) -> None:
        self._provisional[item_id] = price

    def provisional(self, item_id: LineItemId) -> Optional[float]:
        return self._provisional.get(item_id)

    def display_price(self, item: LineItem) -> Optional[float]:
        return self._provisional.get(item.id, item.price)

    def __len__(self) -> int:
        return len(self._provisional)

    async def reconcile(
        self,
        job: PricingJob,
        items: LineItemRepository,
    ) -> Dict[LineItemId, Optional[float]]:
        if not job.is_terminal:
            raise ValueError(f"job {job.id} is still {job.status.value}")

        authoritative: Dict[LineItemId, Optional[float]] = {}
        for entry in job.snapshot:
            self._provisional.pop(entry.item_id, None)
            item = await items.get(entry.item_id)
            authoritative[entry.item_id] = item.price if item is not None else None
        return authoritative
