from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from pricebook.domain.errors import ItemNotFoundError
from pricebook.domain.line_item import LineItem
from pricebook.domain.repositories.line_item_repository import LineItemRepository
from pricebook.domain.value_objects import LineItemId, OrganizationId


class LineItemMemoryRepository(LineItemRepository):
    def __init__(self, items: Iterable[LineItem] = ()) -> None:
        self._items: Dict[LineItemId, LineItem] = {item.id: item for item in items}
        self.writes: List[tuple[LineItemId, Optional[float], Optional[str]]] = []

    def add(self, item: LineItem) -> None:
        self._items[item.id] = item

    def remove(self, item_id: LineItemId) -> None:
        self._items.pop(item_id, None)

    async def get(self, item_id: LineItemId) -> Optional[LineItem]:
        return self._items.get(item_id)

    async def list_by_organization(
        self,
        organization_id: OrganizationId,
    ) -> List[LineItem]:
        return [i for i in self._items.values() if i.organization_id == organization_id]

    async def set_price(
        self,
        item_id: LineItemId,
        price: Optional[float],
        applied_mode_id: Optional[str],
    ) -> None:
        # запись цены - точка переключения, как и настоящий I/O
        await asyncio.sleep(0)

        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id, "line item no longer exists")

        self._items[item_id] = replace(item, price=price, applied_mode_id=applied_mode_id)
        self.writes.append((item_id, price, applied_mode_id))
