from __future__ import annotations

from typing import List, Optional

from pricebook.domain.line_item import LineItem
from pricebook.domain.value_objects import LineItemId, OrganizationId


class LineItemRepository:
    async def get(self, item_id: LineItemId) -> Optional[LineItem]:
        raise NotImplementedError

    async def list_by_organization(
        self,
        organization_id: OrganizationId,
    ) -> List[LineItem]:
        """
        Позиции прайс-листа организации в стабильном порядке.
        """
        raise NotImplementedError

    async def set_price(
        self,
        item_id: LineItemId,
        price: Optional[float],
        applied_mode_id: Optional[str],
    ) -> None:
        """
        price := price, applied_mode_id := applied_mode_id.
        Бросает ItemNotFoundError или WriteConflictError.
        """
        raise NotImplementedError
