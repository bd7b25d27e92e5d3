from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .price_range import PriceRange
from .value_objects import LineItemId, OrganizationId


@dataclass(frozen=True)
class LineItem:
    """
    Позиция прайс-листа в том объёме, который нужен движку цен.
    Схема и хранение принадлежат CRUD-слою.
    """
    id: LineItemId
    organization_id: OrganizationId
    name: str
    category: Optional[str]
    base_price: Optional[float]
    red_line_price: Optional[float]
    cap_price: Optional[float]
    price: Optional[float]
    applied_mode_id: Optional[str] = None

    @property
    def price_range(self) -> PriceRange:
        return PriceRange(
            floor=self.red_line_price,
            base=self.base_price,
            ceiling=self.cap_price,
        )
