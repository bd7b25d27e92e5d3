from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Позиция для позиций прайс-листа без диапазона (нет red-line или cap).
NO_RANGE_POSITION = 0.5


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


@dataclass(frozen=True)
class PriceRange:
    """
    Диапазон цены позиции прайс-листа.

    floor   - red-line, ниже которой цену выставлять нельзя
    base    - стандартная цена
    ceiling - cap, выше которого цену выставлять нельзя

    Вычисляется из позиции при чтении и отдельно не хранится.
    """
    floor: Optional[float]
    base: Optional[float]
    ceiling: Optional[float]

    def __post_init__(self) -> None:
        if self.floor is not None and self.floor < 0:
            raise ValueError(f"floor must be >= 0, got {self.floor}")
        if self.has_range and self.ceiling < self.floor:
            raise ValueError(
                f"ceiling ({self.ceiling}) must be >= floor ({self.floor})"
            )

    @property
    def has_range(self) -> bool:
        return self.floor is not None and self.ceiling is not None

    @property
    def is_consistent(self) -> bool:
        """
        floor <= base <= ceiling. Данные прайс-листа могут нарушать это,
        поэтому конструктор не проверяет base.
        """
        if not self.has_range or self.base is None:
            return True
        return self.floor <= self.base <= self.ceiling

    def clamp(self, price: float) -> float:
        if not self.has_range:
            return price
        return _clamp(price, self.floor, self.ceiling)

    def price_at(self, position: float) -> Optional[float]:
        if not self.has_range:
            return self.base

        position = _clamp(float(position), 0.0, 1.0)
        if self.ceiling == self.floor:
            return self.floor
        return self.floor + position * (self.ceiling - self.floor)

    def position_of(self, price: float) -> float:
        if not self.has_range:
            return NO_RANGE_POSITION

        price = self.clamp(float(price))
        if self.ceiling == self.floor:
            return 0.0
        return (price - self.floor) / (self.ceiling - self.floor)


def price_at(price_range: PriceRange, position: float) -> Optional[float]:
    return price_range.price_at(position)


def position_of(price_range: PriceRange, price: float) -> float:
    return price_range.position_of(price)
