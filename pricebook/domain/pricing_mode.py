from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from .errors import InvalidBasePriceError
from .line_item import LineItem
from .price_range import PriceRange
from .value_objects import Category, PricingModeId

IDENTITY_MULTIPLIER = 1.0


@dataclass(frozen=True)
class PricingMode:
    """
    Именованный набор множителей, который применяется к позициям прайс-листа.

    adjustments: ключ категории (all|labor|materials|...) -> множитель.
    Пресеты системные и не редактируются, остальные режимы принадлежат
    организации.
    """
    id: PricingModeId
    name: str
    adjustments: Dict[str, float]
    is_preset: bool = False
    organization_id: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True
    usage_count: int = 0
    successful_estimates: int = 0
    total_estimates: int = 0

    @property
    def win_rate(self) -> Optional[int]:
        if self.total_estimates <= 0:
            return None
        return round(self.successful_estimates / self.total_estimates * 100)

    def multiplier_for(self, category: Optional[str]) -> float:
        return resolve_multiplier(self.adjustments, category)

    def apply(self, item: LineItem) -> float:
        return apply_adjustments(self.adjustments, item)


def resolve_multiplier(adjustments: Mapping[str, float], category: Optional[str]) -> float:
    """
    Множитель категории, иначе "all", иначе 1.0.
    """
    if category:
        factor = adjustments.get(category.lower())
        if factor is not None:
            return float(factor)

    factor = adjustments.get(Category.ALL.value)
    if factor is not None:
        return float(factor)

    return IDENTITY_MULTIPLIER


def _usable_base_price(item: LineItem) -> float:
    raw = item.base_price
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise InvalidBasePriceError(item.id, f"base price is not numeric: {raw!r}")
    if not math.isfinite(raw):
        raise InvalidBasePriceError(item.id, f"base price is not finite: {raw!r}")
    return float(raw)


def _usable_price_range(item: LineItem) -> PriceRange:
    try:
        return item.price_range
    except ValueError as exc:
        raise InvalidBasePriceError(item.id, f"invalid price range: {exc}") from exc


def apply_adjustments(adjustments: Mapping[str, float], item: LineItem) -> float:
    """
    base_price * множитель, округление до центов, затем обязательное
    прижатие к [red_line, cap], если у позиции задан диапазон.
    Битый диапазон (cap ниже red-line, отрицательная red-line) - InvalidBasePriceError.
    """
    base_price = _usable_base_price(item)
    price_range = _usable_price_range(item)
    multiplier = resolve_multiplier(adjustments, item.category)
    raw = round(base_price * multiplier, 2)
    return price_range.clamp(raw)


def apply_mode(mode: PricingMode, item: LineItem) -> float:
    return apply_adjustments(mode.adjustments, item)


PRESET_MODES: List[PricingMode] = [
    PricingMode(
        id=PricingModeId("preset-market-rate"),
        name="Market Rate",
        icon="📊",
        description="Standard market pricing",
        adjustments={"all": 1.0},
        is_preset=True,
    ),
    PricingMode(
        id=PricingModeId("preset-rush-job"),
        name="Rush Job",
        icon="🏃",
        description="Urgent timeline premium",
        adjustments={"all": 1.8},
        is_preset=True,
    ),
    PricingMode(
        id=PricingModeId("preset-competitive"),
        name="Competitive",
        icon="🎯",
        description="Win more bids with lower margins",
        adjustments={"all": 0.85},
        is_preset=True,
    ),
    PricingMode(
        id=PricingModeId("preset-premium-service"),
        name="Premium Service",
        icon="🏆",
        description="High-end quality and service",
        adjustments={
            "labor": 1.5,
            "materials": 1.25,
            "services": 1.5,
            "installation": 1.4,
        },
        is_preset=True,
    ),
    PricingMode(
        id=PricingModeId("preset-need-this-job"),
        name="Need This Job",
        icon="💰",
        description="Aggressive pricing to secure work",
        adjustments={"all": 0.8},
        is_preset=True,
    ),
    PricingMode(
        id=PricingModeId("preset-busy-season"),
        name="Busy Season",
        icon="☀️",
        description="Peak demand pricing",
        adjustments={"labor": 1.25, "materials": 1.1, "services": 1.2},
        is_preset=True,
    ),
    PricingMode(
        id=PricingModeId("preset-slow-season"),
        name="Slow Season",
        icon="❄️",
        description="Keep crews busy during slow times",
        adjustments={"labor": 0.8, "materials": 1.0, "services": 0.85},
        is_preset=True,
    ),
    PricingMode(
        id=PricingModeId("preset-reset-to-baseline"),
        name="Reset to Baseline",
        icon="↩️",
        description="Reset all items to base prices",
        adjustments={"all": 1.0},
        is_preset=True,
    ),
]
