from __future__ import annotations

import asyncio
from typing import Dict, List, Optional
from uuid import uuid4

from pricebook.domain.pricing_mode import PricingMode
from pricebook.domain.value_objects import Category, OrganizationId, PricingModeId

from .pricing_context import open_pricing_context

_CATEGORY_KEYS = {c.value for c in Category}


async def list_pricing_modes_usecase(organization_id: Optional[str]) -> List[PricingMode]:
    """
    Пресеты и режимы организации (без организации только пресеты).
    """
    ctx = await open_pricing_context()
    try:
        return await ctx.modes.list_for_organization(
            OrganizationId(organization_id) if organization_id else None
        )
    finally:
        await ctx.close()


async def list_preset_modes_usecase() -> List[PricingMode]:
    ctx = await open_pricing_context()
    try:
        return await ctx.modes.list_presets()
    finally:
        await ctx.close()


async def create_pricing_mode_usecase(
    organization_id: str,
    name: str,
    adjustments: Dict[str, float],
    description: Optional[str] = None,
    icon: Optional[str] = None,
) -> PricingMode:
    """
    Пользовательский режим организации. is_preset всегда False.
    """
    unknown = set(adjustments) - _CATEGORY_KEYS
    if unknown:
        raise ValueError(f"unknown adjustment categories: {', '.join(sorted(unknown))}")
    if any(factor < 0 for factor in adjustments.values()):
        raise ValueError("adjustment factors must be >= 0")

    mode = PricingMode(
        id=PricingModeId(str(uuid4())),
        name=name,
        adjustments=dict(adjustments),
        is_preset=False,
        organization_id=organization_id,
        description=description,
        icon=icon,
    )

    ctx = await open_pricing_context()
    try:
        await ctx.modes.create(mode)
        return mode
    finally:
        await ctx.close()


async def _main_cli() -> None:
    modes = await list_preset_modes_usecase()

    print("\n=== PRESET PRICING MODES ===\n")
    for m in modes:
        factors = ", ".join(f"{k}={v}" for k, v in m.adjustments.items())
        print(f"{m.id:<28} | {m.name:<18} | {factors}")


if __name__ == "__main__":
    asyncio.run(_main_cli())
