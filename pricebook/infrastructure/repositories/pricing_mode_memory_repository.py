from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from pricebook.domain.pricing_mode import PRESET_MODES, PricingMode
from pricebook.domain.repositories.pricing_mode_repository import PricingModeRepository
from pricebook.domain.value_objects import OrganizationId, PricingModeId


class PricingModeMemoryRepository(PricingModeRepository):
    def __init__(self, modes: Iterable[PricingMode] = PRESET_MODES) -> None:
        self._modes: Dict[PricingModeId, PricingMode] = {m.id: m for m in modes}

    async def find_by_id(self, mode_id: PricingModeId) -> Optional[PricingMode]:
        return self._modes.get(mode_id)

    async def list_for_organization(
        self,
        organization_id: Optional[OrganizationId],
    ) -> List[PricingMode]:
        modes = [
            m for m in self._modes.values()
            if m.is_active and (
                m.is_preset
                or (organization_id is not None and m.organization_id == organization_id)
            )
        ]
        return sorted(modes, key=lambda m: (not m.is_preset, -m.usage_count))

    async def list_presets(self) -> List[PricingMode]:
        presets = [m for m in self._modes.values() if m.is_active and m.is_preset]
        return sorted(presets, key=lambda m: m.name)

    async def create(self, mode: PricingMode) -> None:
        self._modes[mode.id] = mode

    async def record_usage(self, mode_id: PricingModeId) -> None:
        mode = self._modes.get(mode_id)
        if mode is not None:
            self._modes[mode_id] = replace(mode, usage_count=mode.usage_count + 1)
