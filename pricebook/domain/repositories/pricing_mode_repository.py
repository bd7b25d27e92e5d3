from __future__ import annotations

from typing import List, Optional

from pricebook.domain.pricing_mode import PricingMode
from pricebook.domain.value_objects import OrganizationId, PricingModeId


class PricingModeRepository:
    async def find_by_id(self, mode_id: PricingModeId) -> Optional[PricingMode]:
        raise NotImplementedError

    async def list_for_organization(
        self,
        organization_id: Optional[OrganizationId],
    ) -> List[PricingMode]:
        """
        Активные пресеты и режимы организации: сначала пресеты,
        затем по usage_count по убыванию. Без организации только пресеты.
        """
        raise NotImplementedError

    async def list_presets(self) -> List[PricingMode]:
        raise NotImplementedError

    async def create(self, mode: PricingMode) -> None:
        raise NotImplementedError

    async def record_usage(self, mode_id: PricingModeId) -> None:
        raise NotImplementedError
