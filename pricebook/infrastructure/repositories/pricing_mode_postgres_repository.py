from __future__ import annotations

import json
from typing import Dict, List, Optional

from asyncpg import Record

from pricebook.domain.pricing_mode import PricingMode
from pricebook.domain.repositories.pricing_mode_repository import PricingModeRepository
from pricebook.domain.value_objects import OrganizationId, PricingModeId
from pricebook.infrastructure.db.postgres import PostgresDatabase

_COLUMNS = """
    id,
    name,
    icon,
    description,
    adjustments,
    is_preset,
    is_active,
    usage_count,
    successful_estimates,
    total_estimates,
    organization_id
"""


class PricingModePostgresRepository(PricingModeRepository):
    def __init__(self, db: PostgresDatabase) -> None:
        self._db = db

    async def find_by_id(self, mode_id: PricingModeId) -> Optional[PricingMode]:
        row = await self._db.fetchrow(
            f"SELECT {_COLUMNS} FROM pricing_modes WHERE id = $1",
            mode_id,
        )
        return None if row is None else self._map(row)

    async def list_for_organization(
        self,
        organization_id: Optional[OrganizationId],
    ) -> List[PricingMode]:
        if organization_id is None:
            return await self._fetch_presets("is_preset DESC, usage_count DESC")

        sql = f"""
        SELECT {_COLUMNS}
        FROM pricing_modes
        WHERE is_active
          AND (is_preset OR organization_id = $1)
        ORDER BY is_preset DESC, usage_count DESC
        """
        rows = await self._db.fetch(sql, organization_id)
        return [self._map(row) for row in rows]

    async def list_presets(self) -> List[PricingMode]:
        return await self._fetch_presets("name")

    async def _fetch_presets(self, order_by: str) -> List[PricingMode]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM pricing_modes
        WHERE is_active AND is_preset
        ORDER BY {order_by}
        """
        rows = await self._db.fetch(sql)
        return [self._map(row) for row in rows]

    async def create(self, mode: PricingMode) -> None:
        sql = f"""
        INSERT INTO pricing_modes ({_COLUMNS})
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        """
        await self._db.execute(
            sql,
            mode.id,
            mode.name,
            mode.icon,
            mode.description,
            json.dumps(mode.adjustments),
            mode.is_preset,
            mode.is_active,
            mode.usage_count,
            mode.successful_estimates,
            mode.total_estimates,
            mode.organization_id,
        )

    async def record_usage(self, mode_id: PricingModeId) -> None:
        await self._db.execute(
            "UPDATE pricing_modes SET usage_count = usage_count + 1, updated_at = NOW() WHERE id = $1",
            mode_id,
        )

    @staticmethod
    def _parse_adjustments(raw: object) -> Dict[str, float]:
        if raw is None:
            return {}
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError:
                return {}
        if not isinstance(raw, dict):
            return {}
        return {k: float(v) for k, v in raw.items() if v is not None}

    @staticmethod
    def _map(row: Record) -> PricingMode:
        return PricingMode(
            id=PricingModeId(row["id"]),
            name=row["name"],
            icon=row["icon"],
            description=row["description"],
            adjustments=PricingModePostgresRepository._parse_adjustments(row["adjustments"]),
            is_preset=row["is_preset"],
            is_active=row["is_active"],
            usage_count=row["usage_count"],
            successful_estimates=row["successful_estimates"],
            total_estimates=row["total_estimates"],
            organization_id=row["organization_id"],
        )
