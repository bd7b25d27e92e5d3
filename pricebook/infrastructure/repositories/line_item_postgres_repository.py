from __future__ import annotations

from typing import List, Optional

import asyncpg
from asyncpg import Record

from pricebook.domain.errors import ItemNotFoundError, WriteConflictError
from pricebook.domain.line_item import LineItem
from pricebook.domain.repositories.line_item_repository import LineItemRepository
from pricebook.domain.value_objects import LineItemId, OrganizationId
from pricebook.infrastructure.db.postgres import PostgresDatabase, affected_rows

_COLUMNS = """
    id,
    organization_id,
    name,
    category,
    base_price,
    red_line_price,
    cap_price,
    price,
    applied_mode_id
"""


class LineItemPostgresRepository(LineItemRepository):
    def __init__(self, db: PostgresDatabase) -> None:
        self._db = db

    async def get(self, item_id: LineItemId) -> Optional[LineItem]:
        row = await self._db.fetchrow(
            f"SELECT {_COLUMNS} FROM line_items WHERE id = $1",
            item_id,
        )
        return None if row is None else self._map(row)

    async def list_by_organization(
        self,
        organization_id: OrganizationId,
    ) -> List[LineItem]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM line_items
        WHERE organization_id = $1
        ORDER BY display_order, id
        """
        rows = await self._db.fetch(sql, organization_id)
        return [self._map(row) for row in rows]

    async def set_price(
        self,
        item_id: LineItemId,
        price: Optional[float],
        applied_mode_id: Optional[str],
    ) -> None:
        sql = """
        UPDATE line_items
        SET price = $2,
            applied_mode_id = $3,
            updated_at = NOW()
        WHERE id = $1
        """
        try:
            status = await self._db.execute(sql, item_id, price, applied_mode_id)
        except (
            asyncpg.SerializationError,
            asyncpg.DeadlockDetectedError,
            asyncpg.LockNotAvailableError,
        ) as exc:
            raise WriteConflictError(item_id, str(exc)) from exc

        if affected_rows(status) == 0:
            raise ItemNotFoundError(item_id, "line item no longer exists")

    @staticmethod
    def _map(row: Record) -> LineItem:
        return LineItem(
            id=LineItemId(row["id"]),
            organization_id=OrganizationId(row["organization_id"]),
            name=row["name"],
            category=row["category"],
            base_price=row["base_price"],
            red_line_price=row["red_line_price"],
            cap_price=row["cap_price"],
            price=row["price"],
            applied_mode_id=row["applied_mode_id"],
        )
