from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import asyncpg
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class PostgresConfig:
    host: str
    port: int
    database: str
    user: str
    password: str
    min_pool_size: int = 1
    max_pool_size: int = 10


def load_config_from_env() -> PostgresConfig:
    """
    Конфиг PostgreSQL из переменных окружения (.env подхватывается dotenv).
    """
    return PostgresConfig(
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", "5432")),
        database=os.getenv("DB_NAME", "pricebook"),
        user=os.getenv("DB_USER", "app_user"),
        password=os.getenv("DB_PASSWORD", "app_password"),
        min_pool_size=int(os.getenv("DB_POOL_MIN", "1")),
        max_pool_size=int(os.getenv("DB_POOL_MAX", "10")),
    )


class PostgresDatabase:
    """
    Пул соединений asyncpg. Репозитории работают только через этот класс,
    usecase'ы про asyncpg не знают.
    """

    def __init__(self, config: PostgresConfig) -> None:
        self._config = config
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        if self._pool is not None:
            return

        self._pool = await asyncpg.create_pool(
            host=self._config.host,
            port=self._config.port,
            database=self._config.database,
            user=self._config.user,
            password=self._config.password,
            min_size=self._config.min_pool_size,
            max_size=self._config.max_pool_size,
        )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("PostgresDatabase is not connected")
        return self._pool

    async def execute(self, query: str, *args: Any) -> str:
        """
        INSERT/UPDATE/DELETE. Возвращает статусную строку вида "UPDATE 1".
        """
        async with self._require_pool().acquire() as connection:
            return await connection.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self._require_pool().acquire() as connection:
            rows = await connection.fetch(query, *args)
            return list(rows)

    async def fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
        async with self._require_pool().acquire() as connection:
            return await connection.fetchrow(query, *args)

    async def with_connection(
        self,
        func: Callable[[asyncpg.Connection], Awaitable[Any]],
    ) -> Any:
        """
        Сырое соединение для транзакций.
        """
        async with self._require_pool().acquire() as connection:
            return await func(connection)


def affected_rows(status: str) -> int:
    """
    "UPDATE 3" -> 3. Для статусов без счётчика возвращает 0.
    """
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0
