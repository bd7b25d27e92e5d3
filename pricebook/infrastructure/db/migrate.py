from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Set

from .postgres import PostgresDatabase, load_config_from_env


MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def migration_version(path: Path) -> str:
    """
    001_create_pricing_tables.sql -> "001"
    """
    return path.stem.split("_", 1)[0]


async def _ensure_migrations_table(db: PostgresDatabase) -> None:
    sql = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version    TEXT PRIMARY KEY,
        applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """
    await db.execute(sql)


async def _get_applied_versions(db: PostgresDatabase) -> Set[str]:
    rows = await db.fetch("SELECT version FROM schema_migrations;")
    return {row["version"] for row in rows}


async def _apply_migration(db: PostgresDatabase, version: str, sql: str) -> None:
    """
    Миграция и запись о ней в одной транзакции.
    """
    async def _run(conn) -> None:
        async with conn.transaction():
            await conn.execute(sql)
            await conn.execute(
                "INSERT INTO schema_migrations (version) VALUES ($1);",
                version,
            )

    await db.with_connection(_run)


async def apply_pending_migrations(
    db: PostgresDatabase,
    migrations_dir: Path = MIGRATIONS_DIR,
) -> List[str]:
    """
    Применяет ещё не применённые *.sql по порядку имён.
    Возвращает список применённых версий.
    """
    if not migrations_dir.exists():
        raise RuntimeError(f"Migrations directory does not exist: {migrations_dir}")

    await _ensure_migrations_table(db)
    applied_versions = await _get_applied_versions(db)

    applied_now: List[str] = []
    for path in sorted(migrations_dir.glob("*.sql")):
        version = migration_version(path)
        if version in applied_versions:
            continue

        print(f"Applying migration {version} from {path.name} ...")
        await _apply_migration(db, version, path.read_text(encoding="utf-8"))
        applied_now.append(version)

    return applied_now


async def run_migrations(db: Optional[PostgresDatabase] = None) -> None:
    owns_db = db is None
    if db is None:
        db = PostgresDatabase(load_config_from_env())
        await db.connect()

    try:
        applied = await apply_pending_migrations(db)
        if applied:
            print(f"Migrations completed: {', '.join(applied)}")
        else:
            print("Schema is up to date.")
    finally:
        if owns_db:
            await db.close()


if __name__ == "__main__":
    asyncio.run(run_migrations())
