from __future__ import annotations

from dataclasses import dataclass
from typing import Set

from pricebook.application.pricing import (
    JobSupervisor,
    PricingJobRunner,
    PricingJobService,
)
from pricebook.config import JobEngineConfig, load_job_config_from_env
from pricebook.domain.value_objects import PricingJobId
from pricebook.infrastructure.db.postgres import PostgresDatabase, load_config_from_env
from pricebook.infrastructure.repositories import (
    LineItemPostgresRepository,
    PricingJobPostgresRepository,
    PricingModePostgresRepository,
)

# задачи, которые уже выполняются в этом процессе (любым контекстом)
_RUNNING_JOBS: Set[PricingJobId] = set()


@dataclass
class PricingContext:
    """
    Соединение с БД и собранные поверх него репозитории и сервисы.
    Каждый usecase открывает свой контекст и закрывает его по завершении.
    """
    db: PostgresDatabase
    config: JobEngineConfig
    jobs: PricingJobPostgresRepository
    items: LineItemPostgresRepository
    modes: PricingModePostgresRepository
    runner: PricingJobRunner
    service: PricingJobService
    supervisor: JobSupervisor

    async def close(self) -> None:
        await self.db.close()


async def open_pricing_context() -> PricingContext:
    config = load_job_config_from_env()
    db = PostgresDatabase(load_config_from_env())
    await db.connect()

    jobs = PricingJobPostgresRepository(db)
    items = LineItemPostgresRepository(db)
    modes = PricingModePostgresRepository(db)
    runner = PricingJobRunner(
        jobs,
        items,
        batch_size=config.batch_size,
        running=_RUNNING_JOBS,
    )

    return PricingContext(
        db=db,
        config=config,
        jobs=jobs,
        items=items,
        modes=modes,
        runner=runner,
        service=PricingJobService(jobs, items, modes, runner),
        supervisor=JobSupervisor(jobs, runner, config=config),
    )
