from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Iterable, Optional

import pytest

from pricebook.application.pricing import (
    JobSupervisor,
    PricingJobRunner,
    PricingJobService,
)
from pricebook.config import JobEngineConfig
from pricebook.domain import PRESET_MODES, LineItem, LineItemId, OrganizationId, PricingMode, PricingModeId
from pricebook.infrastructure.repositories import (
    LineItemMemoryRepository,
    PricingJobMemoryRepository,
    PricingModeMemoryRepository,
)

ORG = OrganizationId("org-1")
OTHER_ORG = OrganizationId("org-2")

DISCOUNT_MODE = PricingMode(
    id=PricingModeId("mode-discount-10"),
    name="Ten Percent Off",
    adjustments={"all": 0.9},
    organization_id=ORG,
)


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_item(
    item_id: str,
    base_price: Optional[float] = 100.0,
    *,
    organization_id: str = ORG,
    category: Optional[str] = None,
    floor: Optional[float] = None,
    ceiling: Optional[float] = None,
    price: Optional[float] = None,
) -> LineItem:
    return LineItem(
        id=LineItemId(item_id),
        organization_id=OrganizationId(organization_id),
        name=f"Item {item_id}",
        category=category,
        base_price=base_price,
        red_line_price=floor,
        cap_price=ceiling,
        price=base_price if price is None else price,
    )


def build_engine(
    items: Iterable[LineItem] = (),
    *,
    batch_size: int = 2,
    clock: Optional[FakeClock] = None,
    config: Optional[JobEngineConfig] = None,
    item_repo: Optional[LineItemMemoryRepository] = None,
) -> SimpleNamespace:
    clock = clock or FakeClock()
    jobs = PricingJobMemoryRepository()
    item_repo = item_repo or LineItemMemoryRepository(items)
    modes = PricingModeMemoryRepository([*PRESET_MODES, DISCOUNT_MODE])
    runner = PricingJobRunner(jobs, item_repo, batch_size=batch_size, clock=clock)
    service = PricingJobService(jobs, item_repo, modes, runner, clock=clock)
    supervisor = JobSupervisor(
        jobs,
        runner,
        config=config or JobEngineConfig(batch_size=batch_size, poll_seconds=0),
        clock=clock,
    )
    return SimpleNamespace(
        clock=clock,
        jobs=jobs,
        items=item_repo,
        modes=modes,
        runner=runner,
        service=service,
        supervisor=supervisor,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
