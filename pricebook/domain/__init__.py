from .line_item import LineItem
from .price_range import NO_RANGE_POSITION, PriceRange, position_of, price_at
from .pricing_job import ItemFailure, PricingJob, ResultSummary, SnapshotEntry
from .pricing_mode import PRESET_MODES, PricingMode, apply_adjustments, apply_mode
from .value_objects import (
    Category,
    FailureKind,
    JobStatus,
    LineItemId,
    OperationType,
    OrganizationId,
    PricingJobId,
    PricingModeId,
    STUCK_REASON,
)

__all__ = [
    "LineItem",
    "LineItemId",
    "OrganizationId",
    "PricingModeId",
    "PricingJobId",
    "Category",
    "FailureKind",
    "JobStatus",
    "OperationType",
    "PriceRange",
    "NO_RANGE_POSITION",
    "price_at",
    "position_of",
    "PricingMode",
    "PRESET_MODES",
    "apply_mode",
    "apply_adjustments",
    "PricingJob",
    "SnapshotEntry",
    "ItemFailure",
    "ResultSummary",
    "STUCK_REASON",
]
