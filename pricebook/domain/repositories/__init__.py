from .line_item_repository import LineItemRepository
from .pricing_job_repository import PricingJobRepository
from .pricing_mode_repository import PricingModeRepository

__all__ = [
    "LineItemRepository",
    "PricingJobRepository",
    "PricingModeRepository",
]
