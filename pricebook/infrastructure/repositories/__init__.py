from .line_item_memory_repository import LineItemMemoryRepository
from .line_item_postgres_repository import LineItemPostgresRepository
from .pricing_job_memory_repository import PricingJobMemoryRepository
from .pricing_job_postgres_repository import PricingJobPostgresRepository
from .pricing_mode_memory_repository import PricingModeMemoryRepository
from .pricing_mode_postgres_repository import PricingModePostgresRepository

__all__ = [
    "LineItemMemoryRepository",
    "LineItemPostgresRepository",
    "PricingJobMemoryRepository",
    "PricingJobPostgresRepository",
    "PricingModeMemoryRepository",
    "PricingModePostgresRepository",
]
