from .job_supervisor import JobSupervisor, RecoveryAction, RecoveryOutcome
from .optimistic_prices import OptimisticPriceBuffer
from .pricing_job_runner import PricingJobRunner, ProgressCallback
from .pricing_job_service import PricingJobService
from .undo_window import UndoWindow

__all__ = [
    "JobSupervisor",
    "RecoveryAction",
    "RecoveryOutcome",
    "OptimisticPriceBuffer",
    "PricingJobRunner",
    "ProgressCallback",
    "PricingJobService",
    "UndoWindow",
]
