from __future__ import annotations

from enum import Enum
from typing import NewType

PricingJobId = NewType("PricingJobId", str)
PricingModeId = NewType("PricingModeId", str)
LineItemId = NewType("LineItemId", str)
OrganizationId = NewType("OrganizationId", str)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


ACTIVE_STATUSES = (JobStatus.PENDING, JobStatus.PROCESSING)
TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class OperationType(str, Enum):
    APPLY_PRICING = "apply_pricing"
    UNDO_PRICING = "undo_pricing"


class FailureKind(str, Enum):
    INVALID_BASE_PRICE = "InvalidBasePrice"
    ITEM_NOT_FOUND = "ItemNotFound"
    WRITE_CONFLICT = "WriteConflict"
    UNKNOWN = "Unknown"


class Category(str, Enum):
    ALL = "all"
    LABOR = "labor"
    MATERIALS = "materials"
    SERVICES = "services"
    INSTALLATION = "installation"
    EQUIPMENT = "equipment"
    SUBCONTRACTOR = "subcontractor"


STUCK_REASON = "stuck"
