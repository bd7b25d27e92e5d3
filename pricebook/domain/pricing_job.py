from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .value_objects import (
    FailureKind,
    JobStatus,
    LineItemId,
    OperationType,
    OrganizationId,
    PricingJobId,
    PricingModeId,
)


@dataclass(frozen=True)
class SnapshotEntry:
    """
    Цена позиции до изменения. Список таких записей и есть payload отката.

    previous_price может быть None: у позиции не было цены, откат вернёт None.
    found=False - позиции не было в организации на момент снимка,
    такую запись ни задача, ни откат не применяют.
    """
    item_id: LineItemId
    previous_price: Optional[float]
    previous_mode_id: Optional[str] = None
    found: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "previous_price": self.previous_price,
            "previous_mode_id": self.previous_mode_id,
            "found": self.found,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "SnapshotEntry":
        return SnapshotEntry(
            item_id=LineItemId(raw["item_id"]),
            previous_price=raw.get("previous_price"),
            previous_mode_id=raw.get("previous_mode_id"),
            found=bool(raw.get("found", True)),
        )


@dataclass(frozen=True)
class ItemFailure:
    item_id: LineItemId
    kind: FailureKind
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"item_id": self.item_id, "kind": self.kind.value, "reason": self.reason}

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "ItemFailure":
        return ItemFailure(
            item_id=LineItemId(raw["item_id"]),
            kind=FailureKind(raw.get("kind", FailureKind.UNKNOWN.value)),
            reason=raw.get("reason", ""),
        )


@dataclass(frozen=True)
class ResultSummary:
    success_count: int
    failed_count: int
    failures: List[ItemFailure] = field(default_factory=list)

    @property
    def message(self) -> str:
        """
        Итог для пользователя: частичный успех не должен выглядеть как ошибка.
        """
        if self.failed_count == 0:
            return f"Updated {self.success_count} items."
        if self.success_count == 0:
            return f"All {self.failed_count} items failed."
        return f"Updated {self.success_count} items. {self.failed_count} items failed."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success_count": self.success_count,
            "failed_count": self.failed_count,
            "failures": [f.to_dict() for f in self.failures],
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "ResultSummary":
        return ResultSummary(
            success_count=int(raw.get("success_count", 0)),
            failed_count=int(raw.get("failed_count", 0)),
            failures=[ItemFailure.from_dict(f) for f in raw.get("failures", [])],
        )


@dataclass(frozen=True)
class PricingJob:
    """
    Долговременная запись одной массовой операции над ценами.

    Для apply_pricing в adjustments закреплены множители режима на момент
    создания задачи: последующие правки режима на задачу не влияют.
    Для undo_pricing snapshot содержит цены, которые нужно вернуть.

    failures хранит накопленные ошибки по позициям во время выполнения,
    чтобы после возобновления итоговая сводка была полной.
    """
    id: PricingJobId
    organization_id: OrganizationId
    operation_type: OperationType
    status: JobStatus
    mode_id: Optional[PricingModeId]
    mode_name: Optional[str]
    adjustments: Dict[str, float]
    target_item_ids: List[LineItemId]
    snapshot: List[SnapshotEntry]
    processed_count: int
    total_count: int
    created_at: datetime
    updated_at: datetime
    failures: List[ItemFailure] = field(default_factory=list)
    result_summary: Optional[ResultSummary] = None
    error: Optional[str] = None
    completed_at: Optional[datetime] = None
    source_job_id: Optional[PricingJobId] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_undo(self) -> bool:
        return self.operation_type is OperationType.UNDO_PRICING

    @property
    def remaining(self) -> List[SnapshotEntry]:
        return self.snapshot[self.processed_count:]
