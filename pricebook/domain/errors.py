from __future__ import annotations

from pricebook.domain.value_objects import FailureKind


class PricingError(Exception):
    """
    Базовое исключение движка массового применения режимов цен.
    """


class JobConflictError(PricingError):
    """
    У организации уже есть активная задача (pending/processing).
    Вторая задача не создаётся.
    """

    def __init__(self, organization_id: str, active_job_id: str | None = None) -> None:
        self.organization_id = organization_id
        self.active_job_id = active_job_id
        detail = f"organization {organization_id} already has an active pricing job"
        if active_job_id:
            detail += f" ({active_job_id})"
        super().__init__(detail)


class JobNotFoundError(PricingError):
    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"pricing job {job_id} not found")


class ModeNotFoundError(PricingError):
    def __init__(self, mode_id: str) -> None:
        self.mode_id = mode_id
        super().__init__(f"pricing mode {mode_id} not found")


class SnapshotCaptureError(PricingError):
    """
    Не удалось снять снимок текущих цен. Задача при этом не создаётся.
    """


class UndoUnavailableError(PricingError):
    """
    Откат невозможен: окно истекло, задачу вытеснила более новая
    или это не завершённая задача применения режима.
    """


class ItemOperationError(PricingError):
    """
    Ошибка уровня одной позиции. Никогда не выходит за пределы цикла батча:
    раннер записывает её в result_summary.failures.
    """

    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, item_id: str, reason: str) -> None:
        self.item_id = item_id
        self.reason = reason
        super().__init__(f"{item_id}: {reason}")


class InvalidBasePriceError(ItemOperationError):
    kind = FailureKind.INVALID_BASE_PRICE


class ItemNotFoundError(ItemOperationError):
    kind = FailureKind.ITEM_NOT_FOUND


class WriteConflictError(ItemOperationError):
    kind = FailureKind.WRITE_CONFLICT
