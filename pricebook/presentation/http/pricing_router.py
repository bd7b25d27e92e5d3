from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from pricebook.domain.errors import (
    JobConflictError,
    JobNotFoundError,
    ModeNotFoundError,
    UndoUnavailableError,
)
from pricebook.domain.pricing_job import PricingJob
from pricebook.domain.pricing_mode import PricingMode
from pricebook.presentation.usecases.pricing_job_create import create_pricing_job_usecase
from pricebook.presentation.usecases.pricing_job_get import (
    get_pricing_job_usecase,
    list_active_pricing_jobs_usecase,
)
from pricebook.presentation.usecases.pricing_job_recover import (
    recover_pricing_jobs_usecase,
)
from pricebook.presentation.usecases.pricing_job_undo import undo_pricing_job_usecase
from pricebook.presentation.usecases.pricing_modes import (
    create_pricing_mode_usecase,
    list_pricing_modes_usecase,
    list_preset_modes_usecase,
)

router = APIRouter(tags=["pricing"])


# ---------- Схемы ----------


class PricingModeResponse(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None
    description: Optional[str] = None
    adjustments: Dict[str, float] = Field(
        ...,
        description="Множители по категориям; all применяется к остальным",
        examples=[{"labor": 1.25, "materials": 1.1}],
    )
    is_preset: bool
    usage_count: int
    win_rate: Optional[int] = Field(
        None,
        description="Доля выигранных смет в процентах, если смет ещё не было - null",
    )


class CreatePricingModeRequest(BaseModel):
    organization_id: str
    name: str = Field(..., min_length=1, examples=["Winter Discount"])
    adjustments: Dict[str, float] = Field(..., min_length=1, examples=[{"all": 0.9}])
    description: Optional[str] = None
    icon: Optional[str] = None


class CreatePricingJobRequest(BaseModel):
    organization_id: str = Field(..., description="Организация, чьи позиции переоцениваются")
    mode_id: str = Field(..., description="Режим цен", examples=["preset-competitive"])
    item_ids: Optional[List[str]] = Field(
        None,
        description="Позиции прайс-листа; пусто - все позиции организации",
    )


class CreatePricingJobResponse(BaseModel):
    job_id: str
    status: str = Field(..., examples=["pending"])


class ItemFailureResponse(BaseModel):
    item_id: str
    kind: str = Field(..., examples=["InvalidBasePrice"])
    reason: str


class ResultSummaryResponse(BaseModel):
    success_count: int
    failed_count: int
    failures: List[ItemFailureResponse]
    message: str = Field(..., examples=["Updated 12 items. 1 items failed."])


class PricingJobResponse(BaseModel):
    id: str
    organization_id: str
    operation_type: str = Field(..., examples=["apply_pricing"])
    status: str = Field(..., examples=["processing"])
    mode_id: Optional[str] = None
    mode_name: Optional[str] = None
    processed_count: int
    total_count: int
    result_summary: Optional[ResultSummaryResponse] = None
    error: Optional[str] = None
    source_job_id: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class RecoveryResponse(BaseModel):
    action: str = Field(..., examples=["resumed"])
    job: Optional[PricingJobResponse] = None


# ---------- Маппинг ----------


def _mode_response(mode: PricingMode) -> PricingModeResponse:
    return PricingModeResponse(
        id=str(mode.id),
        name=mode.name,
        icon=mode.icon,
        description=mode.description,
        adjustments=mode.adjustments,
        is_preset=mode.is_preset,
        usage_count=mode.usage_count,
        win_rate=mode.win_rate,
    )


def _job_response(job: PricingJob) -> PricingJobResponse:
    summary = None
    if job.result_summary is not None:
        summary = ResultSummaryResponse(
            success_count=job.result_summary.success_count,
            failed_count=job.result_summary.failed_count,
            failures=[
                ItemFailureResponse(item_id=str(f.item_id), kind=f.kind.value, reason=f.reason)
                for f in job.result_summary.failures
            ],
            message=job.result_summary.message,
        )

    return PricingJobResponse(
        id=str(job.id),
        organization_id=str(job.organization_id),
        operation_type=job.operation_type.value,
        status=job.status.value,
        mode_id=job.mode_id,
        mode_name=job.mode_name,
        processed_count=job.processed_count,
        total_count=job.total_count,
        result_summary=summary,
        error=job.error,
        source_job_id=job.source_job_id,
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


# ---------- Эндпоинты: режимы ----------


@router.get(
    "/pricing-modes",
    response_model=List[PricingModeResponse],
    summary="Режимы цен организации",
)
async def list_pricing_modes(
    organization_id: Optional[str] = Query(None),
) -> List[PricingModeResponse]:
    modes = await list_pricing_modes_usecase(organization_id)
    return [_mode_response(m) for m in modes]


@router.get(
    "/pricing-modes/presets",
    response_model=List[PricingModeResponse],
    summary="Системные пресеты",
)
async def list_preset_modes() -> List[PricingModeResponse]:
    return [_mode_response(m) for m in await list_preset_modes_usecase()]


@router.post(
    "/pricing-modes",
    response_model=PricingModeResponse,
    status_code=201,
    summary="Создать режим цен организации",
)
async def create_pricing_mode(payload: CreatePricingModeRequest) -> PricingModeResponse:
    try:
        mode = await create_pricing_mode_usecase(
            organization_id=payload.organization_id,
            name=payload.name,
            adjustments=payload.adjustments,
            description=payload.description,
            icon=payload.icon,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _mode_response(mode)


# ---------- Эндпоинты: задачи ----------


@router.post(
    "/pricing-jobs",
    response_model=CreatePricingJobResponse,
    status_code=202,
    summary="Применить режим цен к позициям",
    description=(
        "Снимает снимок текущих цен, создаёт задачу и запускает переоценку в фоне. "
        "Если у организации уже есть активная задача, возвращает 409."
    ),
)
async def create_pricing_job(payload: CreatePricingJobRequest) -> CreatePricingJobResponse:
    try:
        job_id = await create_pricing_job_usecase(
            organization_id=payload.organization_id,
            mode_id=payload.mode_id,
            item_ids=payload.item_ids,
        )
    except JobConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ModeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return CreatePricingJobResponse(job_id=job_id, status="pending")


@router.get(
    "/pricing-jobs/active",
    response_model=List[PricingJobResponse],
    summary="Незавершённые задачи организации",
)
async def list_active_pricing_jobs(
    organization_id: str = Query(...),
) -> List[PricingJobResponse]:
    jobs = await list_active_pricing_jobs_usecase(organization_id)
    return [_job_response(j) for j in jobs]


@router.post(
    "/pricing-jobs/recover",
    response_model=RecoveryResponse,
    summary="Восстановить задачи организации после перезагрузки",
)
async def recover_pricing_jobs(
    organization_id: str = Query(...),
    known_job_id: Optional[str] = Query(None),
) -> RecoveryResponse:
    outcome = await recover_pricing_jobs_usecase(organization_id, known_job_id)
    return RecoveryResponse(
        action=outcome.action.value,
        job=_job_response(outcome.job) if outcome.job is not None else None,
    )


@router.get(
    "/pricing-jobs/{job_id}",
    response_model=PricingJobResponse,
    summary="Статус задачи",
)
async def get_pricing_job(job_id: str) -> PricingJobResponse:
    job = await get_pricing_job_usecase(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"pricing job {job_id} not found")
    return _job_response(job)


@router.post(
    "/pricing-jobs/{job_id}/undo",
    response_model=CreatePricingJobResponse,
    status_code=202,
    summary="Откатить завершённую задачу",
)
async def undo_pricing_job(job_id: str) -> CreatePricingJobResponse:
    try:
        undo_job_id = await undo_pricing_job_usecase(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except UndoUnavailableError as exc:
        raise HTTPException(status_code=410, detail=str(exc)) from exc
    except JobConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return CreatePricingJobResponse(job_id=undo_job_id, status="pending")
