from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Optional

import asyncpg
from asyncpg import Record

from pricebook.domain.errors import JobConflictError
from pricebook.domain.pricing_job import (
    ItemFailure,
    PricingJob,
    ResultSummary,
    SnapshotEntry,
)
from pricebook.domain.repositories.pricing_job_repository import PricingJobRepository
from pricebook.domain.value_objects import (
    JobStatus,
    LineItemId,
    OperationType,
    OrganizationId,
    PricingJobId,
    PricingModeId,
)
from pricebook.infrastructure.db.postgres import PostgresDatabase, affected_rows

_COLUMNS = """
    id,
    organization_id,
    operation_type,
    status,
    mode_id,
    mode_name,
    adjustments,
    target_item_ids,
    snapshot,
    processed_count,
    total_count,
    failures,
    result_summary,
    error,
    source_job_id,
    created_at,
    updated_at,
    completed_at
"""

_ACTIVE = "('pending', 'processing')"


class PricingJobPostgresRepository(PricingJobRepository):
    def __init__(self, db: PostgresDatabase) -> None:
        self._db = db

    async def create(self, job: PricingJob) -> None:
        sql = f"""
        INSERT INTO pricing_jobs ({_COLUMNS})
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17, $18)
        """
        try:
            await self._db.execute(
                sql,
                job.id,
                job.organization_id,
                job.operation_type.value,
                job.status.value,
                job.mode_id,
                job.mode_name,
                json.dumps(job.adjustments),
                json.dumps(list(job.target_item_ids)),
                json.dumps([entry.to_dict() for entry in job.snapshot]),
                job.processed_count,
                job.total_count,
                json.dumps([f.to_dict() for f in job.failures]),
                json.dumps(job.result_summary.to_dict()) if job.result_summary else None,
                job.error,
                job.source_job_id,
                job.created_at,
                job.updated_at,
                job.completed_at,
            )
        except asyncpg.UniqueViolationError:
            # pricing_jobs_one_active_per_org
            active = await self.list_active(job.organization_id)
            raise JobConflictError(
                job.organization_id,
                active[0].id if active else None,
            ) from None

    async def find_by_id(self, job_id: PricingJobId) -> Optional[PricingJob]:
        sql = f"SELECT {_COLUMNS} FROM pricing_jobs WHERE id = $1"
        row = await self._db.fetchrow(sql, job_id)
        return None if row is None else self._map(row)

    async def list_active(self, organization_id: OrganizationId) -> List[PricingJob]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM pricing_jobs
        WHERE organization_id = $1
          AND status IN {_ACTIVE}
        ORDER BY created_at DESC
        """
        rows = await self._db.fetch(sql, organization_id)
        return [self._map(row) for row in rows]

    async def find_latest(self, organization_id: OrganizationId) -> Optional[PricingJob]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM pricing_jobs
        WHERE organization_id = $1
        ORDER BY created_at DESC
        LIMIT 1
        """
        row = await self._db.fetchrow(sql, organization_id)
        return None if row is None else self._map(row)

    async def mark_processing(self, job_id: PricingJobId, at: datetime) -> bool:
        sql = f"""
        UPDATE pricing_jobs
        SET status = 'processing',
            updated_at = $2
        WHERE id = $1
          AND status IN {_ACTIVE}
        """
        status = await self._db.execute(sql, job_id, at)
        return affected_rows(status) > 0

    async def update_progress(
        self,
        job_id: PricingJobId,
        processed: int,
        total: int,
        failures: List[ItemFailure],
        at: datetime,
    ) -> bool:
        sql = f"""
        UPDATE pricing_jobs
        SET processed_count = GREATEST(processed_count, $2),
            total_count = $3,
            failures = $4,
            updated_at = $5
        WHERE id = $1
          AND status IN {_ACTIVE}
        """
        status = await self._db.execute(
            sql,
            job_id,
            processed,
            total,
            json.dumps([f.to_dict() for f in failures]),
            at,
        )
        return affected_rows(status) > 0

    async def complete(
        self,
        job_id: PricingJobId,
        summary: ResultSummary,
        at: datetime,
    ) -> bool:
        return await self._finish(job_id, JobStatus.COMPLETED, None, summary, at)

    async def fail(
        self,
        job_id: PricingJobId,
        error: str,
        summary: Optional[ResultSummary],
        at: datetime,
    ) -> bool:
        return await self._finish(job_id, JobStatus.FAILED, error, summary, at)

    async def _finish(
        self,
        job_id: PricingJobId,
        status: JobStatus,
        error: Optional[str],
        summary: Optional[ResultSummary],
        at: datetime,
    ) -> bool:
        sql = f"""
        UPDATE pricing_jobs
        SET status = $2,
            error = $3,
            result_summary = $4,
            updated_at = $5,
            completed_at = $5
        WHERE id = $1
          AND status IN {_ACTIVE}
        """
        result = await self._db.execute(
            sql,
            job_id,
            status.value,
            error,
            json.dumps(summary.to_dict()) if summary else None,
            at,
        )
        return affected_rows(result) > 0

    @staticmethod
    def _json(raw: Any, default: Any) -> Any:
        """
        JSONB без кодека приходит строкой.
        """
        if raw is None:
            return default
        if isinstance(raw, str):
            try:
                return json.loads(raw)
            except ValueError:
                return default
        return raw

    @staticmethod
    def _map(row: Record) -> PricingJob:
        parse = PricingJobPostgresRepository._json
        summary = parse(row["result_summary"], None)
        mode_id = row["mode_id"]
        source_job_id = row["source_job_id"]

        return PricingJob(
            id=PricingJobId(row["id"]),
            organization_id=OrganizationId(row["organization_id"]),
            operation_type=OperationType(row["operation_type"]),
            status=JobStatus(row["status"]),
            mode_id=PricingModeId(mode_id) if mode_id else None,
            mode_name=row["mode_name"],
            adjustments={k: float(v) for k, v in parse(row["adjustments"], {}).items()},
            target_item_ids=[LineItemId(i) for i in parse(row["target_item_ids"], [])],
            snapshot=[SnapshotEntry.from_dict(e) for e in parse(row["snapshot"], [])],
            processed_count=row["processed_count"],
            total_count=row["total_count"],
            failures=[ItemFailure.from_dict(f) for f in parse(row["failures"], [])],
            result_summary=ResultSummary.from_dict(summary) if summary else None,
            error=row["error"],
            source_job_id=PricingJobId(source_job_id) if source_job_id else None,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
        )
