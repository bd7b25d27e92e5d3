from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pricebook.application.pricing import RecoveryAction, RecoveryOutcome
from pricebook.domain import (
    PRESET_MODES,
    FailureKind,
    ItemFailure,
    JobStatus,
    OperationType,
    OrganizationId,
    PricingJob,
    PricingJobId,
    ResultSummary,
)
from pricebook.domain.errors import (
    JobConflictError,
    JobNotFoundError,
    ModeNotFoundError,
    UndoUnavailableError,
)
from pricebook.presentation.http import pricing_router

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

JOB = PricingJob(
    id=PricingJobId("job-1"),
    organization_id=OrganizationId("org-1"),
    operation_type=OperationType.APPLY_PRICING,
    status=JobStatus.COMPLETED,
    mode_id="preset-competitive",
    mode_name="Competitive",
    adjustments={"all": 0.95},
    target_item_ids=[],
    snapshot=[],
    processed_count=3,
    total_count=3,
    created_at=NOW,
    updated_at=NOW,
    completed_at=NOW,
    result_summary=ResultSummary(
        success_count=2,
        failed_count=1,
        failures=[ItemFailure("c", FailureKind.INVALID_BASE_PRICE, "base price is not numeric: None")],
    ),
)


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(pricing_router.router, prefix="/api")
    return TestClient(app)


def _patch(monkeypatch, name, result=None, error=None):
    async def fake(*args, **kwargs):
        if error is not None:
            raise error
        return result

    monkeypatch.setattr(pricing_router, name, fake)


class TestPricingJobsApi:
    def test_create_job_is_accepted(self, client, monkeypatch):
        _patch(monkeypatch, "create_pricing_job_usecase", result="job-9")

        response = client.post(
            "/api/pricing-jobs",
            json={"organization_id": "org-1", "mode_id": "preset-competitive"},
        )

        assert response.status_code == 202
        assert response.json() == {"job_id": "job-9", "status": "pending"}

    def test_create_job_conflict(self, client, monkeypatch):
        _patch(
            monkeypatch,
            "create_pricing_job_usecase",
            error=JobConflictError(OrganizationId("org-1"), PricingJobId("job-1")),
        )

        response = client.post(
            "/api/pricing-jobs",
            json={"organization_id": "org-1", "mode_id": "preset-competitive"},
        )

        assert response.status_code == 409

    def test_create_job_unknown_mode(self, client, monkeypatch):
        _patch(monkeypatch, "create_pricing_job_usecase", error=ModeNotFoundError("nope"))
        response = client.post(
            "/api/pricing-jobs",
            json={"organization_id": "org-1", "mode_id": "nope"},
        )
        assert response.status_code == 404

    def test_get_job_includes_summary(self, client, monkeypatch):
        _patch(monkeypatch, "get_pricing_job_usecase", result=JOB)

        body = client.get("/api/pricing-jobs/job-1").json()

        assert body["status"] == "completed"
        assert body["result_summary"]["message"] == "Updated 2 items. 1 items failed."
        assert body["result_summary"]["failures"][0]["kind"] == "InvalidBasePrice"

    def test_get_unknown_job(self, client, monkeypatch):
        _patch(monkeypatch, "get_pricing_job_usecase", result=None)
        assert client.get("/api/pricing-jobs/missing").status_code == 404

    def test_active_jobs_require_organization(self, client, monkeypatch):
        _patch(monkeypatch, "list_active_pricing_jobs_usecase", result=[])
        assert client.get("/api/pricing-jobs/active").status_code == 422
        assert client.get("/api/pricing-jobs/active?organization_id=org-1").json() == []

    def test_recover(self, client, monkeypatch):
        _patch(
            monkeypatch,
            "recover_pricing_jobs_usecase",
            result=RecoveryOutcome(RecoveryAction.SURFACED, JOB),
        )

        body = client.post("/api/pricing-jobs/recover?organization_id=org-1").json()

        assert body["action"] == "surfaced"
        assert body["job"]["id"] == "job-1"

    @pytest.mark.parametrize(
        "error, status_code",
        [
            (JobNotFoundError(PricingJobId("job-1")), 404),
            (UndoUnavailableError("undo window for job job-1 has expired"), 410),
            (JobConflictError(OrganizationId("org-1")), 409),
        ],
    )
    def test_undo_errors(self, client, monkeypatch, error, status_code):
        _patch(monkeypatch, "undo_pricing_job_usecase", error=error)
        assert client.post("/api/pricing-jobs/job-1/undo").status_code == status_code

    def test_undo_accepted(self, client, monkeypatch):
        _patch(monkeypatch, "undo_pricing_job_usecase", result="job-2")
        response = client.post("/api/pricing-jobs/job-1/undo")
        assert response.status_code == 202
        assert response.json()["job_id"] == "job-2"


class TestPricingModesApi:
    def test_presets(self, client, monkeypatch):
        _patch(monkeypatch, "list_preset_modes_usecase", result=PRESET_MODES)

        body = client.get("/api/pricing-modes/presets").json()

        assert len(body) == 8
        assert all(m["is_preset"] for m in body)

    def test_invalid_mode_is_rejected(self, client, monkeypatch):
        _patch(monkeypatch, "create_pricing_mode_usecase", error=ValueError("unknown category 'food'"))

        response = client.post(
            "/api/pricing-modes",
            json={"organization_id": "org-1", "name": "Bad", "adjustments": {"food": 1.1}},
        )

        assert response.status_code == 400
        assert "food" in response.json()["detail"]
