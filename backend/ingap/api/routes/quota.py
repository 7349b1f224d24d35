"""Generation quota endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ingap.api.schemas.quota import QuotaResponse
from ingap.core.config import settings
from ingap.observability.tracing import trace
from ingap.services.quota import QuotaTracker, get_quota_tracker

router = APIRouter()


def quota_response(quota: QuotaTracker) -> QuotaResponse:
    snapshot = quota.snapshot()
    return QuotaResponse(
        is_premium=snapshot.is_premium,
        count=snapshot.count,
        limit=snapshot.limit,
        remaining=snapshot.remaining,
        window_start=snapshot.window_start,
        reset_at=snapshot.reset_at,
        can_generate=snapshot.can_generate,
    )


@router.get("/quota", response_model=QuotaResponse, tags=["quota"])
def get_quota(request: Request, quota: QuotaTracker = Depends(get_quota_tracker)) -> QuotaResponse:
    with trace("quota.get", request_id=getattr(request.state, "request_id", None)):
        return quota_response(quota)


@router.post("/quota/premium", response_model=QuotaResponse, tags=["quota"])
def unlock_premium(request: Request, quota: QuotaTracker = Depends(get_quota_tracker)) -> QuotaResponse:
    with trace("quota.unlock_premium", request_id=getattr(request.state, "request_id", None)):
        quota.unlock_premium()
        return quota_response(quota)


@router.post("/quota/reset", response_model=QuotaResponse, tags=["quota"])
def reset_quota(request: Request, quota: QuotaTracker = Depends(get_quota_tracker)) -> QuotaResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Quota reset only allowed in debug mode")
    with trace("quota.reset", request_id=getattr(request.state, "request_id", None)):
        quota.reset()
        return quota_response(quota)
