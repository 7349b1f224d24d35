"""Plan generation endpoints."""
from __future__ import annotations

import logging
from datetime import datetime
from time import perf_counter
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session as DbSession
from starlette.concurrency import run_in_threadpool

from ingap.api.deps import get_now
from ingap.api.routes.quota import quota_response
from ingap.api.schemas.plans import PlanGenerateRequest, PlanGenerateResponse, SessionPayload
from ingap.core.config import settings
from ingap.db.deps import get_db
from ingap.observability.metrics import log_metric
from ingap.observability.tracing import trace
from ingap.planning.busy import BusyInterval, manual_interval, normalize_interval
from ingap.planning.parser import Session
from ingap.services.history import save_schedule
from ingap.services.plan_pipeline import generate_plan
from ingap.services.planners import GenerativePlanner, get_planner
from ingap.services.quota import QuotaExceededError, QuotaTracker, get_quota_tracker

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/plans", response_model=PlanGenerateResponse, tags=["plans"])
async def create_plan(
    request: Request,
    payload: PlanGenerateRequest,
    db: DbSession = Depends(get_db),
    planner: GenerativePlanner = Depends(get_planner),
    quota: QuotaTracker = Depends(get_quota_tracker),
    now: datetime = Depends(get_now),
) -> PlanGenerateResponse:
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    busy = _busy_intervals_from_payload(payload, now)

    with trace("plans.create", metadata={"mode": payload.mode.value}, request_id=request_id):
        try:
            result = await generate_plan(
                mode=payload.mode,
                topic=payload.topic,
                busy_intervals=busy,
                now=now,
                planner=planner,
                quota=quota,
                timeout_seconds=settings.planner_timeout_seconds,
            )
        except QuotaExceededError as exc:
            log_metric("plans.create.quota_exceeded", 1, metadata={"mode": payload.mode.value})
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Weekly generation limit reached. Resets at {exc.reset_at.isoformat()}.",
            )

        saved_id = None
        if payload.save and result.sessions:
            saved = await run_in_threadpool(
                save_schedule, db, topic=result.topic, mode=result.mode, sessions=result.sessions
            )
            saved_id = str(saved.id)

    quota_payload = await run_in_threadpool(quota_response, quota)
    log_metric("plans.create.latency_ms", (perf_counter() - start) * 1000, metadata={"mode": payload.mode.value})
    return PlanGenerateResponse(
        mode=result.mode,
        topic=result.topic,
        window={"start": result.window.start, "end": result.window.end},
        sessions=session_payloads(result.sessions),
        charged=result.charged,
        saved_schedule_id=saved_id,
        quota=quota_payload,
        request_id=request_id or "",
    )


def session_payloads(sessions: List[Session]) -> List[SessionPayload]:
    return [
        SessionPayload(
            date=session.date,
            topic=session.topic,
            activity=session.activity,
            duration_seconds=session.duration_seconds,
            duration_minutes=session.duration_minutes,
            details=session.details,
        )
        for session in sessions
    ]


def _busy_intervals_from_payload(payload: PlanGenerateRequest, now: datetime) -> List[BusyInterval]:
    tz = now.tzinfo
    intervals: List[BusyInterval] = []
    try:
        for event in payload.busy_intervals:
            event_start = event.start if event.start.tzinfo else event.start.replace(tzinfo=tz)
            event_end = event.end if event.end.tzinfo else event.end.replace(tzinfo=tz)
            intervals.append(normalize_interval(event_start, event_end))
        for slot in payload.manual_slots:
            intervals.append(manual_interval(slot.day, slot.start_time, slot.end_time, tz))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return intervals
