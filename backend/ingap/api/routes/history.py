"""Saved plan history endpoints."""
from __future__ import annotations

from time import perf_counter
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session as DbSession

from ingap.api.routes.plans import session_payloads
from ingap.api.schemas.history import (
    CalendarCommitResponse,
    HistoryDetailResponse,
    HistoryItem,
    HistoryResponse,
)
from ingap.db.deps import get_db
from ingap.observability.metrics import log_metric
from ingap.observability.tracing import trace
from ingap.services.calendar.base import CalendarWriter
from ingap.services.calendar.commit import commit_sessions
from ingap.services.calendar.factory import get_calendar_writer
from ingap.services.history import (
    delete_all_schedules,
    delete_schedule,
    get_schedule,
    list_schedules,
    sessions_for,
)

router = APIRouter()


@router.get("/history", response_model=HistoryResponse, tags=["history"])
def history(
    request: Request,
    limit: int = Query(50, ge=1, le=200),
    db: DbSession = Depends(get_db),
) -> HistoryResponse:
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    with trace("history.list", metadata={"limit": limit}, request_id=request_id):
        schedules = list_schedules(db, limit=limit)

    log_metric("history.list.count", len(schedules))
    log_metric("history.list.latency_ms", (perf_counter() - start) * 1000)
    items = [
        HistoryItem(
            id=schedule.id,
            topic=schedule.topic,
            mode=schedule.mode,
            created_at=schedule.created_at,
            session_count=len(schedule.sessions),
        )
        for schedule in schedules
    ]
    return HistoryResponse(items=items, request_id=request_id or "")


@router.get("/history/{schedule_id}", response_model=HistoryDetailResponse, tags=["history"])
def history_item(schedule_id: UUID, request: Request, db: DbSession = Depends(get_db)) -> HistoryDetailResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("history.item", metadata={"schedule_id": str(schedule_id)}, request_id=request_id):
        schedule = get_schedule(db, schedule_id)
        if not schedule:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved plan not found")

    return HistoryDetailResponse(
        id=schedule.id,
        topic=schedule.topic,
        mode=schedule.mode,
        created_at=schedule.created_at,
        sessions=session_payloads(sessions_for(schedule)),
        request_id=request_id or "",
    )


@router.delete("/history/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["history"])
def history_delete(schedule_id: UUID, request: Request, db: DbSession = Depends(get_db)) -> None:
    request_id = getattr(request.state, "request_id", None)
    with trace("history.delete", metadata={"schedule_id": str(schedule_id)}, request_id=request_id):
        if not delete_schedule(db, schedule_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved plan not found")


@router.delete("/history", tags=["history"])
def history_clear(request: Request, db: DbSession = Depends(get_db)) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("history.clear", request_id=request_id):
        deleted = delete_all_schedules(db)
    return {"deleted": deleted, "request_id": request_id or ""}


@router.post("/history/{schedule_id}/calendar", response_model=CalendarCommitResponse, tags=["history"])
def history_add_to_calendar(
    schedule_id: UUID,
    request: Request,
    db: DbSession = Depends(get_db),
    writer: CalendarWriter = Depends(get_calendar_writer),
) -> CalendarCommitResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("history.calendar", metadata={"schedule_id": str(schedule_id)}, request_id=request_id):
        schedule = get_schedule(db, schedule_id)
        if not schedule:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved plan not found")
        report = commit_sessions(sessions_for(schedule), writer)

    return CalendarCommitResponse(
        schedule_id=schedule.id,
        written=report.written,
        failed=report.failed,
        request_id=request_id or "",
    )
