"""Schemas for saved plan history."""
from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel

from ingap.api.schemas.plans import SessionPayload


class HistoryItem(BaseModel):
    id: UUID
    topic: str
    mode: str
    created_at: datetime
    session_count: int


class HistoryResponse(BaseModel):
    items: List[HistoryItem]
    request_id: str


class HistoryDetailResponse(BaseModel):
    id: UUID
    topic: str
    mode: str
    created_at: datetime
    sessions: List[SessionPayload]
    request_id: str


class CalendarCommitResponse(BaseModel):
    schedule_id: UUID
    written: int
    failed: int
    request_id: str
