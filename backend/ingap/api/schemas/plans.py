"""Schemas for plan generation."""
from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ingap.planning.modes import PlanningMode
from ingap.api.schemas.quota import QuotaResponse


class BusyIntervalPayload(BaseModel):
    """An event synced from an external calendar."""

    start: datetime
    end: datetime


class ManualSlotPayload(BaseModel):
    """A slot typed in by the user; an end before the start means it runs overnight."""

    day: date
    start_time: time
    end_time: time


class PlanGenerateRequest(BaseModel):
    mode: PlanningMode = PlanningMode.WEEK
    topic: str = Field(..., max_length=200)
    busy_intervals: List[BusyIntervalPayload] = Field(default_factory=list)
    manual_slots: List[ManualSlotPayload] = Field(default_factory=list)
    save: bool = False

    @field_validator("topic")
    @classmethod
    def _topic_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("topic must not be empty")
        return value


class WindowPayload(BaseModel):
    start: datetime
    end: datetime


class SessionPayload(BaseModel):
    date: datetime
    topic: str
    activity: str
    duration_seconds: int
    duration_minutes: int
    details: List[str]


class PlanGenerateResponse(BaseModel):
    mode: PlanningMode
    topic: str
    window: WindowPayload
    sessions: List[SessionPayload]
    charged: bool
    saved_schedule_id: Optional[str] = None
    quota: QuotaResponse
    request_id: str
