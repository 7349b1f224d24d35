"""Schemas for the generation quota."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class QuotaResponse(BaseModel):
    is_premium: bool
    count: int
    limit: int
    remaining: Optional[int] = None
    window_start: datetime
    reset_at: datetime
    can_generate: bool
