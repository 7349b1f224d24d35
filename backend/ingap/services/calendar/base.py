"""Calendar writer interface."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class CalendarWriteResult:
    status: str
    reason: str
    event_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in {"written", "logged"}


class CalendarWriter:
    """Base interface for calendar providers; one call per event, no batching."""

    name = "base"

    def add_event(
        self,
        *,
        title: str,
        start: datetime,
        duration_seconds: int,
        notes: str,
    ) -> CalendarWriteResult:
        raise NotImplementedError
