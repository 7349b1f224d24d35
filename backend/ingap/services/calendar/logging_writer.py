"""Calendar writer that only logs (used until a real calendar is connected)."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import uuid4

from ingap.services.calendar.base import CalendarWriteResult, CalendarWriter

logger = logging.getLogger(__name__)


class LoggingCalendarWriter(CalendarWriter):
    name = "log"

    def add_event(
        self,
        *,
        title: str,
        start: datetime,
        duration_seconds: int,
        notes: str,
    ) -> CalendarWriteResult:
        end = start + timedelta(seconds=duration_seconds)
        logger.info(
            "Calendar event (log) title=%r start=%s end=%s notes=%s line(s)",
            title,
            start.isoformat(),
            end.isoformat(),
            len(notes.splitlines()),
        )
        return CalendarWriteResult(status="logged", reason="calendar provider is log-only", event_id=uuid4().hex)
