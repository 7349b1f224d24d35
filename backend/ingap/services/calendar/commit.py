"""Write planned sessions to a calendar, one independent call per session."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from ingap.observability.metrics import log_metric
from ingap.planning.parser import Session
from ingap.services.calendar.base import CalendarWriteResult, CalendarWriter

logger = logging.getLogger(__name__)


@dataclass
class CommitReport:
    results: List[CalendarWriteResult] = field(default_factory=list)

    @property
    def written(self) -> int:
        return sum(1 for result in self.results if result.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.written


def commit_sessions(sessions: Iterable[Session], writer: CalendarWriter) -> CommitReport:
    """
    Add every session to the calendar.

    There is no transaction: a failure on one session is recorded and the remaining
    sessions are still written.
    """
    report = CommitReport()
    for session in sessions:
        try:
            result = writer.add_event(
                title=session.topic,
                start=session.date,
                duration_seconds=session.duration_seconds,
                notes=session.calendar_notes(),
            )
        except Exception as exc:
            logger.warning("Calendar write failed for %s: %s", session.date.isoformat(), exc)
            result = CalendarWriteResult(status="failed", reason=str(exc))
        report.results.append(result)

    log_metric(
        "calendar.commit.written",
        report.written,
        metadata={"provider": writer.name, "failed": report.failed},
    )
    return report
