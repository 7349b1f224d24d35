"""Saved plan history."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session as DbSession, selectinload

from ingap.db.models.saved_schedule import SavedSchedule, SavedSession
from ingap.planning.modes import PlanningMode
from ingap.planning.parser import Session

logger = logging.getLogger(__name__)


def save_schedule(db: DbSession, *, topic: str, mode: PlanningMode, sessions: Iterable[Session]) -> SavedSchedule:
    schedule = SavedSchedule(topic=topic, mode=mode.value)
    for position, session in enumerate(sessions):
        schedule.sessions.append(
            SavedSession(
                position=position,
                date=session.date,
                topic=session.topic,
                activity=session.activity,
                duration_seconds=session.duration_seconds,
                details=list(session.details),
            )
        )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    logger.info("Saved %s plan %s with %s session(s)", mode.value, schedule.id, len(schedule.sessions))
    return schedule


def list_schedules(db: DbSession, limit: int = 50) -> List[SavedSchedule]:
    """Newest first."""
    return (
        db.query(SavedSchedule)
        .options(selectinload(SavedSchedule.sessions))
        .order_by(SavedSchedule.created_at.desc())
        .limit(limit)
        .all()
    )


def get_schedule(db: DbSession, schedule_id: UUID) -> Optional[SavedSchedule]:
    return db.get(SavedSchedule, schedule_id)


def delete_schedule(db: DbSession, schedule_id: UUID) -> bool:
    schedule = db.get(SavedSchedule, schedule_id)
    if schedule is None:
        return False
    db.delete(schedule)
    db.commit()
    return True


def delete_all_schedules(db: DbSession) -> int:
    schedules = db.query(SavedSchedule).all()
    for schedule in schedules:
        db.delete(schedule)
    db.commit()
    logger.info("Deleted %s saved plan(s)", len(schedules))
    return len(schedules)


def sessions_for(schedule: SavedSchedule) -> List[Session]:
    """Rebuild planner sessions from a stored schedule."""
    return [
        Session(
            date=row.date,
            topic=row.topic,
            activity=row.activity,
            duration_seconds=row.duration_seconds,
            details=list(row.details or []),
        )
        for row in schedule.sessions
    ]
