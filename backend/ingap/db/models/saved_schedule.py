"""Saved plan history ORM models."""
from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import Uuid

from ingap.db.base import Base
from ingap.db.types import JSONBCompat, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedSchedule(Base):
    __tablename__ = "saved_schedules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    topic = Column(Text, nullable=False)
    mode = Column(String(16), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)

    sessions = relationship(
        "SavedSession",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="SavedSession.position",
    )


class SavedSession(Base):
    __tablename__ = "saved_sessions"
    __table_args__ = (Index("ix_saved_sessions_schedule_id", "schedule_id"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    schedule_id = Column(Uuid(as_uuid=True), ForeignKey("saved_schedules.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    date = Column(UTCDateTime, nullable=False)
    topic = Column(Text, nullable=False)
    activity = Column(Text, nullable=False)
    duration_seconds = Column(Integer, nullable=False)
    details = Column(JSONBCompat, nullable=False, default=list)

    schedule = relationship("SavedSchedule", back_populates="sessions")
