"""Generation quota ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, text as sa_text

from ingap.db.base import Base
from ingap.db.types import UTCDateTime

QUOTA_ROW_ID = 1


class QuotaStateRecord(Base):
    """Single-row table holding the installation's generation quota."""

    __tablename__ = "quota_state"

    id = Column(Integer, primary_key=True, default=QUOTA_ROW_ID)
    generation_count = Column(Integer, nullable=False, server_default=sa_text("0"))
    window_start = Column(UTCDateTime, nullable=False)
    is_premium = Column(Boolean, nullable=False, server_default=sa_text("false"))
