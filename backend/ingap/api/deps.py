"""Shared FastAPI dependencies."""
from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from ingap.core.config import settings


def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def get_now() -> datetime:
    """Current instant in the configured local timezone."""
    return datetime.now(get_timezone())
