"""Calendar writer factory."""
from __future__ import annotations

import logging
from functools import lru_cache

from ingap.core.config import settings
from ingap.services.calendar.base import CalendarWriter
from ingap.services.calendar.logging_writer import LoggingCalendarWriter

logger = logging.getLogger(__name__)


@lru_cache
def get_calendar_writer() -> CalendarWriter:
    provider = settings.calendar_provider.lower()
    if provider != "log":
        logger.warning("Unknown calendar provider %r; falling back to log-only writer", provider)
    return LoggingCalendarWriter()
