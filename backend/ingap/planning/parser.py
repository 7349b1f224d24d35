"""Turn raw planner text into validated, dated sessions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ingap.planning.windows import TimeWindow

logger = logging.getLogger(__name__)

LABELED_FENCE = "```json"
FENCE = "```"

# Tried in order; the first that parses wins. ``parse_start`` then falls back to
# ``datetime.fromisoformat`` (trailing "Z", space separator, missing seconds).
ISO_DATETIME_FORMATS: Tuple[str, ...] = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
)


class PlannedDay(BaseModel):
    """One entry of the planner's ``days`` array, as emitted on the wire."""

    model_config = ConfigDict(strict=True, populate_by_name=True)

    start_iso8601: str = Field(alias="startISO8601")
    topic: str
    activity: str
    duration_minutes: int = Field(alias="durationMinutes")
    details: List[str]

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def _integral_float_minutes(cls, value):
        # 45.0 counts as 45 whole minutes; 45.5 is still rejected.
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value


class PlannerResponse(BaseModel):
    model_config = ConfigDict(strict=True)

    days: List[PlannedDay]


@dataclass(frozen=True)
class Session:
    date: datetime
    topic: str
    activity: str
    duration_seconds: int
    details: List[str] = field(default_factory=list)

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60

    def calendar_notes(self) -> str:
        return "\n".join(f"• {detail}" for detail in self.details)


def strip_code_fence(raw: str) -> str:
    """
    Remove markdown fencing around a JSON payload.

    Everything after a ``json``-labelled fence (or, failing that, a bare fence) is
    kept, cut at the next closing fence when one exists. Unfenced text is only trimmed.
    """
    text = raw
    if LABELED_FENCE in text:
        text = text.split(LABELED_FENCE, 1)[1]
    elif FENCE in text:
        text = text.split(FENCE, 1)[1]
    if FENCE in text:
        text = text.split(FENCE, 1)[0]
    return text.strip()


def decode_planner_response(cleaned: str) -> Optional[PlannerResponse]:
    """Decode the cleaned text; any structural problem yields ``None``."""
    if not cleaned:
        return None
    try:
        return PlannerResponse.model_validate_json(cleaned)
    except ValidationError as exc:
        logger.warning("Planner output failed schema validation: %s", exc.errors(include_url=False)[:3])
        return None


def parse_start(value: str, default_tz: tzinfo | None = None) -> Optional[datetime]:
    """
    Parse a session start through the ``ISO_DATETIME_FORMATS`` chain, then a permissive pass.

    A naive result from the permissive pass is placed in ``default_tz``.
    Returns ``None`` when nothing matches.
    """
    candidate = value.strip()
    for fmt in ISO_DATETIME_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(_normalize_zulu(candidate))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        if default_tz is None:
            return None
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def parse_plan(raw: str | None, window: TimeWindow) -> List[Session]:
    """
    Return the sessions from ``raw`` that fall inside ``window`` (inclusive), in planner order.

    Never raises: malformed output gives an empty list, and individual days with an
    unreadable or out-of-window start are dropped.
    """
    if not raw:
        logger.info("Planner returned empty output")
        return []

    logger.debug("Raw planner output: %s", raw)
    cleaned = strip_code_fence(raw)
    logger.debug("Cleaned planner output: %s", cleaned)

    decoded = decode_planner_response(cleaned)
    if decoded is None:
        return []

    sessions: List[Session] = []
    for index, day in enumerate(decoded.days):
        start = parse_start(day.start_iso8601, window.tzinfo)
        if start is None:
            logger.info("Dropping day %s: unparseable start %r", index, day.start_iso8601)
            continue
        if not window.contains(start):
            logger.info(
                "Dropping day %s: %s outside %s..%s",
                index,
                start.isoformat(),
                window.start.isoformat(),
                window.end.isoformat(),
            )
            continue
        sessions.append(
            Session(
                date=start,
                topic=day.topic,
                activity=day.activity,
                duration_seconds=day.duration_minutes * 60,
                details=list(day.details),
            )
        )

    logger.info("Parsed %s of %s planned days", len(sessions), len(decoded.days))
    return sessions


def _normalize_zulu(value: str) -> str:
    if value.endswith(("Z", "z")):
        return f"{value[:-1]}+00:00"
    return value
