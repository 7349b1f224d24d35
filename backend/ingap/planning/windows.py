"""Calendar windows the planner is asked to fill."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from ingap.planning.modes import PlanningMode

ONE_SECOND = timedelta(seconds=1)
MONDAY = 0


class WindowComputationError(RuntimeError):
    """Raised when a calendar date cannot be resolved (e.g. past ``date.max``)."""


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("Window start must not be after its end")

    def contains(self, instant: datetime) -> bool:
        """Inclusive on both ends."""
        return self.start <= instant <= self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start

    @property
    def tzinfo(self) -> tzinfo | None:
        return self.start.tzinfo


def tomorrow_window(now: datetime) -> TimeWindow:
    """Return the next calendar day, local midnight to 23:59:59."""
    _require_aware(now)
    tomorrow = _add_days(now.date(), 1)
    return _day_span(tomorrow, tomorrow, now.tzinfo)


def next_work_week_window(now: datetime) -> TimeWindow:
    """
    Return Monday 00:00:00 through Sunday 23:59:59 of the week after ``now``'s week.

    The offset to Monday is always between 1 and 7 days, so a Monday reference
    resolves to the following Monday rather than itself.
    """
    _require_aware(now)
    today = now.date()
    days_until_monday = (MONDAY - today.weekday()) % 7 or 7
    monday = _add_days(today, days_until_monday)
    sunday = _add_days(monday, 6)
    return _day_span(monday, sunday, now.tzinfo)


def window_for_mode(mode: PlanningMode, now: datetime) -> TimeWindow:
    if mode is PlanningMode.WEEK:
        return next_work_week_window(now)
    return tomorrow_window(now)


def _day_span(first: date, last: date, tz: tzinfo | None) -> TimeWindow:
    # Wall-clock arithmetic: midnight - 1s stays 23:59:59 local even across DST.
    start = datetime.combine(first, time.min, tzinfo=tz)
    end = datetime.combine(_add_days(last, 1), time.min, tzinfo=tz) - ONE_SECOND
    return TimeWindow(start=start, end=end)


def _add_days(day: date, days: int) -> date:
    try:
        return day + timedelta(days=days)
    except OverflowError as exc:
        raise WindowComputationError(f"Cannot resolve {days} day(s) after {day.isoformat()}") from exc


def _require_aware(now: datetime) -> None:
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("Reference instant must be timezone-aware")
