"""Busy intervals and their rendering for the planner prompt."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable

from ingap.planning.windows import TimeWindow

NO_CONFLICTS_SENTINEL = "No conflicts - the user is completely free."

CLOCK_FORMAT = "%H:%M"


@dataclass(frozen=True)
class BusyInterval:
    """A span the user is already committed to, from a synced calendar or entered by hand."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError("Busy interval must end after it starts")


def normalize_interval(start: datetime, end: datetime) -> BusyInterval:
    """Build an interval, rolling an overnight ``end`` (earlier than ``start``) into the next day."""
    if end < start:
        end = _next_day_same_clock(end)
    return BusyInterval(start=start, end=end)


def manual_interval(day: date, start_time: time, end_time: time, tz: tzinfo | None) -> BusyInterval:
    """Combine a manually entered date and clock range into an interval."""
    start = datetime.combine(day, start_time.replace(second=0, microsecond=0), tzinfo=tz)
    end = datetime.combine(day, end_time.replace(second=0, microsecond=0), tzinfo=tz)
    return normalize_interval(start, end)


def format_busy_intervals(intervals: Iterable[BusyInterval], window: TimeWindow) -> str:
    """
    Render the intervals overlapping ``window``, one per line, in the order given.

    Returns ``NO_CONFLICTS_SENTINEL`` when nothing overlaps.
    """
    relevant = [interval for interval in intervals if window.overlaps(interval.start, interval.end)]
    if not relevant:
        return NO_CONFLICTS_SENTINEL
    return "\n".join(_format_line(interval, window.tzinfo) for interval in relevant)


def _format_line(interval: BusyInterval, tz: tzinfo | None) -> str:
    start = interval.start.astimezone(tz) if tz else interval.start
    end = interval.end.astimezone(tz) if tz else interval.end
    return (
        f"- {start:%a, %b} {start.day} "
        f"({start.strftime(CLOCK_FORMAT)} to {end.strftime(CLOCK_FORMAT)})"
    )


def _next_day_same_clock(value: datetime) -> datetime:
    next_day = value.date() + timedelta(days=1)
    return datetime.combine(next_day, value.timetz())
