"""Planning modes offered to the user."""
from __future__ import annotations

from enum import Enum


class PlanningMode(str, Enum):
    WEEK = "week"
    TOMORROW = "tomorrow"
