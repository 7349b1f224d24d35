"""Generative planner providers."""
from ingap.services.planners.base import (
    GenerativePlanner,
    PlannerError,
    PlannerTimeoutError,
    PlannerUnavailableError,
)
from ingap.services.planners.factory import get_planner

__all__ = [
    "GenerativePlanner",
    "PlannerError",
    "PlannerTimeoutError",
    "PlannerUnavailableError",
    "get_planner",
]
