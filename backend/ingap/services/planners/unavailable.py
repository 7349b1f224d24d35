"""Placeholder provider used when no model is configured."""
from __future__ import annotations

import logging

from ingap.services.planners.base import GenerativePlanner, PlannerUnavailableError

logger = logging.getLogger(__name__)


class UnavailablePlanner(GenerativePlanner):
    name = "unavailable"

    def __init__(self, reason: str) -> None:
        self.reason = reason

    async def generate(self, instructions: str, prompt: str) -> str:
        logger.warning("Plan generation requested but no planner is available: %s", self.reason)
        raise PlannerUnavailableError(self.reason)
