"""Generative planner interface."""
from __future__ import annotations


class PlannerError(RuntimeError):
    """Base class for failures reported by a planner provider."""


class PlannerUnavailableError(PlannerError):
    """The provider cannot be used (missing credentials, disabled)."""


class PlannerTimeoutError(PlannerError):
    """The provider did not answer within the configured timeout."""


class GenerativePlanner:
    """Turn an instructions/prompt pair into free text that should contain a JSON plan."""

    name = "base"

    async def generate(self, instructions: str, prompt: str) -> str:
        raise NotImplementedError
