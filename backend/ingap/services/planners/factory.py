"""Planner provider factory."""
from __future__ import annotations

from functools import lru_cache

from ingap.core.config import settings
from ingap.services.planners.base import GenerativePlanner
from ingap.services.planners.openai_planner import OpenAIPlanner
from ingap.services.planners.unavailable import UnavailablePlanner


@lru_cache
def get_planner() -> GenerativePlanner:
    provider = settings.planner_provider.lower()
    if provider != "openai":
        return UnavailablePlanner(f"unknown planner provider {provider!r}")
    if not settings.openai_api_key:
        return UnavailablePlanner("OPENAI_API_KEY is not set")
    return OpenAIPlanner(
        api_key=settings.openai_api_key,
        model=settings.planner_model,
        temperature=settings.planner_temperature,
        timeout_seconds=settings.planner_timeout_seconds,
    )
