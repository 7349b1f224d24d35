"""Schedule planning pipeline: window -> busy list -> prompt -> planner -> validated sessions."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from time import perf_counter
from typing import Iterable, List, Optional

from starlette.concurrency import run_in_threadpool

from ingap.observability.metrics import log_metric
from ingap.observability.tracing import trace
from ingap.planning.busy import BusyInterval, format_busy_intervals
from ingap.planning.modes import PlanningMode
from ingap.planning.parser import Session, parse_plan
from ingap.planning.prompts import PlanRequest, build_prompt_for_request, timezone_offset
from ingap.planning.windows import TimeWindow, window_for_mode
from ingap.services.planners.base import GenerativePlanner, PlannerTimeoutError
from ingap.services.quota import QuotaExceededError, QuotaTracker

logger = logging.getLogger(__name__)


@dataclass
class PlanResult:
    mode: PlanningMode
    topic: str
    window: TimeWindow
    sessions: List[Session] = field(default_factory=list)
    charged: bool = False
    error: Optional[str] = None

    @property
    def produced_plan(self) -> bool:
        return bool(self.sessions)


async def generate_plan(
    *,
    mode: PlanningMode,
    topic: str,
    busy_intervals: Iterable[BusyInterval],
    now: datetime,
    planner: GenerativePlanner,
    quota: QuotaTracker,
    timeout_seconds: float | None = None,
) -> PlanResult:
    """
    Run one generation for ``topic`` and return the validated sessions.

    Raises ``ValueError`` for an empty topic and ``QuotaExceededError`` when the free
    quota is used up. One generation is reserved before the planner is called, so
    concurrent callers cannot overshoot the limit. Planner failures, timeouts and
    cancellation release the reservation; a completed call keeps it whether or not
    any session survives validation. Quota persistence runs in the threadpool.
    """
    cleaned_topic = topic.strip()
    if not cleaned_topic:
        raise ValueError("Topic must not be empty")
    window = window_for_mode(mode, now)
    request = PlanRequest(
        topic=cleaned_topic,
        window=window,
        busy_intervals=tuple(sorted(busy_intervals, key=lambda interval: interval.start)),
        timezone_offset=timezone_offset(now),
    )
    formatted_busy = format_busy_intervals(request.busy_intervals, window)
    plan_prompt = build_prompt_for_request(mode, request, formatted_busy)
    result = PlanResult(mode=mode, topic=cleaned_topic, window=window)

    metadata = {
        "mode": mode.value,
        "planner": planner.name,
        "window_start": window.start.isoformat(),
        "window_end": window.end.isoformat(),
        "busy_intervals": len(request.busy_intervals),
    }
    if not await run_in_threadpool(quota.try_reserve):
        raise QuotaExceededError(quota.reset_date)

    start = perf_counter()
    with trace("plan.generate", metadata=metadata) as plan_trace:
        try:
            raw = await _call_planner(planner, plan_prompt.instructions, plan_prompt.prompt, timeout_seconds)
        except asyncio.CancelledError:
            # Released inline; the task is being cancelled.
            quota.release()
            logger.info("Plan generation cancelled (mode=%s); quota not charged", mode.value)
            raise
        except Exception as exc:
            logger.warning("Planner %s failed (mode=%s): %s", planner.name, mode.value, exc)
            result.error = type(exc).__name__
            await run_in_threadpool(quota.release)
        else:
            result.charged = True
            result.sessions = parse_plan(raw, window)
        if plan_trace:
            plan_trace.update(
                metadata={**metadata, "sessions": len(result.sessions), "error": result.error or ""},
            )

    latency_ms = (perf_counter() - start) * 1000
    log_metric("plan.generate.success", 1 if result.produced_plan else 0, metadata={"mode": mode.value})
    log_metric("plan.generate.sessions", len(result.sessions), metadata={"mode": mode.value})
    log_metric("plan.generate.latency_ms", latency_ms, metadata={"mode": mode.value})
    return result


async def _call_planner(
    planner: GenerativePlanner,
    instructions: str,
    prompt: str,
    timeout_seconds: float | None,
) -> str:
    if timeout_seconds is None:
        return await planner.generate(instructions, prompt)
    try:
        return await asyncio.wait_for(planner.generate(instructions, prompt), timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise PlannerTimeoutError(f"Planner did not answer within {timeout_seconds:g}s") from exc
