from __future__ import annotations

import asyncio
import json
import threading
from datetime import datetime, timezone

import pytest

from ingap.planning.busy import BusyInterval, NO_CONFLICTS_SENTINEL
from ingap.planning.modes import PlanningMode
from ingap.services.plan_pipeline import generate_plan
from ingap.services.planners.base import GenerativePlanner, PlannerError
from ingap.services.quota import InMemoryQuotaStore, QuotaExceededError, QuotaState, QuotaTracker

UTC = timezone.utc
# Wednesday; the next work week is Monday 2024-01-08 .. Sunday 2024-01-14.
NOW = datetime(2024, 1, 3, 18, 0, tzinfo=UTC)


class _ScriptedPlanner(GenerativePlanner):
    name = "scripted"

    def __init__(self, response: str = "", error: Exception | None = None, delay: float = 0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def generate(self, instructions: str, prompt: str) -> str:
        self.calls.append((instructions, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.response


def _week_response() -> str:
    hours = [7, 8, 10, 12, 14, 18, 20]
    days = [
        {
            "startISO8601": f"2024-01-{8 + index:02d}T{hour:02d}:00:00+00:00",
            "topic": "Linear Algebra",
            "activity": f"Block {index + 1}",
            "durationMinutes": 60,
            "details": ["Watch lecture", "Solve 5 problems"],
        }
        for index, hour in enumerate(hours)
    ]
    return "```json\n" + json.dumps({"days": days}) + "\n```"


def _run(coro):
    return asyncio.run(coro)


def _tracker(count: int = 0) -> QuotaTracker:
    return QuotaTracker(QuotaState(count=count, window_start=NOW), clock=lambda: NOW)


def test_week_plan_end_to_end() -> None:
    planner = _ScriptedPlanner(_week_response())
    quota = _tracker()
    busy = [
        BusyInterval(start=datetime(2024, 1, 10, 9, 0, tzinfo=UTC), end=datetime(2024, 1, 10, 10, 0, tzinfo=UTC)),
        BusyInterval(start=datetime(2024, 1, 9, 9, 0, tzinfo=UTC), end=datetime(2024, 1, 9, 10, 0, tzinfo=UTC)),
    ]

    result = _run(
        generate_plan(
            mode=PlanningMode.WEEK,
            topic="Linear Algebra",
            busy_intervals=busy,
            now=NOW,
            planner=planner,
            quota=quota,
        )
    )

    assert result.window.start == datetime(2024, 1, 8, tzinfo=UTC)
    assert result.window.end == datetime(2024, 1, 14, 23, 59, 59, tzinfo=UTC)
    assert len(result.sessions) == 7
    assert [session.activity for session in result.sessions] == [f"Block {n}" for n in range(1, 8)]
    assert all(session.duration_seconds == 3600 for session in result.sessions)
    assert result.charged is True
    assert quota.state.count == 1

    _, prompt = planner.calls[0]
    assert prompt.index("Tue, Jan 9") < prompt.index("Wed, Jan 10")


def test_tomorrow_mode_uses_single_day_window() -> None:
    planner = _ScriptedPlanner(json.dumps({"days": []}))

    result = _run(
        generate_plan(
            mode=PlanningMode.TOMORROW,
            topic="Spanish",
            busy_intervals=[],
            now=NOW,
            planner=planner,
            quota=_tracker(),
        )
    )

    assert result.window.start == datetime(2024, 1, 4, tzinfo=UTC)
    assert result.sessions == []
    instructions, prompt = planner.calls[0]
    assert "Use Timezone Offset: +00:00" in instructions
    assert NO_CONFLICTS_SENTINEL in prompt


def test_malformed_output_is_still_charged() -> None:
    quota = _tracker()

    result = _run(
        generate_plan(
            mode=PlanningMode.WEEK,
            topic="Chess",
            busy_intervals=[],
            now=NOW,
            planner=_ScriptedPlanner("not json at all"),
            quota=quota,
        )
    )

    assert result.sessions == []
    assert result.charged is True
    assert quota.state.count == 1


def test_planner_failure_yields_empty_plan_without_charge() -> None:
    quota = _tracker()

    result = _run(
        generate_plan(
            mode=PlanningMode.WEEK,
            topic="Chess",
            busy_intervals=[],
            now=NOW,
            planner=_ScriptedPlanner(error=PlannerError("model offline")),
            quota=quota,
        )
    )

    assert result.sessions == []
    assert result.charged is False
    assert result.error == "PlannerError"
    assert quota.state.count == 0


def test_unexpected_planner_exception_is_contained() -> None:
    quota = _tracker()

    result = _run(
        generate_plan(
            mode=PlanningMode.TOMORROW,
            topic="Chess",
            busy_intervals=[],
            now=NOW,
            planner=_ScriptedPlanner(error=ConnectionError("reset by peer")),
            quota=quota,
        )
    )

    assert result.sessions == []
    assert quota.state.count == 0


def test_planner_timeout_yields_empty_plan_without_charge() -> None:
    quota = _tracker()

    result = _run(
        generate_plan(
            mode=PlanningMode.WEEK,
            topic="Chess",
            busy_intervals=[],
            now=NOW,
            planner=_ScriptedPlanner(_week_response(), delay=1.0),
            quota=quota,
            timeout_seconds=0.01,
        )
    )

    assert result.sessions == []
    assert result.error == "PlannerTimeoutError"
    assert quota.state.count == 0


def test_cancellation_propagates_and_leaves_quota_untouched() -> None:
    quota = _tracker()
    planner = _ScriptedPlanner(_week_response(), delay=10.0)

    async def scenario() -> None:
        task = asyncio.create_task(
            generate_plan(
                mode=PlanningMode.WEEK,
                topic="Chess",
                busy_intervals=[],
                now=NOW,
                planner=planner,
                quota=quota,
            )
        )
        while not planner.calls:
            await asyncio.sleep(0.005)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    _run(scenario())

    assert quota.state.count == 0


def test_exhausted_quota_blocks_before_calling_planner() -> None:
    planner = _ScriptedPlanner(_week_response())

    with pytest.raises(QuotaExceededError):
        _run(
            generate_plan(
                mode=PlanningMode.WEEK,
                topic="Chess",
                busy_intervals=[],
                now=NOW,
                planner=planner,
                quota=_tracker(count=10),
            )
        )

    assert planner.calls == []


def test_blank_topic_is_rejected() -> None:
    planner = _ScriptedPlanner(_week_response())

    with pytest.raises(ValueError):
        _run(
            generate_plan(
                mode=PlanningMode.WEEK,
                topic="   ",
                busy_intervals=[],
                now=NOW,
                planner=planner,
                quota=_tracker(),
            )
        )

    assert planner.calls == []


def test_concurrent_generations_cannot_exceed_the_limit() -> None:
    quota = _tracker(count=9)
    planner = _ScriptedPlanner(_week_response(), delay=0.05)

    async def scenario():
        return await asyncio.gather(
            *[
                generate_plan(
                    mode=PlanningMode.WEEK,
                    topic="Chess",
                    busy_intervals=[],
                    now=NOW,
                    planner=planner,
                    quota=quota,
                )
                for _ in range(3)
            ],
            return_exceptions=True,
        )

    outcomes = _run(scenario())

    charged = [outcome for outcome in outcomes if not isinstance(outcome, BaseException) and outcome.charged]
    rejected = [outcome for outcome in outcomes if isinstance(outcome, QuotaExceededError)]
    assert len(charged) == 1
    assert len(rejected) == 2
    assert len(planner.calls) == 1
    assert quota.state.count == 10


def test_failed_call_frees_its_slot_for_the_next_request() -> None:
    quota = _tracker(count=9)

    failed = _run(
        generate_plan(
            mode=PlanningMode.WEEK,
            topic="Chess",
            busy_intervals=[],
            now=NOW,
            planner=_ScriptedPlanner(error=PlannerError("model offline")),
            quota=quota,
        )
    )
    succeeded = _run(
        generate_plan(
            mode=PlanningMode.WEEK,
            topic="Chess",
            busy_intervals=[],
            now=NOW,
            planner=_ScriptedPlanner(_week_response()),
            quota=quota,
        )
    )

    assert failed.charged is False
    assert succeeded.charged is True
    assert quota.state.count == 10


class _ThreadRecordingStore(InMemoryQuotaStore):
    def __init__(self) -> None:
        super().__init__()
        self.save_threads: list[int] = []

    def save(self, state: QuotaState) -> None:
        self.save_threads.append(threading.get_ident())
        super().save(state)


def test_quota_persistence_runs_off_the_event_loop() -> None:
    store = _ThreadRecordingStore()
    quota = QuotaTracker(store=store, clock=lambda: NOW)

    async def scenario() -> int:
        await generate_plan(
            mode=PlanningMode.WEEK,
            topic="Chess",
            busy_intervals=[],
            now=NOW,
            planner=_ScriptedPlanner(error=PlannerError("model offline")),
            quota=quota,
        )
        return threading.get_ident()

    loop_thread = _run(scenario())

    assert len(store.save_threads) == 2
    assert loop_thread not in store.save_threads
    assert quota.state.count == 0
