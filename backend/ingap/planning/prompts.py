"""Instructions + prompt pairs sent to the generative planner."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Sequence

from ingap.planning.busy import BusyInterval
from ingap.planning.modes import PlanningMode
from ingap.planning.windows import TimeWindow


@dataclass(frozen=True)
class PlanPrompt:
    instructions: str
    prompt: str


@dataclass(frozen=True)
class PlanRequest:
    """Everything a single generation call needs; built per call, never stored."""

    topic: str
    window: TimeWindow
    busy_intervals: Sequence[BusyInterval] = field(default_factory=tuple)
    timezone_offset: str = "+00:00"


@dataclass(frozen=True)
class PlanVariant:
    persona: str
    session_count: int
    min_minutes: int
    max_minutes: int
    conflicts_heading: str
    rules: List[str]


PLAN_VARIANTS: Dict[PlanningMode, PlanVariant] = {
    PlanningMode.WEEK: PlanVariant(
        persona="You are a professional learning coach. Your task is to generate a 7-day study plan.",
        session_count=7,
        min_minutes=45,
        max_minutes=90,
        conflicts_heading="CALENDAR CONFLICTS (DO NOT OVERLAP)",
        rules=[
            "Exactly 7 sessions (one per day).",
            "Hours: 07:00 to 21:00 only.",
            "Duration: 45-90 minutes.",
            "Progression: Days 1-2 (Basics), 3-5 (Practice), 6-7 (Advanced/Project).",
        ],
    ),
    PlanningMode.TOMORROW: PlanVariant(
        persona="You are a micro-learning coach. Create 3 short sessions for tomorrow.",
        session_count=3,
        min_minutes=5,
        max_minutes=15,
        conflicts_heading="UNAVAILABLE TIMES",
        rules=[
            "Exactly 3 sessions, one in each window:",
            "  1. Morning (08:00-10:00) - 15 mins",
            "  2. Midday (12:00-14:00) - 15 mins",
            "  3. Evening (19:00-21:00) - 10 mins",
            "Duration: 5-15 minutes.",
            "Avoid all conflicts with a 5-minute buffer.",
        ],
    ),
}


def timezone_offset(instant: datetime) -> str:
    """Return the instant's UTC offset as ``±HH:MM``."""
    offset = instant.utcoffset()
    total_minutes = int(offset.total_seconds() // 60) if offset is not None else 0
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def format_date_for_display(instant: datetime) -> str:
    return f"{instant:%A, %B} {instant.day}, {instant.year}"


def build_plan_prompt(
    mode: PlanningMode,
    topic: str,
    window: TimeWindow,
    formatted_busy: str,
    tz_offset: str,
) -> PlanPrompt:
    """
    Compose the instructions/prompt pair for ``mode``.

    ``topic`` must already be validated as non-empty by the caller.
    """
    variant = PLAN_VARIANTS[mode]
    return PlanPrompt(
        instructions=_render_instructions(variant, tz_offset),
        prompt=_render_prompt(mode, variant, topic.strip(), window, formatted_busy, tz_offset),
    )


def build_prompt_for_request(mode: PlanningMode, request: PlanRequest, formatted_busy: str) -> PlanPrompt:
    return build_plan_prompt(mode, request.topic, request.window, formatted_busy, request.timezone_offset)


def _render_instructions(variant: PlanVariant, tz_offset: str) -> str:
    return (
        f"{variant.persona}\n\n"
        "CRITICAL INSTRUCTIONS:\n"
        "1. Return ONLY valid JSON. No markdown, no code fences, no conversational text.\n"
        "2. Follow the schema:\n"
        f"{_schema_block(variant)}\n"
        f"3. Use Timezone Offset: {tz_offset}\n"
        f"4. Produce exactly {variant.session_count} entries in \"days\".\n"
        "5. THOUGHT PROCESS: Before writing the JSON, internally verify that no session "
        "overlaps with the provided busy slots."
    )


def _schema_block(variant: PlanVariant) -> str:
    return (
        "    {\n"
        '        "days": [\n'
        "            {\n"
        '                "startISO8601": "YYYY-MM-DDTHH:MM:SS+/-HH:MM",\n'
        '                "topic": "string",\n'
        '                "activity": "string",\n'
        f'                "durationMinutes": {variant.min_minutes}-{variant.max_minutes},\n'
        '                "details": ["string", "string", "string"]\n'
        "            }\n"
        "        ]\n"
        "    }"
    )


def _render_prompt(
    mode: PlanningMode,
    variant: PlanVariant,
    topic: str,
    window: TimeWindow,
    formatted_busy: str,
    tz_offset: str,
) -> str:
    start_label = format_date_for_display(window.start)
    if mode is PlanningMode.WEEK:
        objective = (
            f'Create a 7-day plan for: "{topic}"\n'
            f"Week Range: {start_label} to {format_date_for_display(window.end)}"
        )
        validation = 'Ensure every "startISO8601" date actually falls on the correct day of that week.'
    else:
        objective = f'3 Micro-sessions for tomorrow ({start_label}) regarding: "{topic}"'
        validation = f"All sessions MUST occur on {start_label}."

    rules = "\n".join(f"- {rule}" if not rule.startswith("  ") else rule for rule in variant.rules)
    return (
        "# OBJECTIVE\n"
        f"{objective}\n\n"
        f"# {variant.conflicts_heading}\n"
        f"{formatted_busy}\n\n"
        "# STRICT RULES\n"
        f"{rules}\n"
        f"- Format: YYYY-MM-DDTHH:MM:SS{tz_offset}\n\n"
        "# VALIDATION\n"
        f"{validation}"
    )
