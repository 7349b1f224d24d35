"""Rolling weekly quota gating how often plans may be generated."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from threading import Lock
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from ingap.core.config import settings
from ingap.db.models.quota_state import QUOTA_ROW_ID, QuotaStateRecord
from ingap.db.session import SessionLocal

logger = logging.getLogger(__name__)

DEFAULT_WEEKLY_LIMIT = 10
DEFAULT_WINDOW_DAYS = 7

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuotaExceededError(RuntimeError):
    """Raised by callers when a free-tier user has no generations left this window."""

    def __init__(self, reset_at: datetime) -> None:
        super().__init__(f"Weekly generation limit reached; resets at {reset_at.isoformat()}")
        self.reset_at = reset_at


@dataclass
class QuotaState:
    count: int
    window_start: datetime
    is_premium: bool = False

    @classmethod
    def fresh(cls, now: datetime) -> "QuotaState":
        return cls(count=0, window_start=now, is_premium=False)


@dataclass(frozen=True)
class QuotaSnapshot:
    is_premium: bool
    count: int
    limit: int
    remaining: Optional[int]
    window_start: datetime
    reset_at: datetime
    can_generate: bool


class QuotaStore:
    """Persistence hooks for the quota state."""

    def load(self, now: datetime) -> QuotaState:
        raise NotImplementedError

    def save(self, state: QuotaState) -> None:
        raise NotImplementedError


class InMemoryQuotaStore(QuotaStore):
    def __init__(self, state: QuotaState | None = None) -> None:
        self._state = state

    def load(self, now: datetime) -> QuotaState:
        if self._state is None:
            self._state = QuotaState.fresh(now)
        return replace(self._state)

    def save(self, state: QuotaState) -> None:
        self._state = replace(state)


class SqlQuotaStore(QuotaStore):
    """Keep the quota in the single-row ``quota_state`` table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def load(self, now: datetime) -> QuotaState:
        session: Session = self._session_factory()
        try:
            record = session.get(QuotaStateRecord, QUOTA_ROW_ID)
            if record is None:
                record = QuotaStateRecord(
                    id=QUOTA_ROW_ID,
                    generation_count=0,
                    window_start=now,
                    is_premium=False,
                )
                session.add(record)
                session.commit()
                logger.info("Seeded quota state (window_start=%s)", now.isoformat())
            return QuotaState(
                count=record.generation_count,
                window_start=record.window_start,
                is_premium=record.is_premium,
            )
        finally:
            session.close()

    def save(self, state: QuotaState) -> None:
        session: Session = self._session_factory()
        try:
            record = session.get(QuotaStateRecord, QUOTA_ROW_ID)
            if record is None:
                record = QuotaStateRecord(id=QUOTA_ROW_ID)
                session.add(record)
            record.generation_count = state.count
            record.window_start = state.window_start
            record.is_premium = state.is_premium
            session.commit()
        finally:
            session.close()


class QuotaTracker:
    """
    Owns the installation's ``QuotaState``.

    Free users get ``limit`` generations per rolling ``window_days`` window; the window
    restarts at "now" the first time it is consulted after expiring. Premium users are
    never limited. Every read-then-write sequence holds ``_lock``; ``try_reserve`` is
    the check-and-charge used before calling the planner.
    """

    def __init__(
        self,
        state: QuotaState | None = None,
        *,
        store: QuotaStore | None = None,
        clock: Clock = utcnow,
        limit: int = DEFAULT_WEEKLY_LIMIT,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> None:
        self._clock = clock
        self._store = store
        self._lock = Lock()
        self.limit = limit
        self.window = timedelta(days=window_days)
        if state is None:
            state = store.load(clock()) if store else QuotaState.fresh(clock())
        self._state = state

    @property
    def state(self) -> QuotaState:
        with self._lock:
            return replace(self._state)

    @property
    def reset_date(self) -> datetime:
        with self._lock:
            return self._state.window_start + self.window

    def roll_window_if_expired(self, now: datetime | None = None) -> bool:
        """Reset the counter when a full window has elapsed; returns True if it rolled."""
        with self._lock:
            return self._roll_locked(now or self._clock())

    def can_generate(self) -> bool:
        with self._lock:
            if self._state.is_premium:
                return True
            self._roll_locked(self._clock())
            return self._state.count < self.limit

    def remaining(self) -> Optional[int]:
        """Generations left in the current window; ``None`` means unbounded (premium)."""
        with self._lock:
            if self._state.is_premium:
                return None
            self._roll_locked(self._clock())
            return max(0, self.limit - self._state.count)

    def try_reserve(self) -> bool:
        """
        Roll, compare and charge one generation as a single step.

        Returns False, leaving the state untouched, when the free quota is used up.
        Premium users always get True and are never charged.
        """
        with self._lock:
            if self._state.is_premium:
                return True
            self._roll_locked(self._clock())
            if self._state.count >= self.limit:
                return False
            self._state.count += 1
            logger.info("Reserved generation %s/%s", self._state.count, self.limit)
            self._persist_locked()
            return True

    def release(self) -> None:
        """Give back a reservation whose planner call did not complete."""
        with self._lock:
            if self._state.is_premium or self._state.count == 0:
                return
            self._state.count -= 1
            logger.info("Released generation; count back to %s/%s", self._state.count, self.limit)
            self._persist_locked()

    def record_generation(self) -> None:
        """Charge one generation unconditionally, even past the limit."""
        with self._lock:
            if self._state.is_premium:
                return
            self._roll_locked(self._clock())
            self._state.count += 1
            logger.info("Recorded generation %s/%s", self._state.count, self.limit)
            self._persist_locked()

    def reset(self) -> None:
        with self._lock:
            self._state.count = 0
            self._state.window_start = self._clock()
            logger.info("Quota reset by administrator")
            self._persist_locked()

    def unlock_premium(self) -> None:
        with self._lock:
            if self._state.is_premium:
                return
            self._state.is_premium = True
            logger.info("Premium unlocked; generation quota lifted")
            self._persist_locked()

    def snapshot(self) -> QuotaSnapshot:
        with self._lock:
            now = self._clock()
            if not self._state.is_premium:
                self._roll_locked(now)
            remaining = None if self._state.is_premium else max(0, self.limit - self._state.count)
            return QuotaSnapshot(
                is_premium=self._state.is_premium,
                count=self._state.count,
                limit=self.limit,
                remaining=remaining,
                window_start=self._state.window_start,
                reset_at=self._state.window_start + self.window,
                can_generate=self._state.is_premium or self._state.count < self.limit,
            )

    def _roll_locked(self, now: datetime) -> bool:
        elapsed = now - self._state.window_start
        if elapsed.days < self.window.days:
            return False
        logger.info(
            "Quota window expired after %s day(s); resetting count %s -> 0",
            elapsed.days,
            self._state.count,
        )
        self._state.count = 0
        self._state.window_start = now
        self._persist_locked()
        return True

    def _persist_locked(self) -> None:
        if self._store is not None:
            self._store.save(self._state)


@lru_cache
def get_quota_tracker() -> QuotaTracker:
    """Return the process-wide tracker backed by the configured database."""
    return QuotaTracker(
        store=SqlQuotaStore(SessionLocal),
        limit=settings.weekly_generation_limit,
        window_days=settings.quota_window_days,
    )
