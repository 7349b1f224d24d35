from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock, Thread

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ingap.db.base import Base
from ingap.db import models  # noqa: F401
from ingap.services.quota import InMemoryQuotaStore, QuotaState, QuotaTracker, SqlQuotaStore

START = datetime(2024, 1, 8, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def _tracker(state: QuotaState | None = None, clock: _Clock | None = None, **kwargs) -> QuotaTracker:
    return QuotaTracker(state, clock=clock or _Clock(START), **kwargs)


def test_fresh_tracker_allows_generation() -> None:
    tracker = _tracker()

    assert tracker.can_generate() is True
    assert tracker.remaining() == 10
    assert tracker.state == QuotaState(count=0, window_start=START, is_premium=False)


def test_ten_generations_exhaust_free_quota() -> None:
    tracker = _tracker()
    for _ in range(10):
        tracker.record_generation()

    assert tracker.can_generate() is False
    assert tracker.remaining() == 0

    tracker.record_generation()
    assert tracker.can_generate() is False
    assert tracker.remaining() == 0


def test_premium_is_unbounded_regardless_of_count() -> None:
    tracker = _tracker(QuotaState(count=25, window_start=START))
    assert tracker.can_generate() is False

    tracker.unlock_premium()

    assert tracker.can_generate() is True
    assert tracker.remaining() is None
    tracker.record_generation()
    assert tracker.state.count == 25


def test_expired_window_rolls_before_evaluating() -> None:
    clock = _Clock(START)
    tracker = _tracker(QuotaState(count=5, window_start=START - timedelta(days=8)), clock=clock)

    assert tracker.can_generate() is True
    assert tracker.state.count == 0
    assert tracker.state.window_start == START


def test_window_rolls_only_after_seven_whole_days() -> None:
    clock = _Clock(START)
    tracker = _tracker(QuotaState(count=10, window_start=START), clock=clock)

    clock.advance(days=6, hours=23, minutes=59)
    assert tracker.can_generate() is False

    clock.advance(minutes=1)
    assert tracker.can_generate() is True
    assert tracker.state.window_start == clock.now


def test_record_generation_after_expiry_starts_new_window_at_one() -> None:
    clock = _Clock(START)
    tracker = _tracker(QuotaState(count=9, window_start=START - timedelta(days=7)), clock=clock)

    tracker.record_generation()

    assert tracker.state.count == 1
    assert tracker.state.window_start == START


def test_roll_window_if_expired_reports_roll() -> None:
    tracker = _tracker(QuotaState(count=3, window_start=START))

    assert tracker.roll_window_if_expired(START + timedelta(days=2)) is False
    assert tracker.roll_window_if_expired(START + timedelta(days=7)) is True
    assert tracker.state.count == 0


def test_reset_is_unconditional() -> None:
    clock = _Clock(START)
    tracker = _tracker(QuotaState(count=10, window_start=START - timedelta(days=2)), clock=clock)

    tracker.reset()

    assert tracker.state == QuotaState(count=0, window_start=START, is_premium=False)
    assert tracker.reset_date == START + timedelta(days=7)


def test_snapshot_reports_limits() -> None:
    tracker = _tracker(limit=3)
    tracker.record_generation()

    snapshot = tracker.snapshot()

    assert snapshot.count == 1
    assert snapshot.limit == 3
    assert snapshot.remaining == 2
    assert snapshot.can_generate is True
    assert snapshot.reset_at == START + timedelta(days=7)


def test_concurrent_records_do_not_lose_updates() -> None:
    tracker = _tracker(limit=10_000)

    def worker() -> None:
        for _ in range(250):
            tracker.record_generation()

    threads = [Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert tracker.state.count == 2000


def test_in_memory_store_receives_every_mutation() -> None:
    store = InMemoryQuotaStore()
    tracker = QuotaTracker(store=store, clock=_Clock(START))

    tracker.record_generation()
    tracker.unlock_premium()

    assert store.load(START) == QuotaState(count=1, window_start=START, is_premium=True)


def test_sql_store_seeds_and_persists_state() -> None:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    clock = _Clock(START)

    tracker = QuotaTracker(store=SqlQuotaStore(session_factory), clock=clock)
    tracker.record_generation()
    tracker.record_generation()

    clock.advance(days=1)
    reloaded = QuotaTracker(store=SqlQuotaStore(session_factory), clock=clock)

    assert reloaded.state == QuotaState(count=2, window_start=START, is_premium=False)
    assert reloaded.remaining() == 8


def test_try_reserve_stops_at_the_limit() -> None:
    tracker = _tracker(QuotaState(count=9, window_start=START))

    assert tracker.try_reserve() is True
    assert tracker.try_reserve() is False
    assert tracker.state.count == 10


def test_try_reserve_rolls_an_expired_window_first() -> None:
    tracker = _tracker(QuotaState(count=10, window_start=START - timedelta(days=7)))

    assert tracker.try_reserve() is True
    assert tracker.state == QuotaState(count=1, window_start=START, is_premium=False)


def test_release_returns_the_reserved_generation() -> None:
    tracker = _tracker(QuotaState(count=10, window_start=START))

    tracker.release()

    assert tracker.state.count == 9
    assert tracker.try_reserve() is True


def test_release_never_goes_below_zero() -> None:
    tracker = _tracker()

    tracker.release()

    assert tracker.state.count == 0


def test_premium_reservations_are_free() -> None:
    tracker = _tracker(QuotaState(count=25, window_start=START, is_premium=True))

    assert tracker.try_reserve() is True
    tracker.release()

    assert tracker.state.count == 25


def test_concurrent_reservations_respect_the_limit() -> None:
    tracker = _tracker()
    granted: list[bool] = []
    lock = Lock()

    def worker() -> None:
        for _ in range(20):
            ok = tracker.try_reserve()
            with lock:
                granted.append(ok)

    threads = [Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert granted.count(True) == 10
    assert tracker.state.count == 10
