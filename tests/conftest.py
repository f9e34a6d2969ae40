import asyncio
import random
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from learning_streak.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from learning_streak.schemas.streak_schema import StreakRecord
from learning_streak.services.identity import StaticIdentityProvider
from learning_streak.services.streak_tracker import StreakTracker
from learning_streak.utils.exceptions import LocalUnavailableError, RemoteUnavailableError

TODAY = date(2026, 3, 15)
USER_ID = "user-123"


class FixedClock:
    """Clock pinned to noon UTC of a given day; advance with ``move_to``"""

    def __init__(self, day: date = TODAY):
        self.now = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def move_to(self, day: date) -> None:
        self.now = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)

    def advance(self, days: int = 1) -> None:
        self.now = self.now + timedelta(days=days)


class FakeRemoteStore:
    def __init__(self):
        self.records: Dict[str, dict] = {}
        self.fail_get = False
        self.fail_put = False
        self.hang = False
        self.put_calls: List[str] = []
        self.push_tokens: Dict[str, str] = {}

    async def get(self, user_id: str) -> Optional[StreakRecord]:
        if self.hang:
            await asyncio.sleep(10)
        if self.fail_get:
            raise RemoteUnavailableError("remote down")
        payload = self.records.get(user_id)
        if payload is None:
            return None
        return StreakRecord.from_storage(payload, source="fake_remote")

    async def put(self, user_id: str, record: StreakRecord) -> bool:
        self.put_calls.append(user_id)
        if self.hang:
            await asyncio.sleep(10)
        if self.fail_put:
            raise RemoteUnavailableError("remote down")
        self.records[user_id] = record.to_storage()
        return True

    async def get_push_token(self, user_id: str) -> Optional[str]:
        return self.push_tokens.get(user_id)


class MemoryCache:
    def __init__(self):
        self.data: Dict[str, str] = {}
        self.fail = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail:
            raise LocalUnavailableError("disk gone")
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail:
            raise LocalUnavailableError("disk gone")
        self.data[key] = value


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.sent: List[Tuple[str, str]] = []
        self.fail = fail

    async def notify(self, message: str, category: str = "info") -> bool:
        if self.fail:
            raise RuntimeError("notification sink offline")
        self.sent.append((message, category))
        return True


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def breaker():
    return CircuitBreaker("test_remote", CircuitBreakerConfig(failure_threshold=5, timeout=0.05))


@pytest.fixture
def make_tracker(remote, cache, notifier, clock, breaker):
    def factory(user_id: Optional[str] = USER_ID, **overrides) -> StreakTracker:
        options = dict(
            identity=StaticIdentityProvider(user_id),
            remote_store=remote,
            local_cache=cache,
            notifier=notifier,
            clock=clock,
            rng=random.Random(7),
            circuit_breaker=breaker,
        )
        options.update(overrides)
        return StreakTracker(**options)

    return factory


def stored_record(**fields) -> dict:
    """Persisted-shape record with camelCase keys"""
    record = StreakRecord(**fields)
    return record.to_storage()
