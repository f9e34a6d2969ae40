import math
import random
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, List, Optional

from learning_streak.core.circuit_breaker import CircuitBreaker, get_circuit_breaker
from learning_streak.core.config import settings
from learning_streak.core.logging import get_logger
from learning_streak.schemas.streak_schema import (
    DayActivity, StreakRecord, StreakStats, WeeklyDay, utc_now
)
from learning_streak.services.interfaces import (
    IdentityProvider, RemoteStreakStore, LocalCache, Notifier, cache_key
)
from learning_streak.services.motivation import (
    RandomSource, motivational_message, next_milestone, streak_progress
)
from learning_streak.utils.exceptions import (
    CircuitBreakerError, LocalUnavailableError, MalformedStoredRecordError,
    NoIdentityError, RemoteUnavailableError
)

logger = get_logger(__name__)

REMOTE_SERVICE_NAME = "streak_remote_store"
WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class StreakTracker:
    """Daily learning streak for the signed-in user.

    The record is loaded once per session (remote store first, then the local
    cache, then a fresh record) and written to both tiers after every change.
    Storage failures are logged and never reach the caller.

    Not re-entrant: ``record_activity`` and ``evaluate_daily_streak`` do an
    unguarded read-modify-write of ``self.record``, so overlapping calls on
    the same tracker can count a day twice or lose an increment. Callers
    serialize access per user.
    """

    def __init__(
            self,
            identity: IdentityProvider,
            remote_store: Optional[RemoteStreakStore],
            local_cache: LocalCache,
            notifier: Optional[Notifier] = None,
            clock: Optional[Callable[[], datetime]] = None,
            rng: Optional[RandomSource] = None,
            circuit_breaker: Optional[CircuitBreaker] = None,
            history_limit: Optional[int] = None
    ):
        self.identity = identity
        self.remote_store = remote_store
        self.local_cache = local_cache
        self.notifier = notifier
        self.clock = clock or utc_now
        self.rng = rng or random.Random()
        self.circuit_breaker = circuit_breaker or get_circuit_breaker(REMOTE_SERVICE_NAME)
        self.history_limit = history_limit or settings.STREAK_HISTORY_LIMIT

        self.record: Optional[StreakRecord] = None
        self.initialized = False

    def today(self) -> date:
        now = self.clock()
        if now.tzinfo is None:
            return now.date()
        return now.astimezone(timezone.utc).date()

    def _fresh_record(self) -> StreakRecord:
        return StreakRecord.fresh(self.clock())

    def _require_user_id(self) -> str:
        user_id = self.identity.get_current_user_id()
        if not user_id:
            raise NoIdentityError()
        return user_id

    async def _call_remote(self, func: Callable[..., Awaitable[Any]], *args) -> Any:
        try:
            return await self.circuit_breaker.call(func, *args)
        except (RemoteUnavailableError, MalformedStoredRecordError):
            raise
        except CircuitBreakerError as e:
            raise RemoteUnavailableError(e.message, service_name=self.circuit_breaker.name)
        except Exception as e:
            raise RemoteUnavailableError(f"Remote store call failed: {e}", service_name=self.circuit_breaker.name)

    async def _call_local(self, func: Callable[..., Awaitable[Any]], *args) -> Any:
        try:
            return await func(*args)
        except LocalUnavailableError:
            raise
        except Exception as e:
            raise LocalUnavailableError(f"Local cache call failed: {e}")

    async def initialize(self) -> StreakRecord:
        """Load the user's record and count today if it is not counted yet"""
        self.record = await self._load()
        self.initialized = True

        try:
            await self.evaluate_daily_streak()
            logger.info("Streak tracker initialized successfully")
        except Exception as e:
            logger.warning(f"Error initializing streak tracker, starting fresh: {e}", exc_info=True)
            self.record = self._fresh_record()

        return self.record

    async def _load(self) -> StreakRecord:
        try:
            user_id = self._require_user_id()
        except NoIdentityError:
            logger.info("No user signed in, using an in-memory streak")
            return self._fresh_record()

        if self.remote_store is not None:
            try:
                record = await self._call_remote(self.remote_store.get, user_id)
                if record is not None:
                    logger.info(f"Streak data loaded from remote store for user {user_id}")
                    return record
            except (RemoteUnavailableError, MalformedStoredRecordError) as e:
                logger.warning(f"Failed to load streak from remote store, trying local cache: {e.message}")

        try:
            raw = await self._call_local(self.local_cache.get, cache_key(user_id))
        except LocalUnavailableError as e:
            logger.warning(f"Local cache unavailable, starting a fresh streak: {e.message}")
            return self._fresh_record()

        if raw is None:
            logger.info(f"No stored streak for user {user_id}, starting fresh")
            return self._fresh_record()

        try:
            record = StreakRecord.from_storage(raw, source="local_cache")
        except MalformedStoredRecordError as e:
            logger.warning(f"Discarding malformed cached streak for user {user_id}: {e.message}")
            return self._fresh_record()

        logger.info(f"Streak data loaded from local cache for user {user_id}")
        return record

    async def evaluate_daily_streak(self) -> StreakRecord:
        """Advance, keep or reset the streak for today's date"""
        if not self.initialized:
            return await self.initialize()

        record = self.record
        today = self.today()

        if record.last_learning_date is None:
            record.current_streak = 1
            record.longest_streak = max(record.longest_streak, 1)
            record.last_learning_date = today
            record.streak_start_date = today
            record.ensure_day(today, self.history_limit)
            await self.persist()
            logger.info("Streak started today")
            return record

        if record.last_learning_date == today:
            logger.debug("Already learned today, streak maintained")
            return record

        yesterday = today - timedelta(days=1)

        if record.last_learning_date == yesterday:
            record.current_streak += 1
            logger.info(f"Streak continued: {record.current_streak} days")
        else:
            days_missed = abs((today - record.last_learning_date).days)
            if days_missed > 1:
                logger.info(
                    f"Streak broken after {record.current_streak} days. Missed {days_missed - 1} days"
                )
                record.longest_streak = max(record.longest_streak, record.current_streak)
                record.current_streak = 1
                record.streak_start_date = today
            else:
                # Last learning date is ahead of today (clock skew); keep the streak
                record.current_streak += 1
                logger.info(f"Last learning date ahead of today, streak continued: {record.current_streak} days")

        record.last_learning_date = today
        record.longest_streak = max(record.longest_streak, record.current_streak)
        record.ensure_day(today, self.history_limit)

        await self.persist()

        if record.current_streak > 1:
            await self._show_motivation()

        return record

    async def _show_motivation(self) -> None:
        message = self.get_motivational_message()
        logger.info(f"Streak motivation: {message}")

        if self.notifier is None:
            return

        try:
            await self.notifier.notify(message, "success")
        except Exception as e:
            logger.warning(f"Failed to deliver streak notification: {e}")

    @staticmethod
    def _coerce_duration(value: Any) -> int:
        if isinstance(value, bool):
            return 0
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return 0
        if not isinstance(value, (int, float)):
            return 0
        if isinstance(value, float) and not math.isfinite(value):
            return 0
        return max(0, int(value))

    async def record_activity(self, duration_seconds: Any = 0) -> DayActivity:
        """Count a completed lesson and its duration against today"""
        if not self.initialized:
            await self.initialize()

        await self.evaluate_daily_streak()

        duration = self._coerce_duration(duration_seconds)
        entry = self.record.ensure_day(self.today(), self.history_limit)
        entry.duration_seconds += duration
        entry.lessons_completed += 1
        self.record.total_learning_days = len(self.record.learning_history)

        await self.persist()

        logger.info(
            f"Learning activity recorded: {duration} seconds, streak: {self.record.current_streak} days"
        )
        return entry

    async def persist(self) -> None:
        """Write the record to the local cache and, best effort, the remote store"""
        if self.record is None:
            return

        try:
            user_id = self._require_user_id()
        except NoIdentityError:
            logger.warning("No user signed in, cannot save streak data")
            return

        self.record.last_updated = self.clock()
        payload = self.record.to_json()

        try:
            await self._call_local(self.local_cache.set, cache_key(user_id), payload)
        except LocalUnavailableError as e:
            logger.warning(f"Failed to save streak to local cache: {e.message}")

        if self.remote_store is None:
            return

        try:
            saved = await self._call_remote(self.remote_store.put, user_id, self.record)
            if saved is False:
                logger.warning(f"Remote store rejected streak update for user {user_id}")
        except (RemoteUnavailableError, MalformedStoredRecordError) as e:
            logger.warning(f"Failed to save streak to remote store, kept local copy only: {e.message}")

    async def reset(self) -> StreakRecord:
        """Replace the record with a fresh one and save it"""
        self.record = self._fresh_record()
        await self.persist()
        logger.info("Streak reset")
        return self.record

    def get_stats(self) -> StreakStats:
        if self.record is None:
            return StreakStats()

        return StreakStats(
            current_streak=self.record.current_streak,
            longest_streak=self.record.longest_streak,
            total_learning_days=self.record.total_learning_days,
            streak_start_date=self.record.streak_start_date,
            learning_history=[entry.model_copy() for entry in self.record.learning_history],
            last_updated=self.record.last_updated,
        )

    @property
    def current_streak(self) -> int:
        return self.record.current_streak if self.record else 0

    def get_motivational_message(self) -> str:
        return motivational_message(self.current_streak, self.rng)

    def get_weekly_pattern(self) -> List[WeeklyDay]:
        """Last seven days, oldest first, ending today"""
        today = self.today()
        pattern = []
        for offset in range(6, -1, -1):
            day = today - timedelta(days=offset)
            entry = self.record.find_day(day) if self.record else None
            pattern.append(WeeklyDay(
                day=WEEKDAY_NAMES[day.weekday()],
                date=day,
                learned=bool(entry and entry.learned),
                duration_seconds=entry.duration_seconds if entry else 0,
                lessons_completed=entry.lessons_completed if entry else 0,
            ))
        return pattern

    def get_streak_progress(self) -> int:
        return streak_progress(self.current_streak)

    def get_next_milestone(self) -> int:
        return next_milestone(self.current_streak)

    def has_learned_today(self) -> bool:
        return self.record is not None and self.record.last_learning_date == self.today()

    def get_todays_activity(self) -> DayActivity:
        today = self.today()
        entry = self.record.find_day(today) if self.record else None
        if entry is None:
            return DayActivity(date=today)
        return entry.model_copy()
