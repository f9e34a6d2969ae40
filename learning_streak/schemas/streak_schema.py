import datetime as dt
import json
import math
from typing import Optional, List, Dict, Any, Union
from pydantic import (
    BaseModel, Field, ConfigDict, AliasChoices, ValidationError, field_validator, model_validator
)
from pydantic.alias_generators import to_camel

from learning_streak.core.config import settings
from learning_streak.utils.exceptions import MalformedStoredRecordError


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DayActivity(CamelModel):
    date: dt.date
    # "duration" is the key written by the browser client
    duration_seconds: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("durationSeconds", "duration_seconds", "duration"),
        serialization_alias="durationSeconds",
    )
    lessons_completed: int = Field(default=0, ge=0)

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def truncate_fractional_seconds(cls, v):
        # The browser client stored raw JS numbers such as 90.5
        if isinstance(v, float) and math.isfinite(v):
            return int(v)
        return v

    @property
    def learned(self) -> bool:
        return self.duration_seconds > 0 or self.lessons_completed > 0


class StreakRecord(CamelModel):
    """Persisted streak state for one user.

    Serialized with camelCase keys (``currentStreak``, ``learningHistory`` ...)
    so remote documents and local cache entries share one JSON shape.
    """

    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_learning_date: Optional[dt.date] = None
    streak_start_date: Optional[dt.date] = None
    learning_history: List[DayActivity] = Field(default_factory=list)
    total_learning_days: int = Field(default=0, ge=0)
    last_updated: Optional[dt.datetime] = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def normalize_history(self) -> "StreakRecord":
        """Sort history, merge entries sharing a date, keep the newest
        ``STREAK_HISTORY_LIMIT`` days and recount ``total_learning_days``.
        """
        merged: Dict[dt.date, DayActivity] = {}
        for entry in self.learning_history:
            kept = merged.get(entry.date)
            if kept is None:
                merged[entry.date] = entry
            else:
                kept.duration_seconds += entry.duration_seconds
                kept.lessons_completed += entry.lessons_completed

        history = [merged[day] for day in sorted(merged)]
        limit = settings.STREAK_HISTORY_LIMIT
        if len(history) > limit:
            history = history[-limit:]

        self.learning_history = history
        self.total_learning_days = len(history)
        return self

    @classmethod
    def fresh(cls, now: Optional[dt.datetime] = None) -> "StreakRecord":
        return cls(last_updated=now or utc_now())

    def find_day(self, day: dt.date) -> Optional[DayActivity]:
        for entry in self.learning_history:
            if entry.date == day:
                return entry
        return None

    def ensure_day(self, day: dt.date, limit: int = 365) -> DayActivity:
        """Return the history entry for ``day``, creating it if needed.

        History stays sorted by date and keeps only the ``limit`` most recent
        entries.
        """
        entry = self.find_day(day)
        if entry is not None:
            return entry

        entry = DayActivity(date=day)
        self.learning_history.append(entry)
        if len(self.learning_history) > 1 and self.learning_history[-2].date > day:
            self.learning_history.sort(key=lambda d: d.date)

        if len(self.learning_history) > limit:
            self.learning_history = self.learning_history[-limit:]

        self.total_learning_days = len(self.learning_history)
        return entry

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return json.dumps(self.to_storage())

    @classmethod
    def from_storage(cls, payload: Union[str, bytes, Dict[str, Any]], source: str = "unknown") -> "StreakRecord":
        try:
            if isinstance(payload, (str, bytes)):
                return cls.model_validate_json(payload)
            if not isinstance(payload, dict):
                raise MalformedStoredRecordError(
                    f"Expected an object, got {type(payload).__name__}", source=source
                )
            return cls.model_validate(payload)
        except ValidationError as e:
            raise MalformedStoredRecordError(
                f"Stored streak record is invalid: {e.error_count()} error(s)",
                source=source,
                details={"errors": e.errors(include_url=False, include_context=False, include_input=False)}
            )


class StreakStats(CamelModel):
    current_streak: int = 0
    longest_streak: int = 0
    total_learning_days: int = 0
    streak_start_date: Optional[dt.date] = None
    learning_history: List[DayActivity] = Field(default_factory=list)
    last_updated: Optional[dt.datetime] = None


class WeeklyDay(CamelModel):
    day: str
    date: dt.date
    learned: bool
    duration_seconds: int = 0
    lessons_completed: int = 0


class NotificationMessage(CamelModel):
    message: str
    category: str = "info"
    created_at: dt.datetime = Field(default_factory=utc_now)


class ActivityCreate(CamelModel):
    # Coerced by the tracker; anything non-numeric counts as zero seconds
    duration_seconds: Any = 0


class StreakSummaryResponse(StreakStats):
    progress: int = 0
    next_milestone: int = 3
    message: str = ""
    has_learned_today: bool = False


class ActivityResponse(CamelModel):
    today: DayActivity
    stats: StreakStats
    notifications: List[NotificationMessage] = Field(default_factory=list)
