import json
from datetime import date, datetime, timedelta, timezone

import pytest

from learning_streak.schemas.streak_schema import DayActivity, StreakRecord
from learning_streak.utils.exceptions import MalformedStoredRecordError


def sample_record() -> StreakRecord:
    return StreakRecord(
        current_streak=3,
        longest_streak=8,
        last_learning_date=date(2026, 3, 15),
        streak_start_date=date(2026, 3, 13),
        learning_history=[
            DayActivity(date=date(2026, 3, 13), duration_seconds=600, lessons_completed=2),
            DayActivity(date=date(2026, 3, 14), duration_seconds=0, lessons_completed=0),
            DayActivity(date=date(2026, 3, 15), duration_seconds=45, lessons_completed=1),
        ],
        total_learning_days=3,
        last_updated=datetime(2026, 3, 15, 9, 30, tzinfo=timezone.utc),
    )


def test_serializes_with_camel_case_fields():
    payload = sample_record().to_storage()

    assert set(payload) == {
        "currentStreak", "longestStreak", "lastLearningDate", "streakStartDate",
        "learningHistory", "totalLearningDays", "lastUpdated",
    }
    assert payload["lastLearningDate"] == "2026-03-15"
    assert payload["learningHistory"][0] == {"date": "2026-03-13", "durationSeconds": 600, "lessonsCompleted": 2}


def test_json_round_trip_is_lossless():
    record = sample_record()

    assert StreakRecord.from_storage(record.to_json()) == record
    assert StreakRecord.from_storage(json.loads(record.to_json())) == record


def test_fresh_record_is_empty():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    record = StreakRecord.fresh(now)

    assert record.current_streak == 0
    assert record.longest_streak == 0
    assert record.last_learning_date is None
    assert record.streak_start_date is None
    assert record.learning_history == []
    assert record.total_learning_days == 0
    assert record.last_updated == now


def test_reads_browser_client_record():
    raw = json.dumps({
        "currentStreak": 2,
        "longestStreak": 5,
        "lastLearningDate": "2026-03-14",
        "learningHistory": [{"date": "2026-03-14", "duration": 120, "lessonsCompleted": 1}],
        "totalLearningDays": 1,
        "streakStartDate": None,
        "lastUpdated": "2026-03-14T18:22:01.123Z",
    })

    record = StreakRecord.from_storage(raw)

    assert record.learning_history[0].duration_seconds == 120
    assert record.last_updated.tzinfo is not None


@pytest.mark.parametrize("payload", [
    "not json",
    json.dumps({"currentStreak": -1}),
    json.dumps({"learningHistory": [{"durationSeconds": 3}]}),
    json.dumps([1, 2, 3]),
    42,
])
def test_malformed_payloads_raise(payload):
    with pytest.raises(MalformedStoredRecordError) as exc_info:
        StreakRecord.from_storage(payload, source="test")

    assert exc_info.value.details["source"] == "test"


def test_ensure_day_keeps_history_sorted_and_unique():
    record = StreakRecord()
    record.ensure_day(date(2026, 3, 10))
    record.ensure_day(date(2026, 3, 8))
    record.ensure_day(date(2026, 3, 10))

    assert [d.date for d in record.learning_history] == [date(2026, 3, 8), date(2026, 3, 10)]
    assert record.total_learning_days == 2


def test_ensure_day_evicts_oldest_past_limit():
    record = StreakRecord()
    start = date(2026, 1, 1)
    for i in range(366):
        record.ensure_day(start + timedelta(days=i))

    assert len(record.learning_history) == 365
    assert record.total_learning_days == 365
    assert record.learning_history[0].date == start + timedelta(days=1)
    assert record.learning_history[-1].date == start + timedelta(days=365)


def test_fractional_legacy_duration_is_truncated():
    record = StreakRecord.from_storage({
        "currentStreak": 12,
        "longestStreak": 12,
        "lastLearningDate": "2026-03-14",
        "learningHistory": [{"date": "2026-03-14", "duration": 90.5, "lessonsCompleted": 1}],
        "totalLearningDays": 1,
    })

    assert record.current_streak == 12
    assert record.learning_history[0].duration_seconds == 90


@pytest.mark.parametrize("duration", [-5.5, "NaN"])
def test_invalid_stored_duration_still_rejected(duration):
    raw = {"learningHistory": [{"date": "2026-03-14", "durationSeconds": duration}]}

    with pytest.raises(MalformedStoredRecordError):
        StreakRecord.from_storage(raw)


def test_loaded_history_is_sorted_merged_and_recounted():
    record = StreakRecord.from_storage({
        "learningHistory": [
            {"date": "2026-03-14", "durationSeconds": 30, "lessonsCompleted": 1},
            {"date": "2026-03-12", "durationSeconds": 10, "lessonsCompleted": 1},
            {"date": "2026-03-14", "durationSeconds": 15, "lessonsCompleted": 2},
        ],
        "totalLearningDays": 9,
    })

    assert [(d.date, d.duration_seconds, d.lessons_completed) for d in record.learning_history] == [
        (date(2026, 3, 12), 10, 1),
        (date(2026, 3, 14), 45, 3),
    ]
    assert record.total_learning_days == 2


def test_loaded_history_is_trimmed_to_newest_days():
    start = date(2025, 1, 1)
    history = [{"date": (start + timedelta(days=i)).isoformat(), "lessonsCompleted": 1} for i in range(400)]

    record = StreakRecord.from_storage({"learningHistory": list(reversed(history))})

    assert len(record.learning_history) == 365
    assert record.total_learning_days == 365
    assert record.learning_history[0].date == start + timedelta(days=35)
    assert record.learning_history[-1].date == start + timedelta(days=399)
