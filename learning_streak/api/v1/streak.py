from typing import List, Optional
from fastapi import APIRouter, Depends

from learning_streak.core.logging import get_logger
from learning_streak.dependencies import get_streak_tracker
from learning_streak.schemas.streak_schema import (
    ActivityCreate, ActivityResponse, DayActivity, StreakSummaryResponse, WeeklyDay
)
from learning_streak.services.notification_service import NotificationService
from learning_streak.services.streak_tracker import StreakTracker

logger = get_logger(__name__)
router = APIRouter()


def build_summary(tracker: StreakTracker) -> StreakSummaryResponse:
    stats = tracker.get_stats()
    return StreakSummaryResponse(
        **stats.model_dump(),
        progress=tracker.get_streak_progress(),
        next_milestone=tracker.get_next_milestone(),
        message=tracker.get_motivational_message(),
        has_learned_today=tracker.has_learned_today()
    )


@router.get("", response_model=StreakSummaryResponse)
async def get_streak(tracker: StreakTracker = Depends(get_streak_tracker)):
    """Current streak, history and progress towards the next milestone"""
    return build_summary(tracker)


@router.post("/activity", response_model=ActivityResponse)
async def record_activity(
        payload: Optional[ActivityCreate] = None,
        tracker: StreakTracker = Depends(get_streak_tracker)
):
    """Record one completed lesson for today"""
    duration = payload.duration_seconds if payload else 0
    today = await tracker.record_activity(duration)

    notifications = []
    if isinstance(tracker.notifier, NotificationService):
        notifications = tracker.notifier.drain()

    return ActivityResponse(
        today=today,
        stats=tracker.get_stats(),
        notifications=notifications
    )


@router.get("/weekly", response_model=List[WeeklyDay])
async def get_weekly_pattern(tracker: StreakTracker = Depends(get_streak_tracker)):
    """Learning activity for each of the last seven days"""
    return tracker.get_weekly_pattern()


@router.get("/today", response_model=DayActivity)
async def get_todays_activity(tracker: StreakTracker = Depends(get_streak_tracker)):
    return tracker.get_todays_activity()


@router.post("/reset", response_model=StreakSummaryResponse)
async def reset_streak(tracker: StreakTracker = Depends(get_streak_tracker)):
    """Start the streak over from nothing"""
    await tracker.reset()
    logger.info(f"Streak reset for user {tracker.identity.get_current_user_id() or 'anonymous'}")
    return build_summary(tracker)
