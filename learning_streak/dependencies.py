from functools import lru_cache, partial
from typing import Dict, Any, Optional
from fastapi import Depends

from learning_streak.core.security import get_current_user_optional
from learning_streak.services.firestore_store import FirestoreStreakStore
from learning_streak.services.identity import FirebaseClaimsIdentityProvider
from learning_streak.services.local_storage import LocalCacheService
from learning_streak.services.notification_service import NotificationService
from learning_streak.services.streak_tracker import StreakTracker


@lru_cache
def get_local_cache() -> LocalCacheService:
    return LocalCacheService()


@lru_cache
def get_remote_store() -> FirestoreStreakStore:
    return FirestoreStreakStore()


async def get_streak_tracker(
        current_user_claims: Optional[Dict[str, Any]] = Depends(get_current_user_optional),
        remote_store: FirestoreStreakStore = Depends(get_remote_store),
        local_cache: LocalCacheService = Depends(get_local_cache)
) -> StreakTracker:
    """
    Build and initialize a streak tracker for the requesting user.

    One tracker per request; anonymous requests get an in-memory streak that
    is never saved.
    """
    identity = FirebaseClaimsIdentityProvider(current_user_claims)
    user_id = identity.get_current_user_id()
    notifier = NotificationService(
        user_id=user_id,
        token_lookup=partial(remote_store.get_push_token, user_id) if user_id else None
    )

    tracker = StreakTracker(
        identity=identity,
        remote_store=remote_store,
        local_cache=local_cache,
        notifier=notifier
    )
    await tracker.initialize()
    return tracker
