from typing import Optional, Protocol, runtime_checkable

from learning_streak.schemas.streak_schema import StreakRecord


def cache_key(user_id: str) -> str:
    """Local cache key for a user's streak record"""
    return f"streak_{user_id}"


@runtime_checkable
class IdentityProvider(Protocol):
    def get_current_user_id(self) -> Optional[str]:
        ...


@runtime_checkable
class RemoteStreakStore(Protocol):
    async def get(self, user_id: str) -> Optional[StreakRecord]:
        ...

    async def put(self, user_id: str, record: StreakRecord) -> bool:
        ...


@runtime_checkable
class LocalCache(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


@runtime_checkable
class Notifier(Protocol):
    async def notify(self, message: str, category: str = "info") -> bool:
        ...
