import asyncio
from typing import Optional, List, Callable, Awaitable

import firebase_admin
from firebase_admin import messaging

from learning_streak.core.logging import get_logger
from learning_streak.schemas.streak_schema import NotificationMessage

logger = get_logger(__name__)

NOTIFICATION_TITLE = "Learning Streak Update!"

PushTokenLookup = Callable[[], Awaitable[Optional[str]]]


class NotificationService:
    """In-app outbox for one user, with optional push through Firebase Cloud Messaging.

    ``token_lookup`` resolves the signed-in user's own device token and is
    only awaited when there is something to push, so requests that raise no
    notification never read it.
    """

    def __init__(self, user_id: Optional[str] = None, token_lookup: Optional[PushTokenLookup] = None):
        self.user_id = user_id
        self.token_lookup = token_lookup
        self.outbox: List[NotificationMessage] = []

    async def notify(self, message: str, category: str = "info") -> bool:
        """Queue a notification for the client and push it to the user's device if one is registered"""
        self.outbox.append(NotificationMessage(message=message, category=category))
        logger.info(f"Streak notification for user {self.user_id or 'anonymous'} [{category}]: {message}")

        if self.token_lookup is None:
            return True

        return await self._push(message, category)

    async def _push(self, message: str, category: str) -> bool:
        if not firebase_admin._apps:
            logger.warning("Firebase not initialized, skipping push notification")
            return False

        try:
            token = await self.token_lookup()
        except Exception as e:
            logger.warning(f"Could not look up push token for user {self.user_id}: {e}")
            return False

        if not token:
            logger.debug(f"User {self.user_id} has no registered device, in-app only")
            return True

        push = messaging.Message(
            notification=messaging.Notification(title=NOTIFICATION_TITLE, body=message),
            data={"type": "streak_update", "category": category},
            token=token
        )
        try:
            await asyncio.to_thread(messaging.send, push)
        except Exception as e:
            logger.error(f"Failed to send push notification to user {self.user_id}: {e}")
            return False
        return True

    def drain(self) -> List[NotificationMessage]:
        """Return and clear queued notifications"""
        pending, self.outbox = self.outbox, []
        return pending
