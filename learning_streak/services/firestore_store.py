from typing import Optional, Any

import firebase_admin
from firebase_admin import firestore_async

from learning_streak.core.config import settings
from learning_streak.core.logging import get_logger, get_performance_logger
from learning_streak.schemas.streak_schema import StreakRecord
from learning_streak.utils.exceptions import RemoteUnavailableError

logger = get_logger(__name__)
perf_logger = get_performance_logger(__name__)


class FirestoreStreakStore:
    """Streak records kept in Firestore.

    Each user's record lives under one field of ``<collection>/<user_id>``,
    next to whatever else the analytics document holds. Writes merge, so a
    missing document is created and existing fields are preserved.
    """

    def __init__(
            self,
            client: Optional[Any] = None,
            collection: Optional[str] = None,
            field: Optional[str] = None
    ):
        self._client = client
        self.collection = collection or settings.STREAK_REMOTE_COLLECTION
        self.field = field or settings.STREAK_REMOTE_FIELD

    def _get_client(self):
        if self._client is None:
            if not firebase_admin._apps:
                raise RemoteUnavailableError("Firebase not initialized")
            self._client = firestore_async.client()
        return self._client

    def _document(self, user_id: str):
        return self._get_client().collection(self.collection).document(user_id)

    async def get(self, user_id: str) -> Optional[StreakRecord]:
        """Load the streak record for a user, None if never stored"""
        try:
            with perf_logger.measure_time("get"):
                snapshot = await self._document(user_id).get()
        except RemoteUnavailableError:
            raise
        except Exception as e:
            logger.warning(f"Failed to load streak for user {user_id} from Firestore: {e}")
            raise RemoteUnavailableError(f"Firestore read failed: {e}")

        if not snapshot.exists:
            return None

        data = snapshot.to_dict() or {}
        payload = data.get(self.field)
        if payload is None:
            return None

        return StreakRecord.from_storage(payload, source="firestore")

    async def get_push_token(self, user_id: str) -> Optional[str]:
        """FCM device token the user's client registered on their document, if any"""
        try:
            with perf_logger.measure_time("get_push_token"):
                snapshot = await self._document(user_id).get()
        except RemoteUnavailableError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Firestore read failed: {e}")

        if not snapshot.exists:
            return None
        token = (snapshot.to_dict() or {}).get(settings.PUSH_TOKEN_FIELD)
        return token if isinstance(token, str) and token else None

    async def put(self, user_id: str, record: StreakRecord) -> bool:
        """Write the streak record for a user"""
        payload = {
            self.field: record.to_storage(),
            "lastUpdated": record.last_updated.isoformat() if record.last_updated else None,
        }
        try:
            with perf_logger.measure_time("put"):
                await self._document(user_id).set(payload, merge=True)
        except RemoteUnavailableError:
            raise
        except Exception as e:
            logger.warning(f"Failed to save streak for user {user_id} to Firestore: {e}")
            raise RemoteUnavailableError(f"Firestore write failed: {e}")

        logger.info(f"Streak data saved to Firestore for user {user_id}")
        return True
