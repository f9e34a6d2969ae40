from typing import Optional, Dict, Any

from learning_streak.core.logging import get_logger

logger = get_logger(__name__)


class StaticIdentityProvider:
    """Identity fixed at construction (``None`` means signed out)"""

    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id or None

    def get_current_user_id(self) -> Optional[str]:
        return self.user_id


class FirebaseClaimsIdentityProvider:
    """Identity taken from verified Firebase ID token claims"""

    def __init__(self, claims: Optional[Dict[str, Any]]):
        self.claims = claims or {}

    def get_current_user_id(self) -> Optional[str]:
        uid = self.claims.get("uid")
        if not uid:
            logger.debug("No uid in Firebase claims, treating request as anonymous")
            return None
        return str(uid)
