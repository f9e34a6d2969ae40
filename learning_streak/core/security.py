import asyncio
from typing import Optional, Dict, Any
from fastapi import Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import firebase_admin
from firebase_admin import auth, credentials
from learning_streak.core.config import settings
from learning_streak.core.logging import get_logger
from learning_streak.utils.exceptions import AuthenticationError

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Most specific first: the expired and revoked errors subclass InvalidIdTokenError
_TOKEN_ERRORS = (
    (auth.ExpiredIdTokenError, "Authentication token has expired"),
    (auth.RevokedIdTokenError, "Authentication token has been revoked"),
    (auth.InvalidIdTokenError, "Invalid authentication token"),
    (auth.CertificateFetchError, "Authentication service temporarily unavailable"),
)


def _service_account() -> Dict[str, str]:
    return {
        "type": "service_account",
        "project_id": settings.FIREBASE_PROJECT_ID,
        "private_key_id": settings.FIREBASE_PRIVATE_KEY_ID,
        # .env files carry the PEM on one line with literal \n
        "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
        "client_email": settings.FIREBASE_CLIENT_EMAIL,
        "client_id": settings.FIREBASE_CLIENT_ID,
        "auth_uri": settings.FIREBASE_AUTH_URI,
        "token_uri": settings.FIREBASE_TOKEN_URI,
    }


def initialize_firebase():
    """Start the default Firebase app used for tokens, Firestore and FCM.

    Without a project id the service runs unauthenticated and local-only.
    Bad credentials are fatal outside development.
    """
    if firebase_admin._apps:
        return
    if not settings.FIREBASE_PROJECT_ID:
        logger.warning("FIREBASE_PROJECT_ID not set, streaks will only be kept in the local cache")
        return

    try:
        firebase_admin.initialize_app(credentials.Certificate(_service_account()))
    except Exception as e:
        logger.error(f"Could not initialize Firebase for project {settings.FIREBASE_PROJECT_ID}: {e}")
        if settings.ENVIRONMENT != "development":
            raise
        return

    logger.info(f"Firebase initialized for project {settings.FIREBASE_PROJECT_ID}")


async def verify_firebase_token(token: str) -> Dict[str, Any]:
    """Verify a Firebase ID token and return its claims"""
    if not firebase_admin._apps:
        raise AuthenticationError("Firebase not initialized")

    try:
        claims = await asyncio.to_thread(auth.verify_id_token, token, check_revoked=True)
    except Exception as e:
        for error_type, message in _TOKEN_ERRORS:
            if isinstance(e, error_type):
                logger.warning(f"Rejected ID token: {message}")
                raise AuthenticationError(message)
        logger.error(f"ID token verification failed: {e}")
        raise AuthenticationError()

    if not claims.get("uid"):
        raise AuthenticationError("Invalid token: missing uid")
    return claims


async def get_current_user_optional(
        bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)
) -> Optional[Dict[str, Any]]:
    """
    Claims of the signed-in user, or None for anonymous requests.

    A token that is present but invalid is rejected rather than treated as
    anonymous.
    """
    if bearer is None:
        return None
    return await verify_firebase_token(bearer.credentials)
