from typing import List
from pydantic import field_validator, ConfigDict
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    CORS_ORIGINS: str = "*"

    # Firebase Configuration
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_PRIVATE_KEY_ID: str = ""
    FIREBASE_PRIVATE_KEY: str = ""
    FIREBASE_CLIENT_EMAIL: str = ""
    FIREBASE_CLIENT_ID: str = ""
    FIREBASE_AUTH_URI: str = "https://accounts.google.com/o/oauth2/auth"
    FIREBASE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"

    # Remote streak store (Firestore)
    STREAK_REMOTE_COLLECTION: str = "userAnalytics"
    STREAK_REMOTE_FIELD: str = "streakData"
    REMOTE_STORE_TIMEOUT_SECONDS: float = 10.0

    # Local Storage
    LOCAL_STORAGE_ROOT: str = "./storage"

    # Streak rules
    STREAK_HISTORY_LIMIT: int = 365

    # Field of the user's remote document holding their FCM device token
    PUSH_TOKEN_FIELD: str = "fcmToken"

    # Circuit Breaker Settings
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT: float = 60
    CIRCUIT_BREAKER_SUCCESS_THRESHOLD: int = 3

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = False

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def cors_origins(self) -> List[str]:
        return [i.strip() for i in self.CORS_ORIGINS.split(",") if i.strip()]


# Global settings instance
settings = Settings()
