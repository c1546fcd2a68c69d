"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures the evaluator, the snooze monitor and the API agree on
clock, thresholds and connection settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins over the POSTGRES_* parts when set (tests use sqlite://).
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="safety_checkin")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    # Jobs run once a minute; a stuck store must not stall the cadence.
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=5)
    DB_POOL_TIMEOUT: int = Field(default=5)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour
    DB_STATEMENT_TIMEOUT_MS: int = Field(default=5000, ge=0)

    # Push notifications (Firebase Cloud Messaging)
    FIREBASE_CREDENTIALS_PATH: str = Field(default="firebase/firebase-key.json")
    NOTIFICATION_TIMEOUT_S: float = Field(default=5.0, gt=0)
    NOTIFICATIONS_ENABLED: bool = Field(default=True)

    # Check-in lifecycle
    CHECKIN_TIMEZONE: str = Field(default="UTC")
    SNOOZE_INTERVAL_MINUTES: int = Field(default=5, ge=1)
    ESCALATION_THRESHOLD: int = Field(default=3, ge=1)
    # When False, last_snooze_at only moves when the user snoozes, so a
    # reminder is re-sent on every monitor pass until the budget runs out.
    REFRESH_SNOOZE_AT_ON_REMINDER: bool = Field(default=True)
    # Best-effort budget per job invocation; unprocessed items wait for the next run.
    JOB_TIME_BUDGET_S: float = Field(default=50.0, gt=0)

    # Celery Configuration
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    @field_validator("CHECKIN_TIMEZONE")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {value}") from e
        return value

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )


# Global settings instance
settings = Settings()
