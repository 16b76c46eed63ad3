"""
Application settings for the TimeTracker attendance notification service.

Values are read from environment variables (or a local .env file) via
pydantic-settings. Access them through the module-level ``settings`` instance.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application
    APP_NAME: str = "timetracker-attendance-service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./timetracker.db"
    DATABASE_ECHO: bool = False

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 300

    # Kafka
    KAFKA_ENABLED: bool = False
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_CONSUMER_GROUP: str = "timetracker-attendance-service"

    # Attendance rules
    ATTENDANCE_TIMEZONE: str = "Africa/Nairobi"
    CLOCK_IN_REMINDER_TIME: str = "08:00"
    LATE_ARRIVAL_ALERT_TIME: str = "08:15"
    CLOCK_OUT_REMINDER_TIME: str = "17:00"
    LATE_THRESHOLD_MINUTES: int = 15
    WORKDAYS: str = "0,1,2,3,4"  # Monday=0

    # Push gateway
    PUSH_GATEWAY_URL: str = "http://localhost:8080"
    PUSH_GATEWAY_API_KEY: str = ""
    PUSH_GATEWAY_TIMEOUT: float = 30.0
    PUSH_BATCH_SIZE: int = 500
    NOTIFICATION_CONCURRENCY: int = 20

    # Duplicate trigger protection for reminder slots
    REMINDER_DEDUP_ENABLED: bool = True
    REMINDER_DEDUP_TTL_SECONDS: int = 36 * 3600

    # Authentication
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = None
    ADMIN_GROUP: str = "Admin"
    TRIGGER_TOKEN: str = ""

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.ATTENDANCE_TIMEZONE)

    @property
    def workdays_list(self) -> list[int]:
        return [int(day) for day in self.WORKDAYS.split(",") if day.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
