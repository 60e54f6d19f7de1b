from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App environment
    env: str = Field(default="development", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")

    # Persistence
    database_url: str = Field(default="sqlite:///./goal_coach.db", alias="DATABASE_URL")
    storage_backend: str = Field(default="sql", alias="STORAGE_BACKEND")  # "sql" or "memory"
    storage_key: str = Field(default="goal-coach-state-v1", alias="STORAGE_KEY")

    # Reminder defaults
    default_interval_minutes: int = Field(default=25, alias="DEFAULT_INTERVAL_MINUTES")

    # Used when building shareable setup links
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")

    # Notification sink
    notification_permission: str = Field(default="default", alias="NOTIFICATION_PERMISSION")  # granted/denied/default
    notification_push_url: Optional[str] = Field(default=None, alias="NOTIFICATION_PUSH_URL")
    notification_timeout_seconds: float = Field(default=10, alias="NOTIFICATION_TIMEOUT_SECONDS")
    nudge_history_size: int = Field(default=20, alias="NUDGE_HISTORY_SIZE")

    # Logging configuration used by goal_coach.logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    console_log_level: str = Field(default="INFO", alias="CONSOLE_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
