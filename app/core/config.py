from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    PROJECT_NAME: str = "Vitals Alerting"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "local"  # local, dev, prod (from .env)

    # CORS (from .env, comma-separated)
    BACKEND_CORS_ORIGINS: List[str] = []

    # Logging & Sentry
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None

    # Alert evaluation
    ALERT_DEDUP_WINDOW_MINUTES: int = 30
    ALERT_SEED_DEFAULT_THRESHOLDS: bool = True
    ALERT_THRESHOLDS_PATH: Path | None = None

    # Alert stream (SSE)
    ALERT_STREAM_QUEUE_SIZE: int = 100
    ALERT_STREAM_KEEPALIVE_SECONDS: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )


settings = Settings()
