"""Application settings loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (one level above cron_manager/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///./cron_manager.db"
    STORE_TABLE_NAME: str = "cron-manager"
    CRON_LOG_TABLE_NAME: str = "cron-manager-log"

    # Trigger registry (EventBridge Scheduler)
    AWS_REGION: str = "us-east-1"
    SCHEDULER_ROLE_ARN: str = ""
    SCHEDULER_GROUP_NAME: str = "default"
    EXECUTE_CRON_TARGET_ARN: str = ""
    TRIGGER_NAME_PREFIX: str = "cron-schedule-"

    GITHUB_CLIENT_ID: str = ""
    GITHUB_CLIENT_SECRET: str = ""

    SESSION_TTL_SECONDS: int = 86400
    CRON_FAILURE_THRESHOLD: int = 1440  # ~one day of once-per-minute failures
    CRON_ACTION_TIMEOUT_SECONDS: float = 5.0
    CRON_LOG_RETENTION_SECONDS: int = 60 * 60 * 24 * 2

    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000
    ROOT_PATH: str = ""  # Set when behind a reverse proxy with a path prefix


settings = Settings()
