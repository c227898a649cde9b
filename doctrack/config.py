import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/doctrack"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv(
        "CELERY_RESULT_BACKEND", "redis://localhost:6379/1"
    )
    celery_task_always_eager: bool = _env_bool("CELERY_TASK_ALWAYS_EAGER", "false")

    # Change feed subscribers
    change_feed_webhooks: tuple[str, ...] = _env_list("CHANGE_FEED_WEBHOOKS")
    change_feed_secret: str | None = os.getenv("CHANGE_FEED_SECRET") or None

    # Summarizer collaborator
    summarizer_url: str | None = os.getenv("SUMMARIZER_URL") or None
    summarizer_api_key: str | None = os.getenv("SUMMARIZER_API_KEY") or None
    summarizer_timeout_seconds: float = float(
        os.getenv("SUMMARIZER_TIMEOUT_SECONDS", "10")
    )

    # Control numbers and writes
    serialize_control_numbers: bool = _env_bool("SERIALIZE_CONTROL_NUMBERS", "true")
    # Clock whose year and month scope new control numbers
    control_number_timezone: str = os.getenv("CONTROL_NUMBER_TIMEZONE", "UTC")
    reject_stale_writes: bool = _env_bool("REJECT_STALE_WRITES", "false")
    collision_scan_interval_seconds: int = int(
        os.getenv("COLLISION_SCAN_INTERVAL_SECONDS", "3600")
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "text")


settings = Settings()
