"""Application configuration."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Environment
    env: str = os.getenv("APP_ENV", "development")
    api_secret_key: str = os.getenv("API_SECRET_KEY", "dev-secret-key")
    cron_secret: str = os.getenv("CRON_SECRET", "default-secret")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    # Default uses local socket connection with trust auth
    database_url: str = os.getenv(
        "DATABASE_URL", "postgresql:///pingcron?user=postgres"
    )

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379")
    tick_interval_seconds: int = int(os.getenv("TICK_INTERVAL_SECONDS", "60"))

    # Engine
    # Upper bound for a single request, keeps a tick inside the trigger interval
    engine_timeout_cap: int = int(os.getenv("ENGINE_TIMEOUT_CAP", "9"))
    tick_max_workers: int = int(os.getenv("TICK_MAX_WORKERS", "10"))
    claim_enabled: bool = os.getenv("CLAIM_ENABLED", "true").lower() == "true"
    claim_lease_seconds: int = int(os.getenv("CLAIM_LEASE_SECONDS", "60"))
    avg_window: int = int(os.getenv("AVG_WINDOW", "10"))
    response_body_limit: int = int(os.getenv("RESPONSE_BODY_LIMIT", "1000"))
    user_agent: str = os.getenv("USER_AGENT", "PingCron/1.0")


settings = Settings()
