from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = "authenticated"
    JWKS_URL: str | None = None

    CORS_ORIGINS: list[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    OUTBOX_POLL_INTERVAL: float = 1.0
    OUTBOX_BATCH_SIZE: int = 50
    OUTBOX_MAX_ATTEMPTS: int = 5

    WS_HEARTBEAT_SECONDS: int = 30

    # Realtime chat views
    REALTIME_TOPIC_PREFIX: str = "realtime"
    REALTIME_SUBSCRIBE_TIMEOUT: float = 10.0
    REALTIME_RETRY_BASE_SECONDS: float = 1.0
    REALTIME_RETRY_MAX_SECONDS: float = 30.0
    REALTIME_RETRY_MAX_ATTEMPTS: int = 5
    REALTIME_PROBE_TIMEOUT: float = 7.0
    REALTIME_PROBE_BROADCAST_DELAY: float = 1.0
    REALTIME_PROBE_INTERVAL: float = 30.0
    REALTIME_POLL_INTERVAL: float = 5.0
    REALTIME_POLL_PAGE_SIZE: int = 10
    REALTIME_POLL_MAX_FAILURES: int = 5
    CHAT_INITIAL_PAGE_SIZE: int = 50

    AI_BACKEND_URL: str = "http://localhost:5000"
    AI_BACKEND_TIMEOUT: float = 60.0
    AI_BACKEND_VERIFY_SSL: bool = False

    NOTES_DIR: str = ".idea_pilot"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
