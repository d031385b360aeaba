from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = ["*"]

    WS_HEARTBEAT_SECONDS: int = 30
    WS_SEND_QUEUE_SIZE: int = 256

    CALL_OFFER_TIMEOUT_SECONDS: float = 30.0
    CALL_REAPER_INTERVAL_SECONDS: float = 1.0

    DM_DELIVERY_STATUS: bool = False
    MAX_DISPLAY_NAME_LENGTH: int = 32

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
