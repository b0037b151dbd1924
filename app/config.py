import logging
import sys
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App config
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    DEBUG: bool = False

    # WebSocket config
    WS_HEARTBEAT_INTERVAL: int = 30
    WS_CONNECTION_TIMEOUT: int = 120
    WS_MAX_MESSAGE_SIZE: int = 64 * 1024  # 64 KB
    WS_MAX_MESSAGES_PER_SECOND: int = 10

    # Rooms
    ROOM_CODE_LENGTH: int = 6
    ROOM_CODE_MAX_ATTEMPTS: int = 32
    MAX_TOTAL_ROUNDS: int = 99

    @field_validator("ROOM_CODE_LENGTH")
    @classmethod
    def validate_room_code_length(cls, v: int) -> int:
        if not 4 <= v <= 12:
            raise ValueError("ROOM_CODE_LENGTH must be between 4 and 12")
        return v

    @field_validator("ROOM_CODE_MAX_ATTEMPTS", "MAX_TOTAL_ROUNDS")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v


def configure_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    configure_logging(settings.DEBUG)
    logger.info("Settings loaded successfully")
    logger.debug("CORS origins: %s", settings.CORS_ORIGINS)
    logger.debug(
        "Room codes: length=%d, max_attempts=%d",
        settings.ROOM_CODE_LENGTH,
        settings.ROOM_CODE_MAX_ATTEMPTS,
    )
    return settings
