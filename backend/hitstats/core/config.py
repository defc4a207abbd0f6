import logging
import sys
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hitstats.core.privacy import PrivacyPolicy
from hitstats.schemas.common import UserStatus


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    # Project
    PROJECT_NAME: str = "Hit Statistics"
    VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./hitstats.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Site layout
    BASE_PATH: str = ""  # install path stripped from tracked urls, e.g. "/omeka"
    ADMIN_PATH_PREFIX: str = "/admin"

    # Privacy
    PRIVACY: PrivacyPolicy = PrivacyPolicy.ANONYMOUS
    INCLUDE_BOTS: bool = False

    # Display defaults
    DEFAULT_USER_STATUS: UserStatus = UserStatus.ANONYMOUS
    PER_PAGE: int = 10

    # CORS - empty by default, must be explicitly configured
    CORS_ORIGINS: list[str] = []

    # Rate limiting (tracking beacon)
    RATE_LIMIT_PER_MINUTE: int = 120

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("PRIVACY", mode="before")
    @classmethod
    def validate_privacy(cls, v: object) -> PrivacyPolicy:
        return PrivacyPolicy.parse(v)

    @field_validator("DEFAULT_USER_STATUS", mode="before")
    @classmethod
    def validate_user_status(cls, v: object) -> UserStatus:
        return UserStatus.parse(v)

    @field_validator("BASE_PATH")
    @classmethod
    def validate_base_path(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            raise ValueError("BASE_PATH must start with '/'")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def setup_logging() -> None:
    """Configure structured logging for the application."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DEBUG else logging.WARNING
    )
