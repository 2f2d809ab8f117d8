from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from movieflix.core.version import __version__


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    APP_ENV: Literal["development", "production", "test"] = "production"
    APP_URL: str = "https://movieflix.app"
    # Port for the optional diagnostics server (main.py)
    PORT: int = 8000

    API_BASE_URL: str = "https://backend-app-970m.onrender.com/api"
    API_TIMEOUT_SECONDS: float = 10.0
    # 1 = no automatic retry; callers opt in with retry_operation
    API_RETRY_ATTEMPTS: int = 1
    API_RETRY_BASE_DELAY_SECONDS: float = 1.0

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20
    STORAGE_PREFIX: str = "movieflix:"
    STORAGE_VERSION: str = "1.0"
    # Upper bound on entries held by the in-memory session region
    SESSION_MAX_ENTRIES: int = 1000

    CACHE_DEFAULT_TTL_SECONDS: int = 3600
    CACHE_CONTENT_TTL_SECONDS: int = 7200
    CACHE_SEARCH_TTL_SECONDS: int = 1800
    CACHE_USER_DATA_TTL_SECONDS: int = 86400

    ERROR_REPORTING_ENABLED: bool = True
    ERROR_COLLECTOR_PATH: str = "/errors"
    ERROR_LOG_MAX_ENTRIES: int = 50
    ERROR_LOG_TRIM_TO: int = 25

    # Unset = auth token stored as plain text
    TOKEN_SECRET: str | None = None
    # Salt for deriving the token encryption key from TOKEN_SECRET
    TOKEN_SALT: str = "change-me"


settings = Settings()

APP_VERSION = __version__
