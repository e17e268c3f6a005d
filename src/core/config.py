"""Configuration management for tasklane."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Durable store
    sqlite_db_path: str = Field(default="./data/tasklane.db", description="SQLite database file path")

    # Redis Configuration (optional)
    redis_url: str | None = Field(default=None, description="Redis connection URL (e.g., redis://localhost:6379)")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Repository cache
    cache_ttl_seconds: int = Field(
        default=300,
        ge=300,
        le=600,
        description="Validity window of cached aggregate snapshots (5-10 minutes)",
    )

    # Request pipeline
    slow_request_threshold_ms: int = Field(
        default=500, gt=0, description="Handler duration above which a slow request warning is logged"
    )
    performance_exclude_patterns: list[str] = Field(
        default_factory=list, description="Request name fragments excluded from performance timing"
    )

    # Outbound notifications (optional)
    notification_webhook_url: str | None = Field(
        default=None, description="Webhook URL receiving task assignment notifications"
    )

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_CREATED: int = 201
    HTTP_UNAUTHORIZED: int = 401
    HTTP_NOT_FOUND: int = 404
    HTTP_CONFLICT: int = 409
    HTTP_UNPROCESSABLE: int = 422
    HTTP_SERVER_ERROR: int = 500
    HTTP_SERVICE_UNAVAILABLE: int = 503

    # Task limits
    MAX_TITLE_LENGTH: int = 200
    MAX_DESCRIPTION_LENGTH: int = 2000
    MAX_ACTUAL_HOURS: int = 2000

    # Team limits
    MAX_TEAM_NAME_LENGTH: int = 100
    MAX_TEAM_DESCRIPTION_LENGTH: int = 500
    MAX_TEAM_MEMBERS: int = 50

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100
    MAX_SUBTASKS_PER_TASK: int = 500

    # Redis Configuration
    REDIS_MAX_CONNECTIONS: int = 10  # Maximum connections in Redis connection pool
    REDIS_INVALIDATION_QUEUE_MAXLEN: int = 1000  # Max items in Redis invalidation queue

    # In-memory cache
    MEMORY_CACHE_MAX_ENTRIES: int = 10_000

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
