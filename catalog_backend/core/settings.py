# ==============================================================================
# SETTINGS CONFIGURATION - Environment Management
# ==============================================================================
# Pydantic Settings for datasources, resilience, query engine and logging
# Supports: Development, Staging, Production environments
# ==============================================================================

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application Settings Configuration.

    Manages all environment variables with type validation and defaults.
    Values are read from the process environment and an optional `.env`
    file.

    Attributes:
        APP_NAME: Application display name
        MAIN_DATABASE_URL: Async URL of the default named connection
        DB_RETRY_MAX_ATTEMPTS: Recovery attempts per outage handling
        PAGINATION_MAX_LIMIT: Optional clamp for requested page sizes

    Example:
        >>> from catalog_backend.core.settings import settings
        >>> print(settings.MAIN_DATABASE_URL)
        'sqlite+aiosqlite:///./catalog.db'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # --------------------------------------------------------------------------
    APP_NAME: str = Field(
        default="Catalog Backend",
        description="Application display name"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application semantic version"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (docs, stack traces)"
    )
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current deployment environment"
    )

    # --------------------------------------------------------------------------
    # API CONFIGURATION
    # --------------------------------------------------------------------------
    API_V1_PREFIX: str = Field(
        default="/api/v1",
        description="API version 1 route prefix"
    )
    API_TITLE: str = Field(
        default="Catalog Backend API",
        description="OpenAPI documentation title"
    )
    API_DESCRIPTION: str = Field(
        default="Generic CRUD backend with filtering, sorting and pagination",
        description="OpenAPI documentation description"
    )

    # --------------------------------------------------------------------------
    # DATASOURCES
    # --------------------------------------------------------------------------
    MAIN_DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./catalog.db",
        description="Async URL of the 'main' named connection"
    )
    MAIN_DB_POOL_SIZE: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Pool size of the 'main' connection"
    )
    SECONDARY_DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Async URL of the optional 'secondary' named connection"
    )
    SECONDARY_DB_POOL_SIZE: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Pool size of the 'secondary' connection"
    )

    # --------------------------------------------------------------------------
    # CONNECTION POOL SETTINGS
    # --------------------------------------------------------------------------
    DB_MAX_OVERFLOW: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Maximum overflow connections beyond pool size"
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Connection pool timeout in seconds"
    )
    DB_POOL_RECYCLE: int = Field(
        default=3600,
        ge=60,
        description="Connection recycle time in seconds"
    )
    DB_ECHO: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )
    DB_CREATE_SCHEMA: bool = Field(
        default=True,
        description="Create tables of owned entities when a connection initializes"
    )

    # --------------------------------------------------------------------------
    # RESILIENCE
    # --------------------------------------------------------------------------
    DB_RETRY_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Initialize attempts made while recovering a connection"
    )
    DB_RETRY_BASE_INTERVAL: float = Field(
        default=1.0,
        ge=0,
        description="Base backoff delay in seconds (doubles per attempt)"
    )

    # --------------------------------------------------------------------------
    # OUTAGE NOTIFICATIONS
    # --------------------------------------------------------------------------
    DB_NOTIFICATIONS_ENABLED: bool = Field(
        default=False,
        description="Send down/recovered notifications for datasource outages"
    )
    DB_NOTIFICATION_RECIPIENT: str = Field(
        default="ops@example.com",
        description="Notification recipient address"
    )
    DB_NOTIFICATION_SENDER: str = Field(
        default="catalog-backend@example.com",
        description="Notification sender address"
    )
    DB_NOTIFICATION_SUBJECT_PREFIX: str = Field(
        default="[Catalog Backend]",
        description="Prefix for notification subjects"
    )
    DB_NOTIFICATION_WEBHOOK_URL: Optional[str] = Field(
        default=None,
        description="Webhook receiving notifications (logging sink when unset)"
    )
    DB_NOTIFICATION_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        description="Webhook request timeout in seconds"
    )

    # --------------------------------------------------------------------------
    # QUERY ENGINE
    # --------------------------------------------------------------------------
    PAGINATION_DEFAULT_LIMIT: int = Field(
        default=10,
        ge=1,
        description="Page size used when the request gives none"
    )
    PAGINATION_MAX_LIMIT: Optional[int] = Field(
        default=None,
        ge=1,
        description="Clamp for requested page sizes (no clamp when unset)"
    )
    FILTER_STRICT_OPERATORS: bool = Field(
        default=False,
        description="Reject unknown filter operators instead of dropping them"
    )
    DEFAULT_SORT_FIELD: str = Field(
        default="created_at",
        description="Field sorted descending when a list request gives no sort"
    )
    MAX_CONCURRENT_OPERATIONS: int = Field(
        default=50,
        ge=1,
        description="Storage operations allowed in flight per process"
    )

    # --------------------------------------------------------------------------
    # CORS SETTINGS
    # --------------------------------------------------------------------------
    CORS_ORIGINS: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=True,
        description="Allow credentials in CORS requests"
    )

    # --------------------------------------------------------------------------
    # LOGGING CONFIGURATION
    # --------------------------------------------------------------------------
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    LOG_FORMAT: str = Field(
        default="json",
        description="Log format (json, text)"
    )

    # --------------------------------------------------------------------------
    # COMPUTED PROPERTIES
    # --------------------------------------------------------------------------
    @computed_field
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    # --------------------------------------------------------------------------
    # VALIDATORS
    # --------------------------------------------------------------------------
    @field_validator("MAIN_DATABASE_URL", "SECONDARY_DATABASE_URL")
    @classmethod
    def use_async_driver(cls, v: Optional[str]) -> Optional[str]:
        """Rewrite plain sqlite/postgresql URLs to their async drivers."""
        if not v:
            return v
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Accept only the supported log formats."""
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            if v == "*":
                return ["*"]
            return [origin.strip() for origin in v.split(",")]
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Uses lru_cache to ensure settings are only loaded once,
    providing a singleton-like behavior for the settings object.

    Returns:
        Settings: Cached settings instance
    """
    return Settings()


# Module-level settings instance for convenient imports
settings = get_settings()
