# ==============================================================================
# CONNECTION CONFIGURATION - Named Datasource Definitions
# ==============================================================================
# One ConnectionConfig per named connection, built from Settings
# ==============================================================================

from __future__ import annotations

from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from catalog_backend.core.constants import ConnectionConstants
from catalog_backend.core.settings import Settings


class ConnectionConfig(BaseModel):
    """
    Concrete configuration of one named connection.

    Attributes:
        name: Logical connection name
        url: Async SQLAlchemy URL
        pool_size: Pooled connections (ignored for SQLite)
        entities: Names of the entities whose tables live here
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    pool_size: int = Field(10, ge=1)
    max_overflow: int = Field(20, ge=0)
    pool_timeout: int = Field(30, ge=1)
    pool_recycle: int = Field(3600, ge=1)
    echo: bool = False
    create_schema: bool = True
    entities: Tuple[str, ...] = ()

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def safe_url(self) -> str:
        """URL with the password masked, for logs."""
        scheme, sep, rest = self.url.partition("://")
        credentials, at, host = rest.rpartition("@")
        if not at or ":" not in credentials:
            return self.url
        user = credentials.split(":", 1)[0]
        return f"{scheme}{sep}{user}:***@{host}"


def build_connection_configs(settings: Settings) -> List[ConnectionConfig]:
    """
    Connection configurations declared by settings.

    ``main`` is always present and registered first (so it is the
    default); ``secondary`` only when SECONDARY_DATABASE_URL is set.
    """
    shared = dict(
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        echo=settings.DB_ECHO,
        create_schema=settings.DB_CREATE_SCHEMA,
    )
    configs = [
        ConnectionConfig(
            name=ConnectionConstants.MAIN,
            url=settings.MAIN_DATABASE_URL,
            pool_size=settings.MAIN_DB_POOL_SIZE,
            **shared,
        )
    ]
    if settings.SECONDARY_DATABASE_URL:
        configs.append(
            ConnectionConfig(
                name=ConnectionConstants.SECONDARY,
                url=settings.SECONDARY_DATABASE_URL,
                pool_size=settings.SECONDARY_DB_POOL_SIZE,
                **shared,
            )
        )
    return configs
