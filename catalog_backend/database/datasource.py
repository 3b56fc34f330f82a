# ==============================================================================
# DATA SOURCE - One Named SQLAlchemy Async Connection
# ==============================================================================
# Engine, session factory and schema bootstrap for a single connection
# SQLite (aiosqlite) and PostgreSQL (asyncpg) share this implementation
# ==============================================================================

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

from sqlalchemy import MetaData, Table, event, text
from sqlalchemy.engine import Dialect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from catalog_backend.core.exceptions import ConnectivityError
from catalog_backend.database.config import ConnectionConfig

logger = logging.getLogger(__name__)


class DataSource:
    """
    Pooled async connection to one relational store.

    A data source is created once per named connection and may be
    initialized again after it has been destroyed; every initialize
    builds a fresh engine.

    Attributes:
        config: Connection configuration
        tables: Tables created on initialize when schema creation is on

    Example:
        >>> source = DataSource(ConnectionConfig(name="main", url=url))
        >>> await source.initialize()
        >>> async with source.session() as session:
        ...     await session.execute(text("SELECT 1"))
        >>> await source.destroy()
    """

    def __init__(
        self,
        config: ConnectionConfig,
        metadata: Optional[MetaData] = None,
        tables: Optional[Sequence[Table]] = None,
    ) -> None:
        self.config = config
        self.metadata = metadata
        self.tables = list(tables or [])
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_initialized(self) -> bool:
        return self._session_factory is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ConnectivityError(
                f"Data source '{self.name}' is not initialized",
                connection_name=self.name,
            )
        return self._engine

    @property
    def dialect(self) -> Dialect:
        return self.engine.dialect

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    async def initialize(self) -> None:
        """
        Open the connection.

        Creates the engine, verifies connectivity with ``SELECT 1`` and
        creates owned tables when configured to.

        Raises:
            ConnectivityError: If the store cannot be reached
        """
        await self.destroy()

        engine = create_async_engine(self.config.url, **self._engine_options())
        if self.config.is_sqlite:
            event.listen(engine.sync_engine, "connect", _configure_sqlite)

        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
                if self.config.create_schema and self.metadata is not None and self.tables:
                    await conn.run_sync(self.metadata.create_all, tables=self.tables)
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            logger.warning(f"Data source '{self.name}' failed to initialize: {e}")
            raise ConnectivityError(
                f"Failed to initialize data source '{self.name}': {e}",
                connection_name=self.name,
            ) from e

        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Data source '{self.name}' initialized ({self.config.safe_url()})")

    async def destroy(self) -> None:
        """Dispose the engine; the data source can be initialized again."""
        engine, self._engine, self._session_factory = self._engine, None, None
        if engine is not None:
            await engine.dispose()
            logger.info(f"Data source '{self.name}' closed")

    async def ping(self) -> bool:
        """Run ``SELECT 1``; False on any storage error."""
        if not self.is_initialized:
            return False
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError, ConnectivityError) as e:
            logger.warning(f"Data source '{self.name}' health check failed: {e}")
            return False

    def _engine_options(self) -> dict:
        options: dict = {"echo": self.config.echo}
        if self.config.is_sqlite:
            options["connect_args"] = {"check_same_thread": False}
        else:
            options.update(
                pool_size=self.config.pool_size,
                max_overflow=self.config.max_overflow,
                pool_timeout=self.config.pool_timeout,
                pool_recycle=self.config.pool_recycle,
                pool_pre_ping=True,
            )
        return options

    # ==========================================================================
    # SESSION MANAGEMENT
    # ==========================================================================

    def create_session(self) -> AsyncSession:
        """
        New session owned by the caller, who must close it.

        Raises:
            ConnectivityError: If the data source is not initialized
        """
        if self._session_factory is None:
            raise ConnectivityError(
                f"Data source '{self.name}' is not initialized",
                connection_name=self.name,
            )
        return self._session_factory()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide transactional session scope.

        Commits on successful exit, rolls back on exception.

        Yields:
            AsyncSession instance
        """
        session = self.create_session()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def _configure_sqlite(dbapi_connection, connection_record) -> None:
    # LIKE is case-insensitive and foreign keys are unenforced in SQLite
    # unless switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA case_sensitive_like = ON")
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()
