# ==============================================================================
# DATASOURCE REGISTRY - Named Connection Lifecycle
# ==============================================================================
# Registration, default selection, initialize/close and per-connection state
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from catalog_backend.core.exceptions import ConnectivityError, DataSourceNotFoundError
from catalog_backend.database.config import ConnectionConfig
from catalog_backend.database.datasource import DataSource

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Lifecycle state of a named connection."""
    REGISTERED = "registered"
    INITIALIZED = "initialized"
    FAILED = "failed"


@dataclass
class ConnectionEntry:
    """
    Registry record of one named connection.

    Created at registration and kept for the life of the process. The
    outage fields are maintained by the resilience layer.

    Attributes:
        name: Logical connection name
        datasource: The pooled connection
        state: Lifecycle state
        last_error: Time of the latest connectivity failure
        outage_started_at: First failure of the current outage episode
        recovered_since: When the connection was restored in this episode
        notification_sent: A down notification went out for this episode
    """

    name: str
    datasource: DataSource
    state: ConnectionState = ConnectionState.REGISTERED
    last_error: Optional[datetime] = None
    outage_started_at: Optional[datetime] = None
    recovered_since: Optional[datetime] = None
    notification_sent: bool = False

    @property
    def is_initialized(self) -> bool:
        return self.state == ConnectionState.INITIALIZED and self.datasource.is_initialized

    def reset_outage(self) -> None:
        self.outage_started_at = None
        self.recovered_since = None
        self.notification_sent = False


class DataSourceRegistry:
    """
    Holds the named connections of the process.

    The first registered connection becomes the default; lookups without
    a name resolve to it. The registry is constructed explicitly at
    startup and handed to the services that need it.

    Example:
        >>> registry = DataSourceRegistry()
        >>> registry.register(ConnectionConfig(name="main", url=main_url))
        >>> registry.register(ConnectionConfig(name="secondary", url=other_url))
        >>> await registry.initialize_all()
        >>> registry.get().name
        'main'
        >>> await registry.close_all()
    """

    def __init__(self) -> None:
        self._entries: Dict[str, ConnectionEntry] = {}
        self._default: Optional[str] = None

    # ==========================================================================
    # REGISTRATION
    # ==========================================================================

    def register(self, source: Union[ConnectionConfig, DataSource]) -> ConnectionEntry:
        """
        Register a named connection.

        Args:
            source: Configuration, or a ready DataSource

        Returns:
            The new entry

        Raises:
            ValueError: If the name is already registered
        """
        datasource = source if isinstance(source, DataSource) else DataSource(source)
        name = datasource.name
        if name in self._entries:
            raise ValueError(f"Data source '{name}' is already registered")

        entry = ConnectionEntry(name=name, datasource=datasource)
        self._entries[name] = entry
        if self._default is None:
            self._default = name
        logger.info(f"Registered data source '{name}'")
        return entry

    def set_default(self, name: str) -> None:
        self.entry(name)
        self._default = name
        logger.info(f"Default data source set to '{name}'")

    @property
    def default_name(self) -> Optional[str]:
        return self._default

    def names(self) -> List[str]:
        return list(self._entries)

    def entry(self, name: Optional[str] = None) -> ConnectionEntry:
        """
        Entry for `name`, or for the default connection.

        Raises:
            DataSourceNotFoundError: If no such connection is registered
        """
        resolved = name or self._default
        if resolved is None or resolved not in self._entries:
            raise DataSourceNotFoundError(name or "<default>")
        return self._entries[resolved]

    def get(self, name: Optional[str] = None) -> DataSource:
        return self.entry(name).datasource

    def is_initialized(self, name: Optional[str] = None) -> bool:
        return self.entry(name).is_initialized

    # ==========================================================================
    # LIFECYCLE
    # ==========================================================================

    async def initialize(self, name: Optional[str] = None) -> DataSource:
        """
        Open one connection.

        On failure the entry stays registered (or failed, if it had
        already failed) and the error propagates.

        Raises:
            ConnectivityError: If the connection cannot be opened
        """
        entry = self.entry(name)
        try:
            await entry.datasource.initialize()
        except ConnectivityError:
            if entry.state == ConnectionState.INITIALIZED:
                entry.state = ConnectionState.FAILED
            raise
        entry.state = ConnectionState.INITIALIZED
        return entry.datasource

    async def initialize_all(self) -> None:
        """
        Open every registered connection concurrently.

        Raises:
            ConnectivityError: Listing every connection that failed
        """
        names = self.names()
        results = await asyncio.gather(
            *(self.initialize(name) for name in names),
            return_exceptions=True,
        )
        failed = {
            name: str(result)
            for name, result in zip(names, results)
            if isinstance(result, BaseException)
        }
        for name, result in zip(names, results):
            if isinstance(result, BaseException) and not isinstance(result, ConnectivityError):
                raise result
        if failed:
            raise ConnectivityError(
                f"Failed to initialize data sources: {', '.join(failed)}",
                details={"failed": failed},
            )
        logger.info(f"Initialized {len(names)} data source(s)")

    async def mark_failed(self, name: Optional[str] = None) -> ConnectionEntry:
        """Move a connection to failed and release its engine."""
        entry = self.entry(name)
        entry.state = ConnectionState.FAILED
        await entry.datasource.destroy()
        logger.warning(f"Data source '{entry.name}' marked as failed")
        return entry

    async def close(self, name: Optional[str] = None) -> None:
        entry = self.entry(name)
        await entry.datasource.destroy()
        entry.state = ConnectionState.REGISTERED

    async def close_all(self) -> None:
        """Close every connection; errors are logged and do not stop the rest."""
        for name in self.names():
            try:
                await self.close(name)
            except Exception as e:
                logger.error(f"Error closing data source '{name}': {e}")
        logger.info("All data sources closed")

    async def health(self) -> Dict[str, str]:
        """State of each connection, pinging the initialized ones."""
        report: Dict[str, str] = {}
        for name, entry in self._entries.items():
            if entry.is_initialized and await entry.datasource.ping():
                report[name] = ConnectionState.INITIALIZED.value
            elif entry.state == ConnectionState.REGISTERED:
                report[name] = ConnectionState.REGISTERED.value
            else:
                report[name] = ConnectionState.FAILED.value
        return report
