# ==============================================================================
# CONNECTION RESILIENCE - Bounded Recovery and Outage Notifications
# ==============================================================================
# Exponential-backoff reconnects, per-operation error tracking and
# one down / one recovered notification per outage episode
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_backend.core.exceptions import ConnectivityError, DatabaseError
from catalog_backend.core.settings import Settings
from catalog_backend.database.registry import ConnectionEntry, DataSourceRegistry
from catalog_backend.services.notifications import NotificationSink
from catalog_backend.utils.helpers import utc_now

logger = logging.getLogger(__name__)

RECOVERED_MESSAGE = "Database connection was restored after a temporary outage."
UNAVAILABLE_MESSAGE = "Database connection is still unavailable. Please try again later."
OPERATION_FAILED_MESSAGE = "Database operation failed."

# OperationalError texts that mean the store itself is unreachable
_CONNECTIVITY_MARKERS = (
    "unable to open database",
    "could not connect",
    "connection refused",
    "connection reset",
    "connection is closed",
    "server closed the connection",
    "terminating connection",
    "no route to host",
    "timeout expired",
)


def is_connectivity_error(error: BaseException) -> bool:
    """
    Whether `error` means the store is unreachable.

    Only these errors are retried; constraint violations and bad queries
    are not.
    """
    if isinstance(error, ConnectivityError):
        return True
    if isinstance(error, (DisconnectionError, PoolTimeoutError, InterfaceError)):
        return True
    if isinstance(error, DBAPIError):
        if error.connection_invalidated:
            return True
        if isinstance(error.orig, OSError):
            return True
        if isinstance(error, OperationalError):
            message = str(error).lower()
            return any(marker in message for marker in _CONNECTIVITY_MARKERS)
        return False
    return isinstance(error, (OSError, asyncio.TimeoutError))


@dataclass
class ErrorTracker:
    """
    Error state of one operation identifier.

    Created on the first connectivity failure of the operation.
    """

    operation_id: str
    connection_name: str
    last_error_at: Optional[datetime] = None
    failures: int = 0
    recovered_since: Optional[datetime] = None
    notification_sent: bool = False


@dataclass(frozen=True)
class RecoveryOutcome:
    """What handle_database_error tells the caller."""

    recovered: bool
    message: str
    connectivity: bool = True


class ConnectionResilience:
    """
    Sole owner of connection recovery.

    Repository services ask it for sessions, report failures through
    :meth:`handle_database_error` and successes through
    :meth:`register_successful_operation`. Outage notifications are
    deduplicated per connection: one "down" when an episode is first
    found unrecoverable, one "recovered" on the first successful
    operation afterwards.

    Attributes:
        registry: Named connections
        max_retries: Initialize attempts per recovery
        retry_interval: Base backoff delay in seconds

    Example:
        >>> resilience = ConnectionResilience(registry, notifier, max_retries=3)
        >>> recovered = await resilience.try_recover_connection("main")
    """

    def __init__(
        self,
        registry: DataSourceRegistry,
        notifier: Optional[NotificationSink] = None,
        max_retries: int = 3,
        retry_interval: float = 1.0,
        notifications_enabled: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.registry = registry
        self.notifier = notifier
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.notifications_enabled = notifications_enabled and notifier is not None
        self._sleep = sleep
        self._clock = clock
        self._trackers: Dict[str, ErrorTracker] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._failed_runs: Dict[str, int] = {}

    @classmethod
    def from_settings(
        cls,
        registry: DataSourceRegistry,
        settings: Settings,
        notifier: Optional[NotificationSink] = None,
    ) -> "ConnectionResilience":
        return cls(
            registry,
            notifier=notifier,
            max_retries=settings.DB_RETRY_MAX_ATTEMPTS,
            retry_interval=settings.DB_RETRY_BASE_INTERVAL,
            notifications_enabled=settings.DB_NOTIFICATIONS_ENABLED,
        )

    def tracker(self, operation_id: str) -> Optional[ErrorTracker]:
        return self._trackers.get(operation_id)

    # ==========================================================================
    # RECOVERY
    # ==========================================================================

    async def try_recover_connection(self, connection_name: Optional[str] = None) -> bool:
        """
        Reinitialize a connection with bounded exponential backoff.

        Returns immediately when the connection is already initialized.
        Otherwise makes up to ``max_retries`` attempts, sleeping
        ``retry_interval * 2 ** (attempt - 1)`` between consecutive ones.
        Callers that queued behind a run which gave up return False without
        a run of their own.

        Args:
            connection_name: Connection to recover (default when None)

        Returns:
            True on the first successful attempt, False when all fail
        """
        entry = self.registry.entry(connection_name)
        lock = self._locks.setdefault(entry.name, asyncio.Lock())
        failed_runs = self._failed_runs.get(entry.name, 0)

        async with lock:
            if entry.is_initialized:
                return True
            if self._failed_runs.get(entry.name, 0) != failed_runs:
                logger.info(f"Data source '{entry.name}' just failed to recover, not retrying")
                return False

            for attempt in range(1, self.max_retries + 1):
                try:
                    await self.registry.initialize(entry.name)
                except DatabaseError as e:
                    logger.warning(
                        f"Reconnect attempt {attempt}/{self.max_retries} "
                        f"for '{entry.name}' failed: {e}"
                    )
                    if attempt < self.max_retries:
                        delay = self.retry_interval * 2 ** (attempt - 1)
                        logger.info(f"Retrying '{entry.name}' in {delay:.2f}s")
                        await self._sleep(delay)
                    continue

                logger.info(f"Data source '{entry.name}' recovered on attempt {attempt}")
                self._mark_recovered(entry)
                return True

            self._failed_runs[entry.name] = failed_runs + 1

        logger.error(
            f"Data source '{entry.name}' still unavailable after "
            f"{self.max_retries} attempt(s)"
        )
        return False

    def _mark_recovered(self, entry: ConnectionEntry) -> None:
        if entry.outage_started_at is None or entry.recovered_since is not None:
            return
        now = self._clock()
        entry.recovered_since = now
        for tracker in self._trackers.values():
            if tracker.connection_name == entry.name and tracker.recovered_since is None:
                tracker.recovered_since = now

    # ==========================================================================
    # OPERATION OUTCOMES
    # ==========================================================================

    async def handle_database_error(
        self,
        error: BaseException,
        operation_id: str,
        connection_name: Optional[str] = None,
        recover: bool = True,
    ) -> RecoveryOutcome:
        """
        React to a failed storage operation.

        Connectivity errors mark the connection failed and trigger a
        recovery; if recovery fails, the first such failure of an outage
        episode sends the down notification. Other errors are reported
        back untouched, without retry.

        Args:
            error: The failure
            operation_id: Identifier of the failed operation
            connection_name: Connection the operation used
            recover: False when the caller already ran a recovery that
                failed, so the failure is recorded without another run

        Returns:
            RecoveryOutcome with ``recovered`` and a status message
        """
        if not is_connectivity_error(error):
            logger.warning(f"Operation '{operation_id}' failed: {error}")
            return RecoveryOutcome(
                recovered=False,
                message=OPERATION_FAILED_MESSAGE,
                connectivity=False,
            )

        entry = self.registry.entry(connection_name)
        now = self._clock()

        tracker = self._trackers.get(operation_id)
        if tracker is None:
            tracker = ErrorTracker(operation_id=operation_id, connection_name=entry.name)
            self._trackers[operation_id] = tracker
        tracker.last_error_at = now
        tracker.failures += 1

        entry.last_error = now
        if entry.outage_started_at is None:
            entry.outage_started_at = now
        logger.error(f"Connectivity failure in '{operation_id}' on '{entry.name}': {error}")

        await self.registry.mark_failed(entry.name)

        if recover and await self.try_recover_connection(entry.name):
            return RecoveryOutcome(recovered=True, message=RECOVERED_MESSAGE)

        entry.recovered_since = None
        tracker.recovered_since = None
        if self.notifications_enabled and not entry.notification_sent:
            if await self._notify_down(operation_id, entry.name, error):
                entry.notification_sent = True
                tracker.notification_sent = True
        return RecoveryOutcome(recovered=False, message=UNAVAILABLE_MESSAGE)

    async def register_successful_operation(
        self,
        operation_id: str,
        connection_name: Optional[str] = None,
    ) -> None:
        """
        Close the outage episode of a connection after a success.

        Sends the recovered notification when a down notification went
        out for the episode, then clears the episode state.
        """
        entry = self.registry.entry(connection_name)
        if entry.outage_started_at is None and not entry.notification_sent:
            self._trackers.pop(operation_id, None)
            return

        if entry.notification_sent:
            recovered_at = entry.recovered_since or self._clock()
            started_at = entry.outage_started_at or entry.last_error or recovered_at
            downtime = max((recovered_at - started_at).total_seconds(), 0.0)
            await self._notify_recovery(operation_id, entry.name, downtime)

        entry.reset_outage()
        for key in [k for k, t in self._trackers.items() if t.connection_name == entry.name]:
            del self._trackers[key]

    async def get_session_for_operation(
        self,
        connection_name: Optional[str] = None,
    ) -> Optional[AsyncSession]:
        """
        Session on a healthy connection, or None.

        Tries to recover an uninitialized connection first. The caller
        owns the returned session.
        """
        entry = self.registry.entry(connection_name)
        if not entry.is_initialized:
            if not await self.try_recover_connection(entry.name):
                return None
        try:
            return entry.datasource.create_session()
        except ConnectivityError as e:
            logger.warning(f"No session available on '{entry.name}': {e}")
            return None

    # ==========================================================================
    # NOTIFICATIONS
    # ==========================================================================

    async def _notify_down(
        self,
        operation_id: str,
        connection_name: str,
        error: BaseException,
    ) -> bool:
        try:
            await self.notifier.send_down_notification(operation_id, connection_name, error)
        except Exception:
            logger.exception(f"Down notification for '{connection_name}' failed")
            return False
        logger.info(f"Down notification sent for '{connection_name}'")
        return True

    async def _notify_recovery(
        self,
        operation_id: str,
        connection_name: str,
        downtime_seconds: float,
    ) -> None:
        if not self.notifications_enabled:
            return
        try:
            await self.notifier.send_recovery_notification(
                operation_id, connection_name, downtime_seconds
            )
        except Exception:
            logger.exception(f"Recovery notification for '{connection_name}' failed")
            return
        logger.info(
            f"Recovery notification sent for '{connection_name}' "
            f"(downtime {downtime_seconds:.0f}s)"
        )
