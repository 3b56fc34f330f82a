# ==============================================================================
# OUTAGE NOTIFICATIONS - Down / Recovered Alerts
# ==============================================================================
# Notification sinks used by the resilience layer: log-only and webhook
# ==============================================================================

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Optional

import httpx

from catalog_backend.core.settings import Settings
from catalog_backend.utils.helpers import format_duration, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationMessage:
    """Rendered alert, shaped like an e-mail."""

    event: str
    subject: str
    body: str
    recipient: str
    sender: str
    endpoint: str
    connection: str


class NotificationSink(ABC):
    """
    Receiver of datasource outage alerts.

    The resilience layer calls each method at most once per outage
    episode and connection.
    """

    def __init__(
        self,
        recipient: str = "ops@example.com",
        sender: str = "catalog-backend@example.com",
        subject_prefix: str = "[Catalog Backend]",
    ) -> None:
        self.recipient = recipient
        self.sender = sender
        self.subject_prefix = subject_prefix

    @abstractmethod
    async def deliver(self, message: NotificationMessage) -> None:
        """Send one rendered message."""

    async def send_down_notification(
        self,
        endpoint: str,
        connection_name: str,
        error: BaseException,
    ) -> None:
        await self.deliver(self.compose_down(endpoint, connection_name, error))

    async def send_recovery_notification(
        self,
        endpoint: str,
        connection_name: str,
        downtime_seconds: float,
    ) -> None:
        await self.deliver(self.compose_recovery(endpoint, connection_name, downtime_seconds))

    async def aclose(self) -> None:
        """Release resources held by the sink."""

    # --------------------------------------------------------------------------
    # MESSAGE COMPOSITION
    # --------------------------------------------------------------------------
    def compose_down(
        self,
        endpoint: str,
        connection_name: str,
        error: BaseException,
    ) -> NotificationMessage:
        body = (
            f"Database connection '{connection_name}' is unavailable.\n\n"
            f"Detected at: {utc_now().isoformat()}\n"
            f"Operation: {endpoint}\n"
            f"Error: {type(error).__name__}: {error}\n\n"
            f"Recovery attempts were exhausted; requests are answered as degraded "
            f"until the connection is restored."
        )
        return NotificationMessage(
            event="down",
            subject=f"{self.subject_prefix} Database '{connection_name}' is down",
            body=body,
            recipient=self.recipient,
            sender=self.sender,
            endpoint=endpoint,
            connection=connection_name,
        )

    def compose_recovery(
        self,
        endpoint: str,
        connection_name: str,
        downtime_seconds: float,
    ) -> NotificationMessage:
        body = (
            f"Database connection '{connection_name}' has been restored.\n\n"
            f"Restored at: {utc_now().isoformat()}\n"
            f"Operation: {endpoint}\n"
            f"Downtime: {format_duration(downtime_seconds)}"
        )
        return NotificationMessage(
            event="recovered",
            subject=f"{self.subject_prefix} Database '{connection_name}' recovered",
            body=body,
            recipient=self.recipient,
            sender=self.sender,
            endpoint=endpoint,
            connection=connection_name,
        )


class LoggingNotificationSink(NotificationSink):
    """Writes alerts to the application log."""

    async def deliver(self, message: NotificationMessage) -> None:
        level = logging.ERROR if message.event == "down" else logging.INFO
        logger.log(
            level,
            f"[NOTIFICATION] to={message.recipient} subject={message.subject!r}\n{message.body}",
        )


class WebhookNotificationSink(NotificationSink):
    """
    Posts alerts as JSON to a webhook.

    Example:
        >>> sink = WebhookNotificationSink("https://hooks.example.com/db")
        >>> await sink.send_recovery_notification("product.find_all", "main", 42.0)
        >>> await sink.aclose()
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def deliver(self, message: NotificationMessage) -> None:
        response = await self._client.post(self.url, json=asdict(message))
        response.raise_for_status()

    async def aclose(self) -> None:
        await self._client.aclose()


def build_notification_sink(settings: Settings) -> NotificationSink:
    """Webhook sink when a webhook URL is configured, logging sink otherwise."""
    common = dict(
        recipient=settings.DB_NOTIFICATION_RECIPIENT,
        sender=settings.DB_NOTIFICATION_SENDER,
        subject_prefix=settings.DB_NOTIFICATION_SUBJECT_PREFIX,
    )
    if settings.DB_NOTIFICATION_WEBHOOK_URL:
        return WebhookNotificationSink(
            settings.DB_NOTIFICATION_WEBHOOK_URL,
            timeout=settings.DB_NOTIFICATION_TIMEOUT,
            **common,
        )
    return LoggingNotificationSink(**common)
