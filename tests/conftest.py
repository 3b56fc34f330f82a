# ==============================================================================
# CONFTEST - Pytest Fixtures and Configuration
# ==============================================================================
# Shared fixtures for all tests
# ==============================================================================

from __future__ import annotations

import os
import sys
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "false"
os.environ["MAIN_DATABASE_URL"] = "sqlite+aiosqlite:///./test_catalog.db"
os.environ["DB_RETRY_BASE_INTERVAL"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

# Add app to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catalog_backend.core.exceptions import ConnectivityError  # noqa: E402
from catalog_backend.core.settings import Settings  # noqa: E402
from catalog_backend.database.config import ConnectionConfig  # noqa: E402
from catalog_backend.database.datasource import DataSource  # noqa: E402
from catalog_backend.services.container import ServiceContainer  # noqa: E402
from catalog_backend.services.notifications import (  # noqa: E402
    NotificationMessage,
    NotificationSink,
)


# ==============================================================================
# TEST DOUBLES
# ==============================================================================

class RecordingSink(NotificationSink):
    """Notification sink that keeps every delivered message."""

    def __init__(self) -> None:
        super().__init__()
        self.messages: List[NotificationMessage] = []
        self.closed = False

    async def deliver(self, message: NotificationMessage) -> None:
        self.messages.append(message)

    async def aclose(self) -> None:
        self.closed = True

    def events(self, event: str) -> List[NotificationMessage]:
        return [m for m in self.messages if m.event == event]


class FlakyDataSource(DataSource):
    """
    DataSource whose initialize can be made to fail.

    ``fail_times`` failures are raised before initialize goes through;
    ``down`` fails every attempt while set.
    """

    def __init__(self, config: ConnectionConfig, fail_times: int = 0, **kwargs) -> None:
        super().__init__(config, **kwargs)
        self.fail_times = fail_times
        self.down = False
        self.attempts = 0

    async def initialize(self) -> None:
        self.attempts += 1
        if self.down or self.fail_times > 0:
            self.fail_times = max(self.fail_times - 1, 0)
            raise ConnectivityError(
                f"Simulated outage of '{self.name}'",
                connection_name=self.name,
            )
        await super().initialize()


# ==============================================================================
# SETTINGS & CONTAINER FIXTURES
# ==============================================================================

@pytest.fixture
def database_url(tmp_path) -> str:
    """File-backed SQLite database unique to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    return Settings(
        MAIN_DATABASE_URL=database_url,
        DB_RETRY_BASE_INTERVAL=0,
        DB_NOTIFICATIONS_ENABLED=True,
    )


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def flaky_source():
    """Factory for data sources with controllable outages."""
    return FlakyDataSource


@pytest_asyncio.fixture
async def container(
    test_settings: Settings,
    recording_sink: RecordingSink,
) -> AsyncGenerator[ServiceContainer, None]:
    """Initialized service container over a fresh database."""
    services = ServiceContainer(test_settings, notifier=recording_sink)
    await services.init()
    yield services
    await services.shutdown()


# ==============================================================================
# HTTP CLIENT FIXTURES
# ==============================================================================

@pytest_asyncio.fixture
async def client(container: ServiceContainer) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    # Import app after environment is set
    from catalog_backend.main import app

    app.state.container = container
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        timeout=30.0,
    ) as async_client:
        yield async_client


# ==============================================================================
# HELPER FIXTURES
# ==============================================================================

@pytest_asyncio.fixture
async def products(container: ServiceContainer) -> list:
    """Four products priced 500, 1500, 5000 and 6000."""
    result = await container.service("product").create_many([
        {"name": "Laptop", "price": Decimal("500"), "stock": 3, "manufacturer": "Acme",
         "stocked_date": datetime(2022, 12, 31, 9, 0)},
        {"name": "iPhone 15", "price": Decimal("1500"), "stock": 10, "manufacturer": "Apple",
         "stocked_date": datetime(2023, 1, 15, 12, 0)},
        {"name": "Phone Case", "price": Decimal("5000"), "stock": 0, "manufacturer": "Acme",
         "stocked_date": datetime(2023, 2, 1, 8, 30)},
        {"name": "Monitor", "price": Decimal("6000"), "stock": 5, "manufacturer": "Sony"},
    ])
    assert result.success, result
    return result.value


@pytest.fixture
def sample_product_data() -> dict:
    """Generate sample product data."""
    return {
        "name": "Mechanical Keyboard",
        "price": "129.99",
        "stock": 25,
        "manufacturer": "Keychron",
        "sku": "kb-001",
    }
