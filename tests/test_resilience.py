# ==============================================================================
# CONNECTION RESILIENCE TESTS
# ==============================================================================
# Bounded recovery, error classification and outage notification dedupe
# ==============================================================================

import asyncio
from typing import AsyncGenerator, List, Tuple

import pytest
import pytest_asyncio
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from catalog_backend.core.exceptions import ConnectivityError
from catalog_backend.core.settings import Settings
from catalog_backend.database.config import build_connection_configs
from catalog_backend.database.registry import DataSourceRegistry
from catalog_backend.database.resilience import (
    RECOVERED_MESSAGE,
    UNAVAILABLE_MESSAGE,
    ConnectionResilience,
    is_connectivity_error,
)
from catalog_backend.domain_models import SQLBase
from catalog_backend.services.container import (
    ServiceContainer,
    build_entity_descriptors,
    owned_tables,
)
from catalog_backend.services.notifications import NotificationMessage, NotificationSink
from catalog_backend.services.results import ErrorKind


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FailingOnceSink(NotificationSink):
    """Sink whose first delivery fails."""

    def __init__(self) -> None:
        super().__init__()
        self.calls = 0
        self.delivered: List[NotificationMessage] = []

    async def deliver(self, message: NotificationMessage) -> None:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("mail relay unavailable")
        self.delivered.append(message)


@pytest.fixture
def main_config(test_settings: Settings):
    return build_connection_configs(test_settings)[0]


@pytest_asyncio.fixture
async def outage(
    test_settings: Settings,
    recording_sink,
    flaky_source,
) -> AsyncGenerator[Tuple[ServiceContainer, object], None]:
    """Initialized container whose main connection can be taken down."""
    descriptors = build_entity_descriptors(test_settings)
    config = build_connection_configs(test_settings)[0]
    source = flaky_source(config, metadata=SQLBase.metadata, tables=owned_tables(descriptors))
    registry = DataSourceRegistry()
    registry.register(source)

    services = ServiceContainer(
        test_settings,
        registry=registry,
        notifier=recording_sink,
        descriptors=descriptors,
    )
    await services.init()
    yield services, source
    await services.shutdown()


async def take_down(source) -> None:
    source.down = True
    await source.destroy()


# ==============================================================================
# RECOVERY
# ==============================================================================

class TestTryRecoverConnection:
    """Tests for bounded exponential-backoff reconnects."""

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, main_config, flaky_source):
        """Test a source that never comes back gets exactly max_retries attempts."""
        source = flaky_source(main_config)
        source.down = True
        registry = DataSourceRegistry()
        registry.register(source)
        sleep = SleepRecorder()
        resilience = ConnectionResilience(registry, max_retries=3, retry_interval=1, sleep=sleep)

        recovered = await resilience.try_recover_connection("main")

        assert recovered is False
        assert source.attempts == 3
        assert sleep.delays == [1, 2]

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self, main_config, flaky_source):
        """Test two failures then a success within the attempt budget."""
        source = flaky_source(main_config, fail_times=2)
        registry = DataSourceRegistry()
        registry.register(source)
        sleep = SleepRecorder()
        resilience = ConnectionResilience(registry, max_retries=3, retry_interval=0.5, sleep=sleep)

        recovered = await resilience.try_recover_connection()

        assert recovered is True
        assert source.attempts == 3
        assert sleep.delays == [0.5, 1.0]
        assert registry.is_initialized("main")
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_initialized_source_needs_no_attempt(self, main_config, flaky_source):
        source = flaky_source(main_config)
        registry = DataSourceRegistry()
        registry.register(source)
        await registry.initialize()
        resilience = ConnectionResilience(registry, sleep=SleepRecorder())

        assert await resilience.try_recover_connection() is True
        assert source.attempts == 1
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_concurrent_recoveries_share_one_attempt_run(self, main_config, flaky_source):
        """Test callers racing on one connection do not multiply attempts."""
        source = flaky_source(main_config, fail_times=1)
        registry = DataSourceRegistry()
        registry.register(source)
        resilience = ConnectionResilience(registry, max_retries=3, retry_interval=0)

        results = await asyncio.gather(*(resilience.try_recover_connection() for _ in range(5)))

        assert all(results)
        assert source.attempts == 2
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_callers_queued_behind_a_failed_run_give_up(self, main_config, flaky_source):
        """Test waiters do not start their own backoff after a run gave up."""
        source = flaky_source(main_config)
        source.down = True
        registry = DataSourceRegistry()
        registry.register(source)
        resilience = ConnectionResilience(registry, max_retries=3, retry_interval=0)

        results = await asyncio.gather(*(resilience.try_recover_connection() for _ in range(5)))

        assert results == [False] * 5
        assert source.attempts == 3

    @pytest.mark.asyncio
    async def test_later_caller_runs_again(self, main_config, flaky_source):
        """Test a call made after a failed run gets a fresh attempt budget."""
        source = flaky_source(main_config)
        source.down = True
        registry = DataSourceRegistry()
        registry.register(source)
        resilience = ConnectionResilience(registry, max_retries=3, retry_interval=0)

        await resilience.try_recover_connection()
        source.down = False
        recovered = await resilience.try_recover_connection()

        assert recovered is True
        assert source.attempts == 4
        await registry.close_all()

    def test_max_retries_must_be_positive(self):
        with pytest.raises(ValueError):
            ConnectionResilience(DataSourceRegistry(), max_retries=0)


# ==============================================================================
# ERROR CLASSIFICATION
# ==============================================================================

class TestIsConnectivityError:
    """Tests for which failures trigger recovery."""

    @pytest.mark.parametrize(
        "error",
        [
            ConnectivityError("down", connection_name="main"),
            OperationalError("SELECT 1", {}, Exception("unable to open database file")),
            DBAPIError("SELECT 1", {}, ConnectionRefusedError("refused")),
            OSError("network unreachable"),
            asyncio.TimeoutError(),
        ],
    )
    def test_connectivity(self, error):
        assert is_connectivity_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.username")),
            OperationalError("SELECT", {}, Exception("no such table: widgets")),
            ValueError("bad input"),
        ],
    )
    def test_not_connectivity(self, error):
        assert is_connectivity_error(error) is False

    @pytest.mark.asyncio
    async def test_non_connectivity_error_is_not_retried(self, main_config, flaky_source):
        """Test constraint failures leave the connection alone."""
        source = flaky_source(main_config)
        registry = DataSourceRegistry()
        registry.register(source)
        await registry.initialize()
        resilience = ConnectionResilience(registry, sleep=SleepRecorder())

        outcome = await resilience.handle_database_error(
            IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")),
            "user.create_one",
        )

        assert outcome.recovered is False
        assert outcome.connectivity is False
        assert source.attempts == 1
        assert registry.is_initialized()
        assert resilience.tracker("user.create_one") is None
        await registry.close_all()


# ==============================================================================
# OUTAGE EPISODES
# ==============================================================================

class TestOperationRetryBudget:
    """Tests for the attempts one failed operation spends."""

    @pytest.mark.asyncio
    async def test_failed_operation_spends_one_attempt_run(self, outage):
        """Test an unreachable source is retried max_retries times, not twice that."""
        services, source = outage
        service = services.service("product")
        await take_down(source)
        before = source.attempts

        result = await service.find_all()

        assert result.kind == ErrorKind.CONNECTIVITY
        assert result.recovered is False
        assert source.attempts - before == services.resilience.max_retries

    @pytest.mark.asyncio
    async def test_each_failed_operation_gets_its_own_run(self, outage):
        services, source = outage
        await take_down(source)
        before = source.attempts

        await services.service("product").find_all()
        await services.service("supplier").find_by_key(1)

        assert source.attempts - before == 2 * services.resilience.max_retries


class TestOutageNotifications:
    """Tests for one down and one recovered alert per outage."""

    @pytest.mark.asyncio
    async def test_one_down_and_one_recovered_per_outage(self, outage, recording_sink):
        """Test repeated failures alert once and the first success alerts once."""
        services, source = outage
        service = services.service("product")
        await take_down(source)

        for _ in range(4):
            result = await service.find_all()
            assert result.kind == ErrorKind.CONNECTIVITY
            assert result.recovered is False
            assert result.message == UNAVAILABLE_MESSAGE

        assert len(recording_sink.events("down")) == 1
        assert recording_sink.events("recovered") == []
        assert services.resilience.tracker("product.find_all").failures == 4

        source.down = False
        first = await service.find_all()
        second = await service.find_all()

        assert first.success and second.success
        assert len(recording_sink.events("down")) == 1
        assert len(recording_sink.events("recovered")) == 1
        assert services.resilience.tracker("product.find_all") is None

    @pytest.mark.asyncio
    async def test_new_outage_alerts_again(self, outage, recording_sink):
        """Test a second outage after recovery sends a fresh down alert."""
        services, source = outage
        service = services.service("supplier")

        await take_down(source)
        await service.find_all()
        source.down = False
        await service.find_all()
        await take_down(source)
        await service.find_all()
        await service.find_all()

        assert [m.event for m in recording_sink.messages] == ["down", "recovered", "down"]

    @pytest.mark.asyncio
    async def test_failures_across_operations_share_one_alert(self, outage, recording_sink):
        """Test different endpoints on one connection do not each alert."""
        services, source = outage
        await take_down(source)

        await services.service("product").find_all()
        await services.service("supplier").find_by_key(1)
        await services.service("user").create_one({"username": "bob", "email": "bob@example.com"})

        down = recording_sink.events("down")
        assert len(down) == 1
        assert down[0].endpoint == "product.find_all"
        assert down[0].connection == "main"

    @pytest.mark.asyncio
    async def test_recovered_mid_operation(self, outage, recording_sink):
        """Test a transient failure reports recovered=True without alerts."""
        services, source = outage
        service = services.service("product")
        calls = []

        async def flaky_run(session):
            calls.append(session)
            if len(calls) == 1:
                raise ConnectivityError("connection reset by peer", connection_name="main")
            return "ok"

        failed = await service.execute_database_operation("lookup", flaky_run)
        retried = await service.execute_database_operation("lookup", flaky_run)

        assert failed.kind == ErrorKind.CONNECTIVITY
        assert failed.recovered is True
        assert failed.message == RECOVERED_MESSAGE
        assert retried.value == "ok"
        assert recording_sink.messages == []
        assert services.registry.entry("main").outage_started_at is None

    @pytest.mark.asyncio
    async def test_disabled_notifications(self, main_config, flaky_source, recording_sink):
        source = flaky_source(main_config)
        source.down = True
        registry = DataSourceRegistry()
        registry.register(source)
        resilience = ConnectionResilience(
            registry,
            notifier=recording_sink,
            retry_interval=0,
            notifications_enabled=False,
        )

        outcome = await resilience.handle_database_error(ConnectivityError("down"), "product.find_all")

        assert outcome.recovered is False
        assert recording_sink.messages == []

    @pytest.mark.asyncio
    async def test_failed_delivery_is_retried_next_failure(self, main_config, flaky_source):
        """Test an alert that could not be sent does not count as sent."""
        source = flaky_source(main_config)
        source.down = True
        registry = DataSourceRegistry()
        registry.register(source)
        sink = FailingOnceSink()
        resilience = ConnectionResilience(registry, notifier=sink, retry_interval=0)

        await resilience.handle_database_error(ConnectivityError("down"), "product.find_all")
        assert registry.entry().notification_sent is False

        await resilience.handle_database_error(ConnectivityError("down"), "product.find_all")
        await resilience.handle_database_error(ConnectivityError("down"), "product.find_all")

        assert [m.event for m in sink.delivered] == ["down"]
        assert registry.entry().notification_sent is True
