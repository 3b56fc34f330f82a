# ==============================================================================
# DATASOURCE REGISTRY TESTS
# ==============================================================================

import pytest

from catalog_backend.core.exceptions import ConnectivityError, DataSourceNotFoundError
from catalog_backend.database.config import ConnectionConfig, build_connection_configs
from catalog_backend.database.datasource import DataSource
from catalog_backend.core.settings import Settings
from catalog_backend.database.registry import ConnectionState, DataSourceRegistry


@pytest.fixture
def main_config(database_url) -> ConnectionConfig:
    return ConnectionConfig(name="main", url=database_url)


@pytest.fixture
def other_config(tmp_path) -> ConnectionConfig:
    return ConnectionConfig(name="secondary", url=f"sqlite+aiosqlite:///{tmp_path / 'other.db'}")


class TestRegistration:
    """Tests for naming and default selection."""

    def test_first_registration_is_default(self, main_config, other_config):
        registry = DataSourceRegistry()
        registry.register(main_config)
        registry.register(other_config)

        assert registry.default_name == "main"
        assert registry.get().name == "main"
        assert registry.names() == ["main", "secondary"]

    def test_set_default(self, main_config, other_config):
        registry = DataSourceRegistry()
        registry.register(main_config)
        registry.register(other_config)

        registry.set_default("secondary")

        assert registry.get().name == "secondary"

    def test_duplicate_name_rejected(self, main_config):
        registry = DataSourceRegistry()
        registry.register(main_config)

        with pytest.raises(ValueError):
            registry.register(DataSource(main_config))

    def test_unknown_name(self, main_config):
        """Test lookups of unregistered names raise DataSourceNotFoundError."""
        registry = DataSourceRegistry()
        registry.register(main_config)

        with pytest.raises(DataSourceNotFoundError):
            registry.get("archive")
        with pytest.raises(DataSourceNotFoundError):
            registry.set_default("archive")

    def test_empty_registry_has_no_default(self):
        with pytest.raises(DataSourceNotFoundError):
            DataSourceRegistry().entry()

    def test_new_entry_is_registered(self, main_config):
        entry = DataSourceRegistry().register(main_config)

        assert entry.state == ConnectionState.REGISTERED
        assert entry.is_initialized is False
        assert entry.notification_sent is False


class TestLifecycle:
    """Tests for initialize, failure and close."""

    @pytest.mark.asyncio
    async def test_initialize_all(self, main_config, other_config):
        registry = DataSourceRegistry()
        registry.register(main_config)
        registry.register(other_config)

        await registry.initialize_all()

        assert registry.is_initialized("main")
        assert registry.is_initialized("secondary")
        assert await registry.health() == {"main": "initialized", "secondary": "initialized"}
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_initialize_all_lists_failures(self, main_config, other_config, flaky_source):
        """Test every failed connection is named and the others still open."""
        registry = DataSourceRegistry()
        registry.register(main_config)
        registry.register(flaky_source(other_config, fail_times=1))

        with pytest.raises(ConnectivityError) as exc_info:
            await registry.initialize_all()

        assert "secondary" in exc_info.value.details["failed"]
        assert registry.is_initialized("main")
        assert registry.entry("secondary").state == ConnectionState.REGISTERED
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_mark_failed_releases_engine(self, main_config):
        registry = DataSourceRegistry()
        registry.register(main_config)
        await registry.initialize()

        entry = await registry.mark_failed()

        assert entry.state == ConnectionState.FAILED
        assert entry.datasource.is_initialized is False
        assert await registry.health() == {"main": "failed"}

    @pytest.mark.asyncio
    async def test_initialized_state_needs_live_engine(self, main_config):
        """Test a destroyed engine is not reported as initialized."""
        registry = DataSourceRegistry()
        registry.register(main_config)
        await registry.initialize()

        await registry.get().destroy()

        assert registry.is_initialized() is False

    @pytest.mark.asyncio
    async def test_close_all(self, main_config, other_config):
        registry = DataSourceRegistry()
        registry.register(main_config)
        registry.register(other_config)
        await registry.initialize_all()

        await registry.close_all()

        assert await registry.health() == {"main": "registered", "secondary": "registered"}

    @pytest.mark.asyncio
    async def test_session_on_uninitialized_source(self, main_config):
        with pytest.raises(ConnectivityError):
            DataSource(main_config).create_session()


class TestConnectionConfigs:
    """Tests for connection configuration from settings."""

    def test_main_only_by_default(self, database_url):
        configs = build_connection_configs(Settings(MAIN_DATABASE_URL=database_url))

        assert [config.name for config in configs] == ["main"]

    def test_secondary_when_configured(self, database_url):
        configs = build_connection_configs(Settings(
            MAIN_DATABASE_URL=database_url,
            SECONDARY_DATABASE_URL="postgresql+asyncpg://app:secret@db:5432/archive",
        ))

        assert [config.name for config in configs] == ["main", "secondary"]
        assert configs[1].safe_url() == "postgresql+asyncpg://app:***@db:5432/archive"
