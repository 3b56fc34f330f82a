# ==============================================================================
# ENTITY DESCRIPTOR & SERVICE CONTAINER TESTS
# ==============================================================================

import pytest

from catalog_backend.core.exceptions import ConnectivityError, NotFoundError
from catalog_backend.core.settings import Environment, Settings
from catalog_backend.domain_models import Product, UserRole
from catalog_backend.domain_models.catalog import product_feed_products, supplier_products
from catalog_backend.services.container import (
    ServiceContainer,
    build_entity_descriptors,
    owned_tables,
)
from catalog_backend.services.entities import EntityDescriptor
from catalog_backend.services.image_service import ProductImageService
from catalog_backend.services.membership_service import ProductFeedService, SupplierService
from catalog_backend.services.repository_service import GenericRepositoryService


class TestEntityDescriptorBuilder:
    """Tests for descriptor construction."""

    def test_defaults_from_model(self):
        """Test name and key default to the mapped table."""
        descriptor = EntityDescriptor.builder(Product).build()

        assert descriptor.name == "products"
        assert descriptor.primary_key == ("id",)
        assert descriptor.default_sort_field == "created_at"
        assert descriptor.is_composite is False

    def test_composite_key(self):
        descriptor = (
            EntityDescriptor.builder(UserRole)
            .named("user_role")
            .primary_key("user_id", "role_id")
            .default_sort(None)
            .build()
        )

        assert descriptor.primary_key == ("user_id", "role_id")
        assert descriptor.is_composite is True

    def test_unmapped_key_rejected(self):
        with pytest.raises(ValueError):
            EntityDescriptor.builder(UserRole).primary_key("user_id", "tenant_id").default_sort(None).build()

    def test_unmapped_sort_rejected(self):
        """Test UserRole has no created_at to sort by."""
        with pytest.raises(ValueError):
            EntityDescriptor.builder(UserRole).build()

    def test_column_documentation(self):
        descriptor = (
            EntityDescriptor.builder(Product)
            .column("price", display_name="Price", validation_rules=[">= 0"])
            .build()
        )

        fields = {field["name"]: field for field in descriptor.describe()["fields"]}
        assert fields["price"]["validation_rules"] == [">= 0"]
        assert fields["id"]["primary_key"] is True


class TestServiceContainer:
    """Tests for container wiring and lifecycle."""

    def test_association_tables_are_owned(self, test_settings: Settings):
        tables = owned_tables(build_entity_descriptors(test_settings))

        assert product_feed_products in tables
        assert supplier_products in tables

    def test_services_per_entity(self, test_settings: Settings):
        container = ServiceContainer(test_settings)

        assert isinstance(container.service("product_feed"), ProductFeedService)
        assert isinstance(container.service("supplier"), SupplierService)
        assert isinstance(container.service("product_image"), ProductImageService)
        assert type(container.service("product")) is GenericRepositoryService
        assert container.registry.names() == ["main"]

        with pytest.raises(NotFoundError):
            container.service("invoice")

    def test_secondary_connection_registered(self, test_settings: Settings, tmp_path):
        settings = test_settings.model_copy(
            update={"SECONDARY_DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'archive.db'}"}
        )

        container = ServiceContainer(settings)

        assert container.registry.names() == ["main", "secondary"]
        assert container.registry.get("secondary").tables == []
        assert container.registry.get("main").config.entities == tuple(
            descriptor.name for descriptor in container.descriptors
        )

    @pytest.mark.asyncio
    async def test_init_and_shutdown(self, container, recording_sink):
        assert container.registry.is_initialized("main")

        await container.shutdown()

        assert container.registry.is_initialized("main") is False
        assert recording_sink.closed is True

    @pytest.mark.asyncio
    async def test_startup_failure_tolerated_outside_production(self, test_settings, tmp_path):
        """Test an unreachable database does not abort startup in development."""
        settings = test_settings.model_copy(
            update={"MAIN_DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}"}
        )
        container = ServiceContainer(settings)

        await container.init()

        assert container.registry.is_initialized("main") is False
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_startup_failure_raises_in_production(self, test_settings, tmp_path):
        settings = test_settings.model_copy(update={
            "MAIN_DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}",
            "ENVIRONMENT": Environment.PRODUCTION,
        })
        container = ServiceContainer(settings)

        with pytest.raises(ConnectivityError):
            await container.init()
        await container.shutdown()
