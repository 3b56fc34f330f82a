# ==============================================================================
# SERVICE CONTAINER - Explicit Process Wiring
# ==============================================================================
# Builds the registry, the resilience layer and one repository service per
# entity; owns their startup and shutdown
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Type

from sqlalchemy import Table

from catalog_backend.core.exceptions import ConnectivityError, NotFoundError
from catalog_backend.core.settings import Settings
from catalog_backend.database.config import build_connection_configs
from catalog_backend.database.datasource import DataSource
from catalog_backend.database.registry import DataSourceRegistry
from catalog_backend.database.resilience import ConnectionResilience
from catalog_backend.domain_models import (
    Category,
    Product,
    ProductFeed,
    ProductImage,
    SQLBase,
    Supplier,
    User,
    UserRole,
)
from catalog_backend.services.entities import EntityDescriptor
from catalog_backend.services.image_service import ProductImageService
from catalog_backend.services.membership_service import ProductFeedService, SupplierService
from catalog_backend.services.notifications import NotificationSink, build_notification_sink
from catalog_backend.services.repository_service import GenericRepositoryService

logger = logging.getLogger(__name__)


def build_entity_descriptors(settings: Settings) -> List[EntityDescriptor]:
    """Descriptors of every entity served by the backend."""
    sort_field = settings.DEFAULT_SORT_FIELD
    return [
        EntityDescriptor.builder(Category)
        .named("category")
        .default_sort(sort_field)
        .source_info(description="Product category tree", system="catalog")
        .column("code", display_name="Code", description="Unique category code")
        .build(),
        EntityDescriptor.builder(Product)
        .named("product")
        .default_sort(sort_field)
        .source_info(description="Sellable catalog items", system="catalog", owner="merchandising")
        .column("price", display_name="Price", format="decimal(18,2)", validation_rules=[">= 0"])
        .column("stock", display_name="Stock", validation_rules=[">= 0"])
        .column("sku", display_name="SKU", description="Stock Keeping Unit")
        .column("expiry_date", display_name="Expiry date", format="ISO 8601")
        .build(),
        EntityDescriptor.builder(ProductImage)
        .named("product_image")
        .default_sort(sort_field)
        .source_info(description="Product gallery images", system="catalog", owner="merchandising")
        .column("url", display_name="URL", description="Location of the image file")
        .column("sort_order", display_name="Sort order", description="Gallery position, lowest is the main image")
        .build(),
        EntityDescriptor.builder(Supplier)
        .named("supplier")
        .default_sort(sort_field)
        .source_info(description="Product vendors", system="procurement")
        .build(),
        EntityDescriptor.builder(ProductFeed)
        .named("product_feed")
        .default_sort(sort_field)
        .source_info(description="Outbound product feeds", system="integration")
        .column("refresh_interval", display_name="Refresh interval", format="minutes")
        .build(),
        EntityDescriptor.builder(User)
        .named("user")
        .default_sort(sort_field)
        .source_info(description="User accounts", system="identity")
        .build(),
        EntityDescriptor.builder(UserRole)
        .named("user_role")
        .primary_key("user_id", "role_id")
        .default_sort(None)
        .source_info(description="Role assignments", system="identity")
        .build(),
    ]


def owned_tables(descriptors: Sequence[EntityDescriptor]) -> List[Table]:
    """
    Tables of the given entities plus association tables between them.

    An association table is any other table of the metadata whose foreign
    keys all point at entity tables.
    """
    tables = [descriptor.model.__table__ for descriptor in descriptors]
    for table in SQLBase.metadata.sorted_tables:
        if table in tables or not table.foreign_keys:
            continue
        if all(fk.column.table in tables for fk in table.foreign_keys):
            tables.append(table)
    return tables


class ServiceContainer:
    """
    Everything a request handler needs, built once per process.

    Example:
        >>> container = ServiceContainer(settings)
        >>> await container.init()
        >>> result = await container.service("product").find_all()
        >>> await container.shutdown()
    """

    SERVICE_CLASSES: Dict[str, Type[GenericRepositoryService]] = {
        "product_image": ProductImageService,
        "supplier": SupplierService,
        "product_feed": ProductFeedService,
    }

    def __init__(
        self,
        settings: Settings,
        registry: Optional[DataSourceRegistry] = None,
        notifier: Optional[NotificationSink] = None,
        descriptors: Optional[Sequence[EntityDescriptor]] = None,
    ) -> None:
        self.settings = settings
        self.descriptors = list(descriptors or build_entity_descriptors(settings))
        self.registry = registry or self._build_registry()
        self.notifier = notifier or build_notification_sink(settings)
        self.resilience = ConnectionResilience.from_settings(
            self.registry,
            settings,
            notifier=self.notifier,
        )
        self.semaphore = asyncio.Semaphore(settings.MAX_CONCURRENT_OPERATIONS)
        self.services: Dict[str, GenericRepositoryService] = {
            descriptor.name: self.SERVICE_CLASSES.get(descriptor.name, GenericRepositoryService)(
                descriptor,
                self.registry,
                self.resilience,
                semaphore=self.semaphore,
            )
            for descriptor in self.descriptors
        }

    def _build_registry(self) -> DataSourceRegistry:
        registry = DataSourceRegistry()
        configs = build_connection_configs(self.settings)
        default = configs[0].name
        for config in configs:
            descriptors = [
                d for d in self.descriptors if (d.connection_name or default) == config.name
            ]
            config = config.model_copy(update={"entities": tuple(d.name for d in descriptors)})
            registry.register(
                DataSource(config, metadata=SQLBase.metadata, tables=owned_tables(descriptors))
            )
        return registry

    def service(self, entity: str) -> GenericRepositoryService:
        """
        Repository service of an entity.

        Raises:
            NotFoundError: If no such entity is served
        """
        try:
            return self.services[entity]
        except KeyError:
            raise NotFoundError(
                message=f"Unknown entity '{entity}'",
                resource_type="entity",
                resource_id=entity,
            ) from None

    def descriptor(self, entity: str) -> EntityDescriptor:
        return self.service(entity).descriptor

    # ==========================================================================
    # LIFECYCLE
    # ==========================================================================

    async def init(self) -> None:
        """
        Open every connection.

        Failures are logged and left to the resilience layer to recover
        on first use, except in production where startup fails.
        """
        try:
            await self.registry.initialize_all()
        except ConnectivityError as e:
            logger.error(f"Data source initialization failed: {e.message}")
            if self.settings.is_production:
                raise

    async def shutdown(self) -> None:
        await self.registry.close_all()
        try:
            await self.notifier.aclose()
        except Exception as e:
            logger.warning(f"Error closing notification sink: {e}")
