# ==============================================================================
# MEMBERSHIP SERVICES - Products Attached to Feeds and Suppliers
# ==============================================================================
# Generic CRUD plus attaching and detaching products for any entity that
# owns a many-to-many ``products`` collection
# ==============================================================================

from __future__ import annotations

import logging
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog_backend.core.exceptions import NotFoundError
from catalog_backend.domain_models.catalog import Product, ProductFeed, Supplier
from catalog_backend.services.repository_service import GenericRepositoryService, ModelType
from catalog_backend.services.results import OperationResult

logger = logging.getLogger(__name__)


def _by_id(products) -> List[Product]:
    return sorted(products, key=lambda product: product.id)


class ProductMembershipService(GenericRepositoryService[ModelType]):
    """
    Entities owning a ``products`` collection.

    Membership changes run through the same resilient execution path as
    the generic operations.
    """

    async def list_products(self, owner_id: int) -> OperationResult[List[Product]]:
        condition = self.key_condition(owner_id)

        async def run(session: AsyncSession) -> List[Product]:
            owner = await self._load_owner(session, condition, owner_id)
            return _by_id(owner.products)

        return await self.execute_database_operation("list_products", run, transactional=False)

    async def add_products(
        self,
        owner_id: int,
        product_ids: Sequence[int],
    ) -> OperationResult[List[Product]]:
        """
        Attach products to the owner.

        Products already attached are left as they are.

        Returns:
            Ok(products of the owner after the change), or Err of kind
            NOT_FOUND when the owner or any product does not exist
        """
        condition = self.key_condition(owner_id)
        wanted = sorted(set(product_ids))

        async def run(session: AsyncSession) -> List[Product]:
            owner = await self._load_owner(session, condition, owner_id)
            products = list(
                (await session.scalars(select(Product).where(Product.id.in_(wanted)))).all()
            )
            missing = set(wanted) - {product.id for product in products}
            if missing:
                raise NotFoundError(
                    message=f"Products not found: {sorted(missing)}",
                    resource_type="product",
                    resource_id=sorted(missing),
                )
            present = {product.id for product in owner.products}
            owner.products.extend(p for p in products if p.id not in present)
            await session.flush()
            logger.info(f"{self.entity_name} {owner_id}: attached {len(products)} product(s)")
            return _by_id(owner.products)

        return await self.execute_database_operation("add_products", run)

    async def remove_products(
        self,
        owner_id: int,
        product_ids: Sequence[int],
    ) -> OperationResult[List[Product]]:
        """Detach products; ids not attached are ignored."""
        condition = self.key_condition(owner_id)
        unwanted = set(product_ids)

        async def run(session: AsyncSession) -> List[Product]:
            owner = await self._load_owner(session, condition, owner_id)
            owner.products = [p for p in owner.products if p.id not in unwanted]
            await session.flush()
            return _by_id(owner.products)

        return await self.execute_database_operation("remove_products", run)

    async def _load_owner(self, session: AsyncSession, condition, owner_id: int):
        stmt = select(self.model).where(condition).options(selectinload(self.model.products))
        owner = (await session.scalars(stmt)).first()
        if owner is None:
            raise NotFoundError(
                message=f"{self.entity_name.replace('_', ' ').capitalize()} not found",
                resource_type=self.entity_name,
                resource_id=owner_id,
            )
        return owner


class ProductFeedService(ProductMembershipService[ProductFeed]):
    """Product feeds and the products they publish."""


class SupplierService(ProductMembershipService[Supplier]):
    """Suppliers and the products they deliver."""
