# ==============================================================================
# PRODUCT IMAGE SERVICE - Gallery Order
# ==============================================================================

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_backend.core.exceptions import NotFoundError
from catalog_backend.domain_models.catalog import ProductImage
from catalog_backend.services.repository_service import GenericRepositoryService
from catalog_backend.services.results import OperationResult

logger = logging.getLogger(__name__)


class ProductImageService(GenericRepositoryService[ProductImage]):
    """
    Product images with per-product ordering.

    Images of a product are ordered by ``sort_order``, ties broken by id.
    The first image in that order is the product's main image.
    """

    @staticmethod
    def _gallery(product_id: int):
        return (
            select(ProductImage)
            .where(ProductImage.product_id == product_id)
            .order_by(ProductImage.sort_order, ProductImage.id)
        )

    async def images_for_product(self, product_id: int) -> OperationResult[List[ProductImage]]:
        async def run(session: AsyncSession) -> List[ProductImage]:
            return list((await session.scalars(self._gallery(product_id))).all())

        return await self.execute_database_operation("images_for_product", run, transactional=False)

    async def main_image(self, product_id: int) -> OperationResult[Optional[ProductImage]]:
        """First image of the product's gallery, Ok(None) when it has none."""
        async def run(session: AsyncSession) -> Optional[ProductImage]:
            return (await session.scalars(self._gallery(product_id).limit(1))).first()

        return await self.execute_database_operation("main_image", run, transactional=False)

    async def reorder(
        self,
        product_id: int,
        image_ids: Sequence[int],
    ) -> OperationResult[List[ProductImage]]:
        """
        Put a product's images in the given order.

        Listed images get sort_order 0, 1, 2 ... in list order. Images of
        the product that are not listed keep their place after them.

        Returns:
            Ok(the product's images in their new order), or Err of kind
            NOT_FOUND when an id is not an image of the product
        """
        ordered = list(dict.fromkeys(image_ids))

        async def run(session: AsyncSession) -> List[ProductImage]:
            images = list((await session.scalars(self._gallery(product_id))).all())
            by_id = {image.id: image for image in images}
            foreign = [image_id for image_id in ordered if image_id not in by_id]
            if foreign:
                raise NotFoundError(
                    message=f"Images not found for product {product_id}: {foreign}",
                    resource_type=self.entity_name,
                    resource_id=foreign,
                )
            rest = [image for image in images if image.id not in set(ordered)]
            result = [by_id[image_id] for image_id in ordered] + rest
            for position, image in enumerate(result):
                image.sort_order = position
            await session.flush()
            logger.info(f"Product {product_id}: reordered {len(ordered)} image(s)")
            return result

        return await self.execute_database_operation("reorder", run)
