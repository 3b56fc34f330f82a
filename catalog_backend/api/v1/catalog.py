# ==============================================================================
# CATALOG ENDPOINTS - Categories, Products, Images, Suppliers, Feeds
# ==============================================================================

from typing import List, Optional

from fastapi import status

from catalog_backend.api.dependencies import (
    ProductFeedServiceDep,
    ProductImageServiceDep,
    SupplierServiceDep,
    unwrap,
)
from catalog_backend.api.v1.crud import build_crud_router
from catalog_backend.schemas.base import APIResponse
from catalog_backend.schemas.catalog import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ImageOrderRequest,
    ProductCreate,
    ProductDetailResponse,
    ProductFeedCreate,
    ProductFeedResponse,
    ProductFeedUpdate,
    ProductIdsRequest,
    ProductImageCreate,
    ProductImageResponse,
    ProductImageUpdate,
    ProductResponse,
    ProductUpdate,
    SupplierCreate,
    SupplierResponse,
    SupplierUpdate,
)

categories_router = build_crud_router(
    "category", "/categories", ["Categories"],
    CategoryCreate, CategoryUpdate, CategoryResponse,
)

products_router = build_crud_router(
    "product", "/products", ["Products"],
    ProductCreate, ProductUpdate, ProductResponse,
    detail_schema=ProductDetailResponse,
    relation_schemas={
        "category": CategoryResponse,
        "images": ProductImageResponse,
        "suppliers": SupplierResponse,
    },
)

product_images_router = build_crud_router(
    "product_image", "/product-images", ["Product Images"],
    ProductImageCreate, ProductImageUpdate, ProductImageResponse,
)

suppliers_router = build_crud_router(
    "supplier", "/suppliers", ["Suppliers"],
    SupplierCreate, SupplierUpdate, SupplierResponse,
)

product_feeds_router = build_crud_router(
    "product_feed", "/product-feeds", ["Product Feeds"],
    ProductFeedCreate, ProductFeedUpdate, ProductFeedResponse,
)


def product_list(products, message: Optional[str] = None) -> APIResponse[List[ProductResponse]]:
    return APIResponse[List[ProductResponse]](
        data=[ProductResponse.model_validate(p) for p in products],
        message=message,
    )


def image_list(images, message: Optional[str] = None) -> APIResponse[List[ProductImageResponse]]:
    return APIResponse[List[ProductImageResponse]](
        data=[ProductImageResponse.model_validate(image) for image in images],
        message=message,
    )


# ==============================================================================
# PRODUCT IMAGES
# ==============================================================================

@product_images_router.get(
    "/product/{product_id}",
    response_model=APIResponse[List[ProductImageResponse]],
    summary="List a product's images",
    description="Images in gallery order: sort_order, then id.",
)
async def list_product_images(
    product_id: int,
    service: ProductImageServiceDep,
) -> APIResponse[List[ProductImageResponse]]:
    return image_list(unwrap(await service.images_for_product(product_id)))


@product_images_router.get(
    "/product/{product_id}/main",
    response_model=APIResponse[Optional[ProductImageResponse]],
    summary="Get a product's main image",
    description="The first image in gallery order; null when the product has none.",
)
async def get_main_image(
    product_id: int,
    service: ProductImageServiceDep,
) -> APIResponse[Optional[ProductImageResponse]]:
    image = unwrap(await service.main_image(product_id))
    return APIResponse[Optional[ProductImageResponse]](
        data=ProductImageResponse.model_validate(image) if image is not None else None,
    )


@product_images_router.put(
    "/product/{product_id}/order",
    response_model=APIResponse[List[ProductImageResponse]],
    summary="Reorder a product's images",
    description="Listed images come first, in list order; unlisted images follow.",
)
async def reorder_product_images(
    product_id: int,
    payload: ImageOrderRequest,
    service: ProductImageServiceDep,
) -> APIResponse[List[ProductImageResponse]]:
    images = unwrap(await service.reorder(product_id, payload.image_ids))
    return image_list(images, message="Images reordered")


# ==============================================================================
# SUPPLIER PRODUCTS
# ==============================================================================

@suppliers_router.get(
    "/{supplier_id}/products",
    response_model=APIResponse[List[ProductResponse]],
    summary="List supplier products",
)
async def list_supplier_products(
    supplier_id: int,
    service: SupplierServiceDep,
) -> APIResponse[List[ProductResponse]]:
    return product_list(unwrap(await service.list_products(supplier_id)))


@suppliers_router.post(
    "/{supplier_id}/products",
    response_model=APIResponse[List[ProductResponse]],
    status_code=status.HTTP_201_CREATED,
    summary="Add products to a supplier",
)
async def add_supplier_products(
    supplier_id: int,
    payload: ProductIdsRequest,
    service: SupplierServiceDep,
) -> APIResponse[List[ProductResponse]]:
    products = unwrap(await service.add_products(supplier_id, payload.product_ids))
    return product_list(products, message="Products added")


@suppliers_router.delete(
    "/{supplier_id}/products/{product_id}",
    response_model=APIResponse[List[ProductResponse]],
    summary="Remove a product from a supplier",
)
async def remove_supplier_product(
    supplier_id: int,
    product_id: int,
    service: SupplierServiceDep,
) -> APIResponse[List[ProductResponse]]:
    products = unwrap(await service.remove_products(supplier_id, [product_id]))
    return product_list(products, message="Product removed")


# ==============================================================================
# FEED MEMBERSHIP
# ==============================================================================

@product_feeds_router.get(
    "/{feed_id}/products",
    response_model=APIResponse[List[ProductResponse]],
    summary="List feed products",
)
async def list_feed_products(
    feed_id: int,
    service: ProductFeedServiceDep,
) -> APIResponse[List[ProductResponse]]:
    return product_list(unwrap(await service.list_products(feed_id)))


@product_feeds_router.post(
    "/{feed_id}/products",
    response_model=APIResponse[List[ProductResponse]],
    status_code=status.HTTP_201_CREATED,
    summary="Add products to a feed",
    description="Attach existing products; products already in the feed are kept once.",
)
async def add_feed_products(
    feed_id: int,
    payload: ProductIdsRequest,
    service: ProductFeedServiceDep,
) -> APIResponse[List[ProductResponse]]:
    products = unwrap(await service.add_products(feed_id, payload.product_ids))
    return product_list(products, message="Products added")


@product_feeds_router.delete(
    "/{feed_id}/products/{product_id}",
    response_model=APIResponse[List[ProductResponse]],
    summary="Remove a product from a feed",
)
async def remove_feed_product(
    feed_id: int,
    product_id: int,
    service: ProductFeedServiceDep,
) -> APIResponse[List[ProductResponse]]:
    products = unwrap(await service.remove_products(feed_id, [product_id]))
    return product_list(products, message="Product removed")
