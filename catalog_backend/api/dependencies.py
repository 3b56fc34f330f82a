# ==============================================================================
# API DEPENDENCIES - Dependency Injection
# ==============================================================================
# FastAPI dependencies for the service container, query parsing and
# translating operation results into HTTP errors
# ==============================================================================

from __future__ import annotations

from typing import Annotated, Optional, TypeVar

from fastapi import Depends, Request

from catalog_backend.core.exceptions import (
    AppException,
    BadRequestError,
    ConstraintError,
    NotFoundError,
    ServiceUnavailableError,
)
from catalog_backend.filters.models import PaginationOptions, QueryOptions
from catalog_backend.filters.parser import FilterParser
from catalog_backend.services.container import ServiceContainer
from catalog_backend.services.image_service import ProductImageService
from catalog_backend.services.membership_service import ProductFeedService, SupplierService
from catalog_backend.services.repository_service import GenericRepositoryService
from catalog_backend.services.results import Err, ErrorKind, OperationResult

T = TypeVar("T")


# ==============================================================================
# CONTAINER DEPENDENCIES
# ==============================================================================

def get_container(request: Request) -> ServiceContainer:
    """Service container built by the application lifespan."""
    return request.app.state.container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def service_dependency(entity: str):
    """
    Dependency resolving the repository service of `entity`.

    Example:
        >>> ProductServiceDep = Annotated[
        ...     GenericRepositoryService, Depends(service_dependency("product"))
        ... ]
    """
    def get_service(container: ContainerDep) -> GenericRepositoryService:
        return container.service(entity)

    get_service.__name__ = f"get_{entity}_service"
    return get_service


UserRoleServiceDep = Annotated[GenericRepositoryService, Depends(service_dependency("user_role"))]
ProductFeedServiceDep = Annotated[ProductFeedService, Depends(service_dependency("product_feed"))]
SupplierServiceDep = Annotated[SupplierService, Depends(service_dependency("supplier"))]
ProductImageServiceDep = Annotated[ProductImageService, Depends(service_dependency("product_image"))]


# ==============================================================================
# QUERY DEPENDENCIES
# ==============================================================================

def get_filter_parser(container: ContainerDep) -> FilterParser:
    settings = container.settings
    return FilterParser(
        strict=settings.FILTER_STRICT_OPERATORS,
        default_limit=settings.PAGINATION_DEFAULT_LIMIT,
        max_limit=settings.PAGINATION_MAX_LIMIT,
    )


FilterParserDep = Annotated[FilterParser, Depends(get_filter_parser)]


def get_query_options(request: Request, parser: FilterParserDep) -> QueryOptions:
    """
    Filter, sort and pagination read from the query string.

    Repeated keys are passed through, so the parser sees every value.
    """
    return parser.parse(request.query_params.multi_items())


QueryOptionsDep = Annotated[QueryOptions, Depends(get_query_options)]


def normalize_query_options(
    options: Optional[QueryOptions],
    parser: FilterParser,
) -> QueryOptions:
    """
    Prepare a JSON query body for execution.

    Operands are coerced like query-string operands and the page size is
    clamped to the configured maximum.
    """
    options = options or QueryOptions()
    pagination = options.pagination
    if "pagination" not in options.model_fields_set:
        pagination = PaginationOptions(limit=parser.default_limit)
    if parser.max_limit is not None and pagination.limit > parser.max_limit:
        pagination = PaginationOptions(page=pagination.page, limit=parser.max_limit)
    return QueryOptions(
        filter=parser.normalize(options.filter),
        sort=options.sort,
        pagination=pagination,
    )


# ==============================================================================
# RESULT HANDLING
# ==============================================================================

def error_for(result: Err) -> AppException:
    """
    HTTP-facing exception for a failed operation.

    connectivity maps to 503 carrying ``recovered``, not_found to 404,
    constraint to 409 and query failures to 400. Storage error text may
    carry SQL and bound values, so only its class name reaches clients.
    """
    details = {"error_type": result.error_type} if result.error_type else {}
    if result.kind == ErrorKind.CONNECTIVITY:
        return ServiceUnavailableError(
            message=result.message,
            recovered=result.recovered,
            details=details,
        )
    if result.kind == ErrorKind.NOT_FOUND:
        return NotFoundError(message=result.message)
    if result.kind == ErrorKind.CONSTRAINT:
        return ConstraintError(message=result.message, details=details)
    return BadRequestError(message=result.message, details=details)


def unwrap(result: OperationResult[T]) -> T:
    """Value of an Ok result; raises the mapped exception for Err."""
    if isinstance(result, Err):
        raise error_for(result)
    return result.value
