# ==============================================================================
# GENERIC CRUD ENDPOINTS - Router Factory
# ==============================================================================
# List / filter / get / create / bulk / update / delete routes for any
# entity served by a GenericRepositoryService
# ==============================================================================

# Annotations are evaluated eagerly here: route signatures use the
# schema classes passed to the factory.

from typing import Annotated, Any, Dict, List, Optional, Sequence, Type

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from catalog_backend.api.dependencies import (
    FilterParserDep,
    QueryOptionsDep,
    normalize_query_options,
    service_dependency,
    unwrap,
)
from catalog_backend.core.exceptions import FilterParseError, NotFoundError
from catalog_backend.filters.models import PaginatedResult, QueryOptions
from catalog_backend.schemas.base import APIResponse, DeleteResult, PaginatedResponse
from catalog_backend.services.repository_service import GenericRepositoryService


def page_response(page: PaginatedResult, schema: Type[BaseModel]) -> APIResponse:
    """Envelope for one page of rows rendered with `schema`."""
    return APIResponse[PaginatedResponse[schema]](data=page.map(schema.model_validate))


def parse_query_body(body: Dict[str, Any]) -> QueryOptions:
    """
    Read an advanced-filter request body.

    Raises:
        FilterParseError: If the body is not a valid query
    """
    try:
        return QueryOptions.model_validate(body)
    except PydanticValidationError as e:
        raise FilterParseError(
            message="Invalid filter body",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def parse_expand(expand: Optional[str], known: Sequence[str]) -> List[str]:
    """
    Relation names from a comma-separated ``expand`` parameter.

    Names are trimmed and deduplicated; names not in `known` are dropped.
    """
    if not expand:
        return []
    names = (name.strip() for name in expand.split(","))
    return [name for name in dict.fromkeys(names) if name in known]


def render_detail(
    row: Any,
    base_schema: Type[BaseModel],
    detail_schema: Type[BaseModel],
    relation_schemas: Dict[str, Type[BaseModel]],
    expanded: Sequence[str],
) -> BaseModel:
    """Render `row` with the `expanded` relations nested; others stay null."""
    data = base_schema.model_validate(row).model_dump()
    for name in expanded:
        schema = relation_schemas[name]
        value = getattr(row, name)
        if isinstance(value, list):
            data[name] = [schema.model_validate(item) for item in value]
        else:
            data[name] = schema.model_validate(value) if value is not None else None
    return detail_schema.model_validate(data)


def build_crud_router(
    entity: str,
    prefix: str,
    tags: List[str],
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
    with_key_routes: bool = True,
    detail_schema: Optional[Type[BaseModel]] = None,
    relation_schemas: Optional[Dict[str, Type[BaseModel]]] = None,
) -> APIRouter:
    """
    Router with the standard endpoints of one entity.

    Args:
        entity: Entity name registered in the service container
        prefix: Route prefix, e.g. ``/products``
        tags: OpenAPI tags
        create_schema: Body of create and bulk create
        update_schema: Body of update (partial)
        response_schema: Rendering of a row
        with_key_routes: Add ``/{item_id}`` routes (single integer keys)
        detail_schema: Rendering of a row with expanded relations; enables
            ``?expand=`` on the get route and ``/{item_id}/with-relations``
        relation_schemas: Rendering of each expandable relation by name

    Returns:
        The router, to which callers may add entity-specific routes

    Example:
        >>> router = build_crud_router(
        ...     "supplier", "/suppliers", ["Suppliers"],
        ...     SupplierCreate, SupplierUpdate, SupplierResponse,
        ... )
    """
    router = APIRouter(prefix=prefix, tags=tags)
    ServiceDep = Annotated[GenericRepositoryService, Depends(service_dependency(entity))]
    PageModel = APIResponse[PaginatedResponse[response_schema]]
    ItemModel = APIResponse[response_schema]
    ItemsModel = APIResponse[List[response_schema]]

    @router.get(
        "",
        response_model=PageModel,
        summary=f"List {entity} records",
        description=(
            "Filter with `filter[field][op]=value` or `field@op=value`, sort with "
            "`sort=field:dir` or `sortBy`/`sortDirection`, page with `page` and `limit`."
        ),
    )
    async def list_items(service: ServiceDep, options: QueryOptionsDep):
        page = unwrap(await service.find_all(options.filter, options.sort, options.pagination))
        return page_response(page, response_schema)

    @router.post(
        "/filter",
        response_model=PageModel,
        summary=f"Filter {entity} records",
        description="Advanced filter with a JSON body holding filter, sort and pagination.",
    )
    async def filter_items(
        service: ServiceDep,
        parser: FilterParserDep,
        body: Dict[str, Any] = Body(default_factory=dict),
    ):
        options = normalize_query_options(parse_query_body(body), parser)
        page = unwrap(await service.find_all(options.filter, options.sort, options.pagination))
        return page_response(page, response_schema)

    @router.post(
        "",
        response_model=ItemModel,
        status_code=status.HTTP_201_CREATED,
        summary=f"Create a {entity} record",
    )
    async def create_item(service: ServiceDep, payload: create_schema):
        row = unwrap(await service.create_one(payload))
        return ItemModel(data=response_schema.model_validate(row), message="Created")

    @router.post(
        "/bulk",
        response_model=ItemsModel,
        status_code=status.HTTP_201_CREATED,
        summary=f"Create several {entity} records",
        description="All records are inserted in one transaction.",
    )
    async def create_items(service: ServiceDep, payload: List[create_schema]):
        rows = unwrap(await service.create_many(payload))
        return ItemsModel(
            data=[response_schema.model_validate(row) for row in rows],
            message=f"Created {len(rows)} record(s)",
        )

    if not with_key_routes:
        return router

    if detail_schema is None:
        @router.get(
            "/{item_id}",
            response_model=ItemModel,
            summary=f"Get a {entity} record",
        )
        async def get_item(item_id: int, service: ServiceDep):
            row = unwrap(await service.find_by_key(item_id))
            if row is None:
                raise NotFoundError(resource_type=entity, resource_id=item_id)
            return ItemModel(data=response_schema.model_validate(row))
    else:
        relations = dict(relation_schemas or {})
        DetailModel = APIResponse[detail_schema]

        async def get_detail(service: GenericRepositoryService, item_id: int, expanded: List[str]):
            row = unwrap(await service.find_by_key(item_id, expand=expanded))
            if row is None:
                raise NotFoundError(resource_type=entity, resource_id=item_id)
            return DetailModel(
                data=render_detail(row, response_schema, detail_schema, relations, expanded)
            )

        @router.get(
            "/{item_id}/with-relations",
            response_model=DetailModel,
            summary=f"Get a {entity} record with all relations",
        )
        async def get_item_with_relations(item_id: int, service: ServiceDep):
            return await get_detail(service, item_id, list(relations))

        @router.get(
            "/{item_id}",
            response_model=DetailModel,
            summary=f"Get a {entity} record",
            description=f"Expand relations with `expand`, one or more of: {', '.join(relations)}.",
        )
        async def get_item(
            item_id: int,
            service: ServiceDep,
            expand: Optional[str] = Query(None, description="Comma-separated relation names"),
        ):
            return await get_detail(service, item_id, parse_expand(expand, list(relations)))

    @router.put(
        "/{item_id}",
        response_model=ItemModel,
        summary=f"Update a {entity} record",
    )
    async def update_item(item_id: int, service: ServiceDep, payload: update_schema):
        row = unwrap(await service.update(item_id, payload))
        return ItemModel(data=response_schema.model_validate(row), message="Updated")

    @router.delete(
        "/{item_id}",
        response_model=APIResponse[DeleteResult],
        summary=f"Delete a {entity} record",
    )
    async def delete_item(item_id: int, service: ServiceDep):
        if not unwrap(await service.delete(item_id)):
            raise NotFoundError(resource_type=entity, resource_id=item_id)
        return APIResponse[DeleteResult](data=DeleteResult(deleted=True), message="Deleted")

    return router
