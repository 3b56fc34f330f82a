# ==============================================================================
# META ENDPOINTS - Query Language Reference and Entity Metadata
# ==============================================================================

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter

from catalog_backend.api.dependencies import ContainerDep
from catalog_backend.core.constants import FILTER_OPERATOR_DOCS, QUERY_USAGE_DOCS
from catalog_backend.schemas.base import APIResponse, EntityMetadata

filters_router = APIRouter(prefix="/filters", tags=["Filters"])
metadata_router = APIRouter(prefix="/metadata", tags=["Metadata"])


@filters_router.get(
    "/operators",
    response_model=APIResponse[Dict[str, Dict[str, str]]],
    summary="Filter operators",
    description="Every supported comparison operator with a usage example.",
)
async def list_operators() -> APIResponse[Dict[str, Dict[str, str]]]:
    return APIResponse.ok(data=FILTER_OPERATOR_DOCS)


@filters_router.get(
    "/usage",
    response_model=APIResponse[Dict[str, Dict[str, str]]],
    summary="Query parameters",
    description="Pagination, sorting and filtering parameters of list endpoints.",
)
async def query_usage() -> APIResponse[Dict[str, Dict[str, str]]]:
    return APIResponse.ok(data=QUERY_USAGE_DOCS)


@metadata_router.get(
    "",
    response_model=APIResponse[List[str]],
    summary="Served entities",
)
async def list_entities(container: ContainerDep) -> APIResponse[List[str]]:
    return APIResponse.ok(data=[descriptor.name for descriptor in container.descriptors])


@metadata_router.get(
    "/{entity}",
    response_model=APIResponse[EntityMetadata],
    summary="Entity metadata",
    description="Key, datasource, default sort, source info and column documentation.",
)
async def get_entity_metadata(entity: str, container: ContainerDep) -> APIResponse[EntityMetadata]:
    """Raises 404 for an entity that is not served."""
    descriptor = container.descriptor(entity)
    return APIResponse.ok(data=EntityMetadata(**descriptor.describe()))
