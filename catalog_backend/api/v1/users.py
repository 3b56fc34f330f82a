# ==============================================================================
# USERS ENDPOINTS - Users and Role Assignments
# ==============================================================================
# Role assignments have a composite key addressed as /{user_id}/{role_id}
# ==============================================================================

from fastapi import status

from catalog_backend.api.dependencies import UserRoleServiceDep, unwrap
from catalog_backend.api.v1.crud import build_crud_router
from catalog_backend.core.exceptions import NotFoundError
from catalog_backend.schemas.base import APIResponse, DeleteResult
from catalog_backend.schemas.users import (
    UserCreate,
    UserResponse,
    UserRoleCreate,
    UserRoleResponse,
    UserRoleUpdate,
    UserUpdate,
)

users_router = build_crud_router(
    "user", "/users", ["Users"],
    UserCreate, UserUpdate, UserResponse,
)

user_roles_router = build_crud_router(
    "user_role", "/user-roles", ["User Roles"],
    UserRoleCreate, UserRoleUpdate, UserRoleResponse,
    with_key_routes=False,
)


def _key(user_id: int, role_id: int) -> dict:
    return {"user_id": user_id, "role_id": role_id}


@user_roles_router.get(
    "/{user_id}/{role_id}",
    response_model=APIResponse[UserRoleResponse],
    summary="Get a role assignment",
)
async def get_user_role(
    user_id: int,
    role_id: int,
    service: UserRoleServiceDep,
) -> APIResponse[UserRoleResponse]:
    row = unwrap(await service.find_by_key(_key(user_id, role_id)))
    if row is None:
        raise NotFoundError(resource_type="user_role", resource_id=f"{user_id}/{role_id}")
    return APIResponse[UserRoleResponse](data=UserRoleResponse.model_validate(row))


@user_roles_router.put(
    "/{user_id}/{role_id}",
    response_model=APIResponse[UserRoleResponse],
    summary="Update a role assignment",
)
async def update_user_role(
    user_id: int,
    role_id: int,
    payload: UserRoleUpdate,
    service: UserRoleServiceDep,
) -> APIResponse[UserRoleResponse]:
    row = unwrap(await service.update(_key(user_id, role_id), payload))
    return APIResponse[UserRoleResponse](
        data=UserRoleResponse.model_validate(row),
        message="Updated",
    )


@user_roles_router.delete(
    "/{user_id}/{role_id}",
    response_model=APIResponse[DeleteResult],
    status_code=status.HTTP_200_OK,
    summary="Delete a role assignment",
)
async def delete_user_role(
    user_id: int,
    role_id: int,
    service: UserRoleServiceDep,
) -> APIResponse[DeleteResult]:
    if not unwrap(await service.delete(_key(user_id, role_id))):
        raise NotFoundError(resource_type="user_role", resource_id=f"{user_id}/{role_id}")
    return APIResponse[DeleteResult](data=DeleteResult(deleted=True), message="Deleted")
