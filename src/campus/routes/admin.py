from typing import List

from fastapi import APIRouter, Depends, status

from campus.auth.models import AuthenticatedUser
from campus.auth.passwords import hash_password
from campus.auth.rbac import (
    any_role,
    can_grant_roles,
    can_manage_user,
    min_role,
    require_access,
)
from campus.auth.session import to_user_response
from campus.db.role import (
    apply_role_changes,
    get_active_role_names,
    get_active_role_names_for_users,
    get_active_roles_by_names,
    get_role_hierarchy,
)
from campus.db.user import (
    EmailAlreadyRegisteredError,
    create_user as create_user_in_db,
    get_all_users,
    get_user_by_email,
    get_user_by_id,
    update_user,
)
from campus.errors import conflict, forbidden, not_found
from campus.models import (
    CreateUserRequest,
    RoleName,
    UpdateUserRolesRequest,
    UpdateUserStatusRequest,
    UserResponse,
    UserStatus,
)
from campus.utils.logging import logger

router = APIRouter()

ADMIN_ROLES = (RoleName.ADMIN.value, RoleName.SUPER_ADMIN.value)
STAFF_ROLES = (
    RoleName.ADMIN.value,
    RoleName.TEACHER.value,
    RoleName.MENTOR.value,
    RoleName.MODERATOR.value,
)

# Membership first, then the caller's rank against the live hierarchy
require_admin = require_access(any_role(*ADMIN_ROLES), min_role(*ADMIN_ROLES))
require_super_admin = require_access(
    any_role(RoleName.SUPER_ADMIN.value), min_role(RoleName.SUPER_ADMIN.value)
)
require_staff = require_access(any_role(*STAFF_ROLES), min_role(*STAFF_ROLES))


@router.get("/users", response_model=List[UserResponse])
async def get_users(
    current_user: AuthenticatedUser = Depends(require_admin),
) -> List[UserResponse]:
    users = await get_all_users()
    roles_by_user = await get_active_role_names_for_users([user.id for user in users])
    return [to_user_response(user, roles_by_user.get(user.id, [])) for user in users]


@router.post(
    "/users", status_code=status.HTTP_201_CREATED, response_model=UserResponse
)
async def create_user(
    request: CreateUserRequest,
    current_user: AuthenticatedUser = Depends(require_super_admin),
) -> UserResponse:
    """Create an active, verified ADMIN account."""
    roles = [RoleName.ADMIN.value]

    if await get_user_by_email(request.email):
        raise conflict("User with this email already exists")

    if not can_grant_roles(current_user.roles, roles, await get_role_hierarchy()):
        raise forbidden(
            "You do not have permission to create a user with the specified roles."
        )

    try:
        user = await create_user_in_db(
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            password_hash=hash_password(request.password),
            status=UserStatus.ACTIVE,
            is_email_verified=True,
            role_names=roles,
        )
    except EmailAlreadyRegisteredError:
        raise conflict("User with this email already exists")

    logger.info(f"User {user.id} created by {current_user.id} with roles {roles}")

    return to_user_response(user, await get_active_role_names(user.id))


@router.patch("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    request: UpdateUserStatusRequest,
    current_user: AuthenticatedUser = Depends(require_staff),
) -> UserResponse:
    target = await get_user_by_id(user_id)
    if not target:
        raise not_found("User not found")

    target_roles = await get_active_role_names(user_id)

    if not can_manage_user(current_user.roles, target_roles, await get_role_hierarchy()):
        raise forbidden("You do not have permission to modify this user")

    await update_user(user_id, status=request.status)

    logger.info(
        f"User {user_id} status set to {request.status.value} by {current_user.id}"
    )

    return to_user_response(await get_user_by_id(user_id), target_roles)


@router.patch("/users/{user_id}/roles", response_model=UserResponse)
async def update_user_roles(
    user_id: int,
    request: UpdateUserRolesRequest,
    current_user: AuthenticatedUser = Depends(require_access()),
) -> UserResponse:
    """Bring the user's roles in line with ``request.roles``.

    Only the difference is applied: roles already held are left untouched,
    missing ones are added and extra ones removed.
    """
    requested = list(dict.fromkeys(role.value for role in request.roles))
    hierarchy = await get_role_hierarchy()

    if not can_grant_roles(current_user.roles, requested, hierarchy):
        raise forbidden(
            "You do not have permission to assign one or more of the specified roles."
        )

    if not await get_user_by_id(user_id):
        raise not_found("User not found")

    known_roles = {role.name for role in await get_active_roles_by_names(requested)}
    for role_name in requested:
        if role_name not in known_roles:
            raise not_found(f"Role {role_name} not found")

    current_roles = await get_active_role_names(user_id)

    roles_to_add = [role for role in requested if role not in current_roles]
    roles_to_remove = [role for role in current_roles if role not in requested]

    # Taking a role away needs the same authority as handing it out
    if roles_to_remove and not can_grant_roles(
        current_user.roles, roles_to_remove, hierarchy
    ):
        raise forbidden(
            "You do not have permission to remove one or more of the user's roles."
        )

    await apply_role_changes(user_id, roles_to_add, roles_to_remove)

    logger.info(
        f"Roles updated for user {user_id} by {current_user.id}: "
        f"added {roles_to_add}, removed {roles_to_remove}"
    )

    return to_user_response(
        await get_user_by_id(user_id), await get_active_role_names(user_id)
    )
