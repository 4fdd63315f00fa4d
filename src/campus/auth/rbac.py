"""
Role hierarchy authorization.

Two policies decide access:

* threshold (``is_authorized``): the caller's highest known role level must
  reach the lowest level among the required roles;
* membership (``has_any_role``): the caller must hold one of the named roles.

Both fail closed. ``None`` as the required set means the operation declares
no restriction, while an empty set is a requirement nobody can meet.

Route protection is an ordered list of pure checks over an ``AccessContext``
(``authenticated``, ``any_role``, ``min_role``) run by ``authorize``.
``require_access`` wraps that as a FastAPI dependency.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from fastapi import Depends

from campus.auth.constants import ROLE_GRANT_PERMISSIONS, ROLE_HIERARCHY
from campus.auth.dependencies import get_current_user
from campus.auth.models import AuthenticatedUser
from campus.db.role import get_role_hierarchy
from campus.errors import forbidden, unauthorized


def _levels(roles: Iterable[str], hierarchy: Dict[str, int]) -> List[int]:
    return [hierarchy[role] for role in roles if role in hierarchy]


def highest_level(roles: Iterable[str], hierarchy: Dict[str, int] = ROLE_HIERARCHY) -> Optional[int]:
    """Highest level among the known roles, or None if none resolve."""
    levels = _levels(roles, hierarchy)
    return max(levels) if levels else None


def is_authorized(
    caller_roles: Iterable[str],
    required_roles: Optional[Iterable[str]],
    hierarchy: Dict[str, int] = ROLE_HIERARCHY,
) -> bool:
    if required_roles is None:
        return True

    caller_level = highest_level(caller_roles, hierarchy)
    required_levels = _levels(required_roles, hierarchy)

    if caller_level is None or not required_levels:
        return False

    return caller_level >= min(required_levels)


def has_any_role(
    caller_roles: Iterable[str], required_roles: Optional[Iterable[str]]
) -> bool:
    if required_roles is None:
        return True
    return bool(set(caller_roles) & set(required_roles))


def grantable_roles(grantor_roles: Iterable[str]) -> set:
    allowed = set()
    for role in grantor_roles:
        allowed.update(ROLE_GRANT_PERMISSIONS.get(role, []))
    return allowed


def can_grant_roles(
    grantor_roles: Iterable[str],
    roles_to_grant: Iterable[str],
    hierarchy: Dict[str, int] = ROLE_HIERARCHY,
) -> bool:
    """Whether the grantor may hand out every role in ``roles_to_grant``.

    Each role must be on one of the grantor roles' allow-lists and must not sit
    above the grantor's own highest level; the allow-list cannot widen the
    level check.
    """
    grantor_roles = list(grantor_roles)
    grantor_level = highest_level(grantor_roles, hierarchy)
    if grantor_level is None:
        return False

    allowed = grantable_roles(grantor_roles)
    for role in roles_to_grant:
        if role not in allowed:
            return False
        if role not in hierarchy or hierarchy[role] > grantor_level:
            return False

    return True


def can_manage_user(
    caller_roles: Iterable[str],
    target_roles: Iterable[str],
    hierarchy: Dict[str, int] = ROLE_HIERARCHY,
) -> bool:
    """Caller must hold a role at least as high as the target's highest."""
    caller_level = highest_level(caller_roles, hierarchy)
    if caller_level is None:
        return False

    target_level = highest_level(target_roles, hierarchy)
    return target_level is None or caller_level >= target_level


@dataclass
class AccessContext:
    user: Optional[AuthenticatedUser]
    hierarchy: Dict[str, int] = field(default_factory=lambda: dict(ROLE_HIERARCHY))

    @property
    def roles(self) -> List[str]:
        return self.user.roles if self.user else []


AccessCheck = Callable[[AccessContext], None]


def authenticated() -> AccessCheck:
    def _check(context: AccessContext) -> None:
        if context.user is None:
            raise unauthorized("User not authenticated")

    return _check


def any_role(*required_roles: str) -> AccessCheck:
    """Membership check: the caller holds at least one of ``required_roles``."""

    def _check(context: AccessContext) -> None:
        if not has_any_role(context.roles, required_roles):
            raise forbidden(
                "You do not have the required role(s) to access this resource. "
                f"Required: {', '.join(required_roles)}"
            )

    return _check


def min_role(*required_roles: str) -> AccessCheck:
    """Threshold check: the caller's highest level reaches the lowest required level."""

    def _check(context: AccessContext) -> None:
        if not is_authorized(context.roles, required_roles, context.hierarchy):
            raise forbidden("Access denied. Insufficient role hierarchy level")

    return _check


def authorize(context: AccessContext, checks: List[AccessCheck]) -> None:
    """Run checks in order; the first failure raises."""
    for check in checks:
        check(context)


def require_access(*checks: AccessCheck) -> Callable:
    """FastAPI dependency factory: authenticates the caller, then runs ``checks``.

    Usage:
        @router.get("/users")
        async def list_users(
            current_user: AuthenticatedUser = Depends(
                require_access(any_role("ADMIN", "SUPER_ADMIN"))
            ),
        ):
    """

    async def _check(
        current_user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        context = AccessContext(user=current_user, hierarchy=await get_role_hierarchy())
        authorize(context, [authenticated(), *checks])
        return current_user

    return _check
