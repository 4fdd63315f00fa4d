from campus.auth.dependencies import get_current_user, get_optional_user, get_refresh_user
from campus.auth.rbac import any_role, min_role, require_access
from campus.auth.models import AuthenticatedUser, TokenPair

__all__ = [
    "get_current_user",
    "get_optional_user",
    "get_refresh_user",
    "any_role",
    "min_role",
    "require_access",
    "AuthenticatedUser",
    "TokenPair",
]
