import hmac
from typing import Optional

from fastapi import Header

from campus.auth.jwt import decode_access_token, decode_refresh_token, fingerprint
from campus.auth.models import AuthenticatedUser
from campus.db.role import get_active_role_names
from campus.db.user import get_user_by_id
from campus.errors import unauthorized
from campus.models import User, UserStatus


def _extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise unauthorized("Invalid authorization header")

    token = authorization[7:].strip()  # Strip "Bearer "
    if not token:
        raise unauthorized("Invalid authorization header")
    return token


async def _load_active_user(payload: dict) -> User:
    """Re-resolve the token subject; a validly signed token is not enough
    once the account has been disabled or its email changed."""
    user = await get_user_by_id(int(payload["sub"]))
    if not user or user.email != payload.get("email"):
        raise unauthorized("User not found")

    if user.status != UserStatus.ACTIVE:
        raise unauthorized("User account is not active")

    return user


async def to_authenticated_user(user: User) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        status=user.status,
        is_email_verified=user.is_email_verified,
        roles=await get_active_role_names(user.id),
    )


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> AuthenticatedUser:
    """JWT access-token authentication dependency.

    Roles come from the store rather than the token's ``roles`` claim, so a
    revoked role stops working on the next request.
    """
    payload = decode_access_token(_extract_bearer_token(authorization))
    user = await _load_active_user(payload)
    return await to_authenticated_user(user)


async def get_refresh_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> AuthenticatedUser:
    """Refresh-token authentication dependency.

    The presented token must also be the latest one issued to the user;
    logout and password reset clear the stored fingerprint.
    """
    token = _extract_bearer_token(authorization)
    payload = decode_refresh_token(token)
    user = await _load_active_user(payload)

    if not user.refresh_token_hash or not hmac.compare_digest(
        user.refresh_token_hash, fingerprint(token)
    ):
        raise unauthorized("Invalid or expired refresh token")

    return await to_authenticated_user(user)


async def get_optional_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Optional[AuthenticatedUser]:
    """Like get_current_user, but anonymous requests resolve to None.

    A header that is present but invalid still fails with 401.
    """
    if authorization is None:
        return None
    return await get_current_user(authorization)
