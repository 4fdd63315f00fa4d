import hashlib
import uuid
from datetime import datetime, timezone, timedelta
from typing import List

import jwt

from campus.auth.constants import JWT_ALGORITHM, TOKEN_TYPE_ACCESS, TOKEN_TYPE_REFRESH
from campus.auth.models import TokenPair
from campus.errors import internal_error, unauthorized
from campus.settings import get_settings


def _get_secret(kind: str) -> str:
    settings = get_settings()
    secret = (
        settings.jwt_refresh_secret if kind == TOKEN_TYPE_REFRESH else settings.jwt_secret
    )
    if not secret:
        raise internal_error("JWT secret not configured")
    return secret


def create_access_token(user_id: int, email: str, roles: List[str]) -> str:
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=get_settings().access_token_expire_minutes)

    payload = {
        "sub": str(user_id),
        "email": email,
        "roles": list(roles),
        "type": TOKEN_TYPE_ACCESS,
        "iat": now,
        "exp": expires,
    }

    return jwt.encode(payload, _get_secret(TOKEN_TYPE_ACCESS), algorithm=JWT_ALGORITHM)


def create_refresh_token(user_id: int, email: str) -> str:
    now = datetime.now(timezone.utc)
    expires = now + timedelta(days=get_settings().refresh_token_expire_days)

    payload = {
        "sub": str(user_id),
        "email": email,
        "type": TOKEN_TYPE_REFRESH,
        # Two refresh tokens issued in the same second must still differ
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": expires,
    }

    return jwt.encode(payload, _get_secret(TOKEN_TYPE_REFRESH), algorithm=JWT_ALGORITHM)


def create_token_pair(user_id: int, email: str, roles: List[str]) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id, email, roles),
        refresh_token=create_refresh_token(user_id, email),
        expires_in=get_settings().access_token_expire_minutes * 60,
    )


def decode_token(token: str, kind: str = TOKEN_TYPE_ACCESS) -> dict:
    """Decode and verify a JWT of the given kind ("access" or "refresh").

    Returns the payload dict on success.
    Raises a 401 on expiry, bad signature, wrong type or missing subject.
    """
    try:
        payload = jwt.decode(token, _get_secret(kind), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise unauthorized("Invalid token")

    if payload.get("type") != kind:
        raise unauthorized("Invalid token type")

    if not payload.get("sub") or not str(payload["sub"]).isdigit():
        raise unauthorized("Invalid token payload")

    if not payload.get("email"):
        raise unauthorized("Invalid token payload")

    return payload


def decode_access_token(token: str) -> dict:
    return decode_token(token, TOKEN_TYPE_ACCESS)


def decode_refresh_token(token: str) -> dict:
    return decode_token(token, TOKEN_TYPE_REFRESH)


def fingerprint(token: str) -> str:
    """SHA-256 of a token; only this digest is ever stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
