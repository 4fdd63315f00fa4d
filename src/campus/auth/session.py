"""
Account lifecycle: registration, login, email verification, password reset,
token refresh and logout.

Users move PENDING_VERIFICATION -> ACTIVE on email verification or password
reset. Admins may later set INACTIVE or SUSPENDED, which blocks login, refresh
and every protected route.
"""

from datetime import datetime, timedelta, timezone
from typing import List

from campus.auth.constants import DEFAULT_REGISTRATION_ROLE
from campus.auth.jwt import create_token_pair, fingerprint
from campus.auth.models import AuthenticatedUser, TokenPair
from campus.auth.passwords import (
    generate_single_use_token,
    hash_password,
    verify_password,
)
from campus.db.role import get_active_role_names
from campus.db.user import (
    EmailAlreadyRegisteredError,
    consume_email_verification_token,
    consume_password_reset_token,
    create_user,
    get_user_by_email,
    get_user_by_id,
    get_user_by_password_reset_token,
    get_user_by_verification_token,
    update_user,
)
from campus.errors import bad_request, conflict, not_found, unauthorized
from campus.models import (
    AuthResponse,
    MessageResponse,
    RegisterResponse,
    User,
    UserResponse,
    UserStatus,
)
from campus.settings import get_settings
from campus.utils.email import (
    dispatch,
    send_email_verification,
    send_password_reset,
    send_welcome_email,
)
from campus.utils.logging import logger

REGISTRATION_MESSAGE = (
    "Registration successful. Please check your email to verify your account."
)
FORGOT_PASSWORD_MESSAGE = "If the email exists, a password reset link has been sent."


def get_full_name(first_name: str, last_name: str) -> str:
    return f"{first_name} {last_name}"


def to_user_response(user: User, roles: List[str]) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        full_name=get_full_name(user.first_name, user.last_name),
        status=user.status,
        is_email_verified=user.is_email_verified,
        roles=roles,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


async def _issue_tokens(user: User, roles: List[str]) -> TokenPair:
    tokens = create_token_pair(user.id, user.email, roles)
    await update_user(user.id, refresh_token_hash=fingerprint(tokens.refresh_token))
    return tokens


def _auth_response(tokens: TokenPair, user: User, roles: List[str]) -> AuthResponse:
    return AuthResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
        user=to_user_response(user, roles),
    )


async def register(
    email: str, first_name: str, last_name: str, password: str
) -> RegisterResponse:
    if await get_user_by_email(email):
        raise conflict("User with this email already exists")

    verification_token = generate_single_use_token()

    try:
        user = await create_user(
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=hash_password(password),
            status=UserStatus.PENDING_VERIFICATION,
            is_email_verified=False,
            email_verification_token=verification_token,
            role_names=[DEFAULT_REGISTRATION_ROLE],
        )
    except EmailAlreadyRegisteredError:
        raise conflict("User with this email already exists")

    dispatch(
        send_email_verification(user.email, verification_token),
        f"verification email for user {user.id}",
    )

    logger.info(f"User registered: {user.id}")

    return RegisterResponse(
        user=to_user_response(user, [DEFAULT_REGISTRATION_ROLE]),
        message=REGISTRATION_MESSAGE,
    )


async def login(email: str, password: str) -> AuthResponse:
    user = await get_user_by_email(email)

    # Always verify, even for unknown emails, so timing does not leak existence
    password_ok = verify_password(password, user.password_hash if user else None)

    if not user or not password_ok:
        raise unauthorized("Invalid credentials")

    if user.status != UserStatus.ACTIVE:
        raise unauthorized("Account is not active")

    await update_user(user.id, last_login_at=datetime.now(timezone.utc))

    roles = await get_active_role_names(user.id)
    tokens = await _issue_tokens(user, roles)

    logger.info(f"User logged in: {user.id}")

    return _auth_response(tokens, user, roles)


async def refresh_tokens(user_id: int, email: str) -> AuthResponse:
    user = await get_user_by_id(user_id)

    if not user or user.email != email or user.status != UserStatus.ACTIVE:
        raise unauthorized("User not found or inactive")

    # Roles are re-read so revocations take effect at the next refresh
    roles = await get_active_role_names(user.id)
    tokens = await _issue_tokens(user, roles)

    return _auth_response(tokens, user, roles)


async def verify_email(token: str) -> MessageResponse:
    user = await get_user_by_verification_token(token)

    if not user:
        raise bad_request("Invalid verification token")

    if user.is_email_verified:
        raise bad_request("Email is already verified")

    if not await consume_email_verification_token(user.id, token):
        raise bad_request("Invalid verification token")

    dispatch(
        send_welcome_email(user.email, user.first_name),
        f"welcome email for user {user.id}",
    )

    logger.info(f"Email verified for user: {user.id}")

    return MessageResponse(message="Email verified successfully")


async def forgot_password(email: str) -> MessageResponse:
    user = await get_user_by_email(email)

    if not user:
        # Same answer either way so the endpoint cannot be used to discover accounts
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    reset_token = generate_single_use_token()
    expires = datetime.now(timezone.utc) + timedelta(
        minutes=get_settings().password_reset_expire_minutes
    )

    await update_user(
        user.id, password_reset_token=reset_token, password_reset_expires=expires
    )

    dispatch(
        send_password_reset(user.email, reset_token),
        f"password reset email for user {user.id}",
    )

    logger.info(f"Password reset requested for user: {user.id}")

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


def _is_expired(expires_at: datetime | None) -> bool:
    if expires_at is None:
        return True
    if expires_at.tzinfo is None:
        # Stored as UTC without an offset
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= datetime.now(timezone.utc)


async def reset_password(token: str, new_password: str) -> MessageResponse:
    user = await get_user_by_password_reset_token(token)

    if not user or _is_expired(user.password_reset_expires):
        raise bad_request("Invalid or expired reset token")

    consumed = await consume_password_reset_token(
        user.id,
        token,
        hash_password(new_password),
        activate=user.status == UserStatus.PENDING_VERIFICATION,
    )
    if not consumed:
        raise bad_request("Invalid or expired reset token")

    logger.info(f"Password reset successful for user: {user.id}")

    return MessageResponse(message="Password has been reset successfully")


async def resend_verification(email: str) -> MessageResponse:
    user = await get_user_by_email(email)

    if not user:
        raise not_found("User not found")

    if user.is_email_verified:
        raise bad_request("Email is already verified")

    verification_token = generate_single_use_token()
    await update_user(user.id, email_verification_token=verification_token)

    dispatch(
        send_email_verification(user.email, verification_token),
        f"verification email for user {user.id}",
    )

    logger.info(f"Verification email resent to user: {user.id}")

    return MessageResponse(message="Verification email has been sent")


async def logout(user_id: int) -> MessageResponse:
    # Access tokens stay valid until expiry; the refresh token stops working now
    await update_user(user_id, refresh_token_hash=None)

    logger.info(f"User logged out: {user_id}")

    return MessageResponse(message="Logout successful")


async def get_profile(current_user: AuthenticatedUser) -> UserResponse:
    user = await get_user_by_id(current_user.id)
    if not user:
        raise not_found("User not found")
    return to_user_response(user, current_user.roles)
