from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from campus.auth import session
from campus.auth.dependencies import get_current_user, get_refresh_user
from campus.auth.models import AuthenticatedUser
from campus.models import (
    AuthResponse,
    EmailAddress,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    UserResponse,
    VerifyEmailRequest,
)

router = APIRouter()


@router.post(
    "/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse
)
async def register(request: RegisterRequest) -> RegisterResponse:
    return await session.register(
        request.email, request.first_name, request.last_name, request.password
    )


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest) -> AuthResponse:
    return await session.login(request.email, request.password)


@router.post("/refresh", response_model=AuthResponse)
async def refresh_tokens(
    current_user: AuthenticatedUser = Depends(get_refresh_user),
) -> AuthResponse:
    """Exchange a refresh token (sent as the bearer token) for a new pair."""
    return await session.refresh_tokens(current_user.id, current_user.email)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest) -> MessageResponse:
    return await session.forgot_password(request.email)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest) -> MessageResponse:
    return await session.reset_password(request.token, request.password)


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(request: VerifyEmailRequest) -> MessageResponse:
    return await session.verify_email(request.token)


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    email: Annotated[EmailAddress, Query()],
) -> MessageResponse:
    return await session.resend_verification(email)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> UserResponse:
    return await session.get_profile(current_user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> MessageResponse:
    return await session.logout(current_user.id)
