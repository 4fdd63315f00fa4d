from typing import List

from pydantic import BaseModel

from campus.models import UserStatus


class AuthenticatedUser(BaseModel):
    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    status: UserStatus = UserStatus.ACTIVE
    is_email_verified: bool = False
    roles: List[str] = []


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
