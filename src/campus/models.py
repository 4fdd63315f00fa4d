import re
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]"
)


def normalize_email(value: str) -> str:
    value = (value or "").strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def check_password_strength(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return value


class UserStatus(str, Enum):
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class RoleName(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    TEACHER = "TEACHER"
    MENTOR = "MENTOR"
    STUDENT = "STUDENT"


class Role(BaseModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    hierarchy_level: int
    is_active: bool = True


class User(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    password_hash: str
    status: UserStatus
    is_email_verified: bool = False
    email_verification_token: Optional[str] = None
    password_reset_token: Optional[str] = None
    password_reset_expires: Optional[datetime] = None
    refresh_token_hash: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    status: UserStatus
    is_email_verified: bool
    roles: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RegisterResponse(BaseModel):
    user: UserResponse
    message: str


class MessageResponse(BaseModel):
    message: str


EmailAddress = Annotated[str, AfterValidator(normalize_email)]
StrongPassword = Annotated[
    str, Field(min_length=8, max_length=128), AfterValidator(check_password_strength)
]


class RegisterRequest(BaseModel):
    email: EmailAddress
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    password: StrongPassword


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return (value or "").strip().lower()


class ForgotPasswordRequest(BaseModel):
    email: EmailAddress


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: StrongPassword


class VerifyEmailRequest(BaseModel):
    token: str = Field(min_length=1)


class CreateUserRequest(BaseModel):
    email: EmailAddress
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    password: StrongPassword


class UpdateUserStatusRequest(BaseModel):
    status: UserStatus


class UpdateUserRolesRequest(BaseModel):
    roles: List[RoleName] = Field(min_length=1)


class UpdateStudentProfileRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)


class CreateContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: Annotated[EmailAddress, Field(max_length=255)]
    message: str = Field(min_length=1)


class Contact(BaseModel):
    id: int
    name: str
    email: str
    message: str
    created_at: Optional[datetime] = None


class MediaType(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
    AUDIO = "AUDIO"
    OTHER = "OTHER"


class MediaStatus(str, Enum):
    UPLOADING = "UPLOADING"
    PROCESSING = "PROCESSING"
    READY = "READY"
    FAILED = "FAILED"
    DELETED = "DELETED"


class EntityType(str, Enum):
    USER = "USER"
    COURSE = "COURSE"
    LESSON = "LESSON"
    ASSIGNMENT = "ASSIGNMENT"
    POST = "POST"
    COMMENT = "COMMENT"
    OTHER = "OTHER"


class Media(BaseModel):
    id: int
    file_name: str
    original_name: str
    mime_type: str
    file_size: int
    type: MediaType
    status: MediaStatus
    s3_key: str
    s3_bucket: str
    s3_region: str
    s3_url: str
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    description: Optional[str] = None
    alt: Optional[str] = None
    uploaded_by_id: int
    uploaded_by_ip: Optional[str] = None
    is_public: bool = False
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class MediaQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    type: Optional[MediaType] = None
    status: Optional[MediaStatus] = None
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    sort_by: Literal["created_at", "file_name", "file_size", "type"] = "created_at"
    sort_order: Literal["ASC", "DESC"] = "DESC"


class MediaListResponse(BaseModel):
    data: List[Media]
    total: int
    page: int
    limit: int


class SignedUrlResponse(BaseModel):
    url: str
    expires_in: int
