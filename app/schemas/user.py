"""
User and role schemas.
"""

from typing import Optional
from datetime import datetime
from pydantic import Field, EmailStr, field_validator

from app.auth.roles import normalize_role_name
from app.models.user import User, UserStatus
from app.schemas.common import CamelModel, strip_text


class UserBase(CamelModel):
    """Base user fields."""

    username: str = Field(min_length=1, max_length=100, description="Login name")
    email: EmailStr = Field(description="User email address")

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return strip_text(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower().strip()


class UserCreate(UserBase):
    """Schema for creating a new user."""

    password: str = Field(min_length=1, max_length=128)
    role_id: int = Field(description="Role assigned to the user")
    status: UserStatus = UserStatus.ACTIVE


class UserUpdate(CamelModel):
    """Schema for updating a user. Omitted fields are left unchanged."""

    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=1, max_length=128)
    role_id: Optional[int] = None
    status: Optional[UserStatus] = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: Optional[str]) -> Optional[str]:
        return strip_text(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.lower().strip()


class UserResponse(CamelModel):
    """Identity summary. Never carries the password hash."""

    id: int
    username: str
    email: str
    role_name: Optional[str] = None
    status: UserStatus
    created_at: datetime
    updated_at: datetime


def user_to_response(user: User) -> UserResponse:
    """Convert User model to UserResponse schema."""
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        role_name=user.role_name,
        status=user.status,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


# =============================================================================
# Roles
# =============================================================================

class RoleCreate(CamelModel):
    name: str = Field(min_length=1, max_length=50)

    @field_validator("name")
    @classmethod
    def canonical_name(cls, v: str) -> str:
        name = normalize_role_name(v)
        if name is None:
            raise ValueError("Role name must not be blank")
        return name


class RoleResponse(CamelModel):
    id: int
    name: str
