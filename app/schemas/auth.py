"""
Authentication-related schemas.
"""

from pydantic import Field, EmailStr, field_validator

from app.schemas.common import CamelModel
from app.schemas.user import UserResponse


class LoginRequest(CamelModel):
    """Login request with username and password."""

    username: str = Field(min_length=1, max_length=100, description="Login name")
    password: str = Field(min_length=1, max_length=128, description="User password")


class LoginResponse(CamelModel):
    """Login response: bearer token plus the identity summary."""

    token: str = Field(description="JWT access token")
    user: UserResponse


class ChangePasswordRequest(CamelModel):
    """Request to change the caller's own password."""

    old_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=1, max_length=128)


class SetupAdminRequest(CamelModel):
    """First-run administrator bootstrap."""

    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower().strip()
