"""
Student and teacher schemas.
"""

from typing import Any, Optional
from datetime import date, datetime
from pydantic import Field, EmailStr, field_validator

from app.models.student import StudentStatus
from app.schemas.common import CamelModel, reject_null, strip_text


# =============================================================================
# Students
# =============================================================================

class StudentBase(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=20)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    department: Optional[str] = Field(default=None, max_length=150)
    program: Optional[str] = Field(default=None, max_length=100)
    enrollment_year: int = Field(ge=1900, le=2100)
    status: StudentStatus = StudentStatus.ACTIVE

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return strip_text(v)


class StudentCreate(StudentBase):
    """Schema for creating a student."""


class StudentUpdate(CamelModel):
    """Partial student update. Omitted fields are left unchanged."""

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=20)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    department: Optional[str] = Field(default=None, max_length=150)
    program: Optional[str] = Field(default=None, max_length=100)
    enrollment_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    status: Optional[StudentStatus] = None

    @field_validator("first_name", "last_name", "enrollment_year", "status")
    @classmethod
    def required_columns(cls, v: Any) -> Any:
        return reject_null(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return strip_text(v)


class StudentResponse(StudentBase):
    id: int
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Teachers
# =============================================================================

class TeacherBase(CamelModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    department: Optional[str] = Field(default=None, max_length=150)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return strip_text(v)


class TeacherCreate(TeacherBase):
    """Schema for creating a teacher."""


class TeacherUpdate(TeacherBase):
    """Partial teacher update. Omitted fields are left unchanged."""


class TeacherResponse(TeacherBase):
    id: int
    email: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class AssignUserRequest(CamelModel):
    """Link a login account to a teacher record."""

    user_id: int
