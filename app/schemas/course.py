"""
Course, enrollment and absence schemas.
"""

from typing import Any, Optional
import datetime as dt
from datetime import datetime
from pydantic import Field, field_validator

from app.models.course import CourseStatus
from app.schemas.common import CamelModel, reject_null, strip_text


# =============================================================================
# Courses
# =============================================================================

class CourseBase(CamelModel):
    course_code: str = Field(min_length=1, max_length=50)
    section: str = Field(min_length=1, max_length=10)
    course_name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    credit: Optional[int] = Field(default=None, ge=0, le=60)
    department: Optional[str] = Field(default=None, max_length=150)
    semester: str = Field(min_length=1, max_length=50)
    teacher_id: Optional[int] = None
    status: CourseStatus = CourseStatus.ACTIVE

    @field_validator("section", "course_name", "semester")
    @classmethod
    def strip_required(cls, v: str) -> str:
        return strip_text(v)

    @field_validator("course_code")
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return strip_text(v).upper()


class CourseCreate(CourseBase):
    """Schema for creating a course offering."""


class CourseUpdate(CamelModel):
    """Partial course update. Omitted fields are left unchanged."""

    course_code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    section: Optional[str] = Field(default=None, min_length=1, max_length=10)
    course_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    credit: Optional[int] = Field(default=None, ge=0, le=60)
    department: Optional[str] = Field(default=None, max_length=150)
    semester: Optional[str] = Field(default=None, min_length=1, max_length=50)
    teacher_id: Optional[int] = None
    status: Optional[CourseStatus] = None

    @field_validator("course_code", "section", "course_name", "semester", "status")
    @classmethod
    def required_columns(cls, v: Any) -> Any:
        return reject_null(v)

    @field_validator("section", "course_name", "semester")
    @classmethod
    def strip_required(cls, v: str) -> str:
        return strip_text(v)

    @field_validator("course_code")
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return strip_text(v).upper()


class CourseResponse(CourseBase):
    id: int
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Enrollments
# =============================================================================

class EnrollmentCreate(CamelModel):
    student_id: int
    course_id: int


class EnrollmentResponse(CamelModel):
    id: int
    student_id: int
    course_id: int
    final_grade: Optional[str] = None
    enrolled_at: datetime
    updated_at: datetime


class GradeUpdate(CamelModel):
    """Final grade for a student in a course; null clears it."""

    final_grade: Optional[str] = Field(default=None, max_length=10)


# =============================================================================
# Absences
# =============================================================================

class AbsenceCreate(CamelModel):
    student_id: int
    course_id: int
    date: dt.date


class AbsenceResponse(CamelModel):
    student_id: int
    course_id: int
    date: dt.date


class CourseAbsenceRequest(CamelModel):
    """Absence for a student, within a course given by the path."""

    student_id: int
    date: dt.date


class AbsenceCount(CamelModel):
    student_id: int
    course_id: int
    count: int
