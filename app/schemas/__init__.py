"""
Pydantic schemas for API request/response validation.

These schemas provide:
- Input validation
- camelCase output serialization
- OpenAPI documentation generation
"""

from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    ChangePasswordRequest,
    SetupAdminRequest,
)
from app.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    RoleCreate,
    RoleResponse,
)
from app.schemas.audit import AuditLogResponse
from app.schemas.student import (
    StudentCreate,
    StudentUpdate,
    StudentResponse,
    TeacherCreate,
    TeacherUpdate,
    TeacherResponse,
    AssignUserRequest,
)
from app.schemas.course import (
    CourseCreate,
    CourseUpdate,
    CourseResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    GradeUpdate,
    AbsenceCreate,
    AbsenceResponse,
    CourseAbsenceRequest,
    AbsenceCount,
)
from app.schemas.setting import (
    SettingValue,
    SettingResponse,
    SemesterUpdate,
    SemesterResponse,
)
from app.schemas.common import (
    PaginatedResponse,
    MessageResponse,
)

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "ChangePasswordRequest",
    "SetupAdminRequest",
    # Users and roles
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "RoleCreate",
    "RoleResponse",
    # Audit
    "AuditLogResponse",
    # Students and teachers
    "StudentCreate",
    "StudentUpdate",
    "StudentResponse",
    "TeacherCreate",
    "TeacherUpdate",
    "TeacherResponse",
    "AssignUserRequest",
    # Courses
    "CourseCreate",
    "CourseUpdate",
    "CourseResponse",
    "EnrollmentCreate",
    "EnrollmentResponse",
    "GradeUpdate",
    "AbsenceCreate",
    "AbsenceResponse",
    "CourseAbsenceRequest",
    "AbsenceCount",
    # Settings
    "SettingValue",
    "SettingResponse",
    "SemesterUpdate",
    "SemesterResponse",
    # Common
    "PaginatedResponse",
    "MessageResponse",
]
