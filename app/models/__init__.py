"""
Student Registry Database Models

This module exports all SQLAlchemy models for the application.
"""

from app.models.user import User, UserStatus, Role
from app.models.audit import AuditLog, AuditAction
from app.models.student import Student, StudentStatus, Teacher
from app.models.course import Course, CourseStatus, Enrollment, Absence
from app.models.setting import Setting

__all__ = [
    # User models
    "User",
    "UserStatus",
    "Role",
    # Audit models
    "AuditLog",
    "AuditAction",
    # People
    "Student",
    "StudentStatus",
    "Teacher",
    # Courses
    "Course",
    "CourseStatus",
    "Enrollment",
    "Absence",
    # Settings
    "Setting",
]
