"""
API Router configuration.

Aggregates all API endpoints with proper tagging and prefixes. Access
rules live in the route policy (app.auth.policy), keyed on these paths.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    users,
    roles,
    logs,
    students,
    teachers,
    courses,
    enrollments,
    absences,
    settings,
)

api_router = APIRouter()

# Authentication (login, logout and setup-admin are public)
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["authentication"]
)

# Administration (admin only)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)

api_router.include_router(
    roles.router,
    prefix="/roles",
    tags=["roles"]
)

api_router.include_router(
    logs.router,
    prefix="/logs",
    tags=["logs"]
)

# Academic records (admin and teacher)
api_router.include_router(
    students.router,
    prefix="/students",
    tags=["students"]
)

api_router.include_router(
    teachers.router,
    prefix="/teachers",
    tags=["teachers"]
)

api_router.include_router(
    courses.router,
    prefix="/courses",
    tags=["courses"]
)

api_router.include_router(
    enrollments.router,
    prefix="/enrollments",
    tags=["enrollments"]
)

api_router.include_router(
    absences.router,
    prefix="/absences",
    tags=["absences"]
)

# Settings (read: admin and teacher, write: admin)
api_router.include_router(
    settings.router,
    prefix="/settings",
    tags=["settings"]
)
