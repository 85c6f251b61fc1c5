"""
Teacher management endpoints.

Admin and Teacher (enforced by the route policy). A teacher record may be
linked to one login account.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import AlreadyExists, Conflict, NotFound
from app.core.utils import apply_filter, apply_search_filter, count_of, exists, get_or_404, paginate
from app.models.student import Teacher
from app.models.course import Course
from app.models.user import User
from app.models.audit import AuditAction
from app.auth.audit import AuditLogService, get_audit_log
from app.auth.dependencies import get_current_principal
from app.auth.policy import Principal
from app.schemas.student import (
    TeacherCreate,
    TeacherUpdate,
    TeacherResponse,
    AssignUserRequest,
)
from app.schemas.common import MessageResponse, PaginatedResponse

router = APIRouter()


# =============================================================================
# Teacher CRUD
# =============================================================================

@router.get("", response_model=PaginatedResponse[TeacherResponse])
async def list_teachers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    name: Optional[str] = None,
    department: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """List teachers, optionally by name substring and department."""
    query = select(Teacher)
    count_query = count_of(Teacher)

    query, count_query = apply_search_filter(
        query, count_query, name,
        Teacher.first_name, Teacher.last_name,
    )
    if department:
        query, count_query = apply_filter(query, count_query, Teacher.department == department)

    query = query.order_by(Teacher.id)
    return await paginate(db, query, count_query, page, limit, TeacherResponse.model_validate)


@router.post("", response_model=TeacherResponse, status_code=status.HTTP_201_CREATED)
async def create_teacher(
    teacher_data: TeacherCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    teacher = Teacher(**teacher_data.model_dump())
    db.add(teacher)
    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.CREATE_TEACHER,
        {"teacherId": teacher.id, "name": teacher.full_name, "department": teacher.department},
    )

    return TeacherResponse.model_validate(teacher)


@router.get("/{teacher_id}", response_model=TeacherResponse)
async def get_teacher(
    teacher_id: int,
    db: AsyncSession = Depends(get_db),
):
    teacher = await get_or_404(db, Teacher, "Teacher", id=teacher_id)
    return TeacherResponse.model_validate(teacher)


@router.put("/{teacher_id}", response_model=TeacherResponse)
async def update_teacher(
    teacher_id: int,
    teacher_data: TeacherUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    teacher = await get_or_404(db, Teacher, "Teacher", id=teacher_id)

    update_data = teacher_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(teacher, field, value)

    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.UPDATE_TEACHER,
        {"teacherId": teacher.id, "fields": sorted(update_data)},
    )

    return TeacherResponse.model_validate(teacher)


@router.delete("/{teacher_id}", response_model=MessageResponse)
async def delete_teacher(
    teacher_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Fails with 409 while courses are taught by the teacher."""
    teacher = await get_or_404(db, Teacher, "Teacher", id=teacher_id)

    if await exists(db, select(Course.id).where(Course.teacher_id == teacher.id)):
        raise Conflict("Teacher is assigned to courses")

    details = {"teacherId": teacher.id, "name": teacher.full_name}
    await db.delete(teacher)
    await db.commit()

    await audit.record(principal.username, AuditAction.DELETE_TEACHER, details)

    return MessageResponse(message="Teacher deleted successfully")


# =============================================================================
# Login account link
# =============================================================================

@router.put("/{teacher_id}/user", response_model=TeacherResponse)
async def assign_user(
    teacher_id: int,
    assignment: AssignUserRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Link a user account. A user can belong to at most one teacher."""
    teacher = await get_or_404(db, Teacher, "Teacher", id=teacher_id)
    user = await get_or_404(db, User, "User", id=assignment.user_id)

    linked = select(Teacher.id).where(Teacher.user_id == user.id, Teacher.id != teacher.id)
    if await exists(db, linked):
        raise AlreadyExists("User is already assigned to another teacher")

    teacher.user_id = user.id
    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.ASSIGN_USER_TO_TEACHER,
        {"teacherId": teacher.id, "userId": user.id, "username": user.username},
    )

    return TeacherResponse.model_validate(teacher)


@router.delete("/{teacher_id}/user", response_model=TeacherResponse)
async def revoke_user(
    teacher_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    teacher = await get_or_404(db, Teacher, "Teacher", id=teacher_id)
    if teacher.user_id is None:
        raise NotFound(message="Teacher has no assigned user")

    previous_user_id = teacher.user_id
    teacher.user_id = None
    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.REVOKE_USER_FROM_TEACHER,
        {"teacherId": teacher.id, "userId": previous_user_id},
    )

    return TeacherResponse.model_validate(teacher)
