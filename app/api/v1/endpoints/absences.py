"""
Absence endpoints.

Admin and Teacher. An absence is identified by (student, course, date);
there is no separate id.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import AlreadyExists, NotFound
from app.core.utils import apply_filter, count_of, get_or_404, paginate
from app.models.student import Student
from app.models.course import Absence, Course
from app.models.audit import AuditAction
from app.auth.audit import AuditLogService, get_audit_log
from app.auth.dependencies import get_current_principal
from app.auth.policy import Principal
from app.schemas.course import AbsenceCreate, AbsenceResponse, AbsenceCount
from app.schemas.common import MessageResponse, PaginatedResponse

router = APIRouter()


async def add_absence(
    db: AsyncSession,
    audit: AuditLogService,
    actor: str,
    student_id: int,
    course_id: int,
    on: date,
) -> Absence:
    """Record an absence. Shared with the per-course routes."""
    await get_or_404(db, Student, "Student", id=student_id)
    course = await get_or_404(db, Course, "Course", id=course_id)

    if await db.get(Absence, (student_id, course_id, on)) is not None:
        raise AlreadyExists("Absence record already exists for this date")

    absence = Absence(student_id=student_id, course_id=course_id, date=on)
    db.add(absence)
    course_code = course.course_code
    await db.commit()

    await audit.record(
        actor,
        AuditAction.ADD_ABSENCE,
        {"studentId": student_id, "courseId": course_id, "courseCode": course_code, "date": on.isoformat()},
    )
    return absence


async def remove_absence(
    db: AsyncSession,
    audit: AuditLogService,
    actor: str,
    student_id: int,
    course_id: int,
    on: date,
) -> None:
    absence = await db.get(Absence, (student_id, course_id, on))
    if absence is None:
        raise NotFound("Absence record")

    course = await db.get(Course, course_id)
    details = {
        "studentId": student_id,
        "courseId": course_id,
        "courseCode": course.course_code if course else "",
        "date": on.isoformat(),
    }

    await db.delete(absence)
    await db.commit()

    await audit.record(actor, AuditAction.REMOVE_ABSENCE, details)


@router.get("", response_model=PaginatedResponse[AbsenceResponse])
async def list_absences(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    student_id: Optional[int] = None,
    course_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
):
    """List absences, filtered by student, course and date range."""
    query = select(Absence)
    count_query = count_of(Absence)

    if student_id is not None:
        query, count_query = apply_filter(query, count_query, Absence.student_id == student_id)
    if course_id is not None:
        query, count_query = apply_filter(query, count_query, Absence.course_id == course_id)
    if date_from is not None:
        query, count_query = apply_filter(query, count_query, Absence.date >= date_from)
    if date_to is not None:
        query, count_query = apply_filter(query, count_query, Absence.date <= date_to)

    query = query.order_by(Absence.student_id, Absence.course_id, Absence.date)
    return await paginate(db, query, count_query, page, limit, AbsenceResponse.model_validate)


@router.post("", response_model=AbsenceResponse, status_code=status.HTTP_201_CREATED)
async def create_absence(
    absence_data: AbsenceCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    absence = await add_absence(
        db, audit, principal.username,
        absence_data.student_id, absence_data.course_id, absence_data.date,
    )
    return AbsenceResponse.model_validate(absence)


@router.delete("", response_model=MessageResponse)
async def delete_absence(
    student_id: int,
    course_id: int,
    on: date = Query(..., alias="date"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    await remove_absence(db, audit, principal.username, student_id, course_id, on)
    return MessageResponse(message="Absence removed successfully")


@router.get("/count", response_model=AbsenceCount)
async def count_absences(
    student_id: int,
    course_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Number of absences of a student in a course."""
    condition = (Absence.student_id == student_id) & (Absence.course_id == course_id)
    result = await db.execute(count_of(Absence).where(condition))
    return AbsenceCount(student_id=student_id, course_id=course_id, count=result.scalar() or 0)
