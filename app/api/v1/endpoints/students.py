"""
Student management endpoints.

Admin and Teacher (enforced by the route policy).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import AlreadyExists, Conflict
from app.core.utils import apply_filter, apply_search_filter, count_of, exists, get_or_404, paginate
from app.models.student import Student, StudentStatus
from app.models.course import Absence, Enrollment
from app.models.audit import AuditAction
from app.auth.audit import AuditLogService, get_audit_log
from app.auth.dependencies import get_current_principal
from app.auth.policy import Principal
from app.schemas.student import StudentCreate, StudentUpdate, StudentResponse
from app.schemas.course import AbsenceResponse, EnrollmentResponse
from app.schemas.common import MessageResponse, PaginatedResponse

router = APIRouter()


async def _ensure_email_free(db: AsyncSession, email: Optional[str], exclude_id: Optional[int] = None):
    if not email:
        return
    query = select(Student.id).where(Student.email == email)
    if exclude_id is not None:
        query = query.where(Student.id != exclude_id)
    if await exists(db, query):
        raise AlreadyExists("Student email already exists")


# =============================================================================
# Student CRUD
# =============================================================================

@router.get("", response_model=PaginatedResponse[StudentResponse])
async def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    name: Optional[str] = None,
    department: Optional[str] = None,
    enrollment_year: Optional[int] = None,
    status_filter: Optional[StudentStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    """
    List students with pagination and filtering.

    - name: substring of first or last name
    - department: exact match
    - enrollment_year, status: exact match
    """
    query = select(Student)
    count_query = count_of(Student)

    query, count_query = apply_search_filter(
        query, count_query, name,
        Student.first_name, Student.last_name,
    )
    if department:
        query, count_query = apply_filter(query, count_query, Student.department == department)
    if enrollment_year is not None:
        query, count_query = apply_filter(query, count_query, Student.enrollment_year == enrollment_year)
    if status_filter is not None:
        query, count_query = apply_filter(query, count_query, Student.status == status_filter)

    query = query.order_by(Student.last_name, Student.first_name, Student.id)
    return await paginate(db, query, count_query, page, limit, StudentResponse.model_validate)


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Create a student record."""
    await _ensure_email_free(db, student_data.email)

    student = Student(**student_data.model_dump())
    db.add(student)
    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.CREATE_STUDENT,
        {"studentId": student.id, "name": student.full_name, "department": student.department},
    )

    return StudentResponse.model_validate(student)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    student = await get_or_404(db, Student, "Student", id=student_id)
    return StudentResponse.model_validate(student)


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: int,
    student_data: StudentUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Update a student. Omitted fields are left unchanged."""
    student = await get_or_404(db, Student, "Student", id=student_id)

    update_data = student_data.model_dump(exclude_unset=True)
    if update_data.get("email"):
        await _ensure_email_free(db, update_data["email"], exclude_id=student.id)

    for field, value in update_data.items():
        setattr(student, field, value)

    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.UPDATE_STUDENT,
        {"studentId": student.id, "fields": sorted(update_data)},
    )

    return StudentResponse.model_validate(student)


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Fails with 409 while enrollments or absences reference the student."""
    student = await get_or_404(db, Student, "Student", id=student_id)

    if await exists(db, select(Enrollment.id).where(Enrollment.student_id == student.id)):
        raise Conflict("Student has enrollments")
    if await exists(db, select(Absence.student_id).where(Absence.student_id == student.id)):
        raise Conflict("Student has absences")

    details = {"studentId": student.id, "name": student.full_name}
    await db.delete(student)
    await db.commit()

    await audit.record(principal.username, AuditAction.DELETE_STUDENT, details)

    return MessageResponse(message="Student deleted successfully")


# =============================================================================
# Per-student records
# =============================================================================

@router.get("/{student_id}/enrollments", response_model=PaginatedResponse[EnrollmentResponse])
async def list_student_enrollments(
    student_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    await get_or_404(db, Student, "Student", id=student_id)

    condition = Enrollment.student_id == student_id
    query = select(Enrollment).where(condition).order_by(Enrollment.id)
    count_query = count_of(Enrollment).where(condition)
    return await paginate(db, query, count_query, page, limit, EnrollmentResponse.model_validate)


@router.get("/{student_id}/absences", response_model=PaginatedResponse[AbsenceResponse])
async def list_student_absences(
    student_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    await get_or_404(db, Student, "Student", id=student_id)

    condition = Absence.student_id == student_id
    query = select(Absence).where(condition).order_by(Absence.date.desc(), Absence.course_id)
    count_query = count_of(Absence).where(condition)
    return await paginate(db, query, count_query, page, limit, AbsenceResponse.model_validate)
