"""
Enrollment endpoints.

Reading is open to Admin and Teacher; enrolling and removing a student
is Admin only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import AlreadyExists, NotFound
from app.core.utils import apply_filter, count_of, exists, get_or_404, paginate
from app.models.student import Student
from app.models.course import Course, Enrollment
from app.models.audit import AuditAction
from app.auth.audit import AuditLogService, get_audit_log
from app.auth.dependencies import get_current_principal
from app.auth.policy import Principal
from app.schemas.course import EnrollmentCreate, EnrollmentResponse
from app.schemas.common import MessageResponse, PaginatedResponse

router = APIRouter()


async def _remove(
    db: AsyncSession,
    audit: AuditLogService,
    actor: str,
    enrollment: Enrollment,
) -> MessageResponse:
    details = {
        "enrollmentId": enrollment.id,
        "studentId": enrollment.student_id,
        "courseId": enrollment.course_id,
        "finalGrade": enrollment.final_grade,
    }
    await db.delete(enrollment)
    await db.commit()

    await audit.record(actor, AuditAction.REMOVE_ENROLLMENT, details)

    return MessageResponse(message="Enrollment removed successfully")


async def _list_enrollments(
    db: AsyncSession,
    page: int,
    limit: int,
    student_id: Optional[int] = None,
    course_id: Optional[int] = None,
    semester: Optional[str] = None,
    graded: Optional[bool] = None,
) -> PaginatedResponse:
    query = select(Enrollment)
    count_query = count_of(Enrollment)

    if student_id is not None:
        query, count_query = apply_filter(query, count_query, Enrollment.student_id == student_id)
    if course_id is not None:
        query, count_query = apply_filter(query, count_query, Enrollment.course_id == course_id)
    if semester:
        in_semester = select(Course.id).where(Course.semester == semester)
        query, count_query = apply_filter(query, count_query, Enrollment.course_id.in_(in_semester))
    if graded is not None:
        condition = Enrollment.final_grade.is_not(None) if graded else Enrollment.final_grade.is_(None)
        query, count_query = apply_filter(query, count_query, condition)

    query = query.order_by(Enrollment.id)
    return await paginate(db, query, count_query, page, limit, EnrollmentResponse.model_validate)


@router.get("", response_model=PaginatedResponse[EnrollmentResponse])
async def list_enrollments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    student_id: Optional[int] = None,
    course_id: Optional[int] = None,
    semester: Optional[str] = None,
    graded: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    List enrollments.

    - student_id, course_id: exact match
    - semester: semester of the course
    - graded: true for enrollments with a final grade, false for those without
    """
    return await _list_enrollments(db, page, limit, student_id, course_id, semester, graded)


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    enrollment_data: EnrollmentCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Enroll a student in a course offering, at most once."""
    student = await get_or_404(db, Student, "Student", id=enrollment_data.student_id)
    course = await get_or_404(db, Course, "Course", id=enrollment_data.course_id)

    already = select(Enrollment.id).where(
        Enrollment.student_id == student.id,
        Enrollment.course_id == course.id,
    )
    if await exists(db, already):
        raise AlreadyExists("Student is already enrolled in this course")

    enrollment = Enrollment(student_id=student.id, course_id=course.id)
    db.add(enrollment)
    details = {
        "studentId": student.id,
        "studentName": student.full_name,
        "courseId": course.id,
        "courseCode": course.course_code,
        "semester": course.semester,
    }
    await db.commit()

    await audit.record(principal.username, AuditAction.CREATE_ENROLLMENT, details)

    return EnrollmentResponse.model_validate(enrollment)


@router.delete("", response_model=MessageResponse)
async def remove_enrollment(
    student_id: int,
    course_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Remove a student from a course."""
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
        )
    )
    enrollment = result.scalar_one_or_none()
    if enrollment is None:
        raise NotFound("Enrollment")

    return await _remove(db, audit, principal.username, enrollment)


@router.get("/student/{student_id}", response_model=PaginatedResponse[EnrollmentResponse])
async def list_enrollments_by_student(
    student_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await _list_enrollments(db, page, limit, student_id=student_id)


@router.get("/course/{course_id}", response_model=PaginatedResponse[EnrollmentResponse])
async def list_enrollments_by_course(
    course_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await _list_enrollments(db, page, limit, course_id=course_id)


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: int,
    db: AsyncSession = Depends(get_db),
):
    enrollment = await get_or_404(db, Enrollment, "Enrollment", id=enrollment_id)
    return EnrollmentResponse.model_validate(enrollment)


@router.delete("/{enrollment_id}", response_model=MessageResponse)
async def remove_enrollment_by_id(
    enrollment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    enrollment = await get_or_404(db, Enrollment, "Enrollment", id=enrollment_id)
    return await _remove(db, audit, principal.username, enrollment)
