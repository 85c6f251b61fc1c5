"""
Course endpoints.

Admin and Teacher. A course offering is unique per (code, semester,
section). Grades and absences are managed through the course they
belong to.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import AlreadyExists, Conflict, NotFound
from app.core.utils import apply_filter, apply_search_filter, count_of, exists, get_or_404, paginate
from app.models.student import Teacher
from app.models.course import Absence, Course, CourseStatus, Enrollment
from app.models.audit import AuditAction
from app.auth.audit import AuditLogService, get_audit_log
from app.auth.dependencies import get_current_principal
from app.auth.policy import Principal
from app.api.v1.endpoints.absences import add_absence, remove_absence
from app.schemas.course import (
    CourseCreate,
    CourseUpdate,
    CourseResponse,
    CourseAbsenceRequest,
    AbsenceResponse,
    EnrollmentResponse,
    GradeUpdate,
)
from app.schemas.common import MessageResponse, PaginatedResponse

router = APIRouter()


async def _ensure_offering_free(
    db: AsyncSession,
    course_code: str,
    semester: str,
    section: str,
    exclude_id: Optional[int] = None,
) -> None:
    query = select(Course.id).where(
        Course.course_code == course_code,
        Course.semester == semester,
        Course.section == section,
    )
    if exclude_id is not None:
        query = query.where(Course.id != exclude_id)
    if await exists(db, query):
        raise AlreadyExists("Course offering already exists for this semester and section")


# =============================================================================
# Course CRUD
# =============================================================================

@router.get("", response_model=PaginatedResponse[CourseResponse])
async def list_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    name: Optional[str] = None,
    department: Optional[str] = None,
    semester: Optional[str] = None,
    teacher_id: Optional[int] = None,
    status_filter: Optional[CourseStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    """
    List courses with pagination and filtering.

    - name: substring of course name or code
    - department, semester, teacher_id, status: exact match
    """
    query = select(Course)
    count_query = count_of(Course)

    query, count_query = apply_search_filter(
        query, count_query, name,
        Course.course_name, Course.course_code,
    )
    if department:
        query, count_query = apply_filter(query, count_query, Course.department == department)
    if semester:
        query, count_query = apply_filter(query, count_query, Course.semester == semester)
    if teacher_id is not None:
        query, count_query = apply_filter(query, count_query, Course.teacher_id == teacher_id)
    if status_filter is not None:
        query, count_query = apply_filter(query, count_query, Course.status == status_filter)

    query = query.order_by(Course.course_code, Course.section, Course.id)
    return await paginate(db, query, count_query, page, limit, CourseResponse.model_validate)


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    await _ensure_offering_free(db, course_data.course_code, course_data.semester, course_data.section)
    if course_data.teacher_id is not None:
        await get_or_404(db, Teacher, "Teacher", id=course_data.teacher_id)

    course = Course(**course_data.model_dump())
    db.add(course)
    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.CREATE_COURSE,
        {
            "courseId": course.id,
            "courseCode": course.course_code,
            "section": course.section,
            "semester": course.semester,
        },
    )

    return CourseResponse.model_validate(course)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int,
    db: AsyncSession = Depends(get_db),
):
    course = await get_or_404(db, Course, "Course", id=course_id)
    return CourseResponse.model_validate(course)


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    course_data: CourseUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    course = await get_or_404(db, Course, "Course", id=course_id)
    update_data = course_data.model_dump(exclude_unset=True)

    offering = {
        "course_code": update_data.get("course_code", course.course_code),
        "semester": update_data.get("semester", course.semester),
        "section": update_data.get("section", course.section),
    }
    await _ensure_offering_free(db, exclude_id=course.id, **offering)

    if update_data.get("teacher_id") is not None:
        await get_or_404(db, Teacher, "Teacher", id=update_data["teacher_id"])

    for field, value in update_data.items():
        setattr(course, field, value)

    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.UPDATE_COURSE,
        {"courseId": course.id, "courseCode": course.course_code, "fields": sorted(update_data)},
    )

    return CourseResponse.model_validate(course)


@router.delete("/{course_id}", response_model=MessageResponse)
async def delete_course(
    course_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Fails with 409 while enrollments or absences exist for the course."""
    course = await get_or_404(db, Course, "Course", id=course_id)

    if await exists(db, select(Enrollment.id).where(Enrollment.course_id == course.id)):
        raise Conflict("Course has enrollments")
    if await exists(db, select(Absence.course_id).where(Absence.course_id == course.id)):
        raise Conflict("Course has absences")

    details = {"courseId": course.id, "courseCode": course.course_code, "semester": course.semester}
    await db.delete(course)
    await db.commit()

    await audit.record(principal.username, AuditAction.DELETE_COURSE, details)

    return MessageResponse(message="Course deleted successfully")


# =============================================================================
# Per-course records
# =============================================================================

@router.get("/{course_id}/enrollments", response_model=PaginatedResponse[EnrollmentResponse])
async def list_course_enrollments(
    course_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    await get_or_404(db, Course, "Course", id=course_id)

    condition = Enrollment.course_id == course_id
    query = select(Enrollment).where(condition).order_by(Enrollment.id)
    count_query = count_of(Enrollment).where(condition)
    return await paginate(db, query, count_query, page, limit, EnrollmentResponse.model_validate)


@router.get("/{course_id}/absences", response_model=PaginatedResponse[AbsenceResponse])
async def list_course_absences(
    course_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    await get_or_404(db, Course, "Course", id=course_id)

    condition = Absence.course_id == course_id
    query = select(Absence).where(condition).order_by(Absence.student_id, Absence.date)
    count_query = count_of(Absence).where(condition)
    return await paginate(db, query, count_query, page, limit, AbsenceResponse.model_validate)


@router.put("/{course_id}/students/{student_id}/grade", response_model=EnrollmentResponse)
async def update_student_grade(
    course_id: int,
    student_id: int,
    grade_data: GradeUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    """Set a student's final grade. The student must be enrolled."""
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.course_id == course_id,
            Enrollment.student_id == student_id,
        )
    )
    enrollment = result.scalar_one_or_none()
    if enrollment is None:
        raise NotFound("Enrollment")

    old_grade = enrollment.final_grade
    enrollment.final_grade = grade_data.final_grade
    await db.commit()

    await audit.record(
        principal.username,
        AuditAction.UPDATE_GRADE,
        {
            "studentId": student_id,
            "courseId": course_id,
            "oldGrade": old_grade,
            "newGrade": grade_data.final_grade,
        },
    )

    return EnrollmentResponse.model_validate(enrollment)


@router.post("/{course_id}/absences", response_model=AbsenceResponse, status_code=status.HTTP_201_CREATED)
async def add_course_absence(
    course_id: int,
    absence_data: CourseAbsenceRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    absence = await add_absence(
        db, audit, principal.username,
        absence_data.student_id, course_id, absence_data.date,
    )
    return AbsenceResponse.model_validate(absence)


@router.delete("/{course_id}/absences", response_model=MessageResponse)
async def remove_course_absence(
    course_id: int,
    student_id: int,
    on: date = Query(..., alias="date"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    audit: AuditLogService = Depends(get_audit_log),
):
    await remove_absence(db, audit, principal.username, student_id, course_id, on)
    return MessageResponse(message="Absence removed successfully")
