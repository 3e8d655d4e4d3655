"""
store/mappers.py -- Row mappers (Data Mapper pattern).

Translate raw result rows into the dataclasses in store/models.py so the
rest of the code never handles untyped rows. Each mapper expects the full
column set of its table; row_to_enrolled_course expects the aliased join
produced by EnrollmentService.list_my_enrollments.
"""

from __future__ import annotations

from store.models import AuditLogEntry, Course, EnrolledCourse, Enrollment, User


def row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        full_name=row.full_name or "",
        role=row.role,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def row_to_course(row) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        description=row.description or "",
        price=float(row.price or 0),
        duration_hours=int(row.duration_hours or 0),
        category=row.category or "",
        image=row.image or "",
        created_at=row.created_at,
    )


def row_to_enrollment(row) -> Enrollment:
    return Enrollment(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
        progress_percentage=row.progress_percentage,
        completed_at=row.completed_at,
    )


def row_to_enrolled_course(row) -> EnrolledCourse:
    # Course columns are selected with a course_ prefix to avoid clashing
    # with the enrollment's id and created_at.
    return EnrolledCourse(
        enrollment=row_to_enrollment(row),
        course=Course(
            id=row.course_id,
            title=row.course_title,
            description=row.course_description or "",
            price=float(row.course_price or 0),
            duration_hours=int(row.course_duration_hours or 0),
            category=row.course_category or "",
            image=row.course_image or "",
            created_at=row.course_created_at,
        ),
    )


def row_to_log_entry(row) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        user_id=row.user_id,
        log_type=row.log_type,
        email=row.email,
        full_name=row.full_name,
        action=row.action,
        logged_at=row.logged_at,
    )
