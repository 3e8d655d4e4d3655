"""
services/enrollments.py -- Enrolling in courses and tracking progress.

A user may enroll in a course at most once. The pre-insert lookup is a fast
path; UNIQUE(user_id, course_id) is what actually holds under concurrent
requests, and its DuplicateKey is reported as the same Conflict.

Progress belongs to the enrolled user: every query is scoped by the
caller's identity id, so there is no way to touch someone else's row.

completed_at is stamped the first time progress reaches 100, kept when 100
is sent again, and cleared if progress drops below 100.
"""

from __future__ import annotations

from sqlalchemy import case, select

from audit.log import AuditLog
from auth.access import require_authenticated
from auth.models import Identity
from core.errors import Conflict, DuplicateKey, InvalidInput, NotFound
from store.database import Database, now_iso
from store.mappers import row_to_enrolled_course, row_to_enrollment
from store.models import EnrolledCourse, EventType, Enrollment
from store.schema import courses, enrollments, users


def _validate_percentage(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise InvalidInput("Progress percentage must be between 0 and 100", field="progress_percentage")
    return value


class EnrollmentService:
    def __init__(self, db: Database, audit: AuditLog) -> None:
        self.db = db
        self.audit = audit

    def _get(self, user_id: int, course_id: int) -> Enrollment | None:
        row = self.db.fetch_one(
            select(enrollments).where((enrollments.c.user_id == user_id) & (enrollments.c.course_id == course_id))
        )
        return row_to_enrollment(row) if row is not None else None

    def enroll(self, identity: Identity | None, course_id: int | None) -> Enrollment:
        identity = require_authenticated(identity)
        if course_id is None:
            raise InvalidInput("Course ID is required", field="course_id")

        course = self.db.fetch_one(select(courses.c.id, courses.c.title).where(courses.c.id == course_id))
        if course is None:
            raise NotFound("Course not found")
        if self._get(identity.id, course_id) is not None:
            raise Conflict("Already enrolled in this course")
        # The token may outlive its account; the name snapshot also comes from here.
        user = self.db.fetch_one(select(users.c.full_name).where(users.c.id == identity.id))
        if user is None:
            raise NotFound("User not found")

        now = now_iso()
        try:
            result = self.db.execute(
                enrollments.insert().values(
                    user_id=identity.id,
                    course_id=course_id,
                    enrolled_at=now,
                    progress_percentage=0,
                )
            )
        except DuplicateKey as exc:
            raise Conflict("Already enrolled in this course") from exc

        self.audit.record(
            identity.id,
            EventType.COURSE_ENROLLMENT,
            identity.email,
            user.full_name,
            f"Enrolled in: {course.title}",
        )
        return Enrollment(
            id=result.generated_id,
            user_id=identity.id,
            course_id=course_id,
            enrolled_at=now,
            progress_percentage=0,
        )

    def list_my_enrollments(self, identity: Identity | None) -> list[EnrolledCourse]:
        identity = require_authenticated(identity)
        rows = self.db.fetch_many(
            select(
                enrollments,
                courses.c.title.label("course_title"),
                courses.c.description.label("course_description"),
                courses.c.price.label("course_price"),
                courses.c.duration_hours.label("course_duration_hours"),
                courses.c.category.label("course_category"),
                courses.c.image.label("course_image"),
                courses.c.created_at.label("course_created_at"),
            )
            .join(courses, enrollments.c.course_id == courses.c.id)
            .where(enrollments.c.user_id == identity.id)
            .order_by(enrollments.c.enrolled_at.desc(), enrollments.c.id.desc())
        )
        return [row_to_enrolled_course(r) for r in rows]

    def update_progress(self, identity: Identity | None, course_id: int, progress_percentage) -> Enrollment:
        """Set the caller's progress in a course. Idempotent for a repeated value."""
        identity = require_authenticated(identity)
        progress = _validate_percentage(progress_percentage)
        before = self._get(identity.id, course_id)
        if before is None:
            raise NotFound("Not enrolled in this course")

        if progress == 100:
            completed_at = case((enrollments.c.completed_at.is_(None), now_iso()), else_=enrollments.c.completed_at)
        else:
            completed_at = None
        result = self.db.execute(
            enrollments.update()
            .where((enrollments.c.user_id == identity.id) & (enrollments.c.course_id == course_id))
            .values(progress_percentage=progress, completed_at=completed_at)
        )
        if result.rows_affected == 0:
            raise NotFound("Not enrolled in this course")

        after = self._get(identity.id, course_id)
        if after is None:
            raise NotFound("Not enrolled in this course")
        if before.completed_at is None and after.completed_at is not None:
            course = self.db.fetch_one(select(courses.c.title).where(courses.c.id == course_id))
            title = course.title if course is not None else str(course_id)
            self.audit.record(identity.id, EventType.PROGRESS_COMPLETED, identity.email, None, f"Completed: {title}")
        return after
