"""
services/courses.py -- Course catalog flows.

Reading the catalog is public. Creating a course is admin-only; the guard
runs before validation so a non-admin learns nothing about field rules.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy import select

from audit.log import AuditLog
from auth.access import require_admin
from auth.models import Identity
from core.errors import InvalidInput, NotFound
from store.database import Database, now_iso
from store.mappers import row_to_course
from store.models import Course, EventType
from store.schema import courses

DEFAULT_IMAGE = "📚"
MAX_IMAGE_LENGTH = 10  # varchar(10)
_MAX_PRICE = Decimal("99999999.99")  # numeric(10, 2)


def _validate_price(price) -> float:
    if price is None:
        return 0.0
    if isinstance(price, bool):
        raise InvalidInput("Price must be a number", field="price")
    try:
        value = Decimal(str(price))
    except InvalidOperation as exc:
        raise InvalidInput("Price must be a number", field="price") from exc
    if not value.is_finite():
        raise InvalidInput("Price must be a number", field="price")
    if value < 0:
        raise InvalidInput("Price must not be negative", field="price")
    if value > _MAX_PRICE:
        raise InvalidInput("Price is too large", field="price")
    return float(value.quantize(Decimal("0.01")))


def _validate_image(image) -> str:
    if not image:
        return DEFAULT_IMAGE
    if len(image) > MAX_IMAGE_LENGTH:
        raise InvalidInput(f"Image must be at most {MAX_IMAGE_LENGTH} characters", field="image")
    return image


def _validate_duration(duration_hours) -> int:
    if duration_hours is None:
        return 0
    if isinstance(duration_hours, bool) or not isinstance(duration_hours, int):
        raise InvalidInput("Duration must be a whole number of hours", field="duration_hours")
    if duration_hours < 0:
        raise InvalidInput("Duration must not be negative", field="duration_hours")
    return duration_hours


class CourseService:
    def __init__(self, db: Database, audit: AuditLog) -> None:
        self.db = db
        self.audit = audit

    def list_courses(self) -> list[Course]:
        rows = self.db.fetch_many(select(courses).order_by(courses.c.created_at.desc(), courses.c.id.desc()))
        return [row_to_course(r) for r in rows]

    def get_course(self, course_id: int) -> Course:
        row = self.db.fetch_one(select(courses).where(courses.c.id == course_id))
        if row is None:
            raise NotFound("Course not found")
        return row_to_course(row)

    def create_course(
        self,
        identity: Identity | None,
        title: str | None,
        description: str | None = None,
        price=None,
        duration_hours: int | None = None,
        category: str | None = None,
        image: str | None = None,
    ) -> Course:
        admin = require_admin(identity)
        if not title or not title.strip():
            raise InvalidInput("Course title is required", field="title")

        result = self.db.execute(
            courses.insert().values(
                title=title.strip(),
                description=description or "",
                price=_validate_price(price),
                duration_hours=_validate_duration(duration_hours),
                category=category or "",
                image=_validate_image(image),
                created_at=now_iso(),
            )
        )
        course = self.get_course(result.generated_id)
        self.audit.record(admin.id, EventType.COURSE_CREATED, admin.email, None, f"Created course: {course.title}")
        return course
