"""
store/models.py -- Domain dataclasses for users, courses, enrollments and audit entries.

Pattern: Data class (pure data container, zero logic). Services and the
audit log operate on these, never on raw rows -- store/mappers.py does the
translation at the store boundary.

Timestamps are ISO 8601 UTC strings, as written by the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    user = "user"
    admin = "admin"


class EventType(str, Enum):
    """Audit event types. Stored verbatim in user_logs.log_type."""

    LOGIN = "LOGIN"
    REGISTRATION = "REGISTRATION"
    COURSE_ENROLLMENT = "COURSE_ENROLLMENT"
    USER_DELETED = "USER_DELETED"
    ADMIN_CREATED = "ADMIN_CREATED"
    COURSE_CREATED = "COURSE_CREATED"
    PROGRESS_COMPLETED = "PROGRESS_COMPLETED"


@dataclass
class User:
    """A registered account.

    email is unique and case-sensitive as stored. password_hash is a bcrypt
    hash and must never leave the service layer.
    """

    email: str
    password_hash: str
    full_name: str = ""
    role: str = Role.user.value
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin.value


@dataclass
class Course:
    title: str
    description: str = ""
    price: float = 0.0
    duration_hours: int = 0
    category: str = ""
    image: str = "📚"
    id: int | None = None
    created_at: str | None = None


@dataclass
class Enrollment:
    """One user's enrollment in one course. (user_id, course_id) is unique."""

    user_id: int
    course_id: int
    progress_percentage: int = 0
    id: int | None = None
    enrolled_at: str | None = None
    completed_at: str | None = None


@dataclass
class EnrolledCourse:
    """An enrollment joined with the course it refers to (my-courses view)."""

    enrollment: Enrollment
    course: Course


@dataclass
class AuditLogEntry:
    """Immutable audit record.

    email and full_name are snapshots taken when the event happened; they do
    not follow later changes to the user row.
    """

    user_id: int
    log_type: str
    email: str | None = None
    full_name: str | None = None
    action: str | None = None
    id: int | None = None
    logged_at: str | None = None
