"""
API request and response models for the EduTech REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in store/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only check field types. Integer fields are StrictInt so JSON
true, "100" or 2.0 are rejected instead of coerced. Presence and range rules (password
length, progress bounds, non-empty title) live in services/ so they hold for
every caller, not just HTTP ones, and fail with InvalidInput (400).

Separation of concerns: store/ models = domain truth; api/ models = API contract.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, StrictInt

from store.models import AuditLogEntry, Course, EnrolledCourse, User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class VerifyRequest(BaseModel):
    token: Optional[str] = None


class CourseCreate(BaseModel):
    """Request body for POST /api/v1/courses (admin only)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    duration_hours: Optional[StrictInt] = None
    category: Optional[str] = None
    image: Optional[str] = None


class EnrollRequest(BaseModel):
    course_id: Optional[StrictInt] = None


class ProgressUpdate(BaseModel):
    progress_percentage: Optional[StrictInt] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """Public view of an account. The password hash never leaves the service layer."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    full_name: str
    role: str
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            created_at=user.created_at,
        )


class AuthResponse(BaseModel):
    """Response for register and login: token plus the account summary."""

    success: bool = True
    message: str
    token: str
    user: UserSummary


class UserResponse(BaseModel):
    success: bool = True
    user: UserSummary


class UserListResponse(BaseModel):
    success: bool = True
    users: list[UserSummary]
    count: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CourseOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    price: float
    duration_hours: int
    category: str
    image: str
    created_at: Optional[str] = None

    @classmethod
    def from_course(cls, course: Course) -> "CourseOut":
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            price=course.price,
            duration_hours=course.duration_hours,
            category=course.category,
            image=course.image,
            created_at=course.created_at,
        )


class CourseResponse(BaseModel):
    success: bool = True
    course: CourseOut


class CourseCreatedResponse(CourseResponse):
    message: str = "Course created successfully"


class CourseListResponse(BaseModel):
    success: bool = True
    courses: list[CourseOut]


class EnrollmentOut(BaseModel):
    """One my-courses row: the enrollment flattened with its course fields."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    course_id: int
    enrolled_at: str
    progress_percentage: int
    completed_at: Optional[str] = None
    title: str
    description: str
    price: float
    duration_hours: int
    category: str
    image: str

    @classmethod
    def from_enrolled(cls, row: EnrolledCourse) -> "EnrollmentOut":
        e, c = row.enrollment, row.course
        return cls(
            id=e.id,
            user_id=e.user_id,
            course_id=e.course_id,
            enrolled_at=e.enrolled_at,
            progress_percentage=e.progress_percentage,
            completed_at=e.completed_at,
            title=c.title,
            description=c.description,
            price=c.price,
            duration_hours=c.duration_hours,
            category=c.category,
            image=c.image,
        )


class EnrollmentListResponse(BaseModel):
    success: bool = True
    enrollments: list[EnrollmentOut]


class AuditLogOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    log_type: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    action: Optional[str] = None
    logged_at: str

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> "AuditLogOut":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            log_type=entry.log_type,
            email=entry.email,
            full_name=entry.full_name,
            action=entry.action,
            logged_at=entry.logged_at,
        )


class AuditLogListResponse(BaseModel):
    success: bool = True
    logs: list[AuditLogOut]


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
