"""
store/schema.py -- SQLAlchemy Core table definitions.

The constraints here are the real enforcement point for the data model.
Service-level existence checks (duplicate email, duplicate enrollment) are
fast paths only; UNIQUE, FOREIGN KEY and CHECK violations surface from
Database as DuplicateKey, NotFound and InvalidInput respectively.

Cascades: deleting a user removes its enrollments and audit entries;
deleting a course removes its enrollments. SQLite only honours these with
PRAGMA foreign_keys=ON, which store/database.py sets on every connection.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("full_name", String(255), nullable=False, server_default=""),
    Column("role", String(50), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
)

courses = Table(
    "courses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    # asdecimal=False: SQLite has no native DECIMAL, values come back as float
    Column("price", Numeric(10, 2, asdecimal=False), nullable=False, server_default="0"),
    Column("duration_hours", Integer, nullable=False, server_default="0"),
    Column("category", String(100), nullable=False, server_default=""),
    Column("image", String(10), nullable=False, server_default="📚"),
    Column("created_at", String(32), nullable=False),
    CheckConstraint("length(trim(title)) > 0", name="ck_courses_title"),
    CheckConstraint("price >= 0", name="ck_courses_price"),
    CheckConstraint("duration_hours >= 0", name="ck_courses_duration"),
)

enrollments = Table(
    "enrollments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("course_id", Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
    Column("enrolled_at", String(32), nullable=False),
    Column("progress_percentage", Integer, nullable=False, server_default="0"),
    Column("completed_at", String(32)),
    UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    CheckConstraint("progress_percentage BETWEEN 0 AND 100", name="ck_enrollments_progress"),
)

user_logs = Table(
    "user_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("log_type", String(100), nullable=False),
    Column("email", String(255)),
    Column("full_name", String(255)),
    Column("action", Text),
    Column("logged_at", String(32), nullable=False),
)
