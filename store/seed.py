"""
store/seed.py -- First-run initialization.

initialize_store() is called once from the app lifespan. It is idempotent:

  1. Create the schema if absent.
  2. If no admin-role user exists, create the default admin and record an
     ADMIN_CREATED audit entry.
  3. If the courses table is empty, insert the sample catalog.

Course seeding is gated on the courses table being empty, not on the admin
check. Tying it to "no admin yet" would re-insert the samples on any boot
where the admin had been removed out-of-band, duplicating catalog rows.

Two processes booting at once may both pass the admin check; the UNIQUE
email constraint stops the second insert. That DuplicateKey is logged and
ignored when an admin now exists. If the seed email belongs to an ordinary
account instead, startup fails with RuntimeError.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select

from audit.log import AuditLog
from auth.passwords import PasswordHasher
from core.config import Settings
from core.errors import DuplicateKey
from store.database import Database, now_iso
from store.models import EventType, Role
from store.schema import courses, users

logger = logging.getLogger("edutech.store")

SAMPLE_COURSES: list[dict] = [
    {
        "title": "Web Development Bootcamp",
        "description": "Learn full-stack web development with modern technologies",
        "price": 299.99,
        "duration_hours": 120,
        "category": "Web Development",
        "image": "🌐",
    },
    {
        "title": "Data Science Fundamentals",
        "description": "Python, Machine Learning, and Data Analysis",
        "price": 399.99,
        "duration_hours": 100,
        "category": "Data Science",
        "image": "📊",
    },
    {
        "title": "Mobile App Development",
        "description": "React Native, Flutter, and iOS/Android development",
        "price": 349.99,
        "duration_hours": 90,
        "category": "Mobile Development",
        "image": "📱",
    },
]


def initialize_store(db: Database, hasher: PasswordHasher, audit: AuditLog, settings: Settings) -> None:
    db.create_schema()
    _ensure_admin(db, hasher, audit, settings)
    _ensure_sample_courses(db)


def _admin_exists(db: Database) -> bool:
    row = db.fetch_one(select(func.count()).select_from(users).where(users.c.role == Role.admin.value))
    return row is not None and row[0] > 0


def _ensure_admin(db: Database, hasher: PasswordHasher, audit: AuditLog, settings: Settings) -> None:
    if _admin_exists(db):
        return

    now = now_iso()
    try:
        result = db.execute(
            users.insert().values(
                email=settings.seed_admin_email,
                password_hash=hasher.hash(settings.seed_admin_password),
                full_name=settings.seed_admin_name,
                role=Role.admin.value,
                created_at=now,
                updated_at=now,
            )
        )
    except DuplicateKey as exc:
        if _admin_exists(db):
            logger.warning("Default admin created concurrently; skipping")
            return
        # The address belongs to an ordinary account. Promoting it would hand
        # admin rights to whoever registered it, so refuse to start instead.
        raise RuntimeError(
            f"Cannot create default admin: {settings.seed_admin_email} is already registered "
            "as a non-admin user. Set SEED_ADMIN_EMAIL to an unused address."
        ) from exc

    logger.info("Default admin user created (%s)", settings.seed_admin_email)
    audit.record(
        result.generated_id,
        EventType.ADMIN_CREATED,
        settings.seed_admin_email,
        settings.seed_admin_name,
        "Initial admin account created",
    )


def _ensure_sample_courses(db: Database) -> None:
    row = db.fetch_one(select(func.count()).select_from(courses))
    if row is not None and row[0] > 0:
        return
    now = now_iso()
    for course in SAMPLE_COURSES:
        db.execute(courses.insert().values(created_at=now, **course))
    logger.info("Sample courses added (%d)", len(SAMPLE_COURSES))
