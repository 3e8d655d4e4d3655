"""
api/routes/v1/enrollments.py -- Enrollment and progress endpoints.

Routes:
  POST  /api/v1/enrollments                       -- enroll the caller in a course
  GET   /api/v1/enrollments/my-courses            -- the caller's enrollments with course details
  PATCH /api/v1/enrollments/{course_id}/progress  -- set the caller's progress (0-100)

All routes require authentication. The caller can only act on their own
enrollments -- the user id always comes from the token, never the body.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import EnrollmentListResponse, EnrollmentOut, EnrollRequest, MessageResponse, ProgressUpdate
from auth.dependencies import current_identity
from auth.models import Identity
from services.enrollments import EnrollmentService

router = APIRouter()


@router.post("/enrollments", response_model=MessageResponse, status_code=201)
def enroll(request: Request, body: EnrollRequest, identity: Identity = Depends(current_identity)) -> MessageResponse:
    service: EnrollmentService = request.app.state.enrollments
    service.enroll(identity, body.course_id)
    return MessageResponse(message="Successfully enrolled in course")


@router.get("/enrollments/my-courses", response_model=EnrollmentListResponse)
def my_courses(request: Request, identity: Identity = Depends(current_identity)) -> EnrollmentListResponse:
    service: EnrollmentService = request.app.state.enrollments
    rows = service.list_my_enrollments(identity)
    return EnrollmentListResponse(enrollments=[EnrollmentOut.from_enrolled(r) for r in rows])


@router.patch("/enrollments/{course_id}/progress", response_model=MessageResponse)
def update_progress(
    request: Request,
    course_id: int,
    body: ProgressUpdate,
    identity: Identity = Depends(current_identity),
) -> MessageResponse:
    service: EnrollmentService = request.app.state.enrollments
    service.update_progress(identity, course_id, body.progress_percentage)
    return MessageResponse(message="Progress updated successfully")
