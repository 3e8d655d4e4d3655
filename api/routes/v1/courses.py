"""
api/routes/v1/courses.py -- Course catalog endpoints.

Routes:
  GET  /api/v1/courses       -- list courses (public)
  GET  /api/v1/courses/{id}  -- one course (public)
  POST /api/v1/courses       -- create a course (admin only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import CourseCreate, CourseCreatedResponse, CourseListResponse, CourseOut, CourseResponse
from auth.dependencies import current_identity
from auth.models import Identity
from services.courses import CourseService

router = APIRouter()


@router.get("/courses", response_model=CourseListResponse)
def list_courses(request: Request) -> CourseListResponse:
    catalog: CourseService = request.app.state.courses
    return CourseListResponse(courses=[CourseOut.from_course(c) for c in catalog.list_courses()])


@router.get("/courses/{course_id}", response_model=CourseResponse)
def get_course(request: Request, course_id: int) -> CourseResponse:
    catalog: CourseService = request.app.state.courses
    return CourseResponse(course=CourseOut.from_course(catalog.get_course(course_id)))


@router.post("/courses", response_model=CourseCreatedResponse, status_code=201)
def create_course(
    request: Request,
    body: CourseCreate,
    identity: Identity = Depends(current_identity),
) -> CourseCreatedResponse:
    catalog: CourseService = request.app.state.courses
    course = catalog.create_course(
        identity,
        title=body.title,
        description=body.description,
        price=body.price,
        duration_hours=body.duration_hours,
        category=body.category,
        image=body.image,
    )
    return CourseCreatedResponse(course=CourseOut.from_course(course))
