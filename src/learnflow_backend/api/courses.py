import logging
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import apply_updates, get_or_404
from learnflow_backend.api.exceptions import BadRequestException
from learnflow_backend.database import get_db
from learnflow_backend.interface.base import MessageResponse
from learnflow_backend.interface.content import (
    CourseCreate,
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CourseUpdate,
)
from learnflow_backend.model.content import Course, Index
from learnflow_backend.permissions.auth import get_current_principal
from learnflow_backend.permissions.core import check_permissions, require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.activity import log_activity
from learnflow_backend.services.content import build_course_detail, serialize_courses
from learnflow_backend.services.storage_service import StorageService, get_storage_service

logger = logging.getLogger(__name__)

course_router = APIRouter()


@course_router.get("", response_model=CourseListResponse)
def list_courses(
    principal: Annotated[Principal, Depends(get_current_principal)],
    index_id: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    query = check_permissions(principal, Course, Action.READ, db)

    if index_id:
        query = query.filter(Course.index_id == index_id)
    if search:
        query = query.filter(Course.title.ilike(f"%{search.strip()}%"))

    courses = query.order_by(Course.title).all()
    return CourseListResponse(courses=serialize_courses(db, courses))


@course_router.post("", response_model=CourseResponse)
def create_course(
    payload: CourseCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    index = get_or_404(db, Index, payload.index_id, "Index not found")
    require_access(principal, Action.UPDATE, index, db)

    course = Course(
        index_id=index.id,
        created_by=index.created_by,
        title=payload.title,
        description=payload.description,
        thumbnail_url=payload.thumbnail_url,
    )
    db.add(course)
    db.flush()
    log_activity(db, principal.user_id, "created_course", "course", course.id, {"title": course.title})
    db.commit()
    db.refresh(course)

    return CourseResponse(course=serialize_courses(db, [course])[0])


@course_router.get("/{course_id}", response_model=CourseDetailResponse)
async def get_course(
    course_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    course = get_or_404(db, Course, course_id, "Course not found")
    require_access(principal, Action.READ, course, db)

    return CourseDetailResponse(course=await build_course_detail(course, storage))


@course_router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    payload: CourseUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    course = get_or_404(db, Course, course_id, "Course not found")
    require_access(principal, Action.UPDATE, course, db)

    updates = payload.model_dump(exclude_unset=True)
    for key in ("title", "is_active"):
        if key in updates and updates[key] is None:
            del updates[key]
    if not updates:
        raise BadRequestException("No updates provided")

    apply_updates(course, updates)
    log_activity(db, principal.user_id, "updated_course", "course", course.id, updates)
    db.commit()
    db.refresh(course)

    return CourseResponse(course=serialize_courses(db, [course])[0])


@course_router.delete("/{course_id}", response_model=MessageResponse)
def delete_course(
    course_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    course = get_or_404(db, Course, course_id, "Course not found")
    require_access(principal, Action.DELETE, course, db)

    title = course.title
    db.delete(course)
    log_activity(db, principal.user_id, "deleted_course", "course", course_id, {"title": title})
    db.commit()

    return MessageResponse(message="Course deleted")
