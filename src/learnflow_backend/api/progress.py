import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import get_or_404
from learnflow_backend.api.exceptions import BadRequestException, ForbiddenException
from learnflow_backend.database import get_db
from learnflow_backend.interface.progress import (
    LectureProgressGet,
    ProgressList,
    ProgressQuery,
    ProgressResponse,
    ProgressUpdate,
)
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.auth import User
from learnflow_backend.model.content import Course, Lecture
from learnflow_backend.permissions.auth import get_current_principal, require_roles
from learnflow_backend.permissions.core import require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.assignments import resolve_assigned_course_ids
from learnflow_backend.services.progress import (
    lecture_ids_by_course,
    progress_by_lecture,
    record_progress,
    summarize,
)

logger = logging.getLogger(__name__)

progress_router = APIRouter()

require_learner = require_roles(UserRole.CANDIDATE, UserRole.OTHER)


def _target_user_id(db: Session, principal: Principal, requested: str) -> str:
    """Learners read their own progress; staff read the learners they manage, admins anyone."""

    if principal.is_learner:
        if requested and requested != principal.user_id:
            raise ForbiddenException("You can only view your own progress")
        return principal.user_id

    if not requested:
        raise BadRequestException("user_id is required")

    user = get_or_404(db, User, requested, "User not found")
    if not principal.is_admin and user.created_by != principal.user_id:
        raise ForbiddenException("You do not manage this user")
    return user.id


@progress_router.get("", response_model=ProgressList)
def get_progress(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: ProgressQuery = Depends(),
    db: Session = Depends(get_db),
):
    user_id = _target_user_id(db, principal, params.user_id)

    if params.course_id:
        course = get_or_404(db, Course, params.course_id, "Course not found")
        require_access(principal, Action.READ, course, db)
        course_ids = [course.id]
    else:
        course_ids = resolve_assigned_course_ids(db, user_id)

    lecture_ids = [lid for ids in lecture_ids_by_course(db, course_ids).values() for lid in ids]
    rows = list(progress_by_lecture(db, user_id, lecture_ids).values())

    return ProgressList(
        progress=[LectureProgressGet.model_validate(row) for row in rows],
        summary=summarize(rows, len(lecture_ids)),
    )


@progress_router.post("", response_model=ProgressResponse)
def update_progress(
    payload: ProgressUpdate,
    principal: Annotated[Principal, Depends(require_learner)],
    db: Session = Depends(get_db),
):
    lecture = get_or_404(db, Lecture, payload.lecture_id, "Lecture not found")
    require_access(principal, Action.READ, lecture, db)

    progress = record_progress(
        db,
        principal.user_id,
        lecture,
        time_spent_seconds=payload.time_spent_seconds,
        is_completed=payload.is_completed,
        session_watched_seconds=payload.session_watched_seconds,
    )
    db.commit()
    db.refresh(progress)

    return ProgressResponse(progress=LectureProgressGet.model_validate(progress))
