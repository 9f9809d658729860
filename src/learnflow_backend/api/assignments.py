import logging
from typing import Annotated, List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnflow_backend.api.exceptions import BadRequestException
from learnflow_backend.database import get_db
from learnflow_backend.interface.assignments import (
    AssignmentCreate,
    AssignmentDelete,
    AssignmentListResponse,
    AssignmentQuery,
    CourseAssignmentGet,
    IndexAssignmentGet,
)
from learnflow_backend.interface.base import MessageResponse
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.assignment import CourseAssignment, IndexAssignment
from learnflow_backend.model.auth import User
from learnflow_backend.model.content import Course, Index
from learnflow_backend.permissions.auth import get_current_principal, require_roles
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.activity import log_activity
from learnflow_backend.services.assignments import assign_users, unassign

logger = logging.getLogger(__name__)

assignment_router = APIRouter()

require_author = require_roles(UserRole.TRAINER, UserRole.CRM)


def _course_assignments(db: Session, principal: Principal, params: AssignmentQuery) -> List[CourseAssignmentGet]:
    query = (
        db.query(CourseAssignment, User, Course)
        .join(User, User.id == CourseAssignment.user_id)
        .join(Course, Course.id == CourseAssignment.course_id)
    )
    if principal.is_learner:
        query = query.filter(CourseAssignment.user_id == principal.user_id)
    elif not principal.is_admin:
        query = query.filter(CourseAssignment.assigned_by == principal.user_id)

    if params.user_id:
        query = query.filter(CourseAssignment.user_id == params.user_id)
    if params.course_id:
        query = query.filter(CourseAssignment.course_id == params.course_id)

    return [
        CourseAssignmentGet(
            id=assignment.id,
            user_id=assignment.user_id,
            course_id=assignment.course_id,
            assigned_by=assignment.assigned_by,
            created_at=assignment.created_at,
            username=user.username,
            full_name=user.full_name,
            course_title=course.title,
        )
        for assignment, user, course in query.order_by(CourseAssignment.created_at.desc()).all()
    ]


def _index_assignments(db: Session, principal: Principal, params: AssignmentQuery) -> List[IndexAssignmentGet]:
    query = (
        db.query(IndexAssignment, User, Index)
        .join(User, User.id == IndexAssignment.user_id)
        .join(Index, Index.id == IndexAssignment.index_id)
    )
    if principal.is_learner:
        query = query.filter(IndexAssignment.user_id == principal.user_id)
    elif not principal.is_admin:
        query = query.filter(IndexAssignment.assigned_by == principal.user_id)

    if params.user_id:
        query = query.filter(IndexAssignment.user_id == params.user_id)
    if params.index_id:
        query = query.filter(IndexAssignment.index_id == params.index_id)

    return [
        IndexAssignmentGet(
            id=assignment.id,
            user_id=assignment.user_id,
            index_id=assignment.index_id,
            assigned_by=assignment.assigned_by,
            created_at=assignment.created_at,
            username=user.username,
            full_name=user.full_name,
            index_name=index.name,
        )
        for assignment, user, index in query.order_by(IndexAssignment.created_at.desc()).all()
    ]


@assignment_router.get("", response_model=AssignmentListResponse)
def list_assignments(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: AssignmentQuery = Depends(),
    db: Session = Depends(get_db),
):
    course_assignments = [] if params.index_id else _course_assignments(db, principal, params)
    index_assignments = [] if params.course_id else _index_assignments(db, principal, params)

    return AssignmentListResponse(course_assignments=course_assignments, index_assignments=index_assignments)


@assignment_router.post("", response_model=MessageResponse)
def create_assignments(
    payload: AssignmentCreate,
    principal: Annotated[Principal, Depends(require_author)],
    db: Session = Depends(get_db),
):
    if bool(payload.course_id) == bool(payload.index_id):
        raise BadRequestException("Provide either course_id or index_id")

    created = assign_users(db, principal.user_id, payload.user_ids, payload.course_id, payload.index_id)

    if payload.course_id:
        action, target_type, target_id = "assigned_course", "course", payload.course_id
    else:
        action, target_type, target_id = "assigned_index", "index", payload.index_id

    log_activity(db, principal.user_id, action, target_type, target_id,
                 {"user_ids": payload.user_ids, "created": created})
    db.commit()

    return MessageResponse(message=f"Assigned to {len(set(payload.user_ids))} user(s)")


@assignment_router.delete("", response_model=MessageResponse)
def delete_assignment(
    principal: Annotated[Principal, Depends(require_author)],
    params: AssignmentDelete = Depends(),
    db: Session = Depends(get_db),
):
    unassign(db, principal.user_id, params.type, params.user_id, params.target_id)

    log_activity(db, principal.user_id, f"unassigned_{params.type}", params.type, params.target_id,
                 {"user_id": params.user_id})
    db.commit()

    return MessageResponse(message="Assignment removed")
