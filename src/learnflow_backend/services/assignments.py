"""
Resolution and management of learner assignments.

A learner reaches a course either directly (``CourseAssignment``) or through an
assignment to the index the course lives in (``IndexAssignment``). The effective
set is recomputed from the store on every call.
"""

import logging
from typing import List, Optional, Set
from sqlalchemy.orm import Session

from learnflow_backend.api.exceptions import BadRequestException, ForbiddenException, NotFoundException
from learnflow_backend.interface.roles import LEARNER_ROLES
from learnflow_backend.model.assignment import CourseAssignment, IndexAssignment
from learnflow_backend.model.auth import User
from learnflow_backend.model.content import Course, Index

logger = logging.getLogger(__name__)


def direct_course_ids(db: Session, learner_id: str) -> Set[str]:
    rows = db.query(CourseAssignment.course_id).filter(CourseAssignment.user_id == learner_id).all()
    return {row[0] for row in rows}


def assigned_index_ids(db: Session, learner_id: str) -> Set[str]:
    rows = db.query(IndexAssignment.index_id).filter(IndexAssignment.user_id == learner_id).all()
    return {row[0] for row in rows}


def resolve_assigned_course_ids(db: Session, learner_id: str) -> Set[str]:
    """Union of direct and index-inherited courses, restricted to active ones."""

    direct = direct_course_ids(db, learner_id)
    index_ids = assigned_index_ids(db, learner_id)

    transitive: Set[str] = set()
    if index_ids:
        rows = db.query(Course.id).filter(Course.index_id.in_(index_ids)).all()
        transitive = {row[0] for row in rows}

    candidates = direct | transitive
    if not candidates:
        return set()

    rows = db.query(Course.id).filter(Course.id.in_(candidates), Course.is_active.is_(True)).all()
    return {row[0] for row in rows}


def resolve_assigned_courses(db: Session, learner_id: str) -> List[Course]:
    course_ids = resolve_assigned_course_ids(db, learner_id)
    if not course_ids:
        return []
    return db.query(Course).filter(Course.id.in_(course_ids)).order_by(Course.title).all()


def has_course_access(db: Session, learner_id: str, course: Course) -> bool:
    if not course.is_active:
        return False

    direct = (
        db.query(CourseAssignment.id)
        .filter(CourseAssignment.user_id == learner_id, CourseAssignment.course_id == course.id)
        .first()
    )
    if direct is not None:
        return True

    inherited = (
        db.query(IndexAssignment.id)
        .filter(IndexAssignment.user_id == learner_id, IndexAssignment.index_id == course.index_id)
        .first()
    )
    return inherited is not None


def _managed_learners(db: Session, actor_id: str, user_ids: List[str]) -> List[User]:
    unique_ids = list(dict.fromkeys(user_ids))
    if not unique_ids:
        raise BadRequestException("Select at least one user")

    users = db.query(User).filter(User.id.in_(unique_ids)).all()

    if len(users) != len(unique_ids):
        raise NotFoundException("One or more users not found")

    for user in users:
        if user.created_by != actor_id or user.role not in LEARNER_ROLES:
            raise ForbiddenException("You can only assign content to users you manage")

    return users


def assign_users(
    db: Session,
    actor_id: str,
    user_ids: List[str],
    course_id: Optional[str] = None,
    index_id: Optional[str] = None,
) -> int:
    """Grant the given learners a course or an index. Existing grants are kept as they are.

    Returns the number of new assignment rows.
    """

    if bool(course_id) == bool(index_id):
        raise BadRequestException("Provide either course_id or index_id")

    users = _managed_learners(db, actor_id, user_ids)

    if course_id:
        course = db.query(Course).filter(Course.id == course_id).first()
        if course is None:
            raise NotFoundException("Course not found")
        if course.index.created_by != actor_id:
            raise ForbiddenException("You do not have access to this course")

        existing = {
            row[0] for row in db.query(CourseAssignment.user_id)
            .filter(CourseAssignment.course_id == course_id, CourseAssignment.user_id.in_([u.id for u in users]))
            .all()
        }
        created = [
            CourseAssignment(user_id=user.id, course_id=course_id, assigned_by=actor_id)
            for user in users if user.id not in existing
        ]
    else:
        index = db.query(Index).filter(Index.id == index_id).first()
        if index is None:
            raise NotFoundException("Index not found")
        if index.created_by != actor_id:
            raise ForbiddenException("You do not have access to this index")

        existing = {
            row[0] for row in db.query(IndexAssignment.user_id)
            .filter(IndexAssignment.index_id == index_id, IndexAssignment.user_id.in_([u.id for u in users]))
            .all()
        }
        created = [
            IndexAssignment(user_id=user.id, index_id=index_id, assigned_by=actor_id)
            for user in users if user.id not in existing
        ]

    db.add_all(created)
    db.flush()

    logger.info(f"{actor_id} assigned {course_id or index_id} to {len(created)} new user(s)")
    return len(created)


def unassign(db: Session, actor_id: str, kind: str, user_id: str, target_id: str) -> None:

    if kind == "course":
        query = db.query(CourseAssignment).filter(
            CourseAssignment.user_id == user_id,
            CourseAssignment.course_id == target_id,
            CourseAssignment.assigned_by == actor_id,
        )
    elif kind == "index":
        query = db.query(IndexAssignment).filter(
            IndexAssignment.user_id == user_id,
            IndexAssignment.index_id == target_id,
            IndexAssignment.assigned_by == actor_id,
        )
    else:
        raise BadRequestException("type must be 'course' or 'index'")

    assignment = query.first()
    if assignment is None:
        raise NotFoundException("Assignment not found")

    db.delete(assignment)
    db.flush()
