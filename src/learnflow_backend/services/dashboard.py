"""
Per-role dashboard aggregates.

Everything is computed from the current rows on each call, the same way the
learner-facing listings resolve assignments.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from learnflow_backend.interface.dashboard import (
    ActivityGet,
    AdminDashboard,
    AdminStats,
    LearnerDashboard,
    LearnerRow,
    LearnerStats,
    StaffDashboard,
    StaffDashboardStats,
    StaffStats,
)
from learnflow_backend.interface.roles import AUTHOR_ROLES, LEARNER_ROLES, UserRole
from learnflow_backend.model.activity import ActivityLog
from learnflow_backend.model.assignment import CourseAssignment, IndexAssignment
from learnflow_backend.model.auth import User, UserSession
from learnflow_backend.model.content import Course, Index, Lecture, Section
from learnflow_backend.model.progress import LectureProgress
from learnflow_backend.services.assignments import resolve_assigned_courses
from learnflow_backend.services.progress import (
    completion_percentage,
    compute_progress,
    current_streak,
    index_rollup,
)
from learnflow_backend.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

ACTIVE_WINDOW_DAYS = 7
STALLED_AFTER_DAYS = 14
ADMIN_ACTIVITY_LIMIT = 20
STAFF_ACTIVITY_LIMIT = 10


def last_logins(db: Session, user_ids: Iterable[str]) -> Dict[str, datetime]:
    user_ids = list(user_ids)
    if not user_ids:
        return {}
    rows = (
        db.query(UserSession.user_id, func.max(UserSession.login_at))
        .filter(UserSession.user_id.in_(user_ids))
        .group_by(UserSession.user_id)
        .all()
    )
    return {user_id: ensure_utc(login_at) for user_id, login_at in rows}


def count_by(db: Session, column, values: Iterable[str]) -> Dict[str, int]:
    values = list(values)
    if not values:
        return {}
    rows = db.query(column, func.count()).filter(column.in_(values)).group_by(column).all()
    return dict(rows)


def recent_activity(db: Session, limit: int, user_ids: Optional[List[str]] = None) -> List[ActivityGet]:
    query = db.query(ActivityLog, User.username).outerjoin(User, User.id == ActivityLog.user_id)
    if user_ids is not None:
        query = query.filter(ActivityLog.user_id.in_(user_ids))

    rows = query.order_by(ActivityLog.created_at.desc()).limit(limit).all()
    return [
        ActivityGet(
            id=entry.id,
            user_id=entry.user_id,
            username=username,
            action=entry.action,
            target_type=entry.target_type,
            target_id=entry.target_id,
            metadata=entry.details or {},
            created_at=entry.created_at,
        )
        for entry, username in rows
    ]


def admin_dashboard(db: Session, now: Optional[datetime] = None) -> AdminDashboard:
    now = now or utcnow()

    role_counts = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    active_counts = dict(db.query(User.is_active, func.count(User.id)).group_by(User.is_active).all())

    active_last_7_days = (
        db.query(func.count(func.distinct(UserSession.user_id)))
        .filter(UserSession.login_at >= now - timedelta(days=ACTIVE_WINDOW_DAYS))
        .scalar()
    )
    completed = db.query(func.count(LectureProgress.id)).filter(LectureProgress.is_completed.is_(True)).scalar()
    total_time = db.query(func.coalesce(func.sum(LectureProgress.time_spent_seconds), 0)).scalar()

    stats = AdminStats(
        trainers=role_counts.get(UserRole.TRAINER, 0),
        crms=role_counts.get(UserRole.CRM, 0),
        candidates=role_counts.get(UserRole.CANDIDATE, 0),
        others=role_counts.get(UserRole.OTHER, 0),
        courses=db.query(func.count(Course.id)).scalar(),
        active_users=active_counts.get(True, 0),
        inactive_users=active_counts.get(False, 0),
        active_last_7_days=active_last_7_days or 0,
        completed_lectures=completed or 0,
        total_time_spent_seconds=total_time,
    )

    staff = db.query(User).filter(User.role.in_(AUTHOR_ROLES)).order_by(User.created_at.desc()).all()
    staff_ids = [user.id for user in staff]
    managed = count_by(db, User.created_by, staff_ids)
    indexes = count_by(db, Index.created_by, staff_ids)
    courses = count_by(db, Course.created_by, staff_ids)
    logins = last_logins(db, staff_ids)

    return AdminDashboard(
        stats=stats,
        staff=[
            StaffStats(
                id=user.id,
                username=user.username,
                full_name=user.full_name,
                role=user.role,
                is_active=user.is_active,
                managed_users=managed.get(user.id, 0),
                indexes=indexes.get(user.id, 0),
                courses=courses.get(user.id, 0),
                last_active=logins.get(user.id),
            )
            for user in staff
        ],
        recent_activity=recent_activity(db, ADMIN_ACTIVITY_LIMIT),
    )


def learner_row(db: Session, learner: User, last_active: Optional[datetime], now: datetime) -> LearnerRow:
    summaries = compute_progress(db, learner.id, resolve_assigned_courses(db, learner.id))
    total = sum(s.total_lectures for s in summaries)
    completed = sum(s.completed_lectures for s in summaries)
    total_time = sum(s.time_spent_seconds for s in summaries)

    return LearnerRow(
        id=learner.id,
        username=learner.username,
        full_name=learner.full_name,
        is_active=learner.is_active,
        assigned_courses=len(summaries),
        total_lectures=total,
        completed_lectures=completed,
        completion_percentage=completion_percentage(completed, total),
        total_time_spent_seconds=total_time,
        last_active=last_active,
        is_stalled=last_active is None or now - last_active > timedelta(days=STALLED_AFTER_DAYS),
    )


def staff_dashboard(db: Session, staff: User, now: Optional[datetime] = None) -> StaffDashboard:
    """Overview of a trainer's or CRM user's own content and learners."""

    now = now or utcnow()

    learners = (
        db.query(User)
        .filter(User.created_by == staff.id, User.role.in_(LEARNER_ROLES))
        .order_by(User.created_at.desc())
        .all()
    )
    logins = last_logins(db, [learner.id for learner in learners])
    rows = [learner_row(db, learner, logins.get(learner.id), now) for learner in learners]

    lecture_count = (
        db.query(func.count(Lecture.id))
        .join(Section, Section.id == Lecture.section_id)
        .join(Course, Course.id == Section.course_id)
        .filter(Course.created_by == staff.id)
        .scalar()
    )
    assignment_count = (
        db.query(func.count(CourseAssignment.id)).filter(CourseAssignment.assigned_by == staff.id).scalar()
        + db.query(func.count(IndexAssignment.id)).filter(IndexAssignment.assigned_by == staff.id).scalar()
    )
    active_since = now - timedelta(days=ACTIVE_WINDOW_DAYS)

    stats = StaffDashboardStats(
        learners=len(rows),
        active_learners=sum(1 for row in rows if row.is_active),
        indexes=db.query(func.count(Index.id)).filter(Index.created_by == staff.id).scalar(),
        courses=db.query(func.count(Course.id)).filter(Course.created_by == staff.id).scalar(),
        lectures=lecture_count or 0,
        assignments=assignment_count or 0,
        avg_completion_rate=round(sum(row.completion_percentage for row in rows) / len(rows)) if rows else 0,
        active_last_7_days=sum(1 for row in rows if row.last_active is not None and row.last_active >= active_since),
        stalled_learners=sum(1 for row in rows if row.is_stalled),
        total_time_spent_seconds=sum(row.total_time_spent_seconds for row in rows),
    )

    activity_users = [staff.id] + [learner.id for learner in learners]

    return StaffDashboard(
        stats=stats,
        learners=rows,
        recent_activity=recent_activity(db, STAFF_ACTIVITY_LIMIT, activity_users),
    )


def learner_dashboard(db: Session, learner: User, now: Optional[datetime] = None) -> LearnerDashboard:
    courses = resolve_assigned_courses(db, learner.id)
    summaries = compute_progress(db, learner.id, courses)
    index_names = {course.index_id: course.index.name for course in courses}

    total = sum(s.total_lectures for s in summaries)
    completed = sum(s.completed_lectures for s in summaries)

    stats = LearnerStats(
        total_courses=len(summaries),
        completed_courses=sum(1 for s in summaries if s.is_completed),
        total_lectures=total,
        completed_lectures=completed,
        total_time_spent_seconds=sum(s.time_spent_seconds for s in summaries),
        completion_percentage=completion_percentage(completed, total),
        current_streak=current_streak(db, learner.id, now),
    )

    return LearnerDashboard(
        stats=stats,
        courses=summaries,
        indexes=index_rollup(summaries, index_names),
    )
