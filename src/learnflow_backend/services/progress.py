"""
Progress bookkeeping and aggregation.

Per-lecture rows only ever grow: ``time_spent_seconds`` is incremented in the
store and ``is_completed`` flips from false to true exactly once.
"""

import logging
import math
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence
from sqlalchemy.orm import Session

from learnflow_backend.api.exceptions import BadRequestException
from learnflow_backend.interface.progress import (
    CourseProgressSummary,
    IndexProgressSummary,
    ProgressSummary,
)
from learnflow_backend.model.auth import UserSession
from learnflow_backend.model.content import Course, Lecture, Section
from learnflow_backend.model.progress import LectureProgress
from learnflow_backend.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

AUTO_COMPLETE_RATIO = 0.9
STREAK_WINDOW_DAYS = 30


def completion_percentage(completed: int, total: int) -> int:
    """Whole percent, halves rounded up; an empty course is 0%."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def should_auto_complete(session_watched_seconds: Optional[int], duration_seconds: Optional[int]) -> bool:
    if not duration_seconds or duration_seconds <= 0 or session_watched_seconds is None:
        return False
    threshold = max(1, math.floor(duration_seconds * AUTO_COMPLETE_RATIO))
    return session_watched_seconds >= threshold


def record_progress(
    db: Session,
    user_id: str,
    lecture: Lecture,
    time_spent_seconds: int = 0,
    is_completed: bool = False,
    session_watched_seconds: Optional[int] = None,
    now: Optional[datetime] = None,
) -> LectureProgress:
    """Merge a progress report into the (user, lecture) row."""

    if time_spent_seconds < 0:
        raise BadRequestException("time_spent_seconds must not be negative")

    now = now or utcnow()
    complete = bool(is_completed) or should_auto_complete(session_watched_seconds, lecture.duration_seconds)

    progress = (
        db.query(LectureProgress)
        .filter(LectureProgress.user_id == user_id, LectureProgress.lecture_id == lecture.id)
        .first()
    )

    if progress is None:
        progress = LectureProgress(
            user_id=user_id,
            lecture_id=lecture.id,
            time_spent_seconds=time_spent_seconds,
            is_completed=complete,
            completed_at=now if complete else None,
            last_watched_at=now,
        )
        db.add(progress)
        db.flush()
        return progress

    db.query(LectureProgress).filter(LectureProgress.id == progress.id).update(
        {
            LectureProgress.time_spent_seconds: LectureProgress.time_spent_seconds + time_spent_seconds,
            LectureProgress.last_watched_at: now,
        },
        synchronize_session=False,
    )

    if complete:
        db.query(LectureProgress).filter(
            LectureProgress.id == progress.id,
            LectureProgress.is_completed.is_(False),
        ).update(
            {LectureProgress.is_completed: True, LectureProgress.completed_at: now},
            synchronize_session=False,
        )

    db.flush()
    db.refresh(progress)
    return progress


def summarize(progress_rows: Iterable[LectureProgress], total_lectures: int) -> ProgressSummary:
    rows = list(progress_rows)
    return ProgressSummary(
        total_lectures=total_lectures,
        completed_lectures=sum(1 for row in rows if row.is_completed),
        total_time_spent_seconds=sum(row.time_spent_seconds or 0 for row in rows),
    )


def lecture_ids_by_course(db: Session, course_ids: Iterable[str]) -> Dict[str, List[str]]:
    course_ids = list(course_ids)
    result: Dict[str, List[str]] = {course_id: [] for course_id in course_ids}
    if not course_ids:
        return result

    rows = (
        db.query(Section.course_id, Lecture.id)
        .join(Lecture, Lecture.section_id == Section.id)
        .filter(Section.course_id.in_(course_ids))
        .all()
    )
    for course_id, lecture_id in rows:
        result[course_id].append(lecture_id)
    return result


def progress_by_lecture(db: Session, user_id: str, lecture_ids: Optional[Iterable[str]] = None) -> Dict[str, LectureProgress]:
    query = db.query(LectureProgress).filter(LectureProgress.user_id == user_id)
    if lecture_ids is not None:
        lecture_ids = list(lecture_ids)
        if not lecture_ids:
            return {}
        query = query.filter(LectureProgress.lecture_id.in_(lecture_ids))
    return {row.lecture_id: row for row in query.all()}


def course_progress(course: Course, lecture_ids: Sequence[str], progress: Dict[str, LectureProgress]) -> CourseProgressSummary:
    rows = [progress[lid] for lid in lecture_ids if lid in progress]
    completed = sum(1 for row in rows if row.is_completed)
    return CourseProgressSummary(
        course_id=course.id,
        title=course.title,
        index_id=course.index_id,
        total_lectures=len(lecture_ids),
        completed_lectures=completed,
        time_spent_seconds=sum(row.time_spent_seconds or 0 for row in rows),
        completion_percentage=completion_percentage(completed, len(lecture_ids)),
    )


def compute_progress(db: Session, user_id: str, courses: Sequence[Course]) -> List[CourseProgressSummary]:
    """Per-course rollup for the given courses (typically the learner's resolved set)."""

    lectures = lecture_ids_by_course(db, [course.id for course in courses])
    all_lecture_ids = [lid for ids in lectures.values() for lid in ids]
    progress = progress_by_lecture(db, user_id, all_lecture_ids)

    return [course_progress(course, lectures[course.id], progress) for course in courses]


def index_rollup(course_summaries: Iterable[CourseProgressSummary], index_names: Dict[str, str]) -> List[IndexProgressSummary]:
    grouped: Dict[str, List[CourseProgressSummary]] = defaultdict(list)
    for summary in course_summaries:
        grouped[summary.index_id].append(summary)

    rollups = []
    for index_id, summaries in grouped.items():
        total = sum(s.total_lectures for s in summaries)
        completed = sum(s.completed_lectures for s in summaries)
        rollups.append(IndexProgressSummary(
            index_id=index_id,
            name=index_names.get(index_id),
            course_count=len(summaries),
            completed_courses=sum(1 for s in summaries if s.is_completed),
            total_lectures=total,
            completed_lectures=completed,
            completion_percentage=completion_percentage(completed, total),
        ))

    return sorted(rollups, key=lambda r: (r.name or "").lower())


def compute_streak(session_days: Iterable[date], today: date) -> int:
    """Consecutive days with a login, ending today or, without a login today, yesterday."""

    window_start = today - timedelta(days=STREAK_WINDOW_DAYS - 1)
    days = {day for day in session_days if window_start <= day <= today}

    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def login_days(db: Session, user_id: str, today: date) -> List[date]:
    window_start = datetime.combine(today - timedelta(days=STREAK_WINDOW_DAYS - 1), time.min, tzinfo=timezone.utc)
    rows = (
        db.query(UserSession.login_at)
        .filter(UserSession.user_id == user_id, UserSession.login_at >= window_start)
        .all()
    )
    return sorted({ensure_utc(row[0]).date() for row in rows})


def current_streak(db: Session, user_id: str, now: Optional[datetime] = None) -> int:
    today = (now or utcnow()).date()
    return compute_streak(login_days(db, user_id, today), today)
