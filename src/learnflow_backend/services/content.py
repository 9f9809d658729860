"""
Read-side helpers that map content rows into the nested response shapes.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from learnflow_backend.interface.content import (
    CourseDetail,
    CourseGet,
    IndexGet,
    LectureFileGet,
    LectureGet,
    SectionGet,
)
from learnflow_backend.model.content import Course, Index, Lecture, Section
from learnflow_backend.services.storage_service import StorageService
from learnflow_backend.storage_config import VIDEO_URL_EXPIRY, VIDEOS_BUCKET

logger = logging.getLogger(__name__)


def course_stats(db: Session, course_ids: Iterable[str]) -> Dict[str, Tuple[int, int]]:
    """(section_count, lecture_count) per course id."""
    course_ids = list(course_ids)
    stats = {course_id: (0, 0) for course_id in course_ids}
    if not course_ids:
        return stats

    rows = (
        db.query(
            Section.course_id,
            func.count(func.distinct(Section.id)),
            func.count(Lecture.id),
        )
        .outerjoin(Lecture, Lecture.section_id == Section.id)
        .filter(Section.course_id.in_(course_ids))
        .group_by(Section.course_id)
        .all()
    )
    for course_id, sections, lectures in rows:
        stats[course_id] = (sections, lectures)
    return stats


def index_course_counts(db: Session, index_ids: Iterable[str], course_ids: Optional[Iterable[str]] = None) -> Dict[str, int]:
    """Number of courses per index, optionally limited to the given course ids."""
    index_ids = list(index_ids)
    counts = {index_id: 0 for index_id in index_ids}
    if not index_ids:
        return counts

    query = db.query(Course.index_id, func.count(Course.id)).filter(Course.index_id.in_(index_ids))
    if course_ids is not None:
        query = query.filter(Course.id.in_(list(course_ids)))

    for index_id, count in query.group_by(Course.index_id).all():
        counts[index_id] = count
    return counts


def serialize_index(index: Index, course_count: int = 0) -> IndexGet:
    result = IndexGet.model_validate(index)
    result.course_count = course_count
    return result


def serialize_courses(db: Session, courses: List[Course]) -> List[CourseGet]:
    stats = course_stats(db, [course.id for course in courses])
    results = []
    for course in courses:
        item = CourseGet.model_validate(course)
        item.index_name = course.index.name if course.index is not None else None
        item.section_count, item.lecture_count = stats.get(course.id, (0, 0))
        results.append(item)
    return results


async def build_course_detail(course: Course, storage: Optional[StorageService]) -> CourseDetail:
    """Course with sections, lectures and files ordered by order_index; stored videos get a signed URL."""

    sections = []
    lecture_count = 0

    for section in sorted(course.sections, key=lambda s: s.order_index):
        lectures = []
        for lecture in sorted(section.lectures, key=lambda l: l.order_index):
            item = LectureGet.model_validate(lecture)
            item.files = [LectureFileGet.model_validate(f) for f in lecture.files]
            if lecture.video_storage_path and storage is not None:
                item.video_url = await storage.generate_presigned_url(
                    lecture.video_storage_path, VIDEOS_BUCKET, expiry_seconds=VIDEO_URL_EXPIRY
                )
            lectures.append(item)
        lecture_count += len(lectures)

        section_item = SectionGet.model_validate(section)
        section_item.lectures = lectures
        sections.append(section_item)

    detail = CourseDetail.model_validate(course)
    detail.index_name = course.index.name if course.index is not None else None
    detail.section_count = len(sections)
    detail.lecture_count = lecture_count
    detail.sections = sections
    return detail


def next_order_index(db: Session, column, parent_column, parent_id: str) -> int:
    current = db.query(func.max(column)).filter(parent_column == parent_id).scalar()
    return 0 if current is None else current + 1
