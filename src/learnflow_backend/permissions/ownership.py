from typing import Any, Optional

from learnflow_backend.model.content import Course, Index, Lecture, LectureFile, Section


def content_course(entity: Any) -> Optional[Course]:
    """Walk up from a content node to the course it belongs to (None for indexes)."""
    if isinstance(entity, Course):
        return entity
    if isinstance(entity, Section):
        return entity.course
    if isinstance(entity, Lecture):
        return content_course(entity.section) if entity.section is not None else None
    if isinstance(entity, LectureFile):
        return content_course(entity.lecture) if entity.lecture is not None else None
    return None


def content_owner_id(entity: Any) -> Optional[str]:
    """Trace the owning trainer/crm of a content node through its created_by chain."""
    if isinstance(entity, Index):
        return entity.created_by
    if isinstance(entity, Course):
        if entity.index is not None:
            return entity.index.created_by
        return entity.created_by
    if isinstance(entity, Section):
        return content_owner_id(entity.course) if entity.course is not None else None
    if isinstance(entity, Lecture):
        return content_owner_id(entity.section) if entity.section is not None else None
    if isinstance(entity, LectureFile):
        return content_owner_id(entity.lecture) if entity.lecture is not None else None
    return None
