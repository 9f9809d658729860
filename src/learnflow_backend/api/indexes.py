import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import apply_updates, get_or_404
from learnflow_backend.api.exceptions import BadRequestException
from learnflow_backend.database import get_db
from learnflow_backend.interface.base import MessageResponse
from learnflow_backend.interface.content import (
    IndexCreate,
    IndexDetail,
    IndexDetailResponse,
    IndexListResponse,
    IndexResponse,
    IndexUpdate,
)
from learnflow_backend.model.content import Course, Index
from learnflow_backend.permissions.auth import get_current_principal
from learnflow_backend.permissions.core import check_permissions, require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.activity import log_activity
from learnflow_backend.services.assignments import resolve_assigned_course_ids
from learnflow_backend.services.content import index_course_counts, serialize_courses, serialize_index

logger = logging.getLogger(__name__)

index_router = APIRouter()


@index_router.get("", response_model=IndexListResponse)
def list_indexes(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    indexes = check_permissions(principal, Index, Action.READ, db).order_by(Index.created_at.desc()).all()

    visible_courses = resolve_assigned_course_ids(db, principal.user_id) if principal.is_learner else None
    counts = index_course_counts(db, [i.id for i in indexes], visible_courses)

    return IndexListResponse(indexes=[serialize_index(i, counts.get(i.id, 0)) for i in indexes])


@index_router.post("", response_model=IndexResponse)
def create_index(
    payload: IndexCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    index = Index(name=payload.name, description=payload.description, created_by=principal.user_id)
    require_access(principal, Action.CREATE, index, db)

    db.add(index)
    db.flush()
    log_activity(db, principal.user_id, "created_index", "index", index.id, {"name": index.name})
    db.commit()
    db.refresh(index)

    return IndexResponse(index=serialize_index(index))


@index_router.get("/{index_id}", response_model=IndexDetailResponse)
def get_index(
    index_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    index = get_or_404(db, Index, index_id, "Index not found")
    require_access(principal, Action.READ, index, db)

    courses = db.query(Course).filter(Course.index_id == index.id)
    if principal.is_learner:
        courses = courses.filter(Course.is_active.is_(True))
    courses = courses.order_by(Course.title).all()

    detail = IndexDetail.model_validate(index)
    detail.courses = serialize_courses(db, courses)
    detail.course_count = len(courses)

    return IndexDetailResponse(index=detail)


@index_router.patch("/{index_id}", response_model=IndexResponse)
def update_index(
    index_id: str,
    payload: IndexUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    index = get_or_404(db, Index, index_id, "Index not found")
    require_access(principal, Action.UPDATE, index, db)

    updates = payload.model_dump(exclude_unset=True)
    for key in ("name", "is_active"):
        if key in updates and updates[key] is None:
            del updates[key]
    if not updates:
        raise BadRequestException("No updates provided")

    apply_updates(index, updates)
    log_activity(db, principal.user_id, "updated_index", "index", index.id, updates)
    db.commit()
    db.refresh(index)

    counts = index_course_counts(db, [index.id])
    return IndexResponse(index=serialize_index(index, counts[index.id]))


@index_router.delete("/{index_id}", response_model=MessageResponse)
def delete_index(
    index_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    index = get_or_404(db, Index, index_id, "Index not found")
    require_access(principal, Action.DELETE, index, db)

    name = index.name
    db.delete(index)
    log_activity(db, principal.user_id, "deleted_index", "index", index_id, {"name": name})
    db.commit()

    logger.info(f"Index {index_id} deleted with its courses")
    return MessageResponse(message="Index deleted")
