import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import apply_updates, commit_or_conflict, flush_or_conflict, get_or_404
from learnflow_backend.api.exceptions import BadRequestException
from learnflow_backend.database import get_db
from learnflow_backend.interface.base import MessageResponse
from learnflow_backend.interface.content import SectionCreate, SectionGet, SectionResponse, SectionUpdate
from learnflow_backend.model.content import Course, Section
from learnflow_backend.permissions.auth import get_current_principal
from learnflow_backend.permissions.core import require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.activity import log_activity
from learnflow_backend.services.content import next_order_index

logger = logging.getLogger(__name__)

section_router = APIRouter()

ORDER_CONFLICT = "A section with this order already exists in the course"


@section_router.post("", response_model=SectionResponse)
def create_section(
    payload: SectionCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    course = get_or_404(db, Course, payload.course_id, "Course not found")
    require_access(principal, Action.UPDATE, course, db)

    order_index = payload.order_index
    if order_index is None:
        order_index = next_order_index(db, Section.order_index, Section.course_id, course.id)

    section = Section(course_id=course.id, title=payload.title, order_index=order_index)
    db.add(section)
    flush_or_conflict(db, ORDER_CONFLICT)

    log_activity(db, principal.user_id, "created_section", "section", section.id, {"course_id": course.id})
    commit_or_conflict(db, ORDER_CONFLICT)
    db.refresh(section)

    return SectionResponse(section=SectionGet.model_validate(section))


@section_router.patch("", response_model=SectionResponse)
def update_section(
    payload: SectionUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    section = get_or_404(db, Section, payload.id, "Section not found")
    require_access(principal, Action.UPDATE, section, db)

    updates = payload.model_dump(exclude_unset=True, exclude={"id"}, exclude_none=True)
    if not updates:
        raise BadRequestException("No updates provided")

    apply_updates(section, updates)
    log_activity(db, principal.user_id, "updated_section", "section", section.id, updates)
    commit_or_conflict(db, ORDER_CONFLICT)
    db.refresh(section)

    return SectionResponse(section=SectionGet.model_validate(section))


@section_router.delete("", response_model=MessageResponse)
def delete_section(
    id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    section = get_or_404(db, Section, id, "Section not found")
    require_access(principal, Action.DELETE, section, db)

    course_id = section.course_id
    db.delete(section)
    log_activity(db, principal.user_id, "deleted_section", "section", id, {"course_id": course_id})
    db.commit()

    return MessageResponse(message="Section deleted")
