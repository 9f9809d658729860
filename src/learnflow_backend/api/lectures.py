import logging
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import apply_updates, get_or_404
from learnflow_backend.api.exceptions import BadRequestException, DependencyException, ForbiddenException
from learnflow_backend.database import get_db
from learnflow_backend.interface.base import MessageResponse
from learnflow_backend.interface.content import LectureCreate, LectureGet, LectureResponse, LectureUpdate
from learnflow_backend.model.content import Lecture, Section
from learnflow_backend.permissions.auth import get_current_principal
from learnflow_backend.permissions.core import require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.activity import log_activity
from learnflow_backend.services.content import next_order_index
from learnflow_backend.services.storage_service import StorageService, get_storage_service
from learnflow_backend.storage_config import VIDEOS_BUCKET

logger = logging.getLogger(__name__)

lecture_router = APIRouter()


def validate_video_source(youtube_url: Optional[str], video_storage_path: Optional[str], video_mime_type: Optional[str]):
    """A lecture carries at most one video source; stored videos need their MIME type."""
    if youtube_url and video_storage_path:
        raise BadRequestException("Provide either a YouTube URL or an uploaded video")
    if video_storage_path and not video_mime_type:
        raise BadRequestException("video_mime_type is required for uploaded videos")


def owns_video_path(storage_path: str, lecture_id: Optional[str], user_id: str) -> bool:
    """Stored videos live under the lecture's own prefix or the author's upload prefix."""
    if ".." in storage_path.split("/"):
        return False
    prefixes = [f"uploads/{user_id}/"]
    if lecture_id:
        prefixes.append(f"lectures/{lecture_id}/")
    return any(storage_path.startswith(prefix) for prefix in prefixes)


def check_video_path(storage_path: Optional[str], lecture_id: Optional[str], principal: Principal):
    if storage_path and not owns_video_path(storage_path, lecture_id, principal.user_id):
        raise ForbiddenException("You do not have access to this video")


async def remove_video(storage: StorageService, storage_path: Optional[str]):
    if not storage_path:
        return
    try:
        await storage.delete_file(storage_path, VIDEOS_BUCKET)
    except DependencyException:
        logger.warning(f"Could not remove video object {storage_path}")


@lecture_router.post("", response_model=LectureResponse)
def create_lecture(
    payload: LectureCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    section = get_or_404(db, Section, payload.section_id, "Section not found")
    require_access(principal, Action.UPDATE, section, db)

    validate_video_source(payload.youtube_url, payload.video_storage_path, payload.video_mime_type)
    check_video_path(payload.video_storage_path, None, principal)

    order_index = payload.order_index
    if order_index is None:
        order_index = next_order_index(db, Lecture.order_index, Lecture.section_id, section.id)

    lecture = Lecture(
        section_id=section.id,
        title=payload.title,
        description=payload.description,
        youtube_url=payload.youtube_url,
        video_storage_path=payload.video_storage_path,
        video_mime_type=payload.video_mime_type if payload.video_storage_path else None,
        order_index=order_index,
        duration_seconds=payload.duration_seconds,
    )
    db.add(lecture)
    db.flush()

    log_activity(db, principal.user_id, "created_lecture", "lecture", lecture.id, {"section_id": section.id})
    db.commit()
    db.refresh(lecture)

    return LectureResponse(lecture=LectureGet.model_validate(lecture))


@lecture_router.patch("", response_model=LectureResponse)
async def update_lecture(
    payload: LectureUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    lecture = get_or_404(db, Lecture, payload.id, "Lecture not found")
    require_access(principal, Action.UPDATE, lecture, db)

    updates = payload.model_dump(exclude_unset=True, exclude={"id"})
    for key in ("title", "order_index", "duration_seconds"):
        if key in updates and updates[key] is None:
            del updates[key]
    if not updates:
        raise BadRequestException("No updates provided")

    youtube_url = updates.get("youtube_url", lecture.youtube_url)
    video_storage_path = updates.get("video_storage_path", lecture.video_storage_path)
    video_mime_type = updates.get("video_mime_type", lecture.video_mime_type)
    validate_video_source(youtube_url, video_storage_path, video_mime_type)
    if video_storage_path != lecture.video_storage_path:
        check_video_path(video_storage_path, lecture.id, principal)
    if not video_storage_path:
        updates["video_mime_type"] = None

    old_video = lecture.video_storage_path
    apply_updates(lecture, updates)

    log_activity(db, principal.user_id, "updated_lecture", "lecture", lecture.id, updates)
    db.commit()
    db.refresh(lecture)

    if old_video and old_video != lecture.video_storage_path and owns_video_path(old_video, lecture.id, principal.user_id):
        await remove_video(storage, old_video)

    return LectureResponse(lecture=LectureGet.model_validate(lecture))


@lecture_router.delete("", response_model=MessageResponse)
async def delete_lecture(
    id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    lecture = get_or_404(db, Lecture, id, "Lecture not found")
    require_access(principal, Action.DELETE, lecture, db)

    video = lecture.video_storage_path
    section_id = lecture.section_id
    db.delete(lecture)
    log_activity(db, principal.user_id, "deleted_lecture", "lecture", id, {"section_id": section_id})
    db.commit()

    if video and owns_video_path(video, id, principal.user_id):
        await remove_video(storage, video)

    return MessageResponse(message="Lecture deleted")
