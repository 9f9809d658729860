import io
import logging
from typing import Annotated
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import get_or_404
from learnflow_backend.api.exceptions import DependencyException
from learnflow_backend.database import get_db
from learnflow_backend.interface.base import MessageResponse
from learnflow_backend.interface.content import (
    DownloadUrlResponse,
    FileDownloadRequest,
    FileResponse,
    LectureFileGet,
)
from learnflow_backend.model.content import Lecture, LectureFile
from learnflow_backend.model.progress import FileDownload
from learnflow_backend.permissions.auth import get_current_principal
from learnflow_backend.permissions.core import require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.activity import log_activity
from learnflow_backend.services.storage_service import StorageService, get_storage_service
from learnflow_backend.storage_config import DOWNLOAD_URL_EXPIRY, UPLOAD_RULES, format_bytes
from learnflow_backend.storage_security import build_storage_key, perform_full_file_validation, sanitize_filename

logger = logging.getLogger(__name__)

file_router = APIRouter()


@file_router.post("", response_model=FileResponse)
async def upload_lecture_file(
    principal: Annotated[Principal, Depends(get_current_principal)],
    file: UploadFile = File(...),
    lecture_id: str = Form(...),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Attach a downloadable resource to a lecture."""

    lecture = get_or_404(db, Lecture, lecture_id, "Lecture not found")
    require_access(principal, Action.UPDATE, lecture, db)

    rule = UPLOAD_RULES["file"]
    content = await file.read()
    file_data = io.BytesIO(content)
    file_name = sanitize_filename(file.filename)

    perform_full_file_validation(rule, file_name, file.content_type, len(content), file_data)

    object_key = build_storage_key(lecture.id, file_name, rule.default_extension)
    logger.info(f"Uploading lecture file: {object_key} ({format_bytes(len(content))})")
    size = await storage.upload_file(file_data, object_key, rule.bucket, content_type=file.content_type)

    lecture_file = LectureFile(
        lecture_id=lecture.id,
        uploaded_by=principal.user_id,
        file_name=file_name,
        storage_path=object_key,
        file_size=size,
        file_type=file.content_type,
    )
    db.add(lecture_file)
    db.flush()

    log_activity(db, principal.user_id, "uploaded_file", "file", lecture_file.id,
                 {"lecture_id": lecture.id, "file_name": file_name})
    db.commit()
    db.refresh(lecture_file)

    return FileResponse(file=LectureFileGet.model_validate(lecture_file))


@file_router.delete("", response_model=MessageResponse)
async def delete_lecture_file(
    id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    lecture_file = get_or_404(db, LectureFile, id, "File not found")
    require_access(principal, Action.DELETE, lecture_file, db)

    storage_path = lecture_file.storage_path
    log_activity(db, principal.user_id, "deleted_file", "file", id,
                 {"lecture_id": lecture_file.lecture_id, "file_name": lecture_file.file_name})
    db.delete(lecture_file)
    db.commit()

    try:
        await storage.delete_file(storage_path, UPLOAD_RULES["file"].bucket)
    except DependencyException:
        logger.warning(f"Could not remove file object {storage_path}")

    return MessageResponse(message="File deleted")


@file_router.post("/download", response_model=DownloadUrlResponse)
async def download_lecture_file(
    payload: FileDownloadRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Signed download link, valid for a few minutes; every request is recorded."""

    lecture_file = get_or_404(db, LectureFile, payload.file_id, "File not found")
    require_access(principal, Action.READ, lecture_file, db)

    url = await storage.generate_presigned_url(
        lecture_file.storage_path,
        UPLOAD_RULES["file"].bucket,
        expiry_seconds=DOWNLOAD_URL_EXPIRY,
        download_name=lecture_file.file_name,
    )

    db.add(FileDownload(user_id=principal.user_id, file_id=lecture_file.id))
    db.commit()

    return DownloadUrlResponse(url=url)
