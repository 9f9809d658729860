"""
Direct media uploads: course thumbnails and lecture videos.

The returned ``storage_path`` (and for thumbnails the public ``url``) is then
written onto the course or lecture through the regular PATCH/POST endpoints.
"""

import io
import logging
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import get_or_404
from learnflow_backend.database import get_db
from learnflow_backend.interface.content import UploadResponse
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.content import Lecture
from learnflow_backend.permissions.auth import require_roles
from learnflow_backend.permissions.core import require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.storage_service import StorageService, get_storage_service
from learnflow_backend.storage_config import UPLOAD_RULES, UploadRule
from learnflow_backend.storage_security import build_storage_key, perform_full_file_validation, sanitize_filename

logger = logging.getLogger(__name__)

upload_router = APIRouter()

require_author = require_roles(UserRole.TRAINER, UserRole.CRM)


async def store_upload(storage: StorageService, rule: UploadRule, file: UploadFile, prefix: str) -> UploadResponse:
    content = await file.read()
    file_data = io.BytesIO(content)
    file_name = sanitize_filename(file.filename)

    perform_full_file_validation(rule, file_name, file.content_type, len(content), file_data)

    object_key = build_storage_key(prefix, file_name, rule.default_extension)
    size = await storage.upload_file(file_data, object_key, rule.bucket, content_type=file.content_type)

    return UploadResponse(
        storage_path=object_key,
        file_name=file_name,
        file_size=size,
        mime_type=file.content_type,
    )


@upload_router.post("/thumbnails", response_model=UploadResponse)
async def upload_thumbnail(
    principal: Annotated[Principal, Depends(require_author)],
    file: UploadFile = File(...),
    storage: StorageService = Depends(get_storage_service),
):
    rule = UPLOAD_RULES["thumbnail"]
    result = await store_upload(storage, rule, file, f"thumbnails/{principal.user_id}")
    result.url = storage.public_url(result.storage_path, rule.bucket)
    return result


@upload_router.post("/videos", response_model=UploadResponse)
async def upload_video(
    principal: Annotated[Principal, Depends(require_author)],
    file: UploadFile = File(...),
    lecture_id: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    if lecture_id:
        lecture = get_or_404(db, Lecture, lecture_id, "Lecture not found")
        require_access(principal, Action.UPDATE, lecture, db)
        prefix = f"lectures/{lecture.id}"
    else:
        prefix = f"uploads/{principal.user_id}"

    return await store_upload(storage, UPLOAD_RULES["video"], file, prefix)
