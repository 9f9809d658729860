"""
Validation of uploaded files and generation of storage keys.
"""
import os
import re
import secrets
import string
import time
import logging
from typing import BinaryIO, Optional, Tuple

from .storage_config import DANGEROUS_SIGNATURES, UploadRule, format_bytes
from .api.exceptions import BadRequestException

logger = logging.getLogger(__name__)

_KEY_ALPHABET = string.ascii_lowercase + string.digits


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal and other security issues.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    if not filename or not filename.strip():
        return "unnamed_file"

    # keep only the last path component, for both separators
    filename = filename.replace('\\', '/').split('/')[-1]

    if not filename:
        return "unnamed_file"

    if filename.startswith('.'):
        filename = '_' + filename.lstrip('.')

    filename = re.sub(r'[^\w\s.-]', '', filename, flags=re.UNICODE)
    filename = re.sub(r'\s+', '_', filename)
    filename = filename.strip('. ')

    name_parts = filename.rsplit('.', 1)
    if len(name_parts) == 2:
        name, ext = name_parts
        filename = f"{name[:100]}.{ext}"
    else:
        filename = filename[:100]

    if not filename or filename.strip('_') == '':
        filename = "unnamed_file"

    return filename


def file_extension(filename: str, default: str) -> str:
    ext = os.path.splitext(filename)[1].lower().lstrip('.')
    return ext or default


def build_storage_key(prefix: str, filename: str, default_extension: str) -> str:
    """``{prefix}/{millis}-{random}.{ext}``; the original name is kept only in the database."""
    millis = int(time.time() * 1000)
    suffix = ''.join(secrets.choice(_KEY_ALPHABET) for _ in range(10))
    return f"{prefix}/{millis}-{suffix}.{file_extension(filename, default_extension)}"


def validate_upload(rule: UploadRule, filename: str, content_type: Optional[str], file_size: int) -> Tuple[bool, Optional[str]]:
    if file_size == 0:
        return False, "Empty files are not allowed"

    if file_size > rule.max_size:
        return False, f"File size {format_bytes(file_size)} exceeds maximum allowed size of {format_bytes(rule.max_size)}"

    ext = os.path.splitext(filename)[1].lower()
    if ext and ext not in rule.extensions:
        return False, f"File type '{ext}' is not allowed"

    mime = (content_type or 'application/octet-stream').split(';')[0].strip().lower()
    if mime not in rule.mime_types:
        return False, f"Content type '{mime}' is not allowed"

    return True, None


def check_file_content_security(file_data: BinaryIO) -> Tuple[bool, Optional[str]]:
    file_data.seek(0)
    header = file_data.read(256)
    file_data.seek(0)

    for signature, description in DANGEROUS_SIGNATURES.items():
        if header.startswith(signature):
            return False, f"File type not allowed: {description}"

    return True, None


def perform_full_file_validation(
    rule: UploadRule,
    filename: str,
    content_type: Optional[str],
    file_size: int,
    file_data: BinaryIO
) -> None:
    """Raises BadRequestException if the upload violates the rule."""
    valid, error = validate_upload(rule, filename, content_type, file_size)
    if not valid:
        raise BadRequestException(error)

    valid, error = check_file_content_security(file_data)
    if not valid:
        raise BadRequestException(error)

    logger.info(f"File validation passed for: {filename} ({format_bytes(file_size)})")
