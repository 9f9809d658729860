"""
Storage buckets and upload restrictions.
"""
import os
from dataclasses import dataclass
from typing import FrozenSet, Dict

LECTURE_FILES_BUCKET = os.environ.get('LECTURE_FILES_BUCKET', 'lecture-files')
THUMBNAILS_BUCKET = os.environ.get('THUMBNAILS_BUCKET', 'course-thumbnails')
VIDEOS_BUCKET = os.environ.get('VIDEOS_BUCKET', 'lecture-videos')

# Signed URL lifetimes in seconds
VIDEO_URL_EXPIRY = int(os.environ.get('VIDEO_URL_EXPIRY', 60 * 60))
DOWNLOAD_URL_EXPIRY = int(os.environ.get('DOWNLOAD_URL_EXPIRY', 10 * 60))


@dataclass(frozen=True)
class UploadRule:
    bucket: str
    max_size: int
    extensions: FrozenSet[str]
    mime_types: FrozenSet[str]
    default_extension: str


DOCUMENT_EXTENSIONS = frozenset({
    '.pdf', '.doc', '.docx', '.odt', '.txt', '.md', '.rtf',
    '.xls', '.xlsx', '.csv', '.ods',
    '.ppt', '.pptx', '.odp',
    '.jpg', '.jpeg', '.png', '.gif', '.webp',
    '.zip',
})

DOCUMENT_MIME_TYPES = frozenset({
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.oasis.opendocument.text',
    'text/plain',
    'text/markdown',
    'application/rtf',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'text/csv',
    'application/vnd.oasis.opendocument.spreadsheet',
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'application/vnd.oasis.opendocument.presentation',
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/webp',
    'application/zip',
    'application/x-zip-compressed',
    'application/octet-stream',
})

IMAGE_EXTENSIONS = frozenset({'.jpg', '.jpeg', '.png', '.gif', '.webp'})
IMAGE_MIME_TYPES = frozenset({'image/jpeg', 'image/png', 'image/gif', 'image/webp'})

VIDEO_EXTENSIONS = frozenset({'.mp4', '.webm', '.mov', '.m4v', '.mkv'})
VIDEO_MIME_TYPES = frozenset({
    'video/mp4', 'video/webm', 'video/quicktime', 'video/x-m4v', 'video/x-matroska',
    'application/octet-stream',
})

UPLOAD_RULES: Dict[str, UploadRule] = {
    'file': UploadRule(
        bucket=LECTURE_FILES_BUCKET,
        max_size=int(os.environ.get('MAX_FILE_UPLOAD_SIZE', 50 * 1024 * 1024)),
        extensions=DOCUMENT_EXTENSIONS,
        mime_types=DOCUMENT_MIME_TYPES,
        default_extension='bin',
    ),
    'thumbnail': UploadRule(
        bucket=THUMBNAILS_BUCKET,
        max_size=int(os.environ.get('MAX_THUMBNAIL_UPLOAD_SIZE', 5 * 1024 * 1024)),
        extensions=IMAGE_EXTENSIONS,
        mime_types=IMAGE_MIME_TYPES,
        default_extension='png',
    ),
    'video': UploadRule(
        bucket=VIDEOS_BUCKET,
        max_size=int(os.environ.get('MAX_VIDEO_UPLOAD_SIZE', 2 * 1024 * 1024 * 1024)),
        extensions=VIDEO_EXTENSIONS,
        mime_types=VIDEO_MIME_TYPES,
        default_extension='mp4',
    ),
}

# Dangerous file signatures to block
DANGEROUS_SIGNATURES: Dict[bytes, str] = {
    b'MZ': 'Windows executable',
    b'\x7fELF': 'Linux executable',
    b'\xfe\xed\xfa\xce': 'Mach-O executable (32-bit)',
    b'\xfe\xed\xfa\xcf': 'Mach-O executable (64-bit)',
    b'\xca\xfe\xba\xbe': 'Java class file',
}


def format_bytes(bytes_size: int) -> str:
    """Format bytes to human readable string"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} TB"
