import logging
from datetime import timedelta
from typing import BinaryIO, Optional
from urllib.parse import quote
from minio.error import S3Error

from ..minio_client import get_minio_client, MINIO_PUBLIC_URL
from ..api.exceptions import DependencyException

logger = logging.getLogger(__name__)


class StorageService:
    """Service for handling MinIO storage operations"""

    def __init__(self):
        self.client = get_minio_client()

    async def ensure_bucket_exists(self, bucket: str) -> str:
        """Ensure bucket exists, create if it doesn't"""
        try:
            if not self.client.bucket_exists(bucket):
                self.client.make_bucket(bucket)
                logger.info(f"Created bucket: {bucket}")
        except S3Error as e:
            logger.error(f"Error ensuring bucket exists: {e}")
            raise DependencyException("Storage service unavailable")
        return bucket

    async def upload_file(
        self,
        file_data: BinaryIO,
        object_key: str,
        bucket: str,
        content_type: Optional[str] = None,
    ) -> int:
        """Upload a file and return its size in bytes"""
        await self.ensure_bucket_exists(bucket)

        try:
            file_data.seek(0, 2)
            file_size = file_data.tell()
            file_data.seek(0)

            self.client.put_object(
                bucket_name=bucket,
                object_name=object_key,
                data=file_data,
                length=file_size,
                content_type=content_type or 'application/octet-stream',
            )

            logger.info(f"Uploaded object: {bucket}/{object_key}")
            return file_size

        except S3Error as e:
            logger.error(f"Error uploading file: {e}")
            raise DependencyException("Failed to upload file")

    async def delete_file(self, object_key: str, bucket: str) -> bool:
        try:
            self.client.remove_object(bucket, object_key)
            logger.info(f"Deleted object: {bucket}/{object_key}")
            return True
        except S3Error as e:
            logger.error(f"Error deleting file: {e}")
            raise DependencyException("Failed to delete file")

    async def generate_presigned_url(
        self,
        object_key: str,
        bucket: str,
        expiry_seconds: int = 3600,
        download_name: Optional[str] = None,
    ) -> str:
        """Generate a time-limited GET URL, optionally forcing a download filename"""
        response_headers = None
        if download_name:
            response_headers = {
                "response-content-disposition": f"attachment; filename*=UTF-8''{quote(download_name)}"
            }

        try:
            return self.client.presigned_get_object(
                bucket_name=bucket,
                object_name=object_key,
                expires=timedelta(seconds=expiry_seconds),
                response_headers=response_headers,
            )
        except S3Error as e:
            logger.error(f"Error generating presigned URL: {e}")
            raise DependencyException("Failed to create download link")

    def public_url(self, object_key: str, bucket: str) -> str:
        return f"{MINIO_PUBLIC_URL}/{bucket}/{quote(object_key)}"


# Singleton instance getter
_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Get the singleton storage service instance"""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
