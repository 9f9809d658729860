import io
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from learnflow_backend.minio_client import MINIO_PUBLIC_URL, get_minio_client, reset_minio_client
from learnflow_backend.services.storage_service import StorageService


@pytest.fixture
def mock_minio_client():
    """Create a mock MinIO client"""
    with patch('learnflow_backend.minio_client.Minio') as mock_minio_class:
        mock_client = MagicMock()
        mock_minio_class.return_value = mock_client

        reset_minio_client()

        yield mock_client

        reset_minio_client()


@pytest.fixture
def storage_service(mock_minio_client):
    return StorageService()


class TestMinIOClient:

    def test_minio_client_singleton(self, mock_minio_client):
        assert get_minio_client() is get_minio_client()

    def test_minio_client_configuration(self):
        with patch('learnflow_backend.minio_client.MINIO_ENDPOINT', 'storage:9000'), \
                patch('learnflow_backend.minio_client.MINIO_SECURE', True), \
                patch('learnflow_backend.minio_client.Minio') as mock_minio:
            reset_minio_client()
            get_minio_client()

            args, kwargs = mock_minio.call_args
            assert args == ('storage:9000',)
            assert kwargs['secure'] is True
        reset_minio_client()


class TestStorageService:

    @pytest.mark.asyncio
    async def test_upload_file(self, storage_service, mock_minio_client):
        mock_minio_client.bucket_exists.return_value = True

        size = await storage_service.upload_file(io.BytesIO(b"test content"), 'lecture/file.txt', 'lecture-files', 'text/plain')

        assert size == 12
        mock_minio_client.make_bucket.assert_not_called()
        kwargs = mock_minio_client.put_object.call_args.kwargs
        assert kwargs['bucket_name'] == 'lecture-files'
        assert kwargs['object_name'] == 'lecture/file.txt'
        assert kwargs['length'] == 12
        assert kwargs['content_type'] == 'text/plain'

    @pytest.mark.asyncio
    async def test_bucket_creation(self, storage_service, mock_minio_client):
        mock_minio_client.bucket_exists.return_value = False

        await storage_service.ensure_bucket_exists('new-bucket')

        mock_minio_client.make_bucket.assert_called_once_with('new-bucket')

    @pytest.mark.asyncio
    async def test_delete_file(self, storage_service, mock_minio_client):
        assert await storage_service.delete_file('lecture/file.txt', 'lecture-files') is True
        mock_minio_client.remove_object.assert_called_once_with('lecture-files', 'lecture/file.txt')

    @pytest.mark.asyncio
    async def test_presigned_download_url(self, storage_service, mock_minio_client):
        mock_minio_client.presigned_get_object.return_value = 'https://example.com/presigned'

        url = await storage_service.generate_presigned_url(
            'lecture/file.pdf', 'lecture-files', expiry_seconds=600, download_name='Week 1.pdf'
        )

        assert url == 'https://example.com/presigned'
        kwargs = mock_minio_client.presigned_get_object.call_args.kwargs
        assert kwargs['expires'] == timedelta(seconds=600)
        assert kwargs['response_headers'] == {
            'response-content-disposition': "attachment; filename*=UTF-8''Week%201.pdf"
        }

    @pytest.mark.asyncio
    async def test_presigned_stream_url(self, storage_service, mock_minio_client):
        await storage_service.generate_presigned_url('lectures/l1/clip.mp4', 'lecture-videos')

        kwargs = mock_minio_client.presigned_get_object.call_args.kwargs
        assert kwargs['expires'] == timedelta(hours=1)
        assert kwargs['response_headers'] is None

    def test_public_url(self, storage_service):
        url = storage_service.public_url('thumbnails/u1/cover image.png', 'course-thumbnails')
        assert url == f"{MINIO_PUBLIC_URL}/course-thumbnails/thumbnails/u1/cover%20image.png"
