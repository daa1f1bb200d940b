"""Caller-facing upload and delete API bound to the configured backend."""

from typing import Optional

from filedrop.core.config import settings
from filedrop.models.upload import DeleteResult, UploadRequest, UploadResult
from filedrop.storage.client import StorageClient
from filedrop.upload.deletion import DeletionGateway
from filedrop.upload.orchestrator import UploadOrchestrator

_storage_client: Optional[StorageClient] = None


def get_storage_client() -> StorageClient:
    """Lazy-load and cache the storage client built from settings."""
    global _storage_client
    if _storage_client is None:
        _storage_client = StorageClient(
            base_url=settings.storage_base_url,
            api_key=settings.STORAGE_API_KEY,
            timeout=settings.transport_timeout,
            cache_control_seconds=settings.CACHE_CONTROL_SECONDS,
        )
    return _storage_client


def get_orchestrator() -> UploadOrchestrator:
    return UploadOrchestrator(get_storage_client(), upload_root=settings.upload_root)


def get_deletion_gateway() -> DeletionGateway:
    return DeletionGateway(get_storage_client())


async def upload(
    local_ref: str, suggested_name: str, bucket: str | None = None, is_image: bool = False
) -> UploadResult:
    """Upload a local file and return its terminal result."""
    request = UploadRequest(
        local_ref=local_ref,
        suggested_name=suggested_name,
        bucket=bucket or settings.DEFAULT_BUCKET,
        is_image=is_image,
    )
    return await get_orchestrator().upload(request)


async def delete(storage_key: str, bucket: str | None = None) -> DeleteResult:
    """Remove an object previously returned as UploadResult.storage_key."""
    return await get_deletion_gateway().delete(storage_key, bucket or settings.DEFAULT_BUCKET)
