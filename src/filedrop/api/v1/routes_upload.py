"""Upload API routes."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from filedrop.models.upload import DeleteResult, UploadRequest, UploadResult
from filedrop.service import get_deletion_gateway, get_orchestrator
from filedrop.upload.deletion import DeletionGateway
from filedrop.upload.orchestrator import UploadOrchestrator

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)


@router.post("/uploads", response_model=UploadResult, status_code=201)
async def upload_file(
    request: UploadRequest, orchestrator: UploadOrchestrator = Depends(get_orchestrator)
):
    """Upload a local file to storage.

    Failures still return the UploadResult body, with status 502 so callers
    can keep the local copy and warn the user.
    """
    result = await orchestrator.upload(request)
    if not result.success:
        logger.warning(
            f"Upload failed: local_ref={request.local_ref}, error={result.error}, retries={result.retry_count}"
        )
        return JSONResponse(status_code=502, content=result.model_dump())

    logger.info(f"Upload completed: key={result.storage_key}, retries={result.retry_count}")
    return result


@router.delete("/uploads/{bucket}/{storage_key:path}", response_model=DeleteResult)
async def delete_file(
    bucket: str, storage_key: str, gateway: DeletionGateway = Depends(get_deletion_gateway)
):
    """Remove a previously uploaded object."""
    result = await gateway.delete(storage_key, bucket)
    if not result.success:
        return JSONResponse(status_code=502, content=result.model_dump())
    return result
