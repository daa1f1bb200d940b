"""Removal of previously uploaded storage objects."""

import logging

from filedrop.models.upload import DeleteResult
from filedrop.storage.client import StorageClient
from filedrop.upload.exceptions import FileDropError

logger = logging.getLogger(__name__)

NO_STORAGE_PATH_MESSAGE = "No storage path provided"


class DeletionGateway:
    """Counterpart of UploadOrchestrator: removes an object by its storage key.

    One remove call, no retry. Failures are reported to the caller, who
    decides whether to warn the user; an object whose removal failed stays
    in the bucket. Removing an absent key is reported as success.
    """

    def __init__(self, storage_client: StorageClient):
        self.storage_client = storage_client

    async def delete(self, storage_key: str, bucket: str) -> DeleteResult:
        if not storage_key:
            return DeleteResult(success=False, error=NO_STORAGE_PATH_MESSAGE)

        try:
            removed = await self.storage_client.remove_objects(bucket, [storage_key])
        except FileDropError as e:
            logger.error(
                "Failed to delete object from storage",
                extra={"bucket": bucket, "storage_key": storage_key, "error": str(e)},
            )
            return DeleteResult(success=False, error=str(e))

        logger.info(
            "Deleted object from storage",
            extra={"bucket": bucket, "storage_key": storage_key, "removed_count": len(removed)},
        )
        return DeleteResult(success=True)
