"""Upload orchestration: naming, preconditions, probes and bounded retry."""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Union

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_exponential

from filedrop.core.config import settings
from filedrop.core.logging import storage_key_context
from filedrop.models.upload import UploadRequest, UploadResult
from filedrop.storage.client import StorageClient
from filedrop.storage.local import get_file_size, resolve_local_path
from filedrop.upload import filename
from filedrop.upload.connectivity import ConnectivityProbe
from filedrop.upload.exceptions import (
    BackendUnreachableError,
    FileDropError,
    InternetUnreachableError,
    LocalFileReadError,
    LocalPreconditionError,
    TransportError,
    ValidationError,
)
from filedrop.upload.signature import detect_extension
from filedrop.upload.transports import TransportCascade, UploadPayload

logger = logging.getLogger(__name__)

FILE_MISSING_MESSAGE = "File does not exist at the specified location"
FILE_EMPTY_MESSAGE = "File is empty"
OUTSIDE_UPLOAD_ROOT_MESSAGE = "File is outside the upload directory"
NO_INTERNET_MESSAGE = "No internet connection. Please check your network and try again."
BACKEND_UNREACHABLE_MESSAGE = "Cannot reach storage servers. Please check your connection and try again."


class FailureCategory(str, Enum):
    """User-facing failure categories. Only affect the message, never control flow."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    BACKEND = "backend"
    LOCAL_READ = "local_read"
    GENERIC = "generic"


FAILURE_MESSAGES: Dict[FailureCategory, str] = {
    FailureCategory.NETWORK: "Network connection failed. Please check your internet connection and try again.",
    FailureCategory.TIMEOUT: "Upload timed out. Please try again with a better connection.",
    FailureCategory.BACKEND: "Storage service error. Please try again later.",
    FailureCategory.LOCAL_READ: "Could not read the file. Please ensure the file is accessible.",
}


def categorize_failure(message: str) -> FailureCategory:
    """Classify a raw error string by substring."""
    if "Network request failed" in message:
        return FailureCategory.NETWORK
    if "timeout" in message.lower():
        return FailureCategory.TIMEOUT
    if "Storage" in message:
        return FailureCategory.BACKEND
    if "Failed to read file" in message:
        return FailureCategory.LOCAL_READ
    return FailureCategory.GENERIC


def describe_failure(message: str) -> str:
    """Turn a raw error string into an actionable message."""
    category = categorize_failure(message)
    if category is FailureCategory.GENERIC:
        return f"Upload error: {message}"
    return FAILURE_MESSAGES[category]


class UploadOrchestrator:
    """Delivers one UploadRequest to storage and returns a terminal UploadResult.

    Steps run strictly in order: resolve the name, check the local file,
    probe connectivity, then retry the transport cascade with exponential
    backoff. Every path returns an UploadResult; nothing is raised to the
    caller.
    """

    def __init__(
        self,
        storage_client: StorageClient,
        probe: Optional[ConnectivityProbe] = None,
        cascade: Optional[TransportCascade] = None,
        key_factory: Optional[filename.ObjectKeyFactory] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        use_signed_urls: Optional[bool] = None,
        upload_root: Optional[Union[str, Path]] = None,
    ):
        """Initialize the orchestrator.

        Args:
            storage_client: Client for the storage backend
            probe: Connectivity probe (defaults to one bound to storage_client)
            cascade: Transport cascade (defaults to direct, multipart, blob)
            key_factory: Object key factory (defaults to the process-wide one)
            max_retries: Retries after the first attempt (settings.MAX_RETRIES)
            base_delay: Backoff base in seconds (settings.BASE_DELAY_MS)
            sleep: Awaitable used for backoff sleeps
            use_signed_urls: Return signed instead of public URLs
            upload_root: Only files under this directory are read (None reads any path)
        """
        self.storage_client = storage_client
        self.probe = probe or ConnectivityProbe(storage_client)
        self.cascade = cascade or TransportCascade.default(storage_client, settings.transport_timeout)
        self.key_factory = key_factory or filename.key_factory
        self.max_retries = settings.MAX_RETRIES if max_retries is None else max_retries
        self.base_delay = settings.base_delay_seconds if base_delay is None else base_delay
        self.use_signed_urls = settings.USE_SIGNED_URLS if use_signed_urls is None else use_signed_urls
        self.upload_root = Path(upload_root).resolve() if upload_root is not None else None
        self._sleep = sleep

    async def upload(self, request: UploadRequest) -> UploadResult:
        token = storage_key_context.set(None)
        try:
            return await self._upload(request)
        except FileDropError as e:
            logger.error("Upload failed", extra={"local_ref": request.local_ref, "error": str(e)})
            return UploadResult.failed(describe_failure(str(e)))
        except Exception as e:
            logger.exception("Unexpected upload error", extra={"local_ref": request.local_ref})
            return UploadResult.failed(describe_failure(str(e) or type(e).__name__))
        finally:
            storage_key_context.reset(token)

    async def resolve_file_name(self, request: UploadRequest) -> str:
        """Sniff (when needed), default the extension, then sanitize."""
        name = request.suggested_name
        if name.startswith("/"):
            name = name[1:]

        detected = None
        if not filename.has_extension(name):
            detected = await detect_extension(request.local_ref)
        resolved = filename.sanitize(filename.ensure_extension(name, request.is_image, detected))

        if resolved != request.suggested_name:
            logger.info("Resolved upload file name", extra={"original": request.suggested_name, "resolved": resolved})
        return resolved

    async def _upload(self, request: UploadRequest) -> UploadResult:
        logger.info("Starting upload", extra={"local_ref": request.local_ref, "bucket": request.bucket})

        try:
            self._check_upload_root(request.local_ref)
            file_name = await self.resolve_file_name(request)
            size_bytes = await self._check_local_file(request.local_ref)
            self._validate(file_name, size_bytes)
            await self._check_connectivity()
        except (LocalPreconditionError, ValidationError, InternetUnreachableError, BackendUnreachableError) as e:
            logger.warning("Upload rejected before transport", extra={"local_ref": request.local_ref, "error": str(e)})
            return UploadResult.failed(str(e), retry_count=0)

        key = self.key_factory.new_key(file_name)
        storage_key_context.set(key)
        payload = UploadPayload(
            local_ref=request.local_ref,
            file_name=file_name,
            bucket=request.bucket,
            key=key,
            content_type=filename.content_type_for(file_name),
        )
        logger.info(
            "Prepared upload",
            extra={"key": key, "content_type": payload.content_type, "size_bytes": size_bytes},
        )

        try:
            attempt_index = await self._run_with_retry(payload)
        except TransportError as e:
            logger.error(
                f"Upload failed after {self.max_retries + 1} attempts",
                extra={"key": key, "final_error": str(e)},
            )
            return UploadResult.failed(describe_failure(str(e)), retry_count=self.max_retries + 1)

        public_url = await self._resolve_url(request.bucket, key)
        logger.info("Upload completed", extra={"key": key, "retry_count": attempt_index})
        return UploadResult.ok(public_url=public_url, storage_key=key, retry_count=attempt_index)

    def _check_upload_root(self, local_ref: str) -> None:
        if self.upload_root is None:
            return
        try:
            path = resolve_local_path(local_ref).resolve()
        except (LocalFileReadError, OSError, RuntimeError) as e:
            raise LocalPreconditionError(OUTSIDE_UPLOAD_ROOT_MESSAGE) from e
        if not path.is_relative_to(self.upload_root):
            logger.warning(
                "Refusing file outside upload root",
                extra={"local_ref": local_ref, "upload_root": str(self.upload_root)},
            )
            raise LocalPreconditionError(OUTSIDE_UPLOAD_ROOT_MESSAGE)

    async def _check_local_file(self, local_ref: str) -> int:
        size_bytes = await get_file_size(local_ref)
        if size_bytes is None:
            raise LocalPreconditionError(FILE_MISSING_MESSAGE)
        if size_bytes == 0:
            raise LocalPreconditionError(FILE_EMPTY_MESSAGE)
        return size_bytes

    def _validate(self, file_name: str, size_bytes: int) -> None:
        if not settings.ENFORCE_UPLOAD_VALIDATION:
            logger.debug("File type and size validation bypassed", extra={"file_name": file_name})
            return

        ext = filename.extension_of(file_name)
        supported = settings.supported_extensions
        if ext is None:
            raise ValidationError(f"No file extension found. Supported types: {', '.join(supported)}")
        if ext not in supported:
            raise ValidationError(f'Unsupported file type: "{ext}". Supported types: {", ".join(supported)}')
        if size_bytes > settings.max_file_size_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {settings.MAX_FILE_SIZE_MB}MB. "
                f"Current size: {size_bytes / (1024 * 1024):.2f}MB"
            )

    async def _check_connectivity(self) -> None:
        status = await self.probe.probe()
        if not status.internet_reachable:
            raise InternetUnreachableError(NO_INTERNET_MESSAGE)
        if not status.backend_reachable:
            raise BackendUnreachableError(BACKEND_UNREACHABLE_MESSAGE)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"Attempt {retry_state.attempt_number} failed, retrying in {delay:.1f}s",
            extra={"attempt": retry_state.attempt_number, "delay_seconds": delay, "error": str(error)},
        )

    async def _run_with_retry(self, payload: UploadPayload) -> int:
        """Run the cascade until it succeeds. Returns the zero-based attempt index.

        Raises:
            TransportError: If every attempt failed
        """
        attempt_index = 0
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            retry=retry_if_exception_type(TransportError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                attempt_index = attempt.retry_state.attempt_number - 1
                logger.info(
                    f"Upload attempt {attempt_index + 1}/{self.max_retries + 1}",
                    extra={"key": payload.key, "attempt": attempt_index + 1},
                )
                outcome = await self.cascade.run(payload)
                if not outcome.ok:
                    raise TransportError(outcome.error or "Upload failed")
        return attempt_index

    async def _resolve_url(self, bucket: str, key: str) -> str:
        if self.use_signed_urls:
            return await self.storage_client.signed_url(bucket, key, settings.SIGNED_URL_EXPIRES_SECONDS)
        return self.storage_client.public_url(bucket, key)
