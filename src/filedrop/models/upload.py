"""Upload data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from filedrop.core.config import settings


class UploadRequest(BaseModel):
    """A single user action (pick file / take photo) to deliver to storage."""

    model_config = ConfigDict(frozen=True)

    local_ref: str = Field(..., description="Filesystem path or file:// URI of the local file")
    suggested_name: str = Field(..., description="Name supplied by the capture source")
    bucket: str = Field(
        default_factory=lambda: settings.DEFAULT_BUCKET, description="Target storage bucket"
    )
    is_image: bool = Field(False, description="True when the file came from a camera or photo picker")


class UploadResult(BaseModel):
    """Terminal outcome of an upload. The only value returned to callers."""

    success: bool
    public_url: Optional[str] = None
    storage_key: Optional[str] = None
    error: Optional[str] = None
    retry_count: int = 0

    @model_validator(mode="after")
    def _check_exhaustive(self) -> "UploadResult":
        if self.success:
            if not self.public_url or not self.storage_key:
                raise ValueError("successful result requires public_url and storage_key")
        elif not self.error:
            raise ValueError("failed result requires an error message")
        return self

    @classmethod
    def ok(cls, public_url: str, storage_key: str, retry_count: int) -> "UploadResult":
        return cls(success=True, public_url=public_url, storage_key=storage_key, retry_count=retry_count)

    @classmethod
    def failed(cls, error: str, retry_count: int = 0) -> "UploadResult":
        return cls(success=False, error=error, retry_count=retry_count)


class DeleteResult(BaseModel):
    """Outcome of a storage object removal."""

    success: bool
    error: Optional[str] = None


class ConnectivityStatus(BaseModel):
    """Result of one connectivity probe run. Never cached between uploads."""

    internet_reachable: bool
    backend_reachable: bool
    latency_ms: Optional[int] = None
    error: Optional[str] = None


class NetworkQuality(str, Enum):
    """Coarse network quality derived from probe latency."""

    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"
    OFFLINE = "offline"


class NetworkDiagnostics(BaseModel):
    """Extended connectivity report for troubleshooting upload problems."""

    status: ConnectivityStatus
    dns_resolving: bool
    quality: NetworkQuality
    errors: list[str] = Field(default_factory=list)
