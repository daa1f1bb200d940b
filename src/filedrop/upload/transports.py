"""Transport strategies for pushing a local file to the storage backend."""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import AsyncIterable, AsyncIterator, List, Optional, Sequence

from filedrop.storage import local
from filedrop.storage.client import StorageClient
from filedrop.upload.exceptions import FileDropError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadPayload:
    """Everything a strategy needs to write one object."""

    local_ref: str
    file_name: str
    bucket: str
    key: str
    content_type: str


@dataclass
class TransportOutcome:
    """Result of one strategy, or of a whole cascade."""

    ok: bool
    strategy: str
    error: Optional[str] = None
    attempts: List["TransportOutcome"] = field(default_factory=list)


class TransportStrategy(ABC):
    """Abstract base class for transport strategies."""

    name: str = "base"

    def __init__(self, storage_client: StorageClient):
        self.storage_client = storage_client

    @abstractmethod
    async def push(self, payload: UploadPayload) -> None:
        """Write the payload to the backend.

        Raises:
            FileDropError: If the local read or the backend write fails
        """
        pass

    async def send(self, payload: UploadPayload, timeout: float) -> TransportOutcome:
        """Run push() under a timeout and report the outcome without raising."""
        try:
            await asyncio.wait_for(self.push(payload), timeout=timeout)
        except asyncio.TimeoutError:
            return TransportOutcome(ok=False, strategy=self.name, error=f"{self.name}: Request timeout")
        except FileDropError as e:
            return TransportOutcome(ok=False, strategy=self.name, error=str(e))
        except Exception as e:
            logger.exception("Unexpected transport failure", extra={"strategy": self.name})
            return TransportOutcome(ok=False, strategy=self.name, error=f"{self.name}: {e}")
        return TransportOutcome(ok=True, strategy=self.name)


class DirectBinaryTransport(TransportStrategy):
    """Read the whole file and write it as a raw request body."""

    name = "direct_binary"

    async def push(self, payload: UploadPayload) -> None:
        data = await local.read_bytes_direct(payload.local_ref)
        logger.debug("Direct upload", extra={"key": payload.key, "size_bytes": len(data)})
        await self.storage_client.upload_object(payload.bucket, payload.key, data, payload.content_type)


class MultipartFormTransport(TransportStrategy):
    """Wrap the file in a single-part multipart body for the upload endpoint."""

    name = "multipart_form"

    async def push(self, payload: UploadPayload) -> None:
        path = local.resolve_local_path(payload.local_ref)
        data = await local.read_bytes_direct(str(path))
        await self.storage_client.upload_multipart(
            payload.bucket, payload.key, data, payload.file_name, payload.content_type
        )


class FetchedBlobTransport(TransportStrategy):
    """Re-read the resource through the generic byte fetch, then write it raw."""

    name = "fetched_blob"

    async def push(self, payload: UploadPayload) -> None:
        data = await local.fetch_bytes(payload.local_ref)
        logger.debug("Blob upload", extra={"key": payload.key, "size_bytes": len(data)})
        await self.storage_client.upload_object(payload.bucket, payload.key, data, payload.content_type)


async def first_ok(outcomes: AsyncIterable[TransportOutcome]) -> TransportOutcome:
    """Reduce an ordered stream of outcomes to the first success.

    The stream is consumed lazily, so strategies after the first success
    never run. When nothing succeeds the last error wins and every outcome is
    kept on ``attempts`` for diagnostics.
    """
    seen: List[TransportOutcome] = []
    async for outcome in outcomes:
        seen.append(outcome)
        if outcome.ok:
            return TransportOutcome(ok=True, strategy=outcome.strategy, attempts=seen)
    if not seen:
        return TransportOutcome(ok=False, strategy="none", error="No transport strategies configured")
    last = seen[-1]
    return TransportOutcome(ok=False, strategy=last.strategy, error=last.error, attempts=seen)


class TransportCascade:
    """Try strategies in order within a single attempt."""

    def __init__(self, strategies: Sequence[TransportStrategy], timeout: float):
        self.strategies = list(strategies)
        self.timeout = timeout

    @classmethod
    def default(cls, storage_client: StorageClient, timeout: float) -> "TransportCascade":
        return cls(
            [
                DirectBinaryTransport(storage_client),
                MultipartFormTransport(storage_client),
                FetchedBlobTransport(storage_client),
            ],
            timeout=timeout,
        )

    async def outcomes(self, payload: UploadPayload) -> AsyncIterator[TransportOutcome]:
        """Yield one outcome per strategy, sending only when the next one is pulled."""
        for strategy in self.strategies:
            outcome = await strategy.send(payload, self.timeout)
            if outcome.ok:
                logger.info("Transport succeeded", extra={"strategy": strategy.name, "key": payload.key})
            else:
                logger.warning(
                    "Transport strategy failed",
                    extra={"strategy": strategy.name, "key": payload.key, "error": outcome.error},
                )
            yield outcome

    async def run(self, payload: UploadPayload) -> TransportOutcome:
        async with aclosing(self.outcomes(payload)) as outcomes:
            return await first_ok(outcomes)
