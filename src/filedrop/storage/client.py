"""HTTP client for the Supabase-style Storage REST API."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from filedrop.upload.exceptions import BackendRejectionError, PublicUrlError, TransportError

logger = logging.getLogger(__name__)


def _quote_key(key: str) -> str:
    return quote(key, safe="/._-")


def _error_detail(response: httpx.Response) -> str:
    """Pull a human readable message out of a storage error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


class StorageClient:
    """Client for object write, URL and remove operations on a storage backend.

    A fresh ``httpx.AsyncClient`` is opened per call so that no connection
    state is shared between concurrent uploads.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        cache_control_seconds: int = 3600,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the storage client.

        Args:
            base_url: Backend root URL, e.g. https://project.supabase.co
            api_key: API key sent as ``apikey`` and bearer token
            timeout: Per-request timeout in seconds
            cache_control_seconds: Cache-Control max-age attached to uploads
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.cache_control_seconds = cache_control_seconds
        self._transport = transport

    @property
    def rest_root_url(self) -> str:
        return f"{self.base_url}/rest/v1/"

    def auth_headers(self) -> Dict[str, str]:
        if not self.api_key:
            return {}
        return {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}

    def http_client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout if timeout is None else timeout,
            headers=self.auth_headers(),
            transport=self._transport,
        )

    async def _send(self, method: str, url: str, operation: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self.http_client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"{operation}: Request timeout") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{operation}: Network request failed ({e})") from e

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(
                "Storage backend rejected request",
                extra={"operation": operation, "status_code": response.status_code, "detail": detail},
            )
            raise BackendRejectionError(
                f"Storage {operation} failed: {response.status_code} {detail}",
                status_code=response.status_code,
            )
        return response

    async def upload_object(
        self, bucket: str, key: str, data: bytes, content_type: str, upsert: bool = False
    ) -> None:
        """Write raw bytes to the object-write endpoint for (bucket, key)."""
        url = f"{self.base_url}/storage/v1/object/{bucket}/{_quote_key(key)}"
        headers = {
            "Content-Type": content_type,
            "x-upsert": "true" if upsert else "false",
            "cache-control": f"max-age={self.cache_control_seconds}",
        }
        await self._send("POST", url, "object upload", content=data, headers=headers)

    async def upload_multipart(
        self,
        bucket: str,
        key: str,
        data: bytes,
        file_name: str,
        content_type: str,
        upsert: bool = False,
    ) -> None:
        """Post a single-part multipart form to the upload endpoint."""
        url = f"{self.base_url}/storage/v1/upload"
        params = {"bucket": bucket, "name": key, "upsert": "true" if upsert else "false"}
        files = {"file": (file_name, data, content_type)}
        await self._send("POST", url, "form upload", params=params, files=files)

    def public_url(self, bucket: str, key: str) -> str:
        """Build the public URL of an object. No network call."""
        if not bucket or not key:
            raise PublicUrlError("Failed to generate public URL")
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{_quote_key(key)}"

    async def signed_url(self, bucket: str, key: str, expires_in: int) -> str:
        """Request a time-limited signed URL for (bucket, key)."""
        url = f"{self.base_url}/storage/v1/object/sign/{bucket}/{_quote_key(key)}"
        response = await self._send("POST", url, "sign url", json={"expiresIn": expires_in})
        try:
            signed_path = response.json().get("signedURL")
        except (ValueError, AttributeError) as e:
            raise PublicUrlError("Failed to generate signed URL") from e
        if not signed_path:
            raise PublicUrlError("Failed to generate signed URL")
        if signed_path.startswith("http"):
            return signed_path
        return f"{self.base_url}/storage/v1{signed_path}"

    async def remove_objects(self, bucket: str, keys: list[str]) -> list[Dict[str, Any]]:
        """Remove objects by key. Returns the backend's list of removed objects."""
        url = f"{self.base_url}/storage/v1/object/{bucket}"
        response = await self._send("DELETE", url, "remove", json={"prefixes": keys})
        try:
            body = response.json()
        except ValueError:
            return []
        return body if isinstance(body, list) else []
