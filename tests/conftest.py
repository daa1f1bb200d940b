"""Pytest configuration and shared fixtures."""

import json
from typing import Dict, List

import httpx
import pytest

from filedrop.storage.client import StorageClient
from filedrop.upload.connectivity import ConnectivityProbe

STORAGE_URL = "https://test.storage.local"
API_KEY = "anon-test-key"

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"
JPEG_BYTES = bytes.fromhex("ffd8ffe000104a464946") + b"\x00" * 32


class FakeStorageBackend:
    """In-memory stand-in for the storage REST API, served via httpx.MockTransport.

    Each write endpoint pops a status code from its queue; an empty queue
    means success. Hosts listed in ``unreachable_hosts`` raise ConnectError;
    hosts or paths listed in ``timed_out`` raise ReadTimeout.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.objects: Dict[str, bytes] = {}
        self.internet_status = 200
        self.dns_status = 200
        self.rest_status = 401
        self.object_write_statuses: List[int] = []
        self.multipart_statuses: List[int] = []
        self.remove_status = 200
        self.unreachable_hosts: set[str] = set()
        self.timed_out: set[str] = set()
        self.transport = httpx.MockTransport(self.handle)

    def count(self, method: str, path_prefix: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path.startswith(path_prefix))

    @property
    def network_calls(self) -> int:
        return len(self.requests)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        path = request.url.path

        if host in self.unreachable_hosts:
            raise httpx.ConnectError("Network request failed", request=request)
        if host in self.timed_out or path in self.timed_out:
            raise httpx.ReadTimeout("timed out", request=request)
        if host == "httpbin.org":
            return httpx.Response(self.internet_status, json={"ok": True})
        if host == "dns.google":
            return httpx.Response(self.dns_status, json={"Status": 0})

        if path == "/rest/v1/":
            return httpx.Response(self.rest_status, json={"message": "no api key"})

        if request.method == "POST" and path.startswith("/storage/v1/object/sign/"):
            key = path[len("/storage/v1/object/sign/"):]
            return httpx.Response(200, json={"signedURL": f"/object/sign/{key}?token=signed-token"})

        if request.method == "POST" and path.startswith("/storage/v1/object/"):
            return self._write(path[len("/storage/v1/object/"):], request.content, self.object_write_statuses)

        if request.method == "POST" and path == "/storage/v1/upload":
            params = request.url.params
            object_path = f"{params['bucket']}/{params['name']}"
            return self._write(object_path, request.content, self.multipart_statuses)

        if request.method == "DELETE" and path.startswith("/storage/v1/object/"):
            if self.remove_status >= 400:
                return httpx.Response(self.remove_status, json={"message": "remove denied"})
            bucket = path[len("/storage/v1/object/"):]
            keys = json.loads(request.content)["prefixes"]
            removed = [{"name": k} for k in keys if self.objects.pop(f"{bucket}/{k}", None) is not None]
            return httpx.Response(200, json=removed)

        return httpx.Response(404, json={"message": "not found"})

    def _write(self, object_path: str, body: bytes, statuses: List[int]) -> httpx.Response:
        status = statuses.pop(0) if statuses else 200
        if status >= 400:
            return httpx.Response(status, json={"statusCode": str(status), "error": "Error", "message": "write rejected"})
        if object_path in self.objects:
            return httpx.Response(409, json={"statusCode": "409", "error": "Duplicate", "message": "The resource already exists"})
        self.objects[object_path] = body
        return httpx.Response(200, json={"Key": object_path})


@pytest.fixture
def backend() -> FakeStorageBackend:
    return FakeStorageBackend()


@pytest.fixture
def storage_client(backend) -> StorageClient:
    return StorageClient(STORAGE_URL, API_KEY, timeout=5.0, transport=backend.transport)


@pytest.fixture
def probe(storage_client, backend) -> ConnectivityProbe:
    return ConnectivityProbe(storage_client, transport=backend.transport)


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "Report"
    path.write_bytes(PDF_BYTES)
    return path


@pytest.fixture
def jpeg_file(tmp_path):
    path = tmp_path / "camera_capture"
    path.write_bytes(JPEG_BYTES)
    return path


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()

