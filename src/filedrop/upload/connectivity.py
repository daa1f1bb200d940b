"""Connectivity probes run before committing to an upload."""

import logging
import time
from typing import List, Optional

import httpx

from filedrop.core.config import settings
from filedrop.models.upload import ConnectivityStatus, NetworkDiagnostics, NetworkQuality
from filedrop.storage.client import StorageClient

logger = logging.getLogger(__name__)

EXCELLENT_LATENCY_MS = 500
GOOD_LATENCY_MS = 1000


class ConnectivityProbe:
    """Cheap, time-bounded reachability checks.

    Results are advisory and never cached: every upload gets a fresh probe so
    a stale positive cannot hide a real outage. Probes never raise; any
    network error is logged and reported as unreachable.
    """

    def __init__(
        self,
        storage_client: StorageClient,
        internet_url: str | None = None,
        dns_url: str | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.storage_client = storage_client
        self.internet_url = internet_url or settings.INTERNET_PROBE_URL
        self.dns_url = dns_url or settings.DNS_PROBE_URL
        self._transport = transport

    async def _get_ok(self, url: str, timeout: float, label: str, errors: List[str] | None = None) -> bool:
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"{label} probe failed", extra={"url": url, "error": str(e)})
            if errors is not None:
                errors.append(f"{label} test failed: {e}")
            return False

        if response.is_success:
            return True
        logger.warning(f"{label} probe returned error status", extra={"url": url, "status_code": response.status_code})
        if errors is not None:
            errors.append(f"{label} test failed: HTTP {response.status_code}")
        return False

    async def check_internet(self, timeout: float | None = None, errors: List[str] | None = None) -> bool:
        """Return True when a well-known external endpoint answers 2xx."""
        timeout = settings.internet_probe_timeout if timeout is None else timeout
        return await self._get_ok(self.internet_url, timeout, "Internet", errors)

    async def check_dns(self, timeout: float | None = None, errors: List[str] | None = None) -> bool:
        """Return True when a DNS-over-HTTPS lookup succeeds."""
        timeout = settings.dns_probe_timeout if timeout is None else timeout
        return await self._get_ok(self.dns_url, timeout, "DNS", errors)

    async def check_backend(self, timeout: float | None = None, errors: List[str] | None = None) -> bool:
        """Return True when the backend REST root answers.

        A 401 counts as reachable: the server answered and only refused
        anonymous access to its root.
        """
        timeout = settings.backend_probe_timeout if timeout is None else timeout
        url = self.storage_client.rest_root_url
        try:
            async with self.storage_client.http_client(timeout=timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Backend probe failed", extra={"url": url, "error": str(e)})
            if errors is not None:
                errors.append(f"Backend test failed: {e}")
            return False

        if response.is_success or response.status_code == 401:
            return True
        logger.warning("Backend probe returned error status", extra={"url": url, "status_code": response.status_code})
        if errors is not None:
            errors.append(f"Backend test failed: HTTP {response.status_code}")
        return False

    async def probe(self) -> ConnectivityStatus:
        """Check internet first, then the backend."""
        started = time.monotonic()
        errors: List[str] = []

        internet = await self.check_internet(errors=errors)
        backend = await self.check_backend(errors=errors) if internet else False
        latency_ms = int((time.monotonic() - started) * 1000)

        status = ConnectivityStatus(
            internet_reachable=internet,
            backend_reachable=backend,
            latency_ms=latency_ms,
            error="; ".join(errors) or None,
        )
        logger.info(
            "Connectivity probe finished",
            extra={"internet_reachable": internet, "backend_reachable": backend, "latency_ms": latency_ms},
        )
        return status

    async def network_quality(self) -> NetworkQuality:
        """Grade the network from the latency of one internet probe."""
        started = time.monotonic()
        if not await self.check_internet():
            return NetworkQuality.OFFLINE
        return quality_for_latency(int((time.monotonic() - started) * 1000))

    async def run_diagnostics(self) -> NetworkDiagnostics:
        """Run every probe regardless of earlier failures and collect errors."""
        started = time.monotonic()
        errors: List[str] = []

        internet = await self.check_internet(errors=errors)
        internet_latency_ms = int((time.monotonic() - started) * 1000)
        dns = await self.check_dns(errors=errors)
        backend = await self.check_backend(errors=errors)
        latency_ms = int((time.monotonic() - started) * 1000)

        quality = quality_for_latency(internet_latency_ms) if internet else NetworkQuality.OFFLINE
        return NetworkDiagnostics(
            status=ConnectivityStatus(
                internet_reachable=internet,
                backend_reachable=backend,
                latency_ms=latency_ms,
                error="; ".join(errors) or None,
            ),
            dns_resolving=dns,
            quality=quality,
            errors=errors,
        )


def quality_for_latency(latency_ms: int) -> NetworkQuality:
    if latency_ms < EXCELLENT_LATENCY_MS:
        return NetworkQuality.EXCELLENT
    if latency_ms < GOOD_LATENCY_MS:
        return NetworkQuality.GOOD
    return NetworkQuality.POOR


def format_report(diagnostics: NetworkDiagnostics) -> str:
    """Render diagnostics as a plain-text report."""
    status = diagnostics.status
    lines = [
        "Network Diagnostics Report",
        "=" * 40,
        f"Internet: {'ok' if status.internet_reachable else 'unreachable'}",
        f"DNS: {'ok' if diagnostics.dns_resolving else 'failing'}",
        f"Storage backend: {'ok' if status.backend_reachable else 'unreachable'}",
        f"Quality: {diagnostics.quality.value}",
    ]
    if status.latency_ms is not None:
        lines.append(f"Total probe time: {status.latency_ms}ms")
    if diagnostics.errors:
        lines.append("")
        lines.append("Errors:")
        lines.extend(f"{i}. {error}" for i, error in enumerate(diagnostics.errors, start=1))
    return "\n".join(lines) + "\n"
