"""Health check and connectivity endpoints for FileDrop."""

from fastapi import APIRouter

from filedrop.core.config import settings
from filedrop.models.upload import NetworkDiagnostics
from filedrop.service import get_storage_client
from filedrop.upload.connectivity import ConnectivityProbe

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns service status, name, and version information without touching
    the network.

    Returns:
        dict: Health status response with status, service, and version fields
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
    }


@router.get("/api/v1/connectivity", response_model=NetworkDiagnostics)
async def connectivity_diagnostics() -> NetworkDiagnostics:
    """Run every connectivity probe and report the results."""
    probe = ConnectivityProbe(get_storage_client())
    return await probe.run_diagnostics()
