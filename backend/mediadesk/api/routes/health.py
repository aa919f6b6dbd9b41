"""Health check."""

from fastapi import APIRouter

from mediadesk import __version__
from mediadesk.config import settings
from mediadesk.schemas.system import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Lightweight connectivity check."""
    return HealthResponse(
        version=__version__,
        metadata_backend=settings.metadata_backend,
        asset_store="local" if settings.is_dev_mode else "cloudinary",
    )


@router.get("/ping")
async def ping():
    """Ultra-lightweight ping."""
    return {"status": "ok"}
