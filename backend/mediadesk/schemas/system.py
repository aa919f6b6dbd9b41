"""Health schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    version: str
    service: str = "mediadesk"
    metadata_backend: str = "sqlite"
    asset_store: str = "local"
