"""SQLAlchemy ORM models for MediaDesk."""

from mediadesk.models.base import Base
from mediadesk.models.media_asset import MediaAsset

__all__ = [
    "Base",
    "MediaAsset",
]
