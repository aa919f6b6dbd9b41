"""Business logic services — singleton registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mediadesk.config import settings

if TYPE_CHECKING:
    from mediadesk.services.asset_store import AssetStore
    from mediadesk.services.library import MediaLibrary
    from mediadesk.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

_metadata_store: MetadataStore | None = None
_asset_store: AssetStore | None = None
_library: MediaLibrary | None = None


async def init_services() -> None:
    """Create and wire up all service singletons."""
    global _metadata_store, _asset_store, _library

    from mediadesk.services.asset_store import CloudinaryAssetStore, LocalAssetStore
    from mediadesk.services.library import MediaLibrary
    from mediadesk.services.metadata_store import HttpMetadataStore, SqlMetadataStore

    if settings.metadata_backend == "http":
        _metadata_store = HttpMetadataStore()
        logger.info("Metadata store: %s", settings.metadata_api_url)
    else:
        from mediadesk.database import async_session

        _metadata_store = SqlMetadataStore(async_session)
        logger.info("Metadata store: local SQLite")

    if settings.is_dev_mode:
        _asset_store = LocalAssetStore()
        logger.info("[DEV] Asset store: local files under %s", settings.upload_dir)
    else:
        if not settings.cloudinary_cloud_name or not settings.cloudinary_upload_preset:
            logger.warning(
                "Cloudinary not configured (MEDIADESK_CLOUDINARY_CLOUD_NAME / "
                "MEDIADESK_CLOUDINARY_UPLOAD_PRESET) — uploads will fail"
            )
        _asset_store = CloudinaryAssetStore()

    _library = MediaLibrary(_metadata_store, _asset_store)
    try:
        assets = await _library.refresh()
        logger.info("Media library loaded with %d assets", len(assets))
    except Exception as e:
        logger.error("Initial asset load failed: %s", e)


async def shutdown_services() -> None:
    """Drop service singletons."""
    global _metadata_store, _asset_store, _library
    _library = None
    _asset_store = None
    _metadata_store = None


def get_asset_store() -> AssetStore:
    if _asset_store is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _asset_store


def get_media_library() -> MediaLibrary:
    if _library is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _library
