"""Metadata store — asset records (id, url, name, folder).

Two backends share one interface: the dashboard's REST backend and a local
SQLite table used when MediaDesk runs standalone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediadesk.config import settings
from mediadesk.models.media_asset import MediaAsset
from mediadesk.schemas.media import Asset, AssetCreate

logger = logging.getLogger(__name__)


class AssetNotFoundError(ValueError):
    def __init__(self, asset_id: int):
        super().__init__(f"Asset {asset_id} not found")
        self.asset_id = asset_id


@dataclass
class FolderDeletion:
    deleted_count: int = 0
    deleted_from_remote_count: int = 0


class MetadataStore(Protocol):
    async def list_assets(self) -> list[Asset]: ...

    async def create(self, data: AssetCreate) -> Asset: ...

    async def update(self, asset_id: int, changes: dict[str, Any]) -> Asset: ...

    async def delete(self, asset_id: int) -> None: ...

    async def delete_folder(self, path: str) -> FolderDeletion: ...


def _check_folder_path(path: str) -> None:
    if not path.strip("/"):
        raise ValueError("Refusing to delete the root folder")


class HttpMetadataStore:
    """REST client for the dashboard backend's ``/images`` resource."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ):
        self._base_url = (base_url or settings.metadata_api_url).rstrip("/")
        self._token = token if token is not None else settings.metadata_api_token
        self._timeout = timeout or settings.request_timeout

    def _headers(self) -> dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.request(
                method, f"{self._base_url}{path}",
                headers=self._headers(), **kwargs,
            )
            resp.raise_for_status()
            if resp.status_code == 204 or not resp.content:
                return None
            return resp.json()

    async def list_assets(self) -> list[Asset]:
        data = await self._request("GET", "/images")
        return [Asset.model_validate(item) for item in data or []]

    async def create(self, data: AssetCreate) -> Asset:
        body = await self._request("POST", "/images", json=data.model_dump())
        return Asset.model_validate(body)

    async def update(self, asset_id: int, changes: dict[str, Any]) -> Asset:
        try:
            body = await self._request("PATCH", f"/images/{asset_id}", json=changes)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise AssetNotFoundError(asset_id) from e
            raise
        return Asset.model_validate(body)

    async def delete(self, asset_id: int) -> None:
        try:
            await self._request("DELETE", f"/images/{asset_id}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise AssetNotFoundError(asset_id) from e
            raise

    async def delete_folder(self, path: str) -> FolderDeletion:
        _check_folder_path(path)
        body = await self._request("DELETE", "/images/folder", params={"path": path}) or {}
        return FolderDeletion(
            deleted_count=int(body.get("deletedCount", 0)),
            deleted_from_remote_count=int(body.get("deletedFromRemoteCount", 0)),
        )


class SqlMetadataStore:
    """Asset records in the local SQLite database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_assets(self) -> list[Asset]:
        async with self._session_factory() as db:
            result = await db.execute(select(MediaAsset).order_by(MediaAsset.id))
            return [Asset.model_validate(row) for row in result.scalars().all()]

    async def create(self, data: AssetCreate) -> Asset:
        async with self._session_factory() as db:
            row = MediaAsset(url=data.url, name=data.name, folder=data.folder)
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return Asset.model_validate(row)

    async def update(self, asset_id: int, changes: dict[str, Any]) -> Asset:
        async with self._session_factory() as db:
            row = await db.get(MediaAsset, asset_id)
            if row is None:
                raise AssetNotFoundError(asset_id)
            for key in ("folder", "name", "url"):
                if changes.get(key) is not None:
                    setattr(row, key, changes[key])
            await db.commit()
            await db.refresh(row)
            return Asset.model_validate(row)

    async def delete(self, asset_id: int) -> None:
        async with self._session_factory() as db:
            row = await db.get(MediaAsset, asset_id)
            if row is None:
                raise AssetNotFoundError(asset_id)
            await db.delete(row)
            await db.commit()

    async def delete_folder(self, path: str) -> FolderDeletion:
        """Delete every record in ``path`` or any of its subfolders."""
        _check_folder_path(path)
        path = path.strip("/")
        async with self._session_factory() as db:
            result = await db.execute(
                delete(MediaAsset).where(
                    or_(
                        MediaAsset.folder == path,
                        MediaAsset.folder.startswith(f"{path}/", autoescape=True),
                    )
                )
            )
            await db.commit()
            deleted = result.rowcount or 0
        logger.info("Deleted folder %s (%d records)", path, deleted)
        return FolderDeletion(deleted_count=deleted)
