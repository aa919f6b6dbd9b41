"""Remote asset store — where the media bytes live.

The vendor is pluggable: anything exposing ``upload`` and ``delete`` works.
Deletion is best-effort and advisory; callers never depend on it.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from mediadesk.config import settings
from mediadesk.core import paths

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

CHUNK_SIZE = 64 * 1024  # 64 KB


class AssetStoreError(RuntimeError):
    """The asset store refused or failed a transfer."""


@dataclass
class PendingFile:
    """A file selected for upload, held in memory."""
    name: str
    data: bytes
    content_type: str = "application/octet-stream"
    declared_size: int | None = None  # known size when data was not read

    @property
    def size(self) -> int:
        if self.declared_size is not None:
            return self.declared_size
        return len(self.data)


@dataclass
class StoredObject:
    url: str
    object_id: str | None = None


class AssetStore(Protocol):
    async def upload(
        self, file: PendingFile, folder: str, on_progress: ProgressCallback | None = None
    ) -> StoredObject: ...

    async def delete(self, object_id: str) -> bool: ...


class _ProgressReader(io.BytesIO):
    """BytesIO that reports how much of itself has been read."""

    def __init__(self, data: bytes, on_progress: ProgressCallback | None):
        super().__init__(data)
        self._total = len(data)
        self._on_progress = on_progress
        self._reported = 0.0

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if self._on_progress and self._total:
            fraction = min(self.tell() / self._total, 1.0)
            if fraction > self._reported:
                self._reported = fraction
                self._on_progress(fraction)
        return chunk


class CloudinaryAssetStore:
    """Unsigned-preset uploads to Cloudinary; deletes go through the backend proxy."""

    def __init__(
        self,
        cloud_name: str | None = None,
        upload_preset: str | None = None,
        upload_base: str | None = None,
        delete_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ):
        self._cloud_name = cloud_name or settings.cloudinary_cloud_name
        self._upload_preset = upload_preset or settings.cloudinary_upload_preset
        self._upload_base = (upload_base or settings.cloudinary_upload_base).rstrip("/")
        self._delete_url = delete_url or settings.delete_proxy_url
        self._token = token if token is not None else settings.metadata_api_token
        self._timeout = timeout or settings.request_timeout

    @property
    def upload_url(self) -> str:
        return f"{self._upload_base}/{self._cloud_name}/upload"

    async def upload(
        self, file: PendingFile, folder: str, on_progress: ProgressCallback | None = None
    ) -> StoredObject:
        reader = _ProgressReader(file.data, on_progress)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(
                self.upload_url,
                data={"upload_preset": self._upload_preset, "folder": folder},
                files={"file": (file.name, reader, file.content_type)},
            )
        try:
            body = resp.json()
        except ValueError:
            body = {}
        url = body.get("secure_url") if isinstance(body, dict) else None
        if resp.is_error or not url:
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict):
                error = error.get("message")
            if not isinstance(error, str) or not error:
                error = f"Upload failed (HTTP {resp.status_code})"
            raise AssetStoreError(error)
        return StoredObject(url=url, object_id=body.get("public_id"))

    async def delete(self, object_id: str) -> bool:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self._delete_url, json={"publicId": object_id}, headers=headers,
                )
            return resp.is_success
        except httpx.HTTPError as e:
            logger.warning("Remote delete failed for %s: %s", object_id, e)
            return False


class LocalAssetStore:
    """Dev-mode store writing under the data directory.

    URLs keep the CDN shape (``<base>/upload/v<stamp>/<folder>/<file>``) so
    object ids derive exactly as they do for the remote store.
    """

    def __init__(self, upload_dir: str | None = None, base_url: str | None = None):
        self._root = Path(upload_dir or settings.upload_dir).resolve()
        self._base_url = (base_url or settings.local_asset_base_url).rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def resolve_file(self, relative: str) -> Path:
        """Map a URL-relative path to a file below the store root."""
        target = (self._root / relative).resolve()
        if target != self._root and self._root not in target.parents:
            raise AssetStoreError(f"Path escapes the upload directory: {relative}")
        return target

    async def upload(
        self, file: PendingFile, folder: str, on_progress: ProgressCallback | None = None
    ) -> StoredObject:
        segments = paths.parse(folder)
        stem, _, ext = file.name.rpartition(".")
        if not stem:
            stem, ext = file.name, ""
        filename = f"{stem}_{uuid.uuid4().hex[:8]}" + (f".{ext}" if ext else "")
        relative = paths.join([*segments, filename])
        target = self.resolve_file(relative)
        await asyncio.to_thread(self._write, target, file.data, on_progress)
        url = f"{self._base_url}/upload/v{int(time.time())}/{relative}"
        return StoredObject(url=url, object_id=paths.object_id_from_url(url))

    @staticmethod
    def _write(target: Path, data: bytes, on_progress: ProgressCallback | None) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        total = len(data)
        with open(target, "wb") as f:
            for offset in range(0, total, CHUNK_SIZE):
                f.write(data[offset:offset + CHUNK_SIZE])
                if on_progress:
                    on_progress(min((offset + CHUNK_SIZE) / total, 1.0))
        if on_progress and not total:
            on_progress(1.0)

    async def delete(self, object_id: str) -> bool:
        try:
            stem = self.resolve_file(object_id)
        except AssetStoreError as e:
            logger.warning("Refusing local delete: %s", e)
            return False
        matches = [p for p in stem.parent.glob(f"{stem.name}.*") if p.is_file()]
        if stem.is_file():
            matches.append(stem)
        for match in matches:
            await asyncio.to_thread(match.unlink)
        return bool(matches)
