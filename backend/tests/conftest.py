"""Test fixtures — in-memory SQLite, FastAPI test client and store fakes."""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mediadesk.core import paths
from mediadesk.main import create_app
from mediadesk.models.base import Base
from mediadesk.schemas.media import Asset
from mediadesk.services.asset_store import AssetStoreError, StoredObject
from mediadesk.services.metadata_store import AssetNotFoundError, FolderDeletion


class FakeMetadataStore:
    """In-memory metadata store that records every call in ``journal``."""

    def __init__(self, journal: list, assets=()):
        self.journal = journal
        self.records: dict[int, Asset] = {a.id: a for a in assets}
        self.fail_delete: set[int] = set()
        self.fail_update: set[int] = set()
        self.fail_create: set[str] = set()
        self.fail_delete_folder = False

    def seed(self, assets):
        for asset in assets:
            self.records[asset.id] = asset
        return self

    async def list_assets(self):
        return list(self.records.values())

    async def create(self, data):
        self.journal.append(("create", data.name, data.folder))
        if data.name in self.fail_create:
            raise RuntimeError(f"create {data.name} refused")
        new_id = max(self.records, default=0) + 1
        asset = Asset(id=new_id, url=data.url, name=data.name, folder=data.folder)
        self.records[new_id] = asset
        return asset

    async def update(self, asset_id, changes):
        self.journal.append(("update", asset_id, changes.get("folder")))
        if asset_id in self.fail_update:
            raise RuntimeError(f"update {asset_id} refused")
        if asset_id not in self.records:
            raise AssetNotFoundError(asset_id)
        asset = self.records[asset_id].model_copy(update=changes)
        self.records[asset_id] = asset
        return asset

    async def delete(self, asset_id):
        self.journal.append(("delete", asset_id))
        if asset_id in self.fail_delete:
            raise RuntimeError(f"delete {asset_id} refused")
        if self.records.pop(asset_id, None) is None:
            raise AssetNotFoundError(asset_id)

    async def delete_folder(self, path):
        self.journal.append(("delete_folder", path))
        if self.fail_delete_folder:
            raise RuntimeError("folder endpoint down")
        doomed = [
            i for i, a in self.records.items()
            if a.folder == path or a.folder.startswith(path + "/")
        ]
        for i in doomed:
            del self.records[i]
        return FolderDeletion(deleted_count=len(doomed))


class FakeAssetStore:
    """Asset store fake with stepwise progress and concurrency tracking."""

    def __init__(self, journal: list, steps: int = 4):
        self.journal = journal
        self.steps = steps
        self.fail_uploads: set[str] = set()
        self.fail_deletes = False
        self.active = 0
        self.max_active = 0

    async def upload(self, file, folder, on_progress=None):
        self.journal.append(("upload", file.name))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            for step in range(1, self.steps + 1):
                await asyncio.sleep(0)
                if file.name in self.fail_uploads and step == 2:
                    raise AssetStoreError(f"{file.name} transfer dropped")
                if on_progress:
                    on_progress(step / self.steps)
        finally:
            self.active -= 1
        url = f"https://cdn.test/demo/image/upload/v1/{folder}/{file.name}"
        return StoredObject(url=url, object_id=paths.object_id_from_url(url))

    async def delete(self, object_id):
        self.journal.append(("remote_delete", object_id))
        if self.fail_deletes:
            raise AssetStoreError("remote delete refused")
        return True


def make_asset(asset_id, folder, name=None):
    name = name or f"img{asset_id}.png"
    return Asset(
        id=asset_id,
        url=f"https://cdn.test/demo/image/upload/v1/{folder}/{name}",
        name=name,
        folder=folder,
    )


@pytest.fixture
def asset_factory():
    return make_asset


@pytest.fixture
def journal():
    return []


@pytest.fixture
def metadata(journal):
    return FakeMetadataStore(journal)


@pytest.fixture
def asset_store(journal):
    return FakeAssetStore(journal)


@pytest_asyncio.fixture
async def session_factory():
    """Async session factory bound to a fresh in-memory SQLite database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def client():
    """Provide an async test client (services are patched per test)."""
    app = create_app()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
