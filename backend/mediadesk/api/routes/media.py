"""Media library routes — folder browsing, upload, move, delete."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from mediadesk.config import settings
from mediadesk.core import paths
from mediadesk.core.navigation import NavigationState
from mediadesk.core.tree import serialize_tree
from mediadesk.schemas.media import (
    Asset,
    Breadcrumb,
    FolderContents,
    FolderCreate,
    FolderDeleteOut,
    FolderTreeOut,
    MoveOut,
    MoveRequest,
    UploadOut,
)
from mediadesk.services import get_media_library
from mediadesk.services.asset_store import PendingFile
from mediadesk.services.deletion import FolderDeleteReport
from mediadesk.services.library import MediaLibrary
from mediadesk.services.metadata_store import AssetNotFoundError
from mediadesk.services.move import MoveError
from mediadesk.services.reports import ItemOutcome, Notice, OutcomeStatus
from mediadesk.services.upload import UploadReport

logger = logging.getLogger(__name__)
router = APIRouter()


def _split(path: str) -> tuple[str, ...]:
    """Query-string folder path to segments; ``""`` is the root."""
    return tuple(part for part in path.split("/") if part)


async def _refreshed_library() -> MediaLibrary:
    library = get_media_library()
    try:
        await library.refresh()
    except httpx.HTTPError as e:
        logger.error("Metadata store unreachable: %s", e)
        raise HTTPException(502, f"Metadata store unreachable: {e}")
    return library


@router.get("", response_model=list[Asset])
async def list_assets():
    """Flat asset list."""
    library = await _refreshed_library()
    return library.assets


@router.get("/tree", response_model=FolderTreeOut)
async def folder_tree():
    """Folder tree including virtual folders, children sorted by name."""
    library = await _refreshed_library()
    return serialize_tree(library.tree())


@router.get("/folder", response_model=FolderContents)
async def folder_contents(path: str = ""):
    """Assets directly in ``path``; unknown paths yield an empty folder."""
    library = await _refreshed_library()
    segments = _split(path)
    node = library.folder(segments)
    crumbs = NavigationState(path=segments).breadcrumbs()
    return FolderContents(
        path=paths.join(segments),
        items=node.items,
        subfolders=sorted(node.children),
        breadcrumbs=[Breadcrumb(name=name, path=paths.join(p)) for name, p in crumbs],
    )


@router.get("/folders", response_model=list[str])
async def list_folder_paths():
    """Every folder path — destinations for a move."""
    library = await _refreshed_library()
    return library.folder_paths()


@router.post("/folders", status_code=201)
async def create_folder(body: FolderCreate):
    """Create an empty (virtual) folder."""
    library = get_media_library()
    try:
        new_path = library.create_folder(body.name, parent=_split(body.parent), enter=False)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"path": paths.join(new_path), "virtual": True}


@router.delete("/folders", response_model=FolderDeleteOut)
async def delete_folder(path: str, strict: bool | None = None):
    """Delete a folder and every asset beneath it."""
    segments = _split(path)
    if not segments:
        raise HTTPException(400, "Cannot delete the root folder")
    library = get_media_library()
    report = await library.delete_folder(segments, strict=strict)
    return _delete_report_to_dict(report)


@router.post("/move", response_model=MoveOut)
async def move_assets(body: MoveRequest):
    """Move assets to another folder (no rollback on partial failure)."""
    library = get_media_library()
    try:
        report = await library.move(body.destination, body.ids)
    except MoveError as e:
        raise HTTPException(
            status_code=502,
            detail={
                "message": str(e),
                "asset_id": e.asset_id,
                "moved_ids": e.moved_ids,
            },
        )
    return {
        "destination": report.destination,
        "moved_ids": report.moved_ids,
        "notice": _notice_to_dict(report.notice),
    }


@router.post("/upload", response_model=UploadOut)
async def upload_files(
    files: list[UploadFile] = File(...),
    folder: str | None = Form(None),
    path: str = Form(""),
):
    """Upload a batch of files; each file succeeds or fails on its own.

    The target is ``folder`` if given, else ``path``, else ``default``.
    """
    pending: list[PendingFile] = []
    for upload in files:
        content_type = upload.content_type or "application/octet-stream"
        name = upload.filename or "upload"
        if upload.size is not None and upload.size > settings.max_upload_bytes:
            # Rejected on size, skip reading the body
            pending.append(PendingFile(name, b"", content_type, declared_size=upload.size))
            continue
        pending.append(PendingFile(name, await upload.read(), content_type))

    library = get_media_library()
    report = await library.upload(pending, folder=folder or None, path=_split(path))
    return _upload_report_to_dict(report)


@router.delete("/{asset_id}")
async def delete_asset(asset_id: int):
    """Delete a single asset from the asset store and the metadata store."""
    library = get_media_library()
    try:
        outcome = await library.delete_asset(asset_id)
    except AssetNotFoundError as e:
        raise HTTPException(404, str(e))
    if outcome.status == OutcomeStatus.REJECTED:
        raise HTTPException(400, outcome.error)
    if outcome.status == OutcomeStatus.FAILED:
        raise HTTPException(502, f"Delete failed: {outcome.error}")
    return {"deleted": asset_id, "notice": _notice_to_dict(Notice("Deleted", "Media deleted."))}


def _notice_to_dict(notice: Notice) -> dict[str, Any]:
    return {"title": notice.title, "description": notice.description, "status": notice.status}


def _outcome_to_dict(outcome: ItemOutcome) -> dict[str, Any]:
    return {
        "key": outcome.key,
        "status": outcome.status.value,
        "error": outcome.error,
        "asset": outcome.asset,
    }


def _delete_report_to_dict(report: FolderDeleteReport) -> dict[str, Any]:
    return {
        "path": report.folder,
        "state": report.state.value,
        "deleted_count": report.deleted_count,
        "failed_count": report.failed_count,
        "folder_retired": report.folder_retired,
        "soft_failure": report.soft_failure,
        "navigate_to": paths.join(report.navigate_to),
        "outcomes": [_outcome_to_dict(o) for o in report.outcomes],
        "notice": _notice_to_dict(report.notice),
    }


def _upload_report_to_dict(report: UploadReport) -> dict[str, Any]:
    return {
        "folder": report.folder,
        "progress": report.progress,
        "uploaded_count": report.uploaded_count,
        "rejected_count": report.rejected_count,
        "failed_count": report.failed_count,
        "outcomes": [_outcome_to_dict(o) for o in report.outcomes],
        "notice": _notice_to_dict(report.notice),
    }
