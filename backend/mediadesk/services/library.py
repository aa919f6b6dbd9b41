"""Media library — asset snapshot, virtual folders and navigation.

This is the single writer of the asset snapshot and the overlay. The folder
tree is rebuilt from both on every read and never mutated in place, so
readers need no locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from mediadesk.core import paths
from mediadesk.core.navigation import NavigationState
from mediadesk.core.overlay import VirtualOverlay, merge_overlay
from mediadesk.core.tree import FolderNode, build_tree, folder_paths, resolve
from mediadesk.schemas.media import Asset
from mediadesk.services.asset_store import AssetStore, PendingFile
from mediadesk.services.deletion import (
    DeleteProgressCallback,
    DeleteState,
    DeletionCoordinator,
    FolderDeleteReport,
)
from mediadesk.services.metadata_store import AssetNotFoundError, MetadataStore
from mediadesk.services.move import MoveCoordinator, MoveError, MoveReport
from mediadesk.services.reports import ItemOutcome
from mediadesk.services.upload import PercentCallback, UploadCoordinator, UploadReport

logger = logging.getLogger(__name__)


class MediaLibrary:
    def __init__(
        self,
        metadata: MetadataStore,
        asset_store: AssetStore,
        *,
        max_upload_bytes: int | None = None,
        upload_concurrency: int | None = None,
        optimistic_retirement: bool | None = None,
    ):
        self.metadata = metadata
        self.asset_store = asset_store
        self.overlay = VirtualOverlay()
        self.navigation = NavigationState()
        self._assets: list[Asset] = []
        self._deletion = DeletionCoordinator(metadata, asset_store, optimistic_retirement)
        self._mover = MoveCoordinator(metadata)
        self._uploader = UploadCoordinator(
            metadata, asset_store, max_upload_bytes, upload_concurrency,
        )

    @property
    def assets(self) -> list[Asset]:
        return list(self._assets)

    async def refresh(self) -> list[Asset]:
        """Reload the asset snapshot from the metadata store.

        Virtual folders that real assets now back are dropped, and the
        selection forgets assets that no longer exist.
        """
        assets = await self.metadata.list_assets()
        # Stable order keeps grids reproducible between rebuilds
        self._assets = sorted(assets, key=lambda a: (a.id is None, a.id or 0))
        promoted = self.overlay.discard_backed(build_tree(self._assets))
        if promoted:
            logger.debug("Virtual folders now backed by assets: %s", promoted)
        known = {a.id for a in self._assets}
        self.navigation.select(i for i in self.navigation.selection if i in known)
        return self.assets

    async def _refresh_after_change(self) -> None:
        try:
            await self.refresh()
        except Exception as e:
            logger.warning("Refreshing assets failed, keeping previous snapshot: %s", e)

    def tree(self) -> FolderNode:
        return merge_overlay(build_tree(self._assets), self.overlay)

    def folder(self, path: Sequence[str]) -> FolderNode:
        return resolve(self.tree(), path)

    def current_node(self) -> FolderNode:
        return self.folder(self.navigation.path)

    def folder_paths(self) -> list[str]:
        return folder_paths(self.tree())

    def create_folder(
        self, name: str, parent: Sequence[str] | None = None, *, enter: bool = True,
    ) -> tuple[str, ...]:
        """Add a virtual folder below ``parent`` (default: current folder).

        The new folder becomes the current one unless ``enter`` is False.
        """
        base = self.navigation.path if parent is None else tuple(parent)
        new_path = (*base, *paths.parse_folder_name(name))
        if self.overlay.add(new_path):
            logger.info("Created virtual folder %s", paths.join(new_path))
        if enter:
            self.navigation.enter(new_path)
        return new_path

    async def delete_folder(
        self,
        path: Sequence[str] | None = None,
        *,
        strict: bool | None = None,
        on_progress: DeleteProgressCallback | None = None,
    ) -> FolderDeleteReport:
        target = tuple(self.navigation.path if path is None else path)
        await self._refresh_after_change()
        report = await self._deletion.delete_folder(
            self.tree(), target, self.overlay, strict=strict, on_progress=on_progress,
        )
        if report.state == DeleteState.DONE:
            if self.navigation.path[: len(target)] == target:
                self.navigation.enter(report.navigate_to)
            await self._refresh_after_change()
        return report

    async def delete_asset(self, asset_id: int) -> ItemOutcome:
        asset = next((a for a in self._assets if a.id == asset_id), None)
        if asset is None:
            await self.refresh()
            asset = next((a for a in self._assets if a.id == asset_id), None)
        if asset is None:
            raise AssetNotFoundError(asset_id)
        outcome = await self._deletion.delete_asset(asset)
        if outcome.ok:
            await self._refresh_after_change()
        return outcome

    async def move(self, destination: str, asset_ids: Iterable[int] | None = None) -> MoveReport:
        """Move ``asset_ids`` (default: the selection) to ``destination``."""
        ids = list(self.navigation.selection if asset_ids is None else asset_ids)
        try:
            report = await self._mover.move(ids, destination)
        except MoveError:
            await self._refresh_after_change()
            raise
        if report.moved_ids:
            self.navigation.clear_selection()
            await self._refresh_after_change()
        return report

    async def upload(
        self,
        files: Sequence[PendingFile],
        folder: str | None = None,
        on_progress: PercentCallback | None = None,
        *,
        path: Sequence[str] | None = None,
    ) -> UploadReport:
        """Upload into ``folder``, else ``path`` (default: current folder)."""
        target = self.navigation.path if path is None else tuple(path)
        report = await self._uploader.upload(
            files, path=target, folder=folder, on_progress=on_progress,
        )
        if report.uploaded_count:
            await self._refresh_after_change()
        return report
