"""Cascading folder deletion across the asset store and the metadata store.

Per-folder request lifecycle::

    REQUESTED -> COLLECTING -> DELETING -> FINALIZING -> DONE | FAILED

Assets are deleted strictly one after another so every failure belongs to
exactly one asset and the remote delete endpoint is never flooded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from mediadesk.config import settings
from mediadesk.core import paths
from mediadesk.core.overlay import VirtualOverlay
from mediadesk.core.tree import FolderNode, collect_all, resolve
from mediadesk.schemas.media import Asset
from mediadesk.services.asset_store import AssetStore
from mediadesk.services.metadata_store import MetadataStore
from mediadesk.services.reports import ItemOutcome, Notice, OutcomeStatus

logger = logging.getLogger(__name__)

DeleteProgressCallback = Callable[[int, int], None]


class DeleteState(str, Enum):
    REQUESTED = "requested"
    COLLECTING = "collecting"
    DELETING = "deleting"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


_TERMINAL = {DeleteState.DONE, DeleteState.FAILED}

VALID_TRANSITIONS: dict[DeleteState, set[DeleteState]] = {
    DeleteState.REQUESTED: {DeleteState.COLLECTING} | _TERMINAL,
    DeleteState.COLLECTING: {DeleteState.DELETING} | _TERMINAL,
    DeleteState.DELETING: {DeleteState.FINALIZING} | _TERMINAL,
    DeleteState.FINALIZING: _TERMINAL,
    DeleteState.DONE: set(),
    DeleteState.FAILED: set(),
}


@dataclass
class FolderDeleteReport:
    """Lifecycle and per-asset results of one folder delete request."""
    path: tuple[str, ...]
    state: DeleteState = DeleteState.REQUESTED
    total: int = 0
    outcomes: list[ItemOutcome] = field(default_factory=list)
    remote_deleted_count: int = 0
    folder_retired: bool = False
    soft_failure: bool = False
    error: str | None = None
    notice: Notice = field(default_factory=lambda: Notice("Deleting folder"))
    history: list[DeleteState] = field(default_factory=lambda: [DeleteState.REQUESTED])

    def transition(self, new_state: DeleteState) -> bool:
        """Move to ``new_state``. Returns False (and stays put) if invalid."""
        if new_state not in VALID_TRANSITIONS[self.state]:
            logger.warning(
                "Invalid delete state transition: %s -> %s (valid: %s)",
                self.state, new_state, VALID_TRANSITIONS[self.state],
            )
            return False
        self.state = new_state
        self.history.append(new_state)
        return True

    @property
    def folder(self) -> str:
        return paths.join(self.path)

    @property
    def navigate_to(self) -> tuple[str, ...]:
        return paths.parent(self.path)

    @property
    def deleted_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.DELETED)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.FAILED)

    @property
    def remaining(self) -> list[Asset]:
        """Assets whose metadata could not be deleted."""
        return [o.asset for o in self.outcomes if o.status == OutcomeStatus.FAILED and o.asset]


class DeletionCoordinator:
    """Deletes assets (single or whole folders) from both stores."""

    def __init__(
        self,
        metadata: MetadataStore,
        asset_store: AssetStore,
        optimistic: bool | None = None,
    ):
        self._metadata = metadata
        self._asset_store = asset_store
        self._optimistic = settings.optimistic_folder_retirement if optimistic is None else optimistic

    async def delete_asset(self, asset: Asset) -> ItemOutcome:
        """Delete one asset: remote copy first (best-effort), then its record."""
        key = str(asset.id) if asset.id is not None else (asset.name or asset.url)
        if not asset.has_valid_id:
            return ItemOutcome(key, OutcomeStatus.REJECTED, "Invalid asset ID", asset)

        object_id = paths.object_id_from_url(asset.url)
        if object_id:
            try:
                if not await self._asset_store.delete(object_id):
                    logger.warning("Asset store did not confirm delete of %s", object_id)
            except Exception as e:
                logger.warning("Remote delete failed for asset %s (%s): %s", asset.id, object_id, e)
        else:
            logger.debug("No object id in %s — skipping remote delete", asset.url)

        try:
            await self._metadata.delete(asset.id)
        except Exception as e:
            logger.error("Metadata delete failed for asset %s: %s", asset.id, e)
            return ItemOutcome(key, OutcomeStatus.FAILED, str(e) or type(e).__name__, asset)
        return ItemOutcome(key, OutcomeStatus.DELETED, asset=asset)

    async def delete_folder(
        self,
        tree: FolderNode,
        path: Sequence[str],
        overlay: VirtualOverlay,
        *,
        strict: bool | None = None,
        on_progress: DeleteProgressCallback | None = None,
    ) -> FolderDeleteReport:
        """Delete every asset under ``path`` and retire the folder.

        Unless ``strict``, any unexpected error still retires the folder
        from the overlay and reports a soft success (optimistic folder
        retirement). Strict requests end in FAILED instead, and keep the
        folder when any asset could not be deleted.
        """
        path = tuple(path)
        if not path:
            raise ValueError("Cannot delete the root folder")
        if strict is None:
            strict = not self._optimistic

        report = FolderDeleteReport(path=path)
        try:
            report.transition(DeleteState.COLLECTING)
            targets: list[Asset] = []
            for asset in collect_all(resolve(tree, path)):
                if asset.has_valid_id:
                    targets.append(asset)
                else:
                    report.outcomes.append(ItemOutcome(
                        asset.name or asset.url, OutcomeStatus.SKIPPED, "Invalid asset ID", asset,
                    ))
            report.total = len(targets)

            report.transition(DeleteState.DELETING)
            for done, asset in enumerate(targets, start=1):
                report.outcomes.append(await self.delete_asset(asset))
                if on_progress:
                    on_progress(done, report.total)

            report.transition(DeleteState.FINALIZING)
            if strict and report.failed_count:
                report.error = f"{report.failed_count} of {report.total} assets could not be deleted"
                report.transition(DeleteState.FAILED)
                report.notice = Notice("Folder not deleted", report.error, "error")
            else:
                if targets:
                    result = await self._metadata.delete_folder(report.folder)
                    report.remote_deleted_count = result.deleted_from_remote_count
                    description = "All assets in this folder have been deleted."
                else:
                    description = "Empty folder removed."
                overlay.discard(path)
                report.folder_retired = True
                report.transition(DeleteState.DONE)
                report.notice = Notice("Folder deleted", description, "info")
        except Exception as e:
            logger.error("Deleting folder %s failed: %s", report.folder, e)
            report.error = str(e) or type(e).__name__
            if strict:
                report.transition(DeleteState.FAILED)
                report.notice = Notice("Folder delete failed", report.error, "error")
            else:
                overlay.discard(path)
                report.folder_retired = True
                report.soft_failure = True
                report.transition(DeleteState.DONE)
                report.notice = Notice("Folder deleted", "Empty folder removed.", "info")

        logger.info(
            "Folder %s: %s (%d/%d deleted, %d failed)",
            report.folder, report.state.value, report.deleted_count, report.total, report.failed_count,
        )
        return report
