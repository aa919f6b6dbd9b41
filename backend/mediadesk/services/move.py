"""Bulk move of assets between folders."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from mediadesk.services.metadata_store import MetadataStore
from mediadesk.services.reports import Notice

logger = logging.getLogger(__name__)


class MoveError(RuntimeError):
    """One update in a move batch failed; earlier updates stay applied."""

    def __init__(self, asset_id: int, moved_ids: list[int], cause: Exception):
        super().__init__(f"Moving asset {asset_id} failed: {cause}")
        self.asset_id = asset_id
        self.moved_ids = moved_ids
        self.cause = cause


@dataclass
class MoveReport:
    destination: str
    moved_ids: list[int] = field(default_factory=list)
    notice: Notice = field(default_factory=lambda: Notice("Nothing to move"))


class MoveCoordinator:
    """Reassigns the folder of selected assets, one update at a time.

    There is no bulk endpoint and no rollback: a failure leaves the assets
    moved so far in their new folder. Moves are idempotent, so the caller can
    simply re-issue the batch.
    """

    def __init__(self, metadata: MetadataStore):
        self._metadata = metadata

    async def move(self, asset_ids: Iterable[int], destination: str) -> MoveReport:
        ids = list(dict.fromkeys(asset_ids))
        report = MoveReport(destination=destination)
        if not ids or not destination:
            return report

        for asset_id in ids:
            try:
                await self._metadata.update(asset_id, {"folder": destination})
            except Exception as e:
                logger.error("Move of asset %s to %s failed: %s", asset_id, destination, e)
                raise MoveError(asset_id, list(report.moved_ids), e) from e
            report.moved_ids.append(asset_id)

        logger.info("Moved %d assets to %s", len(report.moved_ids), destination)
        report.notice = Notice("Assets moved", "Selected assets have been moved.", "success")
        return report
