"""Multi-file upload pipeline with one aggregate progress value."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field

from mediadesk.config import settings
from mediadesk.core import paths
from mediadesk.schemas.media import Asset, AssetCreate
from mediadesk.services.asset_store import AssetStore, PendingFile
from mediadesk.services.metadata_store import MetadataStore
from mediadesk.services.reports import ItemOutcome, Notice, OutcomeStatus

logger = logging.getLogger(__name__)

PercentCallback = Callable[[int], None]


class ProgressAggregator:
    """Folds per-transfer fractions into one percentage.

    ``percent = round(100 * (finished + sum(in-flight fractions)) / total)``

    The value never decreases and stays below 100 until every transfer is
    finished (completed or failed). Progress events may arrive from worker
    threads, hence the lock; callbacks run under it so they observe a
    non-decreasing sequence.
    """

    def __init__(self, keys: Iterable[Hashable], on_change: PercentCallback | None = None):
        self._fractions: dict[Hashable, float] = {key: 0.0 for key in keys}
        self._finished: set[Hashable] = set()
        self._on_change = on_change
        self._lock = threading.RLock()
        self._percent = 0 if self._fractions else 100

    @property
    def percent(self) -> int:
        return self._percent

    @property
    def total(self) -> int:
        return len(self._fractions)

    @property
    def is_complete(self) -> bool:
        return len(self._finished) == len(self._fractions)

    def update(self, key: Hashable, fraction: float) -> int:
        """Record in-flight progress for ``key`` (0.0 - 1.0)."""
        with self._lock:
            if key not in self._fractions or key in self._finished:
                return self._percent
            fraction = min(max(float(fraction), 0.0), 1.0)
            if fraction <= self._fractions[key]:
                return self._percent
            self._fractions[key] = fraction
            if self._recompute() and self._on_change:
                self._on_change(self._percent)
            return self._percent

    def finish(self, key: Hashable) -> int:
        """Mark ``key`` as terminal, whether it succeeded or failed."""
        with self._lock:
            if key not in self._fractions or key in self._finished:
                return self._percent
            self._finished.add(key)
            self._fractions[key] = 1.0
            if self._recompute() and self._on_change:
                self._on_change(self._percent)
            return self._percent

    def _recompute(self) -> bool:
        total = len(self._fractions)
        finished = len(self._finished)
        in_flight = sum(f for k, f in self._fractions.items() if k not in self._finished)
        value = round(100 * (finished + in_flight) / total)
        if finished < total:
            value = min(value, 99)
        value = max(value, self._percent)
        changed = value != self._percent
        self._percent = value
        return changed


@dataclass
class UploadReport:
    folder: str
    outcomes: list[ItemOutcome] = field(default_factory=list)
    progress: int = 0
    transfer_count: int = 0
    notice: Notice = field(default_factory=lambda: Notice("Uploading"))

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def uploaded_count(self) -> int:
        return self._count(OutcomeStatus.UPLOADED)

    @property
    def rejected_count(self) -> int:
        return self._count(OutcomeStatus.REJECTED)

    @property
    def failed_count(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def assets(self) -> list[Asset]:
        return [o.asset for o in self.outcomes if o.asset is not None]


class UploadCoordinator:
    """Validates, transfers and registers a batch of files."""

    def __init__(
        self,
        metadata: MetadataStore,
        asset_store: AssetStore,
        max_bytes: int | None = None,
        concurrency: int | None = None,
    ):
        self._metadata = metadata
        self._asset_store = asset_store
        self._max_bytes = max_bytes or settings.max_upload_bytes
        self._concurrency = concurrency or settings.upload_concurrency

    def validate(self, file: PendingFile) -> str | None:
        """Return an error message if ``file`` must not be uploaded."""
        if file.size > self._max_bytes:
            limit_mb = self._max_bytes / (1024 * 1024)
            return f"File too large (max {limit_mb:g} MB)"
        return None

    async def upload(
        self,
        files: Sequence[PendingFile],
        *,
        path: Sequence[str] = (),
        folder: str | None = None,
        on_progress: PercentCallback | None = None,
    ) -> UploadReport:
        """Upload ``files`` into ``folder`` (or ``path``, or ``default``).

        Never raises for per-file problems; each file gets its own outcome.
        """
        target = folder or (paths.join(path) if path else paths.DEFAULT_FOLDER)
        report = UploadReport(folder=target)
        outcomes: list[ItemOutcome | None] = [None] * len(files)

        accepted: list[int] = []
        for idx, file in enumerate(files):
            error = self.validate(file)
            if error:
                logger.warning("Rejected %s (%d bytes): %s", file.name, file.size, error)
                outcomes[idx] = ItemOutcome(file.name, OutcomeStatus.REJECTED, error)
            else:
                accepted.append(idx)

        aggregator = ProgressAggregator(accepted, on_change=on_progress)
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _transfer(idx: int) -> None:
            file = files[idx]
            async with semaphore:
                try:
                    stored = await self._asset_store.upload(
                        file, target, lambda fraction: aggregator.update(idx, fraction),
                    )
                    asset = await self._metadata.create(
                        AssetCreate(url=stored.url, name=file.name, folder=target)
                    )
                except Exception as e:
                    logger.error("Upload of %s to %s failed: %s", file.name, target, e)
                    outcomes[idx] = ItemOutcome(
                        file.name, OutcomeStatus.FAILED, str(e) or type(e).__name__,
                    )
                else:
                    outcomes[idx] = ItemOutcome(file.name, OutcomeStatus.UPLOADED, asset=asset)
            aggregator.finish(idx)

        report.transfer_count = len(accepted)
        await asyncio.gather(*(_transfer(idx) for idx in accepted))

        report.outcomes = [o for o in outcomes if o is not None]
        report.progress = aggregator.percent
        report.notice = _upload_notice(report, len(files))
        logger.info(
            "Upload to %s: %d uploaded, %d rejected, %d failed",
            target, report.uploaded_count, report.rejected_count, report.failed_count,
        )
        return report


def _upload_notice(report: UploadReport, total: int) -> Notice:
    if total and report.uploaded_count == total:
        return Notice("Upload successful", status="success")
    if report.uploaded_count:
        return Notice(
            "Upload partially successful",
            f"{report.uploaded_count} of {total} files uploaded.",
            "warning",
        )
    return Notice("Upload failed", "No files were uploaded.", "error")
