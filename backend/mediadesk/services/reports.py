"""Operation results handed back to callers.

Coordinators never notify users themselves; they return a ``Notice`` and
per-item outcomes, and the caller decides how to render them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mediadesk.schemas.media import Asset


class OutcomeStatus(str, Enum):
    DELETED = "deleted"
    UPLOADED = "uploaded"
    REJECTED = "rejected"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class Notice:
    title: str
    description: str = ""
    status: str = "info"  # info, success, warning, error


@dataclass
class ItemOutcome:
    key: str  # asset id or file name
    status: OutcomeStatus
    error: str | None = None
    asset: Asset | None = None

    @property
    def ok(self) -> bool:
        return self.status not in (OutcomeStatus.FAILED, OutcomeStatus.REJECTED)
