"""Media schemas — assets, folder views and operation reports."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Asset(BaseModel):
    """One stored media object as known to the metadata store."""
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None  # None until persisted by the metadata store
    url: str
    name: str = ""
    folder: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @field_validator("name", "folder", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> str:
        # Records with a null folder belong to the default folder
        return "" if value is None else value

    @property
    def has_valid_id(self) -> bool:
        return self.id is not None


class AssetCreate(BaseModel):
    url: str
    name: str
    folder: str


class FolderTreeOut(BaseModel):
    """Folder tree for the sidebar — children sorted by name."""
    name: str
    path: str
    item_count: int = 0
    children: list["FolderTreeOut"] = []


class Breadcrumb(BaseModel):
    name: str
    path: str


class FolderContents(BaseModel):
    """Resolved folder: its own assets plus direct subfolder names."""
    path: str
    items: list[Asset]
    subfolders: list[str]
    breadcrumbs: list[Breadcrumb] = []


class FolderCreate(BaseModel):
    name: str
    parent: str = ""


class MoveRequest(BaseModel):
    ids: list[int] = Field(min_length=1)
    destination: str


class NoticeOut(BaseModel):
    title: str
    description: str = ""
    status: str = "info"


class ItemOutcomeOut(BaseModel):
    """Per-item result inside a batch report."""
    key: str  # asset id or file name
    status: str
    error: str | None = None
    asset: Asset | None = None


class FolderDeleteOut(BaseModel):
    path: str
    state: str
    deleted_count: int
    failed_count: int
    folder_retired: bool
    soft_failure: bool
    navigate_to: str
    outcomes: list[ItemOutcomeOut]
    notice: NoticeOut


class MoveOut(BaseModel):
    destination: str
    moved_ids: list[int]
    notice: NoticeOut


class UploadOut(BaseModel):
    folder: str
    progress: int
    uploaded_count: int
    rejected_count: int
    failed_count: int
    outcomes: list[ItemOutcomeOut]
    notice: NoticeOut
