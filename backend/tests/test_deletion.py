"""Tests for cascading folder deletion and single-asset deletion."""

import pytest

from mediadesk.core.overlay import VirtualOverlay, merge_overlay
from mediadesk.core.tree import build_tree
from mediadesk.schemas.media import Asset
from mediadesk.services.deletion import (
    VALID_TRANSITIONS,
    DeleteState,
    DeletionCoordinator,
    FolderDeleteReport,
)
from mediadesk.services.reports import OutcomeStatus


@pytest.fixture
def coordinator(metadata, asset_store):
    return DeletionCoordinator(metadata, asset_store, optimistic=True)


@pytest.fixture
def folder_assets(asset_factory):
    # Child "a/b" is inserted before the parent's own item so the cascade
    # order (own items first, then children) is observable.
    return [
        asset_factory(1, "a/b"),
        asset_factory(2, "a/b"),
        asset_factory(3, "a"),
        asset_factory(4, "other"),
    ]


class TestStateMachine:
    def test_terminal_states_have_no_exits(self):
        assert VALID_TRANSITIONS[DeleteState.DONE] == set()
        assert VALID_TRANSITIONS[DeleteState.FAILED] == set()

    def test_invalid_transition_rejected(self):
        report = FolderDeleteReport(path=("a",))
        assert report.transition(DeleteState.FINALIZING) is False
        assert report.state == DeleteState.REQUESTED

    def test_no_exit_from_done(self):
        report = FolderDeleteReport(path=("a",))
        assert report.transition(DeleteState.DONE) is True
        assert report.transition(DeleteState.COLLECTING) is False
        assert report.history == [DeleteState.REQUESTED, DeleteState.DONE]


class TestDeleteEmptyFolder:
    @pytest.mark.asyncio
    async def test_virtual_folder_removed_without_calls(self, coordinator, journal, folder_assets):
        overlay = VirtualOverlay([("x",)])
        tree = merge_overlay(build_tree(folder_assets), overlay)

        report = await coordinator.delete_folder(tree, ["x"], overlay)

        assert journal == []
        assert ("x",) not in overlay
        assert report.state == DeleteState.DONE
        assert report.folder_retired is True
        assert report.notice.description == "Empty folder removed."
        assert report.navigate_to == ()

    @pytest.mark.asyncio
    async def test_unknown_folder_is_treated_as_empty(self, coordinator, journal):
        report = await coordinator.delete_folder(build_tree([]), ["ghost"], VirtualOverlay())
        assert report.state == DeleteState.DONE
        assert report.total == 0
        assert journal == []

    @pytest.mark.asyncio
    async def test_root_rejected(self, coordinator):
        with pytest.raises(ValueError):
            await coordinator.delete_folder(build_tree([]), [], VirtualOverlay())


class TestCascadingDelete:
    @pytest.mark.asyncio
    async def test_sequential_pairs_then_folder_call(
        self, coordinator, metadata, journal, folder_assets
    ):
        metadata.seed(folder_assets)
        tree = build_tree(folder_assets)

        report = await coordinator.delete_folder(tree, ["a"], VirtualOverlay())

        assert journal == [
            ("remote_delete", "a/img3"),
            ("delete", 3),
            ("remote_delete", "a/b/img1"),
            ("delete", 1),
            ("remote_delete", "a/b/img2"),
            ("delete", 2),
            ("delete_folder", "a"),
        ]
        assert report.state == DeleteState.DONE
        assert report.history == [
            DeleteState.REQUESTED,
            DeleteState.COLLECTING,
            DeleteState.DELETING,
            DeleteState.FINALIZING,
            DeleteState.DONE,
        ]
        assert report.deleted_count == 3
        assert list(metadata.records) == [4]

    @pytest.mark.asyncio
    async def test_progress_reported_per_asset(self, coordinator, metadata, folder_assets):
        metadata.seed(folder_assets)
        calls = []

        await coordinator.delete_folder(
            build_tree(folder_assets), ["a"], VirtualOverlay(),
            on_progress=lambda done, total: calls.append((done, total)),
        )

        assert calls == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_remote_failure_does_not_block_metadata(
        self, coordinator, metadata, asset_store, folder_assets
    ):
        metadata.seed(folder_assets)
        asset_store.fail_deletes = True

        report = await coordinator.delete_folder(build_tree(folder_assets), ["a"], VirtualOverlay())

        assert report.state == DeleteState.DONE
        assert report.deleted_count == 3
        assert list(metadata.records) == [4]

    @pytest.mark.asyncio
    async def test_metadata_failure_continues_with_next(
        self, coordinator, metadata, journal, folder_assets
    ):
        metadata.seed(folder_assets)
        metadata.fail_delete = {1}

        report = await coordinator.delete_folder(build_tree(folder_assets), ["a"], VirtualOverlay())

        assert ("delete", 2) in journal
        assert report.failed_count == 1
        assert report.deleted_count == 2
        # optimistic: folder still retired
        assert report.state == DeleteState.DONE
        assert report.folder_retired is True

    @pytest.mark.asyncio
    async def test_strict_keeps_folder_on_failure(
        self, metadata, asset_store, journal, folder_assets
    ):
        metadata.seed(folder_assets)
        metadata.fail_delete = {1}
        overlay = VirtualOverlay([("a", "b")])
        coordinator = DeletionCoordinator(metadata, asset_store, optimistic=False)

        report = await coordinator.delete_folder(build_tree(folder_assets), ["a"], overlay)

        assert report.state == DeleteState.FAILED
        assert report.folder_retired is False
        assert [a.id for a in report.remaining] == [1]
        assert ("delete_folder", "a") not in journal
        assert report.notice.status == "error"

    @pytest.mark.asyncio
    async def test_unexpected_error_soft_success(self, coordinator, metadata, folder_assets):
        metadata.seed(folder_assets)
        metadata.fail_delete_folder = True
        overlay = VirtualOverlay([("a",)])

        report = await coordinator.delete_folder(build_tree(folder_assets), ["a"], overlay)

        assert report.state == DeleteState.DONE
        assert report.soft_failure is True
        assert report.folder_retired is True
        assert ("a",) not in overlay
        assert report.notice.title == "Folder deleted"

    @pytest.mark.asyncio
    async def test_unexpected_error_strict_fails(self, metadata, asset_store, folder_assets):
        metadata.seed(folder_assets)
        metadata.fail_delete_folder = True
        overlay = VirtualOverlay([("a",)])
        coordinator = DeletionCoordinator(metadata, asset_store, optimistic=True)

        report = await coordinator.delete_folder(
            build_tree(folder_assets), ["a"], overlay, strict=True
        )

        assert report.state == DeleteState.FAILED
        assert ("a",) in overlay
        assert "folder endpoint down" in report.error

    @pytest.mark.asyncio
    async def test_invalid_ids_skipped(self, coordinator, metadata, journal, asset_factory):
        broken = Asset(id=None, url="https://cdn.test/demo/image/upload/v1/a/x.png", name="x.png", folder="a")
        good = asset_factory(7, "a")
        metadata.seed([good])

        report = await coordinator.delete_folder(build_tree([broken, good]), ["a"], VirtualOverlay())

        statuses = {o.key: o.status for o in report.outcomes}
        assert statuses == {"x.png": OutcomeStatus.SKIPPED, "7": OutcomeStatus.DELETED}
        assert report.total == 1
        assert ("remote_delete", "a/x") not in journal


class TestDeleteAsset:
    @pytest.mark.asyncio
    async def test_remote_then_metadata(self, coordinator, metadata, journal, asset_factory):
        asset = asset_factory(5, "p/q", "photo.jpg")
        metadata.seed([asset])

        outcome = await coordinator.delete_asset(asset)

        assert outcome.ok
        assert journal == [("remote_delete", "p/q/photo"), ("delete", 5)]

    @pytest.mark.asyncio
    async def test_invalid_id_rejected_without_calls(self, coordinator, journal):
        asset = Asset(id="abc", url="https://cdn.test/demo/image/upload/v1/a/x.png", name="x.png")

        outcome = await coordinator.delete_asset(asset)

        assert outcome.status == OutcomeStatus.REJECTED
        assert outcome.error == "Invalid asset ID"
        assert journal == []

    @pytest.mark.asyncio
    async def test_url_without_object_id_skips_remote(self, coordinator, metadata, journal):
        asset = Asset(id=9, url="https://example.com/static/logo.png", name="logo.png", folder="a")
        metadata.seed([asset])

        outcome = await coordinator.delete_asset(asset)

        assert outcome.status == OutcomeStatus.DELETED
        assert journal == [("delete", 9)]
