"""Virtual folders — user-created paths with no backing assets yet."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from mediadesk.core.tree import FolderNode, contains_path, descend

FolderPath = tuple[str, ...]


def merge_overlay(tree: FolderNode, overlay_paths: Iterable[Sequence[str]]) -> FolderNode:
    """Ensure every overlay path exists in ``tree`` (no items added).

    Existing nodes are never removed or altered; merging a path twice is the
    same as merging it once.
    """
    for path in overlay_paths:
        descend(tree, path)
    return tree


class VirtualOverlay:
    """Ordered set of virtual folder paths, held in memory only.

    Entries are never promoted automatically; the owner drops a path once
    it is backed by a real asset or deleted.
    """

    def __init__(self, paths: Iterable[Sequence[str]] = ()):
        self._paths: dict[FolderPath, None] = {}
        for path in paths:
            self.add(path)

    def add(self, path: Sequence[str]) -> bool:
        """Add ``path``; returns False if it was already present."""
        key = tuple(path)
        if not key or key in self._paths:
            return False
        self._paths[key] = None
        return True

    def discard(self, path: Sequence[str]) -> bool:
        key = tuple(path)
        if key not in self._paths:
            return False
        del self._paths[key]
        return True

    def discard_backed(self, real_tree: FolderNode) -> list[FolderPath]:
        """Drop entries that now exist in a tree built from real assets."""
        backed = [path for path in self._paths if contains_path(real_tree, path)]
        for path in backed:
            del self._paths[path]
        return backed

    @property
    def paths(self) -> list[FolderPath]:
        return list(self._paths)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (tuple, list)):
            return False
        return tuple(path) in self._paths

    def __iter__(self) -> Iterator[FolderPath]:
        return iter(list(self._paths))

    def __len__(self) -> int:
        return len(self._paths)
