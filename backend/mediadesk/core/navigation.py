"""Navigation state — current folder path and asset selection."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field


@dataclass
class NavigationState:
    path: tuple[str, ...] = ()
    selection: list[int] = field(default_factory=list)

    def enter(self, path: Sequence[str]) -> None:
        self.path = tuple(path)

    def breadcrumbs(self) -> list[tuple[str, tuple[str, ...]]]:
        """``[("Root", ()), ("a", ("a",)), ("b", ("a", "b"))]``"""
        crumbs = [("Root", ())]
        for idx, segment in enumerate(self.path):
            crumbs.append((segment, self.path[: idx + 1]))
        return crumbs

    def select(self, asset_ids: Iterable[int]) -> None:
        self.selection = list(dict.fromkeys(asset_ids))

    def clear_selection(self) -> None:
        self.selection.clear()
