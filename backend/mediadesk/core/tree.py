"""Folder tree built from flat asset records.

The tree is a derived view: it is rebuilt from the current asset list (and
the virtual folder overlay) whenever either changes and is never mutated
afterwards. Node identity does not survive a rebuild.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from mediadesk.core import paths
from mediadesk.schemas.media import Asset


@dataclass
class FolderNode:
    children: dict[str, FolderNode] = field(default_factory=dict)
    items: list[Asset] = field(default_factory=list)

    def child(self, name: str) -> FolderNode:
        """Get or create the child named ``name``."""
        node = self.children.get(name)
        if node is None:
            node = self.children[name] = FolderNode()
        return node

    @property
    def is_empty(self) -> bool:
        return not self.children and not self.items


def descend(root: FolderNode, segments: Iterable[str]) -> FolderNode:
    """Walk ``segments`` from ``root``, creating missing nodes on the way."""
    node = root
    for segment in segments:
        node = node.child(segment)
    return node


def build_tree(assets: Iterable[Asset]) -> FolderNode:
    """Fold a flat asset list into a folder tree.

    Items keep their input order within each node, so callers wanting a
    reproducible grid should pass a stably sorted list.
    """
    root = FolderNode()
    for asset in assets:
        descend(root, paths.parse(asset.folder)).items.append(asset)
    return root


def resolve(root: FolderNode, path: Sequence[str]) -> FolderNode:
    """Return the node at ``path``, or an empty node if any segment is missing.

    Stale paths (e.g. a folder deleted by someone else) must keep the
    browser usable, so this never raises.
    """
    node = root
    for segment in path:
        node = node.children.get(segment)
        if node is None:
            return FolderNode()
    return node


def collect_all(node: FolderNode) -> list[Asset]:
    """Every asset in ``node``'s subtree, depth-first in child-map order."""
    assets = list(node.items)
    for child in node.children.values():
        assets.extend(collect_all(child))
    return assets


def folder_paths(node: FolderNode, prefix: Sequence[str] = ()) -> list[str]:
    """All folder paths below ``node``, parents first, siblings sorted."""
    result: list[str] = []
    if prefix:
        result.append(paths.join(prefix))
    for name in sorted(node.children):
        result.extend(folder_paths(node.children[name], [*prefix, name]))
    return result


def contains_path(root: FolderNode, path: Sequence[str]) -> bool:
    node = root
    for segment in path:
        if segment not in node.children:
            return False
        node = node.children[segment]
    return True


def serialize_tree(node: FolderNode, name: str = "", prefix: Sequence[str] = ()) -> dict:
    """Presentation form: children sorted alphabetically, direct item counts."""
    return {
        "name": name,
        "path": paths.join(prefix),
        "item_count": len(node.items),
        "children": [
            serialize_tree(node.children[child], child, [*prefix, child])
            for child in sorted(node.children)
        ],
    }
