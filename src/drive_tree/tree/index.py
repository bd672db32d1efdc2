"""Parent-to-children adjacency index over a flat folder list."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from drive_tree.store.models import Folder


class FolderIndex:
    """Maps a parent id (None for root) to its direct child folders.

    Built once per validation or reconstruction pass and then discarded. Each
    input folder appears under exactly one key, its parent, in input order.
    """

    def __init__(self, folders: Iterable[Folder]) -> None:
        children: dict[str | None, list[Folder]] = {}
        by_id: dict[str, Folder] = {}
        for folder in folders:
            children.setdefault(folder.parent_id, []).append(folder)
            by_id.setdefault(folder.id, folder)
        self._children = {parent: tuple(kids) for parent, kids in children.items()}
        self._by_id = by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, folder_id: object) -> bool:
        return folder_id in self._by_id

    def get(self, folder_id: str) -> Folder | None:
        return self._by_id.get(folder_id)

    def children(self, parent_id: str | None) -> tuple[Folder, ...]:
        """Direct children of ``parent_id``; empty when it has none or is unknown."""
        return self._children.get(parent_id, ())

    def roots(self) -> tuple[Folder, ...]:
        return self.children(None)

    def iter_descendants(self, folder_id: str) -> Iterator[Folder]:
        """Yield every folder reachable from ``folder_id`` by child links.

        Depth-first with a visited set, so cyclic input terminates and no
        folder is yielded twice. ``folder_id`` itself is never yielded.
        """
        visited: set[str] = {folder_id}
        stack = list(reversed(self.children(folder_id)))
        while stack:
            current = stack.pop()
            if current.id in visited:
                continue
            visited.add(current.id)
            yield current
            stack.extend(reversed(self.children(current.id)))
