"""Descendant / ancestor queries over one snapshot.

Build a DescendantIndex once per batch (multi-select drag, cut) instead of
rescanning the flat list per item.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set

from .errors import SnapshotError
from .model import Item
from .tree import children_index, index_by_id


class DescendantIndex:
    def __init__(self, items: Sequence[Item]):
        self.by_id: Dict[str, Item] = index_by_id(items)
        self.children = children_index(items)
        self._position: Optional[Dict[str, int]] = None

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.by_id

    def descendants_of(self, item_id: str) -> List[str]:
        """Pre-order ids strictly below `item_id` (empty for unknown ids)."""
        out: List[str] = []
        stack = [c.id for c in reversed(self.children.get(item_id, []))]
        seen: Set[str] = {item_id}
        while stack:
            cur = stack.pop()
            if cur in seen:
                raise SnapshotError(f"parent cycle detected at item {cur}")
            seen.add(cur)
            out.append(cur)
            stack.extend(c.id for c in reversed(self.children.get(cur, [])))
        return out

    def ancestors_of(self, item_id: str) -> List[str]:
        """Nearest parent first."""
        out: List[str] = []
        seen: Set[str] = {item_id}
        cur = self.by_id.get(item_id)
        while cur is not None and cur.parent_id is not None:
            pid = cur.parent_id
            if pid in seen:
                raise SnapshotError(f"parent cycle detected at item {pid}")
            seen.add(pid)
            out.append(pid)
            cur = self.by_id.get(pid)
        return out

    def is_ancestor_of(self, ancestor_id: str, descendant_id: str) -> bool:
        if ancestor_id == descendant_id:
            return False
        return ancestor_id in self.ancestors_of(descendant_id)

    def position(self, item_id: str) -> int:
        """Rank of `item_id` in outline (pre-order) order."""
        if self._position is None:
            order: List[str] = []
            for root in self.children.get(None, []):
                order.append(root.id)
                order.extend(self.descendants_of(root.id))
            self._position = {iid: i for i, iid in enumerate(order)}
        return self._position.get(item_id, len(self._position))

    def top_level(self, ids: Iterable[str]) -> List[str]:
        """Members of `ids` with no ancestor in `ids`, in outline order."""
        wanted = {i for i in ids if i in self.by_id}
        out = [i for i in wanted if not any(a in wanted for a in self.ancestors_of(i))]
        out.sort(key=self.position)
        return out

    def dragged_roots(self, ids: Iterable[str]) -> List[str]:
        """Members of `ids` whose direct parent is not in `ids`, in outline order.

        A grandchild selected without its parent is its own root, even when an
        older ancestor is selected too.
        """
        wanted = {i for i in ids if i in self.by_id}
        out = [i for i in wanted if self.by_id[i].parent_id not in wanted]
        out.sort(key=self.position)
        return out

    def closure(self, ids: Iterable[str]) -> List[str]:
        """Top-level members of `ids` plus all their descendants, outline order, no duplicates."""
        out: List[str] = []
        for top in self.top_level(ids):
            out.append(top)
            out.extend(self.descendants_of(top))
        return out


def descendants_of(item_id: str, items: Sequence[Item]) -> List[str]:
    return DescendantIndex(items).descendants_of(item_id)


def is_ancestor_of(ancestor_id: str, descendant_id: str, items: Sequence[Item]) -> bool:
    return DescendantIndex(items).is_ancestor_of(ancestor_id, descendant_id)


__all__ = [
    "DescendantIndex",
    "descendants_of",
    "is_ancestor_of",
]
