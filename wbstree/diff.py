# wbstree/diff.py
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Sequence, Tuple

from .model import Item
from .tree import depth_of, index_by_id

_COMPARED = tuple(f.name for f in fields(Item) if f.name != "id")


@dataclass(frozen=True)
class SnapshotDiff:
    created: Tuple[Item, ...]                 # parents before children
    updated: Dict[str, Dict[str, Any]]        # id -> {field: new value}
    deleted: Tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)


def diff_snapshots(before: Sequence[Item], after: Sequence[Item]) -> SnapshotDiff:
    """
    What the persistence layer has to write to go from `before` to `after`.

    `created` is ordered so a row's parent is always written first.
    """
    old = index_by_id(before)
    new = index_by_id(after)

    created = [it for it in after if it.id not in old]
    created.sort(key=lambda it: depth_of(it.id, new))

    updated: Dict[str, Dict[str, Any]] = {}
    for it in after:
        prev = old.get(it.id)
        if prev is None:
            continue
        ch = {name: getattr(it, name) for name in _COMPARED if getattr(it, name) != getattr(prev, name)}
        if ch:
            updated[it.id] = ch

    deleted: List[str] = [it.id for it in before if it.id not in new]
    return SnapshotDiff(created=tuple(created), updated=updated, deleted=tuple(deleted))


__all__ = [
    "SnapshotDiff",
    "diff_snapshots",
]
