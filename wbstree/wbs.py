# wbstree/wbs.py
from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import SnapshotError
from .model import Item
from .tree import children_index


def compute_wbs(items: Sequence[Item]) -> Dict[str, str]:
    """
    Returns per-id dotted outline numbers.

    Root siblings are 1, 2, 3, ...; a child is "<parent>.<rank>" where rank is the
    1-based position among its siblings (sort_order, then array position).
    """
    index = children_index(items)
    out: Dict[str, str] = {}

    stack: List[Tuple[str, str]] = []
    for rank, it in reversed(list(enumerate(index.get(None, []), start=1))):
        stack.append((it.id, str(rank)))

    while stack:
        item_id, number = stack.pop()
        out[item_id] = number
        kids = index.get(item_id, [])
        for rank in range(len(kids), 0, -1):
            stack.append((kids[rank - 1].id, f"{number}.{rank}"))

    if len(out) != len(items):
        stuck = sorted(it.id for it in items if it.id not in out)
        raise SnapshotError(f"parent cycle detected among items: {', '.join(stuck)}")
    return out


def number_items(items: Sequence[Item]) -> Tuple[Item, ...]:
    """Return `items` (same order) with every wbs_number recomputed."""
    numbers = compute_wbs(items)
    out: List[Item] = []
    for it in items:
        n = numbers[it.id]
        out.append(it if it.wbs_number == n else replace(it, wbs_number=n))
    return tuple(out)


def stale_wbs_ids(items: Sequence[Item], numbers: Optional[Dict[str, str]] = None) -> List[str]:
    """Ids whose stored wbs_number does not match the recomputed one."""
    if numbers is None:
        numbers = compute_wbs(items)
    return [it.id for it in items if it.wbs_number != numbers[it.id]]


__all__ = [
    "compute_wbs",
    "number_items",
    "stale_wbs_ids",
]
