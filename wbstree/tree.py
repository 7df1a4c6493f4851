# wbstree/tree.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import SnapshotError
from .model import DELIVERABLE, MILESTONE, TASK, Item, TreeNode

ChildIndex = Dict[Optional[str], List[Item]]


def index_by_id(items: Iterable[Item]) -> Dict[str, Item]:
    out: Dict[str, Item] = {}
    for it in items:
        if it.id in out:
            raise SnapshotError(f"duplicate item id: {it.id}")
        out[it.id] = it
    return out


def children_index(items: Sequence[Item]) -> ChildIndex:
    """Map parent id (None for root) -> children in sibling order.

    Sibling order is sort_order, ties broken by position in `items`.
    """
    by_id = index_by_id(items)
    keyed: Dict[Optional[str], List[Tuple[int, int, Item]]] = {None: []}
    for pos, it in enumerate(items):
        pid = it.parent_id
        if pid is not None and pid not in by_id:
            raise SnapshotError(f"item {it.id} references missing parent {pid}")
        keyed.setdefault(pid, []).append((it.sort_order, pos, it))

    out: ChildIndex = {}
    for pid, arr in keyed.items():
        arr.sort(key=lambda x: (x[0], x[1]))
        out[pid] = [it for _, _, it in arr]
    return out


def _preorder(index: ChildIndex) -> List[Item]:
    out: List[Item] = []
    stack: List[Item] = list(reversed(index.get(None, [])))
    while stack:
        it = stack.pop()
        out.append(it)
        stack.extend(reversed(index.get(it.id, [])))
    return out


def outline_order(items: Sequence[Item]) -> Tuple[Item, ...]:
    """Items in display (pre-order) order."""
    ordered = _preorder(children_index(items))
    if len(ordered) != len(items):
        seen = {it.id for it in ordered}
        stuck = sorted(it.id for it in items if it.id not in seen)
        raise SnapshotError(f"parent cycle detected among items: {', '.join(stuck)}")
    return tuple(ordered)


def build_tree(items: Sequence[Item]) -> Tuple[TreeNode, ...]:
    index = children_index(items)
    order = outline_order(items)

    # Build bottom-up: reversed pre-order visits every child before its parent.
    built: Dict[str, TreeNode] = {}
    for it in reversed(order):
        kids = tuple(built[c.id] for c in index.get(it.id, []))
        built[it.id] = TreeNode(item=it, children=kids)
    return tuple(built[it.id] for it in index.get(None, []))


def flatten_tree(nodes: Sequence[TreeNode]) -> Tuple[Item, ...]:
    out: List[Item] = []
    stack: List[TreeNode] = list(reversed(nodes))
    while stack:
        node = stack.pop()
        out.append(node.item)
        stack.extend(reversed(node.children))
    return tuple(out)


def count_by_type(nodes: Sequence[TreeNode]) -> Dict[str, int]:
    counts = {"total": 0, "milestones": 0, "deliverables": 0, "tasks": 0}
    for it in flatten_tree(nodes):
        counts["total"] += 1
        if it.item_type == MILESTONE:
            counts["milestones"] += 1
        elif it.item_type == DELIVERABLE:
            counts["deliverables"] += 1
        elif it.item_type == TASK:
            counts["tasks"] += 1
    return counts


def depth_of(item_id: str, by_id: Dict[str, Item]) -> int:
    """0 for root items."""
    depth = 0
    seen = set()
    cur = by_id.get(item_id)
    while cur is not None and cur.parent_id is not None:
        if cur.id in seen:
            raise SnapshotError(f"parent cycle detected at item {cur.id}")
        seen.add(cur.id)
        depth += 1
        cur = by_id.get(cur.parent_id)
    return depth


__all__ = [
    "ChildIndex",
    "build_tree",
    "children_index",
    "count_by_type",
    "depth_of",
    "flatten_tree",
    "index_by_id",
    "outline_order",
]
