# wbstree/dependencies.py
from __future__ import annotations

from typing import Container, Dict, Iterable, List, Sequence, Set

from .descendants import DescendantIndex
from .errors import BOUNDARY, CYCLE, NOT_FOUND, Check
from .model import DEPENDENCY_KINDS, Item, Predecessor


def predecessor_candidates(item_id: str, items: Sequence[Item]) -> List[Item]:
    """Items that may be picked as predecessors of `item_id`: not itself, not below it."""
    index = DescendantIndex(items)
    excluded: Set[str] = {item_id}
    excluded.update(index.descendants_of(item_id))
    return [it for it in items if it.id not in excluded]


def _successor_graph(items: Sequence[Item], skip_id: str) -> Dict[str, Set[str]]:
    # edge pred -> item; `skip_id`'s own links are being replaced so they are left out
    graph: Dict[str, Set[str]] = {}
    for it in items:
        if it.id == skip_id:
            continue
        for p in it.predecessors:
            graph.setdefault(p.ref, set()).add(it.id)
    return graph


def _reachable(graph: Dict[str, Set[str]], start: str, goal: str) -> bool:
    seen: Set[str] = set()
    stack = [start]
    while stack:
        cur = stack.pop()
        if cur == goal:
            return True
        if cur in seen:
            continue
        seen.add(cur)
        stack.extend(graph.get(cur, ()))
    return False


def would_create_cycle(item_id: str, refs: Iterable[str], items: Sequence[Item]) -> Check:
    """Check replacing `item_id`'s predecessors with `refs` against the dependency graph."""
    by_id = {it.id: it for it in items}
    graph = _successor_graph(items, item_id)
    for ref in refs:
        if ref == item_id:
            return Check.invalid(CYCLE, "an item cannot be its own predecessor", item_id=item_id)
        # ref -> item is the new edge; a path item -> ... -> ref closes the loop
        if _reachable(graph, item_id, ref):
            name = by_id[ref].name if ref in by_id else ref
            return Check.invalid(
                CYCLE,
                f'Adding "{name or "this item"}" as a predecessor would create a circular dependency.',
                item_id=ref,
            )
    return Check.valid()


def predecessor_errors(item: Item, present: Container[str]) -> List[str]:
    """Dangling refs and unknown kinds on one item; `present` holds the snapshot ids."""
    errors: List[str] = []
    for p in item.predecessors:
        if p.ref not in present:
            errors.append(f"Predecessor {p.ref} not found")
            continue
        if p.kind not in DEPENDENCY_KINDS:
            errors.append(f"Predecessor {p.ref} has unknown dependency kind: {p.kind}")
    return errors


def validate_predecessors(item: Item, items: Sequence[Item]) -> List[str]:
    return predecessor_errors(item, {it.id for it in items})


def check_predecessors(item_id: str, preds: Sequence[Predecessor], items: Sequence[Item]) -> Check:
    """Full check for an edited predecessor list: refs exist, none below the item, no loop."""
    index = DescendantIndex(items)
    if item_id not in index:
        return Check.invalid(NOT_FOUND, f"item not found: {item_id}", item_id=item_id)
    below = set(index.descendants_of(item_id))
    for p in preds:
        if p.ref not in index:
            return Check.invalid(NOT_FOUND, f"Predecessor {p.ref} not found", item_id=p.ref)
        if p.ref in below:
            return Check.invalid(CYCLE, "an item cannot depend on its own descendant", item_id=p.ref)
        if p.kind not in DEPENDENCY_KINDS:
            return Check.invalid(
                BOUNDARY, f"Predecessor {p.ref} has unknown dependency kind: {p.kind}", item_id=p.ref
            )
    return would_create_cycle(item_id, [p.ref for p in preds], items)


__all__ = [
    "check_predecessors",
    "predecessor_candidates",
    "predecessor_errors",
    "validate_predecessors",
    "would_create_cycle",
]
