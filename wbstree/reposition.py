# wbstree/reposition.py
from __future__ import annotations

import time
import uuid
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .dependencies import check_predecessors
from .descendants import DescendantIndex
from .errors import BOUNDARY, HIERARCHY, NOT_FOUND, Check, OpResult
from .hierarchy import (
    allowed_child_types,
    child_conflicts,
    promotion_target,
    validate_placement,
)
from .model import (
    BEFORE,
    CREATE,
    DELETE,
    INSIDE,
    MOVE,
    STRUCTURAL_FIELDS,
    TASK,
    UPDATE,
    HistoryEntry,
    Item,
    Predecessor,
)
from .placement import check_drop, resolve_new_parent
from .tree import outline_order
from .wbs import number_items

Placement = Dict[str, Any]          # {"parent_id", "sort_order", "item_type"}
Changes = Dict[str, Dict[str, Any]]  # id -> fields to replace

EDITABLE_FIELDS: Tuple[str, ...] = (
    "name",
    "predecessors",
    "progress",
    "status",
    "is_published",
    "published_ref",
    "is_collapsed",
    "created_at",
    "updated_at",
    "extra",
)


def new_item_id() -> str:
    return str(uuid.uuid4())


def placement_of(it: Item) -> Placement:
    return {"parent_id": it.parent_id, "sort_order": it.sort_order, "item_type": it.item_type}


def relinearize(group: Sequence[Item], start: int = 1) -> Dict[str, int]:
    """Dense sort_order for an ordered sibling group: start, start+1, ..."""
    return {it.id: rank for rank, it in enumerate(group, start=start)}


def apply_changes(items: Sequence[Item], changes: Mapping[str, Mapping[str, Any]]) -> List[Item]:
    out: List[Item] = []
    for it in items:
        ch = changes.get(it.id)
        out.append(replace(it, **ch) if ch else it)
    return out


def finalize(items: Sequence[Item]) -> Tuple[Item, ...]:
    """Renumber and return in outline order; every op hands back this shape."""
    return outline_order(number_items(items))


def _rank_changes(ordered: Sequence[Item], start: int, changes: Changes) -> None:
    for rank, it in enumerate(ordered, start=start):
        if it.sort_order != rank:
            changes.setdefault(it.id, {})["sort_order"] = rank


def _move_result(
    items: Sequence[Item],
    index: DescendantIndex,
    changes: Changes,
    *,
    op: str,
    item_ids: Sequence[str],
    extra: Optional[Dict[str, Any]] = None,
) -> OpResult:
    if not changes:
        return OpResult(items=finalize(items), entry=None, changed_ids=())

    new_items = apply_changes(items, changes)
    after_by_id = {it.id: it for it in new_items}
    before = {i: placement_of(index.by_id[i]) for i in changes}
    after = {i: placement_of(after_by_id[i]) for i in changes}

    payload: Dict[str, Any] = {"op": op, "item_ids": list(item_ids), "before": before, "after": after}
    if extra:
        payload.update(extra)
    entry = HistoryEntry(type=MOVE, payload=payload, timestamp=time.time())
    return OpResult(items=finalize(new_items), entry=entry, changed_ids=tuple(changes))


# --- drag-drop ----------------------------------------------------------------


def check_move(
    items: Sequence[Item],
    dragged_ids: Iterable[str],
    target_id: Optional[str],
    position: str,
) -> Check:
    return check_drop(dragged_ids, target_id, position, DescendantIndex(items))


def move_items(
    items: Sequence[Item],
    dragged_ids: Iterable[str],
    target_id: Optional[str],
    position: str,
    *,
    start: int = 1,
) -> OpResult:
    """
    Drop `dragged_ids` at (target_id, position).

    BEFORE takes the target's rank, AFTER lands right behind the target (its subtree
    stays with it), INSIDE appends after the target's last child, and a None target
    appends to the root list. Only dragged items whose parent is not also dragged
    are reparented.
    """
    dragged = list(dict.fromkeys(dragged_ids))
    index = DescendantIndex(items)
    chk = check_drop(dragged, target_id, position, index)
    if not chk.ok:
        return OpResult.refused(chk)

    new_parent_id, _parent_type = resolve_new_parent(target_id, position, index)
    tops = index.dragged_roots(dragged)
    top_set = set(tops)

    group = [c for c in index.children.get(new_parent_id, []) if c.id not in top_set]
    if target_id is None or position == INSIDE:
        insert_at = len(group)
    else:
        pos = next(i for i, c in enumerate(group) if c.id == target_id)
        insert_at = pos if position == BEFORE else pos + 1

    ordered = group[:insert_at] + [index.by_id[t] for t in tops] + group[insert_at:]

    changes: Changes = {}
    for t in tops:
        if index.by_id[t].parent_id != new_parent_id:
            changes.setdefault(t, {})["parent_id"] = new_parent_id
    _rank_changes(ordered, start, changes)

    return _move_result(
        items,
        index,
        changes,
        op="drop",
        item_ids=tops,
        extra={"target_id": target_id, "position": position},
    )


# --- promote / demote -----------------------------------------------------------


def _plan_promote(index: DescendantIndex, item_id: str) -> Tuple[Check, Optional[str], Optional[str]]:
    """Returns (check, new_parent_id, new_type)."""
    it = index.by_id.get(item_id)
    if it is None:
        return Check.invalid(NOT_FOUND, f"item not found: {item_id}", item_id=item_id), None, None
    if it.parent_id is None:
        return (
            Check.invalid(BOUNDARY, f"{it.item_type} cannot be promoted", item_id=it.id, item_type=it.item_type),
            None,
            None,
        )

    parent = index.by_id[it.parent_id]
    new_parent_id = parent.parent_id
    new_parent_type = index.by_id[new_parent_id].item_type if new_parent_id is not None else None

    if it.item_type == TASK and parent.item_type == TASK:
        new_type: Optional[str] = TASK
    else:
        new_type = promotion_target(it.item_type)
    if new_type is None:
        return (
            Check.invalid(BOUNDARY, f"{it.item_type} cannot be promoted", item_id=it.id, item_type=it.item_type),
            None,
            None,
        )

    chk = validate_placement(new_type, new_parent_type)
    if not chk.ok:
        return Check.invalid(HIERARCHY, chk.reason or "", item_id=it.id, item_type=it.item_type), None, None

    bad = child_conflicts(new_type, tuple(c.item_type for c in index.children.get(it.id, [])))
    if bad is not None:
        return (
            Check.invalid(HIERARCHY, f"would orphan {bad} children", item_id=it.id, item_type=it.item_type),
            None,
            None,
        )
    return Check.valid(), new_parent_id, new_type


def check_promote(items: Sequence[Item], item_id: str) -> Check:
    return _plan_promote(DescendantIndex(items), item_id)[0]


def promote_item(items: Sequence[Item], item_id: str, *, start: int = 1) -> OpResult:
    """Move one level up: parent becomes the grandparent, placed right after the former parent."""
    index = DescendantIndex(items)
    chk, new_parent_id, new_type = _plan_promote(index, item_id)
    if not chk.ok:
        return OpResult.refused(chk)

    it = index.by_id[item_id]
    old_parent_id = it.parent_id
    group = [c for c in index.children.get(new_parent_id, []) if c.id != item_id]
    pos = next(i for i, c in enumerate(group) if c.id == old_parent_id)
    ordered = group[: pos + 1] + [it] + group[pos + 1:]

    changes: Changes = {item_id: {"parent_id": new_parent_id}}
    if new_type != it.item_type:
        changes[item_id]["item_type"] = new_type
    _rank_changes(ordered, start, changes)

    return _move_result(items, index, changes, op="promote", item_ids=[item_id])


def _plan_demote(index: DescendantIndex, item_id: str) -> Tuple[Check, Optional[Item], Optional[str]]:
    """Returns (check, new_parent, new_type)."""
    it = index.by_id.get(item_id)
    if it is None:
        return Check.invalid(NOT_FOUND, f"item not found: {item_id}", item_id=item_id), None, None

    siblings = index.children.get(it.parent_id, [])
    pos = next(i for i, c in enumerate(siblings) if c.id == item_id)
    if pos == 0:
        return (
            Check.invalid(BOUNDARY, "no previous item to nest under", item_id=it.id, item_type=it.item_type),
            None,
            None,
        )

    prev = siblings[pos - 1]
    allowed = allowed_child_types(prev.item_type)
    if not allowed:
        return (
            Check.invalid(BOUNDARY, f"cannot nest under {prev.item_type}", item_id=it.id, item_type=it.item_type),
            None,
            None,
        )
    new_type = allowed[0]

    bad = child_conflicts(new_type, tuple(c.item_type for c in index.children.get(it.id, [])))
    if bad is not None:
        return (
            Check.invalid(HIERARCHY, f"would orphan {bad} children", item_id=it.id, item_type=it.item_type),
            None,
            None,
        )
    return Check.valid(), prev, new_type


def check_demote(items: Sequence[Item], item_id: str) -> Check:
    return _plan_demote(DescendantIndex(items), item_id)[0]


def demote_item(items: Sequence[Item], item_id: str, *, start: int = 1) -> OpResult:
    """Nest under the preceding sibling, as its last child."""
    index = DescendantIndex(items)
    chk, new_parent, new_type = _plan_demote(index, item_id)
    if not chk.ok:
        return OpResult.refused(chk)

    it = index.by_id[item_id]
    ordered = list(index.children.get(new_parent.id, [])) + [it]

    changes: Changes = {item_id: {"parent_id": new_parent.id}}
    if new_type != it.item_type:
        changes[item_id]["item_type"] = new_type
    _rank_changes(ordered, start, changes)

    return _move_result(items, index, changes, op="demote", item_ids=[item_id])


# --- keyboard move up / down -------------------------------------------------------


def _swap_with_neighbour(items: Sequence[Item], item_id: str, step: int, start: int) -> OpResult:
    # Pure sibling-order swap: parent and type never change, so no hierarchy check.
    index = DescendantIndex(items)
    it = index.by_id.get(item_id)
    if it is None:
        return OpResult.refused(Check.invalid(NOT_FOUND, f"item not found: {item_id}", item_id=item_id))

    siblings = list(index.children.get(it.parent_id, []))
    pos = next(i for i, c in enumerate(siblings) if c.id == item_id)
    other_pos = pos + step
    if other_pos < 0:
        return OpResult.refused(Check.invalid(BOUNDARY, "already at top", item_id=it.id, item_type=it.item_type))
    if other_pos >= len(siblings):
        return OpResult.refused(Check.invalid(BOUNDARY, "already at bottom", item_id=it.id, item_type=it.item_type))

    other = siblings[other_pos]
    changes: Changes = {}
    orders = [c.sort_order for c in siblings]
    if len(set(orders)) == len(orders):
        changes[it.id] = {"sort_order": other.sort_order}
        changes[other.id] = {"sort_order": it.sort_order}
    else:
        # ties: swapping equal values would be a no-op, so re-rank the whole group
        siblings[pos], siblings[other_pos] = siblings[other_pos], siblings[pos]
        _rank_changes(siblings, start, changes)

    return _move_result(
        items,
        index,
        changes,
        op="move_up" if step < 0 else "move_down",
        item_ids=[item_id],
    )


def move_up(items: Sequence[Item], item_id: str, *, start: int = 1) -> OpResult:
    return _swap_with_neighbour(items, item_id, -1, start)


def move_down(items: Sequence[Item], item_id: str, *, start: int = 1) -> OpResult:
    return _swap_with_neighbour(items, item_id, +1, start)


# --- create / delete / update ----------------------------------------------------


def insert_item(
    items: Sequence[Item],
    item_type: str,
    *,
    parent_id: Optional[str] = None,
    after_id: Optional[str] = None,
    name: str = "New Task",
    new_id: Optional[str] = None,
    now: Optional[str] = None,
    start: int = 1,
) -> OpResult:
    """
    Create a new item under `parent_id` (root when None), at the end of its
    sibling group or right after `after_id`. When `after_id` is given its parent wins.
    """
    index = DescendantIndex(items)

    if after_id is not None:
        after = index.by_id.get(after_id)
        if after is None:
            return OpResult.refused(Check.invalid(NOT_FOUND, f"item not found: {after_id}", item_id=after_id))
        parent_id = after.parent_id

    parent_type: Optional[str] = None
    if parent_id is not None:
        parent = index.by_id.get(parent_id)
        if parent is None:
            return OpResult.refused(Check.invalid(NOT_FOUND, f"parent item not found: {parent_id}", item_id=parent_id))
        parent_type = parent.item_type

    chk = validate_placement(item_type, parent_type)
    if not chk.ok:
        return OpResult.refused(chk)

    item_id = new_id or new_item_id()
    if item_id in index:
        raise ValueError(f"new item id already in use: {item_id}")

    group = list(index.children.get(parent_id, []))
    insert_at = len(group)
    if after_id is not None:
        insert_at = next(i for i, c in enumerate(group) if c.id == after_id) + 1

    created = Item(id=item_id, item_type=item_type, parent_id=parent_id, name=name, created_at=now, updated_at=now)
    ordered = group[:insert_at] + [created] + group[insert_at:]
    ranks = relinearize(ordered, start)
    created = replace(created, sort_order=ranks[item_id])

    changes: Changes = {}
    for c in group:
        if c.sort_order != ranks[c.id]:
            changes[c.id] = {"sort_order": ranks[c.id]}

    new_items = apply_changes(items, changes) + [created]
    after_by_id = {it.id: it for it in new_items}
    payload = {
        "op": "insert",
        "item_ids": [item_id],
        "items": [created.to_dict()],
        "before": {i: placement_of(index.by_id[i]) for i in changes},
        "after": {i: placement_of(after_by_id[i]) for i in changes},
    }
    entry = HistoryEntry(type=CREATE, payload=payload, timestamp=time.time())
    return OpResult(items=finalize(new_items), entry=entry, changed_ids=(item_id,) + tuple(changes))


def delete_items(items: Sequence[Item], item_ids: Iterable[str]) -> OpResult:
    """Drop items and everything below them from the snapshot."""
    ids = list(dict.fromkeys(item_ids))
    if not ids:
        return OpResult.refused(Check.invalid(NOT_FOUND, "nothing selected to delete"))
    index = DescendantIndex(items)
    for i in ids:
        if i not in index:
            return OpResult.refused(Check.invalid(NOT_FOUND, f"item not found: {i}", item_id=i))

    removed = index.closure(ids)
    removed_set = set(removed)
    new_items = [it for it in items if it.id not in removed_set]

    payload = {
        "op": "delete",
        "item_ids": index.top_level(ids),
        "items": [index.by_id[i].to_dict() for i in removed],
    }
    entry = HistoryEntry(type=DELETE, payload=payload, timestamp=time.time())
    return OpResult(items=finalize(new_items), entry=entry, changed_ids=tuple(removed))


def _coerce_predecessors(value: Any) -> Tuple[Predecessor, ...]:
    out: List[Predecessor] = []
    for p in value or ():
        if isinstance(p, Predecessor):
            out.append(p)
        elif isinstance(p, dict):
            out.append(Predecessor.from_dict(p))
        else:
            raise ValueError(f"predecessor must be a Predecessor or dict; got {type(p).__name__}")
    return tuple(out)


def update_item(items: Sequence[Item], item_id: str, **fields: Any) -> OpResult:
    """
    Edit non-structural fields. Structural fields go through the move/promote/demote paths.

    A new predecessor list must reference existing items outside the edited
    item's subtree and must not close a dependency loop.
    """
    for k in fields:
        if k in STRUCTURAL_FIELDS:
            raise ValueError(f"{k} cannot be edited directly")
        if k not in EDITABLE_FIELDS:
            raise ValueError(f"unknown item field: {k}")

    index = DescendantIndex(items)
    it = index.by_id.get(item_id)
    if it is None:
        return OpResult.refused(Check.invalid(NOT_FOUND, f"item not found: {item_id}", item_id=item_id))

    if "predecessors" in fields:
        fields["predecessors"] = _coerce_predecessors(fields["predecessors"])
        chk = check_predecessors(item_id, fields["predecessors"], items)
        if not chk.ok:
            return OpResult.refused(chk)

    before = {k: getattr(it, k) for k in fields if getattr(it, k) != fields[k]}
    after = {k: fields[k] for k in before}
    if not after:
        return OpResult(items=finalize(items), entry=None, changed_ids=())

    new_items = apply_changes(items, {item_id: after})
    payload = {"op": "update", "item_id": item_id, "fields_before": before, "fields_after": after}
    entry = HistoryEntry(type=UPDATE, payload=payload, timestamp=time.time())
    return OpResult(items=finalize(new_items), entry=entry, changed_ids=(item_id,))


__all__ = [
    "EDITABLE_FIELDS",
    "apply_changes",
    "check_demote",
    "check_move",
    "check_promote",
    "delete_items",
    "demote_item",
    "finalize",
    "insert_item",
    "move_down",
    "move_items",
    "move_up",
    "new_item_id",
    "placement_of",
    "promote_item",
    "relinearize",
    "update_item",
]
