"""Placement validation for drag-drop, paste and other reparenting moves.

Checks run in a fixed order and stop at the first failure:
  1. ids exist, position is known
  2. target is not one of the dragged items
  3. target is not inside a dragged sub-forest
  4. every dragged item whose parent is not also dragged is legal under the
     effective new parent
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

from .descendants import DescendantIndex
from .errors import BOUNDARY, CYCLE, NOT_FOUND, Check
from .hierarchy import validate_placement
from .model import INSIDE, POSITIONS, ClipboardPayload, Item


def resolve_new_parent(
    target_id: Optional[str],
    position: str,
    index: DescendantIndex,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Returns (new_parent_id, new_parent_type) for a drop at (target, position).
    A None target means "end of the root list".
    """
    if target_id is None:
        return None, None
    target = index.by_id[target_id]
    if position == INSIDE:
        return target.id, target.item_type
    if target.parent_id is None:
        return None, None
    parent = index.by_id[target.parent_id]
    return parent.id, parent.item_type


def _check_target(target_id: Optional[str], position: str, index: DescendantIndex) -> Check:
    if position not in POSITIONS:
        return Check.invalid(BOUNDARY, f"unknown drop position: {position}")
    if target_id is not None and target_id not in index:
        return Check.invalid(NOT_FOUND, f"target item not found: {target_id}", item_id=target_id)
    return Check.valid()


def check_drop(
    dragged_ids: Iterable[str],
    target_id: Optional[str],
    position: str,
    index: DescendantIndex,
) -> Check:
    dragged = list(dict.fromkeys(dragged_ids))
    if not dragged:
        return Check.invalid(NOT_FOUND, "nothing selected to move")
    for d in dragged:
        if d not in index:
            return Check.invalid(NOT_FOUND, f"item not found: {d}", item_id=d)

    chk = _check_target(target_id, position, index)
    if not chk.ok:
        return chk

    if target_id is not None:
        dragged_set = set(dragged)
        if target_id in dragged_set:
            return Check.invalid(CYCLE, "cannot drop an item onto itself", item_id=target_id)
        for a in index.ancestors_of(target_id):
            if a in dragged_set:
                return Check.invalid(
                    CYCLE,
                    "cannot move an item into its own descendant",
                    item_id=a,
                    item_type=index.by_id[a].item_type,
                )

    _parent_id, parent_type = resolve_new_parent(target_id, position, index)
    for top in index.dragged_roots(dragged):
        it = index.by_id[top]
        chk = validate_placement(it.item_type, parent_type)
        if not chk.ok:
            v = chk.violation
            return Check.invalid(v.kind, v.reason, item_id=it.id, item_type=it.item_type)
    return Check.valid()


def validate_drop(
    dragged_ids: Iterable[str],
    target_id: Optional[str],
    position: str,
    items: Sequence[Item],
) -> Check:
    """Decide whether `dragged_ids` may be dropped at (target_id, position)."""
    return check_drop(dragged_ids, target_id, position, DescendantIndex(items))


def check_paste(
    payload: ClipboardPayload,
    target_id: Optional[str],
    position: str,
    index: DescendantIndex,
) -> Check:
    # Cloned roots get fresh ids, so only the type table and target existence matter.
    if payload.is_empty:
        return Check.invalid(NOT_FOUND, "clipboard is empty")
    chk = _check_target(target_id, position, index)
    if not chk.ok:
        return chk
    parent_id, parent_type = resolve_new_parent(target_id, position, index)
    if parent_id is not None and parent_id in payload.source_ids:
        # cut sources are deleted after the paste, taking the clones with them
        return Check.invalid(CYCLE, "cannot paste a cut selection into itself", item_id=parent_id)
    for node in payload.roots:
        it = node.item
        chk = validate_placement(it.item_type, parent_type)
        if not chk.ok:
            v = chk.violation
            return Check.invalid(v.kind, v.reason, item_id=it.id, item_type=it.item_type)
    return Check.valid()


def validate_paste(
    payload: ClipboardPayload,
    target_id: Optional[str],
    position: str,
    items: Sequence[Item],
) -> Check:
    return check_paste(payload, target_id, position, DescendantIndex(items))


__all__ = [
    "check_drop",
    "check_paste",
    "resolve_new_parent",
    "validate_drop",
    "validate_paste",
]
