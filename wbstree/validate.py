"""Snapshot validation helpers (library-facing)."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .dependencies import predecessor_errors
from .errors import SnapshotError
from .hierarchy import is_known_type, validate_placement
from .model import Item
from .wbs import compute_wbs, stale_wbs_ids


def _require(cond: bool, msg: str, errs: List[str]) -> None:
    if not cond:
        errs.append(msg)


def _find_cycle_members(by_id: Dict[str, Item]) -> List[str]:
    bad: List[str] = []
    for start in by_id:
        seen = {start}
        cur = by_id[start].parent_id
        while cur is not None and cur in by_id:
            if cur in seen:
                bad.append(start)
                break
            seen.add(cur)
            cur = by_id[cur].parent_id
    return bad


def validate_snapshot(items: Sequence[Item], *, label: str = "snapshot", check_wbs: bool = False) -> List[str]:
    errs: List[str] = []
    by_id: Dict[str, Item] = {}

    for i, it in enumerate(items):
        if not isinstance(it, Item):
            errs.append(f"{label}: items[{i}] must be an Item")
            continue
        _require(bool(it.id), f"{label}: items[{i}].id must be non-empty", errs)
        if it.id in by_id:
            errs.append(f"{label}: duplicate item id: {it.id}")
            continue
        by_id[it.id] = it

    for it in by_id.values():
        _require(is_known_type(it.item_type), f"{label}: {it.id}: unknown item_type {it.item_type!r}", errs)
        if it.parent_id is not None and it.parent_id not in by_id:
            errs.append(f"{label}: {it.id}: parent {it.parent_id} not found")
        for e in predecessor_errors(it, by_id):
            errs.append(f"{label}: {it.id}: {e}")

    cyc = _find_cycle_members(by_id)
    if cyc:
        errs.append(f"{label}: parent cycle through: {', '.join(sorted(cyc))}")

    # Type rules only make sense once the parent links are sound.
    if not errs:
        for it in by_id.values():
            parent_type: Optional[str] = by_id[it.parent_id].item_type if it.parent_id is not None else None
            chk = validate_placement(it.item_type, parent_type)
            if not chk.ok:
                errs.append(f"{label}: {it.id}: {chk.reason}")

    if check_wbs and not errs:
        numbers = compute_wbs(items)
        for item_id in stale_wbs_ids(items, numbers):
            it = by_id[item_id]
            errs.append(f"{label}: {item_id}: stale wbs_number {it.wbs_number!r} (expected {numbers[item_id]!r})")

    return errs


def assert_valid_snapshot(items: Sequence[Item], *, check_wbs: bool = False) -> None:
    errs = validate_snapshot(items, check_wbs=check_wbs)
    if errs:
        raise SnapshotError(errs[0])


__all__ = [
    "assert_valid_snapshot",
    "validate_snapshot",
]
