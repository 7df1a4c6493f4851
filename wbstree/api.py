"""wbstree.api

Stable *library* entrypoint for wbstree.

Policy:
  - Only names listed in __all__ are considered public API.
  - Everything else is internal and may change without notice.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

from wbstree.clipboard import Clipboard, copy_items, paste_items, prepare_for_paste
from wbstree.config import EngineConfig
from wbstree.dependencies import check_predecessors, would_create_cycle
from wbstree.descendants import DescendantIndex, descendants_of, is_ancestor_of
from wbstree.diff import SnapshotDiff, diff_snapshots
from wbstree.errors import Check, OpResult, SnapshotError, Violation
from wbstree.hierarchy import (
    allowed_child_types,
    allowed_parent_types,
    demotion_target,
    promotion_target,
    validate_placement,
)
from wbstree.history import HistoryLog, reapply_entry, revert_entry
from wbstree.model import (
    AFTER,
    BEFORE,
    DELIVERABLE,
    INSIDE,
    MILESTONE,
    TASK,
    ClipboardPayload,
    HistoryEntry,
    Item,
    Predecessor,
    TreeNode,
)
from wbstree.placement import validate_drop, validate_paste
from wbstree.reposition import (
    delete_items,
    demote_item,
    insert_item,
    move_down,
    move_items,
    move_up,
    promote_item,
    update_item,
)
from wbstree.session import OutlineSession
from wbstree.tree import build_tree, flatten_tree, outline_order
from wbstree.validate import validate_snapshot
from wbstree.wbs import compute_wbs, number_items

JsonPath = Union[str, Path]


def snapshot_from_rows(rows: Sequence[Dict[str, Any]]) -> Tuple[Item, ...]:
    """Build a snapshot from stored rows (dicts). Raises SnapshotError on bad rows."""
    out: List[Item] = []
    for i, row in enumerate(rows):
        try:
            out.append(Item.from_dict(row))
        except ValueError as e:
            raise SnapshotError(f"items[{i}]: {e}") from e
    return tuple(out)


def snapshot_to_rows(items: Sequence[Item]) -> List[Dict[str, Any]]:
    return [it.to_dict() for it in items]


def load_snapshot_from_json(path: JsonPath) -> Tuple[Item, ...]:
    """Load a snapshot from a JSON file.

    Accepts either a bare list of items or an object with an "items" list.
    """
    p = Path(path)
    doc = json.loads(p.read_text(encoding="utf-8", errors="replace"))
    if isinstance(doc, dict):
        doc = doc.get("items")
    if not isinstance(doc, list):
        raise SnapshotError(f"snapshot JSON must be a list or an object with an 'items' list: {p}")
    return snapshot_from_rows(doc)


def _jsonable(v: Any) -> Any:
    if is_dataclass(v) and not isinstance(v, type):
        return _jsonable(asdict(v))
    if isinstance(v, dict):
        return {str(k): _jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    return v


def entry_to_dict(entry: HistoryEntry) -> Dict[str, Any]:
    return {"type": entry.type, "payload": _jsonable(entry.payload), "timestamp": entry.timestamp}


def dump_snapshot_json(items: Sequence[Item]) -> str:
    return json.dumps({"items": snapshot_to_rows(items)}, ensure_ascii=False, indent=2, sort_keys=True) + "\n"


# --- Public API exports (locked by contract tests) ------------------------
# Keep changes intentional and reviewable.
# Prefer append-only unless you are intentionally reshaping the public surface.
_PUBLIC_EXPORTS = (
    "AFTER",
    "BEFORE",
    "Check",
    "Clipboard",
    "ClipboardPayload",
    "DELIVERABLE",
    "DescendantIndex",
    "EngineConfig",
    "HistoryEntry",
    "HistoryLog",
    "INSIDE",
    "Item",
    "MILESTONE",
    "OpResult",
    "OutlineSession",
    "Predecessor",
    "SnapshotDiff",
    "SnapshotError",
    "TASK",
    "TreeNode",
    "Violation",
    "allowed_child_types",
    "allowed_parent_types",
    "build_tree",
    "check_predecessors",
    "compute_wbs",
    "copy_items",
    "delete_items",
    "demote_item",
    "demotion_target",
    "descendants_of",
    "diff_snapshots",
    "dump_snapshot_json",
    "entry_to_dict",
    "flatten_tree",
    "insert_item",
    "is_ancestor_of",
    "load_snapshot_from_json",
    "move_down",
    "move_items",
    "move_up",
    "number_items",
    "outline_order",
    "paste_items",
    "prepare_for_paste",
    "promote_item",
    "promotion_target",
    "reapply_entry",
    "revert_entry",
    "snapshot_from_rows",
    "snapshot_to_rows",
    "update_item",
    "validate_drop",
    "validate_paste",
    "validate_placement",
    "validate_snapshot",
    "would_create_cycle",
)

__all__ = [n for n in _PUBLIC_EXPORTS if n in globals()]
# --- /Public API exports --------------------------------------------------
