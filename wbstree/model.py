# wbstree/model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

MILESTONE = "milestone"
DELIVERABLE = "deliverable"
TASK = "task"

ITEM_TYPES: Tuple[str, ...] = (MILESTONE, DELIVERABLE, TASK)

BEFORE = "before"
AFTER = "after"
INSIDE = "inside"

POSITIONS: Tuple[str, ...] = (BEFORE, AFTER, INSIDE)

# Dependency kinds: finish-to-start, start-to-start, finish-to-finish, start-to-finish.
FS = "FS"
SS = "SS"
FF = "FF"
SF = "SF"

DEPENDENCY_KINDS: Tuple[str, ...] = (FS, SS, FF, SF)

# History entry types
CREATE = "create"
UPDATE = "update"
DELETE = "delete"
MOVE = "move"

ENTRY_TYPES: Tuple[str, ...] = (CREATE, UPDATE, DELETE, MOVE)

DEFAULT_STATUS = "not_started"

# Fields the engine owns; everything else on an item belongs to the application.
STRUCTURAL_FIELDS: Tuple[str, ...] = ("id", "parent_id", "item_type", "sort_order", "wbs_number")


@dataclass(frozen=True)
class Predecessor:
    ref: str
    kind: str = FS
    lag: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"ref": self.ref, "kind": self.kind, "lag": self.lag}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Predecessor":
        # Legacy rows store {id, type, lag}.
        ref = data.get("ref", data.get("id"))
        if not isinstance(ref, str) or not ref:
            raise ValueError(f"predecessor ref must be a non-empty string; got {ref!r}")
        kind = data.get("kind", data.get("type")) or FS
        raw_lag = data.get("lag") or 0
        # Lag is a whole number of days.
        try:
            lag = float(raw_lag)
        except (TypeError, ValueError):
            raise ValueError(f"predecessor {ref}: lag must be a whole number; got {raw_lag!r}") from None
        if isinstance(raw_lag, bool) or not lag.is_integer():
            raise ValueError(f"predecessor {ref}: lag must be a whole number; got {raw_lag!r}")
        return Predecessor(ref=ref, kind=str(kind), lag=int(lag))


@dataclass(frozen=True)
class Item:
    id: str
    item_type: str
    parent_id: Optional[str] = None
    sort_order: int = 0
    name: str = ""
    wbs_number: str = ""            # derived; see wbstree.wbs
    predecessors: Tuple[Predecessor, ...] = ()

    # transient, owned by the application
    progress: int = 0
    status: str = DEFAULT_STATUS
    is_published: bool = False
    published_ref: Optional[str] = None
    is_collapsed: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        out.update(
            {
                "id": self.id,
                "parent_id": self.parent_id,
                "item_type": self.item_type,
                "sort_order": self.sort_order,
                "name": self.name,
                "wbs_number": self.wbs_number,
                "predecessors": [p.to_dict() for p in self.predecessors],
                "progress": self.progress,
                "status": self.status,
                "is_published": self.is_published,
                "published_ref": self.published_ref,
                "is_collapsed": self.is_collapsed,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
            }
        )
        return out

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Item":
        """Build an Item from a stored row.

        Tolerates the column names used by older exports (`wbs`, `type`) and
        keeps unknown keys in `extra` so they round-trip untouched.
        """
        if not isinstance(data, dict):
            raise ValueError(f"item must be a dict/object; got {type(data).__name__}")

        item_id = data.get("id")
        if not isinstance(item_id, str) or not item_id:
            raise ValueError(f"item id must be a non-empty string; got {item_id!r}")

        item_type = data.get("item_type", data.get("type"))
        if not isinstance(item_type, str) or not item_type:
            raise ValueError(f"item {item_id}: item_type must be a non-empty string")

        parent_id = data.get("parent_id")
        if parent_id is not None and not isinstance(parent_id, str):
            raise ValueError(f"item {item_id}: parent_id must be a string or null")

        preds_raw = data.get("predecessors") or []
        if not isinstance(preds_raw, list):
            raise ValueError(f"item {item_id}: predecessors must be a list")
        for i, p in enumerate(preds_raw):
            if not isinstance(p, dict):
                raise ValueError(f"item {item_id}: predecessors[{i}] must be a dict/object; got {type(p).__name__}")

        known = {
            "id", "parent_id", "item_type", "type", "sort_order", "name", "wbs", "wbs_number",
            "predecessors", "progress", "status", "is_published", "published_ref",
            "is_collapsed", "created_at", "updated_at",
        }
        extra = {k: v for k, v in data.items() if k not in known}

        return Item(
            id=item_id,
            item_type=item_type,
            parent_id=parent_id or None,
            sort_order=int(data.get("sort_order") or 0),
            name=str(data.get("name") or ""),
            wbs_number=str(data.get("wbs_number", data.get("wbs")) or ""),
            predecessors=tuple(Predecessor.from_dict(p) for p in preds_raw),
            progress=int(data.get("progress") or 0),
            status=str(data.get("status") or DEFAULT_STATUS),
            is_published=bool(data.get("is_published", False)),
            published_ref=data.get("published_ref"),
            is_collapsed=bool(data.get("is_collapsed", False)),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            extra=extra,
        )


@dataclass(frozen=True)
class TreeNode:
    item: Item
    children: Tuple["TreeNode", ...] = ()


@dataclass(frozen=True)
class HistoryEntry:
    """One reversible action.

    type: "create" | "update" | "delete" | "move"
    payload: everything needed to revert and reapply against the current snapshot.
    """

    type: str
    payload: Dict[str, Any]
    timestamp: float


@dataclass(frozen=True)
class ClipboardNode:
    item: Item
    children: Tuple["ClipboardNode", ...] = ()


@dataclass(frozen=True)
class ClipboardPayload:
    roots: Tuple[ClipboardNode, ...]
    mode: str = "copy"  # "copy" | "cut"
    source_ids: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.roots


Snapshot = Tuple[Item, ...]


__all__ = [
    "AFTER",
    "BEFORE",
    "CREATE",
    "ClipboardNode",
    "ClipboardPayload",
    "DELETE",
    "DELIVERABLE",
    "DEPENDENCY_KINDS",
    "ENTRY_TYPES",
    "FF",
    "FS",
    "HistoryEntry",
    "INSIDE",
    "ITEM_TYPES",
    "Item",
    "MILESTONE",
    "MOVE",
    "POSITIONS",
    "Predecessor",
    "SF",
    "SS",
    "STRUCTURAL_FIELDS",
    "Snapshot",
    "TASK",
    "TreeNode",
    "UPDATE",
]
