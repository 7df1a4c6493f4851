"""Bounded linear undo/redo.

Entries carry intent plus the data needed to reverse it; no full snapshots are
stored. `revert_entry` / `reapply_entry` replay an entry against the current
snapshot.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_HISTORY_LIMIT
from .errors import SnapshotError
from .model import CREATE, DELETE, MOVE, UPDATE, HistoryEntry, Item
from .reposition import apply_changes, finalize

logger = logging.getLogger(__name__)


class HistoryLog:
    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if int(limit) < 1:
            raise ValueError(f"history limit must be >= 1; got {limit}")
        self.limit = int(limit)
        self._undo: List[HistoryEntry] = []
        self._redo: List[HistoryEntry] = []

    def push(self, entry: HistoryEntry) -> None:
        self._undo.append(entry)
        self._redo.clear()
        while len(self._undo) > self.limit:
            dropped = self._undo.pop(0)
            logger.debug("history full (limit=%d); evicted %s entry", self.limit, dropped.type)

    def undo(self) -> Optional[HistoryEntry]:
        if not self._undo:
            return None
        entry = self._undo.pop()
        self._redo.append(entry)
        return entry

    def redo(self) -> Optional[HistoryEntry]:
        if not self._redo:
            return None
        entry = self._redo.pop()
        self._undo.append(entry)
        return entry

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()


def _require_ids(items: Sequence[Item], ids: Sequence[str], entry: HistoryEntry) -> None:
    present = {it.id for it in items}
    missing = [i for i in ids if i not in present]
    if missing:
        raise SnapshotError(f"{entry.type} entry references items missing from snapshot: {', '.join(missing)}")


def _apply_placements(items: Sequence[Item], records: Mapping[str, Mapping[str, Any]], entry: HistoryEntry) -> List[Item]:
    _require_ids(items, list(records), entry)
    return apply_changes(items, {i: dict(rec) for i, rec in records.items()})


def _add_items(items: Sequence[Item], rows: Sequence[Dict[str, Any]], entry: HistoryEntry) -> List[Item]:
    present = {it.id for it in items}
    added = [Item.from_dict(r) for r in rows]
    clash = [a.id for a in added if a.id in present]
    if clash:
        raise SnapshotError(f"{entry.type} entry would re-add existing items: {', '.join(clash)}")
    return list(items) + added


def _remove_items(items: Sequence[Item], rows: Sequence[Dict[str, Any]], entry: HistoryEntry) -> List[Item]:
    ids = [str(r["id"]) for r in rows]
    _require_ids(items, ids, entry)
    gone = set(ids)
    return [it for it in items if it.id not in gone]


def _replay(items: Sequence[Item], entry: HistoryEntry, *, forward: bool) -> Tuple[Item, ...]:
    p = entry.payload
    side = "after" if forward else "before"

    if entry.type == MOVE:
        out = _apply_placements(items, p.get(side) or {}, entry)
    elif entry.type == UPDATE:
        item_id = p["item_id"]
        _require_ids(items, [item_id], entry)
        fields = p["fields_after"] if forward else p["fields_before"]
        out = apply_changes(items, {item_id: dict(fields)})
    elif entry.type == CREATE:
        if forward:
            out = _apply_placements(_add_items(items, p.get("items") or [], entry), p.get("after") or {}, entry)
        else:
            out = _apply_placements(_remove_items(items, p.get("items") or [], entry), p.get("before") or {}, entry)
    elif entry.type == DELETE:
        if forward:
            out = _remove_items(items, p.get("items") or [], entry)
        else:
            out = _add_items(items, p.get("items") or [], entry)
    else:
        raise ValueError(f"unknown history entry type: {entry.type}")

    return finalize(out)


def revert_entry(items: Sequence[Item], entry: HistoryEntry) -> Tuple[Item, ...]:
    """Snapshot as it was before `entry` was applied."""
    return _replay(items, entry, forward=False)


def reapply_entry(items: Sequence[Item], entry: HistoryEntry) -> Tuple[Item, ...]:
    """Snapshot with `entry` applied again."""
    return _replay(items, entry, forward=True)


__all__ = [
    "HistoryLog",
    "reapply_entry",
    "revert_entry",
]
