"""One editor's working state: snapshot, undo/redo log and clipboard.

Each structural call validates against the current snapshot, computes the whole
new snapshot, then swaps it in and records history. A refusal leaves the
session untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from . import clipboard as _clipboard
from . import reposition as _reposition
from .config import EngineConfig
from .errors import NOT_FOUND, Check, OpResult
from .history import HistoryLog, reapply_entry, revert_entry
from .model import ClipboardPayload, HistoryEntry, Item, TreeNode
from .placement import validate_drop
from .reposition import finalize
from .tree import build_tree
from .validate import assert_valid_snapshot

logger = logging.getLogger(__name__)


class OutlineSession:
    def __init__(self, items: Sequence[Item] = (), config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        assert_valid_snapshot(items)
        self._items: Tuple[Item, ...] = finalize(items)
        self.history = HistoryLog(limit=self.config.history_limit)
        self.clipboard = _clipboard.Clipboard()

    # --- read side ---------------------------------------------------------

    @property
    def items(self) -> Tuple[Item, ...]:
        return self._items

    def item(self, item_id: str) -> Optional[Item]:
        for it in self._items:
            if it.id == item_id:
                return it
        return None

    def tree(self) -> Tuple[TreeNode, ...]:
        return build_tree(self._items)

    def wbs(self) -> Dict[str, str]:
        return {it.id: it.wbs_number for it in self._items}

    # --- internals ----------------------------------------------------------

    def _commit(self, op: str, result: OpResult) -> OpResult:
        if not result.ok:
            v = result.violation
            logger.info("%s refused (%s): %s", op, v.kind if v else "?", result.reason)
            return result
        if result.items is not None:
            self._items = result.items
        if result.entry is not None:
            self.history.push(result.entry)
            logger.debug("%s applied; %d item(s) changed", op, len(result.changed_ids))
        return result

    # --- structural operations ---------------------------------------------------

    def check_drop(self, dragged_ids: Iterable[str], target_id: Optional[str], position: str) -> Check:
        return validate_drop(dragged_ids, target_id, position, self._items)

    def drop(self, dragged_ids: Iterable[str], target_id: Optional[str], position: str) -> OpResult:
        res = _reposition.move_items(
            self._items, dragged_ids, target_id, position, start=self.config.relinearize_start
        )
        return self._commit("drop", res)

    def promote(self, item_id: str) -> OpResult:
        return self._commit("promote", _reposition.promote_item(self._items, item_id, start=self.config.relinearize_start))

    def demote(self, item_id: str) -> OpResult:
        return self._commit("demote", _reposition.demote_item(self._items, item_id, start=self.config.relinearize_start))

    def move_up(self, item_id: str) -> OpResult:
        return self._commit("move_up", _reposition.move_up(self._items, item_id, start=self.config.relinearize_start))

    def move_down(self, item_id: str) -> OpResult:
        return self._commit("move_down", _reposition.move_down(self._items, item_id, start=self.config.relinearize_start))

    def insert(
        self,
        item_type: str,
        *,
        parent_id: Optional[str] = None,
        after_id: Optional[str] = None,
        name: str = "New Task",
        new_id: Optional[str] = None,
        now: Optional[str] = None,
    ) -> OpResult:
        res = _reposition.insert_item(
            self._items,
            item_type,
            parent_id=parent_id,
            after_id=after_id,
            name=name,
            new_id=new_id,
            now=now,
            start=self.config.relinearize_start,
        )
        return self._commit("insert", res)

    def delete(self, item_ids: Iterable[str]) -> OpResult:
        return self._commit("delete", _reposition.delete_items(self._items, item_ids))

    def update(self, item_id: str, **fields: Any) -> OpResult:
        return self._commit("update", _reposition.update_item(self._items, item_id, **fields))

    # --- clipboard ----------------------------------------------------------------

    def copy(self, item_ids: Iterable[str]) -> ClipboardPayload:
        return self.clipboard.copy(item_ids, self._items)

    def cut(self, item_ids: Iterable[str]) -> ClipboardPayload:
        return self.clipboard.cut(item_ids, self._items)

    def paste(
        self,
        target_id: Optional[str],
        position: str,
        *,
        container_id: Optional[str] = None,
        id_factory: _clipboard.IdFactory = _reposition.new_item_id,
        now: Optional[str] = None,
    ) -> OpResult:
        """
        Paste the clipboard at (target_id, position).

        For a cut, the originals are left in place; their ids come back in
        result.info["cut_source_ids"] for the caller to delete once the paste
        has been persisted.
        """
        payload = self.clipboard.payload
        if payload is None:
            return self._commit("paste", OpResult.refused(Check.invalid(NOT_FOUND, "clipboard is empty")))
        res = _clipboard.paste_items(
            self._items,
            payload,
            target_id,
            position,
            container_id=container_id,
            id_factory=id_factory,
            now=now,
            copy_suffix=self.config.copy_suffix,
            start=self.config.relinearize_start,
        )
        res = self._commit("paste", res)
        if res.ok:
            res.info["cut_source_ids"] = self.clipboard.mark_pasted()
        return res

    # --- undo / redo --------------------------------------------------------------------

    def undo(self) -> Optional[HistoryEntry]:
        entry = self.history.undo()
        if entry is None:
            return None
        try:
            self._items = revert_entry(self._items, entry)
        except ValueError:
            # replay failed; hand the entry back to the undo stack
            self.history.redo()
            raise
        logger.debug("undo %s (%s)", entry.type, entry.payload.get("op"))
        return entry

    def redo(self) -> Optional[HistoryEntry]:
        entry = self.history.redo()
        if entry is None:
            return None
        try:
            self._items = reapply_entry(self._items, entry)
        except ValueError:
            self.history.undo()
            raise
        logger.debug("redo %s (%s)", entry.type, entry.payload.get("op"))
        return entry


__all__ = [
    "OutlineSession",
]
