"""Clipboard transform: copy a sub-forest, then clone it with fresh ids on paste.

Paste is two passes over the stored tree:
  1. pre-order walk; parents get their new id before their children are cloned
  2. predecessor refs are remapped through the finished old->new id map

Refs that point outside the copied set are kept as they are.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .config import DEFAULT_COPY_SUFFIX
from .descendants import DescendantIndex
from .errors import Check, OpResult
from .model import (
    BEFORE,
    CREATE,
    DEFAULT_STATUS,
    INSIDE,
    ClipboardNode,
    ClipboardPayload,
    HistoryEntry,
    Item,
)
from .placement import check_paste, resolve_new_parent
from .reposition import apply_changes, finalize, new_item_id, placement_of, relinearize

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]

COPY = "copy"
CUT = "cut"


def copy_items(selected_ids: Iterable[str], items: Sequence[Item], *, cut: bool = False) -> ClipboardPayload:
    """Capture the selection plus all descendants as nested nodes (unknown ids are skipped)."""
    index = DescendantIndex(items)
    tops = index.top_level(selected_ids)

    roots: List[ClipboardNode] = []
    source_ids: List[str] = []
    for top in tops:
        block = [top] + index.descendants_of(top)
        source_ids.extend(block)
        built: Dict[str, ClipboardNode] = {}
        for iid in reversed(block):
            kids = tuple(built[c.id] for c in index.children.get(iid, []))
            built[iid] = ClipboardNode(item=index.by_id[iid], children=kids)
        roots.append(built[top])

    return ClipboardPayload(
        roots=tuple(roots),
        mode=CUT if cut else COPY,
        source_ids=tuple(source_ids) if cut else (),
    )


def _reset_transient(it: Item, now: Optional[str]) -> Item:
    return replace(
        it,
        progress=0,
        status=DEFAULT_STATUS,
        is_published=False,
        published_ref=None,
        created_at=now,
        updated_at=now,
        wbs_number="",
    )


def prepare_for_paste(
    payload: ClipboardPayload,
    new_parent_id: Optional[str],
    container_id: Optional[str] = None,
    *,
    id_factory: IdFactory = new_item_id,
    now: Optional[str] = None,
    copy_suffix: str = DEFAULT_COPY_SUFFIX,
) -> Tuple[Tuple[Item, ...], Dict[str, str]]:
    """
    Returns (cloned items in pre-order, old_id -> new_id).

    Top-level clones go under `new_parent_id` and get `copy_suffix` on their name;
    nested clones keep their names. `container_id` (e.g. a target project) is
    written to extra["project_id"] on every clone when given.
    """
    id_map: Dict[str, str] = {}
    used: Set[str] = set()
    cloned: List[Item] = []

    stack: List[Tuple[ClipboardNode, Optional[str], bool]] = [
        (node, new_parent_id, True) for node in reversed(payload.roots)
    ]
    while stack:
        node, parent_id, is_top = stack.pop()
        src = node.item
        new_id = id_factory()
        if new_id in used:
            raise ValueError(f"id factory returned a duplicate id: {new_id}")
        used.add(new_id)
        id_map[src.id] = new_id

        it = _reset_transient(src, now)
        extra = dict(src.extra)
        if container_id is not None:
            extra["project_id"] = container_id
        it = replace(it, id=new_id, parent_id=parent_id, extra=extra)
        if is_top:
            it = replace(it, name=f"{src.name}{copy_suffix}")
        cloned.append(it)

        for child in reversed(node.children):
            stack.append((child, new_id, False))

    # Second pass: only now is every id in the sub-forest known.
    remapped: List[Item] = []
    for it in cloned:
        if any(p.ref in id_map for p in it.predecessors):
            preds = tuple(replace(p, ref=id_map[p.ref]) if p.ref in id_map else p for p in it.predecessors)
            it = replace(it, predecessors=preds)
        remapped.append(it)

    return tuple(remapped), id_map


def paste_items(
    items: Sequence[Item],
    payload: ClipboardPayload,
    target_id: Optional[str],
    position: str,
    *,
    container_id: Optional[str] = None,
    id_factory: IdFactory = new_item_id,
    now: Optional[str] = None,
    copy_suffix: str = DEFAULT_COPY_SUFFIX,
    start: int = 1,
) -> OpResult:
    """Validate, clone and insert `payload` at (target_id, position). Cut sources are never removed here."""
    index = DescendantIndex(items)
    chk = check_paste(payload, target_id, position, index)
    if not chk.ok:
        return OpResult.refused(chk)

    new_parent_id, _parent_type = resolve_new_parent(target_id, position, index)
    clones, id_map = prepare_for_paste(
        payload,
        new_parent_id,
        container_id,
        id_factory=id_factory,
        now=now,
        copy_suffix=copy_suffix,
    )
    clashes = [c.id for c in clones if c.id in index]
    if clashes:
        raise ValueError(f"cloned id already present in snapshot: {clashes[0]}")

    root_ids = {id_map[n.item.id] for n in payload.roots}
    roots = [c for c in clones if c.id in root_ids]
    group = list(index.children.get(new_parent_id, []))
    if target_id is None or position == INSIDE:
        insert_at = len(group)
    else:
        pos = next(i for i, c in enumerate(group) if c.id == target_id)
        insert_at = pos if position == BEFORE else pos + 1

    ordered = group[:insert_at] + roots + group[insert_at:]
    ranks = relinearize(ordered, start)

    changes = {c.id: {"sort_order": ranks[c.id]} for c in group if c.sort_order != ranks[c.id]}
    placed = [replace(c, sort_order=ranks[c.id]) if c.id in root_ids else c for c in clones]

    new_items = apply_changes(items, changes) + placed
    after_by_id = {it.id: it for it in new_items}
    entry_payload = {
        "op": "paste",
        "mode": payload.mode,
        "item_ids": [r.id for r in roots],
        "items": [c.to_dict() for c in placed],
        "id_map": dict(id_map),
        "source_ids": list(payload.source_ids),
        "before": {i: placement_of(index.by_id[i]) for i in changes},
        "after": {i: placement_of(after_by_id[i]) for i in changes},
    }
    entry = HistoryEntry(type=CREATE, payload=entry_payload, timestamp=time.time())
    logger.debug("paste: %d item(s) under %s", len(placed), new_parent_id)
    return OpResult(
        items=finalize(new_items),
        entry=entry,
        changed_ids=tuple(c.id for c in placed) + tuple(changes),
        info={"id_map": dict(id_map)},
    )


class Clipboard:
    """Per-session clipboard; nothing here is shared between sessions."""

    def __init__(self) -> None:
        self._payload: Optional[ClipboardPayload] = None

    @property
    def payload(self) -> Optional[ClipboardPayload]:
        return self._payload

    @property
    def is_cut(self) -> bool:
        return self._payload is not None and self._payload.mode == CUT

    @property
    def is_empty(self) -> bool:
        return self._payload is None or self._payload.is_empty

    def copy(self, selected_ids: Iterable[str], items: Sequence[Item]) -> ClipboardPayload:
        self._payload = copy_items(selected_ids, items)
        return self._payload

    def cut(self, selected_ids: Iterable[str], items: Sequence[Item]) -> ClipboardPayload:
        self._payload = copy_items(selected_ids, items, cut=True)
        return self._payload

    def check(self, items: Sequence[Item], target_id: Optional[str], position: str) -> Check:
        return check_paste(self._payload or ClipboardPayload(roots=()), target_id, position, DescendantIndex(items))

    def mark_pasted(self) -> Tuple[str, ...]:
        """
        Call after a paste went through. A cut payload is single-use: it is cleared
        and its source ids are returned so the caller can delete the originals.
        """
        if not self.is_cut or self._payload is None:
            return ()
        sources = self._payload.source_ids
        self._payload = None
        return sources

    def clear(self) -> None:
        self._payload = None


__all__ = [
    "COPY",
    "CUT",
    "Clipboard",
    "copy_items",
    "paste_items",
    "prepare_for_paste",
]
