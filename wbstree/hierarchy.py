"""Item type rules: which type may sit under which.

    (root) -> milestone -> deliverable -> task -> task ...

Everything here is a pure function of the static tables below.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Tuple

from .errors import BOUNDARY, HIERARCHY, Check
from .model import DELIVERABLE, ITEM_TYPES, MILESTONE, TASK

_PARENT_TYPES: Dict[str, Tuple[Optional[str], ...]] = {
    MILESTONE: (None,),
    DELIVERABLE: (MILESTONE,),
    TASK: (DELIVERABLE, TASK),
}

_PROMOTION: Dict[str, Optional[str]] = {
    MILESTONE: None,
    DELIVERABLE: MILESTONE,
    TASK: DELIVERABLE,
}

_DEMOTION: Dict[str, Optional[str]] = {
    MILESTONE: DELIVERABLE,
    DELIVERABLE: TASK,
    TASK: None,
}


def _child_table() -> Dict[Optional[str], Tuple[str, ...]]:
    out: Dict[Optional[str], Tuple[str, ...]] = {None: ()}
    for t in ITEM_TYPES:
        out[t] = ()
    # ITEM_TYPES order decides the "first valid child type".
    for child in ITEM_TYPES:
        for parent in _PARENT_TYPES[child]:
            out[parent] = out[parent] + (child,)
    return out


_CHILD_TYPES = _child_table()


def is_known_type(item_type: object) -> bool:
    return isinstance(item_type, str) and item_type in _PARENT_TYPES


def allowed_parent_types(child_type: str) -> FrozenSet[Optional[str]]:
    """Parent types `child_type` may sit under; None means root is allowed."""
    return frozenset(_PARENT_TYPES.get(child_type, ()))


def allowed_child_types(parent_type: Optional[str]) -> Tuple[str, ...]:
    return _CHILD_TYPES.get(parent_type, ())


def _describe_parent(parent_type: Optional[str]) -> str:
    return "root level" if parent_type is None else parent_type


def validate_placement(child_type: str, parent_type: Optional[str]) -> Check:
    if not is_known_type(child_type):
        return Check.invalid(HIERARCHY, f"unknown item type: {child_type}", item_type=child_type)
    if parent_type is not None and not is_known_type(parent_type):
        return Check.invalid(HIERARCHY, f"unknown parent type: {parent_type}", item_type=child_type)

    allowed = _PARENT_TYPES[child_type]
    if parent_type in allowed:
        return Check.valid()

    if parent_type is None:
        return Check.invalid(HIERARCHY, f"{child_type} cannot be at root level", item_type=child_type)
    if allowed == (None,):
        return Check.invalid(HIERARCHY, f"{child_type} must be at root level", item_type=child_type)
    return Check.invalid(
        HIERARCHY,
        f"{child_type} cannot be placed under {_describe_parent(parent_type)}",
        item_type=child_type,
    )


def promotion_target(item_type: str) -> Optional[str]:
    return _PROMOTION.get(item_type)


def demotion_target(item_type: str) -> Optional[str]:
    return _DEMOTION.get(item_type)


def can_promote(item_type: str) -> Check:
    """Static check only; the Reposition Engine also checks children and placement."""
    if not is_known_type(item_type):
        return Check.invalid(HIERARCHY, f"unknown item type: {item_type}", item_type=item_type)
    if item_type == TASK:
        # a nested sub-task may still outdent without changing type
        return Check.valid()
    if promotion_target(item_type) is None:
        return Check.invalid(BOUNDARY, f"{item_type} cannot be promoted", item_type=item_type)
    return Check.valid()


def can_demote(item_type: str) -> Check:
    if not is_known_type(item_type):
        return Check.invalid(HIERARCHY, f"unknown item type: {item_type}", item_type=item_type)
    if item_type == TASK:
        # task has no lower type but may nest under a preceding task
        return Check.valid()
    if demotion_target(item_type) is None:
        return Check.invalid(BOUNDARY, f"{item_type} cannot be demoted", item_type=item_type)
    return Check.valid()


def child_conflicts(new_type: str, child_types: Tuple[str, ...]) -> Optional[str]:
    """First child type that would become illegal under `new_type`, if any."""
    allowed = allowed_child_types(new_type)
    for ct in child_types:
        if ct not in allowed:
            return ct
    return None


__all__ = [
    "allowed_child_types",
    "allowed_parent_types",
    "can_demote",
    "can_promote",
    "child_conflicts",
    "demotion_target",
    "is_known_type",
    "promotion_target",
    "validate_placement",
]
