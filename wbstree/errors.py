"""Violation results and the fatal snapshot error.

Expected refusals (an illegal drop, promoting a milestone, ...) are returned as
values. Only a malformed snapshot raises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .model import HistoryEntry, Item

HIERARCHY = "hierarchy"
CYCLE = "cycle"
BOUNDARY = "boundary"
NOT_FOUND = "not_found"

VIOLATION_KINDS: Tuple[str, ...] = (HIERARCHY, CYCLE, BOUNDARY, NOT_FOUND)


class SnapshotError(ValueError):
    """Raised when a snapshot is internally inconsistent (dangling parent, duplicate id, cycle)."""


@dataclass(frozen=True)
class Violation:
    kind: str               # "hierarchy" | "cycle" | "boundary" | "not_found"
    reason: str
    item_id: Optional[str] = None
    item_type: Optional[str] = None

    def __str__(self) -> str:
        return self.reason


@dataclass(frozen=True)
class Check:
    ok: bool = True
    violation: Optional[Violation] = None

    @property
    def reason(self) -> Optional[str]:
        return self.violation.reason if self.violation else None

    @staticmethod
    def valid() -> "Check":
        return _VALID

    @staticmethod
    def invalid(kind: str, reason: str, *, item_id: Optional[str] = None, item_type: Optional[str] = None) -> "Check":
        return Check(ok=False, violation=Violation(kind=kind, reason=reason, item_id=item_id, item_type=item_type))


_VALID = Check(ok=True)


@dataclass(frozen=True)
class OpResult:
    """Outcome of a structural transform.

    Either `items` (new snapshot) and `entry` are set, or `violation` is; never both.
    """

    items: Optional[Tuple[Item, ...]] = None
    entry: Optional[HistoryEntry] = None
    violation: Optional[Violation] = None
    changed_ids: Tuple[str, ...] = ()
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.violation is None

    @property
    def reason(self) -> Optional[str]:
        return self.violation.reason if self.violation else None

    @staticmethod
    def refused(check_or_violation: Any) -> "OpResult":
        v = check_or_violation.violation if isinstance(check_or_violation, Check) else check_or_violation
        if v is None:
            raise ValueError("refused() needs a failing check")
        return OpResult(violation=v)


__all__ = [
    "BOUNDARY",
    "CYCLE",
    "Check",
    "HIERARCHY",
    "NOT_FOUND",
    "OpResult",
    "SnapshotError",
    "VIOLATION_KINDS",
    "Violation",
]
