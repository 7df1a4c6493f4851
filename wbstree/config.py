# wbstree/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_COPY_SUFFIX = " (Copy)"


@dataclass(frozen=True)
class EngineConfig:
    history_limit: int = DEFAULT_HISTORY_LIMIT
    copy_suffix: str = DEFAULT_COPY_SUFFIX
    relinearize_start: int = 1      # first sort_order handed out when a sibling group is re-ranked

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Read WBSTREE_HISTORY_LIMIT / WBSTREE_COPY_SUFFIX; bad values fall back to defaults."""
        src = os.environ if env is None else env

        limit = DEFAULT_HISTORY_LIMIT
        raw = src.get("WBSTREE_HISTORY_LIMIT")
        if raw is not None and str(raw).strip():
            try:
                limit = int(str(raw).strip())
            except ValueError:
                limit = DEFAULT_HISTORY_LIMIT
            if limit < 1:
                limit = DEFAULT_HISTORY_LIMIT

        suffix = src.get("WBSTREE_COPY_SUFFIX")
        if suffix is None:
            suffix = DEFAULT_COPY_SUFFIX

        return EngineConfig(history_limit=limit, copy_suffix=str(suffix))


__all__ = [
    "DEFAULT_COPY_SUFFIX",
    "DEFAULT_HISTORY_LIMIT",
    "EngineConfig",
]
