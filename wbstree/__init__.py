"""wbstree Python package.

Public API:
  - import from `wbstree.api` (preferred) or `import wbstree` (re-export)
"""

from __future__ import annotations

from .api import *  # noqa: F401,F403
from . import api as _api

__all__ = list(_api.__all__)

from .api import (
    OutlineSession,
    compute_wbs,
    load_snapshot_from_json,
    move_items,
    validate_drop,
    validate_placement,
)
