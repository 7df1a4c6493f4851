#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from wbstree.api import load_snapshot_from_json
from wbstree.errors import SnapshotError
from wbstree.tree import build_tree, count_by_type
from wbstree.validate import validate_snapshot


def _die(msg: str, rc: int = 2) -> int:
    print(f"[wbstree-validate-snapshot] ERROR: {msg}", file=sys.stderr)
    return rc


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="wbstree-validate-snapshot",
        description=(
            "Validate one or more snapshot JSON files.\n"
            "Checks ids, parent links, parent cycles and the item type rules.\n"
            "Use --check-wbs to also flag stored wbs_number values that are stale."
        ),
    )
    ap.add_argument("paths", nargs="+", help="Snapshot JSON path(s)")
    ap.add_argument("--check-wbs", action="store_true", help="Also require stored wbs_number to be current")
    ns = ap.parse_args(argv)

    all_errs: List[str] = []
    summaries: List[str] = []
    for raw in ns.paths:
        p = Path(raw)
        if not p.exists():
            return _die(f"Missing JSON file: {p}")
        try:
            items = load_snapshot_from_json(p)
        except (SnapshotError, ValueError) as e:
            return _die(f"Failed to load snapshot: {p} ({e})")
        errs = validate_snapshot(items, label=f"json:{p}", check_wbs=ns.check_wbs)
        all_errs.extend(errs)
        if not errs:
            c = count_by_type(build_tree(items))
            summaries.append(
                f"  - {p}: {c['total']} items ({c['milestones']} milestones, "
                f"{c['deliverables']} deliverables, {c['tasks']} tasks)"
            )

    if all_errs:
        print("[wbstree-validate-snapshot] FAIL", file=sys.stderr)
        for e in all_errs:
            print(f"  - {e}", file=sys.stderr)
        return 3

    print("[wbstree-validate-snapshot] OK")
    for line in summaries:
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
