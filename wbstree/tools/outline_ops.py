#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Dict, List

from wbstree.api import dump_snapshot_json, entry_to_dict, load_snapshot_from_json
from wbstree.config import EngineConfig
from wbstree.errors import OpResult, SnapshotError
from wbstree.model import POSITIONS
from wbstree.session import OutlineSession

logger = logging.getLogger(__name__)

OPS = ("drop", "promote", "demote", "up", "down", "wbs")


def _die(msg: str, rc: int = 2) -> int:
    print(f"[wbstree-outline-ops] ERROR: {msg}", file=sys.stderr)
    return rc


def _single_id(ns: argparse.Namespace, op: str) -> str:
    if len(ns.ids) != 1:
        raise ValueError(f"--op {op} takes exactly one --id")
    return ns.ids[0]


def _run_op(session: OutlineSession, ns: argparse.Namespace) -> OpResult:
    op = ns.op
    if op == "drop":
        if not ns.ids:
            raise ValueError("--op drop needs at least one --id")
        return session.drop(ns.ids, ns.target, ns.position)
    single: Dict[str, Callable[[str], OpResult]] = {
        "promote": session.promote,
        "demote": session.demote,
        "up": session.move_up,
        "down": session.move_down,
    }
    if op in single:
        return single[op](_single_id(ns, op))
    raise ValueError(f"Unknown op: {op}")


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8", newline="\n")


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="wbstree-outline-ops",
        description="Apply one outline operation to a snapshot JSON and emit the result.",
    )
    ap.add_argument("--in", dest="in_json", required=True, help="Input snapshot JSON path")
    ap.add_argument("--out", default=None, help="Write updated snapshot JSON to this path (default: stdout)")
    ap.add_argument("--op", required=True, choices=OPS, help="Operation: " + "|".join(OPS))
    ap.add_argument("--id", dest="ids", action="append", default=[], help="Item id (repeat for a multi-select drop)")
    ap.add_argument("--target", default=None, help="Drop target id (omit to append to the root list)")
    ap.add_argument("--position", default="inside", choices=POSITIONS, help="Drop position (default: inside)")
    ap.add_argument("--check", action="store_true", help="Only validate the drop; write nothing")
    ap.add_argument("--entry-out", default=None, help="Write the history entry JSON to this path")
    ap.add_argument(
        "--log-level",
        default=os.getenv("WBSTREE_LOG_LEVEL", "WARNING"),
        help="Logging level (default: $WBSTREE_LOG_LEVEL or WARNING)",
    )
    ns = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(ns.log_level).upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    in_path = Path(ns.in_json)
    if not in_path.exists():
        return _die(f"Missing input JSON: {in_path}")

    try:
        session = OutlineSession(load_snapshot_from_json(in_path), config=EngineConfig.from_env())
    except (SnapshotError, ValueError) as e:
        return _die(f"Failed to load snapshot: {in_path} ({e})")

    if ns.check:
        if ns.op != "drop":
            return _die("--check only applies to --op drop")
        chk = session.check_drop(ns.ids, ns.target, ns.position)
        if not chk.ok:
            print(f"[wbstree-outline-ops] REFUSED ({chk.violation.kind}): {chk.reason}", file=sys.stderr)
            return 3
        print("[wbstree-outline-ops] OK")
        return 0

    entry = None
    if ns.op != "wbs":
        try:
            res = _run_op(session, ns)
        except ValueError as e:
            return _die(str(e))
        if not res.ok:
            print(f"[wbstree-outline-ops] REFUSED ({res.violation.kind}): {res.reason}", file=sys.stderr)
            return 3
        entry = res.entry
        logger.info("%s: %d item(s) changed", ns.op, len(res.changed_ids))

    text = dump_snapshot_json(session.items)
    if ns.out:
        _write_text(Path(ns.out), text)
    else:
        sys.stdout.write(text)

    if ns.entry_out:
        doc = entry_to_dict(entry) if entry is not None else None
        _write_text(Path(ns.entry_out), json.dumps(doc, ensure_ascii=False, indent=2, sort_keys=True) + "\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
