from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
FIXTURE = REPO_ROOT / "tests" / "fixtures" / "outline_min.json"


def _run(*args: str):
    cmd = [sys.executable, "-m", "wbstree.tools.outline_ops", "--in", str(FIXTURE), *args]
    p = subprocess.run(cmd, cwd=str(REPO_ROOT), capture_output=True, text=True)
    return p, (p.stdout or "") + "\n" + (p.stderr or "")


def _by_id(path: Path):
    doc = json.loads(path.read_text(encoding="utf-8"))
    return {row["id"]: row for row in doc["items"]}


class TestOutlineOpsToolContract:
    def test_drop_writes_snapshot_and_entry(self, tmp_path: Path):
        out_json = tmp_path / "out.json"
        entry_json = tmp_path / "entry.json"
        p, combined = _run(
            "--op", "drop", "--id", "D1", "--target", "M2", "--position", "inside",
            "--out", str(out_json), "--entry-out", str(entry_json),
        )
        assert p.returncode == 0, combined

        rows = _by_id(out_json)
        assert rows["D1"]["parent_id"] == "M2"
        assert rows["D1"]["wbs_number"] == "2.1"
        assert rows["T2"]["wbs_number"] == "2.1.2"

        entry = json.loads(entry_json.read_text(encoding="utf-8"))
        assert entry["type"] == "move"
        assert entry["payload"]["before"]["D1"]["parent_id"] == "M1"

    def test_refused_drop_exits_3(self, tmp_path: Path):
        out_json = tmp_path / "out.json"
        p, combined = _run("--op", "drop", "--id", "D1", "--target", "M1", "--position", "after", "--out", str(out_json))
        assert p.returncode == 3, combined
        assert "REFUSED (hierarchy): deliverable cannot be at root level" in p.stderr
        assert not out_json.exists()

    def test_check_only(self):
        p, combined = _run("--op", "drop", "--id", "T2", "--target", "T1", "--position", "before", "--check")
        assert p.returncode == 0, combined
        assert "OK" in p.stdout

        p, combined = _run("--op", "drop", "--id", "D1", "--target", "T1", "--check")
        assert p.returncode == 3, combined
        assert "REFUSED (cycle)" in p.stderr

    def test_wbs_to_stdout(self):
        p, combined = _run("--op", "wbs")
        assert p.returncode == 0, combined
        doc = json.loads(p.stdout)
        assert [row["wbs_number"] for row in doc["items"]] == ["1", "1.1", "1.1.1", "1.1.2", "2"]

    def test_promote_demote_up_down(self, tmp_path: Path):
        out_json = tmp_path / "out.json"
        p, combined = _run("--op", "demote", "--id", "T2", "--out", str(out_json))
        assert p.returncode == 0, combined
        assert _by_id(out_json)["T2"]["parent_id"] == "T1"

        p, combined = _run("--op", "promote", "--id", "D1")
        assert p.returncode == 3, combined
        assert "would orphan task children" in p.stderr

        p, combined = _run("--op", "up", "--id", "M2", "--out", str(out_json))
        assert p.returncode == 0, combined
        assert _by_id(out_json)["M2"]["wbs_number"] == "1"

        p, combined = _run("--op", "down", "--id", "M2")
        assert p.returncode == 3, combined
        assert "already at bottom" in p.stderr

    def test_usage_errors(self, tmp_path: Path):
        p, combined = _run("--op", "promote", "--id", "T1", "--id", "T2")
        assert p.returncode == 2, combined
        assert "exactly one --id" in p.stderr

        p, combined = _run("--op", "drop", "--target", "M2")
        assert p.returncode == 2, combined

        cmd = [sys.executable, "-m", "wbstree.tools.outline_ops", "--in", str(tmp_path / "missing.json"), "--op", "wbs"]
        p = subprocess.run(cmd, cwd=str(REPO_ROOT), capture_output=True, text=True)
        assert p.returncode == 2
        assert "Missing input JSON" in p.stderr

    def test_invalid_snapshot_is_reported(self, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps([{"id": "D1", "item_type": "deliverable"}]), encoding="utf-8")
        cmd = [sys.executable, "-m", "wbstree.tools.outline_ops", "--in", str(bad), "--op", "wbs"]
        p = subprocess.run(cmd, cwd=str(REPO_ROOT), capture_output=True, text=True)
        assert p.returncode == 2
        assert "deliverable cannot be at root level" in p.stderr
