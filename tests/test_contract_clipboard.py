from __future__ import annotations

import itertools
import unittest
from dataclasses import replace

from wbstree.clipboard import Clipboard, copy_items, paste_items, prepare_for_paste
from wbstree.errors import CYCLE, HIERARCHY, NOT_FOUND
from wbstree.model import AFTER, CREATE, DELIVERABLE, INSIDE, MILESTONE, SS, TASK, Item, Predecessor
from wbstree.tree import build_tree
from wbstree.validate import validate_snapshot


def _sample():
    return [
        Item(id="M1", item_type=MILESTONE, sort_order=1, name="M1"),
        Item(id="D1", item_type=DELIVERABLE, parent_id="M1", sort_order=2, name="D1"),
        Item(id="T1", item_type=TASK, parent_id="D1", sort_order=3, name="T1"),
        Item(
            id="T2",
            item_type=TASK,
            parent_id="D1",
            sort_order=4,
            name="T2",
            predecessors=(Predecessor(ref="T1"), Predecessor(ref="M2", kind=SS, lag=2)),
        ),
        Item(id="M2", item_type=MILESTONE, sort_order=5, name="M2"),
    ]


def _ids_from(prefix):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def _by_id(items):
    return {it.id: it for it in items}


def _shape(node):
    return (node.item.item_type, tuple(_shape(c) for c in node.children))


class TestCopyContract(unittest.TestCase):
    def test_copy_captures_subtree(self) -> None:
        payload = copy_items(["T1", "D1"], _sample())
        self.assertEqual(len(payload.roots), 1)
        root = payload.roots[0]
        self.assertEqual(root.item.id, "D1")
        self.assertEqual([c.item.id for c in root.children], ["T1", "T2"])
        self.assertEqual(payload.mode, "copy")
        self.assertEqual(payload.source_ids, ())

    def test_unknown_ids_are_skipped(self) -> None:
        self.assertTrue(copy_items(["nope"], _sample()).is_empty)

    def test_cut_records_sources(self) -> None:
        payload = copy_items(["D1"], _sample(), cut=True)
        self.assertEqual(payload.mode, "cut")
        self.assertEqual(payload.source_ids, ("D1", "T1", "T2"))


class TestPasteContract(unittest.TestCase):
    def test_paste_under_other_milestone(self) -> None:
        items = _sample()
        res = paste_items(items, copy_items(["D1"], items), "M2", INSIDE, id_factory=_ids_from("n"), now="2026-02-01")
        self.assertTrue(res.ok)
        self.assertEqual(len(res.items), 8)
        got = _by_id(res.items)
        self.assertEqual(res.info["id_map"], {"D1": "n1", "T1": "n2", "T2": "n3"})
        self.assertEqual(got["n1"].parent_id, "M2")
        self.assertEqual(got["n2"].parent_id, "n1")
        self.assertEqual(got["n3"].parent_id, "n1")
        self.assertEqual(got["n1"].name, "D1 (Copy)")
        self.assertEqual(got["n2"].name, "T1")
        self.assertEqual(got["n3"].name, "T2")
        self.assertEqual(got["n1"].wbs_number, "2.1")
        self.assertEqual(got["n3"].wbs_number, "2.1.2")
        self.assertEqual(got["n1"].created_at, "2026-02-01")
        self.assertEqual(res.entry.type, CREATE)
        self.assertEqual(res.entry.payload["item_ids"], ["n1"])
        self.assertEqual(validate_snapshot(res.items, check_wbs=True), [])

    def test_predecessors_are_remapped_inside_the_copy(self) -> None:
        items = _sample()
        res = paste_items(items, copy_items(["D1"], items), "M2", INSIDE, id_factory=_ids_from("n"))
        clone = _by_id(res.items)["n3"]
        self.assertEqual(clone.predecessors, (Predecessor(ref="n2"), Predecessor(ref="M2", kind=SS, lag=2)))
        # the source is left alone
        self.assertEqual(_by_id(res.items)["T2"].predecessors, items[3].predecessors)

    def test_transient_state_is_reset(self) -> None:
        items = _sample()
        items[2] = replace(items[2], progress=60, status="done", is_published=True, published_ref="ext-1")
        res = paste_items(items, copy_items(["T1"], items), "D1", INSIDE, id_factory=_ids_from("n"))
        clone = _by_id(res.items)["n1"]
        self.assertEqual(clone.progress, 0)
        self.assertEqual(clone.status, "not_started")
        self.assertFalse(clone.is_published)
        self.assertIsNone(clone.published_ref)

    def test_pasting_twice_gives_disjoint_isomorphic_forests(self) -> None:
        items = _sample()
        payload = copy_items(["D1"], items)
        first = paste_items(items, payload, "M2", INSIDE, id_factory=_ids_from("a"))
        second = paste_items(first.items, payload, "M2", INSIDE, id_factory=_ids_from("b"))
        self.assertTrue(second.ok)

        ids_a = set(first.info["id_map"].values())
        ids_b = set(second.info["id_map"].values())
        self.assertFalse(ids_a & ids_b)
        self.assertFalse(ids_a & {it.id for it in items})

        roots = {n.item.id: n for n in build_tree(second.items)[1].children}
        self.assertEqual(list(roots), ["a1", "b1"])
        self.assertEqual(_shape(roots["a1"]), _shape(roots["b1"]))
        self.assertEqual(_shape(roots["a1"]), _shape(build_tree(items)[0].children[0]))

    def test_paste_after_target(self) -> None:
        items = _sample()
        res = paste_items(items, copy_items(["D1"], items), "D1", AFTER, id_factory=_ids_from("n"))
        self.assertEqual([it.id for it in res.items], ["M1", "D1", "T1", "T2", "n1", "n2", "n3", "M2"])
        self.assertEqual(_by_id(res.items)["n1"].wbs_number, "1.2")

    def test_container_id_is_stamped(self) -> None:
        items = _sample()
        res = paste_items(
            items, copy_items(["D1"], items), "M2", INSIDE, container_id="P2", id_factory=_ids_from("n")
        )
        for new_id in ("n1", "n2", "n3"):
            self.assertEqual(_by_id(res.items)[new_id].extra["project_id"], "P2")

    def test_refusals(self) -> None:
        items = _sample()
        res = paste_items(items, copy_items(["D1"], items), None, AFTER)
        self.assertEqual(res.violation.kind, HIERARCHY)
        self.assertEqual(res.reason, "deliverable cannot be at root level")

        res = paste_items(items, copy_items(["D1"], items, cut=True), "T1", INSIDE)
        self.assertEqual(res.violation.kind, CYCLE)

        res = paste_items(items, copy_items([], items), "M1", INSIDE)
        self.assertEqual(res.violation.kind, NOT_FOUND)

    def test_duplicate_ids_from_factory_raise(self) -> None:
        items = _sample()
        with self.assertRaises(ValueError):
            paste_items(items, copy_items(["D1"], items), "M2", INSIDE, id_factory=lambda: "same")
        with self.assertRaises(ValueError):
            paste_items(items, copy_items(["T1"], items), "D1", INSIDE, id_factory=lambda: "T2")

    def test_prepare_for_paste_custom_suffix(self) -> None:
        clones, id_map = prepare_for_paste(
            copy_items(["D1"], _sample()), "M2", id_factory=_ids_from("n"), copy_suffix=" [dup]"
        )
        self.assertEqual([c.id for c in clones], ["n1", "n2", "n3"])
        self.assertEqual(clones[0].name, "D1 [dup]")
        self.assertEqual(clones[0].wbs_number, "")
        self.assertEqual(id_map["T2"], "n3")


class TestClipboardContract(unittest.TestCase):
    def test_cut_is_single_use(self) -> None:
        cb = Clipboard()
        self.assertTrue(cb.is_empty)
        cb.cut(["D1"], _sample())
        self.assertTrue(cb.is_cut)
        self.assertEqual(cb.mark_pasted(), ("D1", "T1", "T2"))
        self.assertTrue(cb.is_empty)

    def test_copy_can_be_pasted_again(self) -> None:
        cb = Clipboard()
        cb.copy(["D1"], _sample())
        self.assertEqual(cb.mark_pasted(), ())
        self.assertFalse(cb.is_empty)
        self.assertTrue(cb.check(_sample(), "M2", INSIDE).ok)
        cb.clear()
        self.assertEqual(cb.check(_sample(), "M2", INSIDE).violation.kind, NOT_FOUND)

    def test_clipboards_are_independent(self) -> None:
        a, b = Clipboard(), Clipboard()
        a.copy(["D1"], _sample())
        self.assertTrue(b.is_empty)


if __name__ == "__main__":
    unittest.main(verbosity=2)
