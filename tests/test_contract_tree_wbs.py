from __future__ import annotations

import random
import unittest

from wbstree.errors import SnapshotError
from wbstree.model import DELIVERABLE, MILESTONE, TASK, Item
from wbstree.tree import build_tree, count_by_type, flatten_tree, outline_order
from wbstree.wbs import compute_wbs, number_items, stale_wbs_ids


def _sample():
    return [
        Item(id="M1", item_type=MILESTONE, sort_order=1, name="M1"),
        Item(id="D1", item_type=DELIVERABLE, parent_id="M1", sort_order=2, name="D1"),
        Item(id="T1", item_type=TASK, parent_id="D1", sort_order=3, name="T1"),
        Item(id="T2", item_type=TASK, parent_id="D1", sort_order=4, name="T2"),
        Item(id="M2", item_type=MILESTONE, sort_order=5, name="M2"),
    ]


class TestWbsNumberingContract(unittest.TestCase):
    def test_dotted_numbers_follow_outline(self) -> None:
        numbers = compute_wbs(_sample())
        self.assertEqual(
            [numbers[i] for i in ("M1", "D1", "T1", "T2", "M2")],
            ["1", "1.1", "1.1.1", "1.1.2", "2"],
        )

    def test_input_order_does_not_matter(self) -> None:
        items = _sample()
        expected = compute_wbs(items)
        rng = random.Random(7)
        for _ in range(5):
            shuffled = list(items)
            rng.shuffle(shuffled)
            self.assertEqual(compute_wbs(shuffled), expected)

    def test_numbering_is_idempotent(self) -> None:
        once = number_items(_sample())
        twice = number_items(once)
        self.assertEqual(once, twice)
        self.assertEqual(stale_wbs_ids(once), [])

    def test_number_items_keeps_input_order(self) -> None:
        items = list(reversed(_sample()))
        out = number_items(items)
        self.assertEqual([it.id for it in out], [it.id for it in items])

    def test_sort_order_ties_fall_back_to_array_position(self) -> None:
        items = [
            Item(id="B", item_type=MILESTONE),
            Item(id="A", item_type=MILESTONE),
        ]
        self.assertEqual(compute_wbs(items), {"B": "1", "A": "2"})

    def test_rank_is_position_not_raw_sort_order(self) -> None:
        items = [
            Item(id="M1", item_type=MILESTONE, sort_order=10),
            Item(id="M2", item_type=MILESTONE, sort_order=40),
        ]
        self.assertEqual(compute_wbs(items), {"M1": "1", "M2": "2"})

    def test_stale_numbers_are_reported(self) -> None:
        self.assertEqual(stale_wbs_ids(_sample()), ["M1", "D1", "T1", "T2", "M2"])
        numbers = compute_wbs(_sample())
        numbers["M2"] = ""
        self.assertEqual(stale_wbs_ids(_sample(), numbers), ["M1", "D1", "T1", "T2"])

    def test_cycle_raises(self) -> None:
        items = [
            Item(id="A", item_type=TASK, parent_id="B"),
            Item(id="B", item_type=TASK, parent_id="A"),
        ]
        with self.assertRaises(SnapshotError):
            compute_wbs(items)


class TestTreeContract(unittest.TestCase):
    def test_outline_order_is_preorder(self) -> None:
        items = list(reversed(_sample()))
        self.assertEqual([it.id for it in outline_order(items)], ["M1", "D1", "T1", "T2", "M2"])

    def test_build_and_flatten(self) -> None:
        roots = build_tree(_sample())
        self.assertEqual([n.item.id for n in roots], ["M1", "M2"])
        self.assertEqual([n.item.id for n in roots[0].children], ["D1"])
        self.assertEqual([n.item.id for n in roots[0].children[0].children], ["T1", "T2"])
        self.assertEqual(roots[1].children, ())
        self.assertEqual([it.id for it in flatten_tree(roots)], ["M1", "D1", "T1", "T2", "M2"])

    def test_count_by_type(self) -> None:
        self.assertEqual(
            count_by_type(build_tree(_sample())),
            {"total": 5, "milestones": 2, "deliverables": 1, "tasks": 2},
        )

    def test_dangling_parent_raises(self) -> None:
        items = _sample() + [Item(id="T9", item_type=TASK, parent_id="gone")]
        with self.assertRaises(SnapshotError):
            outline_order(items)

    def test_duplicate_id_raises(self) -> None:
        items = _sample() + [Item(id="T1", item_type=TASK, parent_id="D1")]
        with self.assertRaises(SnapshotError):
            build_tree(items)

    def test_cycle_raises(self) -> None:
        items = _sample() + [
            Item(id="X", item_type=TASK, parent_id="Y"),
            Item(id="Y", item_type=TASK, parent_id="X"),
        ]
        with self.assertRaises(SnapshotError) as cm:
            outline_order(items)
        self.assertIn("X, Y", str(cm.exception))


if __name__ == "__main__":
    unittest.main(verbosity=2)
