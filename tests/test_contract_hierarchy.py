from __future__ import annotations

import unittest

from wbstree.errors import BOUNDARY, HIERARCHY
from wbstree.hierarchy import (
    allowed_child_types,
    allowed_parent_types,
    can_demote,
    can_promote,
    child_conflicts,
    demotion_target,
    is_known_type,
    promotion_target,
    validate_placement,
)
from wbstree.model import DELIVERABLE, MILESTONE, TASK


class TestHierarchyRulesContract(unittest.TestCase):
    def test_legal_placements(self) -> None:
        self.assertTrue(validate_placement(MILESTONE, None).ok)
        self.assertTrue(validate_placement(DELIVERABLE, MILESTONE).ok)
        self.assertTrue(validate_placement(TASK, DELIVERABLE).ok)
        self.assertTrue(validate_placement(TASK, TASK).ok)

    def test_deliverable_at_root_is_refused(self) -> None:
        chk = validate_placement(DELIVERABLE, None)
        self.assertFalse(chk.ok)
        self.assertEqual(chk.violation.kind, HIERARCHY)
        self.assertEqual(chk.reason, "deliverable cannot be at root level")
        self.assertEqual(chk.violation.item_type, DELIVERABLE)

    def test_refusal_reasons(self) -> None:
        self.assertEqual(validate_placement(TASK, None).reason, "task cannot be at root level")
        self.assertEqual(validate_placement(MILESTONE, DELIVERABLE).reason, "milestone must be at root level")
        self.assertEqual(validate_placement(TASK, MILESTONE).reason, "task cannot be placed under milestone")
        self.assertEqual(validate_placement(DELIVERABLE, TASK).reason, "deliverable cannot be placed under task")
        self.assertEqual(validate_placement("epic", None).reason, "unknown item type: epic")

    def test_type_tables(self) -> None:
        self.assertEqual(allowed_child_types(None), (MILESTONE,))
        self.assertEqual(allowed_child_types(MILESTONE), (DELIVERABLE,))
        self.assertEqual(allowed_child_types(DELIVERABLE), (TASK,))
        self.assertEqual(allowed_child_types(TASK), (TASK,))
        self.assertEqual(allowed_parent_types(TASK), frozenset({DELIVERABLE, TASK}))
        self.assertEqual(allowed_parent_types(MILESTONE), frozenset({None}))
        self.assertTrue(is_known_type(TASK))
        self.assertFalse(is_known_type("epic"))
        self.assertFalse(is_known_type(None))

    def test_promotion_and_demotion_targets(self) -> None:
        self.assertEqual(promotion_target(TASK), DELIVERABLE)
        self.assertEqual(promotion_target(DELIVERABLE), MILESTONE)
        self.assertIsNone(promotion_target(MILESTONE))
        self.assertEqual(demotion_target(MILESTONE), DELIVERABLE)
        self.assertEqual(demotion_target(DELIVERABLE), TASK)
        self.assertIsNone(demotion_target(TASK))

    def test_static_promote_demote_checks(self) -> None:
        chk = can_promote(MILESTONE)
        self.assertFalse(chk.ok)
        self.assertEqual(chk.violation.kind, BOUNDARY)
        self.assertTrue(can_promote(DELIVERABLE).ok)
        self.assertTrue(can_promote(TASK).ok)
        self.assertTrue(can_demote(MILESTONE).ok)
        self.assertTrue(can_demote(TASK).ok)
        self.assertEqual(can_demote("epic").violation.kind, HIERARCHY)

    def test_child_conflicts(self) -> None:
        self.assertEqual(child_conflicts(MILESTONE, (TASK,)), TASK)
        self.assertIsNone(child_conflicts(DELIVERABLE, (TASK, TASK)))
        self.assertIsNone(child_conflicts(MILESTONE, ()))


if __name__ == "__main__":
    unittest.main(verbosity=2)
