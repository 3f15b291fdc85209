import unittest

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from projectplan.domain.activity import Activity, ActivityError
from projectplan.domain.activity_graph import ActivityGraph
from projectplan.domain.errors import (
    CycleError,
    DuplicateIdError,
    InvalidDurationError,
    NotFoundError,
)


class ActivityTestCase(unittest.TestCase):
    def test_activity_defaults(self):
        activity = Activity(1, "Design")
        self.assertEqual(activity.duration, 0)
        self.assertEqual(activity.resource_ids, set())
        self.assertEqual(activity.predecessor_ids, set())

    def test_negative_duration_rejected(self):
        with self.assertRaises(InvalidDurationError):
            Activity(1, "Bad", duration=-1)

    def test_fractional_duration_rejected(self):
        with self.assertRaises(InvalidDurationError):
            Activity(1, "Bad", duration=2.5)

    def test_duration_setter_validates(self):
        activity = Activity(1, "Build", duration=3)
        with self.assertRaises(InvalidDurationError):
            activity.duration = -4
        self.assertEqual(activity.duration, 3)

    def test_own_predecessor_rejected(self):
        with self.assertRaises(ActivityError):
            Activity(1, "Loop", predecessor_ids=[1])

    def test_non_integer_id_rejected(self):
        with self.assertRaises(ActivityError):
            Activity("1", "Text id")

    def test_copy_is_independent(self):
        activity = Activity(1, "Build", 3, resource_ids=[1], predecessor_ids=[2])
        clone = activity.copy()
        self.assertEqual(activity, clone)
        clone.resource_ids.add(5)
        self.assertNotEqual(activity, clone)


class ActivityGraphTestCase(unittest.TestCase):
    def setUp(self):
        self.graph = ActivityGraph(
            [
                Activity(1, "A", 3),
                Activity(2, "B", 2, predecessor_ids=[1]),
                Activity(3, "C", 4, predecessor_ids=[2]),
            ]
        )

    def test_load_builds_edges(self):
        self.assertEqual(len(self.graph), 3)
        self.assertEqual(self.graph.dependencies(), [(1, 2), (2, 3)])
        self.assertEqual(self.graph.predecessors(3), [2])
        self.assertEqual(self.graph.successors(1), [2])

    def test_load_accepts_forward_references(self):
        graph = ActivityGraph(
            [Activity(2, "B", 1, predecessor_ids=[1]), Activity(1, "A", 1)]
        )
        self.assertTrue(graph.has_dependency(1, 2))

    def test_load_is_transactional(self):
        graph = ActivityGraph([Activity(1, "A", 1)])
        version = graph.version
        with self.assertRaises(CycleError):
            graph.load(
                [
                    Activity(2, "B", 1, predecessor_ids=[3]),
                    Activity(3, "C", 1, predecessor_ids=[2]),
                ]
            )
        self.assertEqual(len(graph), 1)
        self.assertEqual(graph.version, version)

    def test_load_unknown_predecessor(self):
        graph = ActivityGraph()
        with self.assertRaises(NotFoundError):
            graph.load([Activity(1, "A", 1, predecessor_ids=[99])])
        self.assertEqual(len(graph), 0)

    def test_duplicate_id_rejected(self):
        with self.assertRaises(DuplicateIdError):
            self.graph.add_activity(Activity(1, "Again", 1))

    def test_add_activity_unknown_predecessor(self):
        with self.assertRaises(NotFoundError):
            self.graph.add_activity(Activity(4, "D", 1, predecessor_ids=[42]))
        self.assertNotIn(4, self.graph)

    def test_cycle_rejected_before_insertion(self):
        dependencies = self.graph.dependencies()
        version = self.graph.version

        with self.assertRaises(CycleError) as ctx:
            self.graph.add_dependency(3, 1)

        self.assertEqual(ctx.exception.cycle, [1, 2, 3])
        self.assertEqual(self.graph.dependencies(), dependencies)
        self.assertEqual(self.graph.version, version)
        self.assertNotIn(3, self.graph.get(1).predecessor_ids)

    def test_self_dependency_is_cycle(self):
        with self.assertRaises(CycleError):
            self.graph.add_dependency(2, 2)

    def test_cycle_error_is_value_error(self):
        with self.assertRaises(ValueError):
            self.graph.add_dependency(3, 1)

    def test_duplicate_dependency_is_noop(self):
        version = self.graph.version
        self.graph.add_dependency(1, 2)
        self.assertEqual(self.graph.version, version)
        self.assertEqual(self.graph.dependencies(), [(1, 2), (2, 3)])

    def test_add_dependency_updates_predecessors(self):
        self.graph.add_dependency(1, 3)
        self.assertEqual(self.graph.get(3).predecessor_ids, {1, 2})

    def test_add_dependency_unknown_activity(self):
        with self.assertRaises(NotFoundError):
            self.graph.add_dependency(1, 99)
        with self.assertRaises(KeyError):
            self.graph.add_dependency(99, 1)

    def test_remove_dependency(self):
        self.graph.remove_dependency(1, 2)
        self.assertFalse(self.graph.has_dependency(1, 2))
        self.assertEqual(self.graph.get(2).predecessor_ids, set())

    def test_remove_unknown_dependency(self):
        with self.assertRaises(NotFoundError):
            self.graph.remove_dependency(1, 3)

    def test_remove_dependencies_reports_rejections(self):
        rejections = self.graph.remove_dependencies([(1, 2), (1, 3), (2, 3)])
        self.assertEqual(len(rejections), 1)
        self.assertEqual(rejections[0].record, (1, 3))
        self.assertIsInstance(rejections[0].error, NotFoundError)
        self.assertEqual(self.graph.dependencies(), [])

    def test_remove_activity_cascades(self):
        removed = self.graph.remove_activity(2)
        self.assertEqual(removed.id, 2)
        self.assertNotIn(2, self.graph)
        self.assertEqual(self.graph.dependencies(), [])
        self.assertEqual(self.graph.get(3).predecessor_ids, set())

    def test_remove_unknown_activity(self):
        with self.assertRaises(NotFoundError):
            self.graph.remove_activity(99)

    def test_topological_order_breaks_ties_by_id(self):
        graph = ActivityGraph(
            [
                Activity(5, "E", 1),
                Activity(3, "C", 1),
                Activity(4, "D", 1, predecessor_ids=[5]),
                Activity(1, "A", 1, predecessor_ids=[4, 3]),
            ]
        )
        self.assertEqual(graph.topological_order(), [3, 5, 4, 1])

    def test_set_duration(self):
        version = self.graph.version
        self.graph.set_duration(1, 7)
        self.assertEqual(self.graph.get(1).duration, 7)
        self.assertGreater(self.graph.version, version)

    def test_set_duration_rejects_negative(self):
        with self.assertRaises(InvalidDurationError):
            self.graph.set_duration(1, -1)
        self.assertEqual(self.graph.get(1).duration, 3)

    def test_set_resources(self):
        self.graph.set_resources(2, [4, 5])
        self.assertEqual(self.graph.get(2).resource_ids, {4, 5})

    def test_copy_is_independent(self):
        clone = self.graph.copy()
        clone.add_dependency(1, 3)
        self.assertFalse(self.graph.has_dependency(1, 3))
        self.assertEqual(self.graph.get(3).predecessor_ids, {2})

    def test_activities_sorted_by_id(self):
        self.assertEqual([a.id for a in self.graph], [1, 2, 3])


if __name__ == "__main__":
    unittest.main()
