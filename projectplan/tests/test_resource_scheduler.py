import unittest
from itertools import combinations

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from projectplan.domain.activity import Activity
from projectplan.domain.activity_graph import ActivityGraph
from projectplan.domain.errors import NotFoundError
from projectplan.domain.resource import Resource, ResourceRegistry
from projectplan.domain.tracker import ActivityTrackerRecord
from projectplan.services.compiler import CriticalPathCompiler
from projectplan.services.resource_scheduler import ResourceScheduler, _Timeline
from projectplan.services.tracker_engine import ProgressTrackerEngine


def schedule(activities, registry, progress=None, allocation_percentage=100):
    compiled = CriticalPathCompiler().compile(ActivityGraph(activities), progress)
    return ResourceScheduler(registry, allocation_percentage).schedule(compiled)


class TimelineTestCase(unittest.TestCase):
    def test_next_free_skips_commitments(self):
        timeline = _Timeline()
        timeline.commit(2, 4)
        timeline.commit(5, 8)

        self.assertEqual(timeline.next_free(0, 2), 0)
        self.assertEqual(timeline.next_free(0, 3), 8)
        self.assertEqual(timeline.next_free(4, 1), 4)
        self.assertEqual(timeline.next_free(3, 1), 4)

    def test_zero_duration_fits_anywhere(self):
        timeline = _Timeline()
        timeline.commit(0, 10)
        self.assertEqual(timeline.next_free(3, 0), 3)


class ResourceSchedulerTestCase(unittest.TestCase):
    def setUp(self):
        self.registry = ResourceRegistry(
            [Resource(1, "Developer"), Resource(2, "Tester")]
        )

    def test_contention_defers_higher_id(self):
        result = schedule(
            [
                Activity(2, "Second", 2, resource_ids=[1]),
                Activity(1, "First", 3, resource_ids=[1]),
            ],
            self.registry,
        )
        developer = result.resource_schedule(1)

        self.assertEqual(
            [(r.activity_id, r.start, r.finish) for r in developer.rows],
            [(1, 0, 3), (2, 3, 5)],
        )
        self.assertEqual(developer.finish_time, 5)
        self.assertEqual(result.scheduled_activity(2).delay, 3)
        self.assertEqual(result.scheduled_activity(1).delay, 0)
        self.assertEqual(result.leveled_finish_time, 5)

    def test_compiled_timings_untouched(self):
        result = schedule(
            [Activity(1, "A", 3, resource_ids=[1]), Activity(2, "B", 2, resource_ids=[1])],
            self.registry,
        )
        self.assertEqual(result.activity(2).earliest_start, 0)
        self.assertEqual(result.project_finish_time, 3)

    def test_successor_of_deferred_activity_follows(self):
        result = schedule(
            [
                Activity(1, "A", 3, resource_ids=[1]),
                Activity(2, "B", 2, resource_ids=[1]),
                Activity(3, "C", 1, predecessor_ids=[2]),
            ],
            self.registry,
        )
        self.assertEqual(result.scheduled_activity(3).start, 5)
        self.assertEqual(result.leveled_finish_time, 6)

    def test_siblings_on_separate_resources_start_together(self):
        result = schedule(
            [
                Activity(1, "Setup", 2),
                Activity(2, "Backend", 3, resource_ids=[1], predecessor_ids=[1]),
                Activity(3, "Test cases", 2, resource_ids=[2], predecessor_ids=[1]),
            ],
            self.registry,
        )
        backend = result.scheduled_activity(2)
        cases = result.scheduled_activity(3)

        self.assertEqual((backend.start, backend.finish), (2, 5))
        self.assertEqual((cases.start, cases.finish), (2, 4))
        self.assertEqual(result.leveled_finish_time, 5)

    def test_activity_waits_for_all_resources(self):
        result = schedule(
            [
                Activity(1, "A", 3, resource_ids=[1]),
                Activity(2, "B", 2, resource_ids=[2]),
                Activity(3, "Pair", 2, resource_ids=[1, 2]),
            ],
            self.registry,
        )
        pair = result.scheduled_activity(3)
        self.assertEqual((pair.start, pair.finish), (3, 5))
        self.assertEqual(pair.resource_ids, (1, 2))
        self.assertEqual(result.resource_schedule(2).activity_ids, (2, 3))

    def test_no_overlap_on_any_resource(self):
        activities = [
            Activity(1, "A", 2, resource_ids=[1]),
            Activity(2, "B", 3, resource_ids=[1, 2]),
            Activity(3, "C", 1, resource_ids=[2], predecessor_ids=[1]),
            Activity(4, "D", 4, resource_ids=[1]),
            Activity(5, "E", 2, resource_ids=[2], predecessor_ids=[4]),
            Activity(6, "F", 1, resource_ids=[1, 2], predecessor_ids=[3, 5]),
        ]
        result = schedule(activities, self.registry)

        for resource_schedule in result.resource_schedules:
            for a, b in combinations(resource_schedule.rows, 2):
                self.assertTrue(a.finish <= b.start or b.finish <= a.start)

        placed = {s.activity_id: s for s in result.scheduled_activities}
        for activity in activities:
            for pred_id in activity.predecessor_ids:
                self.assertGreaterEqual(placed[activity.id].start, placed[pred_id].finish)

    def test_disabled_resource_skipped(self):
        self.registry.set_disabled(1)
        result = schedule(
            [Activity(1, "A", 3, resource_ids=[1]), Activity(2, "B", 2, resource_ids=[1])],
            self.registry,
        )

        self.assertEqual([s.resource_id for s in result.resource_schedules], [2])
        with self.assertRaises(NotFoundError):
            result.resource_schedule(1)
        self.assertEqual(result.scheduled_activity(2).start, 0)
        self.assertEqual(result.scheduled_activity(2).resource_ids, ())

    def test_all_resources_disabled_is_pure_cpm(self):
        self.registry.are_disabled = True
        result = schedule(
            [Activity(1, "A", 3, resource_ids=[1]), Activity(2, "B", 2, resource_ids=[1])],
            self.registry,
        )
        self.assertEqual(result.resource_schedules, ())
        for scheduled in result.scheduled_activities:
            self.assertEqual(scheduled.delay, 0)

    def test_unassigned_activity_has_no_rows(self):
        result = schedule([Activity(1, "Meeting", 2)], self.registry)
        self.assertEqual(result.scheduled_activity(1).finish, 2)
        for resource_schedule in result.resource_schedules:
            self.assertEqual(resource_schedule.rows, ())
            self.assertEqual(resource_schedule.finish_time, 0)

    def test_allocation_percentage_on_rows(self):
        result = schedule(
            [Activity(1, "A", 2, resource_ids=[1])], self.registry, allocation_percentage=50
        )
        row = result.resource_schedule(1).rows[0]
        self.assertEqual(row.percentage, 50)
        self.assertEqual(result.resource_schedule(1).allocation_at(1), 0.5)

    def test_completed_activity_keeps_its_slot(self):
        activities = [
            Activity(1, "Done", 2, resource_ids=[1]),
            Activity(2, "Waiting", 2, resource_ids=[1]),
        ]
        graph = ActivityGraph(activities)
        trackers = ProgressTrackerEngine()
        trackers.apply(ActivityTrackerRecord(1, 0, 50))
        trackers.apply(ActivityTrackerRecord(1, 1, 50))

        compiled = CriticalPathCompiler().compile(graph, trackers.progress_as_of())
        result = ResourceScheduler(self.registry).schedule(compiled)

        self.assertEqual(
            [(r.activity_id, r.start, r.finish) for r in result.resource_schedule(1).rows],
            [(1, 0, 1), (2, 1, 3)],
        )

    def test_input_compilation_not_modified(self):
        compiled = CriticalPathCompiler().compile(
            ActivityGraph([Activity(1, "A", 2, resource_ids=[1])])
        )
        result = ResourceScheduler(self.registry).schedule(compiled)

        self.assertEqual(compiled.resource_schedules, ())
        self.assertEqual(compiled.scheduled_activities, ())
        self.assertEqual(result.activities, compiled.activities)

    def test_schedule_is_deterministic(self):
        activities = [
            Activity(3, "C", 2, resource_ids=[1]),
            Activity(1, "A", 2, resource_ids=[1, 2]),
            Activity(2, "B", 2, resource_ids=[2]),
        ]
        first = schedule([a.copy() for a in activities], self.registry)
        second = schedule([a.copy() for a in activities], self.registry)
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
