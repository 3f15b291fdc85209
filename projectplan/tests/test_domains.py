import unittest

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from projectplan.domain.errors import DuplicateIdError, NotFoundError
from projectplan.domain.resource import Resource, ResourceError, ResourceRegistry
from projectplan.domain.schedule import (
    AllocationRow,
    CompilationResult,
    ResourceSchedule,
    ScheduledActivity,
)


class ResourceRegistryTestCase(unittest.TestCase):
    """Tests for resources and the registry that owns them."""

    def setUp(self):
        self.registry = ResourceRegistry(
            [Resource(2, "Tester", unit_cost=80), Resource(1, "Developer")],
            default_unit_cost=120,
        )

    def test_iteration_is_by_id(self):
        self.assertEqual([r.id for r in self.registry], [1, 2])
        self.assertEqual(len(self.registry), 2)

    def test_duplicate_rejected(self):
        with self.assertRaises(DuplicateIdError):
            self.registry.add(Resource(1, "Again"))

    def test_unknown_resource(self):
        with self.assertRaises(NotFoundError) as ctx:
            self.registry.get(9)
        self.assertEqual(ctx.exception.key, 9)
        self.assertEqual(str(ctx.exception), "Resource 9 not found")

    def test_unit_cost_falls_back_to_default(self):
        self.assertEqual(self.registry.unit_cost(1), 120.0)
        self.assertEqual(self.registry.unit_cost(2), 80.0)

    def test_negative_unit_cost_rejected(self):
        with self.assertRaises(ResourceError):
            Resource(3, "Bad", unit_cost=-1)

    def test_disable_single_resource(self):
        self.registry.set_disabled(1)
        self.assertFalse(self.registry.is_enabled(1))
        self.assertEqual(self.registry.enabled_ids([1, 2, 7]), [2])
        self.assertIn(1, self.registry)

    def test_disable_all(self):
        self.registry.are_disabled = True
        self.assertEqual(self.registry.enabled(), [])

    def test_default_name_and_display_order(self):
        resource = Resource(5)
        self.assertEqual(resource.name, "Resource 5")
        self.assertEqual(resource.display_order, 5)

    def test_copy_is_independent(self):
        clone = self.registry.copy()
        clone.set_disabled(2)
        self.assertTrue(self.registry.is_enabled(2))
        self.assertEqual(clone.unit_cost(1), 120.0)

    def test_remove(self):
        removed = self.registry.remove(2)
        self.assertEqual(removed.name, "Tester")
        self.assertNotIn(2, self.registry)


class ScheduleModelTestCase(unittest.TestCase):
    def test_allocation_row(self):
        row = AllocationRow(1, 2, 5)
        self.assertEqual(row.duration, 3)
        self.assertTrue(row.covers(2))
        self.assertFalse(row.covers(5))

    def test_resource_schedule_finish_time(self):
        schedule = ResourceSchedule(1, (AllocationRow(1, 0, 3), AllocationRow(2, 3, 7)))
        self.assertEqual(schedule.finish_time, 7)
        self.assertEqual(schedule.activity_ids, (1, 2))
        self.assertEqual(ResourceSchedule(2).finish_time, 0)

    def test_compilation_lookups(self):
        result = CompilationResult(
            resource_schedules=(ResourceSchedule(1, (AllocationRow(1, 0, 4),)),),
            project_finish_time=3,
            scheduled_activities=(ScheduledActivity(1, 1, 4, earliest_start=0),),
        )
        self.assertEqual(result.resource_finish_time, 4)
        self.assertEqual(result.leveled_finish_time, 4)
        self.assertEqual(result.scheduled_activity(1).delay, 1)
        with self.assertRaises(NotFoundError):
            result.activity(1)
        with self.assertRaises(NotFoundError):
            result.resource_schedule(2)

    def test_compilation_result_is_immutable(self):
        result = CompilationResult(project_finish_time=3)
        with self.assertRaises(AttributeError):
            result.project_finish_time = 4

    def test_leveled_finish_defaults_to_project_finish(self):
        self.assertEqual(CompilationResult(project_finish_time=6).leveled_finish_time, 6)


if __name__ == "__main__":
    unittest.main()
