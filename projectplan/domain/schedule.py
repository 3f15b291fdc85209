from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .activity import CompiledActivity
from .errors import NotFoundError


@dataclass(frozen=True)
class AllocationRow:
    """One activity committed on a resource over ``[start, finish)``."""

    activity_id: int
    start: int
    finish: int
    percentage: int = 100

    @property
    def duration(self) -> int:
        return self.finish - self.start

    def covers(self, time_index: int) -> bool:
        return self.start <= time_index < self.finish


@dataclass(frozen=True)
class ResourceSchedule:
    """Allocation timeline of a single enabled resource."""

    resource_id: int
    rows: Tuple[AllocationRow, ...] = ()

    @property
    def finish_time(self) -> int:
        """Last committed time slot over all rows; 0 when nothing is scheduled."""
        return max((row.finish for row in self.rows), default=0)

    @property
    def activity_ids(self) -> Tuple[int, ...]:
        return tuple(row.activity_id for row in self.rows)

    def allocation_at(self, time_index: int) -> float:
        """Allocated units (1.0 == 100%) at ``time_index``."""
        return sum(row.percentage for row in self.rows if row.covers(time_index)) / 100


@dataclass(frozen=True)
class ScheduledActivity:
    """Where the resource scheduler actually placed an activity."""

    activity_id: int
    start: int
    finish: int
    earliest_start: int
    resource_ids: Tuple[int, ...] = ()

    @property
    def delay(self) -> int:
        """Time units the activity was pushed past its compiled earliest start."""
        return self.start - self.earliest_start


@dataclass(frozen=True)
class CompilationResult:
    """
    Immutable bundle produced by one full compile.

    A new compile yields a new instance; holders of an older result never see
    it change underneath them.
    """

    activities: Tuple[CompiledActivity, ...] = ()
    resource_schedules: Tuple[ResourceSchedule, ...] = ()
    project_finish_time: int = 0
    critical_path: Tuple[int, ...] = ()
    scheduled_activities: Tuple[ScheduledActivity, ...] = ()
    graph_version: Optional[int] = field(default=None, compare=False)

    def activity(self, activity_id: int) -> CompiledActivity:
        for compiled in self.activities:
            if compiled.id == activity_id:
                return compiled
        raise NotFoundError(f"Activity {activity_id} not in compilation", key=activity_id)

    def resource_schedule(self, resource_id: int) -> ResourceSchedule:
        for schedule in self.resource_schedules:
            if schedule.resource_id == resource_id:
                return schedule
        raise NotFoundError(
            f"No schedule for resource {resource_id}", key=resource_id
        )

    def scheduled_activity(self, activity_id: int) -> ScheduledActivity:
        for scheduled in self.scheduled_activities:
            if scheduled.activity_id == activity_id:
                return scheduled
        raise NotFoundError(
            f"Activity {activity_id} was not scheduled", key=activity_id
        )

    @property
    def activities_by_id(self) -> Dict[int, CompiledActivity]:
        return {compiled.id: compiled for compiled in self.activities}

    @property
    def resource_finish_time(self) -> int:
        """Upper bound for resource chart axes."""
        return max((s.finish_time for s in self.resource_schedules), default=0)

    @property
    def leveled_finish_time(self) -> int:
        """Project finish once resource deferrals are taken into account."""
        finishes = [s.finish for s in self.scheduled_activities]
        return max(finishes, default=self.project_finish_time)
