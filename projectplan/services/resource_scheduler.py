import bisect
import heapq
import logging
from typing import Dict, List, Tuple

from ..domain.resource import ResourceRegistry
from ..domain.schedule import AllocationRow, CompilationResult, ResourceSchedule, ScheduledActivity

logger = logging.getLogger(__name__)


class _Timeline:
    """Committed ``[start, finish)`` intervals of one resource, kept sorted."""

    def __init__(self):
        self.intervals: List[Tuple[int, int]] = []

    def commit(self, start, finish):
        if finish > start:
            bisect.insort(self.intervals, (start, finish))

    def next_free(self, start, duration):
        """Earliest time >= ``start`` at which ``duration`` units fit."""
        if duration <= 0:
            return start
        candidate = start
        for busy_start, busy_finish in self.intervals:
            if busy_finish <= candidate:
                continue
            if busy_start >= candidate + duration:
                break
            # Overlap: jump past this commitment
            candidate = busy_finish
        return candidate


def _common_free_slot(timelines, start, duration):
    """Earliest start >= ``start`` at which every timeline is free for ``duration``."""
    candidate = start
    while True:
        moved = False
        for timeline in timelines:
            slot = timeline.next_free(candidate, duration)
            if slot != candidate:
                candidate = slot
                moved = True
        if not moved:
            return candidate


def level_resources(compilation, registry, allocation_percentage=100):
    """
    Place compiled activities onto enabled resources, deferring on contention.

    Activities are taken greedily in ascending (earliest start, id) order once
    all of their predecessors have been placed. Each goes at the later of its
    compiled earliest start and its predecessors' placed finish, then further
    out to the first slot where every enabled resource it needs is free.
    Complete activities keep their pinned times and are committed first.

    This is a deterministic greedy list schedule, not a global optimum.

    Args:
        compilation: CompilationResult from the critical path compiler
        registry: ResourceRegistry resolving resource ids
        allocation_percentage: Percentage recorded on each allocation row

    Returns:
        tuple: (resource schedules, scheduled activities), both sorted by id
    """
    activities = compilation.activities_by_id
    timelines: Dict[int, _Timeline] = {r.id: _Timeline() for r in registry.enabled()}
    rows: Dict[int, List[AllocationRow]] = {rid: [] for rid in timelines}
    placed: Dict[int, ScheduledActivity] = {}

    def commit(activity, start, resource_ids):
        finish = start + activity.duration
        placed[activity.id] = ScheduledActivity(
            activity_id=activity.id,
            start=start,
            finish=finish,
            earliest_start=activity.earliest_start,
            resource_ids=tuple(resource_ids),
        )
        for resource_id in resource_ids:
            timelines[resource_id].commit(start, finish)
            rows[resource_id].append(
                AllocationRow(activity.id, start, finish, allocation_percentage)
            )

    # Work already done is history, it is not moved
    for activity in sorted(activities.values(), key=lambda a: a.id):
        if activity.is_complete:
            commit(activity, activity.earliest_start, registry.enabled_ids(activity.resource_ids))

    pending = {
        a.id: sum(1 for p in a.predecessor_ids if p not in placed)
        for a in activities.values()
        if a.id not in placed
    }
    ready = [activities[aid].sort_key for aid, count in pending.items() if count == 0]
    heapq.heapify(ready)

    while ready:
        _, activity_id = heapq.heappop(ready)
        activity = activities[activity_id]

        start = activity.earliest_start
        for pred_id in activity.predecessor_ids:
            start = max(start, placed[pred_id].finish)

        resource_ids = registry.enabled_ids(activity.resource_ids)
        if resource_ids:
            start = _common_free_slot(
                [timelines[rid] for rid in resource_ids], start, activity.duration
            )
            if start > activity.earliest_start:
                logger.debug(
                    "Activity %d deferred from %d to %d",
                    activity_id,
                    activity.earliest_start,
                    start,
                )
        commit(activity, start, resource_ids)

        for succ_id in activity.successor_ids:
            if succ_id not in pending:
                continue
            pending[succ_id] -= 1
            if pending[succ_id] == 0:
                heapq.heappush(ready, activities[succ_id].sort_key)

    schedules = tuple(
        ResourceSchedule(
            resource_id=rid,
            rows=tuple(sorted(rows[rid], key=lambda r: (r.start, r.activity_id))),
        )
        for rid in sorted(rows)
    )
    scheduled = tuple(placed[aid] for aid in sorted(placed))
    return schedules, scheduled


class ResourceScheduler:
    """Builds per-resource allocation timelines from a compilation."""

    def __init__(self, registry: ResourceRegistry, allocation_percentage: int = 100):
        self.registry = registry
        self.allocation_percentage = allocation_percentage

    def schedule(self, compilation: CompilationResult) -> CompilationResult:
        """
        Return a copy of ``compilation`` carrying resource schedules and the
        placed start/finish of every activity.
        """
        schedules, scheduled = level_resources(
            compilation, self.registry, self.allocation_percentage
        )
        logger.info(
            "Scheduled %d activities on %d enabled resources",
            len(scheduled),
            len(schedules),
        )
        return CompilationResult(
            activities=compilation.activities,
            resource_schedules=schedules,
            project_finish_time=compilation.project_finish_time,
            critical_path=compilation.critical_path,
            scheduled_activities=scheduled,
            graph_version=compilation.graph_version,
        )
