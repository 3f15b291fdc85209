import logging
from typing import Mapping, Optional

from ..domain.activity import ActivityStatus, CompiledActivity
from ..domain.activity_graph import ActivityGraph
from ..domain.errors import CycleError
from ..domain.schedule import CompilationResult
from ..domain.tracker import ActivityProgress
from ..utils.graph import backward_pass, find_critical_path, forward_pass, free_floats

logger = logging.getLogger(__name__)


class CriticalPathCompiler:
    """
    Two-pass critical path method over an ``ActivityGraph``.

    The compiler never mutates the graph. Progress, when given, changes the
    inputs of the passes:

    * complete activities are pinned to their actual start/finish;
    * in-progress activities use their remaining duration and cannot start
      before the latest time index progress was reported at;
    * everything else uses its planned duration.
    """

    def compile(
        self,
        graph: ActivityGraph,
        progress: Optional[Mapping[int, ActivityProgress]] = None,
    ) -> CompilationResult:
        """
        Compile timings for every activity in ``graph``.

        Args:
            graph: The activity graph to compile
            progress: Optional per-activity progress, keyed by activity id

        Returns:
            CompilationResult: activities with timings, no resource schedules yet

        Raises:
            CycleError: If the graph is cyclic
        """
        progress = progress or {}
        G = graph.as_networkx()

        # Cyclic edges are refused on insertion; this only trips on a corrupted graph
        order = graph.topological_order()
        if len(order) != len(graph):
            raise CycleError("Topological order does not cover every activity")

        durations = {}
        pinned = {}
        not_before = {}
        for activity_id in order:
            activity = graph.get(activity_id)
            state = progress.get(activity_id)
            if state is not None and state.is_complete:
                pinned[activity_id] = (state.actual_start, state.actual_finish)
                durations[activity_id] = state.actual_finish - state.actual_start
            elif state is not None and state.status is ActivityStatus.IN_PROGRESS:
                durations[activity_id] = state.remaining_duration(activity.duration)
                not_before[activity_id] = state.latest_time_index
            else:
                durations[activity_id] = activity.duration

        early = forward_pass(G, durations, order, pinned=pinned, not_before=not_before)
        for activity_id, (start, _) in pinned.items():
            predecessor_finish = max(
                (early[pred_id][1] for pred_id in G.predecessors(activity_id)), default=start
            )
            if predecessor_finish > start:
                # Actuals win over the dependency
                logger.warning(
                    "Activity %d completed at %d..%d before its predecessors finish at %d",
                    activity_id,
                    start,
                    pinned[activity_id][1],
                    predecessor_finish,
                )
        project_finish = max((ef for _, ef in early.values()), default=0)
        late = backward_pass(G, durations, order, project_finish, pinned=pinned)
        free = free_floats(G, early, project_finish)

        compiled = []
        critical_ids = []
        for activity_id in order:
            activity = graph.get(activity_id)
            es, ef = early[activity_id]
            ls, lf = late[activity_id]
            total_float = ls - es
            is_critical = total_float == 0
            if is_critical:
                critical_ids.append(activity_id)

            state = progress.get(activity_id) or ActivityProgress(activity_id)
            compiled.append(
                CompiledActivity(
                    id=activity_id,
                    name=activity.name,
                    duration=durations[activity_id],
                    original_duration=activity.duration,
                    resource_ids=frozenset(activity.resource_ids),
                    predecessor_ids=frozenset(G.predecessors(activity_id)),
                    successor_ids=frozenset(G.successors(activity_id)),
                    earliest_start=es,
                    earliest_finish=ef,
                    latest_start=ls,
                    latest_finish=lf,
                    total_float=total_float,
                    free_float=0 if activity_id in pinned else free[activity_id],
                    is_critical=is_critical,
                    status=state.status,
                    percentage_complete=state.cumulative_percentage,
                )
            )

        compiled.sort(key=lambda a: a.sort_key)
        critical_path = tuple(find_critical_path(G, critical_ids))

        logger.info(
            "Compiled %d activities, project finish %d, %d critical",
            len(compiled),
            project_finish,
            len(critical_path),
        )
        return CompilationResult(
            activities=tuple(compiled),
            project_finish_time=project_finish,
            critical_path=critical_path,
            graph_version=graph.version,
        )
