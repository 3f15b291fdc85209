"""
Activity-on-Arrow derivation.

Every activity becomes one arrow. Events are shared wherever the precedence
structure allows it:

1. Activities without predecessors leave the project start event.
2. Activities with the same predecessor set leave the same junction event.
3. An activity whose successors all share one predecessor set ends directly
   at that set's junction; otherwise it gets its own end event and dummy
   arrows carry precedence on to each junction it feeds.
4. Activities without successors end at the project finish event.
5. Two activities never share both start and end event; the second one gets
   its own end event plus a dummy.
"""

import logging

import networkx as nx

from ..domain.arrow_graph import ActivityEdge, ArrowGraph, EventNode
from ..domain.schedule import CompilationResult

logger = logging.getLogger(__name__)

START = ("start",)
FINISH = ("finish",)


def _join(predecessor_ids):
    return ("join", tuple(sorted(predecessor_ids)))


def _own_end(activity_id):
    return ("end", activity_id)


def _successor_joins(activity, activities):
    """Distinct junctions the activity feeds, in a stable order."""
    joins = {_join(activities[s].predecessor_ids) for s in activity.successor_ids}
    return sorted(joins)


def _build_arrows(compilation):
    """
    Lay out arrows between symbolic event keys.

    Returns:
        tuple: (list of (start_key, end_key, activity_id or None), event keys in
        creation order)
    """
    activities = compilation.activities_by_id
    precedence = nx.DiGraph()
    precedence.add_nodes_from(activities)
    for activity in activities.values():
        precedence.add_edges_from((p, activity.id) for p in activity.predecessor_ids)
    order = nx.lexicographical_topological_sort(precedence)

    arrows = []
    used_pairs = set()
    created = {START: 0}

    def note(*keys):
        for key in keys:
            created.setdefault(key, len(created))

    for activity_id in order:
        activity = activities[activity_id]
        start = _join(activity.predecessor_ids) if activity.predecessor_ids else START
        joins = _successor_joins(activity, activities)
        targets = joins if joins else [FINISH]

        own_join = _join([activity_id])
        if len(targets) == 1 and (start, targets[0]) not in used_pairs:
            end = targets[0]
        elif own_join in targets:
            # Only this activity feeds its own junction, reuse it as the end event
            end = own_join
        else:
            end = _own_end(activity_id)

        note(start, end)
        arrows.append((start, end, activity_id))
        used_pairs.add((start, end))

        for target in targets:
            if target != end:
                note(target)
                arrows.append((end, target, None))

    return arrows, created


def _event_times(events, arrows, activities, project_finish):
    incoming = {e: [] for e in events}
    outgoing = {e: [] for e in events}
    for start, end, activity_id in arrows:
        outgoing[start].append((end, activity_id))
        incoming[end].append((start, activity_id))

    early = {}
    for event in events:
        times = [
            activities[aid].earliest_finish if aid is not None else early[src]
            for src, aid in incoming[event]
        ]
        early[event] = max(times, default=0)

    late = {}
    for event in reversed(events):
        times = [
            activities[aid].latest_start if aid is not None else late[dst]
            for dst, aid in outgoing[event]
        ]
        late[event] = min(times, default=project_finish)

    return early, late


def derive_arrow_graph(compilation: CompilationResult) -> ArrowGraph:
    """
    Build the Activity-on-Arrow view of a compiled activity graph.

    Pure and deterministic: the same compilation always yields an equal
    ``ArrowGraph``.
    """
    activities = compilation.activities_by_id
    if not activities:
        return ArrowGraph()

    arrows, created = _build_arrows(compilation)

    event_graph = nx.MultiDiGraph()
    event_graph.add_nodes_from(created)
    event_graph.add_edges_from((s, e) for s, e, _ in arrows)
    events = list(
        nx.lexicographical_topological_sort(event_graph, key=lambda k: created[k])
    )
    node_ids = {key: index for index, key in enumerate(events)}

    early, late = _event_times(
        events, arrows, activities, compilation.project_finish_time
    )

    def arrow_sort_key(arrow):
        start, end, activity_id = arrow
        return (node_ids[start], node_ids[end], activity_id is None, activity_id or 0)

    edges = []
    for edge_id, (start, end, activity_id) in enumerate(sorted(arrows, key=arrow_sort_key)):
        if activity_id is not None:
            activity = activities[activity_id]
            edges.append(
                ActivityEdge(
                    id=edge_id,
                    start_node_id=node_ids[start],
                    end_node_id=node_ids[end],
                    activity_id=activity_id,
                    name=activity.name,
                    duration=activity.duration,
                    earliest_start=activity.earliest_start,
                    earliest_finish=activity.earliest_finish,
                    latest_start=activity.latest_start,
                    latest_finish=activity.latest_finish,
                    total_float=activity.total_float,
                    is_critical=activity.is_critical,
                )
            )
        else:
            slack = late[end] - early[start]
            edges.append(
                ActivityEdge(
                    id=edge_id,
                    start_node_id=node_ids[start],
                    end_node_id=node_ids[end],
                    activity_id=None,
                    name="(dummy)",
                    earliest_start=early[start],
                    earliest_finish=early[start],
                    latest_start=late[end],
                    latest_finish=late[end],
                    total_float=slack,
                    is_critical=slack == 0,
                )
            )

    nodes = []
    for key in events:
        node_id = node_ids[key]
        nodes.append(
            EventNode(
                id=node_id,
                earliest_time=early[key],
                latest_time=late[key],
                incoming_edge_ids=tuple(e.id for e in edges if e.end_node_id == node_id),
                outgoing_edge_ids=tuple(e.id for e in edges if e.start_node_id == node_id),
            )
        )

    dummies = sum(1 for e in edges if e.is_dummy)
    logger.debug(
        "Derived arrow graph: %d events, %d arrows (%d dummy)",
        len(nodes),
        len(edges),
        dummies,
    )
    return ArrowGraph(edges=tuple(edges), nodes=tuple(nodes))


class ArrowDiagramConverter:
    """Caches the arrow view of the last compilation and tracks staleness."""

    def __init__(self):
        self._arrow_graph = None

    @property
    def arrow_graph(self) -> ArrowGraph:
        """Last derived graph; an empty, stale one before the first derivation."""
        if self._arrow_graph is None:
            return ArrowGraph(is_stale=True)
        return self._arrow_graph

    def derive(self, compilation: CompilationResult) -> ArrowGraph:
        self._arrow_graph = derive_arrow_graph(compilation)
        return self._arrow_graph

    def invalidate(self):
        if self._arrow_graph is not None:
            self._arrow_graph.mark_stale()
