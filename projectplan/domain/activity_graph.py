import logging
from typing import Iterable, List, Optional, Tuple

import networkx as nx

from .activity import Activity
from .errors import CycleError, DuplicateIdError, NotFoundError
from .tracker import Rejection

logger = logging.getLogger(__name__)


class ActivityGraph:
    """
    Canonical precedence graph: activities as nodes, dependencies as edges.

    Nodes are plain integer activity ids in a ``networkx.DiGraph``; the
    ``Activity`` object lives in the node's ``activity`` attribute. Only graph
    shape is managed here, no timing or resource logic.

    Every successful mutation bumps ``version`` so derived views can tell they
    are out of date.
    """

    def __init__(self, activities: Optional[Iterable[Activity]] = None):
        self._graph = nx.DiGraph()
        self.version = 0
        if activities is not None:
            self.load(activities)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def load(self, activities: Iterable[Activity]) -> "ActivityGraph":
        """
        Add a batch of activities and their predecessor edges transactionally.

        Predecessors may refer to activities later in the batch. If any edge is
        unknown or would close a cycle, nothing is changed.

        Raises:
            DuplicateIdError: An id repeats, in the batch or in the graph
            NotFoundError: A predecessor id is neither in the batch nor the graph
            CycleError: The resulting graph would not be acyclic
        """
        activities = list(activities)
        staged = self._graph.copy()

        for activity in activities:
            if staged.has_node(activity.id):
                raise DuplicateIdError(f"Activity {activity.id} already exists")
            staged.add_node(activity.id, activity=activity)

        for activity in activities:
            for pred_id in sorted(activity.predecessor_ids):
                if not staged.has_node(pred_id):
                    raise NotFoundError(
                        f"Activity {activity.id} references unknown predecessor {pred_id}",
                        key=pred_id,
                    )
                staged.add_edge(pred_id, activity.id)

        if not nx.is_directed_acyclic_graph(staged):
            cycle = [u for u, _ in nx.find_cycle(staged)]
            raise CycleError(
                f"Activity dependencies contain a cycle: {cycle}", cycle=cycle
            )

        self._graph = staged
        self._touch()
        logger.debug("Loaded %d activities", len(activities))
        return self

    def add_activity(self, activity: Activity) -> "ActivityGraph":
        """
        Add one activity. Its ``predecessor_ids`` must already be in the graph.

        A new node only gets incoming edges, so it can never close a cycle.
        """
        if self._graph.has_node(activity.id):
            raise DuplicateIdError(f"Activity {activity.id} already exists")
        for pred_id in activity.predecessor_ids:
            if not self._graph.has_node(pred_id):
                raise NotFoundError(
                    f"Activity {activity.id} references unknown predecessor {pred_id}",
                    key=pred_id,
                )

        self._graph.add_node(activity.id, activity=activity)
        for pred_id in sorted(activity.predecessor_ids):
            self._graph.add_edge(pred_id, activity.id)
        self._touch()
        return self

    def remove_activity(self, activity_id: int) -> Activity:
        """Remove an activity and every edge touching it."""
        activity = self.get(activity_id)
        for succ_id in self._graph.successors(activity_id):
            self._activity(succ_id).predecessor_ids.discard(activity_id)
        self._graph.remove_node(activity_id)
        self._touch()
        return activity

    def add_dependency(self, predecessor_id: int, successor_id: int) -> "ActivityGraph":
        """
        Add the edge ``predecessor_id -> successor_id``.

        The cycle check is a reachability test done before insertion, so a
        rejected edge never touches the graph.
        """
        self.get(predecessor_id)
        self.get(successor_id)

        if predecessor_id == successor_id:
            raise CycleError(
                f"Activity {predecessor_id} cannot depend on itself",
                cycle=[predecessor_id],
            )
        if self._graph.has_edge(predecessor_id, successor_id):
            return self
        if nx.has_path(self._graph, successor_id, predecessor_id):
            path = nx.shortest_path(self._graph, successor_id, predecessor_id)
            raise CycleError(
                f"Dependency {predecessor_id} -> {successor_id} would create a cycle "
                f"through {path}",
                cycle=path,
            )

        self._graph.add_edge(predecessor_id, successor_id)
        self._activity(successor_id).predecessor_ids.add(predecessor_id)
        self._touch()
        return self

    def remove_dependency(self, predecessor_id: int, successor_id: int) -> "ActivityGraph":
        if not self._graph.has_edge(predecessor_id, successor_id):
            raise NotFoundError(
                f"Dependency {predecessor_id} -> {successor_id} not found",
                key=(predecessor_id, successor_id),
            )
        self._graph.remove_edge(predecessor_id, successor_id)
        self._activity(successor_id).predecessor_ids.discard(predecessor_id)
        self._touch()
        return self

    def remove_dependencies(self, pairs: Iterable[Tuple[int, int]]) -> List[Rejection]:
        """Remove several edges; unknown ones are reported, not fatal."""
        rejections = []
        for pair in pairs:
            try:
                self.remove_dependency(*pair)
            except NotFoundError as e:
                logger.warning("Rejected dependency removal %s: %s", pair, e)
                rejections.append(Rejection(pair, e))
        return rejections

    def set_duration(self, activity_id: int, duration: int) -> "ActivityGraph":
        self.get(activity_id).duration = duration
        self._touch()
        return self

    def set_resources(self, activity_id: int, resource_ids: Iterable[int]) -> "ActivityGraph":
        self.get(activity_id).resource_ids = set(resource_ids)
        self._touch()
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, activity_id: int) -> Activity:
        if not self._graph.has_node(activity_id):
            raise NotFoundError(f"Activity {activity_id} not found", key=activity_id)
        return self._activity(activity_id)

    def predecessors(self, activity_id: int) -> List[int]:
        self.get(activity_id)
        return sorted(self._graph.predecessors(activity_id))

    def successors(self, activity_id: int) -> List[int]:
        self.get(activity_id)
        return sorted(self._graph.successors(activity_id))

    def has_dependency(self, predecessor_id: int, successor_id: int) -> bool:
        return self._graph.has_edge(predecessor_id, successor_id)

    def dependencies(self) -> List[Tuple[int, int]]:
        return sorted(self._graph.edges())

    def topological_order(self) -> List[int]:
        """
        Activity ids in dependency order; ties resolve to the lower id.

        Raises:
            CycleError: If the graph is not acyclic
        """
        try:
            return list(nx.lexicographical_topological_sort(self._graph))
        except nx.NetworkXUnfeasible:
            raise CycleError("Activity dependencies contain a cycle") from None

    def activities(self) -> List[Activity]:
        """All activities, ascending id."""
        return [self._activity(n) for n in sorted(self._graph.nodes())]

    def as_networkx(self) -> nx.DiGraph:
        """Read-only view of the underlying graph."""
        return self._graph.copy(as_view=True)

    def copy(self) -> "ActivityGraph":
        clone = ActivityGraph()
        clone._graph = nx.DiGraph()
        for node in self._graph.nodes():
            clone._graph.add_node(node, activity=self._activity(node).copy())
        clone._graph.add_edges_from(self._graph.edges())
        clone.version = self.version
        return clone

    def _activity(self, activity_id: int) -> Activity:
        return self._graph.nodes[activity_id]["activity"]

    def _touch(self):
        self.version += 1

    def __contains__(self, activity_id):
        return self._graph.has_node(activity_id)

    def __iter__(self):
        return iter(self.activities())

    def __len__(self):
        return self._graph.number_of_nodes()

    def __repr__(self):
        return (
            f"ActivityGraph(activities={self._graph.number_of_nodes()}, "
            f"dependencies={self._graph.number_of_edges()}, version={self.version})"
        )
