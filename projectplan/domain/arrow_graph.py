from dataclasses import dataclass, field
from typing import Optional, Tuple

import networkx as nx


@dataclass(frozen=True)
class EventNode:
    """
    Junction in an Activity-on-Arrow network.

    ``earliest_time`` is when every arrow entering the node can be done,
    ``latest_time`` is when every arrow leaving it must start at the latest.
    """

    id: int
    earliest_time: int
    latest_time: int
    incoming_edge_ids: Tuple[int, ...] = ()
    outgoing_edge_ids: Tuple[int, ...] = ()

    @property
    def slack(self) -> int:
        return self.latest_time - self.earliest_time

    @property
    def is_critical(self) -> bool:
        return self.slack == 0


@dataclass(frozen=True)
class ActivityEdge:
    """
    Arrow between two event nodes. Dummy arrows carry no activity and have
    zero duration; they only transport precedence.
    """

    id: int
    start_node_id: int
    end_node_id: int
    activity_id: Optional[int]
    name: str = ""
    duration: int = 0
    earliest_start: int = 0
    earliest_finish: int = 0
    latest_start: int = 0
    latest_finish: int = 0
    total_float: int = 0
    is_critical: bool = False

    @property
    def is_dummy(self) -> bool:
        return self.activity_id is None


@dataclass
class ArrowGraph:
    """
    Derived Activity-on-Arrow view of a compiled activity graph.

    Rebuilt wholesale on every derivation. ``is_stale`` is the only field that
    ever changes after construction and does not take part in equality.
    """

    edges: Tuple[ActivityEdge, ...] = ()
    nodes: Tuple[EventNode, ...] = ()
    is_stale: bool = field(default=False, compare=False)

    def __post_init__(self):
        self.edges = tuple(self.edges)
        self.nodes = tuple(self.nodes)

    @property
    def activity_edges(self) -> Tuple[ActivityEdge, ...]:
        return tuple(edge for edge in self.edges if not edge.is_dummy)

    @property
    def dummy_edges(self) -> Tuple[ActivityEdge, ...]:
        return tuple(edge for edge in self.edges if edge.is_dummy)

    def edge_for_activity(self, activity_id: int) -> Optional[ActivityEdge]:
        for edge in self.edges:
            if edge.activity_id == activity_id:
                return edge
        return None

    def node(self, node_id: int) -> Optional[EventNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def mark_stale(self) -> "ArrowGraph":
        self.is_stale = True
        return self

    def to_networkx(self) -> nx.MultiDiGraph:
        """Export as a ``MultiDiGraph`` keyed by edge id, for diagramming tools."""
        G = nx.MultiDiGraph(is_stale=self.is_stale)
        for node in self.nodes:
            G.add_node(
                node.id,
                earliest_time=node.earliest_time,
                latest_time=node.latest_time,
                is_critical=node.is_critical,
            )
        for edge in self.edges:
            G.add_edge(
                edge.start_node_id,
                edge.end_node_id,
                key=edge.id,
                activity_id=edge.activity_id,
                name=edge.name,
                duration=edge.duration,
                total_float=edge.total_float,
                is_critical=edge.is_critical,
                is_dummy=edge.is_dummy,
            )
        return G
