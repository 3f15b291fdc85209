import networkx as nx


def forward_pass(graph, durations, order, pinned=None, not_before=None):
    """
    Calculate earliest start and earliest finish times.

    Args:
        graph: networkx DiGraph of activity ids
        durations: Dict mapping activity id to the duration used for the pass
        order: Activity ids in topological order
        pinned: Optional dict mapping activity id to a fixed (start, finish)
        not_before: Optional dict mapping activity id to a minimum start

    Returns:
        dict: activity id -> (earliest_start, earliest_finish)
    """
    pinned = pinned or {}
    not_before = not_before or {}
    early = {}

    for activity_id in order:
        if activity_id in pinned:
            early[activity_id] = pinned[activity_id]
            continue

        # Start activities begin at zero
        max_finish = not_before.get(activity_id, 0)
        for pred_id in graph.predecessors(activity_id):
            pred_finish = early[pred_id][1]
            if pred_finish > max_finish:
                max_finish = pred_finish

        early[activity_id] = (max_finish, max_finish + durations[activity_id])

    return early


def backward_pass(graph, durations, order, project_finish, pinned=None):
    """
    Calculate latest start and latest finish times.

    Args:
        graph: networkx DiGraph of activity ids
        durations: Dict mapping activity id to the duration used for the pass
        order: Activity ids in topological order
        project_finish: Finish time the pass is seeded from
        pinned: Optional dict mapping activity id to a fixed (start, finish)

    Returns:
        dict: activity id -> (latest_start, latest_finish)
    """
    pinned = pinned or {}
    late = {}

    for activity_id in reversed(order):
        if activity_id in pinned:
            late[activity_id] = pinned[activity_id]
            continue

        # Find minimum latest start of all successors
        min_start = project_finish
        for succ_id in graph.successors(activity_id):
            succ_start = late[succ_id][0]
            if succ_start < min_start:
                min_start = succ_start

        late[activity_id] = (min_start - durations[activity_id], min_start)

    return late


def free_floats(graph, early, project_finish):
    """Slack each activity has before it delays any direct successor."""
    floats = {}
    for activity_id, (_, earliest_finish) in early.items():
        successor_starts = [early[s][0] for s in graph.successors(activity_id)]
        next_start = min(successor_starts, default=project_finish)
        floats[activity_id] = next_start - earliest_finish
    return floats


def find_critical_path(graph, critical_ids):
    """Critical activity ids in topological order, ties by ascending id."""
    subgraph = graph.subgraph(critical_ids)
    return list(nx.lexicographical_topological_sort(subgraph))
