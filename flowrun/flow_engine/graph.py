"""
Graph Orderer - validation and topological ordering of flow graphs

Execution order is computed with Kahn's algorithm: nodes with no pending
dependencies are released in FIFO order, so ties keep the relative order of
the input node list.
"""

import logging
from collections import deque
from typing import Dict, List, Sequence

from flowrun.flow_engine.exceptions import GraphValidationError
from flowrun.flow_engine.models import FlowEdge, FlowNode

logger = logging.getLogger(__name__)


def validate_graph(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> None:
    """
    Check structural integrity before ordering.

    Raises:
        GraphValidationError: duplicate node ids or edges pointing at
            nodes that do not exist
    """
    seen = set()
    duplicates = []
    for node in nodes:
        if node.id in seen:
            duplicates.append(node.id)
        seen.add(node.id)

    if duplicates:
        raise GraphValidationError(
            f"Duplicate node ids: {', '.join(sorted(set(duplicates)))}",
            node_ids=sorted(set(duplicates)),
        )

    dangling = []
    for edge in edges:
        for endpoint in (edge.source, edge.target):
            if endpoint not in seen and endpoint not in dangling:
                dangling.append(endpoint)

    if dangling:
        raise GraphValidationError(
            f"Edges reference unknown nodes: {', '.join(dangling)}",
            node_ids=dangling,
        )


def _adjacency(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]):
    node_ids = {node.id for node in nodes}
    in_degree: Dict[str, int] = {node.id: 0 for node in nodes}
    successors: Dict[str, List[str]] = {node.id: [] for node in nodes}

    for edge in edges:
        if edge.source in node_ids and edge.target in node_ids:
            successors[edge.source].append(edge.target)
            in_degree[edge.target] += 1

    return in_degree, successors


def order(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> List[FlowNode]:
    """
    Topologically order nodes.

    Pure function. On cyclic input the result is partial: nodes on or
    downstream of a cycle are left out. Use build_execution_order() to get
    an error instead.
    """
    by_id = {node.id: node for node in nodes}
    in_degree, successors = _adjacency(nodes, edges)

    queue = deque(node.id for node in nodes if in_degree[node.id] == 0)
    result: List[FlowNode] = []

    while queue:
        node_id = queue.popleft()
        result.append(by_id[node_id])
        for successor in successors[node_id]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    return result


def build_execution_order(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> List[FlowNode]:
    """
    Validate the graph and return its execution order.

    Raises:
        GraphValidationError: malformed graph or cycle (names the node ids
            that could not be reached)
    """
    validate_graph(nodes, edges)
    ordered = order(nodes, edges)

    if len(ordered) < len(nodes):
        reached = {node.id for node in ordered}
        unreached = [node.id for node in nodes if node.id not in reached]
        logger.error(f"Cycle detected, unreached nodes: {unreached}")
        raise GraphValidationError(
            f"Cycle detected in flow graph; unreached nodes: {', '.join(unreached)}",
            node_ids=unreached,
        )

    return ordered


def execution_levels(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> List[List[FlowNode]]:
    """
    Group nodes into dependency levels.

    Every node's dependencies live in an earlier level, so the nodes of one
    level can run concurrently. Raises like build_execution_order().
    """
    ordered = build_execution_order(nodes, edges)
    predecessors: Dict[str, List[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        predecessors[edge.target].append(edge.source)

    depth: Dict[str, int] = {}
    for node in ordered:
        parents = predecessors[node.id]
        depth[node.id] = max((depth[p] + 1 for p in parents), default=0)

    levels: List[List[FlowNode]] = []
    for node in ordered:
        level = depth[node.id]
        while len(levels) <= level:
            levels.append([])
        levels[level].append(node)

    return levels


def incoming_edges(node_id: str, edges: Sequence[FlowEdge]) -> List[FlowEdge]:
    """Edges whose target is node_id, in edge-list order"""
    return [edge for edge in edges if edge.target == node_id]


def outgoing_edges(node_id: str, edges: Sequence[FlowEdge]) -> List[FlowEdge]:
    """Edges whose source is node_id, in edge-list order"""
    return [edge for edge in edges if edge.source == node_id]
