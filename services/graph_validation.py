import logging
from collections import deque
from typing import Dict, List, Sequence, Set

from pydantic import BaseModel

from models import Edge, Node

logger = logging.getLogger(__name__)


class GraphValidationResult(BaseModel):
    """Result of graph validation"""
    is_valid: bool
    dangling_edges: List[str]
    disconnected_nodes: List[str]
    dead_ends: List[str]
    one_way_edges: List[str]
    duplicate_node_ids: List[str]
    unreachable_nodes: List[str]
    warnings: List[str]


def validate_graph(nodes: Sequence[Node], edges: Sequence[Edge]) -> GraphValidationResult:
    """
    Strict-mode checks for a floor graph.

    Nothing here blocks routing: the builder tolerates every issue reported
    below, so findings are surfaced as warnings only.
    """
    warnings = []
    node_ids: Set[str] = set()
    duplicates = []

    for node in nodes:
        if node.id in node_ids:
            duplicates.append(node.id)
            warnings.append(f"Duplicate node id {node.id}")
        node_ids.add(node.id)

    dangling = []
    one_way = []
    neighbors: Dict[str, Set[str]] = {}
    for node in nodes:
        neighbors.setdefault(node.id, set())

    for edge in edges:
        missing = [nid for nid in (edge.from_, edge.to) if nid not in node_ids]
        if missing:
            dangling.append(edge.id)
            warnings.append(f"Edge {edge.id} references non-existent node(s) {', '.join(missing)}")
            continue

        neighbors[edge.from_].add(edge.to)
        if edge.is_bidirectional:
            neighbors[edge.to].add(edge.from_)
        else:
            one_way.append(edge.id)
            warnings.append(f"Edge {edge.id} is one-way ({edge.from_} -> {edge.to})")

    disconnected = [nid for nid, adj in neighbors.items() if not adj and not _has_incoming(nid, neighbors)]
    dead_ends = [nid for nid, adj in neighbors.items() if len(adj) == 1]

    for nid in disconnected:
        warnings.append(f"Node {nid} has no connections")
    for nid in dead_ends:
        warnings.append(f"Node {nid} is a dead end")

    unreachable = []
    if nodes:
        visited = _reachable_from(nodes[0].id, neighbors)
        unreachable = sorted(node_ids - visited)
        if unreachable:
            warnings.append(f"Graph has {len(unreachable)} unreachable nodes from {nodes[0].id}")

    for message in warnings:
        logger.warning(message)

    is_valid = not (dangling or disconnected or duplicates)

    return GraphValidationResult(
        is_valid=is_valid,
        dangling_edges=dangling,
        disconnected_nodes=disconnected,
        dead_ends=dead_ends,
        one_way_edges=one_way,
        duplicate_node_ids=duplicates,
        unreachable_nodes=unreachable,
        warnings=warnings
    )


def _has_incoming(node_id: str, neighbors: Dict[str, Set[str]]) -> bool:
    return any(node_id in adj for adj in neighbors.values())


def _reachable_from(start_id: str, neighbors: Dict[str, Set[str]]) -> Set[str]:
    visited = {start_id}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        for nxt in neighbors.get(current, ()):
            if nxt not in visited:
                visited.add(nxt)
                queue.append(nxt)
    return visited
