"""
Indoor routing engine
- Adjacency construction from flat edge lists or inline node connections
- Nearest-node resolution for points of interest
- Dijkstra (stored edge weights) and A* (Euclidean heuristic) shortest paths
- Cardinal-direction instructions and ETA helpers

Every function here is pure: callers pass a snapshot of the graph and get a
fresh result back. Routing failures are reported as None; only an aborted
search raises.
"""

import heapq
import itertools
import logging
import math
import os
import threading
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from models import Edge, NavigationNode, Node, PathResult, POI, RouteContext

logger = logging.getLogger(__name__)

INF = float('inf')

DEFAULT_WALKING_SPEED = float(os.getenv("DEFAULT_WALKING_SPEED", "1.2"))  # meters per second

Adjacency = Dict[str, List[Edge]]


class RouteCancelledError(Exception):
    """Raised when a caller aborts a search through its cancel event"""


# ============================================
# GRAPH BUILDER
# ============================================

def build_adjacency(nodes: Sequence[Node], edges: Iterable[Edge]) -> Adjacency:
    """
    Map every node id to its outgoing edges.

    Edges are expanded into a reverse entry unless explicitly marked
    one-way. Edges pointing at unknown nodes are kept; the solvers never
    reach them.
    """
    adjacency: Adjacency = {node.id: [] for node in nodes}

    for edge in edges:
        adjacency.setdefault(edge.from_, []).append(edge)
        if edge.is_bidirectional:
            adjacency.setdefault(edge.to, []).append(edge.reversed())

    return adjacency


def build_adjacency_from_connections(nav_nodes: Sequence[NavigationNode]) -> Adjacency:
    """Adjacency for nodes that list their neighbours inline, weighted by pixel distance"""
    node_map = {n.id: n for n in nav_nodes}
    adjacency: Adjacency = {n.id: [] for n in nav_nodes}

    for node in nav_nodes:
        for neighbor_id in node.connections:
            neighbor = node_map.get(neighbor_id)
            if neighbor is None:
                logger.debug(f"Skipping connection {node.id} -> unknown node {neighbor_id}")
                continue
            adjacency[node.id].append(Edge(
                id=f"{node.id}->{neighbor_id}",
                from_=node.id,
                to=neighbor_id,
                weight=euclidean_distance(node, neighbor),
                bidirectional=False
            ))

    return adjacency


def to_nodes(nav_nodes: Sequence[NavigationNode]) -> List[Node]:
    return [Node(id=n.id, x=n.x, y=n.y) for n in nav_nodes]


# ============================================
# POI RESOLVER
# ============================================

def euclidean_distance(a, b) -> float:
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2)


def find_nearest_node(poi: POI, nodes: Sequence[Node]) -> Optional[Node]:
    """Closest node to a POI; ties keep the earliest node in collection order"""
    nearest = None
    min_distance = INF

    for node in nodes:
        distance = euclidean_distance(node, poi)
        if distance < min_distance:
            min_distance = distance
            nearest = node

    return nearest


# ============================================
# SHORTEST PATH SOLVERS
# ============================================

def dijkstra(
    nodes: Sequence[Node],
    adjacency: Adjacency,
    start_id: str,
    end_id: str,
    cancel_event: Optional[threading.Event] = None
) -> Optional[PathResult]:
    """
    Minimum total weight path using the stored edge weights.

    Returns None when either id is unknown or the end node is not reachable
    from the start node.
    """
    node_map = {n.id: n for n in nodes}
    if start_id not in node_map or end_id not in node_map:
        return None

    if start_id == end_id:
        return _single_node_result(node_map[start_id], "dijkstra")

    distances = {nid: INF for nid in node_map}
    distances[start_id] = 0.0
    previous: Dict[str, Edge] = {}
    visited = set()

    counter = itertools.count()
    frontier = [(0.0, next(counter), start_id)]

    while frontier:
        _check_cancelled(cancel_event)
        dist, _, current = heapq.heappop(frontier)

        if current in visited:
            continue
        if current == end_id:
            break
        visited.add(current)

        for edge in adjacency.get(current, []):
            if edge.to not in node_map or edge.to in visited:
                continue
            alt = dist + edge.weight
            if alt < distances[edge.to]:
                distances[edge.to] = alt
                previous[edge.to] = edge
                heapq.heappush(frontier, (alt, next(counter), edge.to))

    if end_id not in previous:
        return None

    return _reconstruct(node_map, previous, start_id, end_id, distances[end_id], "dijkstra")


def a_star(
    nodes: Sequence[Node],
    adjacency: Adjacency,
    start_id: str,
    end_id: str,
    cancel_event: Optional[threading.Event] = None
) -> Optional[PathResult]:
    """
    A* search ordered by g-score plus straight-line distance to the goal.

    The heuristic is only admissible when edge weights are at least the pixel
    distance between their endpoints. Shorter weights (express corridors) can
    produce a suboptimal route.
    """
    node_map = {n.id: n for n in nodes}
    start_node = node_map.get(start_id)
    end_node = node_map.get(end_id)

    if not start_node or not end_node:
        return None

    if start_id == end_id:
        return _single_node_result(start_node, "astar")

    def heuristic(node_id: str) -> float:
        return euclidean_distance(node_map[node_id], end_node)

    g_score = {start_id: 0.0}
    f_score = {start_id: heuristic(start_id)}
    came_from: Dict[str, Edge] = {}

    counter = itertools.count()
    open_heap = [(f_score[start_id], next(counter), start_id)]
    open_set = {start_id}

    while open_heap:
        _check_cancelled(cancel_event)
        f, _, current = heapq.heappop(open_heap)

        # Stale heap entry, the node was re-scored or already expanded
        if current not in open_set or f != f_score[current]:
            continue

        if current == end_id:
            return _reconstruct(node_map, came_from, start_id, end_id, g_score[end_id], "astar")

        open_set.discard(current)

        for edge in adjacency.get(current, []):
            if edge.to not in node_map:
                continue
            tentative = g_score[current] + edge.weight
            if tentative < g_score.get(edge.to, INF):
                came_from[edge.to] = edge
                g_score[edge.to] = tentative
                f_score[edge.to] = tentative + heuristic(edge.to)
                open_set.add(edge.to)
                heapq.heappush(open_heap, (f_score[edge.to], next(counter), edge.to))

    return None


Solver = Callable[..., Optional[PathResult]]

ALGORITHMS: Dict[str, Solver] = {
    "dijkstra": dijkstra,
    "astar": a_star,
}

ALGORITHM_ALIASES = {"a_star": "astar"}


def canonical_algorithm(algorithm: str) -> str:
    """Normalised solver name; raises ValueError for names no solver answers to"""
    name = algorithm.lower()
    name = ALGORITHM_ALIASES.get(name, name)
    if name not in ALGORITHMS:
        raise ValueError(f"Unknown routing algorithm '{algorithm}'. Use one of: dijkstra, astar")
    return name


def get_solver(algorithm: str) -> Solver:
    return ALGORITHMS[canonical_algorithm(algorithm)]


def _check_cancelled(cancel_event: Optional[threading.Event]):
    if cancel_event is not None and cancel_event.is_set():
        raise RouteCancelledError("Route search cancelled")


def _single_node_result(node: Node, algorithm: str) -> PathResult:
    return PathResult(path=[node.id], nodes=[node], distance=0.0, edges=[], instructions=[], algorithm=algorithm)


def _reconstruct(
    node_map: Dict[str, Node],
    previous: Dict[str, Edge],
    start_id: str,
    end_id: str,
    distance: float,
    algorithm: str
) -> PathResult:
    """Walk the predecessor edges back from the end node"""
    path = [end_id]
    path_edges: List[Edge] = []
    current = end_id

    while current != start_id:
        edge = previous[current]
        path_edges.append(edge)
        current = edge.from_
        path.append(current)

    path.reverse()
    path_edges.reverse()

    return PathResult(
        path=path,
        nodes=[node_map[nid] for nid in path],
        distance=distance,
        edges=path_edges,
        algorithm=algorithm
    )


# ============================================
# INSTRUCTIONS & ETA
# ============================================

def get_direction(from_node, to_node) -> str:
    """
    Cardinal direction of a segment in screen coordinates.

    y grows downward, so a positive angle points south. Boundaries resolve
    in order: east [-45, 45], south [45, 135], west beyond +/-135, else north.
    """
    dx = to_node.x - from_node.x
    dy = to_node.y - from_node.y
    angle = math.degrees(math.atan2(dy, dx))

    if -45 <= angle <= 45:
        return "east"
    if 45 <= angle <= 135:
        return "south"
    if angle >= 135 or angle <= -135:
        return "west"
    return "north"


def generate_instructions(path_nodes: Sequence[Node]) -> List[str]:
    """One instruction per consecutive pair of path nodes"""
    instructions = []
    for i in range(len(path_nodes) - 1):
        direction = get_direction(path_nodes[i], path_nodes[i + 1])
        instructions.append(f"Head {direction} to waypoint {i + 2}")
    return instructions


def calculate_eta(distance: float, scale: Optional[float] = None,
                  walking_speed: float = DEFAULT_WALKING_SPEED) -> dict:
    """Walking estimate for a route; scale is pixels per metre"""
    if not scale or scale <= 0:
        return {"distance_meters": None, "time_seconds": None, "time_formatted": None}

    distance_meters = distance / scale
    time_seconds = int(distance_meters / walking_speed)

    return {
        "distance_meters": round(distance_meters, 1),
        "time_seconds": time_seconds,
        "time_formatted": _format_time(time_seconds)
    }


def _format_time(seconds: int) -> str:
    """Format seconds to human readable time"""
    if seconds < 60:
        return f"{seconds} sec"
    elif seconds < 3600:
        mins = seconds // 60
        secs = seconds % 60
        return f"{mins} min {secs} sec" if secs > 0 else f"{mins} min"
    else:
        hours = seconds // 3600
        mins = (seconds % 3600) // 60
        return f"{hours}h {mins}m"


# ============================================
# ENTRY POINTS
# ============================================

def find_path(
    context: RouteContext,
    start_id: str,
    end_id: str,
    algorithm: str = "dijkstra",
    with_instructions: bool = True,
    cancel_event: Optional[threading.Event] = None
) -> Optional[PathResult]:
    """Build adjacency from the snapshot and solve a single route request"""
    solver = get_solver(algorithm)
    adjacency = build_adjacency(context.nodes, context.edges)

    result = solver(context.nodes, adjacency, start_id, end_id, cancel_event=cancel_event)

    if result is None:
        logger.info(f"No route from {start_id} to {end_id} on floor {context.floor_id} ({algorithm})")
        return None

    if with_instructions:
        result.instructions = generate_instructions(result.nodes)

    logger.debug(f"Route {start_id} -> {end_id}: {len(result.path)} nodes, distance {result.distance}")
    return result


def find_path_between_pois(
    context: RouteContext,
    start_poi: POI,
    end_poi: POI,
    algorithm: str = "dijkstra",
    with_instructions: bool = True,
    cancel_event: Optional[threading.Event] = None
) -> Optional[PathResult]:
    """Resolve both POIs to their nearest nodes, then route between them"""
    start_node = find_nearest_node(start_poi, context.nodes)
    end_node = find_nearest_node(end_poi, context.nodes)

    if start_node is None or end_node is None:
        logger.info(f"Cannot resolve POIs {start_poi.id}/{end_poi.id}: floor {context.floor_id} has no nodes")
        return None

    return find_path(context, start_node.id, end_node.id, algorithm,
                     with_instructions=with_instructions, cancel_event=cancel_event)


def find_path_by_connections(
    nav_nodes: Sequence[NavigationNode],
    start_id: str,
    end_id: str,
    algorithm: str = "dijkstra"
) -> Optional[PathResult]:
    """Route over the inline-connection variant of the graph"""
    solver = get_solver(algorithm)
    nodes = to_nodes(nav_nodes)
    result = solver(nodes, build_adjacency_from_connections(nav_nodes), start_id, end_id)
    if result is not None:
        result.instructions = generate_instructions(result.nodes)
    return result
