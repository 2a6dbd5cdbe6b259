"""
Stateless Routing API
- Caller posts the graph snapshot with every request
- Dijkstra (edge weights) and A* (Euclidean heuristic)
- POI to nearest node resolution
- Strict-mode graph validation (warnings only)

A route that cannot be found is not an error: the response carries
reachable=False so the display panel can show its neutral state.
"""

from fastapi import APIRouter, HTTPException
import logging

from models import RouteContext
from schemas import (
    RouteRequest, ConnectionRouteRequest, POIRouteRequest, NearestNodeRequest,
    GraphRequest, CompareRequest, RouteResponse, NearestNodeResponse, CompareResponse,
    route_response
)
from services import pathfinding
from services.graph_validation import validate_graph, GraphValidationResult

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_algorithm(algorithm: str) -> str:
    try:
        return pathfinding.canonical_algorithm(algorithm)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/route", response_model=RouteResponse)
async def get_route(request: RouteRequest):
    """Shortest route between two node ids"""
    algorithm = _check_algorithm(request.algorithm)

    context = RouteContext(nodes=request.nodes, edges=request.edges)
    result = pathfinding.find_path(context, request.start_id, request.end_id, algorithm)

    eta = pathfinding.calculate_eta(result.distance, request.scale) if result and request.scale else None
    return route_response(result, algorithm, request.start_id, request.end_id, eta=eta)


@router.post("/route/connections", response_model=RouteResponse)
async def get_route_by_connections(request: ConnectionRouteRequest):
    """Route over nodes that list their neighbours inline (weights are pixel distances)"""
    algorithm = _check_algorithm(request.algorithm)

    result = pathfinding.find_path_by_connections(request.nodes, request.start_id, request.end_id, algorithm)
    return route_response(result, algorithm, request.start_id, request.end_id)


@router.post("/route/poi", response_model=RouteResponse)
async def get_route_between_pois(request: POIRouteRequest):
    """Route between two points of interest via their nearest nodes"""
    algorithm = _check_algorithm(request.algorithm)

    context = RouteContext(nodes=request.nodes, edges=request.edges)
    result = pathfinding.find_path_between_pois(context, request.start_poi, request.end_poi, algorithm)

    eta = pathfinding.calculate_eta(result.distance, request.scale) if result and request.scale else None
    return route_response(result, algorithm, eta=eta)


@router.post("/nearest-node", response_model=NearestNodeResponse)
async def get_nearest_node(request: NearestNodeRequest):
    """Resolve a POI to the closest routable node"""
    node = pathfinding.find_nearest_node(request.poi, request.nodes)

    if node is None:
        return NearestNodeResponse(poi_id=request.poi.id, found=False)

    return NearestNodeResponse(
        poi_id=request.poi.id,
        found=True,
        node=node,
        distance=pathfinding.euclidean_distance(node, request.poi)
    )


@router.post("/validate", response_model=GraphValidationResult)
async def validate(request: GraphRequest):
    """Report graph issues without rejecting the graph"""
    return validate_graph(request.nodes, request.edges)


@router.post("/compare", response_model=CompareResponse)
async def compare_algorithms(request: CompareRequest):
    """Run both solvers on the same snapshot"""
    context = RouteContext(nodes=request.nodes, edges=request.edges)

    dijkstra_result = pathfinding.find_path(context, request.start_id, request.end_id, "dijkstra")
    astar_result = pathfinding.find_path(context, request.start_id, request.end_id, "astar")

    same_distance = (
        (dijkstra_result is None and astar_result is None)
        or (dijkstra_result is not None and astar_result is not None
            and abs(dijkstra_result.distance - astar_result.distance) < 1e-9)
    )
    if not same_distance:
        logger.info(
            f"Solvers disagree for {request.start_id} -> {request.end_id}; "
            "edge weights are likely shorter than the pixel distance"
        )

    return CompareResponse(
        dijkstra=route_response(dijkstra_result, "dijkstra", request.start_id, request.end_id),
        astar=route_response(astar_result, "astar", request.start_id, request.end_id),
        same_distance=same_distance
    )
