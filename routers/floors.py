from fastapi import APIRouter, Depends, HTTPException
from typing import List
import logging

from models import Node, Edge, POI, FloorPlan, TokenUser
from schemas import (
    FloorCreate, FloorSummary, GraphRequest, ConnectRequest,
    FloorRouteRequest, RouteResponse, route_response
)
from auth_utils import get_current_user, get_editor_user
from services import pathfinding
from services.floor_store import floor_store, FloorNotFoundError, GraphEditError
from services.graph_validation import validate_graph, GraphValidationResult

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_floor_or_404(floor_id: str) -> FloorPlan:
    try:
        return floor_store.get_floor(floor_id)
    except FloorNotFoundError:
        raise HTTPException(status_code=404, detail="Floor not found")


def _summary(floor: FloorPlan) -> FloorSummary:
    return FloorSummary(
        id=floor.id,
        name=floor.name,
        location_id=floor.location_id,
        floor_number=floor.floor_number,
        nodes_count=len(floor.nodes),
        edges_count=len(floor.edges),
        pois_count=len(floor.pois),
        is_current=floor_store.current_floor_id == floor.id
    )


@router.get("/", response_model=List[FloorSummary])
async def get_floors(current_user: TokenUser = Depends(get_current_user)):
    return [_summary(f) for f in floor_store.list_floors()]


@router.post("/", response_model=FloorPlan)
async def create_floor(
    floor: FloorCreate,
    current_user: TokenUser = Depends(get_editor_user)
):
    try:
        created = floor_store.add_floor(FloorPlan(**floor.model_dump()))
    except GraphEditError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"{current_user.username} created floor {floor.id}")
    return created


@router.get("/{floor_id}", response_model=FloorPlan)
async def get_floor(floor_id: str, current_user: TokenUser = Depends(get_current_user)):
    return _get_floor_or_404(floor_id)


@router.delete("/{floor_id}")
async def delete_floor(floor_id: str, current_user: TokenUser = Depends(get_editor_user)):
    _get_floor_or_404(floor_id)
    floor_store.delete_floor(floor_id)
    return {"message": "Floor deleted successfully"}


@router.post("/{floor_id}/select", response_model=FloorSummary)
async def select_floor(floor_id: str, current_user: TokenUser = Depends(get_current_user)):
    """Make this the current floor; its previous route is cleared"""
    _get_floor_or_404(floor_id)
    return _summary(floor_store.set_current_floor(floor_id))


# ============================================
# GRAPH EDITING
# ============================================

@router.put("/{floor_id}/graph")
async def replace_floor_graph(
    floor_id: str,
    graph: GraphRequest,
    current_user: TokenUser = Depends(get_editor_user)
):
    """Replace the floor's nodes and edges (and POIs when given) with validation"""
    _get_floor_or_404(floor_id)
    floor = floor_store.replace_graph(floor_id, graph.nodes, graph.edges, graph.pois)
    validation = validate_graph(floor.nodes, floor.edges)

    return {
        "message": "Floor graph saved successfully",
        "floor_id": floor_id,
        "nodes_count": len(floor.nodes),
        "edges_count": len(floor.edges),
        "pois_count": len(floor.pois),
        "validation": validation.model_dump()
    }


@router.post("/{floor_id}/nodes", response_model=Node)
async def add_node(floor_id: str, node: Node, current_user: TokenUser = Depends(get_editor_user)):
    _get_floor_or_404(floor_id)
    try:
        return floor_store.add_node(floor_id, node)
    except GraphEditError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{floor_id}/nodes/{node_id}")
async def remove_node(floor_id: str, node_id: str, current_user: TokenUser = Depends(get_editor_user)):
    _get_floor_or_404(floor_id)
    try:
        floor_store.remove_node(floor_id, node_id)
    except GraphEditError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Node deleted successfully"}


@router.post("/{floor_id}/edges", response_model=Edge)
async def add_edge(floor_id: str, edge: Edge, current_user: TokenUser = Depends(get_editor_user)):
    _get_floor_or_404(floor_id)
    try:
        return floor_store.add_edge(floor_id, edge)
    except GraphEditError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{floor_id}/connections", response_model=Edge)
async def connect_nodes(
    floor_id: str,
    request: ConnectRequest,
    current_user: TokenUser = Depends(get_editor_user)
):
    """Connect two nodes both ways, weighted by their pixel distance"""
    _get_floor_or_404(floor_id)
    try:
        return floor_store.connect_nodes(floor_id, request.from_node_id, request.to_node_id)
    except GraphEditError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{floor_id}/connections")
async def remove_connection(
    floor_id: str,
    from_node_id: str,
    to_node_id: str,
    current_user: TokenUser = Depends(get_editor_user)
):
    _get_floor_or_404(floor_id)
    try:
        floor_store.remove_connection(floor_id, from_node_id, to_node_id)
    except GraphEditError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Connection removed successfully"}


@router.post("/{floor_id}/pois", response_model=POI)
async def add_poi(floor_id: str, poi: POI, current_user: TokenUser = Depends(get_editor_user)):
    _get_floor_or_404(floor_id)
    try:
        return floor_store.add_poi(floor_id, poi)
    except GraphEditError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{floor_id}/validate", response_model=GraphValidationResult)
async def validate_floor_graph(floor_id: str, current_user: TokenUser = Depends(get_current_user)):
    floor = _get_floor_or_404(floor_id)
    return validate_graph(floor.nodes, floor.edges)


# ============================================
# ROUTING
# ============================================

@router.post("/{floor_id}/route", response_model=RouteResponse)
async def find_floor_route(
    floor_id: str,
    request: FloorRouteRequest,
    current_user: TokenUser = Depends(get_current_user)
):
    """Route by node ids, or by POI ids resolved to their nearest nodes"""
    floor = _get_floor_or_404(floor_id)

    try:
        algorithm = pathfinding.canonical_algorithm(request.algorithm)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if request.start_poi_id and request.end_poi_id:
        try:
            result = floor_store.find_path_between_pois(
                floor_id, request.start_poi_id, request.end_poi_id, algorithm
            )
        except GraphEditError as e:
            raise HTTPException(status_code=404, detail=str(e))
        start_id, end_id = None, None
    elif request.start_id and request.end_id:
        result = floor_store.find_path(floor_id, request.start_id, request.end_id, algorithm)
        start_id, end_id = request.start_id, request.end_id
    else:
        raise HTTPException(
            status_code=400,
            detail="Provide start_id and end_id, or start_poi_id and end_poi_id"
        )

    eta = pathfinding.calculate_eta(result.distance, floor.scale) if result and floor.scale else None
    return route_response(result, algorithm, start_id, end_id, eta=eta)


@router.get("/{floor_id}/path", response_model=RouteResponse)
async def get_current_path(floor_id: str, current_user: TokenUser = Depends(get_current_user)):
    _get_floor_or_404(floor_id)
    result = floor_store.get_current_path(floor_id)
    return route_response(result, result.algorithm if result else "dijkstra")


@router.delete("/{floor_id}/path")
async def clear_current_path(floor_id: str, current_user: TokenUser = Depends(get_current_user)):
    _get_floor_or_404(floor_id)
    floor_store.clear_path(floor_id)
    return {"message": "Path cleared"}


@router.get("/{floor_id}/export")
async def export_floor(floor_id: str, current_user: TokenUser = Depends(get_current_user)):
    """Export the floor graph and its current route as JSON"""
    _get_floor_or_404(floor_id)
    return floor_store.export_mapping_data(floor_id)
