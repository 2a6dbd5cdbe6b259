from pydantic import BaseModel
from typing import List, Optional, Dict, Any

from models import Node, Edge, NavigationNode, POI, PathResult


# ============================================
# ROUTING REQUESTS
# ============================================

class RouteRequest(BaseModel):
    nodes: List[Node]
    edges: List[Edge]
    start_id: str
    end_id: str
    algorithm: str = "dijkstra"  # dijkstra, astar
    scale: Optional[float] = None  # Pixels per metre, enables ETA

class ConnectionRouteRequest(BaseModel):
    """Route over nodes that carry their connections inline"""
    nodes: List[NavigationNode]
    start_id: str
    end_id: str
    algorithm: str = "dijkstra"

class POIRouteRequest(BaseModel):
    nodes: List[Node]
    edges: List[Edge]
    start_poi: POI
    end_poi: POI
    algorithm: str = "dijkstra"
    scale: Optional[float] = None

class NearestNodeRequest(BaseModel):
    poi: POI
    nodes: List[Node]

class GraphRequest(BaseModel):
    nodes: List[Node]
    edges: List[Edge] = []
    pois: Optional[List[POI]] = None

class CompareRequest(BaseModel):
    nodes: List[Node]
    edges: List[Edge]
    start_id: str
    end_id: str


# ============================================
# ROUTING RESPONSES
# ============================================

class RouteResponse(BaseModel):
    """Route payload for the display panel; reachable=False is the neutral no-route state"""
    reachable: bool
    start_id: Optional[str] = None
    end_id: Optional[str] = None
    algorithm: str
    path: List[str] = []
    nodes: List[Node] = []
    edges: List[Edge] = []
    distance: Optional[float] = None
    instructions: List[str] = []
    eta: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

class NearestNodeResponse(BaseModel):
    poi_id: str
    found: bool
    node: Optional[Node] = None
    distance: Optional[float] = None

class CompareResponse(BaseModel):
    dijkstra: RouteResponse
    astar: RouteResponse
    same_distance: bool


# ============================================
# FLOOR REQUESTS
# ============================================

class FloorCreate(BaseModel):
    id: str
    name: str
    location_id: Optional[str] = None
    floor_number: int = 0
    image_url: Optional[str] = None
    width: float = 0
    height: float = 0
    scale: Optional[float] = None
    nodes: List[Node] = []
    edges: List[Edge] = []
    pois: List[POI] = []

class ConnectRequest(BaseModel):
    from_node_id: str
    to_node_id: str

class FloorRouteRequest(BaseModel):
    start_id: Optional[str] = None
    end_id: Optional[str] = None
    start_poi_id: Optional[str] = None
    end_poi_id: Optional[str] = None
    algorithm: str = "dijkstra"

class FloorSummary(BaseModel):
    id: str
    name: str
    location_id: Optional[str] = None
    floor_number: int
    nodes_count: int
    edges_count: int
    pois_count: int
    is_current: bool = False


def route_response(result: Optional[PathResult], algorithm: str,
                   start_id: Optional[str] = None, end_id: Optional[str] = None,
                   eta: Optional[Dict[str, Any]] = None) -> RouteResponse:
    """Shape an engine result (or None) into the API payload"""
    if result is None:
        return RouteResponse(
            reachable=False,
            start_id=start_id,
            end_id=end_id,
            algorithm=algorithm,
            message="No path found"
        )

    return RouteResponse(
        reachable=True,
        start_id=result.path[0],
        end_id=result.path[-1],
        algorithm=result.algorithm,
        path=result.path,
        nodes=result.nodes,
        edges=result.edges,
        distance=result.distance,
        instructions=result.instructions,
        eta=eta
    )
