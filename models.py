from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal
from datetime import datetime

NodeType = Literal["room", "intersection", "door", "entrance", "waypoint"]
POIType = Literal["office", "restroom", "emergency", "elevator", "stairs", "meeting", "other"]
UserRole = Literal["admin", "editor", "viewer"]


# ============================================
# ROUTING GRAPH MODELS
# ============================================

class Node(BaseModel):
    """Routable point on a floor plan (pixel coordinates, y grows downward)"""
    id: str
    x: float
    y: float
    type: NodeType = "waypoint"
    label: Optional[str] = None


class Edge(BaseModel):
    """Weighted connection between two nodes"""
    id: str
    from_: str = Field(alias="from")
    to: str
    weight: float = Field(ge=0)  # Operator supplied travel cost, not necessarily pixel distance
    bidirectional: Optional[bool] = None  # None means bidirectional

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_bidirectional(self) -> bool:
        return self.bidirectional is not False

    def reversed(self) -> "Edge":
        return self.model_copy(update={"from_": self.to, "to": self.from_})


class NavigationNode(BaseModel):
    """Simplified editor node carrying its neighbours inline"""
    id: str
    x: float
    y: float
    connections: List[str] = []


class POI(BaseModel):
    """Named place of interest, resolved to its nearest node before routing"""
    id: str
    name: str
    x: float
    y: float
    type: POIType = "other"
    description: Optional[str] = None


class PathResult(BaseModel):
    """Solved route from start to end inclusive"""
    path: List[str]  # Node ids in travel order
    nodes: List[Node] = []
    distance: float
    edges: List[Edge] = []
    instructions: List[str] = []
    algorithm: str = "dijkstra"


class RouteContext(BaseModel):
    """Consistent snapshot of one floor's graph handed to the routing engine"""
    nodes: List[Node] = []
    edges: List[Edge] = []
    floor_id: Optional[str] = None


# ============================================
# FLOOR PLAN MODELS
# ============================================

class FloorPlan(BaseModel):
    """Floor plan image metadata plus the graph drawn on it"""
    id: str
    name: str
    location_id: Optional[str] = None
    floor_number: int = 0
    image_url: Optional[str] = None
    width: float = 0
    height: float = 0
    scale: Optional[float] = None  # Pixels per metre, from the measure tool
    nodes: List[Node] = []
    edges: List[Edge] = []
    pois: List[POI] = []
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class TokenUser(BaseModel):
    """Caller identity decoded from a bearer token"""
    username: str
    role: UserRole = "viewer"

    @property
    def can_edit(self) -> bool:
        return self.role in ("admin", "editor")
