import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from models import Edge, FloorPlan, Node, PathResult, POI, RouteContext
from services import pathfinding

logger = logging.getLogger(__name__)


class FloorNotFoundError(Exception):
    """Raised when a floor id is not in the store"""

    def __init__(self, floor_id: str):
        super().__init__(f"Floor '{floor_id}' not found")
        self.floor_id = floor_id


class GraphEditError(ValueError):
    """Raised when an edit references a missing id or would duplicate an existing one"""


class FloorGraphStore:
    """
    In-memory floor plans with their navigation graphs and current routes.

    This is the mutable side of the editor. Routing never reads the live
    floors: every request works on a deep-copied snapshot taken under the
    store lock, so a search and its result never share objects with the
    floor being edited. The API handlers all run on the event loop; the
    lock only matters for callers on other threads, such as scripts.
    """

    def __init__(self):
        self._lock = threading.RLock()
        # { floor_id: FloorPlan }
        self.floors: Dict[str, FloorPlan] = {}
        # { floor_id: PathResult }
        self.current_paths: Dict[str, PathResult] = {}
        self.current_floor_id: Optional[str] = None

    # ============================================
    # FLOORS
    # ============================================

    def add_floor(self, floor: FloorPlan) -> FloorPlan:
        with self._lock:
            if floor.id in self.floors:
                raise GraphEditError(f"Floor '{floor.id}' already exists")
            self.floors[floor.id] = floor
            logger.info(f"Floor {floor.id} stored with {len(floor.nodes)} nodes and {len(floor.edges)} edges")
            return floor

    def get_floor(self, floor_id: str) -> FloorPlan:
        with self._lock:
            floor = self.floors.get(floor_id)
            if floor is None:
                raise FloorNotFoundError(floor_id)
            return floor

    def list_floors(self) -> List[FloorPlan]:
        with self._lock:
            return list(self.floors.values())

    def delete_floor(self, floor_id: str):
        with self._lock:
            self.get_floor(floor_id)
            del self.floors[floor_id]
            self.current_paths.pop(floor_id, None)
            if self.current_floor_id == floor_id:
                self.current_floor_id = None

    def set_current_floor(self, floor_id: str) -> FloorPlan:
        """Select a floor; any route shown on it is superseded"""
        with self._lock:
            floor = self.get_floor(floor_id)
            self.current_floor_id = floor_id
            self.current_paths.pop(floor_id, None)
            return floor

    def replace_graph(self, floor_id: str, nodes: List[Node], edges: List[Edge],
                      pois: Optional[List[POI]] = None) -> FloorPlan:
        with self._lock:
            floor = self.get_floor(floor_id)
            floor.nodes = list(nodes)
            floor.edges = list(edges)
            if pois is not None:
                floor.pois = list(pois)
            self._touch(floor)
            return floor

    # ============================================
    # GRAPH EDITS
    # ============================================

    def add_node(self, floor_id: str, node: Node) -> Node:
        with self._lock:
            floor = self.get_floor(floor_id)
            if any(n.id == node.id for n in floor.nodes):
                raise GraphEditError(f"Node '{node.id}' already exists on floor '{floor_id}'")
            floor.nodes.append(node)
            self._touch(floor)
            return node

    def remove_node(self, floor_id: str, node_id: str):
        """Remove a node together with every edge touching it"""
        with self._lock:
            floor = self.get_floor(floor_id)
            self._require_node(floor, node_id)
            floor.nodes = [n for n in floor.nodes if n.id != node_id]
            floor.edges = [e for e in floor.edges if e.from_ != node_id and e.to != node_id]
            self._touch(floor)

    def add_edge(self, floor_id: str, edge: Edge) -> Edge:
        """
        Add an edge as drawn. Unknown endpoints are accepted and stay inert
        during routing; validation reports them.
        """
        with self._lock:
            floor = self.get_floor(floor_id)
            if any(e.id == edge.id for e in floor.edges):
                raise GraphEditError(f"Edge '{edge.id}' already exists on floor '{floor_id}'")
            floor.edges.append(edge)
            self._touch(floor)
            return edge

    def connect_nodes(self, floor_id: str, node_id_1: str, node_id_2: str) -> Edge:
        """Bidirectional connection weighted by the pixel distance between the nodes"""
        with self._lock:
            floor = self.get_floor(floor_id)
            first = self._require_node(floor, node_id_1)
            second = self._require_node(floor, node_id_2)

            existing = self._find_connection(floor, node_id_1, node_id_2)
            if existing is not None:
                return existing

            edge = Edge(
                id=f"{node_id_1}-{node_id_2}",
                from_=node_id_1,
                to=node_id_2,
                weight=pathfinding.euclidean_distance(first, second),
                bidirectional=True
            )
            floor.edges.append(edge)
            self._touch(floor)
            return edge

    def remove_connection(self, floor_id: str, node_id_1: str, node_id_2: str):
        with self._lock:
            floor = self.get_floor(floor_id)
            before = len(floor.edges)
            floor.edges = [
                e for e in floor.edges
                if {e.from_, e.to} != {node_id_1, node_id_2}
            ]
            if len(floor.edges) == before:
                raise GraphEditError(f"No connection between '{node_id_1}' and '{node_id_2}'")
            self._touch(floor)

    def add_poi(self, floor_id: str, poi: POI) -> POI:
        with self._lock:
            floor = self.get_floor(floor_id)
            if any(p.id == poi.id for p in floor.pois):
                raise GraphEditError(f"POI '{poi.id}' already exists on floor '{floor_id}'")
            floor.pois.append(poi)
            self._touch(floor)
            return poi

    def get_poi(self, floor_id: str, poi_id: str) -> POI:
        with self._lock:
            floor = self.get_floor(floor_id)
            for poi in floor.pois:
                if poi.id == poi_id:
                    return poi
            raise GraphEditError(f"POI '{poi_id}' not found on floor '{floor_id}'")

    # ============================================
    # ROUTING
    # ============================================

    def snapshot(self, floor_id: str) -> RouteContext:
        with self._lock:
            floor = self.get_floor(floor_id)
            return RouteContext(
                nodes=[n.model_copy(deep=True) for n in floor.nodes],
                edges=[e.model_copy(deep=True) for e in floor.edges],
                floor_id=floor_id
            )

    def find_path(self, floor_id: str, start_id: str, end_id: str,
                  algorithm: str = "dijkstra",
                  cancel_event: Optional[threading.Event] = None) -> Optional[PathResult]:
        context = self.snapshot(floor_id)
        result = pathfinding.find_path(context, start_id, end_id, algorithm, cancel_event=cancel_event)
        self._set_current_path(floor_id, result)
        return result

    def find_path_between_pois(self, floor_id: str, start_poi_id: str, end_poi_id: str,
                               algorithm: str = "dijkstra",
                               cancel_event: Optional[threading.Event] = None) -> Optional[PathResult]:
        start_poi = self.get_poi(floor_id, start_poi_id)
        end_poi = self.get_poi(floor_id, end_poi_id)
        context = self.snapshot(floor_id)
        result = pathfinding.find_path_between_pois(context, start_poi, end_poi, algorithm,
                                                    cancel_event=cancel_event)
        self._set_current_path(floor_id, result)
        return result

    def get_current_path(self, floor_id: str) -> Optional[PathResult]:
        with self._lock:
            self.get_floor(floor_id)
            return self.current_paths.get(floor_id)

    def clear_path(self, floor_id: str):
        self._set_current_path(floor_id, None)

    # ============================================
    # EXPORT
    # ============================================

    def export_mapping_data(self, floor_id: str) -> dict:
        """Plain JSON-ready dump of one floor and its current route"""
        with self._lock:
            floor = self.get_floor(floor_id)
            current = self.current_paths.get(floor_id)
            data = floor.model_dump(mode="json", by_alias=True)
            return {
                "metadata": {
                    "export_date": datetime.utcnow().isoformat(),
                    "total_nodes": len(floor.nodes),
                    "total_edges": len(floor.edges),
                    "total_pois": len(floor.pois),
                },
                "floor": data,
                "current_path": current.model_dump(mode="json", by_alias=True) if current else None,
            }

    # ============================================
    # HELPERS
    # ============================================

    def _set_current_path(self, floor_id: str, result: Optional[PathResult]):
        with self._lock:
            self.get_floor(floor_id)
            if result is None:
                self.current_paths.pop(floor_id, None)
            else:
                self.current_paths[floor_id] = result

    @staticmethod
    def _require_node(floor: FloorPlan, node_id: str) -> Node:
        for node in floor.nodes:
            if node.id == node_id:
                return node
        raise GraphEditError(f"Node '{node_id}' not found on floor '{floor.id}'")

    @staticmethod
    def _find_connection(floor: FloorPlan, node_id_1: str, node_id_2: str) -> Optional[Edge]:
        for edge in floor.edges:
            if edge.from_ == node_id_1 and edge.to == node_id_2:
                return edge
            if edge.is_bidirectional and edge.from_ == node_id_2 and edge.to == node_id_1:
                return edge
        return None

    @staticmethod
    def _touch(floor: FloorPlan):
        floor.updated_at = datetime.utcnow()


# Process-wide store used by the routers
floor_store = FloorGraphStore()
