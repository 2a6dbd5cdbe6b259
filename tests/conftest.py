"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient

from auth_utils import create_access_token
from models import Edge, FloorPlan, Node, POI, RouteContext
from services.floor_store import FloorGraphStore, floor_store


@pytest.fixture
def office_nodes():
    return [
        Node(id="n1", x=100, y=100, type="entrance"),
        Node(id="n2", x=300, y=100, type="intersection"),
        Node(id="n3", x=500, y=100, type="door"),
        Node(id="n5", x=300, y=300, type="intersection"),
        Node(id="n6", x=500, y=300, type="room"),
    ]


@pytest.fixture
def office_edges():
    return [
        Edge(id="e1", from_="n1", to="n2", weight=200, bidirectional=True),
        Edge(id="e2", from_="n2", to="n3", weight=200, bidirectional=True),
        Edge(id="e3", from_="n2", to="n5", weight=200, bidirectional=True),
        Edge(id="e4", from_="n3", to="n6", weight=200, bidirectional=True),
        Edge(id="e5", from_="n5", to="n6", weight=200, bidirectional=True),
    ]


@pytest.fixture
def office_context(office_nodes, office_edges):
    return RouteContext(nodes=office_nodes, edges=office_edges, floor_id="f1")


@pytest.fixture
def office_pois():
    return [
        POI(id="lobby", name="Lobby", x=90, y=110, type="other"),
        POI(id="meeting", name="Meeting Room", x=520, y=320, type="meeting"),
    ]


@pytest.fixture
def office_floor(office_nodes, office_edges, office_pois):
    return FloorPlan(
        id="f1",
        name="Ground Floor",
        location_id="hq",
        floor_number=0,
        scale=10,
        nodes=office_nodes,
        edges=office_edges,
        pois=office_pois,
    )


@pytest.fixture
def store(office_floor):
    s = FloorGraphStore()
    s.add_floor(office_floor)
    return s


@pytest.fixture(autouse=True)
def _reset_floor_store():
    floor_store.floors.clear()
    floor_store.current_paths.clear()
    floor_store.current_floor_id = None
    yield
    floor_store.floors.clear()
    floor_store.current_paths.clear()
    floor_store.current_floor_id = None


@pytest.fixture
def client():
    from main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def editor_headers():
    token = create_access_token({"sub": "alice", "role": "editor"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def viewer_headers():
    token = create_access_token({"sub": "bob", "role": "viewer"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def office_graph_json():
    return {
        "nodes": [
            {"id": "n1", "x": 100, "y": 100, "type": "entrance"},
            {"id": "n2", "x": 300, "y": 100, "type": "intersection"},
            {"id": "n3", "x": 500, "y": 100, "type": "door"},
            {"id": "n5", "x": 300, "y": 300, "type": "intersection"},
            {"id": "n6", "x": 500, "y": 300, "type": "room"},
        ],
        "edges": [
            {"id": "e1", "from": "n1", "to": "n2", "weight": 200},
            {"id": "e2", "from": "n2", "to": "n3", "weight": 200},
            {"id": "e3", "from": "n2", "to": "n5", "weight": 200},
            {"id": "e4", "from": "n3", "to": "n6", "weight": 200},
            {"id": "e5", "from": "n5", "to": "n6", "weight": 200},
        ],
    }
