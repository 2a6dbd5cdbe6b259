import math
import threading

import pytest

from models import Edge, NavigationNode, Node, POI, RouteContext
from services import pathfinding
from services.pathfinding import (
    RouteCancelledError,
    a_star,
    build_adjacency,
    build_adjacency_from_connections,
    calculate_eta,
    dijkstra,
    find_nearest_node,
    find_path,
    find_path_between_pois,
    find_path_by_connections,
    generate_instructions,
    get_direction,
)

OPTIMAL_OFFICE_PATHS = (["n1", "n2", "n3", "n6"], ["n1", "n2", "n5", "n6"])


# ---------------------------------------------------------------------------
# Graph builder
# ---------------------------------------------------------------------------

def test_bidirectional_edges_are_mirrored(office_nodes, office_edges):
    adjacency = build_adjacency(office_nodes, office_edges)

    for node_id, outgoing in adjacency.items():
        for edge in outgoing:
            mirrored = [e for e in adjacency[edge.to] if e.to == node_id]
            assert [e.weight for e in mirrored] == [edge.weight]


def test_missing_bidirectional_flag_means_both_ways():
    nodes = [Node(id="a", x=0, y=0), Node(id="b", x=10, y=0)]
    implicit = build_adjacency(nodes, [Edge(id="e", from_="a", to="b", weight=3)])
    explicit = build_adjacency(nodes, [Edge(id="e", from_="a", to="b", weight=3, bidirectional=True)])

    assert [(e.from_, e.to) for e in implicit["b"]] == [("b", "a")]
    assert [(e.from_, e.to, e.weight) for e in implicit["b"]] == [(e.from_, e.to, e.weight) for e in explicit["b"]]


def test_one_way_edge_has_single_entry():
    nodes = [Node(id="a", x=0, y=0), Node(id="b", x=10, y=0)]
    adjacency = build_adjacency(nodes, [Edge(id="e", from_="a", to="b", weight=3, bidirectional=False)])

    assert [e.to for e in adjacency["a"]] == ["b"]
    assert adjacency["b"] == []


def test_orphan_edge_is_tolerated_but_never_traversed():
    nodes = [Node(id="a", x=0, y=0), Node(id="b", x=10, y=0)]
    edges = [
        Edge(id="ghost", from_="a", to="missing", weight=1),
        Edge(id="real", from_="a", to="b", weight=5),
    ]
    adjacency = build_adjacency(nodes, edges)

    assert "missing" in adjacency
    result = dijkstra(nodes, adjacency, "a", "b")
    assert result.path == ["a", "b"]
    assert dijkstra(nodes, adjacency, "a", "missing") is None
    assert a_star(nodes, adjacency, "a", "missing") is None


def test_connections_variant_uses_pixel_distance():
    nav_nodes = [
        NavigationNode(id="a", x=0, y=0, connections=["b", "nowhere"]),
        NavigationNode(id="b", x=3, y=4, connections=["a"]),
    ]
    adjacency = build_adjacency_from_connections(nav_nodes)

    assert [(e.to, e.weight) for e in adjacency["a"]] == [("b", 5.0)]
    assert [(e.to, e.weight) for e in adjacency["b"]] == [("a", 5.0)]


def test_route_over_connections():
    nav_nodes = [
        NavigationNode(id="a", x=0, y=0, connections=["b"]),
        NavigationNode(id="b", x=100, y=0, connections=["a", "c"]),
        NavigationNode(id="c", x=100, y=100, connections=["b"]),
    ]
    result = find_path_by_connections(nav_nodes, "a", "c")

    assert result.path == ["a", "b", "c"]
    assert result.distance == pytest.approx(200.0)
    assert result.instructions == ["Head east to waypoint 2", "Head south to waypoint 3"]


# ---------------------------------------------------------------------------
# POI resolver
# ---------------------------------------------------------------------------

def test_nearest_node_to_poi():
    nodes = [Node(id="A", x=0, y=0), Node(id="B", x=10, y=0), Node(id="C", x=3, y=0)]
    poi = POI(id="p", name="Kiosk", x=4, y=0)

    assert find_nearest_node(poi, nodes).id == "C"


def test_nearest_node_tie_keeps_first_in_order():
    poi = POI(id="p", name="Desk", x=5, y=0)
    nodes = [Node(id="left", x=0, y=0), Node(id="right", x=10, y=0)]

    assert find_nearest_node(poi, nodes).id == "left"
    assert find_nearest_node(poi, list(reversed(nodes))).id == "right"


def test_nearest_node_with_no_nodes():
    assert find_nearest_node(POI(id="p", name="Desk", x=0, y=0), []) is None


# ---------------------------------------------------------------------------
# Solvers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("solver", [dijkstra, a_star])
def test_office_route_takes_one_of_two_optima(solver, office_nodes, office_edges):
    adjacency = build_adjacency(office_nodes, office_edges)
    result = solver(office_nodes, adjacency, "n1", "n6")

    assert result.distance == 600
    assert result.path in OPTIMAL_OFFICE_PATHS
    assert [n.id for n in result.nodes] == result.path


@pytest.mark.parametrize("solver", [dijkstra, a_star])
def test_distance_is_sum_of_traversed_weights(solver, office_nodes, office_edges):
    adjacency = build_adjacency(office_nodes, office_edges)
    result = solver(office_nodes, adjacency, "n1", "n6")

    assert len(result.edges) == len(result.path) - 1
    for edge, (a, b) in zip(result.edges, zip(result.path, result.path[1:])):
        assert (edge.from_, edge.to) == (a, b)

    prefix = 0.0
    for edge in result.edges:
        prefix += edge.weight
        assert 0 <= prefix <= result.distance
    assert prefix == pytest.approx(result.distance)


@pytest.mark.parametrize("solver", [dijkstra, a_star])
def test_start_equals_end(solver, office_nodes, office_edges):
    adjacency = build_adjacency(office_nodes, office_edges)
    result = solver(office_nodes, adjacency, "n3", "n3")

    assert result.path == ["n3"]
    assert result.distance == 0
    assert result.edges == []


@pytest.mark.parametrize("solver", [dijkstra, a_star])
def test_disjoint_components_are_unreachable(solver):
    nodes = [Node(id=i, x=x, y=0) for i, x in (("a", 0), ("b", 10), ("c", 100), ("d", 110))]
    edges = [Edge(id="ab", from_="a", to="b", weight=10), Edge(id="cd", from_="c", to="d", weight=10)]
    adjacency = build_adjacency(nodes, edges)

    assert solver(nodes, adjacency, "a", "d") is None


@pytest.mark.parametrize("solver", [dijkstra, a_star])
def test_unknown_ids_are_not_found(solver, office_nodes, office_edges):
    adjacency = build_adjacency(office_nodes, office_edges)

    assert solver(office_nodes, adjacency, "nope", "n6") is None
    assert solver(office_nodes, adjacency, "n1", "nope") is None


@pytest.mark.parametrize("solver", [dijkstra, a_star])
def test_one_way_edge_blocks_reverse_trip(solver):
    nodes = [Node(id="a", x=0, y=0), Node(id="b", x=10, y=0)]
    adjacency = build_adjacency(nodes, [Edge(id="e", from_="a", to="b", weight=10, bidirectional=False)])

    assert solver(nodes, adjacency, "a", "b").path == ["a", "b"]
    assert solver(nodes, adjacency, "b", "a") is None


def test_dijkstra_prefers_cheap_weights_over_geometry():
    # Stairs look short on the plan but cost more than the corridor
    nodes = [Node(id="s", x=0, y=0), Node(id="mid", x=0, y=500), Node(id="g", x=100, y=0)]
    edges = [
        Edge(id="stairs", from_="s", to="g", weight=1000),
        Edge(id="hall1", from_="s", to="mid", weight=10),
        Edge(id="hall2", from_="mid", to="g", weight=10),
    ]
    result = dijkstra(nodes, build_adjacency(nodes, edges), "s", "g")

    assert result.path == ["s", "mid", "g"]
    assert result.distance == 20


def test_astar_with_inadmissible_weights_can_be_suboptimal():
    # Express corridor weights far below the pixel distance mislead the heuristic
    nodes = [Node(id="s", x=0, y=0), Node(id="a", x=0, y=100), Node(id="g", x=100, y=0)]
    edges = [
        Edge(id="direct", from_="s", to="g", weight=100),
        Edge(id="exp1", from_="s", to="a", weight=1),
        Edge(id="exp2", from_="a", to="g", weight=1),
    ]
    adjacency = build_adjacency(nodes, edges)

    assert dijkstra(nodes, adjacency, "s", "g").distance == 2
    assert a_star(nodes, adjacency, "s", "g").distance == 100


def _grid_graph():
    nodes = []
    for row in range(4):
        for col in range(4):
            nodes.append(Node(id=f"{row}-{col}", x=col * 50 + (row % 2) * 7, y=row * 40))

    by_id = {n.id: n for n in nodes}
    edges = []
    for row in range(4):
        for col in range(4):
            here = f"{row}-{col}"
            for dr, dc in ((0, 1), (1, 0), (1, 1)):
                there = f"{row + dr}-{col + dc}"
                if there in by_id:
                    edges.append(Edge(
                        id=f"{here}:{there}",
                        from_=here,
                        to=there,
                        weight=math.dist((by_id[here].x, by_id[here].y), (by_id[there].x, by_id[there].y)),
                    ))
    return nodes, edges


@pytest.mark.parametrize("start,end", [("0-0", "3-3"), ("3-0", "0-3"), ("1-2", "3-1"), ("2-2", "2-2")])
def test_solvers_agree_when_weights_match_geometry(start, end):
    nodes, edges = _grid_graph()
    adjacency = build_adjacency(nodes, edges)

    by_dijkstra = dijkstra(nodes, adjacency, start, end)
    by_astar = a_star(nodes, adjacency, start, end)

    assert by_astar.distance == pytest.approx(by_dijkstra.distance)


@pytest.mark.parametrize("solver", [dijkstra, a_star])
def test_cancelled_search_raises(solver, office_nodes, office_edges):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(RouteCancelledError):
        solver(office_nodes, build_adjacency(office_nodes, office_edges), "n1", "n6", cancel_event=cancel)


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("dx,dy,expected", [
    (10, 0, "east"),
    (10, 10, "east"),
    (0, 10, "south"),
    (-10, 10, "south"),
    (-10, 0, "west"),
    (-10, -10, "west"),
    (0, -10, "north"),
    (10, -5, "east"),
    (5, -10, "north"),
])
def test_direction_buckets_use_screen_coordinates(dx, dy, expected):
    assert get_direction(Node(id="a", x=0, y=0), Node(id="b", x=dx, y=dy)) == expected


def test_instruction_count_is_one_less_than_path(office_context):
    result = find_path(office_context, "n1", "n6")

    assert len(result.instructions) == len(result.path) - 1
    assert result.instructions[0] == "Head east to waypoint 2"
    assert result.instructions[-1].endswith("waypoint 4")


def test_no_instructions_for_short_paths(office_nodes):
    assert generate_instructions([]) == []
    assert generate_instructions(office_nodes[:1]) == []


def test_degenerate_route_has_no_instructions(office_context):
    result = find_path(office_context, "n2", "n2", algorithm="astar")

    assert result.path == ["n2"]
    assert result.distance == 0
    assert result.instructions == []


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def test_find_path_accepts_astar_aliases(office_context):
    assert find_path(office_context, "n1", "n6", algorithm="astar").algorithm == "astar"
    assert find_path(office_context, "n1", "n6", algorithm="A_STAR").algorithm == "astar"


def test_canonical_algorithm_names():
    assert pathfinding.canonical_algorithm("Dijkstra") == "dijkstra"
    assert pathfinding.canonical_algorithm("A_STAR") == "astar"
    with pytest.raises(ValueError):
        pathfinding.canonical_algorithm("bfs")


def test_find_path_rejects_unknown_algorithm(office_context):
    with pytest.raises(ValueError):
        find_path(office_context, "n1", "n6", algorithm="bfs")


def test_find_path_does_not_mutate_snapshot(office_context):
    before = [e.model_dump() for e in office_context.edges]
    find_path(office_context, "n1", "n6")

    assert [e.model_dump() for e in office_context.edges] == before


def test_route_between_pois(office_context, office_pois):
    result = find_path_between_pois(office_context, office_pois[0], office_pois[1])

    assert result.path[0] == "n1"
    assert result.path[-1] == "n6"
    assert result.distance == 600


def test_route_between_pois_on_empty_floor(office_pois):
    assert find_path_between_pois(RouteContext(), office_pois[0], office_pois[1]) is None


def test_eta_uses_floor_scale():
    eta = calculate_eta(240, scale=10, walking_speed=2.0)

    assert eta["distance_meters"] == 24.0
    assert eta["time_seconds"] == 12
    assert eta["time_formatted"] == "12 sec"


def test_eta_without_scale():
    assert calculate_eta(240)["distance_meters"] is None


def test_format_time_minutes():
    assert pathfinding._format_time(125) == "2 min 5 sec"
    assert pathfinding._format_time(3720) == "1h 2m"
