import logging

import pytest

from conftest import rec
from routing.errors import GeometryDecodeError
from routing.locator import EdgeLocator, find_piece, point_on_piece
from routing.service import RoutingService
from utils.geometry import Projector, decode
from utils.graph_builder import build_road_graph


def test_point_on_piece_tolerance_and_slack():
    a, b = (0.0, 0.0), (10.0, 0.0)
    assert point_on_piece(a, b, (5.0, 0.0))
    # |cross| = 10 * 0.9 = 9 < 10
    assert point_on_piece(a, b, (5.0, 0.9))
    assert not point_on_piece(a, b, (5.0, 1.0))
    # just past B, inside the slack
    assert point_on_piece(a, b, (10.5, 0.0))
    assert not point_on_piece(a, b, (11.5, 0.0))
    assert point_on_piece(a, b, (11.5, 0.0), slack=2.0)


def test_find_piece_returns_first_matching_pair():
    coords = [(0, 0), (10, 0), (10, 10)]
    assert find_piece(coords, (5, 0)) == 0
    assert find_piece(coords, (10, 5)) == 1
    # the shared vertex belongs to the first pair
    assert find_piece(coords, (10, 0)) == 0
    assert find_piece(coords, (50, 50)) is None


def test_locate_midpoint(line_service):
    result = line_service.locate_segment(500, (5, 0))
    assert result.segment.gid == 1
    assert result.matched

    result = line_service.locate_segment(500, (15, 0))
    assert result.segment.gid == 2
    assert result.matched


def test_locate_walks_inner_vertices(grid_service):
    # gid 5 is stored as a two-part multiline, with a repeated joint vertex
    result = grid_service.locate_segment(1004, (200, 75))
    assert result.segment.gid == 5
    # pieces: (0,50), the zero-length joint, then (50,100)
    assert result.piece == 2


def test_locate_falls_back_to_first_candidate(line_service, caplog):
    with caplog.at_level(logging.WARNING):
        result = line_service.locate_segment(500, (5, 40))
    assert result.segment.gid == 1
    assert not result.matched
    assert "falling back" in caplog.text


def test_strict_locate_rejects_fallback(line_service):
    assert line_service.locate_segment(500, (5, 40), strict=True) is None
    assert line_service.locate_segment(500, (5, 0), strict=True).segment.gid == 1


def test_unknown_way_is_not_found(line_service):
    assert line_service.locate_segment(123456, (5, 0)) is None


def test_custom_tolerance():
    _, index = build_road_graph([rec(1, 1, 2, 10.0, (0, 0), (10, 0), 7)])
    loose = EdgeLocator(index, decode, tolerance=50.0)
    tight = EdgeLocator(index, decode, tolerance=1.0)
    assert loose.locate(7, (5, 3)).matched
    assert not tight.locate(7, (5, 3)).matched


def test_bad_geometry_aborts_locate():
    service = RoutingService().build([rec(1, 1, 2, 10.0, (0, 0), (10, 0), 7, geom="LINESTRING (0 0, oops)")])
    with pytest.raises(GeometryDecodeError):
        service.locate_segment(7, (5, 0))


@pytest.fixture
def mercator_service():
    # one east-west road along latitude 45, lon 0 -> 10, stored in EPSG:4326
    records = [rec(1, 1, 2, 785000.0, (0, 45), (10, 45), 300)]
    return RoutingService(projector=Projector("EPSG:4326", "EPSG:3857")).build(records)


def test_click_on_displayed_line_is_matched(mercator_service):
    _, line = mercator_service.route_geometry([1])
    click = line.interpolate(0.5, normalized=True)

    result = mercator_service.locate_segment(300, (click.x, click.y))
    assert result.matched
    assert result.segment.gid == 1


def test_dataset_crs_point_is_not_a_display_click(mercator_service):
    # 0.0045 degrees off the road, read as web-mercator metres, is nowhere near it
    assert mercator_service.locate_segment(300, (5, 45.0045), strict=True) is None


def test_split_from_display_click_stays_in_dataset_crs(mercator_service):
    _, line = mercator_service.route_geometry([1])
    click = line.interpolate(0.5, normalized=True)
    parent = mercator_service.segment(1)

    edge1, edge2 = mercator_service.split_segment((click.x, click.y), parent)
    geom1, geom2 = decode(edge1.geometry), decode(edge2.geometry)
    assert geom1[0] == (0.0, 45.0)
    assert geom1[-1] == geom2[0]
    assert geom1[-1] == (pytest.approx(5.0), pytest.approx(45.0))
    assert geom2[-1] == (10.0, 45.0)

    edge1, edge2 = mercator_service.insert_split(edge1, edge2, parent)
    node = mercator_service.node_coordinate(edge1.target)
    assert node == (pytest.approx(5.0), pytest.approx(45.0))
    assert edge1.length == pytest.approx(392500.0)


def test_split_on_displayed_vertex_keeps_dataset_vertex():
    geom = "LINESTRING (0 45, 4 45, 10 45)"
    service = RoutingService(projector=Projector("EPSG:4326", "EPSG:3857")).build(
        [rec(1, 1, 2, 785000.0, (0, 45), (10, 45), 300, geom)]
    )
    vertex = service.projector.point((4, 45))

    edge1, edge2 = service.split_segment(vertex, service.segment(1))
    assert decode(edge1.geometry) == [(0, 45), (4, 45)]
    assert decode(edge2.geometry) == [(4, 45), (10, 45)]
