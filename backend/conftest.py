import os

import pytest

from routing.service import RoutingService

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


def rec(gid, source, target, length, p1, p2, osm_id, geom=None):
    """One dataset row in the pgRouting export layout."""
    if geom is None:
        geom = f"LINESTRING ({p1[0]} {p1[1]}, {p2[0]} {p2[1]})"
    return {
        "gid": gid, "source": source, "target": target, "length": length,
        "x1": p1[0], "y1": p1[1], "x2": p2[0], "y2": p2[1],
        "osm_id": osm_id, "geom": geom,
    }


@pytest.fixture
def line_records():
    # A(0,0) - B(10,0) - C(20,0), plus an isolated D reachable only from itself
    return [
        rec(1, 1, 2, 10.0, (0, 0), (10, 0), 500),
        rec(2, 2, 3, 10.0, (10, 0), (20, 0), 500),
    ]


@pytest.fixture
def line_service(line_records):
    return RoutingService().build(line_records)


@pytest.fixture
def grid_records():
    #  4 ---- 5
    #  |      |
    #  2 ---- 3        1 -- 2 on the left
    return [
        rec(1, 1, 2, 100.0, (0, 0), (100, 0), 1001, "LINESTRING (0 0, 50 0, 100 0)"),
        rec(2, 2, 3, 100.0, (100, 0), (200, 0), 1001),
        rec(3, 2, 4, 100.0, (100, 0), (100, 100), 1002),
        rec(4, 4, 5, 100.0, (100, 100), (200, 100), 1003),
        rec(5, 3, 5, 100.0, (200, 0), (200, 100), 1004, "MULTILINESTRING ((200 0, 200 50), (200 50, 200 100))"),
    ]


@pytest.fixture
def grid_service(grid_records):
    return RoutingService().build(grid_records)
