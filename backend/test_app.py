import logging

import pytest

from app import create_app
from conftest import DATA_DIR
from routing.service import RoutingService
from utils.config import Settings


@pytest.fixture
def client(grid_service):
    app = create_app(service=grid_service, settings=Settings(data_dir=DATA_DIR))
    app.testing = True
    return app.test_client()


def test_status(client):
    body = client.get("/api/v1/status").get_json()
    assert body == {"ready": True, "error": None, "nodes": 5, "edges": 10, "segments": 5}


def test_route(client):
    resp = client.get("/api/v1/route?start=1&stop=5")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["segments"] == [1, 2, 5]
    assert body["length"] == 300.0
    assert len(body["geometry"]["features"]) == 6


def test_unreachable_route_is_empty(client):
    body = client.get("/api/v1/route?start=1&stop=77").get_json()
    assert body["segments"] == []
    assert body["length"] == 0.0


def test_route_bad_parameters(client):
    assert client.get("/api/v1/route?start=1").status_code == 400
    assert client.get("/api/v1/route?start=a&stop=2").status_code == 400


def test_locate(client):
    body = client.get("/api/v1/locate?osm_id=1001&x=150&y=0").get_json()
    assert body["segment"]["gid"] == 2
    assert body["matched"] is True

    body = client.get("/api/v1/locate?osm_id=1001&x=150&y=80").get_json()
    assert body["matched"] is False
    assert client.get("/api/v1/locate?osm_id=1001&x=150&y=80&strict=1").status_code == 404
    assert client.get("/api/v1/locate?osm_id=31337&x=150&y=0").status_code == 404


def test_split_without_insert(client):
    resp = client.post("/api/v1/split", json={"gid": 3, "x": 100, "y": 40})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["node"] == "3/1"
    assert body["inserted"] is False
    first, second = body["segments"]
    assert first["source"] == 2 and first["target"] == "3/1"
    assert second["source"] == "3/1" and second["target"] == 4
    assert first["length"] is None


def test_split_and_route_from_new_node(client):
    body = client.post("/api/v1/split", json={"gid": 3, "x": 100, "y": 40, "insert": True}).get_json()
    assert body["inserted"] is True
    assert body["segments"][0]["length"] == pytest.approx(40.0)

    route = client.get("/api/v1/route?start=3/1&stop=5").get_json()
    assert route["segments"] == ["3/1/2", 4]
    assert route["length"] == pytest.approx(160.0)


def test_split_errors(client):
    assert client.post("/api/v1/split", json={"gid": 3}).status_code == 400
    assert client.post("/api/v1/split", json={"gid": 99, "x": 0, "y": 0}).status_code == 404
    assert client.post("/api/v1/split", json={"gid": 3, "x": 500, "y": 500}).status_code == 422


def test_routable(client):
    assert client.get("/api/v1/routable/1002").get_json() == {"osm_id": 1002, "routable": True}
    assert client.get("/api/v1/routable/7").get_json()["routable"] is False


def test_map_layer(client):
    resp = client.get("/api/v1/map/routing")
    assert resp.status_code == 200
    assert len(resp.get_json()) == 5
    assert client.get("/api/v1/map/roads").status_code == 404
    assert client.get("/api/v1/map/secret").status_code == 400


def test_not_ready_is_503():
    app = create_app(service=RoutingService(), settings=Settings(data_dir=DATA_DIR))
    client = app.test_client()
    assert client.get("/api/v1/route?start=1&stop=2").status_code == 503
    assert client.get("/api/v1/status").get_json()["ready"] is False


def test_app_loads_dataset_in_background():
    app = create_app(settings=Settings(data_dir=DATA_DIR))
    service = app.extensions["routing"]
    assert service.wait_ready(30)
    body = app.test_client().get("/api/v1/route?start=1&stop=3").get_json()
    assert body["segments"] == [1, 2]


def test_failed_background_load_is_reported(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        app = create_app(settings=Settings(data_dir=str(tmp_path)))
        service = app.extensions["routing"]
        assert service.load_future.exception(timeout=30) is not None

    client = app.test_client()
    assert client.get("/api/v1/route?start=1&stop=2").status_code == 503
    status = client.get("/api/v1/status").get_json()
    assert status["ready"] is False
    assert "FileNotFoundError" in status["error"]
    assert any(r.levelno == logging.ERROR for r in caplog.records)
