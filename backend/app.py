import logging
import os

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from routing.errors import (
    DatasetError,
    GeometryDecodeError,
    GraphNotReadyError,
    PointNotOnSegmentError,
    UnknownSegmentError,
)
from routing.graph import SplitGid, VirtualNode, jsonable_id
from routing.service import RoutingService
from utils.config import Settings
from utils.geo_loader import load_geojson

logger = logging.getLogger(__name__)


def _routing():
    return current_app.extensions["routing"]


def _int_arg(name):
    raw = request.args.get(name)
    if raw is None:
        raise ValueError(f"Missing parameter: {name}")
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Parameter {name} must be an integer")


def _float_arg(name):
    raw = request.args.get(name)
    if raw is None:
        raise ValueError(f"Missing parameter: {name}")
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Parameter {name} must be a number")


def _parse_gid(raw):
    """Integer gids, or "parent/occurrence/part" for an inserted split half."""
    parts = str(raw).split("/")
    try:
        if len(parts) == 1:
            return int(parts[0])
        if len(parts) == 3:
            return SplitGid(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError:
        pass
    raise ValueError(f"Invalid gid: {raw!r}")


def _node_arg(name):
    """Integer node ids, or "gid/occurrence" for a split node."""
    raw = request.args.get(name)
    if raw is None:
        raise ValueError(f"Missing parameter: {name}")
    parts = raw.split("/")
    try:
        if len(parts) == 1:
            return int(parts[0])
        if len(parts) == 2:
            return VirtualNode(int(parts[0]), int(parts[1]))
    except ValueError:
        pass
    raise ValueError(f"Invalid node id for {name}: {raw!r}")


def create_app(service=None, settings=None, load=True):
    """
    Build the Flask app. Without a service one is created from settings and
    the dataset is loaded in the background; queries answer 503 until ready.
    """
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    CORS(app)

    if service is None:
        service = RoutingService.from_settings(settings)
        if load:
            logger.info("Loading routing dataset %s in the background", settings.dataset_path)
            service.load_async(settings.dataset_path)
    app.extensions["routing"] = service
    app.config["ROUTING_SETTINGS"] = settings

    # ============================================================
    # ERRORS
    # ============================================================
    @app.errorhandler(GraphNotReadyError)
    def not_ready(e):
        return jsonify({"error": str(e)}), 503

    @app.errorhandler(UnknownSegmentError)
    def unknown_segment(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(GeometryDecodeError)
    def bad_geometry(e):
        return jsonify({"error": str(e)}), 422

    @app.errorhandler(ValueError)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    # ============================================================
    # MAP LAYERS API
    # ============================================================
    @app.route("/api/v1/map/<layer>", methods=["GET"])
    def get_map_layer(layer):
        valid_layers = settings.layers
        if layer not in valid_layers:
            return jsonify({"error": "Invalid layer name"}), 400

        file_path = os.path.join(settings.data_dir, valid_layers[layer])
        try:
            data = load_geojson(file_path)
        except FileNotFoundError:
            return jsonify({"error": f"Layer not available: {layer}"}), 404
        except DatasetError as e:
            return jsonify({"error": str(e)}), 500
        return jsonify(data)

    # ============================================================
    # ROUTING API
    # ============================================================
    @app.route("/api/v1/status", methods=["GET"])
    def status():
        return jsonify(_routing().stats())

    @app.route("/api/v1/route", methods=["GET"])
    def route():
        start = _node_arg("start")
        stop = _node_arg("stop")

        summary = _routing().route_summary(start, stop)
        return jsonify({
            "start": jsonable_id(start),
            "stop": jsonable_id(stop),
            "segments": [jsonable_id(g) for g in summary["segments"]],
            "length": summary["length"],
            "geometry": summary["geometry"],
        })

    @app.route("/api/v1/locate", methods=["GET"])
    def locate():
        osm_id = _int_arg("osm_id")
        point = (_float_arg("x"), _float_arg("y"))
        strict = request.args.get("strict", "0").lower() in ("1", "true", "yes")

        result = _routing().locate_segment(osm_id, point, strict=strict)
        if result is None:
            return jsonify({"error": f"No segment of way {osm_id} at {point}"}), 404

        return jsonify({
            "segment": result.segment.to_dict(),
            "matched": result.matched,
        })

    @app.route("/api/v1/split", methods=["POST"])
    def split():
        body = request.get_json(silent=True) or {}
        if "gid" not in body or "x" not in body or "y" not in body:
            return jsonify({"error": "Body must contain gid, x and y"}), 400

        service = _routing()
        gid = _parse_gid(body["gid"])
        try:
            point = (float(body["x"]), float(body["y"]))
        except (TypeError, ValueError):
            return jsonify({"error": "x and y must be numbers"}), 400

        parent = service.segment(gid)
        try:
            edge1, edge2 = service.split_segment(point, parent)
        except PointNotOnSegmentError as e:
            return jsonify({"error": str(e)}), 422

        if body.get("insert"):
            edge1, edge2 = service.insert_split(edge1, edge2, parent)

        return jsonify({
            "node": jsonable_id(edge1.target),
            "segments": [edge1.to_dict(), edge2.to_dict()],
            "inserted": bool(body.get("insert")),
        })

    @app.route("/api/v1/routable/<int:osm_id>", methods=["GET"])
    def routable(osm_id):
        return jsonify({"osm_id": osm_id, "routable": _routing().is_routable(osm_id)})

    return app


# ============================================================
# RUN SERVER
# ============================================================
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    create_app().run(debug=True)
