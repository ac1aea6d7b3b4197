import json
import logging
import os

import geopandas as gpd
from shapely.geometry import shape

from routing.errors import DatasetError

logger = logging.getLogger(__name__)


def load_geojson(path):
    """Load and return GeoJSON file content."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"GeoJSON not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DatasetError(f"{path}: {e}") from e


def _feature_to_record(feat):
    props = dict(feat.get("properties") or {})
    geom = feat.get("geometry")
    if geom and "geom" not in props:
        props["geom"] = shape(geom).wkt
    return props


def _frame_to_records(gdf):
    records = []
    for _, row in gdf.iterrows():
        rec = {k: v for k, v in row.items() if k != "geometry"}
        geom = row.geometry
        if geom is not None and not geom.is_empty and "geom" not in rec:
            rec["geom"] = geom.wkt
        records.append(rec)
    return records


def load_records(path):
    """
    Read routing records from disk, fully materialized.

    .json  -> a JSON array of records (pgRouting export) or a FeatureCollection
    other  -> any vector format geopandas can read (.geojson, .shp, .gpkg, ...)
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Routing dataset not found: {path}")

    if path.lower().endswith(".json"):
        data = load_geojson(path)
        if isinstance(data, list):
            records = data
        elif isinstance(data, dict) and data.get("type") == "FeatureCollection":
            records = [_feature_to_record(f) for f in data.get("features", [])]
        else:
            raise DatasetError(f"{path}: expected a record array or a FeatureCollection")
    else:
        try:
            gdf = gpd.read_file(path)
        except Exception as e:
            raise DatasetError(f"{path}: {e}") from e
        records = _frame_to_records(gdf)

    logger.info("Loaded %d routing records from %s", len(records), path)
    return records
