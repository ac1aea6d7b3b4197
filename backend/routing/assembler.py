# backend/routing/assembler.py
"""
Turn a route (ordered gids) into a total length and display geometry.
"""

from typing import Callable, Iterable, List, Sequence, Tuple

from shapely.geometry import LineString, Point, mapping

from .errors import UnknownSegmentError
from .graph import EdgeIndex, GraphStore, SegmentRecord, jsonable_id

Coord = Tuple[float, float]


class RouteAssembler:
    def __init__(self, graph: GraphStore, index: EdgeIndex,
                 decode: Callable[[str], List[Coord]], projector=None):
        self.graph = graph
        self.index = index
        self.decode = decode
        self.projector = projector

    def _segment(self, gid) -> SegmentRecord:
        seg = self.index.get(gid)
        if seg is None:
            raise UnknownSegmentError(gid)
        return seg

    def length(self, route: Iterable) -> float:
        total = 0.0
        for gid in route:
            total += self._segment(gid).length
        return total

    def display_geometry(self, route: Sequence) -> list:
        """
        For each segment: a Point at its source node, then its full polyline.
        Shared endpoints between consecutive segments are not deduplicated.
        """
        features = []
        for gid in route:
            seg = self._segment(gid)
            coords = self.decode(seg.geometry)
            start = self.graph.coordinate(seg.source)
            if start is None:
                # virtual nodes inserted without a coordinate
                start = coords[0]
            if self.projector is not None:
                start = self.projector.point(start)
                coords = self.projector.line(coords)
            features.append(Point(start))
            features.append(LineString(coords))
        return features

    def to_geojson(self, route: Sequence) -> dict:
        features = []
        geoms = self.display_geometry(route)
        for i, gid in enumerate(route):
            for kind, geom in (("node", geoms[2 * i]), ("segment", geoms[2 * i + 1])):
                features.append({
                    "type": "Feature",
                    "properties": {"gid": jsonable_id(gid), "kind": kind},
                    "geometry": mapping(geom),
                })
        return {"type": "FeatureCollection", "features": features}
