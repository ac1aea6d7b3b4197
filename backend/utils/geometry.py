# backend/utils/geometry.py
"""
Geometry helpers at the edge of the routing core.

The core stores polylines as WKT text and works on plain lists of (x, y)
tuples. decode/encode convert between the two with shapely; Projector
reprojects coordinates with pyproj for display.
"""

from typing import List, Optional, Sequence, Tuple

from pyproj import Transformer
from shapely import wkt
from shapely.errors import GEOSException, ShapelyError
from shapely.geometry import LineString

from routing.errors import GeometryDecodeError

Coord = Tuple[float, float]  # (x, y) in the dataset CRS


def decode(text: str) -> List[Coord]:
    """Decode WKT LINESTRING / MULTILINESTRING text into an ordered vertex list."""
    if not isinstance(text, str) or not text.strip():
        raise GeometryDecodeError(f"Empty geometry text: {text!r}")
    try:
        geom = wkt.loads(text)
    except (ShapelyError, GEOSException, ValueError) as e:
        raise GeometryDecodeError(f"Invalid WKT: {e}") from e

    if geom.is_empty:
        raise GeometryDecodeError("Geometry is empty")

    if geom.geom_type == "LineString":
        lines = [geom]
    elif geom.geom_type == "MultiLineString":
        lines = list(geom.geoms)
    else:
        raise GeometryDecodeError(f"Unsupported geometry type: {geom.geom_type}")

    coords = []
    for line in lines:
        coords.extend((float(c[0]), float(c[1])) for c in line.coords)
    return coords


def encode(coords: Sequence[Coord]) -> str:
    """Encode an ordered vertex list as WKT LINESTRING text."""
    if len(coords) < 2:
        raise GeometryDecodeError(f"A line needs at least 2 vertices, got {len(coords)}")
    return LineString(coords).wkt


def planar_length(coords: Sequence[Coord]) -> float:
    if len(coords) < 2:
        return 0.0
    return LineString(coords).length


class Projector:
    """
    Reprojects coordinates from the dataset CRS to a display CRS.
    Map clicks arrive in the display CRS, so locate and split match
    against projected geometry too.

    With no CRS on either side the projector is the identity.
    """

    def __init__(self, source_crs: Optional[str] = None, target_crs: Optional[str] = None):
        self.source_crs = source_crs
        self.target_crs = target_crs
        self._transformer = None
        self._inverse = None
        if source_crs and target_crs and source_crs != target_crs:
            self._transformer = Transformer.from_crs(source_crs, target_crs, always_xy=True)
            self._inverse = Transformer.from_crs(target_crs, source_crs, always_xy=True)

    @property
    def is_identity(self) -> bool:
        return self._transformer is None

    def point(self, coord: Coord) -> Coord:
        if self._transformer is None:
            return (coord[0], coord[1])
        x, y = self._transformer.transform(coord[0], coord[1])
        return (x, y)

    def line(self, coords: Sequence[Coord]) -> List[Coord]:
        return [self.point(c) for c in coords]

    def unproject(self, coord: Coord) -> Coord:
        """Display CRS back to the dataset CRS."""
        if self._inverse is None:
            return (coord[0], coord[1])
        x, y = self._inverse.transform(coord[0], coord[1])
        return (x, y)
