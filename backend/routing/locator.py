# backend/routing/locator.py
"""
Point-to-segment matching.

A clicked map feature carries its OSM way id; the way may have been cut
into several routing segments. locate() finds which of those segments the
click point C lies on: some vertex pair (A, B) of its polyline must be
collinear with C (|cross| < tolerance) and C must sit between A and B
(dAC and dBC both within dAB + slack).
"""

import logging
import math
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from .graph import EdgeIndex, SegmentRecord

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]

DEFAULT_TOLERANCE = 10.0
DEFAULT_SLACK = 1.0


def _dist(p: Coord, q: Coord) -> float:
    return math.hypot(p[0] - q[0], p[1] - q[1])


def point_on_piece(a: Coord, b: Coord, c: Coord,
                   tolerance: float = DEFAULT_TOLERANCE,
                   slack: float = DEFAULT_SLACK) -> bool:
    """True when C lies on the straight piece A-B within tolerance/slack."""
    cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
    if abs(cross) >= tolerance:
        return False
    d_ab = _dist(a, b)
    return _dist(a, c) <= d_ab + slack and _dist(b, c) <= d_ab + slack


def find_piece(coords: Sequence[Coord], c: Coord,
               tolerance: float = DEFAULT_TOLERANCE,
               slack: float = DEFAULT_SLACK) -> Optional[int]:
    """Index i of the first vertex pair (coords[i], coords[i+1]) containing C."""
    for i in range(len(coords) - 1):
        if point_on_piece(coords[i], coords[i + 1], c, tolerance, slack):
            return i
    return None


class LocateResult(NamedTuple):
    segment: SegmentRecord
    matched: bool       # False: no segment contained the point, first candidate returned
    piece: Optional[int] = None


class EdgeLocator:
    def __init__(self, index: EdgeIndex, decode: Callable[[str], List[Coord]],
                 tolerance: float = DEFAULT_TOLERANCE, slack: float = DEFAULT_SLACK,
                 projector=None):
        self.index = index
        self.decode = decode
        self.tolerance = tolerance
        self.slack = slack
        self.projector = projector

    def vertices(self, segment: SegmentRecord) -> List[Coord]:
        """Segment polyline in the CRS query points are given in."""
        coords = self.decode(segment.geometry)
        if self.projector is not None:
            coords = self.projector.line(coords)
        return coords

    def locate(self, origin_id: int, point: Coord) -> Optional[LocateResult]:
        """
        Return the segment of way `origin_id` that contains `point`.
        `point` is in the display CRS when a projector is set.

        None when the way has no segments at all. When no segment contains
        the point the first candidate comes back with matched=False.
        """
        candidates = self.index.candidates(origin_id)
        if not candidates:
            return None

        for seg in candidates:
            # decode errors propagate to the caller
            piece = find_piece(self.vertices(seg), point, self.tolerance, self.slack)
            if piece is not None:
                return LocateResult(seg, True, piece)

        logger.warning(
            "Point %s is on none of the %d segments of way %s; falling back to gid %s",
            point, len(candidates), origin_id, candidates[0].gid,
        )
        return LocateResult(candidates[0], False)
