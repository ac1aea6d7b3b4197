# backend/routing/splitter.py
"""
Cut a segment at a point lying on its geometry.
"""

import itertools
from collections import defaultdict
from typing import Callable, List, Sequence, Tuple

from .errors import PointNotOnSegmentError
from .graph import SegmentRecord, SplitGid, VirtualNode
from .locator import DEFAULT_SLACK, DEFAULT_TOLERANCE, find_piece

Coord = Tuple[float, float]


def cut_polyline(coords: Sequence[Coord], c: Coord, piece: int) -> Tuple[List[Coord], List[Coord]]:
    """
    Split `coords` at C on vertex pair (piece, piece + 1).
    Both halves share C; no vertex is repeated when C sits on one.
    """
    c = (float(c[0]), float(c[1]))
    geom1 = list(coords[:piece + 1])
    if geom1[-1] != c:
        geom1.append(c)
    geom2 = [c]
    rest = list(coords[piece + 1:])
    if rest and rest[0] == c:
        rest = rest[1:]
    geom2.extend(rest)
    return geom1, geom2


class EdgeSplitter:
    def __init__(self, decode: Callable[[str], List[Coord]], encode: Callable[[Sequence[Coord]], str],
                 tolerance: float = DEFAULT_TOLERANCE, slack: float = DEFAULT_SLACK,
                 projector=None):
        self.decode = decode
        self.encode = encode
        self.tolerance = tolerance
        self.slack = slack
        self.projector = projector
        self._occurrences = defaultdict(itertools.count)

    def split(self, point: Coord, segment: SegmentRecord) -> Tuple[SegmentRecord, SegmentRecord]:
        """
        Return (edge1, edge2): source -> new node and new node -> target.

        The new node is a VirtualNode unique per split of this segment.
        Lengths are left unset; the caller recomputes them if needed.

        `point` is matched in the display CRS when a projector is set; the
        halves are always in the dataset CRS.
        """
        coords = self.decode(segment.geometry)
        matched = coords if self.projector is None else self.projector.line(coords)
        piece = find_piece(matched, point, self.tolerance, self.slack)
        if piece is None:
            raise PointNotOnSegmentError(f"Point {tuple(point)} is not on segment {segment.gid!r}")

        c = (float(point[0]), float(point[1]))
        if self.projector is not None:
            # a click exactly on a vertex keeps that vertex, not its round trip
            on_vertex = [coords[i] for i in (piece, piece + 1) if matched[i] == c]
            c = on_vertex[0] if on_vertex else self.projector.unproject(c)

        geom1, geom2 = cut_polyline(coords, c, piece)
        if len(geom1) < 2 or len(geom2) < 2:
            # C sits on an end vertex of the whole polyline
            raise PointNotOnSegmentError(
                f"Point {tuple(point)} is an endpoint of segment {segment.gid!r}; nothing to split"
            )

        occurrence = next(self._occurrences[segment.gid]) + 1
        new_node = VirtualNode(segment.gid, occurrence)

        edge1 = SegmentRecord(
            gid=SplitGid(segment.gid, occurrence, 1),
            source=segment.source,
            target=new_node,
            geometry=self.encode(geom1),
            origin_id=segment.origin_id,
        )
        edge2 = SegmentRecord(
            gid=SplitGid(segment.gid, occurrence, 2),
            source=new_node,
            target=segment.target,
            geometry=self.encode(geom2),
            origin_id=segment.origin_id,
        )
        return edge1, edge2
