# backend/routing/graph.py
"""
Road graph model.

GraphStore keeps the directed adjacency (node -> target -> {weight, gid})
on top of a NetworkX MultiDiGraph keyed by gid, plus the node coordinate
table. Parallel segments between the same two nodes are all kept;
outgoing() reports the cheapest one.
EdgeIndex keeps the physical segment records by gid and groups them by the
OSM way (origin id) they were cut from.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Hashable, List, NamedTuple, Optional, Set, Tuple

import networkx as nx

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]


class VirtualNode(NamedTuple):
    """Node created by splitting segment `gid`; `occurrence` counts splits of that segment."""
    gid: Hashable
    occurrence: int


class SplitGid(NamedTuple):
    """Segment id of one half (`part` 1 or 2) of a split segment."""
    parent: Hashable
    occurrence: int
    part: int


@dataclass(frozen=True)
class SegmentRecord:
    gid: Hashable
    source: Hashable
    target: Hashable
    geometry: str          # WKT text
    origin_id: int         # osm_id of the way this piece comes from
    length: Optional[float] = None

    def with_length(self, length: float) -> "SegmentRecord":
        return replace(self, length=float(length))

    def to_dict(self) -> dict:
        return {
            "gid": jsonable_id(self.gid),
            "source": jsonable_id(self.source),
            "target": jsonable_id(self.target),
            "geom": self.geometry,
            "osm_id": self.origin_id,
            "length": self.length,
        }


def jsonable_id(value):
    # tagged ids become "parent/occurrence[/part]" strings for API output
    if isinstance(value, tuple):
        return "/".join(str(jsonable_id(v)) for v in value)
    return value


def node_order(node) -> tuple:
    """
    Total order over node ids: integer nodes first (ascending), then
    virtual split nodes by (parent gid, occurrence).
    """
    if isinstance(node, VirtualNode):
        return (1, str(node.gid), node.occurrence)
    if isinstance(node, (int, float)):
        return (0, node, 0)
    return (2, str(node), 0)


class GraphStore:
    def __init__(self):
        self.G = nx.MultiDiGraph()

    def add_node(self, node, coord: Optional[Coord] = None) -> bool:
        """
        Register a node. The first coordinate recorded for a node wins;
        returns True when the node is new.
        """
        if node in self.G:
            if coord is not None and self.G.nodes[node].get("coord") is None:
                self.G.nodes[node]["coord"] = (float(coord[0]), float(coord[1]))
            return False
        self.G.add_node(node, coord=None if coord is None else (float(coord[0]), float(coord[1])))
        return True

    def add_segment(self, source, target, weight: float, gid) -> None:
        """Insert both traversal directions of a physical segment."""
        if weight is None:
            raise ValueError(f"Segment {gid!r} has no length")
        self.add_node(source)
        self.add_node(target)
        if self.G.has_edge(source, target) and not self.G.has_edge(source, target, key=gid):
            logger.debug("Parallel segment %s between %s and %s", gid, source, target)
        self.G.add_edge(source, target, key=gid, weight=float(weight), gid=gid)
        self.G.add_edge(target, source, key=gid, weight=float(weight), gid=gid)

    def outgoing(self, node) -> Dict[Hashable, dict]:
        """
        Mapping target -> {weight, gid}; empty for unknown nodes.
        Among parallel segments the lightest wins, ties by gid order.
        """
        if node not in self.G:
            return {}
        out = {}
        for v, keyed in self.G.adj[node].items():
            d = min(keyed.values(), key=lambda e: (e["weight"], node_order(e["gid"])))
            out[v] = {"weight": d["weight"], "gid": d["gid"]}
        return out

    def edges_between(self, source, target) -> Dict[Hashable, float]:
        """gid -> weight for every directed edge source -> target."""
        if not self.G.has_edge(source, target):
            return {}
        return {k: d["weight"] for k, d in self.G[source][target].items()}

    def coordinate(self, node) -> Optional[Coord]:
        if node not in self.G:
            return None
        return self.G.nodes[node].get("coord")

    def has_node(self, node) -> bool:
        return node in self.G

    def clear(self) -> None:
        self.G.clear()

    def number_of_nodes(self) -> int:
        return self.G.number_of_nodes()

    def number_of_edges(self) -> int:
        return self.G.number_of_edges()


class EdgeIndex:
    def __init__(self):
        self.segments: Dict[Hashable, SegmentRecord] = {}
        self.by_origin: Dict[int, Set[Hashable]] = {}
        self.routable: Set[int] = set()

    def clear(self) -> None:
        self.segments.clear()
        self.by_origin.clear()
        self.routable.clear()

    def put(self, record: SegmentRecord) -> Optional[SegmentRecord]:
        """Store a record under its gid; returns the record it replaced, if any."""
        previous = self.segments.get(record.gid)
        if previous is not None:
            bucket = self.by_origin.get(previous.origin_id)
            if bucket is not None:
                bucket.discard(record.gid)
        self.segments[record.gid] = record
        self.by_origin.setdefault(record.origin_id, set()).add(record.gid)
        self.routable.add(record.origin_id)
        return previous

    def get(self, gid) -> Optional[SegmentRecord]:
        return self.segments.get(gid)

    def candidates(self, origin_id: int) -> List[SegmentRecord]:
        """All segments cut from `origin_id`, ordered by gid."""
        gids = self.by_origin.get(origin_id, ())
        return [self.segments[g] for g in sorted(gids, key=node_order)]

    def is_routable(self, origin_id: int) -> bool:
        return origin_id in self.routable

    def __len__(self):
        return len(self.segments)

    def __contains__(self, gid):
        return gid in self.segments
