# backend/routing/service.py
"""
RoutingService: owns one road graph and answers queries on it.

Lifecycle: build() (or load_async()) runs once and sets the ready signal.
Every query before that raises GraphNotReadyError. After the build the
graph only changes through insert_split(), which holds the same lock as
path searches and the other readers.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, Mapping, Optional, Tuple

from utils.geo_loader import load_records
from utils.geometry import Projector, decode, encode, planar_length
from utils.graph_builder import build_road_graph

from .assembler import RouteAssembler
from .dijkstra import ShortestPathFinder
from .errors import GraphNotReadyError, UnknownSegmentError
from .graph import EdgeIndex, GraphStore, SegmentRecord
from .locator import DEFAULT_SLACK, DEFAULT_TOLERANCE, EdgeLocator, LocateResult
from .splitter import EdgeSplitter

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]


class RoutingService:
    def __init__(self, tolerance: float = DEFAULT_TOLERANCE, slack: float = DEFAULT_SLACK,
                 projector: Optional[Projector] = None):
        self.tolerance = tolerance
        self.slack = slack
        self.projector = projector

        self.graph = GraphStore()
        self.index = EdgeIndex()
        self.finder = ShortestPathFinder(self.graph)
        self.locator = EdgeLocator(self.index, decode, tolerance, slack, projector)
        self.splitter = EdgeSplitter(decode, encode, tolerance, slack, projector)
        self.assembler = RouteAssembler(self.graph, self.index, decode, projector)

        self._ready = threading.Event()
        self._lock = threading.RLock()
        self._build_started = False
        self.load_future: Optional[Future] = None
        self.load_error: Optional[str] = None

    @classmethod
    def from_settings(cls, settings) -> "RoutingService":
        projector = None
        if settings.display_crs:
            projector = Projector(settings.dataset_crs, settings.display_crs)
        return cls(tolerance=settings.tolerance, slack=settings.slack, projector=projector)

    # -------------------------
    # Build
    # -------------------------
    def build(self, records: Iterable[Mapping]) -> "RoutingService":
        """Build the graph from fully materialized records and signal readiness."""
        with self._lock:
            if self._build_started:
                raise RuntimeError("RoutingService graph is already built")
            self._build_started = True
            try:
                build_road_graph(records, self.graph, self.index)
            except Exception:
                # leave a clean, not-ready service behind
                self._build_started = False
                self.graph.clear()
                self.index.clear()
                raise
        self.load_error = None
        self._ready.set()
        return self

    def load_async(self, path: str, loader: Callable[[str], Iterable[Mapping]] = load_records) -> Future:
        """Load and build on a worker thread; the Future resolves to this service."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="routing-load")

        def _run():
            logger.info("Loading routing graph from %s", path)
            try:
                return self.build(loader(path))
            except Exception as e:
                self.load_error = f"{type(e).__name__}: {e}"
                logger.exception("Loading routing graph from %s failed", path)
                raise

        self.load_error = None
        future = executor.submit(_run)
        executor.shutdown(wait=False)
        self.load_future = future
        return future

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    def _require_ready(self):
        if not self._ready.is_set():
            raise GraphNotReadyError("Routing graph is not built yet")

    # -------------------------
    # Queries
    # -------------------------
    def find_path(self, start, stop) -> list:
        self._require_ready()
        with self._lock:
            return self.finder.find(start, stop)

    def locate_segment(self, origin_id: int, point: Coord, strict: bool = False) -> Optional[LocateResult]:
        """
        Segment of way `origin_id` under `point`. None when the way has no
        segments, or (strict=True) when no segment actually contains the point.
        """
        self._require_ready()
        with self._lock:
            result = self.locator.locate(origin_id, point)
        if strict and result is not None and not result.matched:
            return None
        return result

    def split_segment(self, point: Coord, segment: SegmentRecord) -> Tuple[SegmentRecord, SegmentRecord]:
        self._require_ready()
        return self.splitter.split(point, segment)

    def insert_split(self, edge1: SegmentRecord, edge2: SegmentRecord,
                     parent: SegmentRecord) -> Tuple[SegmentRecord, SegmentRecord]:
        """
        Add both halves of a split to the graph. Lengths are shares of the
        parent length, proportional to each half's planar geometry length.
        Returns the records as stored.
        """
        self._require_ready()
        coords1, coords2 = decode(edge1.geometry), decode(edge2.geometry)
        l1, l2 = planar_length(coords1), planar_length(coords2)
        total = l1 + l2
        share = l1 / total if total > 0 else 0.5
        edge1 = edge1.with_length(parent.length * share)
        edge2 = edge2.with_length(parent.length - edge1.length)

        # the shared vertex, in the dataset CRS like every node coordinate
        split_point = coords2[0]
        with self._lock:
            self.graph.add_node(edge1.target, split_point)
            for edge in (edge1, edge2):
                self.graph.add_segment(edge.source, edge.target, edge.length, edge.gid)
                self.index.put(edge)
        logger.info("Inserted split of segment %s at %s", parent.gid, tuple(split_point))
        return edge1, edge2

    def route_length(self, route) -> float:
        self._require_ready()
        with self._lock:
            return self.assembler.length(route)

    def route_geometry(self, route) -> list:
        self._require_ready()
        with self._lock:
            return self.assembler.display_geometry(route)

    def route_summary(self, start, stop) -> dict:
        route = self.find_path(start, stop)
        return {
            "segments": route,
            "length": self.route_length(route),
            "geometry": self.route_geojson(route),
        }

    def route_geojson(self, route) -> dict:
        self._require_ready()
        with self._lock:
            return self.assembler.to_geojson(route)

    def segment(self, gid) -> SegmentRecord:
        self._require_ready()
        seg = self.index.get(gid)
        if seg is None:
            raise UnknownSegmentError(gid)
        return seg

    def node_coordinate(self, node) -> Optional[Coord]:
        self._require_ready()
        return self.graph.coordinate(node)

    def is_routable(self, origin_id: int) -> bool:
        self._require_ready()
        return self.index.is_routable(origin_id)

    def stats(self) -> dict:
        return {
            "ready": self.ready,
            "error": self.load_error,
            "nodes": self.graph.number_of_nodes(),
            "edges": self.graph.number_of_edges(),
            "segments": len(self.index),
        }
