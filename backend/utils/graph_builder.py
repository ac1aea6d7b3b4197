import logging
from typing import Iterable, Mapping, Optional, Tuple

from routing.errors import DatasetError
from routing.graph import EdgeIndex, GraphStore, SegmentRecord

logger = logging.getLogger(__name__)

INT_FIELDS = ("source", "target", "gid", "osm_id")
FLOAT_FIELDS = ("length", "x1", "y1", "x2", "y2")


def parse_record(field: Mapping, position: int = 0) -> dict:
    """Coerce one raw dataset row (pgRouting export layout) to typed values."""
    out = {}
    try:
        for name in INT_FIELDS:
            out[name] = int(field[name])
        for name in FLOAT_FIELDS:
            out[name] = float(field[name])
        out["geom"] = field["geom"]
    except KeyError as e:
        raise DatasetError(f"Record {position}: missing field {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise DatasetError(f"Record {position}: {e}") from e
    return out


def build_road_graph(
    records: Iterable[Mapping],
    graph: Optional[GraphStore] = None,
    index: Optional[EdgeIndex] = None,
) -> Tuple[GraphStore, EdgeIndex]:
    """
    Fill a GraphStore and EdgeIndex from dataset records.
    Nodes = segment endpoints (first coordinate seen wins)
    Edges = both directions of every segment, weight = length
    """
    graph = graph if graph is not None else GraphStore()
    index = index if index is not None else EdgeIndex()

    count = 0
    for position, raw in enumerate(records):
        field = parse_record(raw, position)

        source, target = field["source"], field["target"]
        graph.add_node(source, (field["x1"], field["y1"]))
        graph.add_node(target, (field["x2"], field["y2"]))

        # The graph is directed, the roads are not
        graph.add_segment(source, target, field["length"], field["gid"])

        replaced = index.put(SegmentRecord(
            gid=field["gid"],
            source=source,
            target=target,
            geometry=field["geom"],
            origin_id=field["osm_id"],
            length=field["length"],
        ))
        if replaced is not None:
            logger.warning("Duplicate gid %s: record %d replaces the earlier entry", field["gid"], position)
        count += 1

    logger.info(
        "Graph created: %d records, %d nodes, %d edges, %d segments",
        count, graph.number_of_nodes(), graph.number_of_edges(), len(index),
    )
    return graph, index
