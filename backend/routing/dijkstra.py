# backend/routing/dijkstra.py
"""
Dijkstra search over a GraphStore.

The result is the ordered list of segment ids (gids) from start to stop.
An unreachable stop, or start == stop, gives an empty list.

Tie-break: among frontier nodes at equal distance the one with the lowest
node_order() is settled first (integer nodes ascending, then virtual split
nodes). The heap pops exactly that node, so results are reproducible.
"""

import heapq
import logging
from typing import Dict, Hashable, List, Optional, Tuple

from .graph import GraphStore, node_order

logger = logging.getLogger(__name__)


class ShortestPathFinder:
    def __init__(self, graph: GraphStore):
        self.graph = graph

    def find(self, start, stop) -> List[Hashable]:
        return self.find_with_cost(start, stop)[0]

    def find_with_cost(self, start, stop) -> Tuple[List[Hashable], Optional[float]]:
        """Return (gids, total weight); ([], None) when stop is unreachable."""
        if start == stop:
            return [], 0.0

        # node -> (distance, predecessor, incoming gid)
        frontier: Dict[Hashable, Tuple[float, Optional[Hashable], Optional[Hashable]]] = {
            start: (0.0, None, None)
        }
        finalized: Dict[Hashable, Tuple[float, Optional[Hashable], Optional[Hashable]]] = {}
        heap = [(0.0, node_order(start), start)]

        while heap:
            dist, _, u = heapq.heappop(heap)
            if u in finalized or frontier[u][0] < dist:
                continue  # stale heap entry

            for v, data in self.graph.outgoing(u).items():
                if v in finalized:
                    continue
                candidate = dist + data["weight"]
                if v not in frontier or candidate < frontier[v][0]:
                    frontier[v] = (candidate, u, data["gid"])
                    heapq.heappush(heap, (candidate, node_order(v), v))

            finalized[u] = frontier.pop(u)
            if u == stop:
                break
        else:
            logger.debug("No path %s -> %s (%d nodes settled)", start, stop, len(finalized))
            return [], None

        path = []
        node = stop
        while finalized[node][1] is not None:
            _, father, gid = finalized[node]
            path.append(gid)
            node = father
        path.reverse()

        logger.debug("Path %s -> %s: %d segments, %d nodes settled", start, stop, len(path), len(finalized))
        return path, finalized[stop][0]
