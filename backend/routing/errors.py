# backend/routing/errors.py
"""
Exceptions raised by the routing core.

Algorithmic non-results (no path, no candidate segment) are plain return
values; these exceptions cover bad input and calls made too early.
"""


class RoutingError(Exception):
    """Base class for routing failures."""


class DatasetError(RoutingError):
    """A dataset record could not be read or coerced."""


class GeometryDecodeError(RoutingError, ValueError):
    """Geometry text could not be decoded (or coordinates encoded)."""


class GraphNotReadyError(RoutingError):
    """A query was issued before the graph build completed."""


class UnknownSegmentError(RoutingError, KeyError):
    """A segment id is not present in the edge index."""

    def __init__(self, gid):
        super().__init__(gid)
        self.gid = gid

    def __str__(self):
        return f"Unknown segment: {self.gid!r}"


class PointNotOnSegmentError(RoutingError, ValueError):
    """The split point does not lie on any piece of the segment geometry."""
