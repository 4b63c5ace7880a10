"""Exceptions raised by STRIDE.

Congruence and data-source failures are fatal and surface to the caller.
Degenerate conductance is a warning category: the affected edges are dropped
from the graph and the build continues. Unreachable destinations are
reported per query.
"""

from typing import Sequence


class StrideError(Exception):
    """Base class for all STRIDE errors."""


class InputMismatchError(StrideError, ValueError):
    """Layers handed to the graph builder are not spatially congruent.

    Attributes:
        mismatches: Names of the properties that differ (e.g. "crs", "origin")
    """

    def __init__(self, mismatches: Sequence[str], detail: str = "") -> None:
        self.mismatches = tuple(mismatches)
        message = f"Input grids are not spatially congruent: {', '.join(self.mismatches)} do not match"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class BarrierSourceError(StrideError):
    """Waterbody polygons could not be obtained for the barrier raster."""


class ConductanceDegenerateError(StrideError, UserWarning):
    """The speed model produced non-positive conductance away from a barrier.

    Emitted through ``warnings.warn``; never raised by the graph builder.
    """


class NoPathError(StrideError):
    """Origin and destination are not connected in the transition graph.

    Attributes:
        origin: Origin cell
        destination: Destination cell
    """

    def __init__(self, origin: object, destination: object) -> None:
        self.origin = origin
        self.destination = destination
        super().__init__(f"No path from {origin} to {destination}: cells are separated by barriers")


class GraphNotBuiltError(StrideError, RuntimeError):
    """A query was made against a graph that has not been built."""
