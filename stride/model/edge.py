"""Edge - A directed step between two neighbouring cells."""

from dataclasses import dataclass

from stride.model.cell import Cell


@dataclass(frozen=True)
class Edge:
    """A traversable directed edge of the transition graph.

    Attributes:
        source: Cell the step starts from
        target: Cell the step ends in
        distance: Horizontal distance between cell centres (ground units)
        slope_deg: Signed slope in the direction of travel (positive uphill)
        penalty: Vegetation/roughness damping divisor over the endpoint means (1 = none)
        conductance: Walking speed along the edge (ground units per second)
    """

    source: Cell
    target: Cell
    distance: float
    slope_deg: float
    penalty: float
    conductance: float

    @property
    def travel_time(self) -> float:
        """Seconds needed to traverse the edge."""
        return self.distance / self.conductance

    def __repr__(self) -> str:
        return (
            f"Edge({self.source} -> {self.target}, d={self.distance:.2f}, "
            f"slope={self.slope_deg:.1f}deg, penalty={self.penalty:.3f}, v={self.conductance:.3f})"
        )
