"""Cell - A single grid position addressed by row and column."""

from dataclasses import dataclass
from numbers import Integral


@dataclass(frozen=True, order=True)
class Cell:
    """A cell in a raster grid.

    Row 0 is the top (north) row, column 0 the left (west) column.

    Attributes:
        row: Row index
        col: Column index
    """

    row: int
    col: int

    @classmethod
    def coerce(cls, value: "Cell | tuple[int, int]") -> "Cell":
        """Accept either a Cell or a (row, col) tuple."""
        if isinstance(value, Cell):
            return value
        row, col = value
        if not all(isinstance(v, Integral) and not isinstance(v, bool) for v in (row, col)):
            raise ValueError(f"Cell indices must be integers, got ({row!r}, {col!r})")
        return cls(row=int(row), col=int(col))

    @classmethod
    def from_index(cls, index: int, n_cols: int) -> "Cell":
        """Build a cell from its flat (row-major) index."""
        return cls(row=int(index) // n_cols, col=int(index) % n_cols)

    def to_index(self, n_cols: int) -> int:
        """Flat (row-major) index of this cell."""
        return self.row * n_cols + self.col

    def __repr__(self) -> str:
        return f"Cell(row={self.row}, col={self.col})"
