import math
from collections import defaultdict
from typing import Dict, List, Sequence, Set, Tuple

from plotflow.field.geometry import Bounds, Point


class OccupancyGrid:
    """Spatial hash of the cells already claimed by traced streamlines.

    Cells are `d_test * cell_fraction` wide, finer than the separation
    distance so neighbouring lines can run close without false collisions.
    Cells are only ever added during a run.

    Parameters
    ----------
    bounds : Bounds
        Full canvas covered by the grid.
    drawing_bounds : Bounds
        Traceable area; points outside it always count as occupied.
    d_test : float
        Separation distance the cell size derives from.
    step_size : float
        Integration step, sets how sparsely a whole line is marked.
    cell_fraction : float
        Cell size as a fraction of d_test.
    """

    def __init__(
        self,
        bounds: Bounds,
        drawing_bounds: Bounds,
        d_test: float,
        step_size: float,
        cell_fraction: float = 1 / 3,
    ):
        self.bounds = bounds
        self.drawing_bounds = drawing_bounds
        self.cell_size = max(1.0, d_test * cell_fraction)
        self.cols = max(0, math.ceil(bounds.width / self.cell_size))
        self.rows = max(0, math.ceil(bounds.height / self.cell_size))
        # mark every Nth traced point only, so one line does not block its surroundings
        self.mark_frequency = max(1, int(self.cell_size // step_size))
        self.occupied: Set[int] = set()

    def cell_coords(self, x: float, y: float) -> Tuple[int, int]:
        return (
            math.floor((x - self.bounds.x) / self.cell_size),
            math.floor((y - self.bounds.y) / self.cell_size),
        )

    def cell_index(self, col: int, row: int) -> int:
        return col + row * self.cols

    def _in_grid(self, col: int, row: int) -> bool:
        return 0 <= col < self.cols and 0 <= row < self.rows

    def is_occupied(self, x: float, y: float, radius: int = 1) -> bool:
        """True if any cell within `radius` cells of the point is claimed.

        Used to validate new seeds; a point outside the drawing bounds is
        always occupied.
        """
        if not self.drawing_bounds.contains(x, y):
            return True
        col, row = self.cell_coords(x, y)
        for i in range(-radius, radius + 1):
            for j in range(-radius, radius + 1):
                c = col + i
                r = row + j
                if self._in_grid(c, r) and self.cell_index(c, r) in self.occupied:
                    return True
        return False

    def is_occupied_exact(self, x: float, y: float) -> bool:
        """Check only the point's own cell, for lines already being traced."""
        if not self.drawing_bounds.contains(x, y):
            return True
        col, row = self.cell_coords(x, y)
        return self._in_grid(col, row) and self.cell_index(col, row) in self.occupied

    def mark(self, x: float, y: float) -> None:
        col, row = self.cell_coords(x, y)
        if self._in_grid(col, row):
            self.occupied.add(self.cell_index(col, row))

    def mark_points(self, points: Sequence[Point]) -> None:
        """Mark every `mark_frequency`-th point and always the last one."""
        for i in range(0, len(points), self.mark_frequency):
            self.mark(*points[i])
        if points:
            self.mark(*points[-1])

    def clear(self) -> None:
        self.occupied.clear()

    def __len__(self):
        return len(self.occupied)


class SeparationIndex:
    """Every point of the accepted streamlines, bucketed by `d_test`.

    The occupancy grid is coarse and sparsely marked; this index answers the
    exact question "is there an accepted point closer than `d_test`?". A
    point within `d_test` always sits in one of the 3x3 neighbouring buckets.
    """

    def __init__(self, d_test: float):
        self.d_test = d_test
        self._limit = d_test * d_test
        self.buckets: Dict[Tuple[int, int], List[Point]] = defaultdict(list)
        self._count = 0

    def _key(self, x: float, y: float) -> Tuple[int, int]:
        return math.floor(x / self.d_test), math.floor(y / self.d_test)

    def add_points(self, points: Sequence[Point]) -> None:
        for x, y in points:
            self.buckets[self._key(x, y)].append((x, y))
        self._count += len(points)

    def too_close(self, x: float, y: float) -> bool:
        col, row = self._key(x, y)
        for i in (-1, 0, 1):
            for j in (-1, 0, 1):
                bucket = self.buckets.get((col + i, row + j))
                if not bucket:
                    continue
                for px, py in bucket:
                    dx = px - x
                    dy = py - y
                    if dx * dx + dy * dy < self._limit:
                        return True
        return False

    def clear(self) -> None:
        self.buckets.clear()
        self._count = 0

    def __len__(self):
        return self._count
