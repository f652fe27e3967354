import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from plotflow.field.geometry import Bounds, Point, distance
from plotflow.streamlines.grid import OccupancyGrid, SeparationIndex

# blocked steps a line may run through looking for open space behind an obstacle
LOOKAHEAD_STEPS = 8
# consecutive sharp turns after which a direction counts as caught in a vortex
SPIN_LIMIT = 10
SPIN_ANGLE = math.pi / 4


@dataclass
class LineParams:
    """Streamline spacing and length settings.

    Parameters
    ----------
    d_sep : float
        Spacing of seed points next to an accepted line (line density).
    d_test : float
        Minimum distance between lines; the occupancy cell size derives
        from it.
    step_size : float
        Integration step length.
    max_steps : int
        Step limit per direction.
    min_length : int
        Fewer points than this and the line is rejected.
    stroke_width : float
        Passed through to renderers.
    maximize_length : bool
        Let lines look ahead through thin obstacles.
    """

    d_sep: float = 8.0
    d_test: float = 4.0
    step_size: float = 2.0
    max_steps: int = 800
    min_length: int = 10
    stroke_width: float = 2.0
    maximize_length: bool = True

    def __post_init__(self):
        for name in ("d_sep", "d_test", "step_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_steps < 0:
            raise ValueError(f"max_steps must not be negative, got {self.max_steps}")


@dataclass(frozen=True)
class RawStreamline:
    points: np.ndarray
    color: str

    def __len__(self):
        return len(self.points)


@dataclass
class PrioritySeed:
    point: Point
    normal_angle: float
    priority: float


def seed_priority(point: Point, drawing_bounds: Bounds) -> float:
    """Score a seed; points far from the edges and near the center go first."""
    b = drawing_bounds
    cx, cy = b.center
    dx = (point[0] - cx) / (b.width / 2)
    dy = (point[1] - cy) / (b.height / 2)
    dist_from_center = math.sqrt(dx * dx + dy * dy)

    edge_dist = min(
        point[0] - b.x,
        b.x + b.width - point[0],
        point[1] - b.y,
        b.y + b.height - point[1],
    )
    normalized_edge_dist = edge_dist / min(b.width, b.height)
    return normalized_edge_dist * 0.7 + (1 - dist_from_center) * 0.3


@dataclass
class TraceResult:
    points: List[Point]
    seeds: List[PrioritySeed]

    @property
    def center(self) -> Point:
        return self.points[len(self.points) // 2]


class StreamlineTracer:
    """Traces single streamlines against a shared occupancy grid.

    A step is blocked when its own grid cell is claimed or when it comes
    closer than `d_test` to a point of an accepted streamline. Only the
    lookahead lets a line through such a stretch.
    """

    def __init__(self, params: LineParams, grid: OccupancyGrid):
        self.params = params
        self.grid = grid
        self.separation = SeparationIndex(params.d_test)
        self.drawing_bounds = grid.drawing_bounds

    def is_blocked(self, x: float, y: float) -> bool:
        return self.grid.is_occupied_exact(x, y) or self.separation.too_close(x, y)

    def trace_direction(self, start: Point, field, reverse: bool) -> List[Point]:
        """Walk from `start` along the field (or against it) until stopped.

        Stops on leaving the drawing bounds, on spinning in place, at
        `max_steps`, or when a blocked stretch is longer than the lookahead.
        A blocked stretch followed by open space is kept.
        """
        step_size = self.params.step_size
        lookahead = LOOKAHEAD_STEPS if self.params.maximize_length else 0

        points: List[Point] = []
        blocked: List[Point] = []
        x, y = start
        stuck = 0
        last_direction = 0.0

        for i in range(self.params.max_steps):
            angle = field.angle_at(x, y)
            direction = angle + math.pi if reverse else angle

            if i > 0:
                if abs(direction - last_direction) > SPIN_ANGLE:
                    stuck += 1
                    if stuck > SPIN_LIMIT:
                        break
                else:
                    stuck = max(0, stuck - 1)
            last_direction = direction

            nx = x + math.cos(direction) * step_size
            ny = y + math.sin(direction) * step_size

            if not self.drawing_bounds.contains(nx, ny):
                break

            if not self.is_blocked(nx, ny):
                if blocked:
                    points.extend(blocked)
                    blocked = []
                points.append((nx, ny))
            else:
                blocked.append((nx, ny))
                if len(blocked) > lookahead:
                    break
            x, y = nx, ny

        return points

    def trace(self, start: Point, field) -> Optional[TraceResult]:
        """Trace both ways from `start`, claim the line and spawn side seeds.

        Returns None for a line shorter than `min_length` or a start closer
        than `d_test` to an accepted line; the start point is still marked so
        the same spot is not seeded again.
        """
        if self.separation.too_close(*start):
            self.grid.mark(*start)
            return None

        forward = self.trace_direction(start, field, reverse=False)
        backward = self.trace_direction(start, field, reverse=True)
        points = backward[::-1] + [start] + forward

        if len(points) < self.params.min_length:
            self.grid.mark(*start)
            return None

        self.grid.mark_points(points)
        self.separation.add_points(points)
        return TraceResult(points, self._side_seeds(points, field))

    def _side_seeds(self, points: List[Point], field) -> List[PrioritySeed]:
        d_sep = self.params.d_sep
        seeds = []
        accumulated = 0.0

        for i in range(1, len(points)):
            accumulated += distance(points[i], points[i - 1])
            if accumulated < d_sep:
                continue
            accumulated = 0.0

            px, py = points[i]
            normal = field.angle_at(px, py) + math.pi / 2
            for side_angle in (normal, normal + math.pi):
                seed = (px + math.cos(side_angle) * d_sep, py + math.sin(side_angle) * d_sep)
                if self.drawing_bounds.contains(*seed):
                    seeds.append(PrioritySeed(seed, normal, seed_priority(seed, self.drawing_bounds)))

        return seeds
