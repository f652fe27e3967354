"""Greedy evenly spaced streamline placement.

A run seeds a priority queue (canvas center plus a golden angle spiral),
repeatedly traces from the best remaining seed, claims accepted lines in
an occupancy grid and queues new seeds beside them. When the queue runs
dry the canvas is scanned for open gaps, at most three times.

    SEEDING -> TRACING -> (TRACING | GAP_FILLING) -> DONE

`GenerationRun` is that state machine. `StreamlineGenerator.generate`
drains it in one call, `generate_progressive` hands out batches and
gives control back to the host between them. Both visit seeds in the
same order and produce identical streamlines.
"""
import math
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from operator import attrgetter
from typing import Callable, Deque, Iterator, List, Optional

import numpy as np
import structlog
from tqdm import tqdm

from plotflow.field.geometry import Bounds, Point
from plotflow.field.rng import Mulberry32
from plotflow.streamlines.config import FieldConfig, LineConfig
from plotflow.streamlines.grid import OccupancyGrid
from plotflow.streamlines.palette import LineColorizer
from plotflow.streamlines.tracer import (
    PrioritySeed,
    RawStreamline,
    StreamlineTracer,
    seed_priority,
)

logger = structlog.get_logger()

MAX_GAP_FILL_ATTEMPTS = 3
RESORT_EVERY = 50
BUDGET_FACTOR = 4
GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))


class RunState(Enum):
    SEEDING = "seeding"
    TRACING = "tracing"
    GAP_FILLING = "gap_filling"
    DONE = "done"


@dataclass
class RunStats:
    generated: int = 0
    rejected: int = 0
    iterations: int = 0
    gap_fill_attempts: int = 0
    reason: Optional[str] = None


class CancelToken:
    """Cancellation flag polled by progressive generation between batches."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class GenerationRun:
    """One generation run, advanced explicitly by `step`.

    Owns the occupancy grid, the seed queue and the run RNG. The run object
    is the continuation: call `step` again to resume where it stopped.
    """

    def __init__(self, generator: "StreamlineGenerator", field, stroke_color: str):
        self.field = field
        self.params = generator.line_params
        self.drawing_bounds = generator.drawing_bounds
        self.stroke_color = stroke_color
        self.rng = Mulberry32(generator.seed)
        self.grid = OccupancyGrid(
            generator.bounds, self.drawing_bounds, self.params.d_test, self.params.step_size
        )
        self.tracer = StreamlineTracer(self.params, self.grid)
        self.colorizer = LineColorizer(generator.palette, generator.bounds, self.rng, generator.seed)
        self.queue: Deque[PrioritySeed] = deque()
        self.state = RunState.SEEDING
        self.stats = RunStats()

        if self.drawing_bounds.is_empty:
            self.max_iterations = 0
        else:
            cell_area = self.params.d_sep * self.params.d_sep
            self.max_iterations = math.ceil(self.drawing_bounds.area / cell_area) * BUDGET_FACTOR

    @property
    def done(self) -> bool:
        return self.state is RunState.DONE

    # ---- seeds ----

    def initial_seeds(self) -> List[Point]:
        b = self.drawing_bounds
        cx, cy = b.center
        seeds = [(cx, cy)]
        d_sep = self.params.d_sep
        count = math.floor(math.sqrt(b.area / (d_sep * d_sep * 4)))
        for i in range(1, count + 1):
            r = math.sqrt(i / count) * min(b.width, b.height) / 2 * 0.9
            theta = i * GOLDEN_ANGLE
            seeds.append((cx + r * math.cos(theta), cy + r * math.sin(theta)))
        return seeds

    def find_gaps(self) -> List[Point]:
        """Jittered coarse scan for points clear of every claimed cell."""
        b = self.drawing_bounds
        step = self.params.d_sep * 2
        gaps = []
        x = b.x + step
        while x < b.x + b.width - step:
            y = b.y + step
            while y < b.y + b.height - step:
                point = (x + (self.rng.next() - 0.5) * step, y + (self.rng.next() - 0.5) * step)
                if not self.grid.is_occupied(*point, radius=2):
                    gaps.append(point)
                y += step
            x += step
        return gaps

    def _queue_points(self, points: List[Point]) -> None:
        for point in points:
            self.queue.append(PrioritySeed(
                point, self.rng.next() * math.pi * 2, seed_priority(point, self.drawing_bounds)
            ))
        self._sort_queue()

    def _sort_queue(self) -> None:
        self.queue = deque(sorted(self.queue, key=attrgetter("priority"), reverse=True))

    # ---- state machine ----

    def _finish(self, reason: str) -> None:
        self.state = RunState.DONE
        self.stats.reason = reason
        logger.info(
            "Streamline generation finished",
            reason=reason,
            generated=self.stats.generated,
            rejected=self.stats.rejected,
            iterations=self.stats.iterations,
            gap_fill_attempts=self.stats.gap_fill_attempts,
        )
        formulas = getattr(self.field, "formulas", None)
        if formulas is None:
            return
        for expression, error in formulas.errors.items():
            logger.warning("Formula force failed, using angle 0", expression=expression, error=error)

    def _start(self) -> None:
        if self.drawing_bounds.is_empty or not self.field.active_forces:
            self._finish("empty")
            return
        logger.info(
            "Streamline generation started",
            drawing_bounds=vars(self.drawing_bounds),
            max_iterations=self.max_iterations,
        )
        self._queue_points(self.initial_seeds())
        self.state = RunState.TRACING

    def _fill_gaps(self) -> None:
        if self.stats.gap_fill_attempts >= MAX_GAP_FILL_ATTEMPTS:
            self._finish("exhausted")
            return
        gaps = self.find_gaps()
        logger.debug("Gap fill pass", attempt=self.stats.gap_fill_attempts + 1, gaps=len(gaps))
        if not gaps:
            self._finish("exhausted")
            return
        self._queue_points(gaps)
        self.stats.gap_fill_attempts += 1
        self.state = RunState.TRACING

    def _trace_next(self) -> Optional[RawStreamline]:
        if self.stats.iterations >= self.max_iterations:
            self._finish("budget")
            return None
        if not self.queue:
            self.state = RunState.GAP_FILLING
            return None

        self.stats.iterations += 1
        seed = self.queue.popleft()
        if self.grid.is_occupied(*seed.point):
            return None

        result = self.tracer.trace(seed.point, self.field)
        if result is None:
            self.stats.rejected += 1
            return None

        self.stats.generated += 1
        color = self.colorizer.color(result.center, self.stroke_color)
        if result.seeds:
            self.rng.shuffle(result.seeds)
            self.queue.extend(result.seeds)
            if self.stats.generated % RESORT_EVERY == 0:
                self._sort_queue()
        return RawStreamline(np.array(result.points, dtype=float), color)

    def step(self) -> Optional[RawStreamline]:
        """Advance until one streamline is accepted; None once the run is done."""
        while self.state is not RunState.DONE:
            if self.state is RunState.SEEDING:
                self._start()
            elif self.state is RunState.GAP_FILLING:
                self._fill_gaps()
            else:
                streamline = self._trace_next()
                if streamline is not None:
                    return streamline
        return None

    def next_batch(self, size: int) -> List[RawStreamline]:
        batch = []
        while len(batch) < size:
            streamline = self.step()
            if streamline is None:
                break
            batch.append(streamline)
        return batch

    def cancel(self) -> None:
        """Stop the run and drop its grid and queue."""
        if self.state is not RunState.DONE:
            self.grid.clear()
            self.tracer.separation.clear()
            self.queue.clear()
            self._finish("cancelled")

    def __iter__(self) -> Iterator[RawStreamline]:
        while True:
            streamline = self.step()
            if streamline is None:
                return
            yield streamline


class StreamlineGenerator:
    """Places streamlines for one canvas and line configuration.

    Parameters
    ----------
    config : LineConfig
    bounds : Bounds
        Full canvas; the drawing area is `bounds` inset by the margin.
    seed : int
        Seeds the run RNG (seed order, gap jitter, palette picks).
    """

    def __init__(self, config: LineConfig, bounds: Bounds, seed: int):
        self.config = config
        self.line_params = config.line_params
        self.palette = config.palette
        self.bounds = bounds
        self.seed = seed
        self.drawing_bounds = bounds.inset(config.margin)

    def start(self, field, stroke_color: Optional[str] = None) -> GenerationRun:
        return GenerationRun(self, field, stroke_color or self.config.stroke_color)

    def generate(self, field, stroke_color: Optional[str] = None, progress: bool = False) -> List[RawStreamline]:
        run = self.start(field, stroke_color)
        streamlines = []
        with tqdm(total=run.max_iterations, desc="Tracing", unit="seed", disable=not progress) as bar:
            while True:
                before = run.stats.iterations
                streamline = run.step()
                bar.update(run.stats.iterations - before)
                if streamline is None:
                    break
                streamlines.append(streamline)
        return streamlines

    def generate_progressive(
        self,
        field,
        stroke_color: Optional[str] = None,
        batch_size: int = 5,
        delay: float = 0.0,
        cancel: Optional[CancelToken] = None,
        on_batch: Optional[Callable[[GenerationRun], None]] = None,
    ) -> Iterator[RawStreamline]:
        """Yield streamlines batch by batch.

        After every `batch_size` streamlines the host gets control: the
        generator sleeps `delay` seconds, calls `on_batch(run)` and polls
        `cancel`. A cancelled run yields nothing more; streamlines already
        handed out stay valid.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        run = self.start(field, stroke_color)
        while True:
            batch = run.next_batch(batch_size)
            yield from batch
            if run.done:
                return
            if delay > 0:
                time.sleep(delay)
            if on_batch is not None:
                on_batch(run)
            if cancel is not None and cancel.cancelled:
                run.cancel()
                return


def generate_streamlines(field_config: FieldConfig, line_config: LineConfig, progress: bool = False) -> List[RawStreamline]:
    field = field_config.build_field()
    generator = StreamlineGenerator(line_config, field_config.bounds, field_config.seed)
    return generator.generate(field, progress=progress)
