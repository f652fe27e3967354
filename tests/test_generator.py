"""Tests for streamline placement runs."""

import numpy as np
import pytest

from plotflow.field.forces import FormulaForce, NoiseForce
from plotflow.field.geometry import Bounds
from plotflow.streamlines.config import FieldConfig, LineConfig
from plotflow.streamlines.generator import (
    CancelToken,
    RunState,
    StreamlineGenerator,
    generate_streamlines,
)
from plotflow.streamlines.metrics import close_points, min_separation
from plotflow.streamlines.palette import ColorPalette
from plotflow.streamlines.tracer import LOOKAHEAD_STEPS, LineParams


def assert_same_streamlines(a, b):
    assert len(a) == len(b)
    for x, y in zip(a, b):
        np.testing.assert_array_equal(x.points, y.points)
        assert x.color == y.color


@pytest.fixture(scope="module")
def scenario_a():
    """Noise field on an 800x600 canvas with seed 42, generated twice."""
    field_config = FieldConfig(
        forces=[NoiseForce(id="noise", weight=1.0, scale=200.0, complexity=1.5, octaves=1)],
        bounds=Bounds(0, 0, 800, 600),
        seed=42,
    )
    line_config = LineConfig(
        line_params=LineParams(d_sep=8, d_test=4, step_size=2, max_steps=800, min_length=10),
        margin=40.0,
    )
    first = generate_streamlines(field_config, line_config)
    second = generate_streamlines(field_config, line_config)
    return line_config, first, second


class TestScenarioA:
    """Test a full run with a single noise force."""

    def test_produces_streamlines(self, scenario_a):
        _, first, _ = scenario_a
        assert len(first) > 0

    def test_repeatable(self, scenario_a):
        _, first, second = scenario_a
        assert_same_streamlines(first, second)

    def test_length_floor(self, scenario_a):
        line_config, first, _ = scenario_a
        assert all(len(s) >= line_config.line_params.min_length for s in first)

    def test_inside_drawing_bounds(self, scenario_a):
        _, first, _ = scenario_a
        points = np.vstack([s.points for s in first])
        assert points[:, 0].min() >= 40.0
        assert points[:, 0].max() <= 760.0
        assert points[:, 1].min() >= 40.0
        assert points[:, 1].max() <= 560.0

    def test_points_are_float_arrays(self, scenario_a):
        _, first, _ = scenario_a
        assert first[0].points.dtype == float
        assert first[0].points.shape[1] == 2
        assert first[0].color == "#1a1a1a"


class TestEmptyRuns:
    """Test degenerate configurations."""

    def test_no_forces(self, canvas, line_config):
        assert generate_streamlines(FieldConfig(forces=[], bounds=canvas), line_config) == []

    def test_all_forces_disabled(self, canvas, line_config):
        config = FieldConfig(forces=[NoiseForce(id="n", enabled=False)], bounds=canvas)
        generator = StreamlineGenerator(line_config, canvas, seed=1)
        run = generator.start(config.build_field())
        assert list(run) == []
        assert run.state is RunState.DONE
        assert run.stats.reason == "empty"

    def test_margin_swallows_canvas(self, small_field_config, line_params):
        line_config = LineConfig(line_params=line_params, margin=120.0)
        generator = StreamlineGenerator(line_config, small_field_config.bounds, seed=1)
        run = generator.start(small_field_config.build_field())
        assert run.step() is None
        assert run.stats.reason == "empty"
        assert run.max_iterations == 0

    def test_negative_margin_rejected(self, line_params):
        with pytest.raises(ValueError):
            LineConfig(line_params=line_params, margin=-1)


class TestGenerationRun:
    """Test the resumable run."""

    def test_step_by_step(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        run = generator.start(small_field_config.build_field())
        assert run.state is RunState.SEEDING
        streamline = run.step()
        assert streamline is not None
        assert run.state is RunState.TRACING
        assert run.stats.generated == 1

    def test_terminates_within_budget(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        run = generator.start(small_field_config.build_field())
        streamlines = list(run)
        assert run.done
        assert run.stats.generated == len(streamlines)
        assert run.stats.iterations <= run.max_iterations
        assert run.stats.reason in ("exhausted", "budget")
        assert run.stats.gap_fill_attempts <= 3

    def test_batches(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        run = generator.start(small_field_config.build_field())
        assert len(run.next_batch(3)) == 3
        assert run.stats.generated == 3

    def test_initial_seeds_start_at_center(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        run = generator.start(small_field_config.build_field())
        seeds = run.initial_seeds()
        assert seeds[0] == generator.drawing_bounds.center
        assert all(generator.drawing_bounds.contains(*seed) for seed in seeds)


class TestDrivingModes:
    """Test that synchronous and progressive generation agree."""

    @pytest.fixture
    def palette_config(self, line_params):
        palette = ColorPalette(mode="palette", palette_selection="random")
        return LineConfig(line_params=line_params, margin=40.0, palette=palette)

    def test_progressive_matches_sync(self, small_field_config, palette_config):
        generator = StreamlineGenerator(palette_config, small_field_config.bounds, small_field_config.seed)
        sync = generator.generate(small_field_config.build_field())
        progressive = list(generator.generate_progressive(small_field_config.build_field(), batch_size=4))
        assert len(sync) > 4
        assert_same_streamlines(sync, progressive)

    def test_batch_size_does_not_matter(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        one = list(generator.generate_progressive(small_field_config.build_field(), batch_size=1))
        many = list(generator.generate_progressive(small_field_config.build_field(), batch_size=50))
        assert_same_streamlines(one, many)

    def test_on_batch_called_between_batches(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        counts = []
        streamlines = list(generator.generate_progressive(
            small_field_config.build_field(),
            batch_size=5,
            on_batch=lambda run: counts.append(run.stats.generated),
        ))
        assert counts
        assert all(count % 5 == 0 for count in counts)
        assert counts[-1] <= len(streamlines)

    def test_cancel(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        token = CancelToken()
        runs = []

        def on_batch(run):
            runs.append(run)
            token.cancel()

        streamlines = list(generator.generate_progressive(
            small_field_config.build_field(), batch_size=2, cancel=token, on_batch=on_batch
        ))
        assert len(streamlines) == 2
        run = runs[0]
        assert run.stats.reason == "cancelled"
        assert len(run.grid) == 0
        assert len(run.queue) == 0

    def test_invalid_batch_size(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        with pytest.raises(ValueError):
            list(generator.generate_progressive(small_field_config.build_field(), batch_size=0))


class TestSpacing:
    """Test separation of accepted lines."""

    def test_parallel_lines_keep_their_distance(self, small_canvas, line_config):
        config = FieldConfig(forces=[FormulaForce(id="flat", expression="0")], bounds=small_canvas, seed=3)
        generator = StreamlineGenerator(line_config, small_canvas, config.seed)
        run = generator.start(config.build_field())
        streamlines = list(run)
        assert len(streamlines) > 1
        d_test = line_config.line_params.d_test
        assert min_separation(streamlines, within=d_test * 0.999) == float("inf")

    def test_rejected_start_is_not_reseeded(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        run = generator.start(small_field_config.build_field())
        point = generator.drawing_bounds.center
        run.tracer.params = LineParams(max_steps=2)
        assert run.tracer.trace(point, run.field) is None
        assert run.grid.is_occupied(*point)

    def test_scenario_a_close_points_come_from_lookahead(self, scenario_a):
        """Points nearer than d_test to an earlier line only occur in
        lookahead stretches, which are never longer than LOOKAHEAD_STEPS."""
        line_config, first, _ = scenario_a
        d_test = line_config.line_params.d_test
        for mask in close_points(first, within=d_test * 0.999):
            run = 0
            for close in mask:
                run = run + 1 if close else 0
                assert run <= LOOKAHEAD_STEPS

    def test_without_lookahead_lines_never_come_closer_than_d_test(self, small_field_config):
        params = LineParams(d_sep=8, d_test=4, step_size=2, max_steps=800, min_length=10, maximize_length=False)
        streamlines = generate_streamlines(small_field_config, LineConfig(line_params=params, margin=20.0))
        assert len(streamlines) > 1
        assert min_separation(streamlines, within=params.d_test * 0.999) == float("inf")

    def test_cancel_clears_separation_index(self, small_field_config, line_config):
        generator = StreamlineGenerator(line_config, small_field_config.bounds, small_field_config.seed)
        run = generator.start(small_field_config.build_field())
        run.next_batch(2)
        assert len(run.tracer.separation) > 0
        run.cancel()
        assert len(run.tracer.separation) == 0


class TestOffsetCanvas:
    """Test canvases whose origin is not at zero."""

    @pytest.fixture
    def offset_config(self, noise_force):
        return FieldConfig(forces=[noise_force], bounds=Bounds(1000, 1000, 300, 200), seed=5)

    def test_lines_fill_the_offset_drawing_area(self, offset_config, line_params):
        line_config = LineConfig(line_params=line_params, margin=20.0)
        streamlines = generate_streamlines(offset_config, line_config)
        assert len(streamlines) > 0
        points = np.vstack([s.points for s in streamlines])
        assert points[:, 0].min() >= 1020.0
        assert points[:, 0].max() <= 1280.0
        assert points[:, 1].min() >= 1020.0
        assert points[:, 1].max() <= 1180.0

    def test_drawing_bounds(self, offset_config, line_config):
        generator = StreamlineGenerator(line_config, offset_config.bounds, offset_config.seed)
        assert generator.drawing_bounds == Bounds(1040, 1040, 220, 120)


class TestFailingFormulas:
    """Test runs with formula forces that cannot be evaluated."""

    @pytest.mark.parametrize("expression", ["2^2000", "x / 0", "sqrt(-1) + y", "9^9^7"])
    def test_run_completes_with_zero_angle(self, small_canvas, line_config, expression):
        config = FieldConfig(forces=[FormulaForce(id="f", expression=expression)], bounds=small_canvas, seed=3)
        field = config.build_field()
        generator = StreamlineGenerator(line_config, small_canvas, config.seed)
        run = generator.start(field)
        streamlines = list(run)
        assert run.stats.reason in ("exhausted", "budget")
        assert len(streamlines) > 0
        assert expression in field.formulas.errors
        # angle 0 everywhere gives horizontal lines
        for streamline in streamlines:
            np.testing.assert_allclose(streamline.points[:, 1], streamline.points[0, 1])

    def test_generate_streamlines_with_huge_power(self, small_canvas):
        config = FieldConfig(forces=[FormulaForce(id="f", expression="2^2000")], bounds=small_canvas, seed=3)
        line_config = LineConfig(line_params=LineParams(min_length=5), margin=10.0)
        assert len(generate_streamlines(config, line_config)) > 0
