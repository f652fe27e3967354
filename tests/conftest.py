"""Shared fixtures for the plotflow tests."""

import pytest

from plotflow.field.forces import FormulaForce, NoiseForce
from plotflow.field.geometry import Bounds
from plotflow.streamlines.config import FieldConfig, LineConfig
from plotflow.streamlines.tracer import LineParams


@pytest.fixture
def canvas():
    return Bounds(0, 0, 800, 600)


@pytest.fixture
def small_canvas():
    return Bounds(0, 0, 240, 180)


@pytest.fixture
def noise_force():
    return NoiseForce(id="noise", weight=1.0, scale=200.0, complexity=1.5, octaves=1)


@pytest.fixture
def horizontal_force():
    """Formula force pointing along +x everywhere."""
    return FormulaForce(id="flat", expression="0")


@pytest.fixture
def line_params():
    return LineParams(d_sep=8, d_test=4, step_size=2, max_steps=800, min_length=10)


@pytest.fixture
def noise_field_config(noise_force, canvas):
    return FieldConfig(forces=[noise_force], bounds=canvas, seed=42)


@pytest.fixture
def small_field_config(noise_force, small_canvas):
    return FieldConfig(forces=[noise_force], bounds=small_canvas, seed=7)


@pytest.fixture
def line_config(line_params):
    return LineConfig(line_params=line_params, margin=40.0)
