"""Tests for force variants and their evaluators."""

import math

import pytest

from plotflow.field.forces import (
    CircularForce,
    CircularMode,
    FormulaForce,
    NoiseForce,
    Range,
    default_circular_force,
    default_formula_force,
    default_noise_force,
    evaluate_circular_force,
    force_from_dict,
    resolve,
)
from plotflow.field.geometry import Bounds
from plotflow.field.rng import Mulberry32


class TestRange:
    """Test min/max values."""

    def test_resolve_scalar_does_not_draw(self):
        rng = Mulberry32(1)
        assert resolve(3.0, rng) == 3.0
        assert rng.calls == 0

    def test_resolve_range_draws_once(self):
        rng = Mulberry32(1)
        value = resolve(Range(2.0, 4.0), rng)
        assert 2.0 <= value < 4.0
        assert rng.calls == 1

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            Range(5.0, 1.0)


class TestForceDicts:
    """Test the tagged dict form of forces."""

    def test_round_trip_keeps_variant(self):
        force = CircularForce(id="c", weight=Range(0.2, 0.8), mode="spiral", frequency=3.0)
        restored = force_from_dict(force.to_dict())
        assert isinstance(restored, CircularForce)
        assert restored == force

    def test_nested_params(self):
        force = force_from_dict({
            "type": "noise",
            "id": "n",
            "weight": 0.5,
            "params": {"scale": {"min": 100, "max": 300}, "octaves": 3},
        })
        assert isinstance(force, NoiseForce)
        assert force.scale == Range(100.0, 300.0)
        assert force.octaves == 3

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            force_from_dict({"type": "magnetic", "id": "m"})

    def test_missing_type_raises(self):
        with pytest.raises(ValueError, match="type"):
            force_from_dict({"id": "m"})

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            CircularForce(id="c", mode="zigzag")

    def test_defaults(self):
        noise = default_noise_force()
        assert (noise.weight, noise.scale, noise.complexity, noise.octaves) == (1.0, 200.0, 1.5, 1)
        circular = default_circular_force()
        assert circular.weight == 0.0
        assert circular.mode is CircularMode.TANGENT
        assert circular.frequency == 2.0
        formula = default_formula_force()
        assert formula.weight == 0.0
        assert formula.expression == "sin(x/scale) * cos(y/scale)"

    def test_type_tag(self):
        assert FormulaForce(id="f").to_dict()["type"] == "formula"


class TestCircularForce:
    """Test the three circular modes."""

    bounds = Bounds(0, 0, 800, 600)

    def _angle(self, mode, x, y, frequency=1.0):
        force = CircularForce(id="c", mode=mode, frequency=frequency)
        return evaluate_circular_force(x, y, force, self.bounds, Mulberry32(0))

    def test_tangent(self):
        dist = 100.0
        angle = self._angle(CircularMode.TANGENT, 500.0, 300.0, frequency=2.0)
        assert angle == pytest.approx(0 + math.pi / 2 + math.sin(dist / 50 * 2.0) * 0.5)

    def test_radial(self):
        angle = self._angle(CircularMode.RADIAL, 400.0, 360.0)
        assert angle == pytest.approx(math.pi / 2 + math.cos(60.0 / 30) * math.pi)

    def test_spiral(self):
        angle = self._angle(CircularMode.SPIRAL, 300.0, 300.0, frequency=1.5)
        assert angle == pytest.approx(math.pi + math.pi / 2 + 100.0 / 100 * 1.5)

    def test_off_center(self):
        force = CircularForce(id="c", center_x=0.25, center_y=0.5, mode=CircularMode.RADIAL, frequency=1.0)
        angle = evaluate_circular_force(200.0, 330.0, force, self.bounds, Mulberry32(0))
        assert angle == pytest.approx(math.pi / 2 + math.cos(1.0) * math.pi)
