"""Tests for the mulberry32 generator."""

import pytest

from plotflow.field.rng import Mulberry32, mulberry32


class TestMulberry32:
    """Test the seeded random stream."""

    def test_pure_step_matches_generator(self):
        """The pure step function and the generator object share one stream."""
        rng = Mulberry32(1234)
        state = 1234
        for _ in range(20):
            value, state = mulberry32(state)
            assert rng.next() == value
        assert rng.state == state

    def test_known_values(self):
        """Seed 42 reproduces the 32 bit reference stream exactly."""
        assert Mulberry32(42).sample(3) == [0.6011037519201636, 0.44829055899754167, 0.8524657934904099]

    def test_known_values_pure_step(self):
        value, state = mulberry32(42)
        assert value == 0.6011037519201636
        assert state == (42 + 0x6D2B79F5) & 0xFFFFFFFF

    def test_same_seed_same_stream(self):
        a = Mulberry32(42)
        b = Mulberry32(42)
        assert a.sample(50) == b.sample(50)

    def test_different_seeds_differ(self):
        assert Mulberry32(1).sample(10) != Mulberry32(2).sample(10)

    def test_values_in_unit_interval(self):
        rng = Mulberry32(99)
        for value in rng.sample(1000):
            assert 0.0 <= value < 1.0

    def test_seed_reduced_to_32_bits(self):
        assert Mulberry32(2 ** 32 + 5).sample(5) == Mulberry32(5).sample(5)
        assert Mulberry32(-1).state == 0xFFFFFFFF

    def test_call_counter(self):
        rng = Mulberry32(3)
        rng.sample(7)
        rng.uniform(1, 2)
        assert rng.calls == 8

    def test_uniform_and_randint_ranges(self):
        rng = Mulberry32(11)
        for _ in range(200):
            assert 2.0 <= rng.uniform(2.0, 5.0) < 5.0
            assert 0 <= rng.randint(4) < 4

    def test_shuffle_is_permutation(self):
        rng = Mulberry32(5)
        items = list(range(20))
        shuffled = rng.shuffle(list(items))
        assert sorted(shuffled) == items
        assert rng.calls == 19

    def test_shuffle_deterministic(self):
        assert Mulberry32(8).shuffle(list("abcdef")) == Mulberry32(8).shuffle(list("abcdef"))

    @pytest.mark.parametrize("seed", [0, 1, 42, 2 ** 31])
    def test_stream_not_constant(self, seed):
        values = Mulberry32(seed).sample(10)
        assert len(set(values)) == 10
