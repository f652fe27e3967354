"""Tests for the occupancy grid."""

import pytest

from plotflow.field.geometry import Bounds
from plotflow.streamlines.grid import OccupancyGrid, SeparationIndex


@pytest.fixture
def grid():
    return OccupancyGrid(Bounds(0, 0, 100, 100), Bounds(10, 10, 80, 80), d_test=6, step_size=1)


class TestOccupancyGrid:
    """Test cell bookkeeping."""

    def test_geometry(self, grid):
        assert grid.cell_size == 2.0
        assert (grid.cols, grid.rows) == (50, 50)
        assert grid.mark_frequency == 2

    def test_minimum_cell_size(self):
        grid = OccupancyGrid(Bounds(0, 0, 10, 10), Bounds(0, 0, 10, 10), d_test=1.5, step_size=2)
        assert grid.cell_size == 1.0
        assert grid.mark_frequency == 1

    def test_outside_drawing_bounds_is_occupied(self, grid):
        assert grid.is_occupied(5, 50)
        assert grid.is_occupied_exact(95, 50)
        assert not grid.is_occupied(50, 50)

    def test_exact_checks_own_cell_only(self, grid):
        grid.mark(50, 50)
        assert grid.is_occupied_exact(51, 51)
        assert not grid.is_occupied_exact(52.5, 50)
        assert grid.is_occupied(52.5, 50)

    def test_radius(self, grid):
        grid.mark(50, 50)
        assert not grid.is_occupied(56.5, 50, radius=2)
        assert grid.is_occupied(54.5, 50, radius=2)

    def test_mark_outside_grid_ignored(self, grid):
        grid.mark(-5, 50)
        grid.mark(500, 50)
        assert len(grid) == 0

    def test_sparse_marking_keeps_last_point(self, grid):
        points = [(20.0 + i, 20.0) for i in range(7)]
        grid.mark_points(points)
        # points 0, 2, 4, 6 fall into cells 10, 11, 12, 13 of row 10
        assert len(grid) == 4
        assert grid.is_occupied_exact(26.0, 20.0)

    def test_mark_points_empty(self, grid):
        grid.mark_points([])
        assert len(grid) == 0

    def test_clear(self, grid):
        grid.mark(50, 50)
        grid.clear()
        assert not grid.is_occupied(50, 50)

    def test_offset_bounds(self):
        grid = OccupancyGrid(Bounds(1000, 1000, 300, 200), Bounds(1020, 1020, 260, 160), d_test=6, step_size=1)
        assert grid.cell_coords(1000, 1000) == (0, 0)
        assert grid.cell_coords(1299, 1199) == (149, 99)
        grid.mark(1150, 1100)
        assert grid.is_occupied_exact(1150, 1100)
        assert not grid.is_occupied(1200, 1100)


class TestSeparationIndex:
    """Test the exact point-distance index."""

    @pytest.fixture
    def index(self):
        index = SeparationIndex(d_test=4)
        index.add_points([(10.0, 10.0), (12.0, 10.0), (14.0, 10.0)])
        return index

    def test_too_close(self, index):
        assert index.too_close(12.0, 13.9)
        assert index.too_close(17.5, 10.0)

    def test_distance_is_exclusive(self, index):
        assert not index.too_close(12.0, 14.0)
        assert not index.too_close(18.0, 10.0)

    def test_neighbouring_buckets(self):
        index = SeparationIndex(d_test=4)
        index.add_points([(7.9, 7.9)])
        assert index.too_close(8.1, 8.1)
        assert index.too_close(4.1, 7.9)
        assert not index.too_close(12.0, 12.0)

    def test_negative_coordinates(self):
        index = SeparationIndex(d_test=4)
        index.add_points([(-1.0, -1.0)])
        assert index.too_close(1.0, 1.0)

    def test_len_and_clear(self, index):
        assert len(index) == 3
        index.clear()
        assert len(index) == 0
        assert not index.too_close(12.0, 10.0)
