"""Unit tests for the brick grid."""
from __future__ import annotations

import pytest

from knockoff_arcade.bricks import BrickGrid

COLOURS = ((255, 0, 0), (0, 255, 0), (0, 0, 255))


@pytest.fixture
def grid() -> BrickGrid:
    # 800px wide at the reference scale: 9 columns of 75px bricks with 5px padding
    return BrickGrid(800, 1.0, COLOURS)


class TestLayout:
    def test_dimensions(self, grid: BrickGrid) -> None:
        assert grid.cols == 9
        assert grid.rows == 8
        assert len(grid) == 72
        assert grid.remaining() == 72

    def test_rows_cycle_colours(self, grid: BrickGrid) -> None:
        assert grid.at(0, 0).colour == COLOURS[0]
        assert grid.at(3, 5).colour == COLOURS[0]
        assert grid.at(4, 1).colour == COLOURS[1]

    def test_field_top_leaves_a_cavity(self, grid: BrickGrid) -> None:
        assert grid.field_top == 105
        assert min(brick.y for brick in grid) == grid.field_top

    def test_index_matches_row_and_column(self, grid: BrickGrid) -> None:
        for index, brick in enumerate(grid):
            assert index == brick.row * grid.cols + brick.col

    def test_scaled_layout(self) -> None:
        grid = BrickGrid(400, 0.5, COLOURS, rows=2)

        assert grid.brick_width == 37.5
        assert len(grid) == 2 * grid.cols

    def test_brick_at_point_skips_hidden(self, grid: BrickGrid) -> None:
        brick = grid.at(0, 0)
        x, y = brick.center

        assert grid.brick_at_point(x, y) is brick
        brick.visible = False
        assert grid.brick_at_point(x, y) is None
        assert grid.brick_at_point(400, 10) is None


class TestChain:
    def test_follows_direction_of_travel(self, grid: BrickGrid) -> None:
        first = grid.at(2, 3)
        chain = grid.chain(first, vx=1.5, vy=-2.0, length=3)

        assert [(b.row, b.col) for b in chain] == [(2, 3), (1, 4), (0, 5)]

    def test_stops_at_hidden_brick(self, grid: BrickGrid) -> None:
        grid.at(1, 4).visible = False
        chain = grid.chain(grid.at(2, 3), vx=1.5, vy=-2.0, length=3)

        assert len(chain) == 1

    def test_stops_at_grid_edge(self, grid: BrickGrid) -> None:
        chain = grid.chain(grid.at(0, 8), vx=1.0, vy=-1.0, length=3)

        assert len(chain) == 1

    def test_vertical_only(self, grid: BrickGrid) -> None:
        chain = grid.chain(grid.at(5, 2), vx=0.0, vy=3.0, length=3)

        assert [(b.row, b.col) for b in chain] == [(5, 2), (6, 2), (7, 2)]

    def test_no_step_without_velocity(self, grid: BrickGrid) -> None:
        assert grid.find_next_brick(grid.at(3, 3), 0, 0) is None
