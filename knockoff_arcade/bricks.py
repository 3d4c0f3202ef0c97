#
# Copyright (c) 2025, 7th software Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Iterator, Sequence

from knockoff_arcade.config import Physics


@dataclass
class Brick:
    x: float                # Left edge
    y: float                # Top edge
    width: float
    height: float
    colour: tuple[int, int, int]
    row: int
    col: int
    visible: bool = True
    hits: int = 1

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height


class BrickGrid():
    """
    The bricks of one level, laid out in rows from the top.

    Destroyed bricks are only hidden, never removed, so a brick's index in `bricks` is always
    `row * cols + col` and neighbours can be found by arithmetic.
    """

    def __init__(self, width: float, scale: float, colours: Sequence[tuple[int, int, int]],
                 rows: int = Physics.BRICK_ROWS) -> None:
        """
        Build a full grid of bricks.

        Args:
            width: Playfield width in pixels; the number of columns is as many as fit.
            scale: Layout scale (playfield size relative to the 800px reference).
            colours: Colour for each row; rows beyond the list wrap around.
            rows: Number of brick rows.
        """

        self.brick_width = Physics.BRICK_WIDTH * scale
        self.brick_height = Physics.BRICK_HEIGHT * scale
        self.padding = Physics.BRICK_PADDING * scale
        self.top = self.padding + Physics.BRICK_TOP_OFFSET * scale
        self.rows = rows
        self.cols = max(1, int((width - self.padding * 2) // (self.brick_width + self.padding)))

        self.bricks: list[Brick] = []
        for row in range(self.rows):
            y = self.top + row * (self.brick_height + self.padding)
            for col in range(self.cols):
                x = self.padding + col * (self.brick_width + self.padding)
                colour = colours[row % len(colours)]
                self.bricks.append(Brick(x, y, self.brick_width, self.brick_height, colour, row, col))

    def __iter__(self) -> Iterator[Brick]:
        return iter(self.bricks)

    def __len__(self) -> int:
        return len(self.bricks)

    @property
    def field_top(self) -> float:
        """Y coordinate of the top edge of the first row. Everything above is the cavity."""

        return self.top

    def visible(self) -> Iterator[Brick]:
        return (brick for brick in self.bricks if brick.visible)

    def remaining(self) -> int:
        return sum(1 for brick in self.bricks if brick.visible)

    def at(self, row: int, col: int) -> Brick | None:
        if 0 <= row < self.rows and 0 <= col < self.cols:
            return self.bricks[row * self.cols + col]
        return None

    def brick_at_point(self, x: float, y: float) -> Brick | None:
        """Return the first visible brick containing the point, if any."""

        for brick in self.bricks:
            if brick.visible and brick.contains(x, y):
                return brick
        return None

    def find_next_brick(self, current: Brick, dx: int, dy: int) -> Brick | None:
        """
        Find the visible brick one grid step away from `current`.

        Args:
            current: Brick to step from.
            dx: Horizontal step (-1, 0 or 1), usually the sign of the ball's x velocity.
            dy: Vertical step (-1, 0 or 1), usually the sign of the ball's y velocity.

        Returns:
            Brick | None: The neighbouring brick, or None if the step leaves the grid, the slot is already hidden,
            or there is no step at all.
        """

        if dx == 0 and dy == 0:
            return None

        brick = self.at(current.row + dy, current.col + dx)
        if brick is None or not brick.visible:
            return None
        return brick

    def chain(self, first: Brick, vx: float, vy: float, length: int) -> list[Brick]:
        """
        Collect `first` plus up to `length - 1` further bricks in the direction of travel.

        Args:
            first: The brick the ball actually hit.
            vx: Ball x velocity (only its sign is used).
            vy: Ball y velocity (only its sign is used).
            length: Maximum number of bricks in the chain, including `first`.

        Returns:
            list[Brick]: The chain, stopping early at the first empty or hidden slot.
        """

        dx = int(math.copysign(1, vx)) if vx else 0
        dy = int(math.copysign(1, vy)) if vy else 0

        chain = [first]
        current = first
        for _ in range(length - 1):
            current = self.find_next_brick(current, dx, dy)
            if current is None:
                break
            chain.append(current)
        return chain
