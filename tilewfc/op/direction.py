# tilewfc/op/direction.py
# The four grid directions

from __future__ import annotations
from enum import IntEnum
from typing import Tuple


class Direction(IntEnum):
    """
    Fixed enumeration of grid neighbors.

    Screen coordinates: y grows downward, so UP is (0, -1).
    """
    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3

    @property
    def offset(self) -> Tuple[int, int]:
        """(dx, dy) step to the neighbor in this direction."""
        return _OFFSETS[self]

    def inverse(self) -> "Direction":
        """UP<->DOWN, RIGHT<->LEFT."""
        return Direction((self + 2) % 4)

    def step(self, x: int, y: int) -> Tuple[int, int]:
        dx, dy = _OFFSETS[self]
        return x + dx, y + dy


_OFFSETS = {
    Direction.UP: (0, -1),
    Direction.RIGHT: (1, 0),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
}

# Visiting order used everywhere a cell's neighbors are walked
DIRECTIONS = (Direction.UP, Direction.RIGHT, Direction.DOWN, Direction.LEFT)
