from __future__ import annotations

import random

from pygame.math import Vector2

# Spawn coordinates keep this distance from the arena border.
COORDINATE_MARGIN = 40.0


class DeterministicRng:
    def __init__(self, seed: int, width: float = 500.0, height: float = 500.0):
        self._seed = seed
        self._width = width
        self._height = height
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_range(self, low: float, high: float) -> float:
        # Half-open [low, high); random.uniform may return `high` after rounding.
        return low + (high - low) * self._random.random()

    def next_index(self, upper: float) -> int:
        """Truncate a draw from [0, upper) to an index."""
        return int(self.next_range(0.0, upper))

    def random_coordinate(self) -> Vector2:
        return Vector2(
            self.next_range(COORDINATE_MARGIN, self._width - COORDINATE_MARGIN),
            self.next_range(COORDINATE_MARGIN, self._height - COORDINATE_MARGIN),
        )

    def getstate(self) -> object:
        return self._random.getstate()

    def setstate(self, state: object) -> None:
        self._random.setstate(state)

    def copy(self) -> "DeterministicRng":
        clone = DeterministicRng(self._seed, self._width, self._height)
        clone.setstate(self.getstate())
        return clone
